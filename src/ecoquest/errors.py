"""Error taxonomy for the progression engine and its collaborators.

NotFound and ValidationFailed are expected business outcomes: the engine
reports them as ProgressionOutcome values rather than raising them out of
an operation, and the HTTP layer raises them from a failed outcome so one
handler maps them to 404 and 409. StoreUnavailable aborts whatever cascade
is in flight.
SchemaMismatch is degraded-but-non-fatal and is always replaced by a safe
default at the point it is detected.
"""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class. Carries a short message that is safe to show a user."""

    default_message = "Something went wrong while updating your progress."

    def __init__(self, message: str | None = None, *, user_message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.user_message = user_message or self.default_message


class NotFound(ProgressionError):
    default_message = "We couldn't find what you were looking for."


class ValidationFailed(ProgressionError):
    default_message = "That action isn't allowed yet."


class StoreUnavailable(ProgressionError):
    """The profile store failed, timed out, or rejected a statement."""

    default_message = "We couldn't save your progress right now. Please try again."

    def __init__(
        self,
        message: str | None = None,
        *,
        transient: bool = True,
        user_message: str | None = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.transient = transient


class CollaboratorUnavailable(StoreUnavailable):
    """A non-store collaborator (label service, chatbot) returned garbage or failed."""

    default_message = "A helper service is unavailable right now. Please try again."


class SchemaMismatch(ProgressionError):
    """An expected field is absent from a stored record."""

    default_message = "Some of your profile data is unavailable."
