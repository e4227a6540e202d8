"""Helpers shared by routers that drive the progression engine."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from ecoquest.config import get_settings
from ecoquest.errors import NotFound, ProgressionError, ValidationFailed
from ecoquest.gamification.results import OutcomeStatus, ProgressionOutcome

T = TypeVar("T")

_OUTCOME_ERRORS: dict[OutcomeStatus, type[ProgressionError]] = {
    OutcomeStatus.NOT_FOUND: NotFound,
    OutcomeStatus.VALIDATION_FAILED: ValidationFailed,
}


async def bounded(awaitable: Awaitable[T]) -> T:
    """Await with the configured request timeout. Writes already issued still land."""
    return await asyncio.wait_for(awaitable, timeout=get_settings().request_timeout_seconds)


def raise_for_outcome(outcome: ProgressionOutcome) -> ProgressionOutcome:
    """Raise NotFound or ValidationFailed for a failed outcome; pass OK through.

    The error handler turns them into 404 and 409 with the outcome message.
    """
    error = _OUTCOME_ERRORS.get(outcome.status)
    if error is not None:
        raise error(outcome.message, user_message=outcome.message)
    return outcome
