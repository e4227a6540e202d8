"""User profile business logic: seeding, onboarding, profile edits."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from ecoquest.db.models import User
from ecoquest.errors import SchemaMismatch
from ecoquest.gamification.results import ProgressionOutcome

if TYPE_CHECKING:
    from ecoquest.store.profile_store import ProfileStore, Record

logger = structlog.get_logger()


async def ensure_user(
    store: ProfileStore,
    user_id: str,
    email: str | None = None,
    full_name: str | None = None,
) -> tuple[ProgressionOutcome, Record | None]:
    """
    Seed the user record on first access.

    Existing records are returned untouched, so calling this on every
    sign-in is safe.
    """
    if email:
        owner = await store.get_one_where(User, email=email)
        if owner is not None and owner["id"] != user_id:
            return ProgressionOutcome.validation_failed("Email already registered"), None

    created = await store.insert(
        User,
        {
            "id": user_id,
            "email": email,
            "full_name": full_name,
            "points": 0,
            "level": 1,
            "badges": [],
            "onboarding_completed": False,
            "chat_exchanges": 0,
        },
        ignore_conflict_on=("id",),
    )
    if created is not None:
        logger.info("user_seeded", user_id=user_id)
        return ProgressionOutcome(message="User created", level=1), created

    record = await store.get(User, user_id)
    return ProgressionOutcome(message="User exists", level=record["level"] if record else None), record


async def get_user(store: ProfileStore, user_id: str) -> Record | None:
    return await store.get(User, user_id)


async def get_onboarding_status(store: ProfileStore, user_id: str) -> bool:
    """Whether the user finished onboarding. Unknown users are seeded and have not."""
    record = await store.get(User, user_id)
    if record is None:
        await ensure_user(store, user_id)
        return False

    completed = record.get("onboarding_completed")
    if completed is None:
        error = SchemaMismatch(f"users.onboarding_completed missing for {user_id}")
        logger.warning("schema_mismatch", user_id=user_id, error=str(error))
        return False
    return bool(completed)


async def complete_onboarding(store: ProfileStore, user_id: str) -> ProgressionOutcome:
    updated = await store.update(User, user_id, {"onboarding_completed": True})
    if updated is None:
        return ProgressionOutcome.not_found(f"User {user_id} not found")
    logger.info("onboarding_completed", user_id=user_id)
    return ProgressionOutcome(message="Onboarding completed", level=updated["level"])


async def update_profile(
    store: ProfileStore,
    user_id: str,
    full_name: str | None = None,
    city: str | None = None,
) -> tuple[ProgressionOutcome, Record | None]:
    """Update the given profile fields; fields left as None are unchanged."""
    values = {}
    if full_name is not None:
        values["full_name"] = full_name
    if city is not None:
        values["city"] = city

    if not values:
        record = await store.get(User, user_id)
    else:
        record = await store.update(User, user_id, values)
    if record is None:
        return ProgressionOutcome.not_found(f"User {user_id} not found"), None
    return ProgressionOutcome(message="Profile updated", level=record["level"]), record
