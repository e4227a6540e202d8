"""Progression engine.

Each operation is a short chain of awaited ProfileStore calls. There is no
transaction spanning them, so every step is written to converge when the
whole operation is simply invoked again: progress is clamped, badges are
only granted when absent and points are only added on a transition.

Store failures propagate as StoreUnavailable and stop the chain at the
failing step. Not-found and validation problems come back as outcomes.
"""

from __future__ import annotations

import logging
from typing import Any

from ecoquest.db.models import ChallengeParticipant, Classification, Post, Referral, User
from ecoquest.gamification import rules
from ecoquest.gamification.badges import (
    COMPLETION_POINTS,
    ECO_WARRIOR_ITEM_WEIGHT,
    LIFESTYLE_CHANGER,
    TREE_PLANTER,
)
from ecoquest.gamification.catalog import (
    ECO_INFLUENCER,
    ECO_WARRIOR,
    ChallengeCatalog,
    ChallengeDefinition,
)
from ecoquest.gamification.results import ProgressionOutcome
from ecoquest.gamification.rules import ParticipationState, UserState
from ecoquest.store.profile_store import ProfileStore, Record

logger = logging.getLogger(__name__)

PARTICIPATION_KEY = ("user_id", "challenge_id")
REFERRAL_KEY = ("referrer_id", "referred_id")


class ProgressionEngine:
    """Applies progress events to participations and user records."""

    def __init__(self, store: ProfileStore, catalog: ChallengeCatalog) -> None:
        self.store = store
        self.catalog = catalog

    # ── Challenges ──

    async def join_challenge(self, user_id: str, challenge_id: int) -> ProgressionOutcome:
        """Create the participation at zero progress. Joining again changes nothing."""
        definition = self.catalog.get(challenge_id)
        if definition is None:
            return ProgressionOutcome.not_found(f"Challenge {challenge_id} not found")
        user = await self.store.get(User, user_id)
        if user is None:
            return ProgressionOutcome.not_found(f"User {user_id} not found")

        row = await self.store.insert(
            ChallengeParticipant,
            {"user_id": user_id, "challenge_id": challenge_id, "progress": 0.0, "completed": False},
            ignore_conflict_on=PARTICIPATION_KEY,
        )
        if row is None:
            row = await self._participation(user_id, challenge_id)
            message = f"Already joined {definition.name}"
        else:
            logger.info("User %s joined challenge %s", user_id, definition.name)
            message = f"Joined {definition.name}"

        state = ParticipationState.from_record(row)
        return ProgressionOutcome(
            message=message,
            progress=state.progress,
            completed=state.completed,
            level=user["level"],
        )

    async def advance_challenge(
        self, user_id: str, challenge_id: int, increment: float
    ) -> ProgressionOutcome:
        """Add ``increment`` to a participation and apply whatever it unlocks."""
        if increment < 0:
            return ProgressionOutcome.validation_failed("Progress increment cannot be negative")
        definition = self.catalog.get(challenge_id)
        if definition is None:
            return ProgressionOutcome.not_found(f"Challenge {challenge_id} not found")
        user = await self.store.get(User, user_id)
        if user is None:
            return ProgressionOutcome.not_found(f"User {user_id} not found")

        before = ParticipationState.from_record(await self._participation(user_id, challenge_id))
        after = rules.advance_progress(before, increment, definition.goal)
        await self._write_participation(user_id, challenge_id, after)

        state = UserState.from_record(user)
        # A zero increment is a read: it never grants, so a missing badge waits for the re-sent event.
        award_due = increment > 0 and after.completed and not state.has_badge(definition.badge)

        if definition.is_meta and award_due and not await self._meta_ready(user_id, definition):
            await self._write_participation(user_id, challenge_id, ParticipationState())
            logger.info(
                "Rolled back %s for user %s: other challenges incomplete",
                definition.name, user_id,
            )
            return ProgressionOutcome.validation_failed(
                f"Complete every other challenge before {definition.name}",
                progress=0.0,
                completed=False,
                level=state.level,
            )

        updated = state
        if after.completed and not before.completed:
            updated = rules.add_points(updated, COMPLETION_POINTS)
        if award_due:
            updated = rules.grant_badge(updated, definition.badge)
        if definition.is_community and increment > 0:
            updated = await self._community_cascade(definition, updated)

        if after.completed:
            message = f"{definition.name} completed"
        else:
            message = f"{definition.name}: {after.progress:g}/{definition.goal:g} {definition.unit}"
        return await self._commit_user(
            user_id,
            state,
            updated,
            message=message,
            progress=after.progress,
            completed=after.completed,
        )

    async def record_manual_progress(
        self, user_id: str, challenge_id: int, requested: float | None = None
    ) -> ProgressionOutcome:
        """The "add progress" button: one fixed step per click.

        ``requested`` can only shrink the step. Derived challenges take no
        manual progress, since their value is re-derived from other events.
        """
        definition = self.catalog.get(challenge_id)
        if definition is None:
            return ProgressionOutcome.not_found(f"Challenge {challenge_id} not found")
        if definition.is_derived and requested:
            return ProgressionOutcome.validation_failed(
                f"{definition.name} progress comes from your activity and cannot be added by hand"
            )

        step = definition.manual_increment
        if requested is not None:
            step = min(requested, step)
        return await self.advance_challenge(user_id, challenge_id, step)

    async def _participation(self, user_id: str, challenge_id: int) -> Record | None:
        return await self.store.get_one_where(
            ChallengeParticipant, user_id=user_id, challenge_id=challenge_id
        )

    async def _write_participation(
        self, user_id: str, challenge_id: int, state: ParticipationState
    ) -> None:
        await self.store.upsert(
            ChallengeParticipant,
            {
                "user_id": user_id,
                "challenge_id": challenge_id,
                "progress": state.progress,
                "completed": state.completed,
            },
            PARTICIPATION_KEY,
        )

    async def _meta_ready(self, user_id: str, definition: ChallengeDefinition) -> bool:
        completed = await self.store.select_where(
            ChallengeParticipant, user_id=user_id, completed=True
        )
        return rules.meta_prerequisites_met(
            (row["challenge_id"] for row in completed),
            self.catalog.sibling_ids(definition.id),
        )

    async def _community_cascade(
        self, definition: ChallengeDefinition, state: UserState
    ) -> UserState:
        rows = await self.store.select_where(ChallengeParticipant, challenge_id=definition.id)
        total = rules.community_total(row["progress"] for row in rows)
        if total >= definition.goal:
            return rules.grant_badge(state, TREE_PLANTER)
        return state

    # ── Referrals ──

    async def record_referral(self, referrer_id: str, referred_email: str) -> ProgressionOutcome:
        referrer = await self.store.get(User, referrer_id)
        if referrer is None:
            return ProgressionOutcome.not_found(f"User {referrer_id} not found")
        referred = await self.store.get_one_where(User, email=referred_email)
        if referred is None:
            return ProgressionOutcome.not_found(f"No user registered with {referred_email}")
        if referred["id"] == referrer_id:
            return ProgressionOutcome.validation_failed("You cannot refer yourself")

        row = await self.store.insert(
            Referral,
            {"referrer_id": referrer_id, "referred_id": referred["id"]},
            ignore_conflict_on=REFERRAL_KEY,
        )
        if row is not None:
            logger.info("User %s referred %s", referrer_id, referred["id"])
        return await self.recompute_referral_progress(referrer_id)

    async def recompute_referral_progress(self, referrer_id: str) -> ProgressionOutcome:
        """Re-derive Eco-Influencer progress from the referred users' completions."""
        definition = self.catalog.by_name(ECO_INFLUENCER)
        if definition is None:
            return ProgressionOutcome.not_found(f"{ECO_INFLUENCER} challenge is not configured")

        referrals = await self.store.select_where(Referral, referrer_id=referrer_id)
        qualified = 0
        for referred_id in sorted({r["referred_id"] for r in referrals}):
            completed = await self.store.select_where(
                ChallengeParticipant, user_id=referred_id, completed=True
            )
            if rules.friend_qualifies(len(completed)):
                qualified += 1

        stored = ParticipationState.from_record(await self._participation(referrer_id, definition.id))
        delta = rules.referral_delta(qualified, stored.progress)
        return await self.advance_challenge(referrer_id, definition.id, delta)

    # ── Recommendations ──

    async def set_recommendations(
        self, user_id: str, suggestions: list[dict[str, Any]]
    ) -> ProgressionOutcome:
        """Replace the user's suggestions. Completion marks start over."""
        user = await self.store.get(User, user_id)
        if user is None:
            return ProgressionOutcome.not_found(f"User {user_id} not found")
        normalized = [{**s, "id": str(s["id"])} for s in suggestions]
        await self.store.update(
            User, user_id, {"recommendations": {"suggestions": normalized, "progress": {}}}
        )
        return ProgressionOutcome(
            message=f"Stored {len(normalized)} recommendations", level=user["level"]
        )

    async def complete_recommendation(
        self, user_id: str, recommendation_id: str | int
    ) -> ProgressionOutcome:
        user = await self.store.get(User, user_id)
        if user is None:
            return ProgressionOutcome.not_found(f"User {user_id} not found")

        rec_id = str(recommendation_id)
        recommendations = user.get("recommendations") or {}
        suggestions = recommendations.get("suggestions") or []
        if rec_id not in {str(s.get("id")) for s in suggestions}:
            return ProgressionOutcome.not_found(f"Recommendation {rec_id} not found")

        progress = {str(k): bool(v) for k, v in (recommendations.get("progress") or {}).items()}
        already_done = progress.get(rec_id, False)
        progress[rec_id] = True

        state = UserState.from_record(user)
        updated = state
        if rules.recommendation_badge_due(progress):
            updated = rules.grant_badge(updated, LIFESTYLE_CHANGER)

        extra = None
        if not already_done:
            extra = {"recommendations": {"suggestions": suggestions, "progress": progress}}
        return await self._commit_user(
            user_id,
            state,
            updated,
            message=f"Recommendation {rec_id} completed",
            extra=extra,
        )

    # ── Classification, posts, chat ──

    async def record_classification(
        self,
        user_id: str,
        is_recyclable: bool,
        item: str | None = None,
        result: str | None = None,
        image_url: str | None = None,
    ) -> ProgressionOutcome:
        user = await self.store.get(User, user_id)
        if user is None:
            return ProgressionOutcome.not_found(f"User {user_id} not found")

        if result is None:
            result = "Recyclable" if is_recyclable else "Non-Recyclable"
        await self.store.insert(
            Classification,
            {
                "user_id": user_id,
                "item": item or "",
                "result": result,
                "is_recyclable": is_recyclable,
                "weight": ECO_WARRIOR_ITEM_WEIGHT if is_recyclable else 0.0,
                "image_url": image_url,
            },
        )
        recyclable = await self.store.select_where(
            Classification, user_id=user_id, is_recyclable=True
        )

        state = UserState.from_record(user)
        updated = rules.add_points(state, rules.classification_points(is_recyclable))
        for badge in rules.classification_badges(len(recyclable)):
            updated = rules.grant_badge(updated, badge)
        outcome = await self._commit_user(user_id, state, updated, message=result)

        eco_warrior = self.catalog.by_name(ECO_WARRIOR)
        if is_recyclable and eco_warrior is not None:
            cascaded = await self.advance_challenge(
                user_id, eco_warrior.id, ECO_WARRIOR_ITEM_WEIGHT
            )
            outcome = outcome.merge(cascaded)
        return outcome

    async def record_post(self, user_id: str) -> ProgressionOutcome:
        user = await self.store.get(User, user_id)
        if user is None:
            return ProgressionOutcome.not_found(f"User {user_id} not found")
        posts = await self.store.select_where(Post, user_id=user_id)
        state = UserState.from_record(user)
        updated = state
        for badge in rules.post_badges(len(posts)):
            updated = rules.grant_badge(updated, badge)
        return await self._commit_user(user_id, state, updated, message="Post shared")

    async def record_chat_exchange(self, user_id: str) -> ProgressionOutcome:
        user = await self.store.get(User, user_id)
        if user is None:
            return ProgressionOutcome.not_found(f"User {user_id} not found")
        exchanges = int(user.get("chat_exchanges") or 0) + 1
        state = UserState.from_record(user)
        updated = state
        for badge in rules.chat_badges(exchanges):
            updated = rules.grant_badge(updated, badge)
        return await self._commit_user(
            user_id,
            state,
            updated,
            message=f"{exchanges} questions asked",
            extra={"chat_exchanges": exchanges},
        )

    # ── User write ──

    async def _commit_user(
        self,
        user_id: str,
        before: UserState,
        after: UserState,
        *,
        message: str,
        progress: float | None = None,
        completed: bool | None = None,
        extra: dict[str, Any] | None = None,
    ) -> ProgressionOutcome:
        """Persist points, badges and level in one write, skipped when nothing changed."""
        new_badges = [b for b in after.badges if b not in before.badges]
        if after != before or extra:
            await self.store.update(User, user_id, {**after.to_values(), **(extra or {})})

        for badge in new_badges:
            logger.info("Badge awarded: %s to user %s", badge, user_id)
        if after.level > before.level:
            logger.info("User %s leveled up: %d -> %d", user_id, before.level, after.level)

        return ProgressionOutcome(
            message=message,
            progress=progress,
            completed=completed,
            points_awarded=after.points - before.points,
            badges_awarded=new_badges,
            level=after.level,
            leveled_up=after.level > before.level,
        )
