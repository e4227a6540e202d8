"""Pure progression rules.

No I/O here: the engine reads state from the store, runs it through these
functions and writes back whatever changed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from ecoquest.gamification.badges import (
    CLIMATE_CHAMPION,
    CLIMATE_CHAMPION_CO2_KG,
    CO2_KG_PER_RECYCLABLE,
    COMMUNITY_STAR,
    COMMUNITY_STAR_POSTS,
    ECO_LEARNER,
    ECO_LEARNER_EXCHANGES,
    INFLUENCER_FRIEND_COMPLETIONS,
    LIFESTYLE_CHANGER,
    LIFESTYLE_CHANGER_RECOMMENDATIONS,
    NON_RECYCLABLE_POINTS,
    RECYCLABLE_POINTS,
    RECYCLER_PRO,
    RECYCLER_PRO_ITEMS,
)
from ecoquest.gamification.levels import resolve_level

PROGRESS_PRECISION = 4


@dataclass(frozen=True)
class ParticipationState:
    progress: float = 0.0
    completed: bool = False

    @classmethod
    def from_record(cls, record: Mapping[str, Any] | None) -> ParticipationState:
        if record is None:
            return cls()
        return cls(progress=float(record["progress"] or 0.0), completed=bool(record["completed"]))


@dataclass(frozen=True)
class UserState:
    points: int = 0
    level: int = 1
    badges: tuple[str, ...] = ()

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> UserState:
        badges: list[str] = []
        for badge in record.get("badges") or []:
            if badge not in badges:
                badges.append(badge)
        return cls(
            points=int(record.get("points") or 0),
            level=int(record.get("level") or 1),
            badges=tuple(badges),
        )

    def has_badge(self, badge: str) -> bool:
        return badge in self.badges

    def to_values(self) -> dict[str, Any]:
        return {"points": self.points, "level": self.level, "badges": list(self.badges)}


def advance_progress(
    current: ParticipationState, increment: float, goal: float
) -> ParticipationState:
    """Add ``increment`` and clamp to ``goal``. Completion is exactly ``progress >= goal``."""
    progress = min(round(current.progress + increment, PROGRESS_PRECISION), goal)
    return ParticipationState(progress=progress, completed=progress >= goal)


def add_points(state: UserState, points: int) -> UserState:
    if points <= 0:
        return state
    return replace(state, points=state.points + points)


def grant_badge(state: UserState, badge: str) -> UserState:
    """Add ``badge`` once. A challenge badge lifts the level to that challenge's target, never lower."""
    if state.has_badge(badge):
        return state
    return replace(state, badges=(*state.badges, badge), level=resolve_level(state.level, badge))


def meta_prerequisites_met(completed_ids: Iterable[int], sibling_ids: Iterable[int]) -> bool:
    return set(sibling_ids) <= set(completed_ids)


def community_total(progresses: Iterable[float | None]) -> float:
    return round(sum(p or 0.0 for p in progresses), PROGRESS_PRECISION)


def friend_qualifies(completed_challenges: int) -> bool:
    return completed_challenges >= INFLUENCER_FRIEND_COMPLETIONS


def referral_delta(derived: float, stored: float) -> float:
    """Increment that moves stored Eco-Influencer progress up to ``derived``. Never negative."""
    return max(0.0, round(derived - stored, PROGRESS_PRECISION))


def classification_points(is_recyclable: bool) -> int:
    return RECYCLABLE_POINTS if is_recyclable else NON_RECYCLABLE_POINTS


def co2_saved_kg(recyclable_count: int) -> float:
    return round(recyclable_count * CO2_KG_PER_RECYCLABLE, PROGRESS_PRECISION)


def classification_badges(recyclable_count: int) -> list[str]:
    earned = []
    if recyclable_count >= RECYCLER_PRO_ITEMS:
        earned.append(RECYCLER_PRO)
    if co2_saved_kg(recyclable_count) >= CLIMATE_CHAMPION_CO2_KG:
        earned.append(CLIMATE_CHAMPION)
    return earned


def recommendation_badge_due(progress: Mapping[str, bool]) -> bool:
    return sum(1 for done in progress.values() if done) >= LIFESTYLE_CHANGER_RECOMMENDATIONS


def post_badges(post_count: int) -> list[str]:
    return [COMMUNITY_STAR] if post_count >= COMMUNITY_STAR_POSTS else []


def chat_badges(exchange_count: int) -> list[str]:
    return [ECO_LEARNER] if exchange_count >= ECO_LEARNER_EXCHANGES else []
