"""Level calculation and display helpers.

Levels are not derived from points. A level only moves when a challenge
badge is granted for the first time, and only up to that challenge's
target level.
"""

from __future__ import annotations

from ecoquest.gamification.catalog import CHALLENGE_RULES

POINTS_PER_LEVEL = 100

FEATURE_UNLOCKS: dict[int, str] = {
    3: "community_challenges",
    4: "lifestyle_recommendations",
    5: "detailed_analytics",
}


def level_for_challenge(challenge_name: str) -> int | None:
    """Target level for completing ``challenge_name``, or None if it grants no level."""
    rule = CHALLENGE_RULES.get(challenge_name)
    return rule.level if rule else None


def resolve_level(current_level: int, challenge_name: str) -> int:
    """Level after newly earning ``challenge_name``'s badge. Never lower than ``current_level``."""
    target = level_for_challenge(challenge_name)
    if target is not None and target > current_level:
        return target
    return current_level


def unlocked_features(level: int) -> list[str]:
    return [feature for required, feature in sorted(FEATURE_UNLOCKS.items()) if level >= required]


def compute_level_progress(level: int, points: int) -> dict:
    """Progress bar numbers shown next to the level badge."""
    target = level * POINTS_PER_LEVEL
    return {
        "level": level,
        "points": points,
        "points_to_next_level": max(target - points, 0),
        "percent_to_next_level": min(round(points / target * 100, 1), 100.0) if target else 100.0,
        "unlocked_features": unlocked_features(level),
    }
