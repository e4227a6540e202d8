"""Read-only views over progression state: leaderboard, challenge board, progress."""

from __future__ import annotations

from ecoquest.db.models import ChallengeParticipant, Classification, User
from ecoquest.gamification import rules
from ecoquest.gamification.badges import all_badges
from ecoquest.gamification.catalog import ChallengeCatalog
from ecoquest.gamification.levels import compute_level_progress
from ecoquest.store.profile_store import ProfileStore


async def get_leaderboard(store: ProfileStore, limit: int) -> list[dict]:
    """Top users by points."""
    users = await store.select_where(User, order_by="points", descending=True, limit=limit)
    return [
        {
            "rank": rank,
            "user_id": user["id"],
            "full_name": user["full_name"] or "Anonymous",
            "points": user["points"],
            "level": user["level"],
        }
        for rank, user in enumerate(users, start=1)
    ]


async def get_challenge_board(
    store: ProfileStore, catalog: ChallengeCatalog, user_id: str
) -> list[dict]:
    """Every challenge with the caller's progress, plus community totals where relevant."""
    participations = {
        row["challenge_id"]: row
        for row in await store.select_where(ChallengeParticipant, user_id=user_id)
    }

    board = []
    for definition in catalog:
        mine = participations.get(definition.id)
        community_progress = None
        if definition.is_community:
            rows = await store.select_where(ChallengeParticipant, challenge_id=definition.id)
            community_progress = rules.community_total(row["progress"] for row in rows)
        board.append({
            "id": definition.id,
            "name": definition.name,
            "description": definition.description,
            "goal": definition.goal,
            "unit": definition.unit,
            "start_date": definition.start_date,
            "end_date": definition.end_date,
            "kind": definition.rule.kind.value,
            "manual_increment": definition.manual_increment,
            "target_level": definition.target_level,
            "joined": mine is not None,
            "progress": mine["progress"] if mine else 0.0,
            "completed": mine["completed"] if mine else False,
            "community_progress": community_progress,
        })
    return board


async def get_progress_summary(store: ProfileStore, user_id: str) -> dict | None:
    user = await store.get(User, user_id)
    if user is None:
        return None

    recyclable = await store.select_where(Classification, user_id=user_id, is_recyclable=True)
    state = rules.UserState.from_record(user)
    summary = compute_level_progress(state.level, state.points)
    summary.update(
        badges=list(state.badges),
        recyclable_items=len(recyclable),
        co2_saved_kg=rules.co2_saved_kg(len(recyclable)),
    )
    return summary


def list_badges() -> list[dict]:
    return all_badges()
