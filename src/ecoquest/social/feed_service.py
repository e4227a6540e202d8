"""Community feed: posts, likes, upvotes and comments.

Toggles and comments are read-modify-write on the post's JSON lists, the
same pattern the engine uses for badges, so two simultaneous toggles by
different users can lose one of them.
"""

from __future__ import annotations

import logging

from ecoquest.db.models import Post, User
from ecoquest.gamification.engine import ProgressionEngine
from ecoquest.gamification.results import ProgressionOutcome
from ecoquest.store.profile_store import ProfileStore, Record

logger = logging.getLogger(__name__)

FEED_PAGE_SIZE = 50


def _dedupe(values: list[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.append(value)
    return seen


async def list_posts(store: ProfileStore, limit: int = FEED_PAGE_SIZE) -> list[Record]:
    return await store.select_where(Post, order_by="created_at", descending=True, limit=limit)


async def create_post(
    engine: ProgressionEngine,
    user_id: str,
    content: str,
    tags: list[str] | None = None,
) -> tuple[ProgressionOutcome, Record | None]:
    """Insert a post, then let the engine check the post-count badge."""
    store = engine.store
    if await store.get(User, user_id) is None:
        return ProgressionOutcome.not_found(f"User {user_id} not found"), None

    post = await store.insert(
        Post,
        {
            "user_id": user_id,
            "content": content,
            "tags": _dedupe(tags or []),
            "likes": [],
            "upvotes": [],
            "comments": [],
        },
    )
    logger.info("User %s created post %s", user_id, post["id"])
    return await engine.record_post(user_id), post


async def _toggle_member(
    store: ProfileStore, post_id: int, field: str, user_id: str
) -> tuple[ProgressionOutcome, Record | None]:
    post = await store.get(Post, post_id)
    if post is None:
        return ProgressionOutcome.not_found(f"Post {post_id} not found"), None

    members = list(post[field] or [])
    if user_id in members:
        members.remove(user_id)
        message = f"Removed {field[:-1]}"
    else:
        members.append(user_id)
        message = f"Added {field[:-1]}"
    updated = await store.update(Post, post_id, {field: members})
    return ProgressionOutcome(message=message), updated


async def toggle_like(
    store: ProfileStore, post_id: int, user_id: str
) -> tuple[ProgressionOutcome, Record | None]:
    return await _toggle_member(store, post_id, "likes", user_id)


async def toggle_upvote(
    store: ProfileStore, post_id: int, user_id: str
) -> tuple[ProgressionOutcome, Record | None]:
    return await _toggle_member(store, post_id, "upvotes", user_id)


async def add_comment(
    store: ProfileStore, post_id: int, comment: str
) -> tuple[ProgressionOutcome, Record | None]:
    post = await store.get(Post, post_id)
    if post is None:
        return ProgressionOutcome.not_found(f"Post {post_id} not found"), None
    comments = [*(post["comments"] or []), comment]
    updated = await store.update(Post, post_id, {"comments": comments})
    return ProgressionOutcome(message="Comment added"), updated
