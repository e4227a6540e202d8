"""Community feed endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ecoquest.auth.dependencies import get_current_user_id
from ecoquest.dependencies import get_progression_engine, get_store
from ecoquest.gamification.engine import ProgressionEngine
from ecoquest.gamification.responses import bounded, raise_for_outcome
from ecoquest.social.feed_service import (
    add_comment,
    create_post,
    list_posts,
    toggle_like,
    toggle_upvote,
)
from ecoquest.social.schemas import (
    CommentRequest,
    CreatePostRequest,
    FeedResponse,
    PostActionResponse,
    PostResponse,
)
from ecoquest.store.profile_store import ProfileStore

router = APIRouter(prefix="/api/v1", tags=["Social"])


def _action_response(outcome, post) -> PostActionResponse:
    raise_for_outcome(outcome)
    return PostActionResponse(
        message=outcome.message,
        post=PostResponse(**post),
        points_awarded=outcome.points_awarded,
        badges_awarded=outcome.badges_awarded,
    )


@router.get("/posts", response_model=FeedResponse)
async def get_feed(store: ProfileStore = Depends(get_store)):
    posts = await bounded(list_posts(store))
    return FeedResponse(posts=[PostResponse(**p) for p in posts])


@router.post("/posts", response_model=PostActionResponse, status_code=201)
async def new_post(
    body: CreatePostRequest,
    user_id: str = Depends(get_current_user_id),
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    outcome, post = await bounded(create_post(engine, user_id, body.content, body.tags))
    return _action_response(outcome, post)


@router.post("/posts/{post_id}/like", response_model=PostActionResponse)
async def like_post(
    post_id: int,
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
):
    outcome, post = await bounded(toggle_like(store, post_id, user_id))
    return _action_response(outcome, post)


@router.post("/posts/{post_id}/upvote", response_model=PostActionResponse)
async def upvote_post(
    post_id: int,
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
):
    outcome, post = await bounded(toggle_upvote(store, post_id, user_id))
    return _action_response(outcome, post)


@router.post("/posts/{post_id}/comments", response_model=PostActionResponse)
async def comment_on_post(
    post_id: int,
    body: CommentRequest,
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
):
    outcome, post = await bounded(add_comment(store, post_id, body.comment))
    return _action_response(outcome, post)
