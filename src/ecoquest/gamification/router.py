"""Progression API endpoints: challenges, referrals, recommendations, classification, views."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ecoquest.auth.dependencies import get_current_user_id
from ecoquest.classification.labels import classify_labels, parse_label_payload
from ecoquest.config import get_settings
from ecoquest.dependencies import get_challenge_catalog, get_progression_engine, get_store
from ecoquest.gamification import service
from ecoquest.gamification.catalog import ChallengeCatalog
from ecoquest.gamification.engine import ProgressionEngine
from ecoquest.gamification.responses import bounded, raise_for_outcome
from ecoquest.gamification.schemas import (
    AllBadgesResponse,
    BadgeResponse,
    ChallengeBoardEntry,
    ChallengeBoardResponse,
    ClassificationRequest,
    ClassificationResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    OutcomeResponse,
    ProgressRequest,
    ProgressSummaryResponse,
    RecommendationsRequest,
    ReferralRequest,
)
from ecoquest.recommendations.parser import recommendations_from_reply
from ecoquest.store.profile_store import ProfileStore

router = APIRouter(prefix="/api/v1", tags=["Progression"])


def _outcome_response(outcome) -> OutcomeResponse:
    return OutcomeResponse(**raise_for_outcome(outcome).to_dict())


# ── Challenges ──


@router.get("/challenges", response_model=ChallengeBoardResponse)
async def list_challenges(
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
    catalog: ChallengeCatalog = Depends(get_challenge_catalog),
):
    """Every challenge with the caller's progress."""
    board = await bounded(service.get_challenge_board(store, catalog, user_id))
    return ChallengeBoardResponse(challenges=[ChallengeBoardEntry(**entry) for entry in board])


@router.post("/challenges/{challenge_id}/join", response_model=OutcomeResponse)
async def join_challenge(
    challenge_id: int,
    user_id: str = Depends(get_current_user_id),
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    return _outcome_response(await bounded(engine.join_challenge(user_id, challenge_id)))


@router.post("/challenges/{challenge_id}/progress", response_model=OutcomeResponse)
async def add_challenge_progress(
    challenge_id: int,
    body: ProgressRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    """Advance a challenge by its button step. A smaller ``increment`` may be sent, never a larger one."""
    requested = body.increment if body is not None else None
    outcome = await bounded(engine.record_manual_progress(user_id, challenge_id, requested))
    return _outcome_response(outcome)


# ── Referrals ──


@router.post("/referrals", response_model=OutcomeResponse)
async def add_referral(
    body: ReferralRequest,
    user_id: str = Depends(get_current_user_id),
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    return _outcome_response(await bounded(engine.record_referral(user_id, body.email.strip())))


# ── Recommendations ──


@router.put("/recommendations", response_model=OutcomeResponse)
async def set_recommendations(
    body: RecommendationsRequest,
    user_id: str = Depends(get_current_user_id),
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    """Store new suggestions. A raw chatbot reply that fails validation is replaced by the defaults."""
    recommendations = body.suggestions
    if recommendations is None:
        recommendations = recommendations_from_reply(body.chatbot_reply)
    suggestions = [s.model_dump() for s in recommendations]
    return _outcome_response(await bounded(engine.set_recommendations(user_id, suggestions)))


@router.post("/recommendations/{recommendation_id}/complete", response_model=OutcomeResponse)
async def complete_recommendation(
    recommendation_id: str,
    user_id: str = Depends(get_current_user_id),
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    outcome = await bounded(engine.complete_recommendation(user_id, recommendation_id))
    return _outcome_response(outcome)


# ── Classification & chat ──


@router.post("/classifications", response_model=ClassificationResponse)
async def classify_waste(
    body: ClassificationRequest,
    user_id: str = Depends(get_current_user_id),
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    """Classify an item from image-recognition labels and award points for it."""
    classification = classify_labels(parse_label_payload(body.labels))
    outcome = await bounded(
        engine.record_classification(
            user_id,
            classification.is_recyclable,
            item=classification.item,
            result=classification.result,
            image_url=body.image_url,
        )
    )
    raise_for_outcome(outcome)
    return ClassificationResponse(
        **outcome.to_dict(),
        item=classification.item,
        result=classification.result,
        material=classification.material,
        is_recyclable=classification.is_recyclable,
        instructions=classification.instructions,
        tip=classification.tip,
    )


@router.post("/chat/exchanges", response_model=OutcomeResponse)
async def record_chat_exchange(
    user_id: str = Depends(get_current_user_id),
    engine: ProgressionEngine = Depends(get_progression_engine),
):
    return _outcome_response(await bounded(engine.record_chat_exchange(user_id)))


# ── Views ──


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(store: ProfileStore = Depends(get_store)):
    entries = await bounded(service.get_leaderboard(store, get_settings().leaderboard_size))
    return LeaderboardResponse(entries=[LeaderboardEntry(**e) for e in entries])


@router.get("/me/progress", response_model=ProgressSummaryResponse)
async def my_progress(
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
):
    summary = await bounded(service.get_progress_summary(store, user_id))
    if summary is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ProgressSummaryResponse(**summary)


@router.get("/badges", response_model=AllBadgesResponse)
async def list_badges():
    """Every badge the engine can grant."""
    return AllBadgesResponse(badges=[BadgeResponse(**b) for b in service.list_badges()])
