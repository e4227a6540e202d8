"""User profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ecoquest.auth.dependencies import get_current_user_id
from ecoquest.dependencies import get_store
from ecoquest.gamification.responses import bounded, raise_for_outcome
from ecoquest.store.profile_store import ProfileStore
from ecoquest.users.schemas import (
    CreateUserRequest,
    OnboardingResponse,
    UpdateProfileRequest,
    UserResponse,
)
from ecoquest.users.service import (
    complete_onboarding,
    ensure_user,
    get_onboarding_status,
    get_user,
    update_profile,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.post("", response_model=UserResponse)
async def create_user(
    body: CreateUserRequest,
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
):
    """Seed the caller's profile. Returns the existing profile if already seeded."""
    outcome, record = await bounded(ensure_user(store, user_id, body.email, body.full_name))
    raise_for_outcome(outcome)
    return UserResponse(**record)


@router.get("/me", response_model=UserResponse)
async def get_me(
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
):
    record = await bounded(get_user(store, user_id))
    if record is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse(**record)


@router.patch("/me", response_model=UserResponse)
async def patch_me(
    body: UpdateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
):
    outcome, record = await bounded(update_profile(store, user_id, body.full_name, body.city))
    raise_for_outcome(outcome)
    return UserResponse(**record)


@router.get("/me/onboarding", response_model=OnboardingResponse)
async def onboarding_status(
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
):
    return OnboardingResponse(onboarding_completed=await bounded(get_onboarding_status(store, user_id)))


@router.post("/me/onboarding", response_model=OnboardingResponse)
async def finish_onboarding(
    user_id: str = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_store),
):
    raise_for_outcome(await bounded(complete_onboarding(store, user_id)))
    return OnboardingResponse(onboarding_completed=True)
