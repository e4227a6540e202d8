"""Pydantic schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateUserRequest(BaseModel):
    email: str | None = Field(None, max_length=320)
    full_name: str | None = Field(None, max_length=128)


class UpdateProfileRequest(BaseModel):
    full_name: str | None = Field(None, min_length=1, max_length=128)
    city: str | None = Field(None, min_length=1, max_length=128)


class UserResponse(BaseModel):
    id: str
    email: str | None = None
    full_name: str | None = None
    city: str | None = None
    points: int
    level: int
    badges: list[str] = []
    recommendations: dict | None = None
    onboarding_completed: bool = False
    chat_exchanges: int = 0
    created_at: datetime


class OnboardingResponse(BaseModel):
    onboarding_completed: bool
