"""Pydantic request/response models for progression endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, model_validator

from ecoquest.recommendations.parser import Recommendation


# --- Outcomes ---


class OutcomeResponse(BaseModel):
    status: str
    message: str
    progress: float | None = None
    completed: bool | None = None
    points_awarded: int = 0
    badges_awarded: list[str] = []
    level: int | None = None
    leveled_up: bool = False


# --- Challenges ---


class ChallengeBoardEntry(BaseModel):
    id: int
    name: str
    description: str
    goal: float
    unit: str
    start_date: date | None = None
    end_date: date | None = None
    kind: str
    manual_increment: float
    target_level: int | None = None
    joined: bool
    progress: float
    completed: bool
    community_progress: float | None = None


class ChallengeBoardResponse(BaseModel):
    challenges: list[ChallengeBoardEntry]


class ProgressRequest(BaseModel):
    increment: float | None = Field(default=None, ge=0)


# --- Referrals ---


class ReferralRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)


# --- Recommendations ---


class RecommendationsRequest(BaseModel):
    """Either parsed suggestions or the chatbot's raw reply, which is validated server-side."""

    suggestions: list[Recommendation] | None = Field(default=None, min_length=1)
    chatbot_reply: str | None = None

    @model_validator(mode="after")
    def _one_source(self) -> RecommendationsRequest:
        if (self.suggestions is None) == (self.chatbot_reply is None):
            raise ValueError("Send exactly one of suggestions or chatbot_reply")
        return self


# --- Classification ---


class ClassificationRequest(BaseModel):
    labels: list[Any]
    image_url: str | None = None


class ClassificationResponse(OutcomeResponse):
    item: str
    result: str
    material: str
    is_recyclable: bool
    instructions: str
    tip: str


# --- Views ---


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    full_name: str
    points: int
    level: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]


class ProgressSummaryResponse(BaseModel):
    level: int
    points: int
    points_to_next_level: int
    percent_to_next_level: float
    unlocked_features: list[str]
    badges: list[str]
    recyclable_items: int
    co2_saved_kg: float


class BadgeResponse(BaseModel):
    name: str
    description: str
    trigger: str
    level: int | None = None


class AllBadgesResponse(BaseModel):
    badges: list[BadgeResponse]
