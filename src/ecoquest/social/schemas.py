"""Pydantic schemas for the community feed."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreatePostRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    tags: list[str] = []


class CommentRequest(BaseModel):
    comment: str = Field(..., min_length=1, max_length=500)


class PostResponse(BaseModel):
    id: int
    user_id: str
    content: str
    tags: list[str] = []
    likes: list[str] = []
    upvotes: list[str] = []
    comments: list[str] = []
    created_at: datetime


class FeedResponse(BaseModel):
    posts: list[PostResponse]


class PostActionResponse(BaseModel):
    message: str
    post: PostResponse
    points_awarded: int = 0
    badges_awarded: list[str] = []
