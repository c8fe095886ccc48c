"""Interaction Pydantic schemas (likes, reports, history)."""

from pydantic import BaseModel, Field

from matcha.schemas.profile import LikeHistoryItem, VisitHistoryItem


class LikeResponse(BaseModel):
    """Result of liking a user."""

    success: bool = Field(default=True, description="Whether the like was recorded")
    is_match: bool = Field(default=False, description="The liked user likes the caller back")
    message: str = Field(description="User-facing message")


class ReportRequest(BaseModel):
    """Schema for reporting a fake account."""

    reason: str | None = Field(default=None, max_length=500, description="Optional reason")


class LikesHistoryResponse(BaseModel):
    likes: list[LikeHistoryItem] = Field(default_factory=list, description="Likes received, newest first")


class VisitsHistoryResponse(BaseModel):
    visits: list[VisitHistoryItem] = Field(default_factory=list, description="Visits received, newest first")
