"""Review-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

REVIEW_STATUS_PATTERN = "^(pending|approved|rejected)$"


class ReviewCreate(BaseModel):
    """Schema for submitting a review."""

    model_config = ConfigDict(str_strip_whitespace=True)

    author: str = Field(..., min_length=2, max_length=50)
    rating: int = Field(..., ge=1, le=5)
    text: str = Field(..., min_length=10, max_length=500)
    product: str | None = Field(None, max_length=100)


class ReviewResponse(BaseModel):
    """Schema for public review response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    author: str
    rating: int
    text: str
    product: str | None
    status: str
    helpful: int
    created_at: datetime
    updated_at: datetime


class ReviewAdminResponse(ReviewResponse):
    """Review as seen by moderators."""

    moderator_notes: str | None = None
    previous_status: str | None = None


class ReviewListResponse(BaseModel):
    """Schema for paginated review list."""

    reviews: list[ReviewResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ReviewStatsResponse(BaseModel):
    """Schema for review statistics."""

    total: int
    pending: int
    approved: int
    rejected: int
    average_rating: float
    rating_distribution: dict[int, int]  # {5: count, 4: count, ...}
    total_approved: int


class ReviewModerationRequest(BaseModel):
    """Schema for admin review moderation."""

    status: str = Field(..., pattern=REVIEW_STATUS_PATTERN)
    moderator_notes: str | None = Field(None, max_length=500)


class ReviewBulkModerationRequest(BaseModel):
    review_ids: list[UUID] = Field(..., min_length=1, max_length=100)
    status: str = Field(..., pattern=REVIEW_STATUS_PATTERN)
    moderator_notes: str | None = Field(None, max_length=500)


class BulkModerationResult(BaseModel):
    review_id: UUID
    success: bool
    status: str | None = None
    error: str | None = None
