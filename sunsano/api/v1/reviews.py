"""Review endpoints."""

import math
from uuid import UUID

from fastapi import APIRouter, Query, status

from sunsano.api.deps import AdminAccess, DbSession
from sunsano.models.review import Review
from sunsano.schemas.review import (
    BulkModerationResult,
    ReviewAdminResponse,
    ReviewBulkModerationRequest,
    ReviewCreate,
    ReviewListResponse,
    ReviewModerationRequest,
    ReviewResponse,
    ReviewStatsResponse,
)
from sunsano.services.review_service import review_service

router = APIRouter()


@router.get("/", response_model=ReviewListResponse)
async def list_reviews(
    db: DbSession,
    min_rating: int | None = Query(default=None, ge=1, le=5),
    product: str | None = Query(default=None, max_length=100),
    sort: str = Query(default="newest", pattern="^(newest|oldest|rating|helpful)$"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=50),
) -> ReviewListResponse:
    """List approved reviews."""
    reviews, total = await review_service.list_reviews(
        db, min_rating=min_rating, product=product, sort=sort, page=page, page_size=page_size
    )
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


@router.get("/latest", response_model=list[ReviewResponse])
async def latest_reviews(
    db: DbSession,
    limit: int = Query(default=5, ge=1, le=20),
) -> list[Review]:
    return await review_service.get_latest(db, limit)


@router.get("/stats", response_model=ReviewStatsResponse)
async def review_stats(db: DbSession) -> dict:
    return await review_service.get_stats(db)


@router.get("/search", response_model=list[ReviewResponse])
async def search_reviews(
    db: DbSession,
    q: str = Query(..., min_length=2, max_length=100),
) -> list[Review]:
    """Search approved reviews by author, text or product."""
    return await review_service.search(db, q)


@router.get("/pending", response_model=list[ReviewAdminResponse], dependencies=[AdminAccess])
async def pending_reviews(db: DbSession) -> list[Review]:
    """Reviews awaiting moderation (admin only)."""
    return await review_service.get_pending(db)


@router.post("/", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(data: ReviewCreate, db: DbSession) -> Review:
    """Submit a review. It is published after moderation."""
    return await review_service.create_review(db, data)


@router.post("/bulk-moderate", response_model=list[BulkModerationResult], dependencies=[AdminAccess])
async def bulk_moderate(data: ReviewBulkModerationRequest, db: DbSession) -> list[dict]:
    return await review_service.bulk_moderate(db, data.review_ids, data.status, data.moderator_notes)


@router.post("/{review_id}/helpful", response_model=ReviewResponse)
async def mark_helpful(review_id: UUID, db: DbSession) -> Review:
    return await review_service.mark_helpful(db, review_id)


@router.patch("/{review_id}/status", response_model=ReviewAdminResponse, dependencies=[AdminAccess])
async def moderate_review(
    review_id: UUID,
    data: ReviewModerationRequest,
    db: DbSession,
) -> ReviewAdminResponse:
    """Approve or reject a review (admin only)."""
    review, previous = await review_service.update_status(db, review_id, data.status, data.moderator_notes)
    response = ReviewAdminResponse.model_validate(review)
    response.previous_status = previous
    return response


@router.delete("/{review_id}", dependencies=[AdminAccess])
async def delete_review(review_id: UUID, db: DbSession) -> dict:
    await review_service.delete_review(db, review_id)
    return {"message": "Review deleted", "id": str(review_id)}
