"""Review submission and moderation service."""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sunsano.config import settings
from sunsano.core.exceptions import NotFoundError
from sunsano.models.review import Review
from sunsano.schemas.review import ReviewCreate

logger = logging.getLogger(__name__)

REVIEW_STATUSES = ("pending", "approved", "rejected")

SAMPLE_REVIEWS = [
    {
        "author": "Mia Schmidt",
        "rating": 5,
        "text": "Frischer geht's nicht! Mein täglicher Green Power ist einfach perfekt. "
                "Tolle Qualität und super Service.",
        "product": "Green Power",
        "helpful": 12,
    },
    {
        "author": "Jonas Weber",
        "rating": 5,
        "text": "Schnell, lecker, nachhaltig. Genau mein Ding. Die Säfte sind immer frisch "
                "und die Preise fair.",
        "product": "Sunny Orange",
        "helpful": 8,
    },
    {
        "author": "Lea Müller",
        "rating": 4,
        "text": "Berry Boost ist mein Favorit, nicht zu süß, superfruchtig! "
                "Würde gerne mehr Sorten haben.",
        "product": "Berry Boost",
        "helpful": 15,
    },
]

SORT_ORDERS = {
    "newest": Review.created_at.desc(),
    "oldest": Review.created_at.asc(),
    "rating": Review.rating.desc(),
    "helpful": Review.helpful.desc(),
}


class ReviewService:
    """Service for customer reviews."""

    async def create_review(self, db: AsyncSession, data: ReviewCreate) -> Review:
        """Submit a review; it stays hidden until approved."""
        review = Review(**data.model_dump(), status="pending", helpful=0)
        db.add(review)
        await db.flush()

        logger.info(f"Review created: {review.id} by {review.author} ({review.rating}/5)")
        return review

    async def list_reviews(
        self,
        db: AsyncSession,
        min_rating: int | None = None,
        product: str | None = None,
        sort: str = "newest",
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[Review], int]:
        """List approved reviews with filters and pagination."""
        query = select(Review).where(Review.status == "approved")
        if min_rating:
            query = query.where(Review.rating >= min_rating)
        if product:
            query = query.where(Review.product.ilike(f"%{product}%"))

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        query = query.order_by(SORT_ORDERS.get(sort, SORT_ORDERS["newest"]), Review.created_at.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def get_latest(self, db: AsyncSession, limit: int = 5) -> list[Review]:
        result = await db.execute(
            select(Review)
            .where(Review.status == "approved")
            .order_by(Review.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_review(self, db: AsyncSession, review_id: UUID) -> Review:
        review = await db.get(Review, review_id)
        if not review:
            raise NotFoundError("Review", str(review_id))
        return review

    async def get_pending(self, db: AsyncSession) -> list[Review]:
        """Reviews awaiting moderation, oldest first."""
        result = await db.execute(
            select(Review).where(Review.status == "pending").order_by(Review.created_at.asc())
        )
        return list(result.scalars().all())

    async def search(self, db: AsyncSession, query: str, approved_only: bool = True) -> list[Review]:
        pattern = f"%{query}%"
        stmt = select(Review).where(
            or_(
                Review.author.ilike(pattern),
                Review.text.ilike(pattern),
                Review.product.ilike(pattern),
            )
        )
        if approved_only:
            stmt = stmt.where(Review.status == "approved")
        result = await db.execute(stmt.order_by(Review.created_at.desc()))
        return list(result.scalars().all())

    async def update_status(
        self,
        db: AsyncSession,
        review_id: UUID,
        status: str,
        moderator_notes: str | None = None,
    ) -> tuple[Review, str]:
        """Moderate a review.

        Returns:
            tuple: (review, previous status)
        """
        review = await self.get_review(db, review_id)
        previous = review.status
        review.status = status
        if moderator_notes:
            review.moderator_notes = moderator_notes
        await db.flush()

        logger.info(f"Review {review_id} status: {previous} -> {status}")
        return review, previous

    async def bulk_moderate(
        self,
        db: AsyncSession,
        review_ids: list[UUID],
        status: str,
        moderator_notes: str | None = None,
    ) -> list[dict]:
        results = []
        for review_id in review_ids:
            try:
                review, _ = await self.update_status(db, review_id, status, moderator_notes)
            except NotFoundError as e:
                results.append({"review_id": review_id, "success": False, "error": e.detail})
                continue
            results.append({"review_id": review_id, "success": True, "status": review.status})

        successful = sum(1 for r in results if r["success"])
        logger.info(f"Bulk moderation to '{status}': {successful}/{len(review_ids)} succeeded")
        return results

    async def mark_helpful(self, db: AsyncSession, review_id: UUID) -> Review:
        review = await self.get_review(db, review_id)
        review.helpful = (review.helpful or 0) + 1
        await db.flush()
        return review

    async def delete_review(self, db: AsyncSession, review_id: UUID) -> Review:
        review = await self.get_review(db, review_id)
        await db.delete(review)
        await db.flush()

        logger.info(f"Review deleted: {review_id}")
        return review

    async def get_stats(self, db: AsyncSession) -> dict:
        status_counts = dict.fromkeys(REVIEW_STATUSES, 0)
        result = await db.execute(select(Review.status, func.count()).group_by(Review.status))
        for status, count in result.all():
            status_counts[status] = count

        distribution = dict.fromkeys(range(5, 0, -1), 0)
        result = await db.execute(
            select(Review.rating, func.count())
            .where(Review.status == "approved")
            .group_by(Review.rating)
        )
        for rating, count in result.all():
            distribution[rating] = count

        total_approved = sum(distribution.values())
        rating_sum = sum(rating * count for rating, count in distribution.items())
        average = round(rating_sum / total_approved, 1) if total_approved else 0.0

        return {
            "total": sum(status_counts.values()),
            **status_counts,
            "average_rating": average,
            "rating_distribution": distribution,
            "total_approved": total_approved,
        }

    async def seed_reviews(self, db: AsyncSession) -> int:
        """Insert the approved sample reviews when no reviews exist yet."""
        result = await db.execute(select(func.count(Review.id)))
        if result.scalar():
            return 0
        for data in SAMPLE_REVIEWS:
            db.add(Review(**data, status="approved"))
        await db.flush()

        logger.info(f"Seeded {len(SAMPLE_REVIEWS)} reviews")
        return len(SAMPLE_REVIEWS)

    async def cleanup_rejected(self, db: AsyncSession, older_than_days: int | None = None) -> int:
        """Delete rejected reviews not touched for the retention window."""
        days = older_than_days if older_than_days is not None else settings.rejected_review_retention_days
        cutoff = datetime.now(UTC) - timedelta(days=days)
        result = await db.execute(
            select(Review).where(Review.status == "rejected", Review.updated_at < cutoff)
        )
        reviews = result.scalars().all()
        for review in reviews:
            await db.delete(review)
        await db.flush()

        if reviews:
            logger.info(f"Cleaned up {len(reviews)} rejected reviews")
        return len(reviews)


review_service = ReviewService()
