"""Tests for review submission and moderation."""

import uuid

import pytest

REVIEW = {
    "author": "Lukas Becker",
    "rating": 5,
    "text": "Der Tropic Wave schmeckt wie Urlaub, sehr empfehlenswert!",
    "product": "Tropic Wave",
}


async def submit(client, **overrides) -> dict:
    response = await client.post("/api/reviews/", json={**REVIEW, **overrides})
    assert response.status_code == 201
    return response.json()


async def approve(client, admin_headers, review_id: str) -> dict:
    response = await client.patch(
        f"/api/reviews/{review_id}/status",
        json={"status": "approved"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    return response.json()


class TestReviewSubmission:

    @pytest.mark.asyncio
    async def test_submitted_review_is_hidden(self, client):
        review = await submit(client)

        assert review["status"] == "pending"
        assert review["helpful"] == 0
        listing = await client.get("/api/reviews/")
        assert listing.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_short_text_rejected(self, client):
        response = await client.post("/api/reviews/", json={**REVIEW, "text": "Lecker"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, client):
        response = await client.post("/api/reviews/", json={**REVIEW, "rating": 6})

        assert response.status_code == 422


class TestReviewModeration:

    @pytest.mark.asyncio
    async def test_approve_publishes_review(self, client, admin_headers):
        review = await submit(client)

        moderated = await approve(client, admin_headers, review["id"])

        assert moderated["status"] == "approved"
        assert moderated["previous_status"] == "pending"
        listing = await client.get("/api/reviews/")
        assert [r["id"] for r in listing.json()["reviews"]] == [review["id"]]

    @pytest.mark.asyncio
    async def test_moderation_requires_admin(self, client):
        review = await submit(client)

        response = await client.patch(f"/api/reviews/{review['id']}/status", json={"status": "approved"})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_pending_queue(self, client, admin_headers):
        first = await submit(client)
        await submit(client, author="Sophie Wagner", rating=3)

        response = await client.get("/api/reviews/pending", headers=admin_headers)

        assert response.status_code == 200
        pending = response.json()
        assert len(pending) == 2
        assert first["id"] in {r["id"] for r in pending}

    @pytest.mark.asyncio
    async def test_bulk_moderation_reports_unknown_ids(self, client, admin_headers):
        review = await submit(client)
        missing = str(uuid.uuid4())

        response = await client.post(
            "/api/reviews/bulk-moderate",
            json={"review_ids": [review["id"], missing], "status": "rejected"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        results = {r["review_id"]: r for r in response.json()}
        assert results[review["id"]]["success"] is True
        assert results[review["id"]]["status"] == "rejected"
        assert results[missing]["success"] is False
        assert "not found" in results[missing]["error"]

    @pytest.mark.asyncio
    async def test_delete_requires_admin(self, client, admin_headers):
        review = await submit(client)

        assert (await client.delete(f"/api/reviews/{review['id']}")).status_code == 403

        response = await client.delete(f"/api/reviews/{review['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["id"] == review["id"]


class TestPublicReviews:

    @pytest.mark.asyncio
    async def test_filters_and_stats(self, client, admin_headers):
        for rating, author in ((5, "Anna Klein"), (4, "Ben Wolf"), (2, "Carla Roth")):
            review = await submit(client, rating=rating, author=author)
            await approve(client, admin_headers, review["id"])
        await submit(client, author="Noch Offen")

        top = await client.get("/api/reviews/", params={"min_rating": 4})
        assert top.json()["total"] == 2

        stats = (await client.get("/api/reviews/stats")).json()
        assert stats["total"] == 4
        assert stats["approved"] == 3
        assert stats["pending"] == 1
        assert stats["average_rating"] == 3.7
        assert stats["rating_distribution"]["5"] == 1

    @pytest.mark.asyncio
    async def test_helpful_vote(self, client, admin_headers):
        review = await submit(client)
        await approve(client, admin_headers, review["id"])

        await client.post(f"/api/reviews/{review['id']}/helpful")
        response = await client.post(f"/api/reviews/{review['id']}/helpful")

        assert response.json()["helpful"] == 2

    @pytest.mark.asyncio
    async def test_search_only_approved(self, client, admin_headers):
        published = await submit(client)
        await approve(client, admin_headers, published["id"])
        await submit(client, text="Der Carrot Zing war leider etwas zu scharf.", product="Carrot Zing")

        response = await client.get("/api/reviews/search", params={"q": "Zing"})
        assert response.json() == []

        response = await client.get("/api/reviews/search", params={"q": "urlaub"})
        assert [r["id"] for r in response.json()] == [published["id"]]

    @pytest.mark.asyncio
    async def test_search_query_too_short(self, client):
        response = await client.get("/api/reviews/search", params={"q": "a"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_review(self, client):
        response = await client.post(f"/api/reviews/{uuid.uuid4()}/helpful")

        assert response.status_code == 404
