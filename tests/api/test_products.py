"""Tests for the product catalogue endpoints."""

import pytest


class TestProductCatalogue:
    """Public catalogue reads."""

    @pytest.mark.asyncio
    async def test_list_seeded_products(self, client):
        response = await client.get("/api/products/")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 6
        assert data["total_pages"] == 1
        assert [p["name"] for p in data["products"]][:2] == ["Berry Boost", "Carrot Zing"]

    @pytest.mark.asyncio
    async def test_filter_by_category(self, client):
        response = await client.get("/api/products/", params={"category": "smoothie"})

        data = response.json()
        assert data["total"] == 2
        assert {p["id"] for p in data["products"]} == {"berry-boost", "tropic-wave"}

    @pytest.mark.asyncio
    async def test_sort_by_price(self, client):
        response = await client.get("/api/products/", params={"sort": "price"})

        products = response.json()["products"]
        assert products[0]["id"] == "carrot-zing"
        assert products[0]["price"] == "3.80"
        assert products[-1]["id"] == "tropic-wave"

    @pytest.mark.asyncio
    async def test_pagination(self, client):
        response = await client.get("/api/products/", params={"page": 2, "page_size": 4})

        data = response.json()
        assert data["total"] == 6
        assert data["total_pages"] == 2
        assert len(data["products"]) == 2

    @pytest.mark.asyncio
    async def test_categories(self, client):
        response = await client.get("/api/products/categories")

        assert response.json() == ["juice", "smoothie"]

    @pytest.mark.asyncio
    async def test_get_product(self, client):
        response = await client.get("/api/products/sunny-orange")

        assert response.status_code == 200
        assert response.json()["price"] == "3.90"

    @pytest.mark.asyncio
    async def test_unknown_product(self, client):
        response = await client.get("/api/products/mango-magic")

        assert response.status_code == 404


class TestProductAdmin:
    """Catalogue changes require the admin key."""

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, client):
        response = await client.post(
            "/api/products/",
            json={"name": "Mango Magic", "description": "Mango, Banane und Limette.", "price": "4.40"},
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_wrong_admin_key(self, client):
        response = await client.delete("/api/products/sunny-orange", headers={"X-Admin-Key": "guess"})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_create_derives_slug(self, client, admin_headers):
        response = await client.post(
            "/api/products/",
            json={
                "name": "Mango Magic",
                "description": "Mango, Banane und Limette.",
                "price": "4.40",
                "category": "smoothie",
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        product = response.json()
        assert product["id"] == "mango-magic"
        assert product["available"] is True

        categories = await client.get("/api/products/", params={"category": "smoothie"})
        assert categories.json()["total"] == 3

    @pytest.mark.asyncio
    async def test_create_duplicate(self, client, admin_headers):
        response = await client.post(
            "/api/products/",
            json={"name": "Sunny Orange", "description": "Noch ein Orangensaft.", "price": "3.90"},
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert "already exists" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_update_product(self, client, admin_headers):
        response = await client.put(
            "/api/products/green-power",
            json={"price": "4.70"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        product = response.json()
        assert product["price"] == "4.70"
        assert product["name"] == "Green Power"

    @pytest.mark.asyncio
    async def test_stock_zero_makes_unavailable(self, client, admin_headers):
        response = await client.put(
            "/api/products/berry-boost/stock",
            json={"quantity": 0},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["stock"] == 0
        assert response.json()["available"] is False

        available = await client.get("/api/products/", params={"available": True})
        assert available.json()["total"] == 5

    @pytest.mark.asyncio
    async def test_restock_makes_available(self, client, admin_headers):
        await client.put("/api/products/berry-boost/stock", json={"quantity": 0}, headers=admin_headers)
        response = await client.put(
            "/api/products/berry-boost/stock",
            json={"quantity": 12},
            headers=admin_headers,
        )

        assert response.json()["available"] is True

    @pytest.mark.asyncio
    async def test_delete_product(self, client, admin_headers):
        response = await client.delete("/api/products/citrus-splash", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["id"] == "citrus-splash"
        assert (await client.get("/api/products/citrus-splash")).status_code == 404
