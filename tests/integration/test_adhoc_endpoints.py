"""Integration tests for adhoc endpoints."""
import pytest


@pytest.mark.asyncio
class TestAdhocEndpoints:
    """Tests for adhoc goal endpoints."""

    async def test_create_and_list(self, app_client, auth_headers):
        """Test creating an adhoc goal and listing its week."""
        response = await app_client.post(
            "/adhoc",
            json={"title": "Renew passport", "year": 2024, "week_number": 9},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["depth"] == -1
        assert response.json()["adhoc"]["week_number"] == 9

        response = await app_client.get(
            "/adhoc", params={"year": 2024, "week_number": 9}, headers=auth_headers
        )
        assert [goal["title"] for goal in response.json()] == ["Renew passport"]

    async def test_create_with_unknown_domain(self, app_client, auth_headers):
        """Test an unknown domain is not found."""
        response = await app_client.post(
            "/adhoc",
            json={
                "title": "A",
                "year": 2024,
                "week_number": 9,
                "domain_id": "507f1f77bcf86cd799439011",
            },
            headers=auth_headers,
        )

        assert response.status_code == 404

    async def test_move_week(self, app_client, auth_headers):
        """Test moving adhoc goals to another week."""
        await app_client.post(
            "/adhoc",
            json={"title": "A", "year": 2024, "week_number": 9},
            headers=auth_headers,
        )

        preview = await app_client.post(
            "/adhoc/moves/week",
            json={
                "from": {"year": 2024, "week_number": 9},
                "to": {"year": 2024, "week_number": 10},
                "dry_run": True,
            },
            headers=auth_headers,
        )
        assert preview.json()["can_move"] is True
        assert preview.json()["from"]["week_number"] == 9

        response = await app_client.post(
            "/adhoc/moves/week",
            json={"from": {"year": 2024, "week_number": 9}, "to": {"year": 2024, "week_number": 10}},
            headers=auth_headers,
        )
        assert response.json() == {"goals_moved": 1}

    async def test_move_day(self, app_client, auth_headers):
        """Test moving adhoc goals by day."""
        await app_client.post(
            "/adhoc",
            json={"title": "A", "year": 2024, "week_number": 9},
            headers=auth_headers,
        )

        response = await app_client.post(
            "/adhoc/moves/day",
            json={
                "from": {"year": 2024, "week_number": 9, "day_of_week": 2},
                "to": {"year": 2024, "week_number": 9, "day_of_week": 4},
            },
            headers=auth_headers,
        )

        assert response.json() == {"goals_moved": 1}

    async def test_requires_authentication(self, app_client):
        """Test adhoc endpoints require a token."""
        response = await app_client.get("/adhoc", params={"year": 2024, "week_number": 9})

        assert response.status_code == 401
