"""Profile endpoints."""

from __future__ import annotations

from httpx import AsyncClient

from dod.db.models import Season
from tests.conftest import auth_headers, run_payload, start_run


class TestProfile:
    async def test_no_profile_yet(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/profile/me", headers=auth_headers("u1"))
        assert response.status_code == 200
        assert response.json() is None

    async def test_create_and_read(self, client: AsyncClient) -> None:
        response = await client.put(
            "/api/v1/profile/me", json={"username": "Doubler_1"}, headers=auth_headers("u1"),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "u1"
        assert data["username"] == "Doubler_1"
        assert data["theme"] == "dark"

        response = await client.get("/api/v1/profile/me", headers=auth_headers("u1"))
        assert response.json()["username"] == "Doubler_1"

    async def test_update_theme(self, client: AsyncClient) -> None:
        await client.put("/api/v1/profile/me", json={"username": "lightfan"}, headers=auth_headers("u1"))
        response = await client.put(
            "/api/v1/profile/me",
            json={"username": "lightfan", "theme": "light"},
            headers=auth_headers("u1"),
        )
        assert response.status_code == 200
        assert response.json()["theme"] == "light"

    async def test_rename_keeps_identity(self, client: AsyncClient) -> None:
        await client.put("/api/v1/profile/me", json={"username": "first"}, headers=auth_headers("u1"))
        response = await client.put(
            "/api/v1/profile/me", json={"username": "second"}, headers=auth_headers("u1"),
        )
        assert response.status_code == 200
        assert response.json()["username"] == "second"

    async def test_username_taken_case_insensitive(self, client: AsyncClient) -> None:
        await client.put("/api/v1/profile/me", json={"username": "Crowned"}, headers=auth_headers("u1"))
        response = await client.put(
            "/api/v1/profile/me", json={"username": "crowned"}, headers=auth_headers("u2"),
        )
        assert response.status_code == 409
        assert "taken" in response.json()["detail"]

    async def test_invalid_username(self, client: AsyncClient) -> None:
        response = await client.put(
            "/api/v1/profile/me", json={"username": "bad name!"}, headers=auth_headers("u1"),
        )
        assert response.status_code == 400

    async def test_username_length_bounds(self, client: AsyncClient) -> None:
        for username in ("ab", "a" * 25):
            response = await client.put(
                "/api/v1/profile/me", json={"username": username}, headers=auth_headers("u1"),
            )
            assert response.status_code == 400, username
            assert "Username" in response.json()["detail"]

    async def test_invalid_theme(self, client: AsyncClient) -> None:
        response = await client.put(
            "/api/v1/profile/me",
            json={"username": "valid_name", "theme": "neon"},
            headers=auth_headers("u1"),
        )
        assert response.status_code == 400

    async def test_requires_auth(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/profile/me")
        assert response.status_code == 401

    async def test_username_on_leaderboard(self, client: AsyncClient, active_season: Season) -> None:
        await client.put("/api/v1/profile/me", json={"username": "topdog"}, headers=auth_headers("u1"))
        token = await start_run(client, "u1")
        await client.post("/api/v1/runs/submit", json=run_payload(token, 2), headers=auth_headers("u1"))

        board = (await client.get("/api/v1/leaderboard")).json()
        assert board["leaderboard"][0]["username"] == "topdog"
        assert board["crown"]["username"] == "topdog"
