"""HTTP endpoints for challenges, classification, referrals, recommendations and views."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from ecoquest.config import get_settings
from ecoquest.dependencies import get_progression_engine
from ecoquest.errors import StoreUnavailable


def _headers(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


async def _signup(client: AsyncClient, user_id: str) -> None:
    resp = await client.post(
        "/api/v1/users",
        json={"email": f"{user_id}@example.com", "full_name": user_id.title()},
        headers=_headers(user_id),
    )
    assert resp.status_code == 200


async def _challenge_id(client: AsyncClient, user_id: str, name: str) -> int:
    resp = await client.get("/api/v1/challenges", headers=_headers(user_id))
    return next(c["id"] for c in resp.json()["challenges"] if c["name"] == name)


class TestChallengesApi:
    @pytest.mark.asyncio
    async def test_requires_user_header(self, client: AsyncClient):
        resp = await client.get("/api/v1/challenges")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_board_lists_seeded_challenges(self, client: AsyncClient):
        await _signup(client, "alice")
        resp = await client.get("/api/v1/challenges", headers=_headers("alice"))
        assert resp.status_code == 200
        challenges = resp.json()["challenges"]
        assert len(challenges) == 12
        water = next(c for c in challenges if c["name"] == "Water Saver")
        assert water["manual_increment"] == 10
        assert water["joined"] is False
        tree_day = next(c for c in challenges if c["name"] == "Plant-a-Tree Day")
        assert tree_day["kind"] == "community"
        assert tree_day["community_progress"] == 0

    @pytest.mark.asyncio
    async def test_join_and_button_steps(self, client: AsyncClient):
        await _signup(client, "alice")
        water_id = await _challenge_id(client, "alice", "Water Saver")

        resp = await client.post(f"/api/v1/challenges/{water_id}/join", headers=_headers("alice"))
        assert resp.status_code == 200
        assert resp.json()["progress"] == 0

        resp = await client.post(f"/api/v1/challenges/{water_id}/progress", headers=_headers("alice"))
        assert resp.status_code == 200
        assert resp.json()["progress"] == 10

        # A larger body value is capped at the button step.
        resp = await client.post(
            f"/api/v1/challenges/{water_id}/progress",
            json={"increment": 500},
            headers=_headers("alice"),
        )
        assert resp.json()["progress"] == 20
        assert resp.json()["completed"] is False

        resp = await client.post(
            f"/api/v1/challenges/{water_id}/progress",
            json={"increment": 5},
            headers=_headers("alice"),
        )
        assert resp.json()["progress"] == 25

    @pytest.mark.asyncio
    async def test_completing_by_clicks(self, client: AsyncClient):
        await _signup(client, "alice")
        green_id = await _challenge_id(client, "alice", "Green Thumb")
        for _ in range(4):
            await client.post(f"/api/v1/challenges/{green_id}/progress", headers=_headers("alice"))
        resp = await client.post(f"/api/v1/challenges/{green_id}/progress", headers=_headers("alice"))
        body = resp.json()
        assert body["progress"] == 5
        assert body["completed"] is True
        assert body["badges_awarded"] == ["Green Thumb"]
        assert body["level"] == 2

    @pytest.mark.asyncio
    async def test_derived_challenge_rejects_manual_increment(self, client: AsyncClient):
        await _signup(client, "alice")
        influencer_id = await _challenge_id(client, "alice", "Eco-Influencer")

        resp = await client.post(
            f"/api/v1/challenges/{influencer_id}/progress",
            json={"increment": 100},
            headers=_headers("alice"),
        )
        assert resp.status_code == 409

        resp = await client.post(f"/api/v1/challenges/{influencer_id}/progress", headers=_headers("alice"))
        assert resp.status_code == 200
        assert resp.json()["completed"] is False

        board = (await client.get("/api/v1/challenges", headers=_headers("alice"))).json()["challenges"]
        influencer = next(c for c in board if c["id"] == influencer_id)
        assert influencer["completed"] is False
        assert influencer["progress"] == 0
        me = (await client.get("/api/v1/users/me", headers=_headers("alice"))).json()
        assert "Eco-Influencer" not in me["badges"]
        assert me["level"] == 1

    @pytest.mark.asyncio
    async def test_unknown_challenge_is_404(self, client: AsyncClient):
        await _signup(client, "alice")
        resp = await client.post("/api/v1/challenges/9999/progress", headers=_headers("alice"))
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_negative_increment_is_422(self, client: AsyncClient):
        await _signup(client, "alice")
        green_id = await _challenge_id(client, "alice", "Green Thumb")
        resp = await client.post(
            f"/api/v1/challenges/{green_id}/progress",
            json={"increment": -1},
            headers=_headers("alice"),
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_planet_protector_rollback_is_409(self, client: AsyncClient):
        await _signup(client, "alice")
        protector_id = await _challenge_id(client, "alice", "Planet Protector")
        resp = await client.post(f"/api/v1/challenges/{protector_id}/progress", headers=_headers("alice"))
        assert resp.status_code == 409
        assert "every other challenge" in resp.json()["detail"]


class TestClassificationApi:
    @pytest.mark.asyncio
    async def test_classify_recyclable(self, client: AsyncClient):
        await _signup(client, "alice")
        resp = await client.post(
            "/api/v1/classifications",
            json={"labels": [{"description": "Plastic Bottle"}], "image_url": "https://img/1.jpg"},
            headers=_headers("alice"),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["result"] == "Recyclable - Plastic"
        assert body["points_awarded"] == 20
        assert body["progress"] == pytest.approx(0.1)

    @pytest.mark.asyncio
    async def test_malformed_labels_are_503(self, client: AsyncClient):
        await _signup(client, "alice")
        resp = await client.post(
            "/api/v1/classifications",
            json={"labels": [42]},
            headers=_headers("alice"),
        )
        assert resp.status_code == 503
        assert resp.json()["detail"] == "Image recognition returned an unexpected response."


class TestReferralAndRecommendationApi:
    @pytest.mark.asyncio
    async def test_self_referral_is_409(self, client: AsyncClient):
        await _signup(client, "alice")
        resp = await client.post(
            "/api/v1/referrals", json={"email": "alice@example.com"}, headers=_headers("alice")
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_recommendation_flow(self, client: AsyncClient):
        await _signup(client, "alice")
        suggestions = [
            {"id": 1, "action": "Bike to work", "category": "transport"},
            {"id": 2, "action": "Carry a tote", "category": "waste"},
            {"id": 3, "action": "Shorter showers", "category": "water"},
        ]
        resp = await client.put(
            "/api/v1/recommendations", json={"suggestions": suggestions}, headers=_headers("alice")
        )
        assert resp.status_code == 200

        for rec_id in ("1", "2"):
            resp = await client.post(f"/api/v1/recommendations/{rec_id}/complete", headers=_headers("alice"))
            assert resp.json()["badges_awarded"] == []
        resp = await client.post("/api/v1/recommendations/3/complete", headers=_headers("alice"))
        assert resp.json()["badges_awarded"] == ["Lifestyle Changer"]

        resp = await client.post("/api/v1/recommendations/99/complete", headers=_headers("alice"))
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_chatbot_reply_is_validated(self, client: AsyncClient):
        await _signup(client, "alice")
        reply = '```json\n[{"id": 7, "action": "Line-dry laundry", "category": "energy"}]\n```'
        resp = await client.put(
            "/api/v1/recommendations", json={"chatbot_reply": reply}, headers=_headers("alice")
        )
        assert resp.status_code == 200
        me = (await client.get("/api/v1/users/me", headers=_headers("alice"))).json()
        assert [s["id"] for s in me["recommendations"]["suggestions"]] == ["7"]

    @pytest.mark.asyncio
    async def test_garbled_chatbot_reply_uses_defaults(self, client: AsyncClient):
        await _signup(client, "alice")
        resp = await client.put(
            "/api/v1/recommendations",
            json={"chatbot_reply": "Sorry, I can't help with that."},
            headers=_headers("alice"),
        )
        assert resp.status_code == 200
        me = (await client.get("/api/v1/users/me", headers=_headers("alice"))).json()
        assert [s["id"] for s in me["recommendations"]["suggestions"]] == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_recommendations_need_one_source(self, client: AsyncClient):
        await _signup(client, "alice")
        resp = await client.put("/api/v1/recommendations", json={}, headers=_headers("alice"))
        assert resp.status_code == 422


class TestViewsApi:
    @pytest.mark.asyncio
    async def test_progress_summary(self, client: AsyncClient):
        await _signup(client, "alice")
        await client.post("/api/v1/classifications", json={"labels": ["glass jar"]}, headers=_headers("alice"))

        resp = await client.get("/api/v1/me/progress", headers=_headers("alice"))
        assert resp.status_code == 200
        body = resp.json()
        assert body["points"] == 20
        assert body["points_to_next_level"] == 80
        assert body["recyclable_items"] == 1
        assert body["co2_saved_kg"] == pytest.approx(0.2)

    @pytest.mark.asyncio
    async def test_leaderboard_orders_by_points(self, client: AsyncClient):
        for user_id in ("alice", "bob"):
            await _signup(client, user_id)
        await client.post("/api/v1/chat/exchanges", headers=_headers("alice"))
        await client.post("/api/v1/classifications", json={"labels": ["tin can"]}, headers=_headers("bob"))

        resp = await client.get("/api/v1/leaderboard")
        entries = resp.json()["entries"]
        assert entries[0]["user_id"] == "bob"
        assert entries[0]["rank"] == 1

    @pytest.mark.asyncio
    async def test_badges(self, client: AsyncClient):
        resp = await client.get("/api/v1/badges")
        names = {b["name"] for b in resp.json()["badges"]}
        assert "Tree Planter" in names
        assert "Planet Protector" in names


class TestFailureMapping:
    @pytest.mark.asyncio
    async def test_store_unavailable_is_503(self, app, client: AsyncClient):
        engine = MagicMock()
        engine.record_manual_progress = AsyncMock(side_effect=StoreUnavailable("connection refused"))
        app.dependency_overrides[get_progression_engine] = lambda: engine

        resp = await client.post("/api/v1/challenges/1/progress", headers=_headers("alice"))
        assert resp.status_code == 503
        assert resp.json()["detail"] == StoreUnavailable.default_message

    @pytest.mark.asyncio
    async def test_timeout_is_504(self, app, client: AsyncClient, monkeypatch):
        async def _slow(*_args, **_kwargs):
            await asyncio.sleep(1)

        engine = MagicMock()
        engine.record_chat_exchange = _slow
        app.dependency_overrides[get_progression_engine] = lambda: engine
        monkeypatch.setenv("ECOQUEST_REQUEST_TIMEOUT_SECONDS", "0.05")
        get_settings.cache_clear()
        try:
            resp = await client.post("/api/v1/chat/exchanges", headers=_headers("alice"))
        finally:
            get_settings.cache_clear()
        assert resp.status_code == 504
