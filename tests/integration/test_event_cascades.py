"""Classification, referral, recommendation, post and chat events end to end."""

from __future__ import annotations

import pytest
import pytest_asyncio

from ecoquest.db.models import ChallengeParticipant, Classification, User
from ecoquest.gamification.results import OutcomeStatus


@pytest_asyncio.fixture
async def alice(make_user):
    return await make_user("alice")


async def _complete_challenges(store, catalog, user_id, names):
    for name in names:
        definition = catalog.by_name(name)
        await store.upsert(
            ChallengeParticipant,
            {"user_id": user_id, "challenge_id": definition.id, "progress": definition.goal, "completed": True},
            ("user_id", "challenge_id"),
        )


class TestClassification:
    @pytest.mark.asyncio
    async def test_non_recyclable_awards_five_points(self, engine, store, alice):
        outcome = await engine.record_classification(alice, False, item="food", result="Non-Recyclable - Organic Waste")
        assert outcome.points_awarded == 5
        assert outcome.progress is None
        rows = await store.select_where(Classification, user_id=alice)
        assert rows[0]["weight"] == 0.0

    @pytest.mark.asyncio
    async def test_recyclable_advances_eco_warrior(self, engine, catalog, alice):
        outcome = await engine.record_classification(alice, True, item="glass", result="Recyclable - Glass")
        assert outcome.points_awarded == 20
        assert outcome.progress == pytest.approx(0.1)
        assert outcome.completed is False

    @pytest.mark.asyncio
    async def test_recycler_pro_on_tenth_and_climate_champion_on_25th(self, engine, store, alice):
        outcomes = [await engine.record_classification(alice, True) for _ in range(25)]

        assert all("Recycler Pro" not in o.badges_awarded for o in outcomes[:9])
        assert "Recycler Pro" in outcomes[9].badges_awarded
        # Ten 0.1 kg items complete the 1 kg Eco-Warrior goal on the same event.
        assert "Eco-Warrior" in outcomes[9].badges_awarded
        assert outcomes[9].points_awarded == 30

        assert all("Climate Champion" not in o.badges_awarded for o in outcomes[:24])
        assert "Climate Champion" in outcomes[24].badges_awarded

        user = await store.get(User, alice)
        assert user["points"] == 25 * 20 + 10
        assert sorted(user["badges"]) == ["Climate Champion", "Eco-Warrior", "Recycler Pro"]

    @pytest.mark.asyncio
    async def test_unknown_user(self, engine):
        outcome = await engine.record_classification("ghost", True)
        assert outcome.status is OutcomeStatus.NOT_FOUND


class TestReferrals:
    @pytest.mark.asyncio
    async def test_progress_is_rederived_not_incremented(self, engine, store, catalog, alice, make_user):
        bob = await make_user("bob")
        carol = await make_user("carol")
        await _complete_challenges(store, catalog, bob, ["Green Thumb", "Carbon Cutter", "Water Saver"])

        first = await engine.record_referral(alice, "bob@example.com")
        assert first.progress == 1

        # Referring the same friend again neither duplicates the row nor bumps progress.
        again = await engine.record_referral(alice, "bob@example.com")
        assert again.progress == 1

        pending = await engine.record_referral(alice, "carol@example.com")
        assert pending.progress == 1

        await _complete_challenges(store, catalog, carol, ["Green Thumb", "Plastic Buster", "Sustainable Chef"])
        caught_up = await engine.recompute_referral_progress(alice)
        assert caught_up.progress == 2
        assert caught_up.completed is False

    @pytest.mark.asyncio
    async def test_self_referral(self, engine, alice):
        outcome = await engine.record_referral(alice, "alice@example.com")
        assert outcome.status is OutcomeStatus.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_unknown_email(self, engine, alice):
        outcome = await engine.record_referral(alice, "nobody@example.com")
        assert outcome.status is OutcomeStatus.NOT_FOUND


class TestRecommendations:
    SUGGESTIONS = [
        {"id": 1, "action": "Bike to work", "category": "transport"},
        {"id": 2, "action": "Carry a tote", "category": "waste"},
        {"id": 3, "action": "Shorter showers", "category": "water"},
    ]

    @pytest.mark.asyncio
    async def test_lifestyle_changer_granted_once(self, engine, store, alice):
        await engine.set_recommendations(alice, self.SUGGESTIONS)

        assert (await engine.complete_recommendation(alice, 1)).badges_awarded == []
        assert (await engine.complete_recommendation(alice, "2")).badges_awarded == []
        third = await engine.complete_recommendation(alice, 3)
        assert third.badges_awarded == ["Lifestyle Changer"]

        repeat = await engine.complete_recommendation(alice, 3)
        assert repeat.badges_awarded == []

        user = await store.get(User, alice)
        assert user["badges"] == ["Lifestyle Changer"]
        assert user["recommendations"]["progress"] == {"1": True, "2": True, "3": True}

    @pytest.mark.asyncio
    async def test_unknown_recommendation(self, engine, alice):
        await engine.set_recommendations(alice, self.SUGGESTIONS)
        outcome = await engine.complete_recommendation(alice, 42)
        assert outcome.status is OutcomeStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_no_suggestions_yet(self, engine, alice):
        outcome = await engine.complete_recommendation(alice, 1)
        assert outcome.status is OutcomeStatus.NOT_FOUND


class TestPostsAndChat:
    @pytest.mark.asyncio
    async def test_eco_learner_after_three_questions(self, engine, store, alice):
        outcomes = [await engine.record_chat_exchange(alice) for _ in range(4)]
        assert [o.badges_awarded for o in outcomes] == [[], [], ["Eco Learner"], []]
        assert (await store.get(User, alice))["chat_exchanges"] == 4
