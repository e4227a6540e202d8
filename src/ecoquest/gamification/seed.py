"""Challenge seed data: the twelve challenges the rule table knows about."""

from __future__ import annotations

import logging

from ecoquest.db.models import Challenge
from ecoquest.store.profile_store import ProfileStore

logger = logging.getLogger(__name__)

CHALLENGE_SEED_DATA: list[dict] = [
    {
        "name": "Eco-Warrior",
        "description": "Recycle 1 kg of waste by classifying recyclable items",
        "goal": 1.0,
        "unit": "kg",
    },
    {
        "name": "Green Thumb",
        "description": "Plant and care for 5 plants",
        "goal": 5.0,
        "unit": "plants",
    },
    {
        "name": "Carbon Cutter",
        "description": "Go car-free for 7 days",
        "goal": 7.0,
        "unit": "days",
    },
    {
        "name": "Zero-Waste Week",
        "description": "Produce no landfill waste for a whole week",
        "goal": 7.0,
        "unit": "days",
    },
    {
        "name": "Water Saver",
        "description": "Save 100 liters of water",
        "goal": 100.0,
        "unit": "liters",
    },
    {
        "name": "Plastic Buster",
        "description": "Refuse 10 single-use plastic items",
        "goal": 10.0,
        "unit": "items",
    },
    {
        "name": "Plant-a-Tree Day",
        "description": "Together, plant 50 trees as a community",
        "goal": 50.0,
        "unit": "trees",
    },
    {
        "name": "Energy Guardian",
        "description": "Cut standby power for 10 days",
        "goal": 10.0,
        "unit": "days",
    },
    {
        "name": "Sustainable Chef",
        "description": "Cook 5 plant-based meals",
        "goal": 5.0,
        "unit": "meals",
    },
    {
        "name": "Eco-Influencer",
        "description": "Refer 3 friends who each complete 3 challenges",
        "goal": 3.0,
        "unit": "friends",
    },
    {
        "name": "Ethical Shopper",
        "description": "Make 5 purchases from sustainable brands",
        "goal": 5.0,
        "unit": "purchases",
    },
    {
        "name": "Planet Protector",
        "description": "Complete every other challenge",
        "goal": 1.0,
        "unit": "completion",
    },
]


async def seed_challenges(store: ProfileStore) -> int:
    """Upsert every challenge by name. Returns number of challenges seeded."""
    seeded = 0
    for challenge_data in CHALLENGE_SEED_DATA:
        await store.upsert(Challenge, challenge_data, ("name",))
        seeded += 1

    logger.info("Seeded %d challenge definitions", seeded)
    return seeded
