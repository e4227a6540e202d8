"""Fixed badges and the thresholds that grant them.

Challenge badges are named after their challenge and are not listed here.
"""

from __future__ import annotations

from ecoquest.gamification.catalog import CHALLENGE_RULES

TREE_PLANTER = "Tree Planter"
LIFESTYLE_CHANGER = "Lifestyle Changer"
RECYCLER_PRO = "Recycler Pro"
CLIMATE_CHAMPION = "Climate Champion"
COMMUNITY_STAR = "Community Star"
ECO_LEARNER = "Eco Learner"

COMPLETION_POINTS = 10
RECYCLABLE_POINTS = 20
NON_RECYCLABLE_POINTS = 5

ECO_WARRIOR_ITEM_WEIGHT = 0.1
CO2_KG_PER_RECYCLABLE = 0.2

RECYCLER_PRO_ITEMS = 10
CLIMATE_CHAMPION_CO2_KG = 5.0
LIFESTYLE_CHANGER_RECOMMENDATIONS = 3
COMMUNITY_STAR_POSTS = 5
ECO_LEARNER_EXCHANGES = 3
INFLUENCER_FRIEND_COMPLETIONS = 3

BADGE_SEED_DATA: list[dict] = [
    {
        "name": RECYCLER_PRO,
        "description": f"Classify {RECYCLER_PRO_ITEMS} recyclable items",
        "trigger": "classification",
    },
    {
        "name": CLIMATE_CHAMPION,
        "description": f"Save {CLIMATE_CHAMPION_CO2_KG:g} kg of CO2 by recycling",
        "trigger": "classification",
    },
    {
        "name": TREE_PLANTER,
        "description": "Help the community reach the Plant-a-Tree Day goal",
        "trigger": "community",
    },
    {
        "name": LIFESTYLE_CHANGER,
        "description": f"Complete {LIFESTYLE_CHANGER_RECOMMENDATIONS} lifestyle recommendations",
        "trigger": "recommendation",
    },
    {
        "name": COMMUNITY_STAR,
        "description": f"Share {COMMUNITY_STAR_POSTS} posts with the community",
        "trigger": "post",
    },
    {
        "name": ECO_LEARNER,
        "description": f"Ask the eco assistant {ECO_LEARNER_EXCHANGES} questions",
        "trigger": "chat",
    },
]


def all_badges() -> list[dict]:
    """Every badge the engine can grant: fixed badges plus one per known challenge."""
    challenge_badges = [
        {
            "name": name,
            "description": f"Complete the {name} challenge",
            "trigger": "challenge",
            "level": rule.level,
        }
        for name, rule in CHALLENGE_RULES.items()
    ]
    fixed = [{**badge, "level": None} for badge in BADGE_SEED_DATA]
    return challenge_badges + fixed
