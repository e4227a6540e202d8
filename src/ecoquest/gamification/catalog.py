"""Challenge catalog: stored challenge rows joined with their typed rules.

The rule table is keyed by challenge name because names are what the
seed data and the badge set share. Everything downstream of the catalog
looks challenges up by id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any

from ecoquest.db.models import Challenge

if TYPE_CHECKING:
    from ecoquest.store.profile_store import ProfileStore

logger = logging.getLogger(__name__)

ECO_WARRIOR = "Eco-Warrior"
ECO_INFLUENCER = "Eco-Influencer"
PLANT_A_TREE_DAY = "Plant-a-Tree Day"
PLANET_PROTECTOR = "Planet Protector"


class ChallengeKind(str, Enum):
    STANDARD = "standard"
    # Progress comes from other events, never from the "add progress" button.
    DERIVED = "derived"
    # Completion is judged on the sum over all participants.
    COMMUNITY = "community"
    # Needs every other challenge completed first.
    META = "meta"


@dataclass(frozen=True)
class ChallengeRule:
    level: int | None = None
    manual_increment: float = 1
    kind: ChallengeKind = ChallengeKind.STANDARD


CHALLENGE_RULES: dict[str, ChallengeRule] = {
    ECO_WARRIOR: ChallengeRule(level=1, manual_increment=0, kind=ChallengeKind.DERIVED),
    "Green Thumb": ChallengeRule(level=2),
    "Carbon Cutter": ChallengeRule(level=3),
    "Zero-Waste Week": ChallengeRule(level=3),
    "Water Saver": ChallengeRule(level=4, manual_increment=10),
    "Plastic Buster": ChallengeRule(level=5),
    PLANT_A_TREE_DAY: ChallengeRule(level=5, kind=ChallengeKind.COMMUNITY),
    "Energy Guardian": ChallengeRule(level=6),
    "Sustainable Chef": ChallengeRule(level=7),
    ECO_INFLUENCER: ChallengeRule(level=8, manual_increment=0, kind=ChallengeKind.DERIVED),
    "Ethical Shopper": ChallengeRule(level=9),
    PLANET_PROTECTOR: ChallengeRule(level=10, kind=ChallengeKind.META),
}

DEFAULT_RULE = ChallengeRule()


def rule_for(name: str) -> ChallengeRule:
    return CHALLENGE_RULES.get(name, DEFAULT_RULE)


@dataclass(frozen=True)
class ChallengeDefinition:
    id: int
    name: str
    goal: float
    unit: str
    description: str = ""
    start_date: date | None = None
    end_date: date | None = None
    rule: ChallengeRule = DEFAULT_RULE

    @property
    def badge(self) -> str:
        """Completing a challenge awards a badge with the challenge's own name."""
        return self.name

    @property
    def target_level(self) -> int | None:
        return self.rule.level

    @property
    def manual_increment(self) -> float:
        return self.rule.manual_increment

    @property
    def is_community(self) -> bool:
        return self.rule.kind is ChallengeKind.COMMUNITY

    @property
    def is_meta(self) -> bool:
        return self.rule.kind is ChallengeKind.META

    @property
    def is_derived(self) -> bool:
        return self.rule.kind is ChallengeKind.DERIVED

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ChallengeDefinition:
        return cls(
            id=record["id"],
            name=record["name"],
            goal=float(record["goal"]),
            unit=record["unit"],
            description=record.get("description") or "",
            start_date=record.get("start_date"),
            end_date=record.get("end_date"),
            rule=rule_for(record["name"]),
        )


class ChallengeCatalog:
    """In-memory view of every challenge, indexed by id and by name."""

    def __init__(self, challenges: list[ChallengeDefinition]) -> None:
        self._by_id = {c.id: c for c in challenges}
        self._by_name = {c.name: c for c in challenges}

    @classmethod
    async def load(cls, store: ProfileStore) -> ChallengeCatalog:
        records = await store.select_where(Challenge, order_by="id")
        catalog = cls([ChallengeDefinition.from_record(r) for r in records])
        logger.info("Loaded %d challenges into the catalog", len(catalog))
        return catalog

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(self._by_id.values())

    def get(self, challenge_id: int) -> ChallengeDefinition | None:
        return self._by_id.get(challenge_id)

    def by_name(self, name: str) -> ChallengeDefinition | None:
        return self._by_name.get(name)

    def sibling_ids(self, challenge_id: int) -> set[int]:
        """Ids of every challenge except ``challenge_id``."""
        return {cid for cid in self._by_id if cid != challenge_id}


_catalog: ChallengeCatalog | None = None


async def get_catalog(store: ProfileStore, *, reload: bool = False) -> ChallengeCatalog:
    """Return the process-wide catalog, loading it on first use."""
    global _catalog  # noqa: PLW0603
    if _catalog is None or reload:
        _catalog = await ChallengeCatalog.load(store)
    return _catalog


def reset_catalog() -> None:
    global _catalog  # noqa: PLW0603
    _catalog = None
