"""Outcome values returned by every engine operation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class OutcomeStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"


@dataclass
class ProgressionOutcome:
    status: OutcomeStatus = OutcomeStatus.OK
    message: str = ""
    progress: float | None = None
    completed: bool | None = None
    points_awarded: int = 0
    badges_awarded: list[str] = field(default_factory=list)
    level: int | None = None
    leveled_up: bool = False

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    @classmethod
    def not_found(cls, message: str) -> ProgressionOutcome:
        return cls(status=OutcomeStatus.NOT_FOUND, message=message)

    @classmethod
    def validation_failed(cls, message: str, **kwargs: Any) -> ProgressionOutcome:
        return cls(status=OutcomeStatus.VALIDATION_FAILED, message=message, **kwargs)

    def merge(self, other: ProgressionOutcome) -> ProgressionOutcome:
        """Fold a follow-up outcome (e.g. a cascaded challenge advance) into this one."""
        badges = list(self.badges_awarded)
        badges.extend(b for b in other.badges_awarded if b not in badges)
        return ProgressionOutcome(
            status=self.status,
            message=self.message,
            progress=other.progress if other.progress is not None else self.progress,
            completed=other.completed if other.completed is not None else self.completed,
            points_awarded=self.points_awarded + other.points_awarded,
            badges_awarded=badges,
            level=other.level if other.level is not None else self.level,
            leveled_up=self.leveled_up or other.leveled_up,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data
