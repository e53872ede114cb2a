"""Per-criterion, per-group evaluation dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .rule import Comparator, Criterion


@dataclass(frozen=True)
class TimeRange:
    start_ms: int
    end_ms: int


@dataclass(frozen=True)
class GroupBucket:
    """What the backend observed for one group; ``value`` is None when absent."""

    value: float | None
    bucket_key: str | None = None
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EvaluationResult:
    criterion: Criterion
    current_value: float | None
    should_fire: bool
    should_warn: bool
    is_no_data: bool
    bucket_key: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def comparator(self) -> Comparator:
        return self.criterion.comparator

    @property
    def threshold(self) -> tuple[float, ...]:
        return self.criterion.threshold


# One mapping per criterion, keyed by group
CriterionResults = dict[str, EvaluationResult]
