"""Rule parameter dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Comparator(str, Enum):
    GT = ">"
    GT_OR_EQ = ">="
    LT = "<"
    LT_OR_EQ = "<="
    BETWEEN = "between"
    NOT_BETWEEN = "notBetween"

    @property
    def arity(self) -> int:
        return 2 if self in (Comparator.BETWEEN, Comparator.NOT_BETWEEN) else 1


class Aggregation(str, Enum):
    AVG = "avg"
    MAX = "max"
    MIN = "min"
    SUM = "sum"
    CARDINALITY = "cardinality"
    RATE = "rate"
    COUNT = "count"
    P95 = "p95"
    P99 = "p99"


class TimeUnit(str, Enum):
    SECONDS = "s"
    MINUTES = "m"
    HOURS = "h"
    DAYS = "d"

    @property
    def seconds(self) -> int:
        return {"s": 1, "m": 60, "h": 3600, "d": 86400}[self.value]


@dataclass(frozen=True)
class Criterion:
    aggregation: Aggregation
    comparator: Comparator
    threshold: tuple[float, ...]
    time_size: int
    time_unit: TimeUnit
    metric: str | None = None
    warning_comparator: Comparator | None = None
    warning_threshold: tuple[float, ...] | None = None

    @property
    def is_count(self) -> bool:
        return self.aggregation is Aggregation.COUNT

    @property
    def metric_label(self) -> str:
        if self.is_count or not self.metric:
            return "count"
        return self.metric

    @property
    def has_warning(self) -> bool:
        return self.warning_comparator is not None and bool(self.warning_threshold)

    @property
    def window_s(self) -> int:
        return self.time_size * self.time_unit.seconds


@dataclass(frozen=True)
class RuleParams:
    """Decoded parameters of one metric threshold rule."""

    criteria: tuple[Criterion, ...]
    group_by: str | tuple[str, ...] | None = None
    filter_query: str | None = None
    filter_query_text: str | None = None
    alert_on_no_data: bool = False
    alert_on_group_disappear: bool = True
    source_id: str = "default"
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def group_by_fields(self) -> list[str]:
        if self.group_by is None:
            return []
        if isinstance(self.group_by, str):
            return [self.group_by] if self.group_by else []
        return [g for g in self.group_by if g]
