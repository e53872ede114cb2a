"""Shared test fixtures and dummy classes."""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from metric_threshold.models.alerts import AlertDocument, Notification
from metric_threshold.models.results import GroupBucket, TimeRange
from metric_threshold.models.rule import Aggregation, Comparator, Criterion, TimeUnit
from metric_threshold.models.state import MissingGroupsRecord


def make_criterion(
    comparator: str = ">",
    threshold: Sequence[float] = (5.0,),
    *,
    metric: str | None = "system.load.1",
    aggregation: Aggregation = Aggregation.AVG,
    warning_comparator: str | None = None,
    warning_threshold: Sequence[float] | None = None,
    time_size: int = 5,
    time_unit: TimeUnit = TimeUnit.MINUTES,
) -> Criterion:
    return Criterion(
        aggregation=aggregation,
        comparator=Comparator(comparator),
        threshold=tuple(threshold),
        time_size=time_size,
        time_unit=time_unit,
        metric=metric,
        warning_comparator=Comparator(warning_comparator) if warning_comparator else None,
        warning_threshold=tuple(warning_threshold) if warning_threshold else None,
    )


class DummyBackend:
    """Evaluation backend answering from a list of per-criterion group values."""

    def __init__(self, per_criterion: list[dict[str, Any]]) -> None:
        self.per_criterion = per_criterion
        self.calls: list[dict[str, Any]] = []

    async def fetch_groups(
        self,
        criterion: Criterion,
        group_by: Sequence[str],
        time_range: TimeRange,
        composite_size: int,
        missing_groups: Sequence[MissingGroupsRecord],
        *,
        filter_query: str | None = None,
        last_run_timestamp: int | None = None,
    ) -> dict[str, GroupBucket]:
        index = len(self.calls)
        self.calls.append(
            {
                "criterion": criterion,
                "group_by": list(group_by),
                "time_range": time_range,
                "composite_size": composite_size,
                "missing_groups": list(missing_groups),
                "last_run_timestamp": last_run_timestamp,
            }
        )
        out: dict[str, GroupBucket] = {}
        for group, value in self.per_criterion[index].items():
            out[group] = value if isinstance(value, GroupBucket) else GroupBucket(value=value)
        return out


class FailingBackend:
    async def fetch_groups(self, *args: Any, **kwargs: Any) -> dict[str, GroupBucket]:
        raise ConnectionError("backend down")


class SlowAndFailingBackend:
    """Fails criteria whose metric is "broken" at once, delays the rest."""

    def __init__(self, delay: float = 0.2) -> None:
        self.delay = delay
        self.finished: list[str | None] = []
        self.cancelled: list[str | None] = []

    async def fetch_groups(
        self, criterion: Criterion, *args: Any, **kwargs: Any
    ) -> dict[str, GroupBucket]:
        if criterion.metric == "broken":
            raise ConnectionError("backend down")
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled.append(criterion.metric)
            raise
        self.finished.append(criterion.metric)
        return {"*": GroupBucket(value=1)}


class DummyServices:
    """Records what the engine hands to the host."""

    def __init__(
        self,
        recovered: list[str] | None = None,
        documents: dict[str, AlertDocument] | None = None,
        lookup_error: Exception | None = None,
    ) -> None:
        self.scheduled: list[Notification] = []
        self.recovered = recovered or []
        self.documents = documents or {}
        self.lookup_error = lookup_error
        self.recovered_contexts: dict[str, dict[str, Any]] = {}

    def schedule(self, notification: Notification) -> None:
        self.scheduled.append(notification)

    def recovered_alert_ids(self) -> list[str]:
        return list(self.recovered)

    async def lookup_alert(self, alert_id: str) -> AlertDocument | None:
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.documents.get(alert_id)

    def set_recovered_context(self, alert_id: str, context: dict[str, Any]) -> None:
        self.recovered_contexts[alert_id] = context
