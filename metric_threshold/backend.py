"""Evaluation backend contract and its HTTP client."""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

import httpx

from .conditions import evaluate_condition
from .errors import BackendError
from .groups import UNGROUPED_KEY, build_group_key
from .models.results import CriterionResults, GroupBucket, TimeRange
from .models.rule import Criterion
from .models.state import MissingGroupsRecord

logger = logging.getLogger(__name__)


class EvaluationBackend(Protocol):
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
        """Return what was observed for each group; absent groups have value None."""
        ...


def time_range_for(criterion: Criterion, end_ms: int) -> TimeRange:
    return TimeRange(start_ms=end_ms - criterion.window_s * 1000, end_ms=end_ms)


async def evaluate_criterion(
    backend: EvaluationBackend,
    criterion: Criterion,
    group_by: Sequence[str],
    end_ms: int,
    composite_size: int,
    missing_groups: Sequence[MissingGroupsRecord],
    *,
    filter_query: str | None = None,
    last_run_timestamp: int | None = None,
) -> CriterionResults:
    """Fetch one criterion's groups and evaluate the threshold for each."""
    buckets = await backend.fetch_groups(
        criterion,
        group_by,
        time_range_for(criterion, end_ms),
        composite_size,
        missing_groups,
        filter_query=filter_query,
        last_run_timestamp=last_run_timestamp,
    )
    buckets = dict(buckets)
    if group_by:
        # Previously missing groups stay candidates until they report again
        for record in missing_groups:
            if record.key not in buckets:
                buckets[record.key] = GroupBucket(value=None, bucket_key=record.bucket_key)
    return {group: evaluate_condition(criterion, bucket) for group, bucket in buckets.items()}


def criterion_to_payload(criterion: Criterion) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "aggType": criterion.aggregation.value,
        "metric": criterion.metric,
        "comparator": criterion.comparator.value,
        "threshold": list(criterion.threshold),
        "timeSize": criterion.time_size,
        "timeUnit": criterion.time_unit.value,
    }
    if criterion.has_warning:
        payload["warningComparator"] = criterion.warning_comparator.value  # type: ignore[union-attr]
        payload["warningThreshold"] = list(criterion.warning_threshold or ())
    return payload


def _parse_group(item: object, grouped: bool) -> tuple[str, GroupBucket]:
    if not isinstance(item, dict):
        raise BackendError(f"Malformed group entry: {item!r}")
    raw_key = item.get("key")
    if not grouped:
        key = UNGROUPED_KEY
    elif isinstance(raw_key, list) and raw_key:
        key = build_group_key(raw_key)
    elif isinstance(raw_key, str) and raw_key:
        key = raw_key
    else:
        raise BackendError(f"Malformed group key: {raw_key!r}")

    raw_value = item.get("value")
    try:
        value = float(raw_value) if raw_value is not None else None
    except (TypeError, ValueError):
        raise BackendError(f"Non numeric value for group {key!r}: {raw_value!r}") from None
    bucket_key = item.get("bucketKey")
    context = item.get("context") if isinstance(item.get("context"), dict) else {}
    return key, GroupBucket(
        value=value,
        bucket_key=str(bucket_key) if bucket_key is not None else None,
        context=context,
    )


class HttpEvaluationBackend:
    """Async client for a remote evaluation service.

    Each request covers one criterion; the service pages over group
    combinations and returns an ``afterKey`` until the last page.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

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
        url = f"{self.base_url}/evaluate"
        payload: dict[str, Any] = {
            "criterion": criterion_to_payload(criterion),
            "groupBy": list(group_by),
            "timeRange": {"start": time_range.start_ms, "end": time_range.end_ms},
            "compositeSize": composite_size,
            "missingGroups": [record.to_dict() for record in missing_groups],
            "filterQuery": filter_query,
            "lastRunTimestamp": last_run_timestamp,
        }

        groups: dict[str, GroupBucket] = {}
        pages = 0
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport, headers=self._headers()
        ) as client:
            while True:
                try:
                    response = await client.post(url, json=payload)
                    response.raise_for_status()
                    data = response.json()
                except httpx.HTTPError as e:
                    logger.error(f"Evaluation backend request failed: {e}")
                    raise BackendError(f"Evaluation backend request failed: {e}") from e
                except ValueError as e:
                    raise BackendError(f"Evaluation backend returned invalid JSON: {e}") from e
                if not isinstance(data, dict):
                    raise BackendError("Evaluation backend returned a non-object body")

                pages += 1
                for item in data.get("groups") or []:
                    key, bucket = _parse_group(item, grouped=bool(group_by))
                    groups[key] = bucket

                after_key = data.get("afterKey")
                if not after_key:
                    break
                if after_key == payload.get("afterKey"):
                    raise BackendError(
                        f"Evaluation backend repeated afterKey {after_key!r} after {pages} page(s)"
                    )
                payload["afterKey"] = after_key

        logger.debug(
            "Fetched %d group(s) in %d page(s) for %s", len(groups), pages, criterion.metric_label
        )
        return groups
