"""Bookkeeping of groups that reported no data in the previous run."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from .groups import UNGROUPED_KEY
from .models.results import EvaluationResult
from .models.state import MissingGroupsRecord, PersistedState

logger = logging.getLogger(__name__)


def _normalize_group_by(group_by: object) -> object:
    if isinstance(group_by, (list, tuple)):
        return tuple(group_by)
    return group_by


def reconcile(
    previous: PersistedState | None,
    group_by: str | tuple[str, ...] | list[str] | None,
    filter_query: str | None,
    alert_on_group_disappear: bool,
) -> tuple[MissingGroupsRecord, ...]:
    """Return the missing groups the backend should still probe for this run.

    The seed is dropped whenever group disappearance alerting is off or the
    grouping or filter changed since the previous run.
    """
    if previous is None or not alert_on_group_disappear:
        return ()
    if _normalize_group_by(previous.group_by) != _normalize_group_by(group_by):
        if previous.missing_groups:
            logger.info("groupBy changed; dropping %d missing group(s)", len(previous.missing_groups))
        return ()
    if previous.filter_query != filter_query:
        if previous.missing_groups:
            logger.info("filterQuery changed; dropping %d missing group(s)", len(previous.missing_groups))
        return ()
    return tuple(previous.missing_groups)


class MissingGroupsBuilder:
    """Accumulates the next run's missing groups; identity is the group key."""

    def __init__(self) -> None:
        self._records: dict[str, MissingGroupsRecord] = {}

    def add(self, group: str, bucket_key: str | None) -> "MissingGroupsBuilder":
        if group == UNGROUPED_KEY or group in self._records:
            return self
        self._records[group] = MissingGroupsRecord(
            key=group, bucket_key=bucket_key if bucket_key is not None else group
        )
        return self

    def build(self) -> tuple[MissingGroupsRecord, ...]:
        return tuple(self._records.values())


def _bucket_key(results: Iterable[EvaluationResult]) -> str | None:
    for result in results:
        if result.bucket_key is not None:
            return result.bucket_key
    return None


def collect(
    group_results: Mapping[str, list[EvaluationResult]],
) -> tuple[MissingGroupsRecord, ...]:
    """Records for every grouped key where at least one criterion had no data."""
    builder = MissingGroupsBuilder()
    for group, results in group_results.items():
        if any(r.is_no_data for r in results):
            builder.add(group, _bucket_key(results))
    return builder.build()
