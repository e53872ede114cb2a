"""One scheduled run of a metric threshold rule.

A run goes through validate -> seed missing groups -> evaluate -> reduce ->
reconcile recovered -> persist, in that order, on a fresh RuleExecution.
State is only produced by a run that reaches the end (or the invalid filter
early exit); any other exception leaves the previous state in place.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from . import config
from .backend import EvaluationBackend, evaluate_criterion
from .conditions import evaluate_condition
from .errors import ConfigurationError, FilterSyntaxError
from .filter_query import validate_filter_query
from .groups import UNGROUPED_KEY, group_by_object, has_additional_context
from .host import RuleServices
from .logger import ScopedLogger, scoped_logger
from .messages import STATE_TO_ALERT_MESSAGE, build_invalid_query_reason
from .missing_groups import MissingGroupsBuilder, reconcile
from .models.alerts import (
    ActionGroup,
    AlertState,
    Notification,
    RecoveredContext,
    RunResult,
)
from .models.results import CriterionResults, EvaluationResult
from .models.rule import RuleParams
from .models.state import MissingGroupsRecord, PersistedState
from .reducer import (
    action_group_for_state,
    build_reason,
    build_recovered_context,
    conditions_lookup,
    format_result,
    reduce_group,
    should_report_no_data,
)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    return _as_utc(moment).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_ms(moment: datetime) -> int:
    return int(_as_utc(moment).timestamp() * 1000)


def _merge_tags(existing: object, rule_tags: Sequence[str]) -> list[str]:
    if isinstance(existing, str):
        existing = [existing]
    if not isinstance(existing, (list, tuple)):
        existing = []
    return list(dict.fromkeys([*(str(t) for t in existing), *rule_tags]))


@dataclass
class RuleExecution:
    params: RuleParams
    previous_state: PersistedState
    started_at: datetime
    backend: EvaluationBackend
    services: RuleServices
    composite_size: int
    rule_id: str | None = None
    execution_id: str | None = None
    notifications: list[Notification] = field(default_factory=list)
    recovered: list[RecoveredContext] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.log: ScopedLogger = scoped_logger(__name__, self.rule_id, self.execution_id)
        self.timestamp = iso_timestamp(self.started_at)
        self.timestamp_ms = epoch_ms(self.started_at)

    async def run(self) -> RunResult:
        start = time.monotonic()
        early = self.validate()
        if early is not None:
            return early
        seed = self.seed_missing_groups()
        results = await self.evaluate(seed)
        next_missing = self.reduce(results)
        await self.reconcile_recovered()
        self.log.debug(
            "Scheduled %d actions in %dms",
            len(self.notifications),
            (time.monotonic() - start) * 1000,
        )
        return RunResult(
            state=self.persist(next_missing),
            notifications=tuple(self.notifications),
            recovered=tuple(self.recovered),
        )

    def _schedule(self, notification: Notification) -> None:
        self.services.schedule(notification)
        self.notifications.append(notification)

    def validate(self) -> RunResult | None:
        """Fail on an empty rule; turn a malformed filter into a single alert."""
        params = self.params
        if not params.criteria:
            raise ConfigurationError("Cannot execute an alert with 0 conditions")
        if params.filter_query or not params.filter_query_text:
            return None
        try:
            validate_filter_query(params.filter_query_text)
        except FilterSyntaxError as e:
            self.log.error(str(e))
            reason = build_invalid_query_reason(params.filter_query_text)
            self._schedule(
                Notification(
                    group=UNGROUPED_KEY,
                    action_group=ActionGroup.FIRED,
                    reason=reason,
                    context={
                        "alertState": STATE_TO_ALERT_MESSAGE[AlertState.ERROR],
                        "group": UNGROUPED_KEY,
                        "metric": conditions_lookup(c.metric_label for c in params.criteria),
                        "reason": reason,
                        "timestamp": self.timestamp,
                        "value": None,
                    },
                )
            )
            return RunResult(
                state=PersistedState(
                    last_run_timestamp=self.timestamp_ms,
                    missing_groups=(),
                    group_by=params.group_by,
                    filter_query=params.filter_query,
                ),
                notifications=tuple(self.notifications),
            )
        return None

    def seed_missing_groups(self) -> tuple[MissingGroupsRecord, ...]:
        return reconcile(
            self.previous_state,
            self.params.group_by,
            self.params.filter_query,
            self.params.alert_on_group_disappear,
        )

    async def evaluate(
        self, seed: Sequence[MissingGroupsRecord]
    ) -> list[CriterionResults]:
        """One backend round-trip per criterion; all must finish before reducing."""
        group_by = self.params.group_by_fields
        tasks = [
            asyncio.ensure_future(
                evaluate_criterion(
                    self.backend,
                    criterion,
                    group_by,
                    self.timestamp_ms,
                    self.composite_size,
                    seed,
                    filter_query=self.params.filter_query,
                    last_run_timestamp=self.previous_state.last_run_timestamp,
                )
            )
            for criterion in self.params.criteria
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # A failed run leaves no backend calls behind
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def _row(
        self, group: str, results: Sequence[CriterionResults]
    ) -> list[EvaluationResult]:
        # A group one criterion did not report counts as an empty bucket there
        return [
            per_criterion.get(group) or evaluate_condition(criterion, None)
            for criterion, per_criterion in zip(self.params.criteria, results)
        ]

    def _additional_context(self, row: Sequence[EvaluationResult]) -> dict[str, Any]:
        additional: dict[str, Any] = {}
        if has_additional_context(self.params.group_by) and row:
            additional = dict(row[0].context)
        additional["tags"] = _merge_tags(additional.get("tags"), self.params.tags)
        return additional

    def reduce(
        self, results: Sequence[CriterionResults]
    ) -> tuple[MissingGroupsRecord, ...]:
        params = self.params
        groups = list(dict.fromkeys(g for per_criterion in results for g in per_criterion))
        group_by_keys = group_by_object(params.group_by, groups)
        report_no_data = should_report_no_data(
            params.alert_on_no_data, params.alert_on_group_disappear, groups
        )
        missing = MissingGroupsBuilder()

        for group in groups:
            row = self._row(group, results)
            state = reduce_group(row)
            if state is AlertState.NO_DATA and params.alert_on_group_disappear:
                bucket_key = next((r.bucket_key for r in row if r.bucket_key), None)
                missing.add(group, bucket_key)

            reason = build_reason(group, state, row, report_no_data)
            if not reason:
                continue

            additional = self._additional_context(row)
            formatted = [format_result(r) for r in row]
            context = {
                "alertState": STATE_TO_ALERT_MESSAGE[state],
                "group": group,
                "groupByKeys": group_by_keys.get(group),
                "metric": conditions_lookup(c.metric_label for c in params.criteria),
                "reason": reason,
                "threshold": conditions_lookup(threshold for _, threshold, _ in formatted),
                "timestamp": self.timestamp,
                "value": conditions_lookup(value for value, _, _ in formatted),
                **additional,
            }
            self._schedule(
                Notification(
                    group=group,
                    action_group=action_group_for_state(state),
                    reason=reason,
                    context=context,
                    evaluation_values=tuple(r.current_value for r in row),
                    additional_context=additional,
                )
            )
        return missing.build()

    async def reconcile_recovered(self) -> None:
        alert_ids = list(self.services.recovered_alert_ids())
        if not alert_ids:
            return
        group_by_keys = group_by_object(self.params.group_by, alert_ids)
        for alert_id in alert_ids:
            try:
                document = await self.services.lookup_alert(alert_id)
            except Exception:
                self.log.warning(
                    "Failed to look up recovered alert %s; using empty context",
                    alert_id,
                    exc_info=True,
                )
                document = None
            context = build_recovered_context(
                group=alert_id,
                criteria=self.params.criteria,
                group_by_keys=group_by_keys.get(alert_id),
                timestamp=self.timestamp,
                document=document,
            )
            self.services.set_recovered_context(alert_id, context)
            self.recovered.append(RecoveredContext(group=alert_id, context=context))

    def persist(self, next_missing: Sequence[MissingGroupsRecord]) -> PersistedState:
        return PersistedState(
            last_run_timestamp=self.timestamp_ms,
            missing_groups=tuple(next_missing),
            group_by=self.params.group_by,
            filter_query=self.params.filter_query,
        )


async def execute_rule(
    params: RuleParams,
    state: PersistedState | None,
    started_at: datetime,
    backend: EvaluationBackend,
    services: RuleServices,
    *,
    composite_size: int | None = None,
    rule_id: str | None = None,
    execution_id: str | None = None,
) -> RunResult:
    """Run one scheduled evaluation and return the state the host should store."""
    execution = RuleExecution(
        params=params,
        previous_state=state or PersistedState(),
        started_at=started_at,
        backend=backend,
        services=services,
        composite_size=composite_size or config.GROUP_BY_PAGE_SIZE,
        rule_id=rule_id,
        execution_id=execution_id,
    )
    return await execution.run()
