"""Combine per-criterion results into one alert state per group."""

from __future__ import annotations

from typing import Any, Collection, Iterable, Sequence

from .formatters import formatter_for_metric
from .groups import UNGROUPED_KEY
from .messages import STATE_TO_ALERT_MESSAGE, build_fired_reason, build_no_data_reason
from .models.alerts import ActionGroup, AlertDocument, AlertState
from .models.results import EvaluationResult
from .models.rule import Comparator, Criterion

NO_DATA_VALUE = "[NO DATA]"

_CONTEXT_ROOTS = {"cloud", "host", "orchestrator", "container", "labels", "tags"}
_RECOVERABLE_STATES = (AlertState.ALERT, AlertState.WARNING, AlertState.NO_DATA)

_STATE_TO_ACTION_GROUP: dict[AlertState, ActionGroup] = {
    AlertState.ALERT: ActionGroup.FIRED,
    AlertState.WARNING: ActionGroup.WARNING,
    AlertState.NO_DATA: ActionGroup.NO_DATA,
    AlertState.OK: ActionGroup.RECOVERED,
    AlertState.ERROR: ActionGroup.FIRED,
}

_ACTION_GROUP_TO_STATE: dict[ActionGroup, AlertState] = {
    ActionGroup.FIRED: AlertState.ALERT,
    ActionGroup.WARNING: AlertState.WARNING,
    ActionGroup.NO_DATA: AlertState.NO_DATA,
    ActionGroup.RECOVERED: AlertState.OK,
}


def action_group_for_state(state: AlertState) -> ActionGroup:
    return _STATE_TO_ACTION_GROUP[state]


def state_for_action_group(action_group: ActionGroup | str | None) -> AlertState | None:
    if action_group is None:
        return None
    try:
        return _ACTION_GROUP_TO_STATE[ActionGroup(action_group)]
    except ValueError:
        return None


def reduce_group(results: Sequence[EvaluationResult]) -> AlertState:
    """AND every criterion together; no data wins, then alert, then warning."""
    if not results:
        return AlertState.OK
    if any(r.is_no_data for r in results):
        return AlertState.NO_DATA
    if all(r.should_fire for r in results):
        return AlertState.ALERT
    if all(r.should_warn for r in results):
        return AlertState.WARNING
    return AlertState.OK


def should_report_no_data(
    alert_on_no_data: bool, alert_on_group_disappear: bool, groups: Collection[str]
) -> bool:
    """Whether a NO_DATA verdict should turn into a notification.

    For an ungrouped rule "no data" and "group disappeared" are the same
    thing, so only ``alert_on_no_data`` counts there.
    """
    has_groups = list(groups) != [UNGROUPED_KEY]
    return alert_on_no_data or (alert_on_group_disappear and has_groups)


def format_result(
    result: EvaluationResult, use_warning: bool = False
) -> tuple[str, list[str], Comparator]:
    criterion = result.criterion
    fmt = formatter_for_metric(criterion.metric)
    if use_warning and criterion.has_warning:
        threshold = criterion.warning_threshold or ()
        comparator = criterion.warning_comparator or criterion.comparator
    else:
        threshold = criterion.threshold
        comparator = criterion.comparator
    value = NO_DATA_VALUE if result.current_value is None else fmt(result.current_value)
    return value, [fmt(t) for t in threshold], comparator


def build_reason(
    group: str,
    state: AlertState,
    results: Sequence[EvaluationResult],
    report_no_data: bool,
) -> str | None:
    if state in (AlertState.ALERT, AlertState.WARNING):
        lines = []
        for result in results:
            value, threshold, comparator = format_result(
                result, use_warning=state is AlertState.WARNING
            )
            lines.append(
                build_fired_reason(
                    group=group,
                    metric=result.criterion.metric_label,
                    comparator=comparator,
                    threshold=threshold,
                    current_value=value,
                    time_size=result.criterion.time_size,
                    time_unit=result.criterion.time_unit,
                )
            )
        return "\n".join(lines)
    if state is AlertState.NO_DATA and report_no_data:
        return "\n".join(
            build_no_data_reason(
                group=group,
                metric=r.criterion.metric_label,
                time_size=r.criterion.time_size,
                time_unit=r.criterion.time_unit,
            )
            for r in results
            if r.is_no_data
        )
    return None


def conditions_lookup(values: Iterable[Any]) -> dict[str, Any]:
    return {f"condition{idx}": value for idx, value in enumerate(values)}


def context_for_recovered(document: AlertDocument | None) -> dict[str, Any]:
    if document is None:
        return {}
    return {
        key: value
        for key, value in document.context.items()
        if key.split(".", 1)[0] in _CONTEXT_ROOTS
    }


def build_recovered_context(
    *,
    group: str,
    criteria: Sequence[Criterion],
    group_by_keys: dict[str, Any] | None,
    timestamp: str,
    document: AlertDocument | None,
) -> dict[str, Any]:
    """Best-effort context for an alert that is no longer reported."""
    original_action_group = document.action_group if document else None
    original_state = state_for_action_group(original_action_group)
    context: dict[str, Any] = {
        "alertState": STATE_TO_ALERT_MESSAGE[AlertState.OK],
        "group": group,
        "groupByKeys": group_by_keys,
        "metric": conditions_lookup(c.metric_label for c in criteria),
        "timestamp": timestamp,
        "threshold": conditions_lookup(list(c.threshold) for c in criteria),
        "originalAlertState": (
            STATE_TO_ALERT_MESSAGE[original_state]
            if original_state in _RECOVERABLE_STATES
            else None
        ),
        "originalAlertStateWasALERT": original_state is AlertState.ALERT,
        "originalAlertStateWasWARNING": original_state is AlertState.WARNING,
        "originalAlertStateWasNO_DATA": original_state is AlertState.NO_DATA,
    }
    context.update(context_for_recovered(document))
    return context
