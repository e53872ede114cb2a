"""Human readable alert reasons."""

from __future__ import annotations

from typing import Sequence

from .groups import UNGROUPED_KEY
from .models.alerts import AlertState
from .models.rule import Comparator, TimeUnit

STATE_TO_ALERT_MESSAGE: dict[AlertState, str] = {
    AlertState.ALERT: "Alert",
    AlertState.WARNING: "Warning",
    AlertState.NO_DATA: "No Data",
    AlertState.ERROR: "Error",
    AlertState.OK: "Ok",
}

_COMPARATOR_WORDS: dict[Comparator, str] = {
    Comparator.GT: "above",
    Comparator.GT_OR_EQ: "above or equal",
    Comparator.LT: "below",
    Comparator.LT_OR_EQ: "below or equal",
    Comparator.BETWEEN: "between",
    Comparator.NOT_BETWEEN: "not between",
}

_UNIT_WORDS: dict[TimeUnit, tuple[str, str]] = {
    TimeUnit.SECONDS: ("sec", "secs"),
    TimeUnit.MINUTES: ("min", "mins"),
    TimeUnit.HOURS: ("hr", "hrs"),
    TimeUnit.DAYS: ("day", "days"),
}


def comparator_to_text(comparator: Comparator) -> str:
    return _COMPARATOR_WORDS[comparator]


def threshold_to_text(threshold: Sequence[str]) -> str:
    if len(threshold) == 1:
        return threshold[0]
    return f"{threshold[0]} and {threshold[1]}"


def format_duration(size: int, unit: TimeUnit) -> str:
    singular, plural = _UNIT_WORDS[unit]
    return f"{size} {singular if size == 1 else plural}"


def _for_group(group: str) -> str:
    return "" if group == UNGROUPED_KEY else f" for {group}"


def build_fired_reason(
    *,
    group: str,
    metric: str,
    comparator: Comparator,
    threshold: Sequence[str],
    current_value: str,
    time_size: int,
    time_unit: TimeUnit,
) -> str:
    duration = format_duration(time_size, time_unit)
    return (
        f"{metric} is {current_value} in the last {duration}{_for_group(group)}. "
        f"Alert when {comparator_to_text(comparator)} {threshold_to_text(threshold)}."
    )


def build_no_data_reason(
    *, group: str, metric: str, time_size: int, time_unit: TimeUnit
) -> str:
    return (
        f"{metric} reported no data in the last "
        f"{time_size}{time_unit.value}{_for_group(group)}"
    )


def build_invalid_query_reason(filter_query_text: str) -> str:
    return f"Alert is using a malformed KQL query: {filter_query_text}"
