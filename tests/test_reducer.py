"""Tests for the alert state reducer."""

import pytest

from conftest import make_criterion
from metric_threshold.conditions import evaluate_condition
from metric_threshold.models.alerts import ActionGroup, AlertDocument, AlertState
from metric_threshold.models.results import GroupBucket
from metric_threshold.reducer import (
    action_group_for_state,
    build_reason,
    build_recovered_context,
    reduce_group,
    should_report_no_data,
    state_for_action_group,
)


def _result(value, comparator=">", threshold=(5,), **kwargs):
    criterion = make_criterion(comparator, threshold, **kwargs)
    bucket = None if value is None else GroupBucket(value=value)
    return evaluate_condition(criterion, bucket)


def test_single_criterion_over_threshold_alerts() -> None:
    assert reduce_group([_result(7)]) is AlertState.ALERT


def test_and_semantics_require_every_criterion() -> None:
    assert reduce_group([_result(10), _result(2)]) is AlertState.OK
    assert reduce_group([_result(10), _result(6)]) is AlertState.ALERT


def test_no_data_dominates() -> None:
    assert reduce_group([_result(10), _result(None)]) is AlertState.NO_DATA


def test_warning_when_all_criteria_warn() -> None:
    warn = dict(warning_comparator=">", warning_threshold=(3,))
    assert reduce_group([_result(4, **warn), _result(4, **warn)]) is AlertState.WARNING
    assert reduce_group([_result(4, **warn), _result(2, **warn)]) is AlertState.OK
    # One firing, one warning: neither condition holds for every criterion
    assert reduce_group([_result(10, **warn), _result(4, **warn)]) is AlertState.OK


@pytest.mark.parametrize(
    "on_no_data, on_disappear, groups, expected",
    [
        (True, False, ["*"], True),
        (False, True, ["*"], False),
        (False, True, ["a", "b"], True),
        (False, False, ["a", "b"], False),
    ],
)
def test_no_data_gating(on_no_data, on_disappear, groups, expected) -> None:
    assert should_report_no_data(on_no_data, on_disappear, groups) is expected


def test_fired_reason_per_criterion() -> None:
    results = [
        _result(7, metric="system.load.1"),
        _result(0.93, ">", (0.9,), metric="system.cpu.total.pct"),
    ]
    reason = build_reason("web-01", AlertState.ALERT, results, report_no_data=False)
    assert reason == (
        "system.load.1 is 7 in the last 5 mins for web-01. Alert when above 5.\n"
        "system.cpu.total.pct is 93.0% in the last 5 mins for web-01. "
        "Alert when above 90.0%."
    )


def test_warning_reason_uses_warning_threshold() -> None:
    result = _result(4, ">", (10,), warning_comparator="between", warning_threshold=(3, 6))
    reason = build_reason("*", AlertState.WARNING, [result], report_no_data=False)
    assert reason == (
        "system.load.1 is 4 in the last 5 mins. Alert when between 3 and 6."
    )


def test_no_data_reason_lists_only_no_data_criteria() -> None:
    results = [_result(7), _result(None, metric="system.memory.used.pct")]
    reason = build_reason("web-01", AlertState.NO_DATA, results, report_no_data=True)
    assert reason == "system.memory.used.pct reported no data in the last 5m for web-01"
    assert build_reason("web-01", AlertState.NO_DATA, results, report_no_data=False) is None


def test_ok_has_no_reason() -> None:
    assert build_reason("web-01", AlertState.OK, [_result(1)], report_no_data=True) is None


def test_state_and_action_group_mapping() -> None:
    assert action_group_for_state(AlertState.ALERT) is ActionGroup.FIRED
    assert action_group_for_state(AlertState.WARNING) is ActionGroup.WARNING
    assert action_group_for_state(AlertState.NO_DATA) is ActionGroup.NO_DATA
    assert action_group_for_state(AlertState.OK) is ActionGroup.RECOVERED
    assert state_for_action_group("metrics.threshold.warning") is AlertState.WARNING
    assert state_for_action_group("something.else") is None
    assert state_for_action_group(None) is None


def test_recovered_context_from_last_document() -> None:
    document = AlertDocument(
        action_group=ActionGroup.NO_DATA.value,
        context={"host.name": "web-01", "tags": ["prod"], "reason": "old"},
    )
    context = build_recovered_context(
        group="web-01",
        criteria=[make_criterion()],
        group_by_keys={"host": {"name": "web-01"}},
        timestamp="2024-01-01T00:00:00.000Z",
        document=document,
    )
    assert context["alertState"] == "Ok"
    assert context["originalAlertState"] == "No Data"
    assert context["originalAlertStateWasNO_DATA"] is True
    assert context["originalAlertStateWasALERT"] is False
    assert context["metric"] == {"condition0": "system.load.1"}
    assert context["threshold"] == {"condition0": [5.0]}
    assert context["host.name"] == "web-01"
    assert context["tags"] == ["prod"]
    assert "reason" not in context


def test_recovered_context_without_document() -> None:
    context = build_recovered_context(
        group="*",
        criteria=[make_criterion()],
        group_by_keys=None,
        timestamp="t",
        document=None,
    )
    assert context["originalAlertState"] is None
    assert context["originalAlertStateWasWARNING"] is False
