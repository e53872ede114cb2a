"""Tests for the per-criterion condition evaluator."""

import pytest

from conftest import make_criterion
from metric_threshold.conditions import compare, evaluate_condition
from metric_threshold.models.results import GroupBucket
from metric_threshold.models.rule import Aggregation, Comparator


@pytest.mark.parametrize(
    "comparator, value, threshold, expected",
    [
        (">", 7, [5], True),
        (">", 5, [5], False),
        (">=", 5, [5], True),
        ("<", 4, [5], True),
        ("<=", 5, [5], True),
        ("<=", 6, [5], False),
        ("between", 1, [1, 3], True),
        ("between", 3, [1, 3], True),
        ("between", 4, [1, 3], False),
        ("between", 2, [3, 1], True),
        ("notBetween", 1, [1, 3], False),
        ("notBetween", 0, [1, 3], True),
        ("notBetween", 4, [3, 1], True),
    ],
)
def test_compare(comparator, value, threshold, expected) -> None:
    assert compare(Comparator(comparator), value, threshold) is expected


def test_compare_rejects_wrong_arity() -> None:
    assert compare(Comparator.BETWEEN, 2, [1]) is False
    assert compare(Comparator.GT, 2, [1, 3]) is False
    assert compare(Comparator.GT, None, [1]) is False


def test_value_above_threshold_fires() -> None:
    result = evaluate_condition(make_criterion(">", [5]), GroupBucket(value=7))
    assert result.should_fire is True
    assert result.should_warn is False
    assert result.is_no_data is False
    assert result.current_value == 7


def test_missing_value_is_no_data_and_never_fires() -> None:
    criterion = make_criterion(
        "<", [5], warning_comparator="<", warning_threshold=[10]
    )
    for bucket in (None, GroupBucket(value=None, bucket_key="b1")):
        result = evaluate_condition(criterion, bucket)
        assert result.is_no_data is True
        assert result.should_fire is False
        assert result.should_warn is False


def test_count_with_zero_documents_is_a_value() -> None:
    criterion = make_criterion("<", [1], metric=None, aggregation=Aggregation.COUNT)
    result = evaluate_condition(criterion, None)
    assert result.is_no_data is False
    assert result.current_value == 0
    assert result.should_fire is True


def test_warning_only_when_not_firing() -> None:
    criterion = make_criterion(
        ">", [90], warning_comparator=">", warning_threshold=[75]
    )
    warn = evaluate_condition(criterion, GroupBucket(value=80))
    assert (warn.should_fire, warn.should_warn) == (False, True)

    fire = evaluate_condition(criterion, GroupBucket(value=95))
    assert (fire.should_fire, fire.should_warn) == (True, False)

    ok = evaluate_condition(criterion, GroupBucket(value=10))
    assert (ok.should_fire, ok.should_warn) == (False, False)


def test_bucket_key_and_context_are_carried() -> None:
    bucket = GroupBucket(value=1, bucket_key="web-01", context={"host": {"name": "web-01"}})
    result = evaluate_condition(make_criterion(), bucket)
    assert result.bucket_key == "web-01"
    assert result.context == {"host": {"name": "web-01"}}
