"""Per-criterion, per-group threshold evaluation."""

from __future__ import annotations

import logging
from typing import Sequence

from .models.results import EvaluationResult, GroupBucket
from .models.rule import Comparator, Criterion

logger = logging.getLogger(__name__)


def compare(comparator: Comparator, value: float | None, threshold: Sequence[float]) -> bool:
    """Apply ``comparator`` to ``value``.

    ``between`` is inclusive on both bounds and ``notBetween`` is its strict
    complement. Two-bound comparators accept the bounds in either order. A
    threshold with the wrong number of values never matches.
    """
    if value is None or not threshold:
        return False
    if len(threshold) != comparator.arity:
        logger.warning(
            "Comparator %s expects %d threshold(s), got %d",
            comparator.value,
            comparator.arity,
            len(threshold),
        )
        return False
    if comparator is Comparator.GT:
        return value > threshold[0]
    if comparator is Comparator.GT_OR_EQ:
        return value >= threshold[0]
    if comparator is Comparator.LT:
        return value < threshold[0]
    if comparator is Comparator.LT_OR_EQ:
        return value <= threshold[0]
    low, high = min(threshold), max(threshold)
    if comparator is Comparator.BETWEEN:
        return low <= value <= high
    if comparator is Comparator.NOT_BETWEEN:
        return value < low or value > high
    return False


def evaluate_condition(
    criterion: Criterion, bucket: GroupBucket | None
) -> EvaluationResult:
    value = bucket.value if bucket is not None else None
    # Zero documents is a real value for counts
    if value is None and criterion.is_count:
        value = 0.0
    is_no_data = value is None

    should_fire = False
    should_warn = False
    if not is_no_data:
        should_fire = compare(criterion.comparator, value, criterion.threshold)
        if not should_fire and criterion.has_warning:
            should_warn = compare(
                criterion.warning_comparator,  # type: ignore[arg-type]
                value,
                criterion.warning_threshold or (),
            )

    return EvaluationResult(
        criterion=criterion,
        current_value=value,
        should_fire=should_fire,
        should_warn=should_warn,
        is_no_data=is_no_data,
        bucket_key=bucket.bucket_key if bucket is not None else None,
        context=dict(bucket.context) if bucket is not None else {},
    )
