"""Decode raw rule parameters (host JSON) into RuleParams."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .errors import ConfigurationError
from .models.rule import Aggregation, Comparator, Criterion, RuleParams, TimeUnit

logger = logging.getLogger(__name__)

COMPARATOR_ALIASES: dict[str, str] = {
    "outside": "notBetween",
    "not_between": "notBetween",
    "notbetween": "notBetween",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}


def parse_comparator(raw: object) -> Comparator:
    text = str(raw or "").strip()
    text = COMPARATOR_ALIASES.get(text.lower(), text)
    try:
        return Comparator(text)
    except ValueError:
        raise ConfigurationError(f"Unknown comparator: {raw!r}") from None


def _parse_threshold(raw: object, comparator: Comparator, label: str) -> tuple[float, ...]:
    values = raw if isinstance(raw, (list, tuple)) else [raw]
    try:
        parsed = tuple(float(v) for v in values)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{label} must be numeric, got {raw!r}") from None
    if len(parsed) != comparator.arity:
        raise ConfigurationError(
            f"{label} for {comparator.value!r} needs {comparator.arity} value(s), "
            f"got {len(parsed)}"
        )
    return parsed


def parse_criterion(raw: Mapping[str, Any]) -> Criterion:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Criterion must be an object, got {raw!r}")
    try:
        aggregation = Aggregation(str(raw.get("aggType") or "avg").lower())
    except ValueError:
        raise ConfigurationError(f"Unknown aggType: {raw.get('aggType')!r}") from None
    metric = raw.get("metric") or None
    if aggregation is not Aggregation.COUNT and not metric:
        raise ConfigurationError(f"Criterion with aggType {aggregation.value!r} needs a metric")

    comparator = parse_comparator(raw.get("comparator"))
    threshold = _parse_threshold(raw.get("threshold"), comparator, "threshold")

    warning_comparator = None
    warning_threshold = None
    if raw.get("warningComparator") is not None or raw.get("warningThreshold") is not None:
        if raw.get("warningComparator") is None or raw.get("warningThreshold") is None:
            raise ConfigurationError("warningComparator and warningThreshold go together")
        warning_comparator = parse_comparator(raw["warningComparator"])
        warning_threshold = _parse_threshold(
            raw["warningThreshold"], warning_comparator, "warningThreshold"
        )

    try:
        time_size = int(raw.get("timeSize", 1))
        time_unit = TimeUnit(str(raw.get("timeUnit") or "m"))
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid time window: {raw.get('timeSize')!r}{raw.get('timeUnit')!r}"
        ) from None
    if time_size <= 0:
        raise ConfigurationError(f"timeSize must be positive, got {time_size}")

    return Criterion(
        aggregation=aggregation,
        comparator=comparator,
        threshold=threshold,
        time_size=time_size,
        time_unit=time_unit,
        metric=str(metric) if metric else None,
        warning_comparator=warning_comparator,
        warning_threshold=warning_threshold,
    )


def _parse_group_by(raw: object) -> str | tuple[str, ...] | None:
    if raw is None or raw == "" or raw == []:
        return None
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (list, tuple)) and all(isinstance(g, str) for g in raw):
        return tuple(raw)
    raise ConfigurationError(f"groupBy must be a string or list of strings, got {raw!r}")


def _parse_flag(raw: Mapping[str, Any], name: str, default: bool) -> bool:
    value = raw.get(name)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a boolean, got {value!r}")
    return value


def _parse_tags(raw: Any) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, (list, tuple)):
        return tuple(str(t) for t in raw)
    raise ConfigurationError(f"tags must be a string or list of strings, got {raw!r}")


def decode_rule_params(raw: Mapping[str, Any]) -> RuleParams:
    """Validate host supplied parameters once, at the boundary.

    ``alertOnGroupDisappear`` predates older rules; a missing value means
    enabled.
    """
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Rule parameters must be an object")
    criteria_raw = raw.get("criteria")
    if not isinstance(criteria_raw, (list, tuple)):
        raise ConfigurationError("criteria must be a list")
    criteria = tuple(parse_criterion(c) for c in criteria_raw)

    return RuleParams(
        criteria=criteria,
        group_by=_parse_group_by(raw.get("groupBy")),
        filter_query=raw.get("filterQuery") or None,
        filter_query_text=raw.get("filterQueryText") or None,
        alert_on_no_data=_parse_flag(raw, "alertOnNoData", False),
        alert_on_group_disappear=_parse_flag(raw, "alertOnGroupDisappear", True),
        source_id=str(raw.get("sourceId") or "default"),
        tags=_parse_tags(raw.get("tags")),
    )
