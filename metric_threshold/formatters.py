"""Value formatters used in alert reasons and contexts."""

from __future__ import annotations

import math
from typing import Callable

PERCENT = "percent"
HIGH_PRECISION = "highPrecision"

_TEMPLATE_TOKEN = "{{value}}"


def _non_finite(value: float) -> str | None:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return None


def _to_float(value: object) -> float | None:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return None


def _strip_zeros(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in {"-0", ""} else text


def format_percent(value: object) -> str:
    number = _to_float(value)
    if number is None:
        return str(value)
    scaled = number * 100
    special = _non_finite(scaled)
    if special is not None:
        return f"{special}%"
    return f"{scaled:.1f}%"


def format_high_precision(value: object) -> str:
    """Render with as many decimals as the magnitude needs to stay legible.

    Values of magnitude one or more keep at most two decimals; smaller values
    keep three significant digits, and anything below 1e-10 switches to
    scientific notation.
    """
    number = _to_float(value)
    if number is None:
        return str(value)
    special = _non_finite(number)
    if special is not None:
        return special
    if number == 0:
        return "0"
    magnitude = abs(number)
    if magnitude >= 1:
        return _strip_zeros(f"{number:.2f}")
    if magnitude < 1e-10:
        return f"{number:.2e}"
    decimals = -math.floor(math.log10(magnitude)) + 2
    return _strip_zeros(f"{number:.{decimals}f}")


_FORMATTERS: dict[str, Callable[[object], str]] = {
    PERCENT: format_percent,
    HIGH_PRECISION: format_high_precision,
}


def create_formatter(
    style: str, template: str = _TEMPLATE_TOKEN
) -> Callable[[object], str]:
    fn = _FORMATTERS.get(style, format_high_precision)

    def _format(value: object) -> str:
        return template.replace(_TEMPLATE_TOKEN, fn(value))

    return _format


def formatter_for_metric(metric: str | None) -> Callable[[object], str]:
    if metric and metric.endswith(".pct"):
        return create_formatter(PERCENT)
    return create_formatter(HIGH_PRECISION)
