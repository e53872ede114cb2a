"""Group key helpers.

A group key is the comma separated list of group-by values observed for one
bucket, or ``*`` when the rule has no grouping.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

UNGROUPED_KEY = "*"

_CONTEXT_PREFIXES = ("cloud.", "host.", "orchestrator.", "container.", "labels.")
_CONTEXT_FIELDS = {"tags"}


def build_group_key(values: Iterable[object]) -> str:
    parts = [str(v) for v in values]
    return ", ".join(parts) if parts else UNGROUPED_KEY


def split_group_key(group: str) -> list[str]:
    return [part.strip() for part in group.split(",")]


def _unflatten(flat: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for dotted, value in flat.items():
        node = out
        parts = dotted.split(".")
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
    return out


def group_by_object(
    group_by: str | Iterable[str] | None, groups: Iterable[str]
) -> dict[str, dict[str, Any]]:
    """Map every group key back to a nested ``field -> value`` mapping."""
    mapping: dict[str, dict[str, Any]] = {}
    if not group_by:
        return mapping
    for group in groups:
        if isinstance(group_by, str):
            flat = {group_by: group}
        else:
            values = split_group_key(group)
            flat = {
                name: values[idx] if idx < len(values) else None
                for idx, name in enumerate(group_by)
            }
        mapping[group] = _unflatten(flat)
    return mapping


def has_additional_context(group_by: str | Iterable[str] | None) -> bool:
    if not group_by:
        return False
    fields = [group_by] if isinstance(group_by, str) else list(group_by)
    return any(
        f in _CONTEXT_FIELDS or f.startswith(_CONTEXT_PREFIXES) for f in fields
    )


def flatten_context(context: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in context.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping) and value:
            flat.update(flatten_context(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat
