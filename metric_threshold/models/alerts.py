"""Alert state, action groups and the payloads handed to the host."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .state import PersistedState


class AlertState(str, Enum):
    OK = "OK"
    ALERT = "ALERT"
    WARNING = "WARNING"
    NO_DATA = "NO_DATA"
    ERROR = "ERROR"


class ActionGroup(str, Enum):
    FIRED = "metrics.threshold.fired"
    WARNING = "metrics.threshold.warning"
    NO_DATA = "metrics.threshold.nodata"
    RECOVERED = "recovered"


@dataclass(frozen=True)
class Notification:
    group: str
    action_group: ActionGroup
    reason: str
    context: dict[str, Any]
    evaluation_values: tuple[float | None, ...] = field(default_factory=tuple)
    additional_context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RecoveredContext:
    group: str
    context: dict[str, Any]


@dataclass(frozen=True)
class RunResult:
    state: PersistedState
    notifications: tuple[Notification, ...] = field(default_factory=tuple)
    recovered: tuple[RecoveredContext, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AlertDocument:
    """Last stored copy of an alert, as the host keeps it."""

    action_group: str | None
    context: dict[str, Any] = field(default_factory=dict)
