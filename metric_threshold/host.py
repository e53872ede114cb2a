"""Host side collaborators: the services a run talks to, and a file backed host."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from .groups import flatten_context
from .models.alerts import AlertDocument, Notification
from .models.state import PersistedState

logger = logging.getLogger(__name__)


class RuleServices(Protocol):
    def schedule(self, notification: Notification) -> None:
        """Hand a notification to the dispatch system."""
        ...

    def recovered_alert_ids(self) -> list[str]:
        """Alerts that were open before this run and were not reported in it."""
        ...

    async def lookup_alert(self, alert_id: str) -> AlertDocument | None:
        ...

    def set_recovered_context(self, alert_id: str, context: dict[str, Any]) -> None:
        ...


class LocalAlertHost:
    """Keeps open alerts and rule state for a single rule in a JSON file.

    An alert stays open from the first run that reports it until the first run
    that does not; that run sees it in ``recovered_alert_ids``.
    """

    def __init__(self, state_file: Path | str) -> None:
        self._state_file = Path(state_file)
        self.active: dict[str, AlertDocument] = {}
        self.reported: dict[str, Notification] = {}
        self.recovered: dict[str, dict[str, Any]] = {}

    def schedule(self, notification: Notification) -> None:
        self.reported[notification.group] = notification

    def recovered_alert_ids(self) -> list[str]:
        return [alert_id for alert_id in self.active if alert_id not in self.reported]

    async def lookup_alert(self, alert_id: str) -> AlertDocument | None:
        return self.active.get(alert_id)

    def set_recovered_context(self, alert_id: str, context: dict[str, Any]) -> None:
        self.recovered[alert_id] = context

    def load_state(self) -> PersistedState:
        """Load persisted rule state and open alerts from disk."""
        if not self._state_file.exists():
            return PersistedState()
        try:
            data = json.loads(self._state_file.read_text())
        except (OSError, ValueError):
            logger.exception("Failed to load rule state from %s", self._state_file)
            return PersistedState()
        self.active = {
            alert_id: AlertDocument(
                action_group=doc.get("actionGroup"), context=dict(doc.get("context") or {})
            )
            for alert_id, doc in (data.get("activeAlerts") or {}).items()
            if isinstance(doc, dict)
        }
        logger.info("Loaded rule state from %s", self._state_file)
        return PersistedState.from_dict(data.get("ruleState"))

    def save_state(self, state: PersistedState) -> None:
        """Persist the rule state returned by a clean run."""
        active = {
            alert_id: doc
            for alert_id, doc in self.active.items()
            if alert_id not in self.recovered
        }
        for group, notification in self.reported.items():
            active[group] = AlertDocument(
                action_group=notification.action_group.value,
                context=flatten_context(notification.additional_context),
            )
        data = {
            "ruleState": state.to_dict(),
            "activeAlerts": {
                alert_id: {"actionGroup": doc.action_group, "context": doc.context}
                for alert_id, doc in active.items()
            },
        }
        try:
            self._state_file.parent.mkdir(parents=True, exist_ok=True)
            self._state_file.write_text(json.dumps(data, indent=2))
        except OSError:
            logger.exception("Failed to save rule state to %s", self._state_file)
            raise
        self.active = active
        self.reported = {}
        self.recovered = {}
