"""Logging helpers for metric_threshold
"""
from __future__ import annotations

import logging
import os


def setup_logging() -> None:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    # Suppress verbose HTTP request logs from the backend client
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class ScopedLogger(logging.LoggerAdapter):
    """Prefix every record with the rule and execution it belongs to."""

    def process(self, msg, kwargs):
        rule_id = self.extra.get("rule_id") or "-"
        execution_id = self.extra.get("execution_id") or "-"
        return f"[rule={rule_id} execution={execution_id}] {msg}", kwargs


def scoped_logger(
    name: str, rule_id: str | None, execution_id: str | None
) -> ScopedLogger:
    return ScopedLogger(
        logging.getLogger(name), {"rule_id": rule_id, "execution_id": execution_id}
    )


__all__ = ["setup_logging", "scoped_logger", "ScopedLogger"]
