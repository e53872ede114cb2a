"""Exceptions raised by the metric threshold engine."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Rule parameters cannot be executed (e.g. no criteria)."""


class FilterSyntaxError(ValueError):
    def __init__(self, message: str, text: str, position: int) -> None:
        super().__init__(f"{message} at position {position}")
        self.text = text
        self.position = position


class BackendError(RuntimeError):
    """The evaluation backend could not be reached or answered badly."""
