# src/taskalloc/errors.py
from __future__ import annotations

from datetime import datetime, timezone


class EngineError(Exception):
    """Base class for all structured taskalloc exceptions."""

    def __init__(
        self, message: str, source: str | None = None, suggested_action: str | None = None
    ):
        super().__init__(message)
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_type = self.__class__.__name__
        self.source = source or "unknown"
        self.suggested_action = suggested_action

    def __str__(self) -> str:
        base = f"[{self.error_type}] {self.args[0]}"
        if self.source:
            base += f" (source={self.source})"
        if self.suggested_action:
            base += f" | action: {self.suggested_action}"
        return base


class ConfigError(EngineError):
    """Invalid or missing configuration (config.yaml)"""


class DataError(EngineError):
    """Malformed input data or an edit that cannot be coerced"""


class TranslationFailure(EngineError):
    """External translator returned nothing, failed, or produced a malformed shape"""


class PersistenceFailure(EngineError):
    """Document store unreachable or write rejected; nothing was committed"""


class LookupFailure(EngineError):
    """Fix/edit target, rule id or preset name not found"""


class ReportError(EngineError):
    """Validation report could not be written"""
