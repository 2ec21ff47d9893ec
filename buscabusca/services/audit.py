"""Security event logging.

Events are written as ``[LEVEL][EVENT] {json context}`` lines. Context keys
listed as sensitive are replaced with ``***`` before formatting.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from buscabusca.config import get_settings

REDACTED = "***"

LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class AuditEvent:
    """A security event waiting to be written."""

    level: str
    name: str
    context: dict[str, Any] = field(default_factory=dict)


class AuditLog:
    """Structured security event sink with configurable redaction."""

    def __init__(self, sensitive_fields: Iterable[str], logger: logging.Logger | None = None) -> None:
        self.sensitive_fields = frozenset(f.lower() for f in sensitive_fields)
        self.logger = logger or logging.getLogger("buscabusca.audit")

    def sanitize(self, context: Mapping[str, Any]) -> dict[str, Any]:
        """Return a copy of ``context`` with sensitive keys redacted, recursing into dicts and lists."""
        clean: dict[str, Any] = {}
        for key, value in context.items():
            if str(key).lower() in self.sensitive_fields:
                clean[key] = REDACTED
            else:
                clean[key] = self._scrub(value)
        return clean

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return self.sanitize(value)
        if isinstance(value, (list, tuple)):
            return [self._scrub(item) for item in value]
        return value

    def log(self, level: str, event: str, context: Mapping[str, Any] | None = None, exc_info: bool = False) -> None:
        if level not in LEVELS:
            raise ValueError(f"Unknown audit level '{level}'")
        payload = json.dumps(self.sanitize(context or {}), ensure_ascii=False, default=str)
        self.logger.log(LEVELS[level], "[%s][%s] %s", level.upper(), event, payload, exc_info=exc_info)

    def info(self, event: str, context: Mapping[str, Any] | None = None) -> None:
        self.log("info", event, context)

    def warning(self, event: str, context: Mapping[str, Any] | None = None) -> None:
        self.log("warning", event, context)

    def error(self, event: str, context: Mapping[str, Any] | None = None, exc_info: bool = False) -> None:
        self.log("error", event, context, exc_info=exc_info)

    def emit(self, event: AuditEvent) -> None:
        self.log(event.level, event.name, event.context)


_audit_log: AuditLog | None = None


def get_audit_log() -> AuditLog:
    """Get singleton audit log instance."""
    global _audit_log
    if _audit_log is None:
        _audit_log = AuditLog(sensitive_fields=get_settings().sensitive_fields)
    return _audit_log
