"""Logging setup and redaction of request payloads."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict


_SENSITIVE_KEYS = re.compile(r"(token|secret|api[_-]?key|password|authorization)", re.IGNORECASE)
_MASK = "***REDACTED***"

# httpx logs every request URL at INFO; keep it behind our own request log.
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def redact_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``payload`` with credential-like keys masked, nested values included."""
    return {key: _redact_value(key, value) for key, value in payload.items()}


def _redact_value(key: str, value: Any) -> Any:
    if _SENSITIVE_KEYS.search(str(key)):
        return _MASK
    if isinstance(value, dict):
        return redact_payload(value)
    if isinstance(value, list):
        return [redact_payload(item) if isinstance(item, dict) else item for item in value]
    return value
