"""Structured logging for workflow runs.

Every record becomes one JSON object on stdout. Credentials never reach the
log: the API tokens handed to `configure_logging` are replaced wherever they
appear, `Bearer` headers are cut down to their scheme, and `extra` fields whose
names mark them as credentials are dropped to a placeholder.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

REDACTED = "***"

# Attributes every LogRecord carries; anything else was passed via `extra=`.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

_SENSITIVE_KEY_RE = re.compile(r"token|authorization|secret|password", re.IGNORECASE)
_BEARER_RE = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)


class RedactingJsonFormatter(logging.Formatter):
    """JSON formatter that scrubs API credentials from every field it writes."""

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        # Longest first so a token containing another token is replaced whole.
        self._secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def _scrub_text(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return _BEARER_RE.sub(rf"\g<1>{REDACTED}", text)

    def _scrub(self, value: Any, key: str | None = None) -> Any:
        if key is not None and _SENSITIVE_KEY_RE.search(key):
            return REDACTED
        if isinstance(value, str):
            return self._scrub_text(value)
        if isinstance(value, dict):
            return {str(k): self._scrub(v, str(k)) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._scrub(v) for v in value]
        if isinstance(value, (int, float, bool)) or value is None:
            return value
        return self._scrub_text(str(value))

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._scrub_text(record.getMessage()),
        }

        extra = {
            key: self._scrub(value, key)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self._scrub_text(self.formatException(record.exc_info))

        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str, *, secrets: Iterable[str] = ()) -> None:
    """Send JSON logs to stdout, with `secrets` redacted from every record."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(RedactingJsonFormatter(secrets))
    root.addHandler(handler)
    root.setLevel(level.upper())

    # urllib3 logs request lines at DEBUG; PyGithub logs request headers.
    for name in ("github", "urllib3"):
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))
