"""Logging helpers shared across modules.

Provides one-shot root configuration plus small utilities for structured
DEBUG traces (context dicts, timers, URL redaction).
"""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from constants import Constants

_SENSITIVE_KEYS = ("token", "key", "secret", "password", "auth")
_REDACTED = "[REDACTED]"
_TOKEN_PATTERN = re.compile(r"(?i)(bearer\s+|token[=:]\s*)([A-Za-z0-9._\-]+)")


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger once.

    Level precedence: explicit argument, then NEXTUP_LOG_LEVEL, then INFO.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level_value)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        root.addHandler(file_handler)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by logger."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an `extra=` mapping for structured log records, dropping None values."""
    return {k: v for k, v in fields.items() if v is not None}


def redact(text: str) -> str:
    """Mask bearer tokens and token=... fragments in free text."""
    if not text:
        return text
    return _TOKEN_PATTERN.sub(lambda m: m.group(1) + _REDACTED, text)


def safe_url(url: str) -> str:
    """Return url with credentials and sensitive query values masked."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.netloc
    if "@" in netloc:
        netloc = _REDACTED + "@" + netloc.split("@", 1)[1]
    query = parts.query
    if query:
        pairs = [
            (k, _REDACTED if any(s in k.lower() for s in _SENSITIVE_KEYS) else v)
            for k, v in parse_qsl(query, keep_blank_values=True)
        ]
        query = urlencode(pairs)
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 2)
