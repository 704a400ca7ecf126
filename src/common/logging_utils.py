"""Centralized logging helpers.

Provides the process-wide logging setup plus small utilities used for
structured DEBUG traces (``extra_context``), cheap level checks and timing.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_CONTEXT_KEYS = ("event", "component", "action", "outcome", "target")


class _ContextFormatter(logging.Formatter):
    """Formatter that appends structured context fields when present."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        ctx = getattr(record, "context", None)
        if record.levelno <= logging.DEBUG and isinstance(ctx, dict) and ctx:
            pairs = " ".join(f"{k}={v}" for k, v in ctx.items())
            return f"{base} [{pairs}]"
        return base


def configure_logging(log_file: Optional[str] = None) -> None:
    """Configure the root logger once.

    The level comes from the ``GEMGRAPH_LOG_LEVEL`` environment variable
    (default INFO). Calling it again replaces the handlers installed by a
    previous call.
    """
    level_name = os.environ.get(Constants.ENV_LOG_LEVEL, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_gemgraph", False):
            root.removeHandler(handler)

    stream = logging.StreamHandler()
    stream.setFormatter(_ContextFormatter(Constants.LOG_FORMAT))
    stream._gemgraph = True  # type: ignore[attr-defined]
    root.addHandler(stream)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            _ContextFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        file_handler._gemgraph = True  # type: ignore[attr-defined]
        root.addHandler(file_handler)

    root.setLevel(level)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log call.

    None values are dropped so traces stay compact.
    """
    ctx = {k: v for k, v in fields.items() if v is not None}
    ordered = {k: ctx.pop(k) for k in _CONTEXT_KEYS if k in ctx}
    ordered.update(ctx)
    return {"context": ordered}


def safe_url(url: str) -> str:
    """Strip credentials and query strings from a URL before logging it."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid-url>"
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


def log_discovered_files(logger: logging.Logger, manager: str, discovered: Dict[str, Iterable[str]]) -> None:
    """DEBUG-log the files found while scanning a project or install root."""
    if not is_debug_enabled(logger):
        return
    for kind, paths in discovered.items():
        paths = list(paths)
        logger.debug(
            "Discovered %s file(s)",
            kind,
            extra=extra_context(
                event="discovery",
                component="scan",
                action="discover_files",
                package_manager=manager,
                kind=kind,
                count=len(paths),
            ),
        )


class Timer:
    """Context manager measuring elapsed wall time in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed time so far (or total, once the block has exited)."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
