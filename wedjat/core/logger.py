"""
wedjat/core/logger.py — JSONL structured logger for Wedjat.

Every entry becomes one JSON line in ``<log_dir>/wedjat_{date}.jsonl``. The
file rolls over when the UTC date changes. Entries at WARN and above are also
echoed through the stdlib ``wedjat`` logger to stderr.

The log directory is ``$WEDJAT_LOG_DIR`` if set, otherwise ``logs/``.

Usage::

    from wedjat.core.logger import get_logger
    log = get_logger()
    log.info("scan", "step", {"menu": "compose_main", "item": 3})
    log.perf("speaker", "utterance_done", 812.0, {"chars": 14})
"""

from __future__ import annotations

import json
import logging
import os
import platform
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Optional

_DEFAULT_LOG_DIR = Path("logs")

# Level name -> stdlib level used for the stderr echo (None: file only)
_ECHO_LEVELS: dict[str, Optional[int]] = {
    "DEBUG": None,
    "INFO": None,
    "PERF": None,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_THRESHOLDS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _make_echo() -> logging.Logger:
    echo = logging.getLogger("wedjat")
    if not echo.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        echo.addHandler(handler)
    echo.setLevel(logging.DEBUG)
    echo.propagate = False
    return echo


_echo = _make_echo()

_instance: Optional["WedjatLogger"] = None
_instance_lock = threading.Lock()


class WedjatLogger:
    """
    Process-wide JSONL event log.

    A record looks like::

        {"timestamp_iso": "2026-10-18T09:12:03.120931+00:00", "level": "INFO",
         "phase": "scan", "event": "item_activated",
         "data": {"menu": "letter2", "item": "H"}}

    PERF records carry an extra ``latency_ms`` field. Obtain the instance
    through :func:`get_logger`.

    Args:
        log_dir: Directory receiving the daily JSONL files.
    """

    def __init__(self, log_dir: Path) -> None:
        self._log_dir = log_dir
        self._lock = threading.Lock()
        self._stream: Optional[IO[str]] = None
        self._day = ""
        self.info("system", "startup", {
            "python_version": sys.version,
            "platform": platform.platform(),
            "hostname": platform.node(),
            "pid": os.getpid(),
        })

    @property
    def log_dir(self) -> Path:
        """Directory the JSONL files are written to."""
        return self._log_dir

    # ──────────────────────────────────────────
    # Levels
    # ──────────────────────────────────────────

    def debug(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        self.log("DEBUG", phase, event, data)

    def info(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        """
        Record a routine event.

        Args:
            phase: Subsystem name (``'scan'``, ``'detector'``, ...).
            event: Short snake_case identifier.
            data: Extra context; must be JSON-friendly or ``str()``-able.
        """
        self.log("INFO", phase, event, data)

    def warn(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        self.log("WARN", phase, event, data)

    def error(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        self.log("ERROR", phase, event, data)

    def critical(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        self.log("CRITICAL", phase, event, data)

    def perf(
        self,
        phase: str,
        event: str,
        latency_ms: float,
        data: Optional[dict] = None,
    ) -> None:
        """Record a timing measurement in milliseconds."""
        self.log("PERF", phase, event, data, latency_ms=latency_ms)

    def log(
        self,
        level: str,
        phase: str,
        event: str,
        data: Optional[dict] = None,
        latency_ms: Optional[float] = None,
    ) -> None:
        """
        Append one entry at *level* and echo it to stderr when severe enough.

        Raises:
            KeyError: *level* is not one of the known level names.
        """
        echo_level = _ECHO_LEVELS[level]
        stamp = datetime.now(tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp_iso": stamp.isoformat(),
            "level": level,
            "phase": phase,
            "event": event,
            "data": data or {},
        }
        if latency_ms is not None:
            entry["latency_ms"] = round(latency_ms, 3)
        line = json.dumps(entry, ensure_ascii=False, separators=(",", ":"), default=str)

        with self._lock:
            stream = self._stream_for(stamp.strftime("%Y-%m-%d"))
            stream.write(line + "\n")

        if echo_level is not None:
            _echo.log(echo_level, "%s.%s %s", phase, event, data or {})

    def flush(self) -> None:
        """Push buffered lines to disk."""
        with self._lock:
            if self._stream is not None and not self._stream.closed:
                self._stream.flush()

    def _stream_for(self, day: str) -> IO[str]:
        # caller holds self._lock
        if day != self._day or self._stream is None or self._stream.closed:
            if self._stream is not None and not self._stream.closed:
                self._stream.close()
            self._log_dir.mkdir(parents=True, exist_ok=True)
            path = self._log_dir / f"wedjat_{day}.jsonl"
            self._stream = path.open("a", encoding="utf-8", buffering=1)
            self._day = day
        return self._stream


# ──────────────────────────────────────────────────────────────
# Singleton accessor
# ──────────────────────────────────────────────────────────────

def get_logger() -> WedjatLogger:
    """Return the application-wide logger, creating it on first use."""
    global _instance
    if _instance is None:
        with _instance_lock:
            if _instance is None:
                _instance = WedjatLogger(
                    Path(os.environ.get("WEDJAT_LOG_DIR", _DEFAULT_LOG_DIR))
                )
    return _instance


def set_stderr_level(level: str) -> None:
    """
    Set the lowest level echoed to stderr.

    Args:
        level: ``'DEBUG'``, ``'INFO'``, ``'WARN'`` or ``'ERROR'``; anything
            else falls back to INFO.
    """
    _echo.setLevel(_THRESHOLDS.get(level.upper(), logging.INFO))
