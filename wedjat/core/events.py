"""
wedjat/core/events.py — Minimal synchronous signal for intra-process events.

A :class:`Signal` keeps an ordered list of listeners. ``emit`` calls every
listener registered at the time of the call; a listener removed during the
emit is skipped. Exceptions raised by a listener are logged so the remaining
listeners still run.
"""

from __future__ import annotations

from typing import Any, Callable

from wedjat.core.logger import get_logger

_log = get_logger()


class Signal:
    """
    Ordered, synchronous listener list.

    Args:
        name: Name used in log entries.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: list[Callable[..., Any]] = []

    def connect(self, listener: Callable[..., Any]) -> None:
        """Add *listener*. Adding the same callable twice registers it twice."""
        self._listeners.append(listener)

    def disconnect(self, listener: Callable[..., Any]) -> None:
        """Remove one registration of *listener*; unknown listeners are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def emit(self, *args: Any) -> None:
        """Call every listener with *args*, in registration order."""
        for listener in list(self._listeners):
            if listener not in self._listeners:
                continue
            try:
                listener(*args)
            except Exception as exc:  # noqa: BLE001
                _log.error("events", "listener_error", {
                    "signal": self.name,
                    "listener": getattr(listener, "__qualname__", repr(listener)),
                    "error": repr(exc),
                })

    @property
    def listener_count(self) -> int:
        """Number of registered listeners."""
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return listener in self._listeners

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, listeners={len(self._listeners)})"
