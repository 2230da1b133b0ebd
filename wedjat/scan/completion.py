"""
wedjat/scan/completion.py — Resolve-once completion handle for item activation.
"""

from __future__ import annotations

from typing import Callable

from wedjat.core.logger import get_logger
from wedjat.core.loop import EventLoop

_log = get_logger()


class Completion:
    """
    Signals that an activated item's action has finished.

    The first :meth:`resolve` wins; later calls are ignored. Callbacks run on
    the loop through ``call_soon``, including callbacks added after
    resolution, so a resolve never runs continuation code on the caller's
    stack.

    Args:
        loop: Event loop used to dispatch callbacks.
        label: Name used in log entries.
    """

    def __init__(self, loop: EventLoop, label: str = "") -> None:
        self._loop = loop
        self.label = label
        self._resolved = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def resolved(self) -> bool:
        return self._resolved

    def add_done_callback(self, callback: Callable[[], None]) -> None:
        """Run *callback* once this completion resolves (or soon, if it has)."""
        if self._resolved:
            self._loop.call_soon(callback)
        else:
            self._callbacks.append(callback)

    def resolve(self) -> bool:
        """
        Mark the action finished.

        Returns:
            True on the first call, False if already resolved.
        """
        if self._resolved:
            _log.debug("completion", "already_resolved", {"label": self.label})
            return False
        self._resolved = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._loop.call_soon(callback)
        return True

    @classmethod
    def done(cls, loop: EventLoop, label: str = "") -> "Completion":
        """An already-resolved completion."""
        completion = cls(loop, label)
        completion.resolve()
        return completion

    def __repr__(self) -> str:
        return f"Completion({self.label!r}, resolved={self._resolved})"
