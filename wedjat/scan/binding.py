"""
wedjat/scan/binding.py — Exclusive ownership of the gesture and stop listeners.

Exactly one party (a scan session or the idle/listen controller) may have its
gesture-begin, gesture-end and stop handlers registered at any instant.
Registering a second owner would double-fire gesture callbacks, so it is
rejected with :class:`ListenerConflictError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from wedjat.core.events import Signal
from wedjat.core.logger import get_logger
from wedjat.gesture.base import GestureEvent
from wedjat.gesture.detector import Detector

_log = get_logger()

GestureHandler = Callable[[GestureEvent], None]


class ListenerConflictError(RuntimeError):
    """
    Raised when a second owner binds while another is still bound.

    Args:
        current: The owner that is bound.
        requested: The owner that tried to bind.
    """

    def __init__(self, current: Any, requested: Any) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Listeners already bound to {current!r}; cannot bind {requested!r}")


@dataclass
class _Registration:
    owner: Any
    on_begin: GestureHandler
    on_end: GestureHandler
    on_stop: Callable[[], None]


class ListenerBinding:
    """
    Binds one owner's handlers to the detector and the stop signal.

    Args:
        detector: Gesture source facade.
        stop_signal: External stop signal (Stop button, Escape key).
    """

    def __init__(self, detector: Detector, stop_signal: Signal) -> None:
        self._detector = detector
        self._stop_signal = stop_signal
        self._current: Optional[_Registration] = None

    @property
    def owner(self) -> Any:
        """The bound owner, or ``None``."""
        return self._current.owner if self._current else None

    @property
    def is_bound(self) -> bool:
        return self._current is not None

    def bind(
        self,
        owner: Any,
        on_begin: GestureHandler,
        on_end: GestureHandler,
        on_stop: Callable[[], None],
    ) -> None:
        """
        Register *owner*'s handlers.

        Raises:
            ListenerConflictError: If any owner is already bound.
        """
        if self._current is not None:
            raise ListenerConflictError(self._current.owner, owner)
        reg = _Registration(owner, on_begin, on_end, on_stop)
        self._detector.add_begin_listener(reg.on_begin)
        self._detector.add_end_listener(reg.on_end)
        self._stop_signal.connect(reg.on_stop)
        self._current = reg
        _log.debug("binding", "bound", {"owner": repr(owner)})

    def unbind(self, owner: Any) -> None:
        """Remove *owner*'s handlers. No-op if *owner* is not the one bound."""
        reg = self._current
        if reg is None or reg.owner is not owner:
            return
        self._detector.remove_begin_listener(reg.on_begin)
        self._detector.remove_end_listener(reg.on_end)
        self._stop_signal.disconnect(reg.on_stop)
        self._current = None
        _log.debug("binding", "unbound", {"owner": repr(owner)})
