"""
wedjat/gesture/base.py — Gesture events and the gesture source interface.

A gesture source turns some physical signal (camera frames, a held key, a
script) into discrete ``BEGIN`` / ``END`` events. Events are stamped with the
loop clock when they occur and delivered on the loop thread through
:meth:`~wedjat.core.loop.EventLoop.post`, so sources may run on any thread.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Optional

from wedjat.core.constants import DetectorMode
from wedjat.core.loop import EventLoop


class GestureKind(enum.Enum):
    """Edge of a gesture."""

    BEGIN = "BEGIN"
    END = "END"


@dataclass(frozen=True)
class GestureEvent:
    """
    A gesture edge.

    Attributes:
        kind: ``BEGIN`` or ``END``.
        timestamp_ms: Loop time at which the edge occurred.
    """

    kind: GestureKind
    timestamp_ms: float


GestureSink = Callable[[GestureEvent], None]


class GestureSource:
    """
    Base class for gesture source implementations.

    Subclasses call :meth:`_emit_begin` / :meth:`_emit_end` and react to mode
    changes in :meth:`_apply_mode`. A source only delivers events while it is
    attached to a sink (normally the :class:`~wedjat.gesture.detector.Detector`).

    Args:
        loop: Event loop that receives the events.
    """

    #: Registry name, overridden by subclasses.
    name: str = "generic"

    def __init__(self, loop: EventLoop) -> None:
        self._loop = loop
        self._sink: Optional[GestureSink] = None
        self._mode: DetectorMode = DetectorMode.IDLE

    # ── Wiring ────────────────────────────────────────────────

    def attach(self, sink: GestureSink) -> None:
        """Deliver future events to *sink*."""
        self._sink = sink

    def detach(self) -> None:
        """Stop delivering events and go idle."""
        self.set_mode(DetectorMode.IDLE)
        self._sink = None

    # ── Mode ──────────────────────────────────────────────────

    @property
    def mode(self) -> DetectorMode:
        return self._mode

    def set_mode(self, mode: DetectorMode) -> None:
        """Switch between idle, listening and scanning."""
        self._mode = mode
        self._apply_mode(mode)

    def _apply_mode(self, mode: DetectorMode) -> None:
        """Hook for subclasses (start/stop polling, change rates)."""

    # ── Emission ──────────────────────────────────────────────

    def _emit_begin(self) -> None:
        self._emit(GestureKind.BEGIN)

    def _emit_end(self) -> None:
        self._emit(GestureKind.END)

    def _emit(self, kind: GestureKind) -> None:
        sink = self._sink
        if sink is None:
            return
        event = GestureEvent(kind=kind, timestamp_ms=self._loop.now_ms())
        self._loop.post(lambda: sink(event))

    def shutdown(self) -> None:
        """Release any device the source holds."""
        self.detach()
