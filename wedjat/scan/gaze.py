"""
wedjat/scan/gaze.py — Gesture duration classification and the long-gaze cue timer.

Shared by the scan engine and the idle/listen controller, which both measure
a gesture from its begin event to its end event and warn the user audibly
once the gesture has lasted long enough to count as a long gaze.
"""

from __future__ import annotations

import enum
from typing import Callable, Optional

from wedjat.core.loop import EventLoop, TimerHandle


class GazeKind(enum.Enum):
    """Meaning of a finished gesture."""

    NOISE = "noise"
    SHORT = "short"
    LONG = "long"


def classify_gaze(elapsed_ms: float, short_ms: float, long_ms: float) -> GazeKind:
    """
    Classify a gesture by its duration.

    Args:
        elapsed_ms: Time between gesture begin and end.
        short_ms: Shortest duration that counts as a selection.
        long_ms: Shortest duration that counts as a long gaze.

    Returns:
        ``NOISE`` below *short_ms*, ``LONG`` from *long_ms* on, else ``SHORT``.
    """
    if elapsed_ms < short_ms:
        return GazeKind.NOISE
    if elapsed_ms < long_ms:
        return GazeKind.SHORT
    return GazeKind.LONG


class GazeTimer:
    """
    Tracks one gesture in progress and arms the long-gaze cue.

    The cue is scheduled relative to the begin event's timestamp, so a begin
    event delivered late still cues at the long-gaze mark.

    Args:
        loop: Event loop providing the clock and timers.
        long_ms: Gesture duration at which *on_cue* fires.
        on_cue: Called once if the gesture is still ongoing at *long_ms*.
    """

    def __init__(self, loop: EventLoop, long_ms: float, on_cue: Callable[[], None]) -> None:
        self._loop = loop
        self._long_ms = long_ms
        self._on_cue = on_cue
        self._start_ms: Optional[float] = None
        self._cue: Optional[TimerHandle] = None

    @property
    def start_ms(self) -> Optional[float]:
        """Timestamp of the gesture in progress, or ``None``."""
        return self._start_ms

    @property
    def cue_pending(self) -> bool:
        return self._cue is not None and self._cue.active

    def start(self, timestamp_ms: float) -> None:
        """Record a gesture begin. A repeated begin restarts the measurement."""
        self.cancel()
        self._start_ms = timestamp_ms
        delay = self._long_ms - (self._loop.now_ms() - timestamp_ms)
        self._cue = self._loop.call_later(max(0.0, delay), self._fire)

    def stop(self, timestamp_ms: float) -> Optional[float]:
        """
        Record a gesture end.

        Returns:
            Elapsed time in ms, or ``None`` if no gesture was in progress.
        """
        start = self._start_ms
        self.cancel()
        if start is None:
            return None
        return max(0.0, timestamp_ms - start)

    def cancel(self) -> None:
        """Forget the gesture in progress and disarm the cue."""
        if self._cue is not None:
            self._cue.cancel()
            self._cue = None
        self._start_ms = None

    def _fire(self) -> None:
        self._cue = None
        self._on_cue()
