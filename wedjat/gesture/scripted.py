"""
wedjat/gesture/scripted.py — Scripted gesture source for demos and tests.

Plays a fixed sequence of ``(delay_ms, hold_ms)`` steps on the event loop:
wait *delay_ms*, begin a gesture, hold it for *hold_ms*, end it. Playback
starts when the source leaves idle mode and is cancelled when it returns to
idle, so a stop mid-script behaves like a user letting go.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from wedjat.core.constants import DetectorMode
from wedjat.core.loop import EventLoop, TimerHandle
from wedjat.gesture.base import GestureSource

logger = logging.getLogger(__name__)

Step = tuple[float, float]

# Named demo scripts for the headless runner. Timings assume the default
# 2000 ms scan speed and the default board.
DEMO_SCRIPTS: dict[str, list[Step]] = {
    # long gaze to start, pick Row 1, pick "a", then let the sweeps run out
    "select": [(500.0, 2300.0), (2600.0, 500.0), (300.0, 500.0)],
    # long gaze to start, long gaze to leave the main menu again
    "exit": [(500.0, 2300.0), (1000.0, 2300.0)],
    # short blips only: everything is noise
    "noise": [(500.0, 100.0), (400.0, 150.0), (400.0, 50.0)],
}


def parse_script(text: str) -> list[Step]:
    """
    Parse ``"delay:hold, delay:hold, ..."`` into steps.

    Raises:
        ValueError: On malformed entries or negative times.
    """
    steps: list[Step] = []
    for chunk in text.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        delay_s, sep, hold_s = chunk.partition(":")
        if not sep:
            raise ValueError(f"Script step {chunk!r} is not 'delay:hold'")
        delay, hold = float(delay_s), float(hold_s)
        if delay < 0 or hold < 0:
            raise ValueError(f"Script step {chunk!r} has a negative time")
        steps.append((delay, hold))
    return steps


class ScriptedGestureSource(GestureSource):
    """
    Replays gesture steps on the loop clock.

    Args:
        loop: Event loop receiving the events.
        steps: ``(delay_ms, hold_ms)`` pairs, played in order.
        on_finished: Called after the last gesture ends.
    """

    name = "scripted"

    def __init__(
        self,
        loop: EventLoop,
        steps: Sequence[Step] = (),
        on_finished: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__(loop)
        self._steps = list(steps)
        self._on_finished = on_finished
        self._index = 0
        self._timer: Optional[TimerHandle] = None
        self._playing = False
        self._holding = False

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def remaining(self) -> int:
        return len(self._steps) - self._index

    def _apply_mode(self, mode: DetectorMode) -> None:
        if mode is DetectorMode.IDLE:
            self._cancel()
        elif not self._playing and self._index < len(self._steps):
            self._playing = True
            logger.info("Script playback started (%d steps)", self.remaining)
            self._schedule_next()

    def _schedule_next(self) -> None:
        if self._index >= len(self._steps):
            self._playing = False
            logger.info("Script playback finished")
            if self._on_finished is not None:
                self._on_finished()
            return
        delay, _ = self._steps[self._index]
        self._timer = self._loop.call_later(delay, self._begin)

    def _begin(self) -> None:
        _, hold = self._steps[self._index]
        self._holding = True
        self._emit_begin()
        self._timer = self._loop.call_later(hold, self._end)

    def _end(self) -> None:
        self._holding = False
        self._index += 1
        self._emit_end()
        self._schedule_next()

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._holding:
            # the interrupted step is dropped
            self._holding = False
            self._index += 1
        self._playing = False
