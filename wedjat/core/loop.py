"""
wedjat/core/loop.py — Single-threaded event loops driving the scanner.

Every scan-state mutation happens on the loop thread. Worker threads (camera
polling, TTS, HTTP, SMTP) hand results back with :meth:`EventLoop.post`,
which is the only thread-safe entry point.

Three interchangeable loops share one interface:

``RealtimeLoop``
    Heap of timers plus a thread-safe inbox, run in the calling thread.
    Used by the headless runner.

``TkLoop``
    Timers map onto ``root.after``; the inbox is pumped every 10 ms.
    Used by the Tkinter window.

``ManualLoop``
    Virtual clock advanced explicitly with :meth:`ManualLoop.advance`.
    Used by the tests and by the ``--virtual-time`` demo runner.
"""

from __future__ import annotations

import heapq
import itertools
import queue
import time
from typing import Any, Callable, Optional

from wedjat.core.logger import get_logger

_log = get_logger()

Callback = Callable[[], Any]

# Tk inbox pump interval (ms)
_TK_PUMP_MS: int = 10

# Longest a RealtimeLoop blocks on its inbox without a due timer (s)
_MAX_IDLE_WAIT_S: float = 0.1


class TimerHandle:
    """
    A scheduled callback. :meth:`cancel` is idempotent.

    Attributes:
        when_ms: Loop time at which the callback is due.
    """

    __slots__ = ("when_ms", "callback", "cancelled", "fired")

    def __init__(self, when_ms: float, callback: Callback) -> None:
        self.when_ms = when_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        """Prevent the callback from running if it has not run yet."""
        self.cancelled = True

    @property
    def active(self) -> bool:
        """True while the callback is still due to run."""
        return not (self.cancelled or self.fired)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "fired" if self.fired else "pending"
        return f"<TimerHandle when={self.when_ms:.1f} {state}>"


class EventLoop:
    """Interface shared by all loops."""

    def now_ms(self) -> float:
        """Current loop time in milliseconds."""
        raise NotImplementedError

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        """Run *callback* after *delay_ms*. Loop thread only."""
        raise NotImplementedError

    def call_soon(self, callback: Callback) -> TimerHandle:
        """Run *callback* on the next loop iteration. Loop thread only."""
        return self.call_later(0.0, callback)

    def post(self, callback: Callback) -> None:
        """Thread-safe: run *callback* on the loop thread as soon as possible."""
        raise NotImplementedError

    def run(self) -> None:
        """Process timers and posted callbacks until :meth:`stop`."""
        raise NotImplementedError

    def stop(self) -> None:
        """Make :meth:`run` return."""
        raise NotImplementedError

    @staticmethod
    def _invoke(callback: Callback) -> None:
        try:
            callback()
        except Exception as exc:  # noqa: BLE001
            _log.error("loop", "callback_error", {
                "callback": getattr(callback, "__qualname__", repr(callback)),
                "error": repr(exc),
            })


# ──────────────────────────────────────────────────────────────
# Heap-based loops
# ──────────────────────────────────────────────────────────────

class _HeapLoop(EventLoop):
    """Timer heap and inbox shared by :class:`RealtimeLoop` and :class:`ManualLoop`."""

    def __init__(self) -> None:
        self._timers: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._inbox: queue.SimpleQueue[Callback] = queue.SimpleQueue()
        self._running = False

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(self.now_ms() + max(0.0, delay_ms), callback)
        heapq.heappush(self._timers, (handle.when_ms, next(self._seq), handle))
        return handle

    def post(self, callback: Callback) -> None:
        self._inbox.put(callback)

    @property
    def pending_timers(self) -> int:
        """Number of timers that are still due to run."""
        return sum(1 for _, _, h in self._timers if h.active)

    def _next_due(self) -> Optional[float]:
        while self._timers and not self._timers[0][2].active:
            heapq.heappop(self._timers)
        return self._timers[0][0] if self._timers else None

    def _drain_inbox(self) -> None:
        while True:
            try:
                callback = self._inbox.get_nowait()
            except queue.Empty:
                return
            self._invoke(callback)

    def _fire_next(self) -> None:
        _, _, handle = heapq.heappop(self._timers)
        if handle.active:
            handle.fired = True
            self._invoke(handle.callback)


class RealtimeLoop(_HeapLoop):
    """Wall-clock loop run in the calling thread (headless mode)."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def run(self) -> None:
        self._running = True
        _log.info("loop", "realtime_started", {})
        while self._running:
            self._drain_inbox()
            due = self._next_due()
            now = self.now_ms()
            if due is not None and due <= now:
                self._fire_next()
                continue
            wait_s = _MAX_IDLE_WAIT_S if due is None else min(_MAX_IDLE_WAIT_S, (due - now) / 1000.0)
            try:
                callback = self._inbox.get(timeout=max(0.0, wait_s))
            except queue.Empty:
                continue
            self._invoke(callback)
        _log.info("loop", "realtime_stopped", {})

    def stop(self) -> None:
        self._running = False
        self.post(lambda: None)


class ManualLoop(_HeapLoop):
    """
    Deterministic loop with a virtual clock.

    Time only moves when :meth:`advance` is called; timers fire in due order
    and the clock reads exactly each timer's due time while it runs.

    Args:
        start_ms: Initial virtual time.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        super().__init__()
        self._now = start_ms

    def now_ms(self) -> float:
        return self._now

    def advance(self, delta_ms: float) -> None:
        """Move the clock forward by *delta_ms*, firing every timer that falls due."""
        target = self._now + max(0.0, delta_ms)
        while True:
            self._drain_inbox()
            due = self._next_due()
            if due is None or due > target:
                break
            self._now = max(self._now, due)
            self._fire_next()
        self._now = target
        self._drain_inbox()

    def run_pending(self) -> None:
        """Fire callbacks due at the current instant (``call_soon`` work)."""
        self.advance(0.0)

    def run(self, duration_ms: Optional[float] = None) -> None:
        """
        Run until :meth:`stop`, until no timers remain, or for *duration_ms*.

        Args:
            duration_ms: Optional virtual-time budget.
        """
        self._running = True
        deadline = None if duration_ms is None else self._now + duration_ms
        while self._running:
            self._drain_inbox()
            due = self._next_due()
            if due is None or (deadline is not None and due > deadline):
                break
            self.advance(due - self._now)
        if deadline is not None and self._running:
            self._now = max(self._now, deadline)
        self._running = False

    def stop(self) -> None:
        self._running = False


# ──────────────────────────────────────────────────────────────
# Tkinter loop
# ──────────────────────────────────────────────────────────────

class _TkTimerHandle(TimerHandle):
    __slots__ = ("after_id", "_root")

    def __init__(self, when_ms: float, callback: Callback, root: Any) -> None:
        super().__init__(when_ms, callback)
        self.after_id: Optional[str] = None
        self._root = root

    def cancel(self) -> None:
        if self.active and self.after_id is not None:
            try:
                self._root.after_cancel(self.after_id)
            except Exception:  # noqa: BLE001
                pass
        super().cancel()


class TkLoop(EventLoop):
    """
    Loop backed by a Tk root's ``after`` queue.

    Args:
        root: A ``tkinter.Tk`` instance.
    """

    def __init__(self, root: Any) -> None:
        self._root = root
        self._inbox: queue.SimpleQueue[Callback] = queue.SimpleQueue()
        self._root.after(_TK_PUMP_MS, self._pump)

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        handle = _TkTimerHandle(self.now_ms() + max(0.0, delay_ms), callback, self._root)

        def _fire() -> None:
            if handle.active:
                handle.fired = True
                self._invoke(callback)

        handle.after_id = self._root.after(max(0, int(round(delay_ms))), _fire)
        return handle

    def post(self, callback: Callback) -> None:
        self._inbox.put(callback)

    def run(self) -> None:
        self._root.mainloop()

    def stop(self) -> None:
        self._root.quit()

    def _pump(self) -> None:
        while True:
            try:
                callback = self._inbox.get_nowait()
            except queue.Empty:
                break
            self._invoke(callback)
        self._root.after(_TK_PUMP_MS, self._pump)
