"""
wedjat/scan/engine.py — The scanning protocol.

:meth:`ScanEngine.scan_menu` sweeps a menu's items on a timer, interprets
gesture edges, and ends each sweep with exactly one outcome: an item is
activated, the sweep exits (loop limit or long gaze), or an external stop
tears everything down.

Each sweep is a :class:`ScanSession`, an explicit state object driven by
:data:`_TRANSITIONS`. Menu nesting is an explicit stack of :class:`ScanFrame`
``(menu, continuation)`` entries: descending into a child menu pushes a
frame, and a child's terminal exit pops it and runs the continuation through
``call_soon``, so the Python call stack stays flat however deep menus nest or
however many times a repeating menu restarts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from wedjat.core.config import CueConfig, ScanConfig
from wedjat.core.constants import (
    MSG_STOPPING,
    LoopBehavior,
    ScanEvent,
    ScanState,
    Visibility,
)
from wedjat.core.events import Signal
from wedjat.core.logger import get_logger
from wedjat.core.loop import EventLoop, TimerHandle
from wedjat.gesture.base import GestureEvent
from wedjat.gesture.detector import Detector
from wedjat.scan.binding import ListenerBinding
from wedjat.scan.completion import Completion
from wedjat.scan.gaze import GazeKind, GazeTimer, classify_gaze

_log = get_logger()


@dataclass
class ScanFrame:
    """A menu being scanned and what to run when its scan exits."""

    menu: Any
    continuation: Callable[[], None]


# ──────────────────────────────────────────────────────────────
# Scan session
# ──────────────────────────────────────────────────────────────

class ScanSession:
    """
    State of one sweep over one menu.

    Created by :class:`ScanEngine`; not meant to be built directly.

    Attributes:
        state: Current :class:`~wedjat.core.constants.ScanState`.
        item_index: Index of the item under point.
        loop_index: Completed full sweeps.
        current_item: Item under point (highlighted while stepping).
        gaze_item: Item that was under point when the last gesture began.
        gesture_start_ms: Timestamp of the gesture in progress.
    """

    def __init__(self, engine: "ScanEngine", frame: ScanFrame) -> None:
        self._engine = engine
        self._loop = engine.loop
        self.frame = frame
        self.menu = frame.menu

        self.state: ScanState = ScanState.READY
        self.item_index: int = 0
        self.loop_index: int = 0
        self.current_item: Any = None
        self.gaze_item: Any = None
        self.gesture_start_ms: Optional[float] = None

        self._step_timer: Optional[TimerHandle] = None
        self._watchdog: Optional[TimerHandle] = None
        self._completion: Optional[Completion] = None
        self._gaze = GazeTimer(
            self._loop,
            engine.scan_config.long_gaze_ms,
            lambda: self.dispatch(ScanEvent.LONG_GAZE_CUE),
        )

    # ── Dispatch ──────────────────────────────────────────────

    def dispatch(self, event: ScanEvent, payload: Any = None) -> None:
        """Feed *event* through the transition table."""
        handler = _TRANSITIONS.get((self.state, event))
        if handler is None:
            _log.debug("scan", "event_ignored", {
                "menu": self.menu.name,
                "state": self.state.value,
                "event": event.value,
            })
            return
        handler(self, payload)

    @property
    def step_timer_pending(self) -> bool:
        return self._step_timer is not None and self._step_timer.active

    @property
    def cue_pending(self) -> bool:
        return self._gaze.cue_pending

    # ── Handlers ──────────────────────────────────────────────

    def _on_start(self, _payload: Any) -> None:
        self._engine.binding.bind(
            self,
            on_begin=lambda event: self.dispatch(ScanEvent.GESTURE_BEGIN, event),
            on_end=lambda event: self.dispatch(ScanEvent.GESTURE_END, event),
            on_stop=lambda: self.dispatch(ScanEvent.STOP),
        )
        self.state = ScanState.STEPPING
        _log.info("scan", "sweep_started", {"menu": self.menu.name, "path": self._engine.path})
        self._step()

    def _on_step_timeout(self, _payload: Any) -> None:
        self._step_timer = None
        item = self.current_item
        if item is not None and item.highlighted:
            item.toggle()
        n = len(self.menu.buttons)
        if self.item_index >= n - 1:
            self.loop_index += 1
        self.item_index = (self.item_index + 1) % n
        self._step()

    def _on_gesture_begin(self, event: GestureEvent) -> None:
        self.gaze_item = self.current_item
        self.gesture_start_ms = event.timestamp_ms
        self._gaze.start(event.timestamp_ms)
        self.state = ScanState.AWAITING_GESTURE_END

    def _on_long_gaze_cue(self, _payload: Any) -> None:
        cue = self._engine.cue_config
        self._engine.speaker.cue(cue.frequency_hz, cue.duration_ms)

    def _on_gesture_end(self, event: GestureEvent) -> None:
        elapsed = self._gaze.stop(event.timestamp_ms)
        cfg = self._engine.scan_config
        kind = classify_gaze(elapsed or 0.0, cfg.short_gaze_ms, cfg.long_gaze_ms)
        if kind is GazeKind.NOISE:
            # sweep continues untouched
            self.state = ScanState.STEPPING
            return

        self._cancel_step_timer()
        current = self.current_item
        if current is not self.gaze_item and current.highlighted:
            current.toggle()

        _log.info("scan", "gesture", {
            "menu": self.menu.name,
            "kind": kind.value,
            "elapsed_ms": elapsed,
            "item": getattr(self.gaze_item, "label", None),
        })
        if kind is GazeKind.SHORT:
            self._activate(self.gaze_item)
        else:
            if self.gaze_item is not None and self.gaze_item.highlighted:
                self.gaze_item.toggle()
            self._terminate("long_gaze")

    def _on_stop(self, _payload: Any) -> None:
        self.state = ScanState.TERMINATED
        self._engine.binding.unbind(self)
        item = self.current_item
        if item is not None and item.highlighted:
            item.toggle()
        self._cancel_timers()
        self._engine.detector.idle_mode()
        self._engine.speaker.announce(MSG_STOPPING)
        _log.info("scan", "stopped", {"menu": self.menu.name, "item_index": self.item_index})
        self._engine._session_stopped(self)

    def _on_watchdog(self, _payload: Any) -> None:
        self._watchdog = None
        _log.warn("scan", "activation_timeout", {
            "menu": self.menu.name,
            "item": getattr(self.gaze_item, "label", None),
            "timeout_ms": self._engine.scan_config.activation_timeout_ms,
        })
        if self._completion is not None:
            self._completion.resolve()

    # ── Internals ─────────────────────────────────────────────

    def _step(self) -> None:
        buttons = self.menu.buttons
        n = len(buttons)
        limit = self._engine.scan_config.loop_limit
        if n == 0:
            self.loop_index = limit
        while self.loop_index < limit and buttons[self.item_index].is_empty():
            self.item_index = 0
            self.loop_index += 1
        if self.loop_index >= limit:
            self._terminate("loop_limit")
            return

        item = buttons[self.item_index]
        self.current_item = item
        if not item.highlighted:
            item.toggle()
        item.announce()
        wait_ms = self._engine.settings.scan_speed_ms * item.wait_multiplier
        self._step_timer = self._loop.call_later(
            wait_ms, lambda: self.dispatch(ScanEvent.STEP_TIMEOUT)
        )

    def _activate(self, item: Any) -> None:
        self.state = ScanState.ACTIVATING
        self._engine.binding.unbind(self)
        if item.highlighted:
            item.toggle()

        completion = item.activate()
        self._completion = completion
        timeout = self._engine.scan_config.activation_timeout_ms
        if timeout > 0:
            self._watchdog = self._loop.call_later(
                timeout, lambda: self.dispatch(ScanEvent.WATCHDOG)
            )
        _log.info("scan", "activated", {"menu": self.menu.name, "item": getattr(item, "label", None)})
        completion.add_done_callback(lambda: self._on_activation_done(item))

    def _on_activation_done(self, item: Any) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None
        self._completion = None
        self.state = ScanState.TERMINATED
        self._engine._after_activation(self, item)

    def _terminate(self, reason: str) -> None:
        self.state = ScanState.TERMINATED
        self._cancel_timers()
        self._engine.binding.unbind(self)
        _log.info("scan", "sweep_exit", {
            "menu": self.menu.name,
            "reason": reason,
            "loops": self.loop_index,
        })
        self._engine._complete_frame(self)

    def _cancel_step_timer(self) -> None:
        if self._step_timer is not None:
            self._step_timer.cancel()
            self._step_timer = None

    def _cancel_timers(self) -> None:
        self._cancel_step_timer()
        self._gaze.cancel()
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def __repr__(self) -> str:
        return (
            f"<ScanSession menu={self.menu.name!r} state={self.state.value} "
            f"item={self.item_index} loop={self.loop_index}>"
        )


# ──────────────────────────────────────────────────────────────
# Transition table
# ──────────────────────────────────────────────────────────────

_TRANSITIONS: dict[tuple[ScanState, ScanEvent], Callable[[ScanSession, Any], None]] = {
    (ScanState.READY, ScanEvent.START): ScanSession._on_start,

    (ScanState.STEPPING, ScanEvent.STEP_TIMEOUT): ScanSession._on_step_timeout,
    (ScanState.STEPPING, ScanEvent.GESTURE_BEGIN): ScanSession._on_gesture_begin,
    (ScanState.STEPPING, ScanEvent.STOP): ScanSession._on_stop,

    # The sweep keeps advancing while a gesture is held.
    (ScanState.AWAITING_GESTURE_END, ScanEvent.STEP_TIMEOUT): ScanSession._on_step_timeout,
    (ScanState.AWAITING_GESTURE_END, ScanEvent.GESTURE_BEGIN): ScanSession._on_gesture_begin,
    (ScanState.AWAITING_GESTURE_END, ScanEvent.GESTURE_END): ScanSession._on_gesture_end,
    (ScanState.AWAITING_GESTURE_END, ScanEvent.LONG_GAZE_CUE): ScanSession._on_long_gaze_cue,
    (ScanState.AWAITING_GESTURE_END, ScanEvent.STOP): ScanSession._on_stop,

    (ScanState.ACTIVATING, ScanEvent.WATCHDOG): ScanSession._on_watchdog,
}


# ──────────────────────────────────────────────────────────────
# Engine
# ──────────────────────────────────────────────────────────────

class ScanEngine:
    """
    Runs menu scans and keeps the stack of nested menus.

    Args:
        loop: Event loop for timers and continuations.
        detector: Gesture source facade (set idle on stop).
        binding: Shared listener binding.
        speaker: Provides ``announce(message)`` and ``cue(freq_hz, duration_ms)``.
        settings: Provides ``scan_speed_ms``.
        scan_config: Gesture thresholds, loop limit and activation watchdog.
        cue_config: Long-gaze cue tone.

    Signals:
        path_changed(path): The list of menu names being scanned changed.
    """

    def __init__(
        self,
        loop: EventLoop,
        detector: Detector,
        binding: ListenerBinding,
        speaker: Any,
        settings: Any,
        scan_config: Optional[ScanConfig] = None,
        cue_config: Optional[CueConfig] = None,
    ) -> None:
        self.loop = loop
        self.detector = detector
        self.binding = binding
        self.speaker = speaker
        self.settings = settings
        self.scan_config = scan_config or ScanConfig()
        self.cue_config = cue_config or CueConfig()

        self._frames: list[ScanFrame] = []
        self._session: Optional[ScanSession] = None
        self.path_changed = Signal("scan_path_changed")

    # ── Public API ────────────────────────────────────────────

    def scan_menu(self, menu: Any, on_complete: Callable[[], None]) -> ScanSession:
        """
        Start sweeping *menu*.

        *on_complete* runs once when the sweep exits through the loop limit,
        a long gaze, or (for a return-to-caller menu) after an item finishes.
        It does not run after an external stop.

        Returns:
            The new session.

        Raises:
            ListenerConflictError: If another session or the controller
                still holds the gesture listeners.
        """
        frame = ScanFrame(menu, on_complete)
        self._frames.append(frame)
        return self._start_session(frame)

    @property
    def session(self) -> Optional[ScanSession]:
        """The live session, or ``None`` between sweeps."""
        return self._session

    @property
    def is_scanning(self) -> bool:
        """True from the first ``scan_menu`` until the outermost scan exits."""
        return bool(self._frames)

    @property
    def path(self) -> list[str]:
        """Names of the menus on the scan stack, outermost first."""
        return [frame.menu.name for frame in self._frames]

    # ── Session callbacks ─────────────────────────────────────

    def _start_session(self, frame: ScanFrame) -> ScanSession:
        previous = self._session
        session = ScanSession(self, frame)
        self._session = session
        self.path_changed.emit(self.path)
        try:
            session.dispatch(ScanEvent.START)
        except Exception:
            self._session = previous
            if self._frames and self._frames[-1] is frame:
                self._frames.pop()
            self.path_changed.emit(self.path)
            raise
        return session

    def _complete_frame(self, session: ScanSession) -> None:
        if self._session is session:
            self._session = None
        if self._frames and self._frames[-1] is session.frame:
            self._frames.pop()
        self.path_changed.emit(self.path)
        self.loop.call_soon(session.frame.continuation)

    def _session_stopped(self, session: ScanSession) -> None:
        if self._session is session:
            self._session = None
        # continuations are dropped, so nothing else will collapse open children
        for frame in reversed(self._frames):
            if frame.menu.info.visibility is Visibility.COLLAPSIBLE:
                frame.menu.slide_up()
        self._frames.clear()
        self.path_changed.emit(self.path)

    def _after_activation(self, session: ScanSession, item: Any) -> None:
        if self._session is session:
            self._session = None
        if not self._frames or self._frames[-1] is not session.frame:
            _log.warn("scan", "stale_activation", {"menu": session.menu.name})
            return
        if item.is_menu_selector():
            child = item.resolve_target_menu()
            self._descend(child, lambda: self._resume(session.frame))
        else:
            self._resume(session.frame)

    def _descend(self, child: Any, outer: Callable[[], None]) -> None:
        def after_child() -> None:
            if child.info.visibility is Visibility.COLLAPSIBLE:
                child.slide_up()
            outer()

        frame = ScanFrame(child, after_child)
        self._frames.append(frame)
        self._start_session(frame)

    def _resume(self, frame: ScanFrame) -> None:
        if not self._frames or self._frames[-1] is not frame:
            _log.warn("scan", "stale_resume", {"menu": frame.menu.name})
            return
        if frame.menu.info.loop_behavior is LoopBehavior.REPEAT:
            self._start_session(frame)
            return
        self._frames.pop()
        self.path_changed.emit(self.path)
        self.loop.call_soon(frame.continuation)
