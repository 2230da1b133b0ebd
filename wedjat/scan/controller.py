"""
wedjat/scan/controller.py — Idle/listen controller, the program's outer cycle.

While listening, only a long gaze does anything: it starts a scan of the root
menu. Every exit of that top-level scan (loop limit, long gaze) returns here
and listening resumes. An external stop while listening goes idle; the
``start_signal`` (Start button, F2) brings the controller back to listening.
"""

from __future__ import annotations

from typing import Any, Optional

from wedjat.core.config import CueConfig, ScanConfig
from wedjat.core.constants import MSG_LISTENING, MSG_STOPPING
from wedjat.core.events import Signal
from wedjat.core.logger import get_logger
from wedjat.core.loop import EventLoop
from wedjat.gesture.base import GestureEvent
from wedjat.gesture.detector import Detector
from wedjat.scan.binding import ListenerBinding
from wedjat.scan.engine import ScanEngine
from wedjat.scan.gaze import GazeKind, GazeTimer, classify_gaze

_log = get_logger()


class ScanController:
    """
    Gates entry into scanning.

    Args:
        loop: Event loop for the cue timer.
        engine: Scan engine running the menus.
        detector: Gesture source facade.
        binding: Listener binding shared with the engine.
        speaker: Provides ``announce`` and ``cue``.
        root_menu: Menu scanned after a long gaze.
        scan_config: Gesture thresholds.
        cue_config: Long-gaze cue tone.
    """

    def __init__(
        self,
        loop: EventLoop,
        engine: ScanEngine,
        detector: Detector,
        binding: ListenerBinding,
        speaker: Any,
        root_menu: Any,
        scan_config: Optional[ScanConfig] = None,
        cue_config: Optional[CueConfig] = None,
    ) -> None:
        self._loop = loop
        self._engine = engine
        self._detector = detector
        self._binding = binding
        self._speaker = speaker
        self.root_menu = root_menu
        self._scan_cfg = scan_config or ScanConfig()
        self._cue_cfg = cue_config or CueConfig()
        self._gaze = GazeTimer(loop, self._scan_cfg.long_gaze_ms, self._on_cue)
        self._listening = False

        self.start_signal = Signal("start")
        self.start_signal.connect(self._on_start_requested)

    @property
    def listening(self) -> bool:
        return self._listening

    # ── Public API ────────────────────────────────────────────

    def listen(self) -> None:
        """Announce, put the detector in listening mode and wait for a long gaze."""
        self._speaker.announce(MSG_LISTENING)
        self._detector.listen_mode()
        self._binding.bind(self, self._on_begin, self._on_end, self._on_stop)
        self._listening = True
        _log.info("controller", "listening", {})

    def scan(self) -> None:
        """Scan the root menu; listening resumes when that scan exits."""
        self._detector.scan_mode()
        _log.info("controller", "scanning", {"menu": self.root_menu.name})
        self._engine.scan_menu(self.root_menu, self.listen)

    # ── Handlers ──────────────────────────────────────────────

    def _on_begin(self, event: GestureEvent) -> None:
        self._gaze.start(event.timestamp_ms)

    def _on_end(self, event: GestureEvent) -> None:
        elapsed = self._gaze.stop(event.timestamp_ms)
        if elapsed is None:
            return
        kind = classify_gaze(elapsed, self._scan_cfg.short_gaze_ms, self._scan_cfg.long_gaze_ms)
        if kind is not GazeKind.LONG:
            return
        self._release()
        self.scan()

    def _on_stop(self) -> None:
        self._speaker.announce(MSG_STOPPING)
        self._release()
        self._detector.idle_mode()
        _log.info("controller", "stopped", {})

    def _on_cue(self) -> None:
        self._speaker.cue(self._cue_cfg.frequency_hz, self._cue_cfg.duration_ms)

    def _on_start_requested(self) -> None:
        if self._listening or self._engine.is_scanning:
            _log.debug("controller", "start_ignored", {
                "listening": self._listening,
                "scanning": self._engine.is_scanning,
            })
            return
        self.listen()

    def _release(self) -> None:
        self._gaze.cancel()
        self._binding.unbind(self)
        self._listening = False
