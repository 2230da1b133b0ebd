"""
tests/test_controller.py — Idle/listen controller around the scan engine.

Run:  pytest tests/test_controller.py -v
"""

from __future__ import annotations

import pytest

from conftest import ScanHarness, make_harness
from wedjat.core.constants import MSG_LISTENING, MSG_STOPPING, DetectorMode, LoopBehavior
from wedjat.scan.controller import ScanController


class ControllerHarness:
    """Scan harness plus a controller over a repeating two-item root menu."""

    def __init__(self) -> None:
        self.h: ScanHarness = make_harness()
        self.root = self.h.menu("root", ["a", "b"], loop_behavior=LoopBehavior.REPEAT)
        self.controller = ScanController(
            self.h.loop, self.h.engine, self.h.detector, self.h.binding,
            self.h.speaker, self.root,
        )

    def listens(self) -> bool:
        return (
            self.controller.listening
            and self.h.binding.owner is self.controller
            and self.h.detector.mode is DetectorMode.LISTENING
        )


@pytest.fixture
def ch() -> ControllerHarness:
    return ControllerHarness()


class TestListening:

    def test_listen_announces_and_binds(self, ch: ControllerHarness) -> None:
        ch.controller.listen()

        assert ch.h.speaker.announced == [MSG_LISTENING]
        assert ch.listens()
        assert ch.h.detector.listener_counts == (1, 1)

    def test_short_gesture_is_ignored(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.h.gesture(100, 600)
        ch.h.at(10000)

        assert ch.listens()
        assert not ch.h.engine.is_scanning
        assert ch.h.speaker.cues == []

    def test_noise_is_ignored(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.h.gesture(100, 150)

        assert ch.listens()
        assert not ch.h.engine.is_scanning

    def test_long_gaze_cues_then_starts_scanning(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.h.begin(0)
        ch.h.at(1999)
        assert ch.h.speaker.cues == []
        ch.h.at(2000)
        assert ch.h.speaker.cues == [(2000.0, 300, 250)]
        assert not ch.h.engine.is_scanning

        ch.h.end(2100)

        assert not ch.controller.listening
        assert ch.h.engine.path == ["root"]
        assert ch.h.binding.owner is ch.h.engine.session
        assert ch.h.detector.mode is DetectorMode.SCANNING
        assert ch.root.buttons[0].announce_times == [2100.0]

    def test_cue_cancelled_when_gesture_ends_early(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.h.gesture(0, 1500)
        ch.h.at(5000)

        assert ch.h.speaker.cues == []


class TestScanCycle:

    def _enter_scan(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.h.gesture(0, 2100)
        assert ch.h.engine.is_scanning

    def test_loop_limit_exit_returns_to_listening(self, ch: ControllerHarness) -> None:
        self._enter_scan(ch)
        ch.h.at(20000)

        assert not ch.h.engine.is_scanning
        assert ch.listens()
        assert ch.h.speaker.announced == [MSG_LISTENING, MSG_LISTENING]

    def test_long_gaze_in_root_returns_to_listening(self, ch: ControllerHarness) -> None:
        self._enter_scan(ch)
        ch.h.gesture(2500, 4600)

        assert not ch.h.engine.is_scanning
        assert ch.listens()
        assert [b.activations for b in ch.root.buttons] == [0, 0]

    def test_selection_keeps_scanning(self, ch: ControllerHarness) -> None:
        self._enter_scan(ch)
        ch.h.gesture(2200, 2700)       # "a" under point

        assert ch.root.buttons[0].activations == 1
        assert ch.h.engine.is_scanning
        assert not ch.controller.listening

    def test_cycle_repeats(self, ch: ControllerHarness) -> None:
        self._enter_scan(ch)
        ch.h.gesture(2500, 4600)
        ch.h.gesture(5000, 7100)

        assert ch.h.engine.path == ["root"]
        assert ch.h.binding.owner is ch.h.engine.session


class TestStopAndStart:

    def test_stop_while_listening_goes_idle(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.h.begin(100)
        ch.h.stop_signal.emit()

        assert ch.h.speaker.announced == [MSG_LISTENING, MSG_STOPPING]
        assert ch.h.detector.mode is DetectorMode.IDLE
        assert not ch.controller.listening
        assert not ch.h.binding.is_bound
        assert ch.h.loop.pending_timers == 0

    def test_start_signal_resumes_listening(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.h.stop_signal.emit()
        ch.controller.start_signal.emit()

        assert ch.listens()
        assert ch.h.speaker.announced == [MSG_LISTENING, MSG_STOPPING, MSG_LISTENING]

    def test_start_ignored_while_listening(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.controller.start_signal.emit()

        assert ch.h.speaker.announced == [MSG_LISTENING]
        assert ch.listens()

    def test_start_ignored_while_scanning(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.h.gesture(0, 2100)
        ch.controller.start_signal.emit()

        assert ch.h.speaker.announced == [MSG_LISTENING]
        assert ch.h.binding.owner is ch.h.engine.session

    def test_stop_during_scan_then_start(self, ch: ControllerHarness) -> None:
        ch.controller.listen()
        ch.h.gesture(0, 2100)
        ch.h.stop_signal.emit()
        ch.h.at(20000)

        assert not ch.h.engine.is_scanning
        assert ch.h.detector.mode is DetectorMode.IDLE
        assert not ch.controller.listening

        ch.controller.start_signal.emit()
        assert ch.listens()
