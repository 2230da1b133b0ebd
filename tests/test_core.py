"""
tests/test_core.py — Loop, signals, completions, gaze timing, listener binding,
settings and localization.

Run:  pytest tests/test_core.py -v
"""

from __future__ import annotations

import threading

import pytest

from wedjat.core.config import WedjatConfig
from wedjat.core.constants import C, DetectorMode
from wedjat.core.events import Signal
from wedjat.core.i18n import capitalize, localize
from wedjat.core.loop import ManualLoop
from wedjat.core.settings import Settings
from wedjat.gesture.detector import Detector
from wedjat.scan.binding import ListenerBinding, ListenerConflictError
from wedjat.scan.completion import Completion
from wedjat.scan.gaze import GazeKind, GazeTimer, classify_gaze


# ──────────────────────────────────────────────────────────────
# ManualLoop
# ──────────────────────────────────────────────────────────────

class TestManualLoop:

    def test_timers_fire_in_due_order(self, loop: ManualLoop) -> None:
        fired: list[tuple[str, float]] = []
        loop.call_later(300, lambda: fired.append(("c", loop.now_ms())))
        loop.call_later(100, lambda: fired.append(("a", loop.now_ms())))
        loop.call_later(200, lambda: fired.append(("b", loop.now_ms())))

        loop.advance(1000)

        assert fired == [("a", 100.0), ("b", 200.0), ("c", 300.0)]
        assert loop.now_ms() == 1000.0

    def test_equal_due_times_keep_scheduling_order(self, loop: ManualLoop) -> None:
        fired: list[int] = []
        for i in range(5):
            loop.call_later(50, lambda i=i: fired.append(i))
        loop.advance(50)
        assert fired == [0, 1, 2, 3, 4]

    def test_cancelled_timer_does_not_fire(self, loop: ManualLoop) -> None:
        fired: list[str] = []
        handle = loop.call_later(100, lambda: fired.append("x"))
        handle.cancel()
        handle.cancel()
        loop.advance(500)

        assert fired == []
        assert not handle.active
        assert loop.pending_timers == 0

    def test_call_soon_runs_on_run_pending(self, loop: ManualLoop) -> None:
        fired: list[str] = []
        loop.call_soon(lambda: fired.append("soon"))
        assert fired == []
        loop.run_pending()
        assert fired == ["soon"]

    def test_timer_scheduled_by_timer_fires_in_same_advance(self, loop: ManualLoop) -> None:
        fired: list[float] = []
        loop.call_later(100, lambda: loop.call_later(100, lambda: fired.append(loop.now_ms())))
        loop.advance(250)
        assert fired == [200.0]

    def test_posted_callbacks_run_before_timers(self, loop: ManualLoop) -> None:
        order: list[str] = []
        loop.call_later(0, lambda: order.append("timer"))
        loop.post(lambda: order.append("posted"))
        loop.run_pending()
        assert order == ["posted", "timer"]

    def test_post_from_another_thread(self, loop: ManualLoop) -> None:
        fired: list[str] = []
        worker = threading.Thread(target=lambda: loop.post(lambda: fired.append("worker")))
        worker.start()
        worker.join()
        loop.run_pending()
        assert fired == ["worker"]

    def test_callback_error_does_not_stop_the_loop(self, loop: ManualLoop) -> None:
        fired: list[str] = []

        def boom() -> None:
            raise RuntimeError("boom")

        loop.call_later(10, boom)
        loop.call_later(20, lambda: fired.append("after"))
        loop.advance(100)
        assert fired == ["after"]

    def test_run_with_budget_stops_at_deadline(self, loop: ManualLoop) -> None:
        fired: list[float] = []
        loop.call_later(100, lambda: fired.append(loop.now_ms()))
        loop.call_later(5000, lambda: fired.append(loop.now_ms()))
        loop.run(1000)
        assert fired == [100.0]
        assert loop.now_ms() == 1000.0

    def test_run_until_stop(self, loop: ManualLoop) -> None:
        fired: list[float] = []

        def tick() -> None:
            fired.append(loop.now_ms())
            if len(fired) == 3:
                loop.stop()
            else:
                loop.call_later(100, tick)

        loop.call_later(100, tick)
        loop.run()
        assert fired == [100.0, 200.0, 300.0]


# ──────────────────────────────────────────────────────────────
# Signal
# ──────────────────────────────────────────────────────────────

class TestSignal:

    def test_listeners_called_in_order(self) -> None:
        sig = Signal("s")
        calls: list[tuple[str, int]] = []
        sig.connect(lambda v: calls.append(("a", v)))
        sig.connect(lambda v: calls.append(("b", v)))
        sig.emit(7)
        assert calls == [("a", 7), ("b", 7)]

    def test_failing_listener_is_isolated(self) -> None:
        sig = Signal("s")
        calls: list[str] = []

        def bad() -> None:
            raise ValueError("bad")

        sig.connect(bad)
        sig.connect(lambda: calls.append("good"))
        sig.emit()
        assert calls == ["good"]

    def test_listener_removed_during_emit_is_skipped(self) -> None:
        sig = Signal("s")
        calls: list[str] = []

        def second() -> None:
            calls.append("second")

        def first() -> None:
            calls.append("first")
            sig.disconnect(second)

        sig.connect(first)
        sig.connect(second)
        sig.emit()
        assert calls == ["first"]
        assert sig.listener_count == 1

    def test_disconnect_unknown_is_ignored(self) -> None:
        sig = Signal("s")
        sig.disconnect(print)
        assert sig.listener_count == 0


# ──────────────────────────────────────────────────────────────
# Completion
# ──────────────────────────────────────────────────────────────

class TestCompletion:

    def test_callbacks_run_after_resolve_via_loop(self, loop: ManualLoop) -> None:
        completion = Completion(loop, "x")
        calls: list[str] = []
        completion.add_done_callback(lambda: calls.append("done"))

        assert completion.resolve() is True
        assert calls == []
        loop.run_pending()
        assert calls == ["done"]

    def test_second_resolve_is_ignored(self, loop: ManualLoop) -> None:
        completion = Completion(loop)
        calls: list[str] = []
        completion.add_done_callback(lambda: calls.append("done"))
        completion.resolve()
        assert completion.resolve() is False
        loop.run_pending()
        assert calls == ["done"]

    def test_callback_added_after_resolve_still_runs(self, loop: ManualLoop) -> None:
        completion = Completion.done(loop, "already")
        calls: list[str] = []
        completion.add_done_callback(lambda: calls.append("late"))
        assert calls == []
        loop.run_pending()
        assert calls == ["late"]


# ──────────────────────────────────────────────────────────────
# Gaze classification and cue timer
# ──────────────────────────────────────────────────────────────

class TestGaze:

    @pytest.mark.parametrize("elapsed, kind", [
        (0.0, GazeKind.NOISE),
        (199.9, GazeKind.NOISE),
        (200.0, GazeKind.SHORT),
        (1999.9, GazeKind.SHORT),
        (2000.0, GazeKind.LONG),
        (60000.0, GazeKind.LONG),
    ])
    def test_classify_boundaries(self, elapsed: float, kind: GazeKind) -> None:
        assert classify_gaze(elapsed, 200.0, 2000.0) is kind

    def test_cue_fires_at_long_mark(self, loop: ManualLoop) -> None:
        cues: list[float] = []
        timer = GazeTimer(loop, 2000.0, lambda: cues.append(loop.now_ms()))
        timer.start(0.0)
        loop.advance(1999)
        assert cues == []
        loop.advance(1)
        assert cues == [2000.0]
        assert timer.stop(2500.0) == 2500.0

    def test_cue_relative_to_begin_timestamp(self, loop: ManualLoop) -> None:
        cues: list[float] = []
        timer = GazeTimer(loop, 2000.0, lambda: cues.append(loop.now_ms()))
        loop.advance(700)
        timer.start(200.0)
        loop.advance(2000)
        assert cues == [2200.0]

    def test_stop_before_mark_cancels_cue(self, loop: ManualLoop) -> None:
        cues: list[float] = []
        timer = GazeTimer(loop, 2000.0, lambda: cues.append(loop.now_ms()))
        timer.start(0.0)
        loop.advance(500)
        assert timer.stop(500.0) == 500.0
        loop.advance(5000)
        assert cues == []
        assert not timer.cue_pending

    def test_stop_without_start(self, loop: ManualLoop) -> None:
        timer = GazeTimer(loop, 2000.0, lambda: None)
        assert timer.stop(100.0) is None


# ──────────────────────────────────────────────────────────────
# Listener binding
# ──────────────────────────────────────────────────────────────

class TestListenerBinding:

    def _binding(self) -> tuple[Detector, Signal, ListenerBinding]:
        detector = Detector()
        stop = Signal("stop")
        return detector, stop, ListenerBinding(detector, stop)

    def test_second_owner_is_rejected(self) -> None:
        detector, stop, binding = self._binding()
        noop = lambda *_: None  # noqa: E731
        binding.bind("first", noop, noop, noop)

        with pytest.raises(ListenerConflictError) as info:
            binding.bind("second", noop, noop, noop)

        assert info.value.current == "first"
        assert info.value.requested == "second"
        assert detector.listener_counts == (1, 1)
        assert stop.listener_count == 1

    def test_unbind_by_other_owner_is_a_no_op(self) -> None:
        detector, stop, binding = self._binding()
        noop = lambda *_: None  # noqa: E731
        binding.bind("first", noop, noop, noop)
        binding.unbind("second")
        assert binding.owner == "first"

    def test_unbind_removes_every_handler(self) -> None:
        detector, stop, binding = self._binding()
        noop = lambda *_: None  # noqa: E731
        binding.bind("first", noop, noop, noop)
        binding.unbind("first")

        assert not binding.is_bound
        assert detector.listener_counts == (0, 0)
        assert stop.listener_count == 0
        binding.bind("second", noop, noop, noop)
        assert binding.owner == "second"

    def test_stop_reaches_bound_owner(self) -> None:
        _, stop, binding = self._binding()
        noop = lambda *_: None  # noqa: E731
        stops: list[str] = []
        binding.bind("first", noop, noop, lambda: stops.append("stop"))
        stop.emit()
        assert stops == ["stop"]


# ──────────────────────────────────────────────────────────────
# Settings and localization
# ──────────────────────────────────────────────────────────────

class TestSettings:

    def test_initial_values_from_config(self) -> None:
        settings = Settings(WedjatConfig())
        assert settings.scan_speed_ms == C.DEFAULT_SCAN_SPEED_MS
        assert settings.language == "en"
        assert settings.layout == "AGNT"
        assert settings.use_sound is True

    @pytest.mark.parametrize("requested, stored", [
        (-50.0, 0.0),
        (1500.0, 1500.0),
        (9999.0, C.MAX_SCAN_SPEED_MS),
    ])
    def test_scan_speed_is_clamped(self, requested: float, stored: float) -> None:
        settings = Settings()
        settings.set_scan_speed(requested)
        assert settings.scan_speed_ms == stored

    def test_language_change_is_signalled_once(self) -> None:
        settings = Settings()
        seen: list[str] = []
        settings.language_changed.connect(seen.append)
        settings.set_language("fr")
        settings.set_language("fr")
        assert seen == ["fr"]

    def test_unknown_language_is_rejected(self) -> None:
        settings = Settings()
        with pytest.raises(ValueError, match="language"):
            settings.set_language("de")
        assert settings.language == "en"

    def test_layout_change_is_signalled(self) -> None:
        settings = Settings()
        seen: list[str] = []
        settings.layout_changed.connect(seen.append)
        settings.set_layout("Fast")
        assert seen == ["Fast"]

    def test_store_email_account(self) -> None:
        settings = Settings()
        assert not settings.email.is_complete
        settings.store_email_account("Ann", "ann@example.org", "secret")
        assert settings.email.is_complete
        assert settings.email.signature == "Ann"

    def test_toggle_show_menu(self) -> None:
        settings = Settings()
        seen: list[bool] = []
        settings.show_menu_changed.connect(seen.append)
        settings.toggle_show_menu()
        settings.toggle_show_menu()
        assert seen == [False, True]
        assert settings.show_menu is True

    @pytest.mark.parametrize("requested, stored", [
        (2, C.MIN_BUFFER_FONT_SIZE),
        (48, 48),
        (500, C.MAX_BUFFER_FONT_SIZE),
    ])
    def test_buffer_font_size_is_clamped(self, requested: int, stored: int) -> None:
        settings = Settings()
        seen: list[int] = []
        settings.buffer_font_size_changed.connect(seen.append)
        settings.set_buffer_font_size(requested)
        assert settings.buffer_font_size == stored
        assert seen == [stored]

    def test_unchanged_font_size_is_not_signalled(self) -> None:
        settings = Settings()
        seen: list[int] = []
        settings.buffer_font_size_changed.connect(seen.append)
        settings.set_buffer_font_size(settings.buffer_font_size)
        assert seen == []


class TestLocalization:

    def test_plain_string_is_returned_as_is(self) -> None:
        assert localize("hello", "fr") == "hello"

    def test_language_lookup(self) -> None:
        assert localize({"en": "stop", "fr": "arrêt"}, "fr") == "arrêt"

    def test_missing_language_falls_back_to_english(self) -> None:
        assert localize({"en": "stop"}, "fr") == "stop"

    def test_missing_everything_is_empty(self) -> None:
        assert localize({"fr": "arrêt"}, "de") == ""

    def test_capitalize_keeps_the_rest(self) -> None:
        assert capitalize("hello World") == "Hello World"
        assert capitalize("") == ""

    def test_detector_status_text(self) -> None:
        detector = Detector()
        assert detector.status_text("en") == "Idle"
        detector.set_mode(DetectorMode.SCANNING)
        assert detector.status_text("fr") == "Balayage"
