"""
tests/conftest.py — Shared fakes and fixtures.

Scan timing is exercised on a :class:`ManualLoop`, so every test controls the
clock exactly. Fakes stand in for the speaker, the settings and the board so
the engine tests depend only on the interfaces the engine consumes.
"""

from __future__ import annotations

import os
import tempfile

# The JSONL logger is created on first import; keep test logs out of the repo.
os.environ.setdefault("WEDJAT_LOG_DIR", tempfile.mkdtemp(prefix="wedjat-test-logs-"))

from dataclasses import dataclass, field  # noqa: E402
from typing import Any, Optional  # noqa: E402

import pytest  # noqa: E402

from wedjat.board.menus import MenuInfo  # noqa: E402
from wedjat.core.config import ScanConfig  # noqa: E402
from wedjat.core.constants import LoopBehavior, Visibility  # noqa: E402
from wedjat.core.events import Signal  # noqa: E402
from wedjat.core.loop import ManualLoop  # noqa: E402
from wedjat.gesture.base import GestureSource  # noqa: E402
from wedjat.gesture.detector import Detector  # noqa: E402
from wedjat.scan.binding import ListenerBinding  # noqa: E402
from wedjat.scan.completion import Completion  # noqa: E402
from wedjat.scan.engine import ScanEngine  # noqa: E402


# ──────────────────────────────────────────────────────────────
# Fakes
# ──────────────────────────────────────────────────────────────

class FakeSpeaker:
    """Records announcements, cues and utterances; speech takes no time."""

    def __init__(self, loop: ManualLoop) -> None:
        self._loop = loop
        self.announced: list[Any] = []
        self.cues: list[tuple[float, float, float]] = []
        self.spoken: list[Any] = []

    def announce(self, message: Any) -> None:
        self.announced.append(message)

    def cue(self, freq_hz: float, duration_ms: float) -> None:
        self.cues.append((self._loop.now_ms(), freq_hz, duration_ms))

    def speak_async(self, message: Any, on_done, delay_ms: float = 1000) -> None:
        self.spoken.append(message)
        self._loop.call_later(delay_ms, on_done)


@dataclass
class FakeSettings:
    scan_speed_ms: float = 1000.0
    use_sound: bool = False
    language: str = "en"


class FakeItem:
    """
    Board item double.

    Args:
        loop: Loop used for completions.
        label: Empty label makes the item empty.
        wait_multiplier: Dwell multiplier.
        target: Child menu; makes the item a menu selector.
        auto_resolve: Resolve the completion immediately on activation.
    """

    def __init__(
        self,
        loop: ManualLoop,
        label: str,
        wait_multiplier: float = 1.0,
        target: Any = None,
        auto_resolve: bool = True,
    ) -> None:
        self._loop = loop
        self.label = label
        self.wait_multiplier = wait_multiplier
        self.target = target
        self.auto_resolve = auto_resolve
        self.highlighted = False
        self.announce_times: list[float] = []
        self.activations = 0
        self.completions: list[Completion] = []

    def is_empty(self) -> bool:
        return self.label == ""

    def toggle(self) -> None:
        self.highlighted = not self.highlighted

    def announce(self) -> None:
        self.announce_times.append(self._loop.now_ms())

    def activate(self) -> Completion:
        self.activations += 1
        completion = Completion(self._loop, self.label)
        self.completions.append(completion)
        if self.auto_resolve:
            completion.resolve()
        return completion

    def is_menu_selector(self) -> bool:
        return self.target is not None

    def resolve_target_menu(self) -> Any:
        return self.target

    def __repr__(self) -> str:
        return f"<FakeItem {self.label!r}>"


class FakeMenu:
    """Menu double recording visibility changes in a shared event log."""

    def __init__(
        self,
        name: str,
        buttons: list[FakeItem],
        loop_behavior: LoopBehavior = LoopBehavior.RETURN_TO_CALLER,
        visibility: Visibility = Visibility.ALWAYS_VISIBLE,
        events: Optional[list[str]] = None,
    ) -> None:
        self.name = name
        self.buttons = buttons
        self.info = MenuInfo(name, loop_behavior, visibility)
        self.visible = visibility is Visibility.ALWAYS_VISIBLE
        self.events = events if events is not None else []

    @property
    def n_buttons(self) -> int:
        return len(self.buttons)

    def slide_up(self) -> None:
        self.visible = False
        self.events.append(f"{self.name}:slide_up")

    def slide_down(self) -> None:
        self.visible = True
        self.events.append(f"{self.name}:slide_down")


class ManualGestureSource(GestureSource):
    """Gesture source driven directly by the test."""

    name = "manual"

    def begin(self) -> None:
        self._emit_begin()

    def end(self) -> None:
        self._emit_end()


# ──────────────────────────────────────────────────────────────
# Harness
# ──────────────────────────────────────────────────────────────

@dataclass
class ScanHarness:
    loop: ManualLoop
    detector: Detector
    stop_signal: Signal
    binding: ListenerBinding
    speaker: FakeSpeaker
    settings: FakeSettings
    engine: ScanEngine
    completions: list[float] = field(default_factory=list)

    @property
    def source(self) -> ManualGestureSource:
        source = self.detector.source
        assert isinstance(source, ManualGestureSource)
        return source

    def at(self, t_ms: float) -> None:
        """Advance the clock to absolute time *t_ms*."""
        self.loop.advance(t_ms - self.loop.now_ms())

    def begin(self, t_ms: float) -> None:
        self.at(t_ms)
        self.source.begin()
        self.loop.run_pending()

    def end(self, t_ms: float) -> None:
        self.at(t_ms)
        self.source.end()
        self.loop.run_pending()

    def gesture(self, begin_ms: float, end_ms: float) -> None:
        self.begin(begin_ms)
        self.end(end_ms)

    def on_complete(self) -> None:
        self.completions.append(self.loop.now_ms())

    def item(self, label: str, **kwargs: Any) -> FakeItem:
        return FakeItem(self.loop, label, **kwargs)

    def menu(self, name: str, labels: list[str], **kwargs: Any) -> FakeMenu:
        return FakeMenu(name, [self.item(label) for label in labels], **kwargs)


def make_harness(scan_config: Optional[ScanConfig] = None) -> ScanHarness:
    loop = ManualLoop()
    detector = Detector({"manual": lambda: ManualGestureSource(loop)})
    detector.select("manual")
    stop_signal = Signal("stop")
    binding = ListenerBinding(detector, stop_signal)
    speaker = FakeSpeaker(loop)
    settings = FakeSettings()
    engine = ScanEngine(
        loop, detector, binding, speaker, settings,
        scan_config=scan_config or ScanConfig(scan_speed_ms=1000.0),
    )
    return ScanHarness(loop, detector, stop_signal, binding, speaker, settings, engine)


@pytest.fixture
def loop() -> ManualLoop:
    return ManualLoop()


@pytest.fixture
def harness() -> ScanHarness:
    return make_harness()
