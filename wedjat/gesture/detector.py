"""
wedjat/gesture/detector.py — The detector facade seen by the rest of Wedjat.

:class:`Detector` exposes the gesture-source capability interface
(begin/end listeners and ``set_mode``) and holds one concrete
:class:`~wedjat.gesture.base.GestureSource`. Selecting another source replaces
the held implementation: registered listeners and the current mode carry over.
"""

from __future__ import annotations

from typing import Callable, Optional

from wedjat.core.constants import DETECTOR_STATUS, DetectorMode
from wedjat.core.events import Signal
from wedjat.core.i18n import capitalize, localize
from wedjat.core.logger import get_logger
from wedjat.gesture.base import GestureEvent, GestureKind, GestureSource

_log = get_logger()

SourceFactory = Callable[[], GestureSource]
GestureListener = Callable[[GestureEvent], None]


class UnknownSourceError(KeyError):
    """Raised when selecting a gesture source that was never registered."""


class Detector:
    """
    Gesture-source holder with a stable listener interface.

    Args:
        factories: Optional initial ``{name: factory}`` registry.

    Signals:
        mode_changed(mode): After every :meth:`set_mode`.
        source_changed(name): After :meth:`select` swaps the implementation.
    """

    def __init__(self, factories: Optional[dict[str, SourceFactory]] = None) -> None:
        self._factories: dict[str, SourceFactory] = dict(factories or {})
        self._source: Optional[GestureSource] = None
        self._source_name: Optional[str] = None
        self._mode: DetectorMode = DetectorMode.IDLE

        self._begin = Signal("gesture_begin")
        self._end = Signal("gesture_end")
        self.mode_changed = Signal("detector_mode_changed")
        self.source_changed = Signal("detector_source_changed")

    # ── Source registry ───────────────────────────────────────

    def register_source(self, name: str, factory: SourceFactory) -> None:
        """Make *factory* selectable under *name*."""
        self._factories[name] = factory

    @property
    def source_names(self) -> list[str]:
        return sorted(self._factories)

    @property
    def source(self) -> Optional[GestureSource]:
        return self._source

    @property
    def source_name(self) -> Optional[str]:
        return self._source_name

    def select(self, name: str) -> GestureSource:
        """
        Replace the active gesture source with a new instance of *name*.

        Args:
            name: Registered source name.

        Returns:
            The new source.

        Raises:
            UnknownSourceError: If *name* is not registered.
        """
        if name not in self._factories:
            raise UnknownSourceError(name)
        previous = self._source
        if previous is not None:
            previous.shutdown()

        source = self._factories[name]()
        source.attach(self._deliver)
        source.set_mode(self._mode)
        self._source = source
        self._source_name = name
        _log.info("detector", "source_selected", {
            "source": name,
            "previous": previous.name if previous else None,
            "mode": self._mode.value,
        })
        self.source_changed.emit(name)
        return source

    # ── Listener interface ────────────────────────────────────

    def add_begin_listener(self, listener: GestureListener) -> None:
        self._begin.connect(listener)

    def remove_begin_listener(self, listener: GestureListener) -> None:
        self._begin.disconnect(listener)

    def add_end_listener(self, listener: GestureListener) -> None:
        self._end.connect(listener)

    def remove_end_listener(self, listener: GestureListener) -> None:
        self._end.disconnect(listener)

    @property
    def listener_counts(self) -> tuple[int, int]:
        """``(begin, end)`` listener counts."""
        return self._begin.listener_count, self._end.listener_count

    # ── Mode ──────────────────────────────────────────────────

    @property
    def mode(self) -> DetectorMode:
        return self._mode

    def set_mode(self, mode: DetectorMode) -> None:
        """Set idle / listening / scanning on the active source."""
        self._mode = mode
        if self._source is not None:
            self._source.set_mode(mode)
        _log.info("detector", "mode", {"mode": mode.value})
        self.mode_changed.emit(mode)

    def idle_mode(self) -> None:
        self.set_mode(DetectorMode.IDLE)

    def listen_mode(self) -> None:
        self.set_mode(DetectorMode.LISTENING)

    def scan_mode(self) -> None:
        self.set_mode(DetectorMode.SCANNING)

    def status_text(self, language: str) -> str:
        """Localized, capitalized status text for the current mode."""
        return capitalize(localize(DETECTOR_STATUS[self._mode], language))

    def shutdown(self) -> None:
        if self._source is not None:
            self._source.shutdown()
            self._source = None

    # ── Delivery ──────────────────────────────────────────────

    def _deliver(self, event: GestureEvent) -> None:
        if event.kind is GestureKind.BEGIN:
            self._begin.emit(event)
        else:
            self._end.emit(event)
