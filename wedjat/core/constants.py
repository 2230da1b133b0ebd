"""
wedjat/core/constants.py — All system constants for Wedjat.

Single frozen dataclass with typed constant groups: scan timing, gesture
thresholds, tone cues, board geometry, plus the shared enums used by the
scan engine, the detector and the board model.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


# ──────────────────────────────────────────────────────────────
# Enums
# ──────────────────────────────────────────────────────────────

class DetectorMode(Enum):
    """Lifecycle mode of the gesture source."""

    IDLE = "idle"
    LISTENING = "listening"
    SCANNING = "scanning"


class ScanState(Enum):
    """States of a single menu scan (one :class:`~wedjat.scan.engine.ScanSession`)."""

    READY = "READY"
    STEPPING = "STEPPING"
    AWAITING_GESTURE_END = "AWAITING_GESTURE_END"
    ACTIVATING = "ACTIVATING"
    TERMINATED = "TERMINATED"


class ScanEvent(Enum):
    """Inputs to the scan session transition table."""

    START = "START"
    STEP_TIMEOUT = "STEP_TIMEOUT"
    GESTURE_BEGIN = "GESTURE_BEGIN"
    GESTURE_END = "GESTURE_END"
    LONG_GAZE_CUE = "LONG_GAZE_CUE"
    STOP = "STOP"
    WATCHDOG = "WATCHDOG"


class LoopBehavior(Enum):
    """What a menu does after one of its items finishes."""

    REPEAT = "repeat"
    RETURN_TO_CALLER = "return"


class Visibility(Enum):
    """Whether a menu is always shown or slides open only while in use."""

    ALWAYS_VISIBLE = "always"
    COLLAPSIBLE = "collapsible"


# ──────────────────────────────────────────────────────────────
# Frozen constants dataclass
# ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class WedjatConstants:
    """
    Frozen dataclass holding all Wedjat system constants.

    Use the class attributes directly — do not instantiate this class.

    Example::

        from wedjat.core.constants import WedjatConstants as C

        print(C.LONG_GAZE_MS)   # 2000.0
    """

    # ── Scanning ──────────────────────────────────────────────
    LOOP_LIMIT: ClassVar[int] = 2
    """Full sweeps over a menu without a selection before the scan exits."""

    SHORT_GAZE_MS: ClassVar[float] = 200.0
    """Gestures shorter than this are noise."""

    LONG_GAZE_MS: ClassVar[float] = 2000.0
    """Gestures at least this long exit the current menu (or start scanning)."""

    DEFAULT_SCAN_SPEED_MS: ClassVar[float] = 2000.0
    """Initial time each item stays under point."""

    MAX_SCAN_SPEED_MS: ClassVar[float] = 3000.0
    """Upper end of the scan speed slider."""

    # ── Tones (frequency Hz, duration ms) ────────────────────
    LONG_GAZE_CUE_HZ: ClassVar[int] = 300
    LONG_GAZE_CUE_MS: ClassVar[int] = 250

    CALL_BELL_HZ: ClassVar[int] = 400
    CALL_BELL_MS: ClassVar[int] = 2000
    CALL_BELL_AFTER_MS: ClassVar[int] = 1000

    READ_BEEP_HZ: ClassVar[int] = 350
    READ_BEEP_MS: ClassVar[int] = 1000
    READ_AFTER_BEEP_MS: ClassVar[int] = 1000
    READ_AFTER_SPEECH_MS: ClassVar[int] = 2000

    SPEECH_DEFAULT_DELAY_MS: ClassVar[int] = 1000
    """Pause after an asynchronous utterance before its callback runs."""

    NOT_IMPLEMENTED_PAUSE_MS: ClassVar[int] = 500

    # ── Board geometry ────────────────────────────────────────
    LETTER_COLUMNS: ClassVar[int] = 7
    N_GUESSES: ClassVar[int] = 8
    N_RECIPIENTS: ClassVar[int] = 8
    EMAIL_WAIT_MULTIPLIER: ClassVar[int] = 2

    # ── Buffer ────────────────────────────────────────────────
    CURSOR: ClassVar[str] = "_"
    MIN_BUFFER_FONT_SIZE: ClassVar[int] = 8
    MAX_BUFFER_FONT_SIZE: ClassVar[int] = 120

    # ── Camera detector ───────────────────────────────────────
    FRAME_WIDTH: ClassVar[int] = 160
    FRAME_HEIGHT: ClassVar[int] = 120
    REFRESH_HZ_LISTEN: ClassVar[float] = 5.0
    REFRESH_HZ_SCAN: ClassVar[float] = 20.0

    # ── Languages ─────────────────────────────────────────────
    LANGUAGES: ClassVar[tuple[str, ...]] = ("en", "fr")
    DEFAULT_LANGUAGE: ClassVar[str] = "en"


#: Convenience alias: ``from wedjat.core.constants import C``
C = WedjatConstants


# ── Localized messages spoken by the core ───────────────────────────────────

MSG_LISTENING: dict[str, str] = {"en": "listening.", "fr": "écoute"}
MSG_STOPPING: dict[str, str] = {"en": "stopping.", "fr": "arrêt"}
MSG_NOT_IMPLEMENTED: dict[str, str] = {"en": "Not implemented.", "fr": "Pas mis en œuvre"}
MSG_ERROR: dict[str, str] = {"en": "An error ocurred.", "fr": "une erreur est survenue"}

DETECTOR_STATUS: dict[DetectorMode, dict[str, str]] = {
    DetectorMode.IDLE: {"en": "idle", "fr": "repos"},
    DetectorMode.LISTENING: {"en": "listening", "fr": "écoute"},
    DetectorMode.SCANNING: {"en": "scanning", "fr": "balayage"},
}
"""Status-bar text per detector mode and language."""
