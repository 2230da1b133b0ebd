"""
wedjat/gesture/key.py — Key-hold gesture source.

Holding the configured key (Shift by default) is the gesture. Mainly for
debugging and for users who can press a switch. The UI forwards Tk
``<KeyPress>`` / ``<KeyRelease>`` events through :meth:`KeyGestureSource.on_key_press`
and :meth:`KeyGestureSource.on_key_release`.
"""

from __future__ import annotations

import logging
from typing import Iterable

from wedjat.core.constants import DetectorMode
from wedjat.core.loop import EventLoop
from wedjat.gesture.base import GestureSource

logger = logging.getLogger(__name__)

# Tk event.state bits for Control, Alt (Mod1 on X11, 0x20000 on Windows) and Super/Meta
_MODIFIER_MASK: int = 0x0004 | 0x0008 | 0x0040 | 0x20000


class KeyGestureSource(GestureSource):
    """
    Emits begin on key press and end on key release.

    Presses combined with Control, Alt or Meta are ignored, as are
    auto-repeat presses while the key is already held.

    Args:
        loop: Event loop receiving the events.
        keys: Tk keysyms that count as the gesture key.
    """

    name = "key"

    def __init__(self, loop: EventLoop, keys: Iterable[str] = ("Shift_L", "Shift_R")) -> None:
        super().__init__(loop)
        self._keys = frozenset(keys)
        self._held = False
        logger.info("KeyGestureSource initialised (keys=%s)", sorted(self._keys))

    @property
    def held(self) -> bool:
        return self._held

    def on_key_press(self, keysym: str, state: int = 0) -> None:
        """Forward a key press (Tk ``event.keysym`` and ``event.state``)."""
        if not self._counts(keysym, state) or self._held:
            return
        self._held = True
        self._emit_begin()

    def on_key_release(self, keysym: str, state: int = 0) -> None:
        """Forward a key release."""
        if not self._counts(keysym, state) or not self._held:
            return
        self._held = False
        self._emit_end()

    def _counts(self, keysym: str, state: int) -> bool:
        if self.mode is DetectorMode.IDLE:
            return False
        return keysym in self._keys and not (state & _MODIFIER_MASK)

    def _apply_mode(self, mode: DetectorMode) -> None:
        if mode is DetectorMode.IDLE:
            self._held = False
