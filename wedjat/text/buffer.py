"""
wedjat/text/buffer.py — The text the user is composing.

Buttons write into the buffer through :meth:`TextBuffer.write`, which
dispatches on a text category (letter, word, punctuation, ...), and run
actions through :meth:`TextBuffer.execute_action`, which returns a
:class:`~wedjat.scan.completion.Completion` because reading the text aloud
takes time.

Capitalization and spacing rules
--------------------------------
* A letter at the start of a sentence is capitalized. A sentence starts at
  the beginning of the buffer or after terminal punctuation followed by a
  space.
* A whole word (from a guess) replaces the partial word being typed and is
  followed by a space.
* Terminal punctuation removes the space a guessed word left behind (unless
  that space itself follows a sentence end), then adds its own space.
"""

from __future__ import annotations

import re
from typing import Any, Callable

from wedjat.core.constants import C
from wedjat.core.events import Signal
from wedjat.core.i18n import capitalize
from wedjat.core.logger import get_logger
from wedjat.core.loop import EventLoop
from wedjat.scan.completion import Completion

_log = get_logger()

_TERMINAL_PUNCTUATION = re.compile(r"[.!?]")

#: Text categories accepted by :meth:`TextBuffer.write`.
CATEGORIES: tuple[str, ...] = (
    "letter",
    "space",
    "word",
    "non_terminal_punctuation",
    "terminal_punctuation",
)

#: Action names accepted by :meth:`TextBuffer.execute_action`.
ACTIONS: tuple[str, ...] = ("delete", "read", "clear")


class TextBuffer:
    """
    Composed text plus the editing rules that apply to it.

    Args:
        loop: Event loop for completions and the read-aloud delays.
        speaker: Provides ``cue`` and ``speak_async``.

    Signals:
        changed(text): After every write, delete and clear.
    """

    def __init__(self, loop: EventLoop, speaker: Any) -> None:
        self._loop = loop
        self._speaker = speaker
        self._text = ""
        self.changed = Signal("buffer_changed")

        self._writers: dict[str, Callable[[str], None]] = {
            "letter": self._write_letter,
            "space": lambda _text: self._write_space(),
            "word": self._write_word,
            "non_terminal_punctuation": self._push,
            "terminal_punctuation": self._write_terminal_punctuation,
        }
        self._actions: dict[str, Callable[[Completion], None]] = {
            "delete": self._delete,
            "read": self._read,
            "clear": self._clear,
        }

    # ── Reading ───────────────────────────────────────────────

    @property
    def text(self) -> str:
        """The composed text, without the cursor."""
        return self._text

    @property
    def display_text(self) -> str:
        """The composed text followed by the cursor."""
        return self._text + C.CURSOR

    def is_word_start(self) -> bool:
        return self._text == "" or self._text.endswith(" ")

    def is_sentence_start(self) -> bool:
        text = self._text
        return text == "" or (
            text.endswith(" ") and _TERMINAL_PUNCTUATION.search(text[-2:]) is not None
        )

    # ── Writing ───────────────────────────────────────────────

    def write(self, text: str, category: str) -> None:
        """
        Write *text* using the rules for *category*.

        Raises:
            ValueError: If *category* is unknown.
        """
        writer = self._writers.get(category)
        if writer is None:
            raise ValueError(f"Unknown text category: {category!r}")
        writer(text)
        self._emit_change()

    def _push(self, text: str) -> None:
        self._text += text

    def _pop(self) -> None:
        self._text = self._text[:-1]

    def _write_letter(self, text: str) -> None:
        self._push(capitalize(text) if self.is_sentence_start() else text)

    def _write_space(self) -> None:
        self._push(" ")

    def _write_word(self, text: str) -> None:
        while not self.is_word_start():
            self._pop()
        self._push(capitalize(text) if self.is_sentence_start() else text)
        self._write_space()

    def _write_terminal_punctuation(self, text: str) -> None:
        if self.is_word_start() and not self.is_sentence_start():
            self._pop()
        self._push(text)
        self._write_space()

    # ── Actions ───────────────────────────────────────────────

    def execute_action(self, name: str) -> Completion:
        """
        Run the buffer action *name*.

        Returns:
            A completion resolved when the action has finished.

        Raises:
            ValueError: If *name* is unknown.
        """
        action = self._actions.get(name)
        if action is None:
            raise ValueError(f"Unknown buffer action: {name!r}")
        completion = Completion(self._loop, f"buffer:{name}")
        action(completion)
        return completion

    def _delete(self, completion: Completion) -> None:
        self._pop()
        self._emit_change()
        completion.resolve()

    def _clear(self, completion: Completion) -> None:
        self._text = ""
        self._emit_change()
        completion.resolve()

    def _read(self, completion: Completion) -> None:
        self._speaker.cue(C.READ_BEEP_HZ, C.READ_BEEP_MS)

        def after_beep() -> None:
            self._speaker.speak_async(self._text, completion.resolve, delay_ms=C.READ_AFTER_SPEECH_MS)

        self._loop.call_later(C.READ_BEEP_MS + C.READ_AFTER_BEEP_MS, after_beep)
        _log.info("buffer", "read", {"chars": len(self._text)})

    def _emit_change(self) -> None:
        self.changed.emit(self._text)
