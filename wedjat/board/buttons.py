"""
wedjat/board/buttons.py — Selectable board items.

Every button type is a class registered under a type tag with
:func:`register_button`; board definitions refer to buttons by tag and
:func:`make_button` dispatches on it.

Activating a button speaks its announcement first (when sound is on) and then
runs its :meth:`Button.action`. Every action ends by resolving the
:class:`~wedjat.scan.completion.Completion` it was given, which is how the
scan engine learns that it may continue.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

from wedjat.core.constants import (
    C,
    MSG_ERROR,
    MSG_NOT_IMPLEMENTED,
    Visibility,
)
from wedjat.core.events import Signal
from wedjat.core.i18n import Message
from wedjat.core.logger import get_logger
from wedjat.core.loop import EventLoop
from wedjat.scan.completion import Completion

if TYPE_CHECKING:
    from wedjat.board.menus import Menu

_log = get_logger()


@dataclass
class BoardContext:
    """Collaborators shared by every button and menu on the board."""

    loop: EventLoop
    speaker: Any
    settings: Any
    buffer: Any
    mailer: Any = None
    guesser: Any = None


BUTTON_TYPES: dict[str, type["Button"]] = {}


def register_button(tag: str) -> Callable[[type["Button"]], type["Button"]]:
    """Class decorator registering a button type under *tag*."""

    def decorator(cls: type["Button"]) -> type["Button"]:
        cls.button_type = tag
        BUTTON_TYPES[tag] = cls
        return cls

    return decorator


def make_button(tag: str, menu: "Menu", ctx: BoardContext, **fields: Any) -> "Button":
    """
    Build a button of type *tag*.

    Raises:
        KeyError: If *tag* is not registered.
    """
    return BUTTON_TYPES[tag](menu, ctx, **fields)


# ──────────────────────────────────────────────────────────────
# Base button
# ──────────────────────────────────────────────────────────────

class Button:
    """
    A selectable item on a menu.

    Args:
        menu: Owning menu.
        ctx: Shared collaborators.
        label: Displayed text; an empty label makes the button empty.
        announcement: Spoken instead of the label when given.
        wait_multiplier: Scan dwell multiplier (``>= 1``).

    Signals:
        changed(button): Label or highlight changed.
    """

    button_type: str = "generic"
    default_wait_multiplier: float = 1.0

    def __init__(
        self,
        menu: "Menu",
        ctx: BoardContext,
        label: str = "",
        announcement: Optional[Message] = None,
        wait_multiplier: Optional[float] = None,
    ) -> None:
        self.menu = menu
        self.ctx = ctx
        self._label = label
        self._announcement = announcement
        self.wait_multiplier = float(wait_multiplier or self.default_wait_multiplier)
        self.highlighted = False
        self.changed = Signal(f"button_changed:{menu.name}")

    # ── Display ───────────────────────────────────────────────

    @property
    def label(self) -> str:
        return self._label

    def set_label(self, label: str) -> None:
        if label != self._label:
            self._label = label
            self.changed.emit(self)

    def is_empty(self) -> bool:
        return self._label == ""

    def toggle(self) -> None:
        """Switch the highlight on or off."""
        self.highlighted = not self.highlighted
        self.changed.emit(self)

    # ── Speech ────────────────────────────────────────────────

    def get_announcement(self) -> Message:
        return self._announcement if self._announcement is not None else self._label

    def announce(self) -> None:
        """Speak the button's name (when sound is on)."""
        if self.ctx.settings.use_sound:
            self.ctx.speaker.announce(self.get_announcement())

    # ── Activation ────────────────────────────────────────────

    def activate(self) -> Completion:
        """
        Speak the announcement (when sound is on), then run the action.

        Returns:
            Completion resolved when the action finishes.
        """
        completion = Completion(self.ctx.loop, f"{self.menu.name}:{self.button_type}:{self._label}")
        if self.ctx.settings.use_sound:
            self.ctx.speaker.speak_async(
                self.get_announcement(), lambda: self._run(completion), delay_ms=0
            )
        else:
            self._run(completion)
        return completion

    def _run(self, completion: Completion) -> None:
        try:
            self.action(completion)
        except Exception as exc:  # noqa: BLE001
            _log.error("board", "action_failed", {
                "menu": self.menu.name,
                "button": self._label,
                "type": self.button_type,
                "error": repr(exc),
            })
            completion.resolve()

    def action(self, completion: Completion) -> None:
        """Perform the button's behavior and resolve *completion*."""
        raise NotImplementedError

    # ── Menu selection ────────────────────────────────────────

    def is_menu_selector(self) -> bool:
        return False

    def resolve_target_menu(self) -> Optional["Menu"]:
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.menu.name}:{self._label!r}>"


# ──────────────────────────────────────────────────────────────
# Text buttons
# ──────────────────────────────────────────────────────────────

@register_button("letter")
class TextButton(Button):
    """Writes its text to the buffer under its own type tag as category."""

    def __init__(self, menu: "Menu", ctx: BoardContext, label: str = "", **fields: Any) -> None:
        super().__init__(menu, ctx, **fields)
        self.set_text(label)

    def set_text(self, text: str) -> None:
        self.set_label(text.upper())

    def get_text(self) -> str:
        return self.label.lower()

    @property
    def text_category(self) -> str:
        return self.button_type

    def action(self, completion: Completion) -> None:
        self.ctx.buffer.write(self.get_text(), self.text_category)
        completion.resolve()


@register_button("non_terminal_punctuation")
class NonTerminalPunctuationButton(TextButton):
    pass


@register_button("terminal_punctuation")
class TerminalPunctuationButton(TextButton):
    pass


@register_button("space")
class SpaceButton(TextButton):
    """Writes a space; its label is only for display."""

    def set_text(self, text: str) -> None:
        self.set_label(text)

    def get_text(self) -> str:
        return " "


@register_button("guess")
class GuessButton(TextButton):
    """Writes a whole word; empty while there is no guess."""

    @property
    def text_category(self) -> str:
        return "word"


# ──────────────────────────────────────────────────────────────
# Action buttons
# ──────────────────────────────────────────────────────────────

@register_button("buffer_action")
class BufferActionButton(Button):
    """Runs a buffer action (``read``, ``delete``, ``clear``)."""

    def __init__(self, menu: "Menu", ctx: BoardContext, action: str = "", **fields: Any) -> None:
        super().__init__(menu, ctx, **fields)
        self.action_name = action

    def action(self, completion: Completion) -> None:
        done = self.ctx.buffer.execute_action(self.action_name)
        done.add_done_callback(completion.resolve)


@register_button("menu_selector")
class MenuSelectorButton(Button):
    """Opens another menu, which the scanner then descends into."""

    def __init__(self, menu: "Menu", ctx: BoardContext, target: str = "", **fields: Any) -> None:
        super().__init__(menu, ctx, **fields)
        self.target = target

    def is_menu_selector(self) -> bool:
        return True

    def resolve_target_menu(self) -> "Menu":
        return self.menu.registry[self.target]

    def action(self, completion: Completion) -> None:
        target = self.resolve_target_menu()
        if target.info.visibility is Visibility.COLLAPSIBLE:
            target.slide_down()
        completion.resolve()


@register_button("call_bell")
class CallBellButton(Button):
    """Sounds a tone to call a caretaker."""

    def action(self, completion: Completion) -> None:
        self.ctx.speaker.cue(C.CALL_BELL_HZ, C.CALL_BELL_MS)
        self.ctx.loop.call_later(C.CALL_BELL_MS + C.CALL_BELL_AFTER_MS, completion.resolve)
        _log.info("board", "call_bell", {})


@register_button("email")
class EmailButton(Button):
    """Sends the buffer text to one stored recipient."""

    default_wait_multiplier = float(C.EMAIL_WAIT_MULTIPLIER)

    def __init__(self, menu: "Menu", ctx: BoardContext, **fields: Any) -> None:
        super().__init__(menu, ctx, **fields)
        self.addresses: tuple[str, ...] = ()

    def set_recipient(self, name: str, addresses: Sequence[str]) -> None:
        self.addresses = tuple(addresses)
        self.set_label(name)

    def action(self, completion: Completion) -> None:
        mailer = self.ctx.mailer
        name, addresses, body = self.label, self.addresses, self.ctx.buffer.text

        def finish(error: Optional[BaseException]) -> None:
            if error is None:
                message: Message = {"en": f"Message sent to {name}", "fr": f"Message envoyé à {name}"}
            else:
                message = MSG_ERROR
            self.ctx.speaker.speak_async(message, completion.resolve)

        if mailer is None or not addresses:
            _log.warn("board", "email_unavailable", {"recipient": name})
            finish(RuntimeError("no mailer or recipient"))
            return

        def worker() -> None:
            error: Optional[BaseException] = None
            try:
                mailer.send(addresses, body)
            except Exception as exc:  # noqa: BLE001
                error = exc
                _log.error("board", "email_failed", {"recipient": name, "error": repr(exc)})
            self.ctx.loop.post(lambda: finish(error))

        threading.Thread(target=worker, name="email-send", daemon=True).start()


@register_button("not_implemented")
class NotImplementedButton(Button):
    """Placeholder for a feature that does not exist yet."""

    def action(self, completion: Completion) -> None:
        self.ctx.speaker.speak_async(
            MSG_NOT_IMPLEMENTED, completion.resolve, delay_ms=C.NOT_IMPLEMENTED_PAUSE_MS
        )
