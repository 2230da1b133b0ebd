"""
wedjat/board/menus.py — Menus and the menu registry.

A menu is an ordered list of buttons plus two behaviors: whether scanning
repeats it or returns to the calling menu after a selection, and whether it
is always shown or slides open only while in use. Menus are built once from
a :class:`~wedjat.board.definition.BoardDefinition`; afterwards only button
contents change (letter layout, word guesses, e-mail recipients).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Sequence

from wedjat.board.buttons import BoardContext, Button, EmailButton, TextButton, make_button
from wedjat.board.layout import letters_for_row
from wedjat.core.constants import C, LoopBehavior, Visibility
from wedjat.core.events import Signal
from wedjat.core.logger import get_logger

_log = get_logger()


@dataclass(frozen=True)
class MenuInfo:
    """Static description of a menu's behavior."""

    name: str
    loop_behavior: LoopBehavior
    visibility: Visibility


class Menu:
    """
    Ordered buttons with a loop behavior and a visibility.

    Args:
        name: Unique menu name.
        ctx: Shared collaborators.
        loop_behavior: ``REPEAT`` or ``RETURN_TO_CALLER``.
        visibility: ``ALWAYS_VISIBLE`` or ``COLLAPSIBLE``.
        title: Heading shown by the UI.

    Signals:
        visibility_changed(menu): After :meth:`slide_up` / :meth:`slide_down`.
    """

    kind = "generic"

    def __init__(
        self,
        name: str,
        ctx: BoardContext,
        loop_behavior: LoopBehavior = LoopBehavior.RETURN_TO_CALLER,
        visibility: Visibility = Visibility.ALWAYS_VISIBLE,
        title: str = "",
    ) -> None:
        self.name = name
        self.ctx = ctx
        self.title = title or name
        self._info = MenuInfo(name, loop_behavior, visibility)
        self.buttons: list[Button] = []
        self.visible = visibility is Visibility.ALWAYS_VISIBLE
        self.registry: Optional["MenuRegistry"] = None
        self.visibility_changed = Signal(f"menu_visibility:{name}")

    @property
    def info(self) -> MenuInfo:
        return self._info

    @property
    def n_buttons(self) -> int:
        return len(self.buttons)

    def add_button(self, tag: str, **fields: Any) -> Button:
        button = make_button(tag, self, self.ctx, **fields)
        self.buttons.append(button)
        return button

    def slide_down(self) -> None:
        """Show a collapsible menu."""
        if not self.visible:
            self.visible = True
            self.visibility_changed.emit(self)

    def slide_up(self) -> None:
        """Hide a collapsible menu."""
        if self._info.visibility is Visibility.COLLAPSIBLE and self.visible:
            self.visible = False
            self.visibility_changed.emit(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} buttons={len(self.buttons)}>"


MENU_KINDS: dict[str, type[Menu]] = {}


def register_menu(kind: str):
    def decorator(cls: type[Menu]) -> type[Menu]:
        cls.kind = kind
        MENU_KINDS[kind] = cls
        return cls

    return decorator


register_menu("generic")(Menu)


@register_menu("letter")
class LetterMenu(Menu):
    """One row of letters, refilled when the layout changes."""

    def __init__(self, name: str, ctx: BoardContext, row: int = 1, **kwargs: Any) -> None:
        super().__init__(name, ctx, **kwargs)
        self.row = row
        for _ in range(C.LETTER_COLUMNS):
            self.add_button("letter")
        self.set_letters(ctx.settings.layout)
        ctx.settings.layout_changed.connect(self.set_letters)

    def set_letters(self, layout: str) -> None:
        for button, letter in zip(self.buttons, letters_for_row(layout, self.row)):
            assert isinstance(button, TextButton)
            button.set_text(letter)


@register_menu("guess")
class GuessMenu(Menu):
    """
    Word completions for the partial word in the buffer.

    Guesses are fetched on a worker thread after each buffer change and
    applied on the loop thread; a result that arrives after a newer change
    is dropped.
    """

    def __init__(self, name: str, ctx: BoardContext, size: int = C.N_GUESSES, **kwargs: Any) -> None:
        super().__init__(name, ctx, **kwargs)
        for _ in range(size):
            self.add_button("guess")
        self._generation = 0
        ctx.buffer.changed.connect(self.update)
        ctx.settings.language_changed.connect(lambda _language: self.clear())

    def update(self, text: str) -> None:
        """Refresh the guesses for *text*."""
        self._generation += 1
        generation = self._generation
        guesser = self.ctx.guesser
        language = self.ctx.settings.language
        if guesser is None or not guesser.should_query(text, language):
            self.apply([""] * len(self.buttons), generation)
            return

        def worker() -> None:
            try:
                guesses = guesser.guess(text, language)
            except Exception as exc:  # noqa: BLE001
                _log.warn("board", "guess_failed", {"error": repr(exc)})
                return
            self.ctx.loop.post(lambda: self.apply(guesses, generation))

        threading.Thread(target=worker, name="word-guess", daemon=True).start()

    def apply(self, guesses: Sequence[str], generation: Optional[int] = None) -> None:
        if generation is not None and generation != self._generation:
            return
        padded = (list(guesses) + [""] * len(self.buttons))[: len(self.buttons)]
        for button, guess in zip(self.buttons, padded):
            assert isinstance(button, TextButton)
            button.set_text(guess)

    def clear(self) -> None:
        self._generation += 1
        self.apply([""] * len(self.buttons))


@register_menu("email")
class EmailMenu(Menu):
    """Recipient slots, filled round-robin as recipients are added."""

    def __init__(self, name: str, ctx: BoardContext, size: int = C.N_RECIPIENTS, **kwargs: Any) -> None:
        super().__init__(name, ctx, **kwargs)
        for _ in range(size):
            self.add_button("email")
        self._next_slot = 0

    def add_recipient(self, name: str, addresses: Sequence[str]) -> EmailButton:
        """Store a recipient in the next slot, overwriting the oldest when full."""
        button = self.buttons[self._next_slot]
        assert isinstance(button, EmailButton)
        button.set_recipient(name, addresses)
        self._next_slot = (self._next_slot + 1) % len(self.buttons)
        _log.info("board", "recipient_added", {"name": name, "slot": self.buttons.index(button)})
        return button


class MenuRegistry(Mapping[str, Menu]):
    """
    All menus of a board, by name.

    Args:
        menus: Menus in board order.
        root: Name of the menu scanned first.
    """

    def __init__(self, menus: Sequence[Menu], root: str) -> None:
        self._menus: dict[str, Menu] = {}
        for menu in menus:
            self._menus[menu.name] = menu
            menu.registry = self
        self.root_name = root

    @property
    def root(self) -> Menu:
        return self._menus[self.root_name]

    def __getitem__(self, name: str) -> Menu:
        return self._menus[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._menus)

    def __len__(self) -> int:
        return len(self._menus)

    def of_kind(self, kind: str) -> list[Menu]:
        return [m for m in self._menus.values() if m.kind == kind]
