"""
wedjat/board/definition.py — Declarative board definition.

The board (which menus exist, their behaviors and their buttons) is data:
:data:`DEFAULT_BOARD` ships the standard communication board and a YAML file
named by ``board.definition_path`` may replace it. Either way the data is
validated with pydantic before any menu is built, so a typo in a button type
or a selector pointing at a missing menu fails at startup with
:class:`BoardDefinitionError`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ValidationError, field_validator, model_validator

from wedjat.board.buttons import BUTTON_TYPES, BoardContext
from wedjat.board.menus import MENU_KINDS, Menu, MenuRegistry
from wedjat.core.constants import C, LoopBehavior, Visibility
from wedjat.core.logger import get_logger
from wedjat.text.buffer import ACTIONS

_log = get_logger()


class BoardDefinitionError(ValueError):
    """Raised when a board definition is invalid."""


# ──────────────────────────────────────────────────────────────
# Models
# ──────────────────────────────────────────────────────────────

class ButtonDef(BaseModel):
    """One button of a generic menu."""

    type: str
    label: str = ""
    announcement: Optional[Union[str, dict[str, str]]] = None
    wait_multiplier: Optional[float] = None
    target: Optional[str] = None
    action: Optional[str] = None

    @field_validator("type")
    @classmethod
    def known_type(cls, v: str) -> str:
        if v not in BUTTON_TYPES:
            raise ValueError(f"Unknown button type {v!r}; expected one of {sorted(BUTTON_TYPES)}")
        return v

    @field_validator("wait_multiplier")
    @classmethod
    def at_least_one(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 1:
            raise ValueError("wait_multiplier must be >= 1")
        return v

    @model_validator(mode="after")
    def required_fields(self) -> "ButtonDef":
        if self.type == "menu_selector" and not self.target:
            raise ValueError("menu_selector buttons need a target")
        if self.type == "buffer_action" and self.action not in ACTIONS:
            raise ValueError(f"buffer_action needs action in {ACTIONS}, got {self.action!r}")
        return self

    def fields(self) -> dict[str, Any]:
        """Keyword arguments for the button constructor."""
        out: dict[str, Any] = {"label": self.label}
        if self.announcement is not None:
            out["announcement"] = self.announcement
        if self.wait_multiplier is not None:
            out["wait_multiplier"] = self.wait_multiplier
        if self.target is not None:
            out["target"] = self.target
        if self.action is not None:
            out["action"] = self.action
        return out


class MenuDef(BaseModel):
    """One menu. ``letter``, ``guess`` and ``email`` menus generate their own buttons."""

    name: str
    kind: str = "generic"
    title: str = ""
    loop_behavior: LoopBehavior = LoopBehavior.RETURN_TO_CALLER
    visibility: Visibility = Visibility.ALWAYS_VISIBLE
    row: Optional[int] = None
    size: Optional[int] = None
    buttons: list[ButtonDef] = []

    @field_validator("kind")
    @classmethod
    def known_kind(cls, v: str) -> str:
        if v not in MENU_KINDS:
            raise ValueError(f"Unknown menu kind {v!r}; expected one of {sorted(MENU_KINDS)}")
        return v

    @model_validator(mode="after")
    def kind_fields(self) -> "MenuDef":
        if self.kind == "letter" and self.row not in (1, 2, 3, 4):
            raise ValueError(f"letter menu {self.name!r} needs row 1-4")
        if self.kind != "generic" and self.buttons:
            raise ValueError(f"{self.kind} menu {self.name!r} generates its own buttons")
        if self.size is not None and self.size < 1:
            raise ValueError(f"menu {self.name!r} size must be >= 1")
        return self


class BoardDefinition(BaseModel):
    """A whole board: its menus and which one is scanned first."""

    root: str
    menus: list[MenuDef]

    @model_validator(mode="after")
    def consistent(self) -> "BoardDefinition":
        names = [m.name for m in self.menus]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate menu names: {duplicates}")
        if self.root not in names:
            raise ValueError(f"Root menu {self.root!r} is not defined")
        for menu in self.menus:
            for button in menu.buttons:
                if button.type == "menu_selector" and button.target not in names:
                    raise ValueError(
                        f"Button {button.label!r} in {menu.name!r} targets unknown menu {button.target!r}"
                    )
        return self


# ──────────────────────────────────────────────────────────────
# Default board
# ──────────────────────────────────────────────────────────────

def _selector(label: str, target: str, announcement: Optional[dict[str, str]] = None) -> dict:
    entry: dict[str, Any] = {"type": "menu_selector", "label": label, "target": target}
    if announcement is not None:
        entry["announcement"] = announcement
    return entry


DEFAULT_BOARD: dict[str, Any] = {
    "root": "compose_main",
    "menus": [
        {
            "name": "compose_main",
            "title": "Compose",
            "loop_behavior": "repeat",
            "buttons": [
                _selector("Guess", "guess", {"en": "guess", "fr": "deviner"}),
                _selector("Row 1", "letter1", {"en": "row 1", "fr": "rangée 1"}),
                _selector("Row 2", "letter2", {"en": "row 2", "fr": "rangée 2"}),
                _selector("Row 3", "letter3", {"en": "row 3", "fr": "rangée 3"}),
                _selector("Row 4", "letter4", {"en": "row 4", "fr": "rangée 4"}),
                _selector(". , ?", "punctuation", {"en": "punctuation", "fr": "ponctuation"}),
                _selector("Text", "buffer", {"en": "text", "fr": "texte"}),
                _selector("More", "extras", {"en": "more", "fr": "plus"}),
            ],
        },
        {"name": "guess", "kind": "guess", "title": "Guesses", "size": C.N_GUESSES},
        {"name": "letter1", "kind": "letter", "row": 1},
        {"name": "letter2", "kind": "letter", "row": 2},
        {"name": "letter3", "kind": "letter", "row": 3},
        {"name": "letter4", "kind": "letter", "row": 4},
        {
            "name": "punctuation",
            "title": "Punctuation",
            "visibility": "collapsible",
            "buttons": [
                {"type": "space", "label": "Space", "announcement": {"en": "space", "fr": "espace"}},
                {"type": "terminal_punctuation", "label": ".", "announcement": {"en": "period", "fr": "point"}},
                {"type": "non_terminal_punctuation", "label": ",", "announcement": {"en": "comma", "fr": "virgule"}},
                {"type": "terminal_punctuation", "label": "?",
                 "announcement": {"en": "question mark", "fr": "point d'interrogation"}},
                {"type": "terminal_punctuation", "label": "!",
                 "announcement": {"en": "exclamation point", "fr": "point d'exclamation"}},
                {"type": "non_terminal_punctuation", "label": "'",
                 "announcement": {"en": "apostrophe", "fr": "apostrophe"}},
            ],
        },
        {
            "name": "buffer",
            "title": "Text",
            "visibility": "collapsible",
            "buttons": [
                {"type": "buffer_action", "label": "Read", "action": "read",
                 "announcement": {"en": "read", "fr": "lire"}},
                {"type": "buffer_action", "label": "Delete", "action": "delete",
                 "announcement": {"en": "delete", "fr": "effacer"}},
                {"type": "buffer_action", "label": "Clear", "action": "clear",
                 "announcement": {"en": "clear", "fr": "vider"}},
            ],
        },
        {
            "name": "extras",
            "title": "More",
            "buttons": [
                {"type": "call_bell", "label": "Call", "announcement": {"en": "call bell", "fr": "sonnette"}},
                _selector("E-mail", "email", {"en": "email", "fr": "courriel"}),
                {"type": "not_implemented", "label": "Web", "announcement": {"en": "web", "fr": "web"}},
            ],
        },
        {
            "name": "email",
            "kind": "email",
            "title": "E-mail",
            "visibility": "collapsible",
            "size": C.N_RECIPIENTS,
        },
    ],
}


# ──────────────────────────────────────────────────────────────
# Loading and building
# ──────────────────────────────────────────────────────────────

def parse_board(data: Any) -> BoardDefinition:
    """
    Validate raw board data.

    Raises:
        BoardDefinitionError: If the data does not describe a valid board.
    """
    try:
        return BoardDefinition.model_validate(data)
    except ValidationError as exc:
        raise BoardDefinitionError(str(exc)) from exc


def load_board_definition(path: Optional[Union[str, Path]] = None) -> BoardDefinition:
    """
    Load a board from YAML, or the default board when *path* is ``None``.

    Raises:
        BoardDefinitionError: If the file is missing, unreadable or invalid.
    """
    if path is None:
        return parse_board(DEFAULT_BOARD)
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        raise BoardDefinitionError(f"Cannot read board definition {p}: {exc}") from exc
    board = parse_board(data)
    _log.info("board", "definition_loaded", {"path": str(p), "menus": len(board.menus)})
    return board


def build_menus(board: BoardDefinition, ctx: BoardContext) -> MenuRegistry:
    """Instantiate every menu and button of *board*."""
    menus: list[Menu] = []
    for mdef in board.menus:
        kwargs: dict[str, Any] = {
            "loop_behavior": mdef.loop_behavior,
            "visibility": mdef.visibility,
            "title": mdef.title,
        }
        if mdef.kind == "letter":
            kwargs["row"] = mdef.row
        elif mdef.kind in ("guess", "email") and mdef.size is not None:
            kwargs["size"] = mdef.size
        menu = MENU_KINDS[mdef.kind](mdef.name, ctx, **kwargs)
        for bdef in mdef.buttons:
            menu.add_button(bdef.type, **bdef.fields())
        menus.append(menu)
    return MenuRegistry(menus, board.root)
