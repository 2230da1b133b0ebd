"""wedjat.board — buttons, menus and the board definition."""

from wedjat.board.buttons import BUTTON_TYPES, BoardContext, Button, make_button
from wedjat.board.definition import (
    DEFAULT_BOARD,
    BoardDefinition,
    BoardDefinitionError,
    build_menus,
    load_board_definition,
)
from wedjat.board.menus import EmailMenu, GuessMenu, LetterMenu, Menu, MenuRegistry

__all__ = [
    "BUTTON_TYPES",
    "BoardContext",
    "BoardDefinition",
    "BoardDefinitionError",
    "Button",
    "DEFAULT_BOARD",
    "EmailMenu",
    "GuessMenu",
    "LetterMenu",
    "Menu",
    "MenuRegistry",
    "build_menus",
    "load_board_definition",
    "make_button",
]
