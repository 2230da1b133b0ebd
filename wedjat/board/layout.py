"""
wedjat/board/layout.py — Letter layouts for the four letter rows.

To add a layout, add an entry to :data:`LAYOUTS`: a list of rows, each a list
of lower-case letters. Rows shorter than the board width are padded with
empty slots, which the scanner skips.
"""

from __future__ import annotations

from wedjat.core.constants import C

EMPTY_LETTER = ""

LAYOUTS: dict[str, list[list[str]]] = {
    "AGNT": [
        ["a", "b", "c", "d", "e", "f"],
        ["g", "h", "i", "j", "k", "l", "m"],
        ["n", "o", "p", "q", "r", "s"],
        ["t", "u", "v", "w", "x", "y", "z"],
    ],
    "Fast": [
        ["e", "t", "o", "s", "l", "w", "p"],
        ["a", "i", "h", "c", "f", "b", "j"],
        ["n", "r", "u", "g", "v", "x"],
        ["d", "m", "y", "k", "q", "z"],
    ],
}


def pad(items: list[str], fill: str, length: int) -> list[str]:
    """Right-pad (or truncate) *items* to *length*."""
    return (list(items) + [fill] * length)[:length]


def letters_for_row(layout: str, row: int, columns: int = C.LETTER_COLUMNS) -> list[str]:
    """
    Letters shown on *row* (1-based) for *layout*.

    Raises:
        KeyError: If *layout* is unknown.
        IndexError: If *row* is outside the layout.
    """
    rows = LAYOUTS[layout]
    if not 1 <= row <= len(rows):
        raise IndexError(f"Layout {layout!r} has no row {row}")
    return pad(rows[row - 1], EMPTY_LETTER, columns)
