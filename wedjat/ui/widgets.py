"""
wedjat/ui/widgets.py — Tkinter widgets for the scanning board.

- ButtonCell: one board button, repainted when the button changes
- MenuPanel: a menu's heading plus its row of cells; hidden while collapsed
- BufferDisplay: the composed text with its cursor
- StatusBar: detector mode and current scan path
"""

from __future__ import annotations

import tkinter as tk
from tkinter import font as tkfont
from typing import Any, Optional

# ──────────────────────────────────────────────────────────────
# Colour palette (high contrast, dark theme)
# ──────────────────────────────────────────────────────────────
BG_MAIN = "#0d0d0d"
BG_PANEL = "#1a1a2e"
BG_CELL = "#16213e"
BG_CELL_EMPTY = "#10182b"
BG_CELL_HIGHLIGHT = "#f39c12"
ACCENT_BLUE = "#4a90e2"
ACCENT_GREEN = "#27ae60"
ACCENT_AMBER = "#f39c12"
TEXT_PRIMARY = "#ecf0f1"
TEXT_SECONDARY = "#95a5a6"
TEXT_HIGHLIGHT = "#0d0d0d"

MODE_COLOURS: dict[str, str] = {
    "idle": TEXT_SECONDARY,
    "listening": ACCENT_BLUE,
    "scanning": ACCENT_GREEN,
}


class ButtonCell(tk.Label):
    """
    Display of a single board button.

    The cell listens to ``button.changed`` and repaints itself, so the board
    needs no polling. Listener calls arrive on the Tk thread because the scan
    loop runs on it.

    Args:
        parent: Parent widget.
        button: The board button shown.
        cell_font: Font for the label.
    """

    def __init__(self, parent: tk.Widget, button: Any, cell_font: tkfont.Font) -> None:
        super().__init__(
            parent, text="",
            bg=BG_CELL, fg=TEXT_PRIMARY,
            font=cell_font,
            width=6, height=2,
            relief=tk.FLAT, bd=2,
        )
        self._button = button
        button.changed.connect(self._on_changed)
        self.refresh()

    def refresh(self) -> None:
        """Repaint from the button's label and highlight."""
        button = self._button
        if button.highlighted:
            bg, fg = BG_CELL_HIGHLIGHT, TEXT_HIGHLIGHT
        elif button.is_empty():
            bg, fg = BG_CELL_EMPTY, TEXT_SECONDARY
        else:
            bg, fg = BG_CELL, TEXT_PRIMARY
        self.configure(text=button.label, bg=bg, fg=fg)

    def detach(self) -> None:
        self._button.changed.disconnect(self._on_changed)

    def _on_changed(self, _button: Any) -> None:
        self.refresh()


class MenuPanel(tk.Frame):
    """
    One menu: a heading and a row of :class:`ButtonCell`.

    Collapsible menus are packed only while visible.

    Args:
        parent: Parent widget.
        menu: The board menu.
        title_font: Font for the heading.
        cell_font: Font for the cells.
    """

    def __init__(
        self,
        parent: tk.Widget,
        menu: Any,
        title_font: tkfont.Font,
        cell_font: tkfont.Font,
    ) -> None:
        super().__init__(parent, bg=BG_PANEL, pady=4)
        self._menu = menu
        self._pack_options: dict[str, Any] = {}

        tk.Label(
            self, text=menu.title, bg=BG_PANEL, fg=TEXT_SECONDARY,
            font=title_font, width=12, anchor="w",
        ).pack(side=tk.LEFT, padx=(8, 4))

        self.cells: list[ButtonCell] = []
        for button in menu.buttons:
            cell = ButtonCell(self, button, cell_font)
            cell.pack(side=tk.LEFT, padx=2, pady=2, expand=True, fill=tk.BOTH)
            self.cells.append(cell)

        menu.visibility_changed.connect(self._on_visibility_changed)

    def place_in(self, **pack_options: Any) -> None:
        """Remember how to pack the panel and pack it if the menu is visible."""
        self._pack_options = pack_options
        self._on_visibility_changed(self._menu)

    def _on_visibility_changed(self, menu: Any) -> None:
        if menu.visible:
            self.pack(**self._pack_options)
        else:
            self.pack_forget()


class BufferDisplay(tk.Label):
    """
    The composed text, followed by a cursor.

    Args:
        parent: Parent widget.
        buffer_font: Font for the text.
    """

    def __init__(self, parent: tk.Widget, buffer_font: tkfont.Font) -> None:
        super().__init__(
            parent, text="_",
            bg=BG_CELL, fg=TEXT_PRIMARY,
            font=buffer_font,
            anchor="w", justify="left",
            wraplength=1000, padx=16, pady=16,
        )

    def set_text(self, display_text: str) -> None:
        self.configure(text=display_text)


class StatusBar(tk.Frame):
    """
    Bottom status bar: detector mode on the left, scan path on the right.

    Args:
        parent: Parent Tkinter widget.
        status_font: Font for both labels.
        height: Frame height in pixels.
    """

    def __init__(self, parent: tk.Widget, status_font: tkfont.Font, height: int = 32) -> None:
        super().__init__(parent, bg=BG_PANEL, height=height)
        self.pack_propagate(False)

        self._mode_var = tk.StringVar(value="Idle")
        self._mode_label = tk.Label(
            self, textvariable=self._mode_var,
            bg=BG_PANEL, fg=TEXT_SECONDARY, font=status_font,
        )
        self._mode_label.pack(side=tk.LEFT, padx=12, pady=4)

        self._font = status_font
        self._path_var = tk.StringVar(value="")
        tk.Label(
            self, textvariable=self._path_var,
            bg=BG_PANEL, fg=TEXT_SECONDARY, font=status_font,
        ).pack(side=tk.RIGHT, padx=12, pady=4)

    def add_toggle(self, text: str, variable: tk.BooleanVar, command: Any) -> tk.Checkbutton:
        """Checkbox on the right-hand side; stays visible when the control panel is hidden."""
        toggle = tk.Checkbutton(
            self, text=text, variable=variable, command=command,
            bg=BG_PANEL, fg=TEXT_SECONDARY, selectcolor=BG_MAIN,
            activebackground=BG_PANEL, font=self._font,
        )
        toggle.pack(side=tk.RIGHT, padx=8, pady=2)
        return toggle

    def set_mode(self, text: str, mode_key: Optional[str] = None) -> None:
        """
        Show the detector mode.

        Args:
            text: Localized mode text.
            mode_key: ``idle``, ``listening`` or ``scanning``; picks the colour.
        """
        self._mode_var.set(text)
        self._mode_label.configure(fg=MODE_COLOURS.get(mode_key or "", TEXT_SECONDARY))

    def set_path(self, path: list[str]) -> None:
        self._path_var.set(" › ".join(path))
