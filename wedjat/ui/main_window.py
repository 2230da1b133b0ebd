"""
wedjat/ui/main_window.py — Main Tkinter interface for Wedjat.

Layout, top to bottom: composed text, the board (one panel per menu), the
control panel, and the status bar. The scan loop runs on the Tk thread
(:class:`~wedjat.core.loop.TkLoop`), so widgets are updated directly from
signal listeners.

Keys: F2 starts listening, Escape stops, F3 shows or hides the control panel,
the configured switch keys are forwarded to the key gesture source.
"""

from __future__ import annotations

import tkinter as tk
from tkinter import font as tkfont
from typing import Any, Optional, Sequence

from wedjat.board.layout import LAYOUTS
from wedjat.core.constants import C, DetectorMode
from wedjat.core.logger import get_logger
from wedjat.gesture.camera import TEMPLATE_NAMES, CameraGestureSource
from wedjat.gesture.key import KeyGestureSource
from wedjat.ui.widgets import (
    BG_MAIN,
    BG_PANEL,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
    BufferDisplay,
    MenuPanel,
    StatusBar,
)

_log = get_logger()


class WedjatMainWindow:
    """
    Main application window.

    Args:
        root: Tkinter root obtained from ``tk.Tk()``.
        app: The assembled :class:`~wedjat.app.WedjatApp`.
    """

    def __init__(self, root: tk.Tk, app: Any) -> None:
        self._root = root
        self._app = app
        self._ui_cfg = app.config.ui
        self._panels: list[MenuPanel] = []
        self._controls: Optional[tk.Frame] = None
        self._board: Optional[tk.Frame] = None

        self._setup_window()
        self._build_fonts()
        self._build_layout()
        self._bind_shortcuts()
        self._connect_signals()

    # ──────────────────────────────────────────
    # Window setup
    # ──────────────────────────────────────────

    def _setup_window(self) -> None:
        self._root.title("Wedjat  |  Scanning keyboard")
        self._root.configure(bg=BG_MAIN)
        self._root.minsize(900, 600)
        self._root.geometry("1200x800")
        if self._ui_cfg.fullscreen:
            self._root.attributes("-fullscreen", True)

    def _build_fonts(self) -> None:
        family = self._ui_cfg.font_family
        self._f_buffer = tkfont.Font(family=family, size=self._app.settings.buffer_font_size)
        self._f_cell = tkfont.Font(family=family, size=self._ui_cfg.board_font_size, weight="bold")
        self._f_title = tkfont.Font(family=family, size=self._ui_cfg.status_font_size)
        self._f_status = tkfont.Font(family=family, size=self._ui_cfg.status_font_size)
        self._f_btn = tkfont.Font(family=family, size=self._ui_cfg.status_font_size, weight="bold")

    # ──────────────────────────────────────────
    # Layout construction
    # ──────────────────────────────────────────

    def _build_layout(self) -> None:
        self._buffer = BufferDisplay(self._root, self._f_buffer)
        self._buffer.pack(side=tk.TOP, fill=tk.X, padx=8, pady=(8, 4))

        settings = self._app.settings
        self._status = StatusBar(self._root, self._f_status)
        self._status.pack(side=tk.BOTTOM, fill=tk.X, padx=8, pady=(0, 8))
        self._menu_var = tk.BooleanVar(value=settings.show_menu)
        self._status.add_toggle(
            "Menu (F3)", self._menu_var,
            lambda: settings.set_show_menu(self._menu_var.get()),
        )

        self._controls = self._build_control_panel()
        board = tk.Frame(self._root, bg=BG_MAIN)
        board.pack(side=tk.TOP, fill=tk.BOTH, expand=True, padx=8, pady=4)
        self._board = board
        if settings.show_menu:
            self._show_controls()
        for name in self._app.menus:
            panel = MenuPanel(board, self._app.menus[name], self._f_title, self._f_cell)
            panel.place_in(side=tk.TOP, fill=tk.X, pady=2)
            self._panels.append(panel)

        self._refresh_status()

    # ── CONTROL PANEL ─────────────────────────────────────────

    def _build_control_panel(self) -> tk.Frame:
        pnl = tk.Frame(self._root, bg=BG_PANEL, pady=6)
        settings = self._app.settings

        def _button(parent: tk.Widget, text: str, command: Any) -> tk.Button:
            btn = tk.Button(
                parent, text=text, command=command,
                bg=BG_MAIN, fg=TEXT_PRIMARY, font=self._f_btn,
                relief="flat", padx=10, pady=4, cursor="hand2",
            )
            btn.pack(side=tk.LEFT, padx=4)
            return btn

        # Row 1: run controls and detector
        row1 = tk.Frame(pnl, bg=BG_PANEL)
        row1.pack(side=tk.TOP, fill=tk.X)
        _button(row1, "Start (F2)", self._app.start)
        _button(row1, "Stop (Esc)", self._app.stop)

        tk.Label(row1, text="Detector", bg=BG_PANEL, fg=TEXT_SECONDARY,
                 font=self._f_status).pack(side=tk.LEFT, padx=(16, 4))
        self._detector_var = tk.StringVar(value=self._app.detector.source_name or "")
        tk.OptionMenu(
            row1, self._detector_var, *self._app.detector.source_names,
            command=self._on_detector_selected,
        ).pack(side=tk.LEFT, padx=4)
        for name in TEMPLATE_NAMES:
            _button(row1, f"Capture {name}", lambda n=name: self._capture_template(n))

        # Row 2: settings
        row2 = tk.Frame(pnl, bg=BG_PANEL)
        row2.pack(side=tk.TOP, fill=tk.X, pady=(6, 0))
        tk.Label(row2, text="Scan speed (ms)", bg=BG_PANEL, fg=TEXT_SECONDARY,
                 font=self._f_status).pack(side=tk.LEFT, padx=(4, 4))
        self._speed_var = tk.DoubleVar(value=settings.scan_speed_ms)
        tk.Scale(
            row2, from_=0, to=C.MAX_SCAN_SPEED_MS, resolution=100,
            orient=tk.HORIZONTAL, length=200, variable=self._speed_var,
            bg=BG_PANEL, fg=TEXT_PRIMARY, highlightthickness=0,
            command=lambda value: settings.set_scan_speed(float(value)),
        ).pack(side=tk.LEFT, padx=4)

        self._sound_var = tk.BooleanVar(value=settings.use_sound)
        tk.Checkbutton(
            row2, text="Sound", variable=self._sound_var,
            command=lambda: settings.set_use_sound(self._sound_var.get()),
            bg=BG_PANEL, fg=TEXT_PRIMARY, selectcolor=BG_MAIN,
            activebackground=BG_PANEL, font=self._f_status,
        ).pack(side=tk.LEFT, padx=8)

        self._language_var = tk.StringVar(value=settings.language)
        tk.OptionMenu(row2, self._language_var, *C.LANGUAGES,
                      command=settings.set_language).pack(side=tk.LEFT, padx=4)
        self._layout_var = tk.StringVar(value=settings.layout)
        tk.OptionMenu(row2, self._layout_var, *LAYOUTS,
                      command=settings.set_layout).pack(side=tk.LEFT, padx=4)

        tk.Label(row2, text="Text size", bg=BG_PANEL, fg=TEXT_SECONDARY,
                 font=self._f_status).pack(side=tk.LEFT, padx=(16, 4))
        self._font_size_var = tk.IntVar(value=settings.buffer_font_size)
        font_size = tk.Spinbox(
            row2, from_=C.MIN_BUFFER_FONT_SIZE, to=C.MAX_BUFFER_FONT_SIZE, increment=2,
            width=4, textvariable=self._font_size_var, command=self._on_font_size_entered,
        )
        font_size.bind("<Return>", lambda _e: self._on_font_size_entered())
        font_size.pack(side=tk.LEFT, padx=4)

        # Row 3: voice
        row3 = tk.Frame(pnl, bg=BG_PANEL)
        row3.pack(side=tk.TOP, fill=tk.X, pady=(6, 0))
        tk.Label(row3, text="Voice", bg=BG_PANEL, fg=TEXT_SECONDARY,
                 font=self._f_status).pack(side=tk.LEFT, padx=(4, 4))
        self._voice_var = tk.StringVar(value="")
        self._voice_menu = tk.OptionMenu(row3, self._voice_var, "")
        self._voice_menu.configure(width=24)
        self._voice_menu.pack(side=tk.LEFT, padx=4)
        _button(row3, "Demo", self._app.speaker.demo)

        # Row 4: e-mail recipient
        row4 = tk.Frame(pnl, bg=BG_PANEL)
        row4.pack(side=tk.TOP, fill=tk.X, pady=(6, 0))
        tk.Label(row4, text="Recipient", bg=BG_PANEL, fg=TEXT_SECONDARY,
                 font=self._f_status).pack(side=tk.LEFT, padx=(4, 4))
        self._recipient_name = tk.Entry(row4, width=16)
        self._recipient_name.pack(side=tk.LEFT, padx=4)
        self._recipient_addresses = tk.Entry(row4, width=36)
        self._recipient_addresses.pack(side=tk.LEFT, padx=4)
        _button(row4, "Add", self._add_recipient)

        # Row 5: sender account
        row5 = tk.Frame(pnl, bg=BG_PANEL)
        row5.pack(side=tk.TOP, fill=tk.X, pady=(6, 0))
        tk.Label(row5, text="Account", bg=BG_PANEL, fg=TEXT_SECONDARY,
                 font=self._f_status).pack(side=tk.LEFT, padx=(4, 4))
        self._signature = tk.Entry(row5, width=16)
        self._signature.insert(0, settings.email.signature)
        self._signature.pack(side=tk.LEFT, padx=4)
        self._address = tk.Entry(row5, width=28)
        self._address.insert(0, settings.email.address)
        self._address.pack(side=tk.LEFT, padx=4)
        self._password = tk.Entry(row5, width=16, show="*")
        self._password.pack(side=tk.LEFT, padx=4)
        _button(row5, "Store", self._store_account)

        return pnl

    def _bind_shortcuts(self) -> None:
        self._root.bind("<F2>", lambda _e: self._app.start())
        self._root.bind("<Escape>", lambda _e: self._app.stop())
        self._root.bind("<F3>", lambda _e: self._app.settings.toggle_show_menu())
        self._root.bind("<KeyPress>", self._on_key_press)
        self._root.bind("<KeyRelease>", self._on_key_release)

    def _connect_signals(self) -> None:
        self._app.buffer.changed.connect(lambda _text: self._buffer.set_text(self._app.buffer.display_text))
        self._app.detector.mode_changed.connect(lambda _mode: self._refresh_status())
        self._app.detector.source_changed.connect(self._on_source_changed)
        self._app.engine.path_changed.connect(self._status.set_path)
        settings = self._app.settings
        settings.language_changed.connect(lambda _lang: self._refresh_status())
        settings.language_changed.connect(self._refresh_voices)
        settings.show_menu_changed.connect(self._on_show_menu_changed)
        settings.buffer_font_size_changed.connect(self._on_font_size_changed)
        self._refresh_voices(settings.language)

    # ──────────────────────────────────────────
    # Callbacks
    # ──────────────────────────────────────────

    def _refresh_status(self) -> None:
        detector = self._app.detector
        mode: DetectorMode = detector.mode
        self._status.set_mode(detector.status_text(self._app.settings.language), mode.value)

    def _on_source_changed(self, name: str) -> None:
        self._detector_var.set(name)
        self._refresh_status()

    def _on_detector_selected(self, name: str) -> None:
        _log.info("ui", "detector_selected", {"detector": name})
        self._app.select_detector(name)

    def _capture_template(self, name: str) -> None:
        source = self._app.detector.source
        if not isinstance(source, CameraGestureSource):
            _log.warn("ui", "template_needs_camera", {"template": name})
            return
        source.capture_template(name)

    def _add_recipient(self) -> None:
        name = self._recipient_name.get().strip()
        addresses = self._recipient_addresses.get().replace(",", " ").split()
        if not name or not addresses:
            return
        self._app.add_recipient(name, addresses)
        self._recipient_name.delete(0, tk.END)
        self._recipient_addresses.delete(0, tk.END)

    def _store_account(self) -> None:
        self._app.store_email_account(
            self._signature.get(), self._address.get(), self._password.get()
        )
        self._password.delete(0, tk.END)

    def _show_controls(self) -> None:
        if self._controls is not None:
            # re-packed panels go last; before= keeps this one above the status bar
            self._controls.pack(side=tk.BOTTOM, fill=tk.X, padx=8, pady=4, before=self._board)

    def _on_show_menu_changed(self, show: bool) -> None:
        self._menu_var.set(show)
        if self._controls is None:
            return
        if show:
            self._show_controls()
        else:
            self._controls.pack_forget()

    def _on_font_size_entered(self) -> None:
        try:
            size = self._font_size_var.get()
        except tk.TclError:
            size = self._app.settings.buffer_font_size
        self._app.settings.set_buffer_font_size(size)
        self._font_size_var.set(self._app.settings.buffer_font_size)

    def _on_font_size_changed(self, size: int) -> None:
        self._f_buffer.configure(size=size)

    # ── Voices ────────────────────────────────────────────────

    def _refresh_voices(self, language: str) -> None:
        self._app.speaker.voices_for(language, lambda voices: self._fill_voices(language, voices))

    def _fill_voices(self, language: str, voices: Sequence[Any]) -> None:
        if language != self._app.settings.language:
            return
        menu = self._voice_menu["menu"]
        menu.delete(0, tk.END)
        for voice in voices:
            menu.add_command(label=voice.name, command=lambda v=voice: self._on_voice_selected(v))
        # same precedence as Speaker._voice_for
        preferred = self._app.speaker.selected_voice(language) or self._app.config.speech.voice_id
        current = next((v for v in voices if v.id == preferred), voices[0] if voices else None)
        self._voice_var.set(current.name if current is not None else "")

    def _on_voice_selected(self, voice: Any) -> None:
        self._voice_var.set(voice.name)
        self._app.speaker.set_voice(voice.id)

    def _on_key_press(self, event: tk.Event) -> None:
        source = self._app.detector.source
        if isinstance(source, KeyGestureSource):
            source.on_key_press(event.keysym, int(event.state))

    def _on_key_release(self, event: tk.Event) -> None:
        source = self._app.detector.source
        if isinstance(source, KeyGestureSource):
            source.on_key_release(event.keysym, int(event.state))

    # ──────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────

    def run(self) -> None:
        """Start the Tkinter main loop (blocking)."""
        _log.info("ui", "mainloop_start", {})
        self._root.mainloop()
