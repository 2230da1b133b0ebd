"""
wedjat/core/settings.py — Runtime user settings.

The frozen :class:`~wedjat.core.config.WedjatConfig` provides the starting
values; the user changes them live from the control panel. Collaborators read
settings through this object and subscribe to its change signals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from wedjat.core.config import EmailConfig, WedjatConfig
from wedjat.core.constants import C
from wedjat.core.events import Signal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailAccount:
    """Sender identity used by e-mail buttons."""

    signature: str = ""
    address: str = ""
    password: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    timeout_s: float = 20.0

    @classmethod
    def from_config(cls, cfg: EmailConfig) -> "EmailAccount":
        return cls(
            signature=cfg.signature,
            address=cfg.address,
            password=cfg.password,
            smtp_host=cfg.smtp_host,
            smtp_port=cfg.smtp_port,
            timeout_s=cfg.timeout_s,
        )

    @property
    def is_complete(self) -> bool:
        """True when an address and password are stored."""
        return bool(self.address and self.password)


class Settings:
    """
    Mutable settings shared by the scanner, the board and the speaker.

    Args:
        config: Loaded configuration providing the initial values.

    Signals:
        language_changed(language): After :meth:`set_language`.
        layout_changed(layout): After :meth:`set_layout`.
        show_menu_changed(show): After :meth:`set_show_menu` or :meth:`toggle_show_menu`.
        buffer_font_size_changed(size): After :meth:`set_buffer_font_size`.
    """

    def __init__(self, config: Optional[WedjatConfig] = None) -> None:
        cfg = config or WedjatConfig()
        self._scan_speed_ms: float = cfg.scan.scan_speed_ms
        self._use_sound: bool = cfg.speech.enabled
        self._language: str = cfg.speech.language
        self._layout: str = cfg.board.layout
        self._show_menu: bool = cfg.ui.show_menu
        self._buffer_font_size: int = cfg.ui.buffer_font_size
        self._email = EmailAccount.from_config(cfg.email)

        self.language_changed = Signal("language_changed")
        self.layout_changed = Signal("layout_changed")
        self.show_menu_changed = Signal("show_menu_changed")
        self.buffer_font_size_changed = Signal("buffer_font_size_changed")

    # ── Scan speed ────────────────────────────────────────────

    @property
    def scan_speed_ms(self) -> float:
        """Base time an item stays under point, in milliseconds."""
        return self._scan_speed_ms

    def set_scan_speed(self, ms: float) -> None:
        """Set the scan speed, clamped to ``[0, MAX_SCAN_SPEED_MS]``."""
        self._scan_speed_ms = max(0.0, min(float(ms), C.MAX_SCAN_SPEED_MS))
        logger.info("Scan speed set to %.0f ms", self._scan_speed_ms)

    # ── Sound ─────────────────────────────────────────────────

    @property
    def use_sound(self) -> bool:
        return self._use_sound

    def set_use_sound(self, on: bool) -> None:
        self._use_sound = bool(on)

    # ── Language ──────────────────────────────────────────────

    @property
    def language(self) -> str:
        return self._language

    def set_language(self, language: str) -> None:
        """
        Switch the interface language.

        Raises:
            ValueError: If *language* is not supported.
        """
        if language not in C.LANGUAGES:
            raise ValueError(f"Unsupported language: {language!r}")
        if language == self._language:
            return
        self._language = language
        logger.info("Language set to %s", language)
        self.language_changed.emit(language)

    # ── Letter layout ─────────────────────────────────────────

    @property
    def layout(self) -> str:
        return self._layout

    def set_layout(self, layout: str) -> None:
        if layout == self._layout:
            return
        self._layout = layout
        logger.info("Layout set to %s", layout)
        self.layout_changed.emit(layout)

    # ── Menu visibility toggle ────────────────────────────────

    @property
    def show_menu(self) -> bool:
        return self._show_menu

    def set_show_menu(self, show: bool) -> None:
        self._show_menu = bool(show)
        self.show_menu_changed.emit(self._show_menu)

    def toggle_show_menu(self) -> None:
        self.set_show_menu(not self._show_menu)

    # ── Buffer font size ──────────────────────────────────────

    @property
    def buffer_font_size(self) -> int:
        return self._buffer_font_size

    def set_buffer_font_size(self, size: int) -> None:
        """Resize the composed text, clamped to the supported point sizes."""
        size = max(C.MIN_BUFFER_FONT_SIZE, min(int(size), C.MAX_BUFFER_FONT_SIZE))
        if size == self._buffer_font_size:
            return
        self._buffer_font_size = size
        self.buffer_font_size_changed.emit(size)

    # ── E-mail account ────────────────────────────────────────

    @property
    def email(self) -> EmailAccount:
        return self._email

    def store_email_account(self, signature: str, address: str, password: str) -> None:
        """Store the sender identity entered in the control panel."""
        self._email = replace(self._email, signature=signature, address=address, password=password)
        logger.info("E-mail account stored for %s", address)
