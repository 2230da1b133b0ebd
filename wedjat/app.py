"""
wedjat/app.py — WedjatApp: wires every subsystem together.

Initialisation order::

    Settings ─► Speaker ─► TextBuffer ─► Mailer / WordGuesser
             ─► board menus ─► Detector (+ gesture sources)
             ─► ListenerBinding ─► ScanEngine ─► ScanController

The application owns no thread of its own: it runs on whichever event loop
it is given (Tk, realtime or manual). Collaborators may be injected, which is
how the tests and the headless runner replace audio and network pieces.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from wedjat.board.buttons import BoardContext
from wedjat.board.definition import build_menus, load_board_definition
from wedjat.board.guesser import WordGuesser
from wedjat.board.menus import EmailMenu, MenuRegistry
from wedjat.core.config import WedjatConfig
from wedjat.core.events import Signal
from wedjat.core.logger import get_logger
from wedjat.core.loop import EventLoop
from wedjat.core.settings import Settings
from wedjat.gesture.camera import CameraGestureSource
from wedjat.gesture.detector import Detector
from wedjat.gesture.key import KeyGestureSource
from wedjat.gesture.scripted import ScriptedGestureSource, Step
from wedjat.output.mailer import Mailer
from wedjat.output.speaker import Speaker
from wedjat.scan.binding import ListenerBinding
from wedjat.scan.controller import ScanController
from wedjat.scan.engine import ScanEngine
from wedjat.text.buffer import TextBuffer

_log = get_logger()


class WedjatApp:
    """
    The assembled scanning keyboard.

    Args:
        config: Loaded configuration.
        loop: Event loop everything runs on.
        speaker: Optional speaker replacement (``announce``, ``speak_async``, ``cue``).
        mailer: Optional mailer replacement.
        guesser: Optional word guesser replacement.
        script: Steps played by the ``scripted`` gesture source.
        on_script_finished: Called when the scripted source runs out of steps.
    """

    def __init__(
        self,
        config: WedjatConfig,
        loop: EventLoop,
        speaker: Any = None,
        mailer: Any = None,
        guesser: Any = None,
        script: Sequence[Step] = (),
        on_script_finished: Optional[Callable[[], None]] = None,
    ) -> None:
        self.config = config
        self.loop = loop
        self._script = list(script)
        self._on_script_finished = on_script_finished

        # 1. Settings and outputs
        self.settings = Settings(config)
        self.speaker = speaker if speaker is not None else Speaker(loop, self.settings, config.speech)
        self.buffer = TextBuffer(loop, self.speaker)
        self.mailer = mailer if mailer is not None else Mailer(lambda: self.settings.email)
        self.guesser = guesser if guesser is not None else WordGuesser(config.words)

        # 2. Board
        self.ctx = BoardContext(
            loop=loop,
            speaker=self.speaker,
            settings=self.settings,
            buffer=self.buffer,
            mailer=self.mailer,
            guesser=self.guesser,
        )
        board = load_board_definition(config.board.definition_path)
        self.menus: MenuRegistry = build_menus(board, self.ctx)
        for recipient in config.email.recipients:
            self.add_recipient(recipient.name, recipient.addresses)

        # 3. Gesture sources
        self.detector = Detector()
        self.detector.register_source("camera", self._make_camera)
        self.detector.register_source("key", self._make_key)
        self.detector.register_source("scripted", self._make_scripted)

        # 4. Scanning
        self.stop_signal = Signal("stop")
        self.binding = ListenerBinding(self.detector, self.stop_signal)
        self.engine = ScanEngine(
            loop,
            self.detector,
            self.binding,
            self.speaker,
            self.settings,
            scan_config=config.scan,
            cue_config=config.cue,
        )
        self.controller = ScanController(
            loop,
            self.engine,
            self.detector,
            self.binding,
            self.speaker,
            self.menus.root,
            scan_config=config.scan,
            cue_config=config.cue,
        )

        self.detector.select(config.detector.default)
        _log.info("app", "ready", {
            "menus": list(self.menus),
            "root": self.menus.root_name,
            "detector": self.detector.source_name,
            "layout": self.settings.layout,
        })

    # ──────────────────────────────────────────
    # Commands (UI / CLI)
    # ──────────────────────────────────────────

    def start(self) -> None:
        """Start listening (Start button, F2)."""
        self.controller.start_signal.emit()

    def stop(self) -> None:
        """External stop (Stop button, Escape)."""
        _log.info("app", "stop_requested", {})
        self.stop_signal.emit()

    def select_detector(self, name: str) -> None:
        self.detector.select(name)

    def add_recipient(self, name: str, addresses: Sequence[str]) -> None:
        """Store an e-mail recipient on the board's e-mail menu."""
        menus = self.menus.of_kind("email")
        if not menus:
            _log.warn("app", "no_email_menu", {"recipient": name})
            return
        menu = menus[0]
        assert isinstance(menu, EmailMenu)
        menu.add_recipient(name, addresses)

    def store_email_account(self, signature: str, address: str, password: str) -> None:
        """Replace the sender identity; the next e-mail sent uses it."""
        self.settings.store_email_account(signature.strip(), address.strip(), password)
        _log.info("app", "email_account_stored", {"address": address.strip()})

    def shutdown(self) -> None:
        """Release devices and flush the log. Safe to call twice."""
        self.detector.shutdown()
        shutdown = getattr(self.speaker, "shutdown", None)
        if shutdown is not None:
            shutdown()
        _log.info("app", "shutdown", {})
        _log.flush()

    # ──────────────────────────────────────────
    # Source factories
    # ──────────────────────────────────────────

    def _make_camera(self) -> CameraGestureSource:
        cfg = self.config.detector
        return CameraGestureSource(
            self.loop,
            camera_index=cfg.camera_index,
            refresh_hz_listen=cfg.refresh_hz_listen,
            refresh_hz_scan=cfg.refresh_hz_scan,
        )

    def _make_key(self) -> KeyGestureSource:
        return KeyGestureSource(self.loop, keys=self.config.detector.keys)

    def _make_scripted(self) -> ScriptedGestureSource:
        return ScriptedGestureSource(self.loop, self._script, on_finished=self._on_script_finished)
