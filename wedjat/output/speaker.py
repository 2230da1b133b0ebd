"""
wedjat/output/speaker.py — Speech and tone output.

Speech runs on a pyttsx3 engine owned by a daemon worker thread; the public
API never blocks. Tones are sine waves synthesized with NumPy and played
through ``pygame.mixer``. Completion callbacks are handed back to the event
loop with :meth:`~wedjat.core.loop.EventLoop.post`.

If a backend cannot be initialised the speaker logs a warning and carries
on silently: ``speak_async`` callbacks still run, so scanning never stalls
waiting for audio that will not come.
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np
import pygame
import pyttsx3  # type: ignore[import]

from wedjat.core.config import SpeechConfig
from wedjat.core.constants import C
from wedjat.core.i18n import Message, localize
from wedjat.core.logger import get_logger
from wedjat.core.loop import EventLoop

_log = get_logger()

# Sentinel value to signal the worker to exit
_STOP_SENTINEL = object()

# Peak amplitude of generated tones (fraction of full scale)
_TONE_AMPLITUDE: float = 0.4


@dataclass(frozen=True)
class Voice:
    """A TTS voice the user can pick."""

    id: str
    name: str


@dataclass
class _SpeechJob:
    """One utterance queued for the worker thread."""

    text: str
    language: str
    on_spoken: Optional[Callable[[], None]] = None


@dataclass
class _VoiceQuery:
    """Request for the voices matching *language*, answered on the loop."""

    language: str
    on_result: Callable[[list[Voice]], None]


def sine_wave(freq_hz: float, duration_ms: float, sample_rate: int) -> np.ndarray:
    """16-bit mono samples of a sine tone."""
    n = max(1, int(sample_rate * duration_ms / 1000.0))
    t = np.arange(n, dtype=np.float64) / sample_rate
    wave = np.sin(2.0 * np.pi * freq_hz * t) * _TONE_AMPLITUDE * 32767
    return wave.astype(np.int16)


class Speaker:
    """
    Localized speech plus tone cues.

    Args:
        loop: Event loop that receives completion callbacks.
        settings: Provides the current ``language``.
        config: Speech configuration.
    """

    def __init__(self, loop: EventLoop, settings: Any, config: Optional[SpeechConfig] = None) -> None:
        self._loop = loop
        self._settings = settings
        self._cfg = config or SpeechConfig()
        self._queue: queue.Queue[object] = queue.Queue()
        self._engine: Any = None
        self._voice_lists: dict[str, list[Voice]] = {}  # worker thread only
        self._known: dict[str, Voice] = {}              # loop thread only
        self._chosen: dict[str, str] = {}               # language -> voice id
        self._mixer_ready = False
        self._worker: Optional[threading.Thread] = None

        if self._cfg.enabled:
            self._init_mixer()
            self._start_worker()
        else:
            _log.info("speaker", "disabled", {})

    # ──────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────

    def announce(self, message: Message) -> None:
        """Speak *message* without waiting for it."""
        self._enqueue(message, None)

    def speak_async(
        self,
        message: Message,
        on_done: Callable[[], None],
        delay_ms: float = C.SPEECH_DEFAULT_DELAY_MS,
    ) -> None:
        """
        Speak *message*, then run *on_done* on the loop *delay_ms* later.

        *on_done* runs even when speech is unavailable.
        """

        def after_speech() -> None:
            self._loop.call_later(delay_ms, on_done)

        if not self._enqueue(message, lambda: self._loop.post(after_speech)):
            self._loop.post(after_speech)

    # ── Voices ────────────────────────────────────────────────

    def voices_for(self, language: str, on_result: Callable[[list[Voice]], None]) -> None:
        """
        Look up the voices for *language* and hand them to *on_result*.

        The engine is only touched on the worker thread; *on_result* runs on
        the loop, with an empty list when speech is unavailable.
        """
        def deliver(voices: list[Voice]) -> None:
            for voice in voices:
                self._known[voice.id] = voice
            on_result(voices)

        if self._worker is None:
            self._loop.post(lambda: deliver([]))
            return
        self._queue.put(_VoiceQuery(language, lambda voices: self._loop.post(lambda: deliver(voices))))

    def set_voice(self, voice_id: Optional[str], language: Optional[str] = None) -> None:
        """Use *voice_id* for *language* (default: the current one); ``None`` resets."""
        language = language or self._settings.language
        if voice_id is None:
            self._chosen.pop(language, None)
        else:
            self._chosen[language] = voice_id
        _log.info("speaker", "voice_selected", {"language": language, "voice": voice_id})

    def selected_voice(self, language: Optional[str] = None) -> Optional[str]:
        return self._chosen.get(language or self._settings.language)

    def demo(self) -> None:
        """Introduce the selected voice by name."""
        voice = self._known.get(self.selected_voice() or "")
        name = voice.name if voice is not None else "wedjat"
        self.announce({
            "en": f"Hello, my name is {name}",
            "fr": f"Bonjour, mon nom est {name}",
        })

    # ── Tones ─────────────────────────────────────────────────

    def cue(self, freq_hz: float, duration_ms: float) -> None:
        """Play a pure tone without blocking."""
        if not self._mixer_ready:
            _log.debug("speaker", "cue_skipped", {"freq_hz": freq_hz, "duration_ms": duration_ms})
            return
        try:
            _, _, channels = pygame.mixer.get_init()
            samples = sine_wave(freq_hz, duration_ms, self._cfg.sample_rate)
            if channels > 1:
                samples = np.repeat(samples[:, None], channels, axis=1)
            pygame.sndarray.make_sound(np.ascontiguousarray(samples)).play()
        except Exception as exc:  # noqa: BLE001
            _log.warn("speaker", "cue_failed", {"freq_hz": freq_hz, "error": str(exc)})

    def shutdown(self) -> None:
        """Stop the worker and release the audio devices. Safe to call twice."""
        if self._worker is not None:
            self._queue.put(_STOP_SENTINEL)
            self._worker.join(timeout=3.0)
            self._worker = None
        if self._mixer_ready:
            try:
                pygame.mixer.quit()
            except Exception:  # noqa: BLE001
                pass
            self._mixer_ready = False
        _log.info("speaker", "shutdown", {})

    # ──────────────────────────────────────────
    # Internal
    # ──────────────────────────────────────────

    def _enqueue(self, message: Message, on_spoken: Optional[Callable[[], None]]) -> bool:
        language = self._settings.language
        text = localize(message, language).strip().lower()
        if not text or self._worker is None:
            return False
        self._queue.put(_SpeechJob(text=text, language=language, on_spoken=on_spoken))
        return True

    def _init_mixer(self) -> None:
        try:
            pygame.mixer.init(frequency=self._cfg.sample_rate, size=-16, channels=1, buffer=512)
            self._mixer_ready = True
            _log.info("speaker", "mixer_ready", {"sample_rate": self._cfg.sample_rate})
        except Exception as exc:  # noqa: BLE001
            _log.warn("speaker", "mixer_init_failed", {"error": str(exc)})

    def _start_worker(self) -> None:
        self._worker = threading.Thread(target=self._worker_loop, name="tts-worker", daemon=True)
        self._worker.start()

    def _init_engine(self) -> None:
        # pyttsx3 engines are not thread-safe: created and used only on the worker
        try:
            self._engine = pyttsx3.init()
            self._engine.setProperty("rate", self._cfg.rate)
            self._engine.setProperty("volume", self._cfg.volume)
            if self._cfg.voice_id:
                self._engine.setProperty("voice", self._cfg.voice_id)
            _log.info("speaker", "tts_ready", {"rate": self._cfg.rate, "volume": self._cfg.volume})
        except Exception as exc:  # noqa: BLE001
            _log.warn("speaker", "tts_init_failed", {"error": str(exc)})
            self._engine = None

    def _matching_voices(self, language: str) -> list[Voice]:
        if language not in self._voice_lists:
            matches: list[Voice] = []
            for voice in self._engine.getProperty("voices") or []:
                tags = " ".join(
                    [str(voice.id)] + [str(lang) for lang in getattr(voice, "languages", []) or []]
                ).lower()
                if language in tags:
                    matches.append(Voice(str(voice.id), str(getattr(voice, "name", "") or voice.id)))
            self._voice_lists[language] = matches
        return self._voice_lists[language]

    def _voice_for(self, language: str) -> Optional[str]:
        chosen = self._chosen.get(language)
        if chosen:
            return chosen
        if self._cfg.voice_id:
            return self._cfg.voice_id
        matches = self._matching_voices(language)
        return matches[0].id if matches else None

    def _answer_query(self, query: _VoiceQuery) -> None:
        voices: list[Voice] = []
        try:
            if self._engine is not None:
                voices = list(self._matching_voices(query.language))
        except Exception as exc:  # noqa: BLE001
            _log.warn("speaker", "voice_list_failed", {"language": query.language, "error": str(exc)})
        finally:
            query.on_result(voices)

    def _speak(self, job: _SpeechJob) -> None:
        try:
            if self._engine is not None:
                voice = self._voice_for(job.language)
                if voice:
                    self._engine.setProperty("voice", voice)
                t0 = time.perf_counter()
                self._engine.say(job.text)
                self._engine.runAndWait()
                _log.perf(
                    "speaker", "utterance_done", (time.perf_counter() - t0) * 1000,
                    {"language": job.language, "chars": len(job.text)},
                )
        except Exception as exc:  # noqa: BLE001
            _log.error("speaker", "speak_error", {"text": job.text[:80], "error": str(exc)})
        finally:
            if job.on_spoken is not None:
                job.on_spoken()

    def _worker_loop(self) -> None:
        self._init_engine()
        while True:
            item = self._queue.get()
            if item is _STOP_SENTINEL:
                break
            if isinstance(item, _VoiceQuery):
                self._answer_query(item)
            else:
                self._speak(item)  # type: ignore[arg-type]
