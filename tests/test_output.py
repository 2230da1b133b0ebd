"""
tests/test_output.py — E-mail composition and sending, speaker voices and fallbacks.

Run:  pytest tests/test_output.py -v
"""

from __future__ import annotations

import smtplib
import time
from types import SimpleNamespace
from typing import Any, Callable, Iterator, Optional

import numpy as np
import pygame
import pytest
import pyttsx3

from wedjat.core.config import SpeechConfig
from wedjat.core.loop import ManualLoop
from wedjat.core.settings import EmailAccount
from wedjat.output.mailer import Mailer, MailError
from wedjat.output.speaker import Speaker, Voice, sine_wave

_ACCOUNT = EmailAccount(signature="Ann", address="ann@example.org", password="secret")


class FakeSMTP:
    """Stands in for ``smtplib.SMTP_SSL``; records the exchange."""

    instances: list["FakeSMTP"] = []
    fail_with: Optional[Exception] = None

    def __init__(self, host: str, port: int, timeout: float) -> None:
        self.host, self.port, self.timeout = host, port, timeout
        self.logins: list[tuple[str, str]] = []
        self.sent: list[tuple[str, list[str], str]] = []
        FakeSMTP.instances.append(self)

    def __enter__(self) -> "FakeSMTP":
        return self

    def __exit__(self, *_exc: Any) -> None:
        return None

    def login(self, user: str, password: str) -> None:
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        self.logins.append((user, password))

    def sendmail(self, sender: str, recipients: list[str], text: str) -> None:
        self.sent.append((sender, recipients, text))


@pytest.fixture
def smtp(monkeypatch: pytest.MonkeyPatch) -> type[FakeSMTP]:
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP


class TestMailer:

    def test_message_headers_and_signoff(self) -> None:
        msg = Mailer(lambda: _ACCOUNT).build_message(["bob@example.org", "c@example.org"], "Hello ")
        assert msg["Subject"] == "A message from Ann"
        assert msg["To"] == "bob@example.org, c@example.org"
        assert "ann@example.org" in msg["From"]
        body = msg.get_payload()
        assert body.startswith("Hello \n\n\n")
        assert "sent for Ann using wedjat" in body

    def test_signature_falls_back_to_address(self) -> None:
        account = EmailAccount(address="ann@example.org", password="secret")
        msg = Mailer(lambda: account).build_message(["bob@example.org"], "hi")
        assert msg["Subject"] == "A message from ann@example.org"

    def test_send(self, smtp: type[FakeSMTP]) -> None:
        Mailer(lambda: _ACCOUNT).send(["bob@example.org"], "Hello ")

        (conn,) = smtp.instances
        assert (conn.host, conn.port) == ("smtp.gmail.com", 465)
        assert conn.logins == [("ann@example.org", "secret")]
        sender, recipients, text = conn.sent[0]
        assert sender == "ann@example.org"
        assert recipients == ["bob@example.org"]
        assert "Subject: A message from Ann" in text

    def test_account_is_read_at_send_time(self, smtp: type[FakeSMTP]) -> None:
        accounts = [EmailAccount()]
        mailer = Mailer(lambda: accounts[-1])
        with pytest.raises(MailError, match="account"):
            mailer.send(["bob@example.org"], "x")
        accounts.append(_ACCOUNT)
        mailer.send(["bob@example.org"], "x")
        assert len(smtp.instances) == 1

    def test_no_addresses(self, smtp: type[FakeSMTP]) -> None:
        with pytest.raises(MailError, match="recipient"):
            Mailer(lambda: _ACCOUNT).send([], "x")
        assert smtp.instances == []

    def test_smtp_failure_becomes_mail_error(self, smtp: type[FakeSMTP]) -> None:
        smtp.fail_with = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        with pytest.raises(MailError, match="Sending failed"):
            Mailer(lambda: _ACCOUNT).send(["bob@example.org"], "x")

    def test_network_failure_becomes_mail_error(self, smtp: type[FakeSMTP]) -> None:
        smtp.fail_with = ConnectionRefusedError("refused")
        with pytest.raises(MailError):
            Mailer(lambda: _ACCOUNT).send(["bob@example.org"], "x")


class _Lang:
    language = "en"


class TestSpeaker:

    def test_sine_wave(self) -> None:
        samples = sine_wave(440.0, 100.0, 8000)
        assert samples.dtype == np.int16
        assert len(samples) == 800
        assert samples[0] == 0
        assert np.abs(samples).max() <= 32767

    def test_disabled_speaker_still_completes(self, loop: ManualLoop) -> None:
        speaker = Speaker(loop, _Lang(), SpeechConfig(enabled=False))
        done: list[float] = []

        speaker.announce("hello")
        speaker.cue(300, 250)
        speaker.speak_async("hello", lambda: done.append(loop.now_ms()), delay_ms=500)
        loop.advance(499)
        assert done == []
        loop.advance(1)
        assert done == [500.0]
        speaker.shutdown()

    def test_empty_message_completes(self, loop: ManualLoop) -> None:
        speaker = Speaker(loop, _Lang(), SpeechConfig(enabled=False))
        done: list[str] = []
        speaker.speak_async({"fr": "bonjour"}, lambda: done.append("done"), delay_ms=0)
        loop.run_pending()
        assert done == ["done"]


def _poll(loop: ManualLoop, done: Callable[[], bool], timeout_s: float = 2.0) -> bool:
    """Pump the loop until *done* or *timeout_s* (worker-thread results)."""
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        loop.run_pending()
        if done():
            return True
        time.sleep(0.01)
    return False


class FakeEngine:
    """pyttsx3 engine double; records (voice, text) for every utterance."""

    voices = [
        SimpleNamespace(id="en-1", name="Alice", languages=["en-us"]),
        SimpleNamespace(id="fr-1", name="Amélie", languages=["fr-fr"]),
        SimpleNamespace(id="en-2", name="Bob", languages=["en-gb"]),
    ]

    def __init__(self) -> None:
        self.props: dict[str, Any] = {}
        self.said: list[tuple[Optional[str], str]] = []

    def getProperty(self, name: str) -> Any:
        return self.voices if name == "voices" else self.props.get(name)

    def setProperty(self, name: str, value: Any) -> None:
        self.props[name] = value

    def say(self, text: str) -> None:
        self.said.append((self.props.get("voice"), text))

    def runAndWait(self) -> None:
        return None


@pytest.fixture
def engine(monkeypatch: pytest.MonkeyPatch) -> FakeEngine:
    fake = FakeEngine()

    def no_mixer(*_args: Any, **_kwargs: Any) -> None:
        raise pygame.error("no audio device")

    monkeypatch.setattr(pyttsx3, "init", lambda *_a, **_k: fake)
    monkeypatch.setattr(pygame.mixer, "init", no_mixer)
    return fake


@pytest.fixture
def speaker(engine: FakeEngine, loop: ManualLoop) -> Iterator[Speaker]:
    spk = Speaker(loop, _Lang(), SpeechConfig(enabled=True))
    yield spk
    spk.shutdown()


class TestVoices:

    def test_voices_filtered_by_language(self, speaker: Speaker, loop: ManualLoop) -> None:
        results: dict[str, list[Voice]] = {}
        speaker.voices_for("en", lambda voices: results.setdefault("en", voices))
        speaker.voices_for("fr", lambda voices: results.setdefault("fr", voices))

        assert _poll(loop, lambda: len(results) == 2)
        assert results["en"] == [Voice("en-1", "Alice"), Voice("en-2", "Bob")]
        assert results["fr"] == [Voice("fr-1", "Amélie")]

    def test_first_matching_voice_by_default(
        self, speaker: Speaker, engine: FakeEngine, loop: ManualLoop
    ) -> None:
        speaker.announce("Hi")
        assert _poll(loop, lambda: bool(engine.said))
        assert engine.said == [("en-1", "hi")]

    def test_selected_voice_is_used(
        self, speaker: Speaker, engine: FakeEngine, loop: ManualLoop
    ) -> None:
        speaker.set_voice("en-2")
        assert speaker.selected_voice() == "en-2"
        assert speaker.selected_voice("fr") is None

        speaker.announce("Hi")
        assert _poll(loop, lambda: bool(engine.said))
        assert engine.said == [("en-2", "hi")]

    def test_demo_names_the_selected_voice(
        self, speaker: Speaker, engine: FakeEngine, loop: ManualLoop
    ) -> None:
        listed: list[list[Voice]] = []
        speaker.voices_for("en", listed.append)
        assert _poll(loop, lambda: bool(listed))

        speaker.set_voice("en-2")
        speaker.demo()
        assert _poll(loop, lambda: bool(engine.said))
        assert engine.said == [("en-2", "hello, my name is bob")]

    def test_reset_selection(self, speaker: Speaker) -> None:
        speaker.set_voice("en-2")
        speaker.set_voice(None)
        assert speaker.selected_voice() is None

    def test_disabled_speaker_lists_no_voices(self, loop: ManualLoop) -> None:
        speaker = Speaker(loop, _Lang(), SpeechConfig(enabled=False))
        results: list[list[Voice]] = []
        speaker.voices_for("en", results.append)
        loop.run_pending()
        assert results == [[]]
