"""
tests/test_config.py — YAML configuration loading and validation.

Run:  pytest tests/test_config.py -v
"""

from __future__ import annotations

from pathlib import Path

import pytest

from wedjat.core.config import ConfigError, RecipientConfig, WedjatConfig, load_config

_SHIPPED = Path(__file__).resolve().parent.parent / "config" / "wedjat.yaml"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("WEDJAT_CONFIG", "WEDJAT_WORDNIK_KEY", "WEDJAT_EMAIL_PASSWORD"):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "wedjat.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoading:

    def test_shipped_config_matches_defaults(self) -> None:
        assert load_config(_SHIPPED) == WedjatConfig()

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(_write(tmp_path, "")) == WedjatConfig()

    def test_values_are_read(self, tmp_path: Path) -> None:
        cfg = load_config(_write(tmp_path, (
            "scan:\n"
            "  scan_speed_ms: 1200\n"
            "  loop_limit: 3\n"
            "detector:\n"
            "  default: key\n"
            "  keys: [space]\n"
            "speech:\n"
            "  language: fr\n"
            "board:\n"
            "  layout: Fast\n"
        )))
        assert cfg.scan.scan_speed_ms == 1200
        assert cfg.scan.loop_limit == 3
        assert cfg.detector.default == "key"
        assert cfg.detector.keys == ("space",)
        assert cfg.speech.language == "fr"
        assert cfg.board.layout == "Fast"

    def test_config_is_frozen(self) -> None:
        cfg = WedjatConfig()
        with pytest.raises(AttributeError):
            cfg.scan.loop_limit = 5  # type: ignore[misc]

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_env_var_selects_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path, "scan:\n  loop_limit: 4\n")
        monkeypatch.setenv("WEDJAT_CONFIG", str(path))
        assert load_config().scan.loop_limit == 4

    def test_env_var_pointing_nowhere(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEDJAT_CONFIG", str(tmp_path / "absent.yaml"))
        with pytest.raises(FileNotFoundError):
            load_config()

    def test_secrets_from_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEDJAT_WORDNIK_KEY", "wk")
        monkeypatch.setenv("WEDJAT_EMAIL_PASSWORD", "pw")
        cfg = load_config(_write(tmp_path, ""))
        assert cfg.words.api_key == "wk"
        assert cfg.email.password == "pw"

    def test_file_secret_wins_over_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEDJAT_WORDNIK_KEY", "env")
        cfg = load_config(_write(tmp_path, "words:\n  api_key: file\n"))
        assert cfg.words.api_key == "file"


class TestRecipients:

    def test_recipient_forms(self, tmp_path: Path) -> None:
        cfg = load_config(_write(tmp_path, (
            "email:\n"
            "  recipients:\n"
            "    - name: Family\n"
            "      addresses: [a@example.org, b@example.org]\n"
            "    - name: Doctor\n"
            "      address: doc@example.org\n"
        )))
        assert cfg.email.recipients == (
            RecipientConfig("Family", ("a@example.org", "b@example.org")),
            RecipientConfig("Doctor", ("doc@example.org",)),
        )

    def test_recipient_without_address(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="no address"):
            load_config(_write(tmp_path, "email:\n  recipients:\n    - name: Nobody\n"))

    def test_recipient_without_name(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="name"):
            load_config(_write(tmp_path, "email:\n  recipients:\n    - address: x@example.org\n"))

    def test_too_many_recipients(self, tmp_path: Path) -> None:
        entries = "".join(f"    - {{name: r{i}, address: r{i}@example.org}}\n" for i in range(9))
        with pytest.raises(ConfigError, match="at most 8"):
            load_config(_write(tmp_path, "email:\n  recipients:\n" + entries))


class TestValidation:

    @pytest.mark.parametrize("text, message", [
        ("scan:\n  short_gaze_ms: 2500\n", "short_gaze_ms"),
        ("scan:\n  short_gaze_ms: 0\n", "short_gaze_ms"),
        ("scan:\n  loop_limit: 0\n", "loop_limit"),
        ("scan:\n  scan_speed_ms: 0\n", "scan_speed_ms"),
        ("scan:\n  scan_speed_ms: 5000\n", "scan_speed_ms"),
        ("scan:\n  activation_timeout_ms: -1\n", "activation_timeout_ms"),
        ("detector:\n  default: joystick\n", "detector.default"),
        ("detector:\n  refresh_hz_scan: 0\n", "refresh"),
        ("speech:\n  volume: 1.5\n", "volume"),
        ("speech:\n  language: de\n", "language"),
        ("board:\n  layout: Dvorak\n", "layout"),
    ])
    def test_invalid_values(self, tmp_path: Path, text: str, message: str) -> None:
        with pytest.raises(ConfigError, match=message):
            load_config(_write(tmp_path, text))

    def test_unknown_key(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid config value"):
            load_config(_write(tmp_path, "scan:\n  warp_factor: 9\n"))

    def test_section_must_be_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            load_config(_write(tmp_path, "scan: fast\n"))

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            load_config(_write(tmp_path, "- just\n- a list\n"))
