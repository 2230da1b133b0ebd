"""
wedjat/core/config.py — Typed configuration loader for Wedjat.

Loads config/wedjat.yaml and validates all values into typed dataclasses.
All downstream modules import from this module; never read YAML directly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from wedjat.core.constants import C

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when the configuration file holds an invalid value."""


# ──────────────────────────────────────────────
# Dataclass hierarchy (mirrors wedjat.yaml)
# ──────────────────────────────────────────────


@dataclass(frozen=True)
class ScanConfig:
    """Scan timing: item dwell, gesture thresholds and loop limit."""

    scan_speed_ms: float = C.DEFAULT_SCAN_SPEED_MS
    short_gaze_ms: float = C.SHORT_GAZE_MS
    long_gaze_ms: float = C.LONG_GAZE_MS
    loop_limit: int = C.LOOP_LIMIT
    activation_timeout_ms: float = 0.0


@dataclass(frozen=True)
class CueConfig:
    """Long-gaze audible cue."""

    frequency_hz: int = C.LONG_GAZE_CUE_HZ
    duration_ms: int = C.LONG_GAZE_CUE_MS


@dataclass(frozen=True)
class DetectorConfig:
    """Gesture source selection and tuning."""

    default: str = "camera"
    camera_index: int = 0
    refresh_hz_listen: float = C.REFRESH_HZ_LISTEN
    refresh_hz_scan: float = C.REFRESH_HZ_SCAN
    keys: tuple[str, ...] = ("Shift_L", "Shift_R")


@dataclass(frozen=True)
class SpeechConfig:
    """Text-to-speech and tone output."""

    enabled: bool = True
    rate: int = 150
    volume: float = 1.0
    voice_id: Optional[str] = None
    language: str = C.DEFAULT_LANGUAGE
    sample_rate: int = 22050


@dataclass(frozen=True)
class BoardConfig:
    """Board definition and letter layout."""

    layout: str = "AGNT"
    definition_path: Optional[str] = None


@dataclass(frozen=True)
class WordsConfig:
    """Word-completion service."""

    enabled: bool = True
    base_url: str = "https://api.wordnik.com/v4/words.json/search/"
    api_key: Optional[str] = None
    min_corpus_count: int = 1000
    n_guesses: int = C.N_GUESSES
    timeout_s: float = 3.0


@dataclass(frozen=True)
class RecipientConfig:
    """A stored e-mail recipient."""

    name: str
    addresses: tuple[str, ...]


@dataclass(frozen=True)
class EmailConfig:
    """Outgoing e-mail account and stored recipients."""

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    signature: str = ""
    address: str = ""
    password: Optional[str] = None
    recipients: tuple[RecipientConfig, ...] = ()
    timeout_s: float = 20.0


@dataclass(frozen=True)
class UIConfig:
    """UI display configuration."""

    fullscreen: bool = False
    font_family: str = "Arial"
    buffer_font_size: int = 36
    board_font_size: int = 20
    status_font_size: int = 12
    show_menu: bool = True


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    log_dir: str = "logs"


@dataclass(frozen=True)
class WedjatConfig:
    """Root configuration object — single source of truth for all settings."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    cue: CueConfig = field(default_factory=CueConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    board: BoardConfig = field(default_factory=BoardConfig)
    words: WordsConfig = field(default_factory=WordsConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# ──────────────────────────────────────────────
# Loader
# ──────────────────────────────────────────────


def _resolve_path(config_path: Path | str | None) -> Optional[Path]:
    """Find the YAML file: argument, then $WEDJAT_CONFIG, then config/wedjat.yaml."""
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.exists():
            raise FileNotFoundError(f"Config file not found: {resolved}")
        return resolved
    if "WEDJAT_CONFIG" in os.environ:
        resolved = Path(os.environ["WEDJAT_CONFIG"])
        if not resolved.exists():
            raise FileNotFoundError(f"WEDJAT_CONFIG points to missing file: {resolved}")
        return resolved
    here = Path(__file__).resolve()
    for parent in (here.parent.parent.parent, Path.cwd()):
        candidate = parent / "config" / "wedjat.yaml"
        if candidate.exists():
            return candidate
    return None


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got: {type(value).__name__}")
    return dict(value)


def load_config(config_path: Path | str | None = None) -> WedjatConfig:
    """
    Load, validate, and return a WedjatConfig from a YAML file.

    The search order for the config file is:
    1. *config_path* argument (if provided)
    2. WEDJAT_CONFIG environment variable
    3. ``config/wedjat.yaml`` next to the package or in the working directory
    4. Built-in defaults (no file required)

    Args:
        config_path: Optional path to a ``wedjat.yaml`` file.

    Returns:
        A fully populated and frozen :class:`WedjatConfig` instance.

    Raises:
        ConfigError: If a YAML field has an invalid type or value.
        FileNotFoundError: If *config_path* is explicitly given but does not exist.
    """
    resolved_path = _resolve_path(config_path)

    raw: dict = {}
    if resolved_path is not None:
        logger.info("Loading config from: %s", resolved_path)
        with resolved_path.open("r", encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file must be a YAML mapping, got: {type(loaded)}")
        raw = loaded
    else:
        logger.info("No config file found — using built-in defaults")

    try:
        scan_cfg = ScanConfig(**_section(raw, "scan"))
        cue_cfg = CueConfig(**_section(raw, "cue"))

        det_raw = _section(raw, "detector")
        if isinstance(det_raw.get("keys"), list):
            det_raw["keys"] = tuple(det_raw["keys"])
        det_cfg = DetectorConfig(**det_raw)

        speech_cfg = SpeechConfig(**_section(raw, "speech"))
        board_cfg = BoardConfig(**_section(raw, "board"))

        words_raw = _section(raw, "words")
        words_raw.setdefault("api_key", os.environ.get("WEDJAT_WORDNIK_KEY"))
        words_cfg = WordsConfig(**words_raw)

        # YAML lists → tuples of RecipientConfig
        email_raw = _section(raw, "email")
        email_raw.setdefault("password", os.environ.get("WEDJAT_EMAIL_PASSWORD"))
        email_raw["recipients"] = tuple(
            _recipient(entry) for entry in email_raw.get("recipients") or ()
        )
        email_cfg = EmailConfig(**email_raw)

        ui_cfg = UIConfig(**_section(raw, "ui"))
        log_cfg = LoggingConfig(**_section(raw, "logging"))
    except TypeError as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    _validate_config(scan_cfg, det_cfg, speech_cfg, board_cfg, email_cfg)

    config = WedjatConfig(
        scan=scan_cfg,
        cue=cue_cfg,
        detector=det_cfg,
        speech=speech_cfg,
        board=board_cfg,
        words=words_cfg,
        email=email_cfg,
        ui=ui_cfg,
        logging=log_cfg,
    )
    logger.debug("Config loaded: %s", config)
    return config


def _recipient(entry: object) -> RecipientConfig:
    """Build a RecipientConfig from ``{name: ..., addresses: [...]}`` or ``{name, address}``."""
    if not isinstance(entry, dict) or "name" not in entry:
        raise ConfigError(f"email.recipients entries need a 'name', got: {entry!r}")
    addresses = entry.get("addresses", entry.get("address", ()))
    if isinstance(addresses, str):
        addresses = addresses.split()
    if not addresses:
        raise ConfigError(f"Recipient {entry['name']!r} has no address")
    return RecipientConfig(name=str(entry["name"]), addresses=tuple(addresses))


def _validate_config(
    scan: ScanConfig,
    detector: DetectorConfig,
    speech: SpeechConfig,
    board: BoardConfig,
    email: EmailConfig,
) -> None:
    """
    Validate cross-field constraints on the loaded configuration.

    Raises:
        ConfigError: If any configured value violates a hard constraint.
    """
    if not (0.0 < scan.short_gaze_ms < scan.long_gaze_ms):
        raise ConfigError(
            "scan.short_gaze_ms must be positive and below scan.long_gaze_ms, "
            f"got {scan.short_gaze_ms} / {scan.long_gaze_ms}"
        )
    if scan.loop_limit < 1:
        raise ConfigError(f"scan.loop_limit must be at least 1, got {scan.loop_limit}")
    if not (0.0 < scan.scan_speed_ms <= C.MAX_SCAN_SPEED_MS):
        raise ConfigError(
            f"scan.scan_speed_ms must be in (0, {C.MAX_SCAN_SPEED_MS:g}], got {scan.scan_speed_ms}"
        )
    if scan.activation_timeout_ms < 0:
        raise ConfigError(
            f"scan.activation_timeout_ms must be >= 0, got {scan.activation_timeout_ms}"
        )
    if detector.default not in {"camera", "key", "scripted"}:
        raise ConfigError(
            f"detector.default must be 'camera', 'key' or 'scripted', got '{detector.default}'"
        )
    if detector.refresh_hz_listen <= 0 or detector.refresh_hz_scan <= 0:
        raise ConfigError("detector refresh rates must be positive")
    if not (0.0 <= speech.volume <= 1.0):
        raise ConfigError(f"speech.volume must be in [0, 1], got {speech.volume}")
    if speech.language not in C.LANGUAGES:
        raise ConfigError(f"speech.language must be one of {C.LANGUAGES}, got '{speech.language}'")
    if board.layout not in {"AGNT", "Fast"}:
        raise ConfigError(f"board.layout must be 'AGNT' or 'Fast', got '{board.layout}'")
    if len(email.recipients) > C.N_RECIPIENTS:
        raise ConfigError(
            f"at most {C.N_RECIPIENTS} email recipients are supported, got {len(email.recipients)}"
        )
