"""
Configuration management for Gamemaster.

This module loads the station roster, timing constants and audio settings
from a TOML file. A default ``gamemaster.toml`` ships next to this module.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gamemaster.station.models import StationIdentity

logger = logging.getLogger(__name__)

# Path to the config directory
CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "gamemaster.toml"


class ConfigError(Exception):
    """Raised when the configuration file is invalid."""


@dataclass(frozen=True)
class RosterEntry:
    """A station expected at startup."""

    identity: StationIdentity
    name: str

    @property
    def key(self) -> str:
        return self.identity.key


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: str | list[str] = "*"


@dataclass
class TimingConfig:
    """Delays used by the registry and the automation rules (seconds)."""

    grace_period_seconds: float = 10.0
    finale_delay_seconds: float = 3.0
    reveal_buffer_seconds: float = 1.0


@dataclass
class AudioConfig:
    sounds_dir: Path = Path("sounds")
    display_only: str | None = None
    bitrate_kbps: int = 128


@dataclass
class CameraConfig:
    timeout_seconds: float = 10.0


@dataclass
class GamemasterConfig:
    """Loaded configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    cameras: CameraConfig = field(default_factory=CameraConfig)
    roster: list[RosterEntry] = field(default_factory=list)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _number(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(f"{key} must be a non-negative number, got {value!r}")
    return float(value)


def _parse_roster(entries: object) -> list[RosterEntry]:
    """Parse the [[roster]] array of tables."""
    if not isinstance(entries, list):
        raise ConfigError("roster must be an array of tables")

    roster: list[RosterEntry] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigError(f"invalid roster entry: {entry!r}")
        try:
            identity = StationIdentity.parse(entry.get("base_id", ""), entry.get("role"))
        except ValueError as e:
            raise ConfigError(f"invalid roster entry {entry!r}: {e}") from e
        roster.append(RosterEntry(identity=identity, name=str(entry.get("name") or identity.key)))
    return roster


def parse_config(data: dict[str, Any], base_dir: Path | None = None) -> GamemasterConfig:
    """
    Build a GamemasterConfig from already decoded TOML data.

    Args:
        data: Decoded TOML document.
        base_dir: Directory relative paths are resolved against.
    """
    server = _section(data, "server")
    timing = _section(data, "timing")
    audio = _section(data, "audio")
    cameras = _section(data, "cameras")

    sounds_dir = Path(str(audio.get("sounds_dir", "sounds")))
    if base_dir is not None and not sounds_dir.is_absolute():
        sounds_dir = base_dir / sounds_dir

    bitrate = audio.get("bitrate_kbps", 128)
    if isinstance(bitrate, bool) or not isinstance(bitrate, int) or bitrate <= 0:
        raise ConfigError(f"bitrate_kbps must be a positive integer, got {bitrate!r}")

    return GamemasterConfig(
        server=ServerConfig(
            host=str(server.get("host", "0.0.0.0")),
            port=int(server.get("port", 3000)),
            cors_origins=server.get("cors_origins", "*"),
        ),
        timing=TimingConfig(
            grace_period_seconds=_number(timing, "grace_period_seconds", 10.0),
            finale_delay_seconds=_number(timing, "finale_delay_seconds", 3.0),
            reveal_buffer_seconds=_number(timing, "reveal_buffer_seconds", 1.0),
        ),
        audio=AudioConfig(
            sounds_dir=sounds_dir,
            display_only=audio.get("display_only") or None,
            bitrate_kbps=bitrate,
        ),
        cameras=CameraConfig(timeout_seconds=_number(cameras, "timeout_seconds", 10.0)),
        roster=_parse_roster(data.get("roster", [])),
    )


def load_config(config_path: Path | None = None) -> GamemasterConfig:
    """
    Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML file. If None, uses the bundled default.

    Returns:
        Loaded GamemasterConfig instance.

    Raises:
        ConfigError: If the file cannot be decoded or holds invalid values.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    logger.debug("Loading config from %s", config_path)

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{config_path}: {e}") from e

    # The bundled file points at ./sounds in the working directory
    base_dir = None if config_path == DEFAULT_CONFIG_PATH else config_path.parent
    config = parse_config(data, base_dir=base_dir)
    logger.debug("Loaded roster of %d stations", len(config.roster))
    return config


# Global singleton instance (lazy loaded)
_config: GamemasterConfig | None = None


def get_config() -> GamemasterConfig:
    """
    Get the global configuration (lazy loaded singleton).

    Returns:
        The GamemasterConfig instance.
    """
    global _config

    if _config is None:
        _config = load_config()

    return _config


def reload_config(config_path: Path | None = None) -> GamemasterConfig:
    """
    Force reload of the configuration.

    Returns:
        The newly loaded GamemasterConfig instance.
    """
    global _config
    _config = load_config(config_path)
    return _config
