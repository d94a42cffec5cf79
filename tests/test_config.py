"""
Tests for gamemaster.config.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from gamemaster.config import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    GamemasterConfig,
    get_config,
    load_config,
    parse_config,
    reload_config,
)


class TestBundledConfig:
    """Tests for the default gamemaster.toml."""

    def test_bundled_file_exists(self) -> None:
        assert DEFAULT_CONFIG_PATH.is_file()

    def test_bundled_roster(self) -> None:
        config = load_config()
        assert [entry.key for entry in config.roster] == [
            "labyrinthe:explorer",
            "labyrinthe:protector",
            "sidequest",
            "aria",
            "infection-map",
            "messagerie",
            "usb-key",
        ]
        assert config.roster[0].name == "Explorateur"

    def test_bundled_defaults(self) -> None:
        config = load_config()
        assert config.server.port == 3000
        assert config.timing.grace_period_seconds == 10.0
        assert config.timing.finale_delay_seconds == 3.0
        assert config.audio.display_only == "sidequest"
        assert config.audio.sounds_dir == Path("sounds")

    def test_get_config_is_cached(self) -> None:
        assert get_config() is get_config()

    def test_reload_config(self) -> None:
        first = get_config()
        reloaded = reload_config()
        assert reloaded is not first
        assert get_config() is reloaded


class TestParseConfig:
    """Tests for parse_config."""

    def test_empty_document_uses_defaults(self) -> None:
        config = parse_config({})
        assert isinstance(config, GamemasterConfig)
        assert config.roster == []
        assert config.timing.reveal_buffer_seconds == 1.0
        assert config.audio.display_only is None

    def test_roster_roles(self) -> None:
        config = parse_config(
            {"roster": [{"base_id": "labyrinthe", "role": "explorer"}, {"base_id": "aria:main"}]}
        )
        assert [entry.key for entry in config.roster] == ["labyrinthe:explorer", "aria:main"]
        assert config.roster[0].name == "labyrinthe:explorer"

    def test_relative_sounds_dir(self, tmp_path: Path) -> None:
        config = parse_config({"audio": {"sounds_dir": "audio"}}, base_dir=tmp_path)
        assert config.audio.sounds_dir == tmp_path / "audio"

    @pytest.mark.parametrize(
        "data",
        [
            {"timing": {"grace_period_seconds": -1}},
            {"timing": {"finale_delay_seconds": "3"}},
            {"timing": {"reveal_buffer_seconds": True}},
            {"audio": {"bitrate_kbps": 0}},
            {"timing": "fast"},
            {"roster": {"base_id": "aria"}},
            {"roster": [{"name": "no id"}]},
            {"roster": ["aria"]},
        ],
    )
    def test_invalid_values(self, data: dict) -> None:
        with pytest.raises(ConfigError):
            parse_config(data)


class TestLoadConfig:
    """Tests for load_config from a file."""

    def test_custom_file(self, tmp_path: Path) -> None:
        path = tmp_path / "room.toml"
        path.write_text(
            '[timing]\ngrace_period_seconds = 2.5\n\n[[roster]]\nbase_id = "aria"\nname = "ARIA"\n',
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.timing.grace_period_seconds == 2.5
        assert config.roster[0].name == "ARIA"
        assert config.audio.sounds_dir == tmp_path / "sounds"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.toml"
        path.write_text("[timing\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            load_config(tmp_path / "missing.toml")
