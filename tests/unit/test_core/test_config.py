"""
Unit tests for the config module.
Tests JSON-backed settings, environment overrides and typed views.
"""

import json
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from foyer.core.config import Config, DisplaySettings, parse_board_ids


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's Deck environment out of the tests."""
    for name in Config.ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


class TestParseBoardIds:
    """Tests for board id parsing."""

    def test_comma_separated_string(self):
        assert parse_board_ids("1, 2,3") == [1, 2, 3]

    def test_invalid_entries_dropped(self):
        assert parse_board_ids("1,abc,,-4,0,7") == [1, 7]

    def test_list_input(self):
        assert parse_board_ids([3, "4", None, True, "x"]) == [3, 4]

    def test_empty(self):
        assert parse_board_ids(None) == []
        assert parse_board_ids("") == []


class TestConfigFiles:
    """Tests for file creation and loading."""

    def test_creates_defaults(self, tmp_path):
        config = Config(config_dir=tmp_path)

        assert (tmp_path / "settings.json").exists()
        assert (tmp_path / "display.json").exists()
        assert config.display_settings() == DisplaySettings()

    def test_file_values_merge_over_defaults(self, tmp_path):
        (tmp_path / "display.json").write_text(json.dumps({"rotation_base_ms": 20000}))
        config = Config(config_dir=tmp_path)

        settings = config.display_settings()
        assert settings.rotation_base_ms == 20000
        assert settings.progress_tick_ms == 100

    def test_set_persists(self, tmp_path):
        config = Config(config_dir=tmp_path)
        config.set("instance_id", "lobby")

        reloaded = Config(config_dir=tmp_path)
        assert reloaded.instance_id() == "lobby"

    def test_get_unknown_section(self, tmp_path):
        config = Config(config_dir=tmp_path)
        assert config.get("x", section="nope", default=5) == 5

    def test_get_list_default_by_keyword(self, tmp_path):
        config = Config(config_dir=tmp_path)

        assert config.get("missing", default=[]) == []
        assert "http://localhost:3000" in config.get("cors_origins", default=[])


class TestDeckSettings:
    """Tests for the Deck connection view."""

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        (tmp_path / "settings.json").write_text(json.dumps({
            "deck_url": "https://file.example",
            "default_boards": "9",
        }))
        monkeypatch.setenv("DECK_URL", "https://env.example/")
        monkeypatch.setenv("DECK_DEFAULT_BOARDS", "1,2")
        monkeypatch.setenv("DECK_VERIFY_SSL", "false")

        settings = Config(config_dir=tmp_path).deck_settings()

        assert settings.base_url == "https://env.example/"
        assert settings.default_boards == (1, 2)
        assert settings.verify_ssl is False

    def test_env_override_not_written_back(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DECK_PASSWORD", "secret")
        Config(config_dir=tmp_path)

        stored = json.loads((tmp_path / "settings.json").read_text())
        assert stored["deck_password"] == ""

    def test_default_boards_list_in_file(self, tmp_path):
        (tmp_path / "settings.json").write_text(json.dumps({"default_boards": [4, 5]}))
        assert Config(config_dir=tmp_path).deck_settings().default_boards == (4, 5)

    def test_relative_log_directory_resolved(self, tmp_path):
        config = Config(config_dir=tmp_path)
        assert config.get_log_directory().is_absolute()
