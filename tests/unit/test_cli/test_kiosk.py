"""
Unit tests for the kiosk CLI.
Runs the typer commands with a temporary config and a mocked Deck client.
"""

import os
import tempfile

import pytest
from unittest.mock import MagicMock, patch

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

# kiosk builds its Config when imported
os.environ.setdefault("FOYER_CONFIG_DIR", tempfile.mkdtemp(prefix="foyer-test-"))

from typer.testing import CliRunner

import kiosk
from foyer.core.config import Config
from foyer.core.selection import BoardSelectionStore
from foyer.deck.client import DeckAPIError

runner = CliRunner()


@pytest.fixture
def config(tmp_path, monkeypatch):
    for name in Config.ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    cfg = Config(config_dir=tmp_path)
    monkeypatch.setattr(kiosk, "config", cfg)
    monkeypatch.setattr(kiosk, "_service", None)
    return cfg


class TestSelectionCommands:
    """Tests for select and clear-selection."""

    def test_select(self, config):
        result = runner.invoke(kiosk.app, ["select", "3", "x", "1"])

        assert result.exit_code == 0
        assert "3, 1" in result.output
        assert BoardSelectionStore(config.selection_file).load("default") == [3, 1]

    def test_select_rejects_invalid(self, config):
        result = runner.invoke(kiosk.app, ["select", "abc"])
        assert result.exit_code == 1

    def test_clear_selection(self, config):
        BoardSelectionStore(config.selection_file).save("default", [2])

        result = runner.invoke(kiosk.app, ["clear-selection"])

        assert result.exit_code == 0
        assert "cleared" in result.output
        assert BoardSelectionStore(config.selection_file).load("default") is None


class TestDeckCommands:
    """Tests for commands that contact Deck."""

    @patch("kiosk.DeckClient")
    def test_health_ok(self, client_cls, config):
        client = client_cls.from_config.return_value
        client.base_url = "https://cloud.example"
        client.test_connection.return_value = {"connected": True, "boards_count": 4, "boards": []}

        result = runner.invoke(kiosk.app, ["health"])

        assert result.exit_code == 0
        assert "4 boards" in result.output

    @patch("kiosk.DeckClient")
    def test_health_failed(self, client_cls, config):
        client_cls.from_config.return_value.test_connection.return_value = {
            "connected": False,
            "error": "refused",
        }

        result = runner.invoke(kiosk.app, ["health"])

        assert result.exit_code == 1
        assert "refused" in result.output

    @patch("kiosk.DeckClient")
    def test_boards(self, client_cls, config):
        BoardSelectionStore(config.selection_file).save("default", [2])
        client_cls.from_config.return_value.list_boards.return_value = [
            {"id": 1, "title": "Office"},
            {"id": 2, "title": "Kitchen"},
        ]

        result = runner.invoke(kiosk.app, ["boards"])

        assert result.exit_code == 0
        assert "Office" in result.output
        assert "Kitchen" in result.output

    @patch("kiosk.DeckClient")
    def test_boards_unavailable(self, client_cls, config):
        client_cls.from_config.return_value.list_boards.side_effect = DeckAPIError("Deck Boards", "refused")

        result = runner.invoke(kiosk.app, ["boards"])

        assert result.exit_code == 1

    def test_show_failure_exits(self, config, monkeypatch):
        service = MagicMock()
        service.refresh.return_value = None
        service.get_status.return_value.error = "Failed to complete Deck Boards request: refused"
        monkeypatch.setattr(kiosk, "_service", service)

        result = runner.invoke(kiosk.app, ["show"])

        assert result.exit_code == 1
        assert "refused" in result.output

    def test_show_rejects_bad_board_ids(self, config, monkeypatch):
        monkeypatch.setattr(kiosk, "_service", MagicMock())

        result = runner.invoke(kiosk.app, ["show", "--boards", "x,y"])

        assert result.exit_code == 1
