"""
Unit tests for the Deck aggregator.
Tests the complete -> stacks -> drop fallback chain with a mocked client.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from foyer.core.config import Config
from foyer.deck.aggregator import DeckAggregator, FetchStatus
from foyer.deck.client import DeckAPIError, DeckClient


def fail(context="Deck Complete Board"):
    return DeckAPIError(context, "Deck API returned status code: 500", status_code=500)


@pytest.fixture
def config(tmp_path, monkeypatch):
    for name in Config.ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    return Config(config_dir=tmp_path)


@pytest.fixture
def client():
    return MagicMock(spec=DeckClient)


@pytest.fixture
def aggregator(client, config):
    return DeckAggregator(client, config, max_workers=1)


def complete_board(board_id, title="Board", stacks=None):
    return {"id": board_id, "title": title, "stacks": stacks if stacks is not None else []}


class TestCompleteStrategy:
    """Tests for Strategy A (complete board)."""

    def test_embedded_cards_used(self, aggregator, client):
        client.get_board_complete.return_value = complete_board(1, "Office", [
            {"id": 10, "title": "Todo", "cards": [{"id": 100, "title": "A"}]},
        ])

        result = aggregator.fetch_all([1])

        assert len(result.boards) == 1
        board = result.boards[0]
        assert board.title == "Office"
        assert board.stacks[0].cards[0].title == "A"
        client.list_cards.assert_not_called()
        client.list_stacks.assert_not_called()

    def test_missing_cards_are_fetched_per_stack(self, aggregator, client):
        client.get_board_complete.return_value = complete_board(1, "Office", [
            {"id": 10, "title": "Todo"},
            {"id": 11, "title": "Doing", "cards": []},
        ])
        client.list_cards.return_value = [{"id": 5}]

        result = aggregator.fetch_all([1])

        assert result.total_cards() == 2
        assert client.list_cards.call_count == 2

    def test_failed_stack_card_fetch_keeps_board(self, aggregator, client):
        yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        client.get_board_complete.return_value = complete_board(1, "A", [
            {"id": 10, "title": "Todo", "cards": [
                {"id": 1, "title": "Late", "duedate": yesterday},
                {"id": 2, "title": "Finished", "done": True},
            ]},
            {"id": 11, "title": "Broken"},
        ])
        client.list_cards.side_effect = fail("Deck Cards Direct")

        result = aggregator.fetch_all([1])

        assert [b.id for b in result.boards] == [1]
        stacks = result.boards[0].stacks
        assert len(stacks[0].cards) == 2
        assert stacks[1].title == "Broken"
        assert stacks[1].cards == ()
        assert result.warnings

    def test_fetch_board_reports_partial(self, aggregator, client):
        client.get_board_complete.return_value = complete_board(1, "A", [{"id": 11}])
        client.list_cards.side_effect = fail("Deck Cards Direct")

        outcome = aggregator.fetch_board(1)

        assert outcome.status == FetchStatus.PARTIAL
        assert outcome.strategy == "complete"

    def test_malformed_cards_skipped(self, aggregator, client):
        client.get_board_complete.return_value = complete_board(1, "A", [
            {"id": 10, "cards": [{"title": "no id"}, "junk", {"id": 3}]},
        ])

        result = aggregator.fetch_all([1])

        assert [c.id for c in result.boards[0].stacks[0].cards] == [3]
        assert len(result.warnings) == 2


class TestStacksStrategy:
    """Tests for Strategy B (stacks listing) and dropping."""

    def test_fallback_to_stacks(self, aggregator, client):
        client.get_board_complete.side_effect = fail()
        client.list_stacks.return_value = [{"id": 10, "title": "Todo", "order": 0}]
        client.list_cards.return_value = [{"id": 1, "title": "A"}]

        outcome = aggregator.fetch_board(1)

        assert outcome.ok
        assert outcome.strategy == "stacks"
        assert outcome.board.title == "Untitled Board"
        assert outcome.board.total_cards() == 1

    def test_fallback_uses_listing_title(self, aggregator, client):
        client.list_boards.return_value = [{"id": 1, "title": "Kitchen"}]
        client.get_board_complete.side_effect = fail()
        client.list_stacks.return_value = []

        result = aggregator.fetch_all()

        assert result.boards[0].title == "Kitchen"

    def test_complete_without_stack_list_falls_back(self, aggregator, client):
        client.get_board_complete.return_value = {"id": 1, "title": "A"}
        client.list_stacks.return_value = []

        outcome = aggregator.fetch_board(1)

        assert outcome.strategy == "stacks"
        client.list_stacks.assert_called_once_with(1)

    def test_board_dropped_when_all_strategies_fail(self, aggregator, client):
        client.list_boards.return_value = [{"id": 1}, {"id": 2}, {"id": 3}]

        def complete(board_id):
            if board_id == 2:
                raise fail()
            return complete_board(board_id, f"B{board_id}", [
                {"id": board_id * 10, "cards": [{"id": board_id * 100}]},
            ])

        def stacks(board_id):
            raise fail("Deck Stacks")

        client.get_board_complete.side_effect = complete
        client.list_stacks.side_effect = stacks

        result = aggregator.fetch_all()

        assert [b.id for b in result.boards] == [1, 3]
        assert result.total_cards() == 2
        assert any("Board 2 dropped" in w for w in result.warnings)


class TestFetchAll:
    """Tests for board id resolution and ordering."""

    def test_list_boards_failure_propagates(self, aggregator, client):
        client.list_boards.side_effect = fail("Deck Boards")

        with pytest.raises(DeckAPIError):
            aggregator.fetch_all()

    def test_explicit_ids_skip_listing(self, aggregator, client):
        client.get_board_complete.return_value = complete_board(4)

        aggregator.fetch_all([4])

        client.list_boards.assert_not_called()

    def test_duplicate_ids_fetched_once(self, aggregator, client):
        client.get_board_complete.side_effect = lambda board_id: complete_board(board_id)

        result = aggregator.fetch_all([2, 1, 2])

        assert [b.id for b in result.boards] == [2, 1]
        assert client.get_board_complete.call_count == 2

    def test_no_boards_is_empty_result(self, aggregator, client):
        client.list_boards.return_value = []

        result = aggregator.fetch_all()

        assert result.is_empty()
        assert result.total_cards() == 0

    def test_parallel_fetch_keeps_order(self, client, config):
        aggregator = DeckAggregator(client, config, max_workers=4)
        client.get_board_complete.side_effect = lambda board_id: complete_board(board_id)

        result = aggregator.fetch_all([5, 3, 9, 1])

        assert [b.id for b in result.boards] == [5, 3, 9, 1]
