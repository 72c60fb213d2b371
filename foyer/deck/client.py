"""
Nextcloud Deck API client.

Thin read-only wrapper over the Deck REST API. Every failure (transport
error, non-200 status, undecodable body) surfaces as DeckAPIError so the
aggregator has a single exception type to recover from.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from foyer.core.config import Config, DeckSettings

logger = logging.getLogger(__name__)

DECK_API_PATH = "/index.php/apps/deck/api/v1.0"
USER_AGENT = "Foyer-Display/1.0"


class DeckError(Exception):
    """Base error for Deck integration failures"""


class DeckAPIError(DeckError):
    """A Deck request failed or returned an unusable response"""

    def __init__(self, context: str, message: str, status_code: Optional[int] = None):
        self.context = context
        self.status_code = status_code
        super().__init__(f"Failed to complete {context} request: {message}")


class DeckClient:
    """
    Deck API client with basic auth.

    Provides the four listing operations the aggregator needs plus a
    connection test for health checks.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        verify_ssl: bool = True,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Nextcloud server URL
            username: Nextcloud user
            password: Password or app token
            verify_ssl: Verify TLS certificates
            timeout: Request timeout in seconds
            session: Pre-built session (tests inject one)
        """
        self.base_url = (base_url or "").rstrip("/")
        self.username = username
        self.password = password
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: DeckSettings) -> 'DeckClient':
        return cls(
            base_url=settings.base_url,
            username=settings.username,
            password=settings.password,
            verify_ssl=settings.verify_ssl,
            timeout=settings.request_timeout,
        )

    @classmethod
    def from_config(cls, config: Config) -> 'DeckClient':
        return cls.from_settings(config.deck_settings())

    def _headers(self) -> Dict[str, str]:
        return {
            "OCS-APIRequest": "true",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _get(self, path: str, context: str) -> Any:
        """
        Perform a GET against the Deck API and decode the JSON body.

        Raises:
            DeckAPIError: on any transport, status or decoding failure
        """
        url = f"{self.base_url}{DECK_API_PATH}{path}"
        logger.info(f"Starting Deck {context} request: GET {url}")
        start = time.monotonic()

        try:
            resp = self._session.get(
                url,
                auth=(self.username, self.password),
                headers=self._headers(),
                verify=self.verify_ssl,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Deck {context} request failed: {e} ({url})")
            raise DeckAPIError(context, str(e)) from e

        duration_ms = (time.monotonic() - start) * 1000
        if resp.status_code != 200:
            logger.error(f"Deck {context} request returned status {resp.status_code} ({url})")
            raise DeckAPIError(
                context,
                f"Deck API returned status code: {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            logger.error(f"Deck {context} response is not valid JSON ({url})")
            raise DeckAPIError(context, f"invalid JSON body: {e}", status_code=resp.status_code) from e

        logger.info(
            f"Deck {context} request complete: status={resp.status_code} "
            f"duration_ms={duration_ms:.2f} content_length={len(resp.content or b'')}"
        )
        return data

    def list_boards(self) -> List[Dict[str, Any]]:
        """List every board visible to the configured user"""
        data = self._get("/boards", "Deck Boards")
        if not isinstance(data, list):
            raise DeckAPIError("Deck Boards", "expected a list of boards")
        logger.info(f"Deck boards fetched: {len(data)}")
        return data

    def list_stacks(self, board_id: int) -> List[Dict[str, Any]]:
        """List the stacks of one board"""
        data = self._get(f"/boards/{board_id}/stacks", "Deck Stacks")
        if not isinstance(data, list):
            raise DeckAPIError("Deck Stacks", f"expected a list of stacks for board {board_id}")
        logger.info(f"Deck stacks fetched for board {board_id}: {len(data)}")
        return data

    def list_cards(self, board_id: int, stack_id: int) -> List[Dict[str, Any]]:
        """
        List the cards of one stack.

        Reads the stack resource (which embeds its cards) first and falls
        back to the direct cards endpoint if that fails.
        """
        try:
            stack_data = self._get(
                f"/boards/{board_id}/stacks/{stack_id}", "Deck Cards via Stack"
            )
            cards = stack_data.get("cards") if isinstance(stack_data, dict) else None
            cards = cards if isinstance(cards, list) else []
            logger.info(
                f"Deck cards fetched via stack: board={board_id} stack={stack_id} count={len(cards)}"
            )
            return cards
        except DeckAPIError as e:
            logger.warning(
                f"Stack read failed for board {board_id} stack {stack_id}, "
                f"trying direct cards endpoint: {e}"
            )

        data = self._get(f"/boards/{board_id}/stacks/{stack_id}/cards", "Deck Cards Direct")
        if data is None:
            return []
        if not isinstance(data, list):
            raise DeckAPIError(
                "Deck Cards Direct", f"expected a list of cards for stack {stack_id}"
            )
        return data

    def get_board_complete(self, board_id: int) -> Dict[str, Any]:
        """Fetch one board with nested stacks (and usually cards)"""
        data = self._get(f"/boards/{board_id}", "Deck Complete Board")
        if not isinstance(data, dict):
            raise DeckAPIError("Deck Complete Board", f"expected an object for board {board_id}")
        stacks = data.get("stacks")
        logger.info(
            f"Deck complete board fetched: board={board_id} "
            f"stacks={len(stacks) if isinstance(stacks, list) else 0}"
        )
        return data

    def test_connection(self) -> Dict[str, Any]:
        """
        Test the connection by listing boards.

        Returns:
            Status dict; never raises
        """
        try:
            boards = self.list_boards()
        except DeckError as e:
            return {"connected": False, "error": str(e)}

        return {
            "connected": True,
            "boards_count": len(boards),
            "boards": [
                {"id": b.get("id"), "title": b.get("title") or "Untitled Board"}
                for b in boards if isinstance(b, dict)
            ],
        }
