"""Score sync adapter between the game engine and the score store."""

import asyncio
import logging
from typing import Any, Coroutine, Protocol

import httpx

from config import config
from core.game.engine import BlackjackGame
from core.game.events import EventType, GameEvent
from core.identity import normalize_address

logger = logging.getLogger(__name__)


class ScoreStoreError(Exception):
    """The score store could not be reached or rejected a request."""


class ScoreStore(Protocol):
    """Key-value score storage keyed by lowercased wallet address."""

    async def get_score(self, address: str) -> int:
        """Return the stored score, 0 if the address is unknown."""
        ...

    async def set_score(self, address: str, score: int) -> None:
        """Create or overwrite the score for an address."""
        ...


class HttpScoreStore:
    """Score store reached over the score service HTTP API."""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the HTTP store.

        Args:
            base_url: Score endpoint URL (e.g. http://host/api/scores)
            client: Shared HTTP client; one is created if not provided
            timeout: Request timeout in seconds for a created client
        """
        self._base_url = base_url or config.scores.store_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or config.scores.request_timeout,
        )

    async def get_score(self, address: str) -> int:
        """Fetch the score for an address."""
        try:
            response = await self._client.get(self._base_url, params={"address": address})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ScoreStoreError(f"Failed to load score: {exc}") from exc

        score = data.get("score") if isinstance(data, dict) else None
        return score if isinstance(score, int) else 0

    async def set_score(self, address: str, score: int) -> None:
        """Upsert the score for an address."""
        try:
            response = await self._client.post(
                self._base_url,
                json={"address": address, "score": score},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ScoreStoreError(f"Failed to save score: {exc}") from exc

    async def aclose(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._owns_client:
            await self._client.aclose()


class ScoreSync:
    """
    Keeps the score store in step with a game.

    Loads the score whenever the game's identifier changes and saves it after
    every round that changes it. Both run as background tasks; failures are
    logged and never reach the game. A load only applies if no newer load or
    save for the table happened while it was pending.
    """

    def __init__(self, game: BlackjackGame, store: ScoreStore) -> None:
        self.game = game
        self.store = store
        self._load_generation = 0
        self._save_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

        game.subscribe(self._on_identity_changed, EventType.IDENTITY_CHANGED)
        game.subscribe(self._on_score_changed, EventType.SCORE_CHANGED)

    def close(self) -> None:
        """Stop following the game."""
        self.game.unsubscribe(self._on_identity_changed, EventType.IDENTITY_CHANGED)
        self.game.unsubscribe(self._on_score_changed, EventType.SCORE_CHANGED)

    async def load(self, identifier: str) -> int:
        """
        Load the stored score for an identifier into the game.

        Returns:
            The loaded score (0 if unknown or the store failed)
        """
        self._load_generation += 1
        return await self._load(normalize_address(identifier), self._load_generation)

    async def _load(self, address: str, generation: int) -> int:
        try:
            score = await self.store.get_score(address)
        except ScoreStoreError as exc:
            logger.warning("Loading score for %s failed: %s", address, exc)
            score = 0

        if generation != self._load_generation:
            logger.debug("Discarding superseded score load for %s", address)
            return score

        self.game.set_score(score, identifier=address)
        return score

    async def save(self, identifier: str, score: int) -> bool:
        """
        Write a score to the store. Saves run one at a time in call order.

        Returns:
            True if the store accepted the write
        """
        address = normalize_address(identifier)
        async with self._save_lock:
            try:
                await self.store.set_score(address, score)
            except ScoreStoreError as exc:
                logger.warning("Saving score %d for %s failed: %s", score, address, exc)
                return False

        logger.info("Saved score %d for %s", score, address)
        return True

    async def drain(self) -> None:
        """Wait for all pending loads and saves."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    @property
    def pending(self) -> int:
        """Return the number of loads and saves still running."""
        return len(self._tasks)

    def _on_identity_changed(self, event: GameEvent) -> None:
        self._load_generation += 1
        self._spawn(self._load(event.data["address"], self._load_generation))

    def _on_score_changed(self, event: GameEvent) -> None:
        # A fresh in-memory score outranks any load still in flight
        self._load_generation += 1
        address = event.data.get("address")
        if address:
            self._spawn(self.save(address, event.data["score"]))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, score sync skipped")
            coro.close()
            return

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
