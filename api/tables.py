"""Game tables: one engine, score sync and dealer scheduler per session."""

import asyncio
import logging
import time

from config import config
from core.cards import CardSource
from core.game import BlackjackGame, DealerScheduler, RoundState
from core.sync import ScoreStore, ScoreSync

logger = logging.getLogger(__name__)


class GameTable:
    """A single player's table."""

    def __init__(
        self,
        store: ScoreStore,
        card_source: CardSource | None = None,
        draw_delay: float | None = None,
        reveal_delay: float | None = None,
    ) -> None:
        self.game = BlackjackGame(card_source=card_source)
        self.sync = ScoreSync(self.game, store)
        self.scheduler = DealerScheduler(self.game, draw_delay, reveal_delay)
        self.last_used = time.monotonic()
        self._dealer_task: asyncio.Task | None = None
        self._dealer_round: int | None = None

    def touch(self) -> None:
        """Mark the table as in use."""
        self.last_used = time.monotonic()

    def finish_dealer_turn(self) -> None:
        """Play a pending dealer turn instantly."""
        if self.game.state == RoundState.DEALER_TURN:
            self.game.play_dealer()

    def schedule_dealer_turn(self) -> asyncio.Task | None:
        """
        Play a pending dealer turn at the configured pace in the background.

        A run still waiting on a discarded round is cancelled and replaced.
        """
        if self.game.state != RoundState.DEALER_TURN:
            return None

        task = self._dealer_task
        if task is not None and not task.done():
            if self._dealer_round == self.game.round_id:
                return task
            task.cancel()

        self._dealer_round = self.game.round_id
        self._dealer_task = asyncio.get_running_loop().create_task(self.scheduler.run())
        return self._dealer_task

    async def close(self) -> None:
        """Stop dealer play and flush pending score writes."""
        if self._dealer_task is not None and not self._dealer_task.done():
            self._dealer_task.cancel()
            try:
                await self._dealer_task
            except asyncio.CancelledError:
                pass
        await self.sync.drain()
        self.sync.close()


class TableManager:
    """Tables by session ID. Tables idle longer than the session TTL are evicted."""

    def __init__(self, ttl: float | None = None) -> None:
        self._tables: dict[str, GameTable] = {}
        self.ttl = config.session_ttl if ttl is None else ttl

    def get(self, session_id: str) -> GameTable | None:
        """Get the table for a session, if any."""
        return self._tables.get(session_id)

    def get_or_create(self, session_id: str, store: ScoreStore) -> GameTable:
        """Get or create the table for a session."""
        table = self._tables.get(session_id)
        if table is None:
            logger.debug("Opening table for session %s", session_id)
            table = self._tables[session_id] = GameTable(store)
        table.touch()
        return table

    def put(self, session_id: str, table: GameTable) -> None:
        """Install a table for a session."""
        self._tables[session_id] = table

    async def remove(self, session_id: str) -> None:
        """Close and forget a session's table."""
        table = self._tables.pop(session_id, None)
        if table is not None:
            await table.close()

    async def evict_idle(self, now: float | None = None) -> int:
        """
        Close tables unused for longer than the TTL.

        Returns:
            Number of tables evicted
        """
        now = time.monotonic() if now is None else now
        idle = [sid for sid, table in self._tables.items() if now - table.last_used > self.ttl]
        for session_id in idle:
            await self.remove(session_id)
        if idle:
            logger.info("Evicted %d idle tables", len(idle))
        return len(idle)

    def __len__(self) -> int:
        return len(self._tables)


# Global table manager
tables = TableManager()
