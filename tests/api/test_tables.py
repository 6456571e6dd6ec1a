"""Tests for game tables and the table registry."""

import asyncio

import pytest

from api.tables import GameTable, TableManager
from core.cards import StackedCardSource
from core.game import RoundState
from core.scoring import Outcome
from helpers import ADDRESS, FakeScoreStore


def paced_table(*cards: str, delay: float = 0.05) -> GameTable:
    """A connected table dealing the given cards with short dealer pauses."""
    table = GameTable(
        FakeScoreStore(),
        card_source=StackedCardSource(cards),
        draw_delay=delay,
        reveal_delay=delay,
    )
    table.game.connect(ADDRESS)
    return table


class TestDealerScheduling:
    """Tests for paced dealer play on a table."""

    @pytest.mark.asyncio
    async def test_stand_reset_stand_concludes_new_round(self):
        """A dealer run left waiting on a discarded round does not stall the next one."""
        table = paced_table(
            "10C", "2D", "10S", "8H",        # first round, dealer must draw
            "10H", "6D", "10D", "9S", "2C",  # second round, dealer draws to 18
        )
        game = table.game

        game.start()
        game.stand()
        stale = table.schedule_dealer_turn()
        await asyncio.sleep(0)

        game.reset()
        game.stand()
        fresh = table.schedule_dealer_turn()

        assert fresh is not stale
        assert await fresh is True
        assert stale.cancelled()
        assert game.state == RoundState.CONCLUDED
        assert game.outcome == Outcome.PLAYER_WINS
        assert game.score == 100
        assert [str(c) for c in game.dealer_hand.cards] == ["10♥", "6♦", "2♣"]

    @pytest.mark.asyncio
    async def test_same_round_reuses_running_task(self):
        """Scheduling twice in one dealer turn starts a single run."""
        table = paced_table("10C", "2D", "10S", "8H", "5C")

        table.game.start()
        table.game.stand()
        first = table.schedule_dealer_turn()

        assert table.schedule_dealer_turn() is first
        await first
        assert table.game.state == RoundState.CONCLUDED

    @pytest.mark.asyncio
    async def test_nothing_to_schedule_outside_dealer_turn(self):
        """Test that no task starts while the player is still acting."""
        table = paced_table("10C", "2D", "10S", "8H")
        table.game.start()

        assert table.schedule_dealer_turn() is None

    @pytest.mark.asyncio
    async def test_close_cancels_dealer_run(self):
        """Closing a table stops its dealer and detaches score sync."""
        table = paced_table("10C", "2D", "10S", "8H", delay=10)
        table.game.start()
        table.game.stand()
        task = table.schedule_dealer_turn()
        await asyncio.sleep(0)

        await table.close()

        assert task.cancelled()
        assert table.game.state == RoundState.DEALER_TURN


class TestTableManager:
    """Tests for the per-session table registry."""

    def test_get_or_create_reuses_table(self):
        """Test that a session keeps its table."""
        manager = TableManager(ttl=60)
        store = FakeScoreStore()

        table = manager.get_or_create("s1", store)

        assert manager.get_or_create("s1", store) is table
        assert manager.get("s2") is None
        assert len(manager) == 1

    @pytest.mark.asyncio
    async def test_idle_tables_are_evicted(self):
        """Tables unused for longer than the TTL are closed and dropped."""
        manager = TableManager(ttl=60)
        store = FakeScoreStore()
        old = manager.get_or_create("old", store)
        recent = manager.get_or_create("recent", store)
        recent.last_used = old.last_used + 30

        assert await manager.evict_idle(now=old.last_used + 45) == 0
        assert await manager.evict_idle(now=old.last_used + 75) == 1

        assert manager.get("old") is None
        assert manager.get("recent") is recent

    @pytest.mark.asyncio
    async def test_use_refreshes_table(self):
        """Test that looking a table up keeps it alive."""
        manager = TableManager(ttl=60)
        store = FakeScoreStore()
        table = manager.get_or_create("s1", store)
        table.last_used -= 120

        manager.get_or_create("s1", store)

        assert await manager.evict_idle() == 0
