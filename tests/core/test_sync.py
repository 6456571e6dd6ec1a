"""Tests for the score sync adapter."""

import asyncio
import json
import logging

import httpx
import pytest

from core.game import RoundState
from core.sync import HttpScoreStore, ScoreStoreError, ScoreSync
from helpers import ADDRESS, ADDRESS_LOWER, FakeScoreStore, stacked_game


class GatedScoreStore(FakeScoreStore):
    """A store whose reads wait until released, one gate per address."""

    def __init__(self, scores: dict[str, int]) -> None:
        super().__init__(scores)
        self.gates: dict[str, asyncio.Event] = {}

    def gate(self, address: str) -> asyncio.Event:
        return self.gates.setdefault(address, asyncio.Event())

    async def get_score(self, address: str) -> int:
        await self.gate(address).wait()
        return await super().get_score(address)


@pytest.mark.asyncio
async def test_blackjack_end_to_end(fake_store):
    """Connect, load 0, natural blackjack, score 150 saved for the lowercased address."""
    game = stacked_game("10C", "6D", "AS", "KH", address=None)
    sync = ScoreSync(game, fake_store)

    game.connect(ADDRESS)
    await sync.drain()
    assert fake_store.get_calls == [ADDRESS_LOWER]
    assert game.score == 0

    game.start()
    assert game.score == 150
    await sync.drain()

    assert fake_store.set_calls == [(ADDRESS_LOWER, 150)]


@pytest.mark.asyncio
async def test_loss_end_to_end():
    """Player 19 against dealer 20 loses 50 from the loaded score."""
    store = FakeScoreStore({ADDRESS_LOWER: 40})
    game = stacked_game("10C", "QD", "10S", "9H", address=None)
    sync = ScoreSync(game, store)

    game.connect(ADDRESS)
    await sync.drain()
    assert game.score == 40

    game.start()
    game.stand()
    game.play_dealer()
    await sync.drain()

    assert game.score == 0
    assert store.set_calls == [(ADDRESS_LOWER, 0)]


@pytest.mark.asyncio
async def test_push_does_not_save(fake_store):
    """Test that a push writes nothing."""
    game = stacked_game("10C", "8D", "10S", "8H", address=None)
    sync = ScoreSync(game, fake_store)
    game.connect(ADDRESS)

    game.start()
    game.stand()
    game.play_dealer()
    await sync.drain()

    assert fake_store.set_calls == []


@pytest.mark.asyncio
async def test_disconnect_mid_dealer_turn_does_not_save(fake_store):
    """Disconnecting during the dealer turn never calls save."""
    game = stacked_game("10C", "2D", "10S", "8H", "3S", address=None)
    sync = ScoreSync(game, fake_store)
    game.connect(ADDRESS)
    await sync.drain()

    game.start()
    game.stand()
    game.dealer_step()
    game.disconnect()
    await sync.drain()

    assert game.state == RoundState.IDLE
    assert fake_store.set_calls == []


@pytest.mark.asyncio
async def test_load_failure_defaults_to_zero_and_logs(fake_store, caplog):
    """A failed load is logged and leaves the score at 0."""
    fake_store.fail_get = True
    game = stacked_game(address=None, score=75)
    sync = ScoreSync(game, fake_store)

    with caplog.at_level(logging.WARNING, logger="core.sync"):
        game.connect(ADDRESS)
        await sync.drain()

    assert game.score == 0
    assert "Loading score" in caplog.text


@pytest.mark.asyncio
async def test_save_failure_keeps_in_memory_score(fake_store, caplog):
    """A failed save does not roll back the round's score or block play."""
    fake_store.fail_set = True
    game = stacked_game("10C", "6D", "AS", "KH", "9C", "8D", "2S", "3H", address=None)
    sync = ScoreSync(game, fake_store)
    game.connect(ADDRESS)
    await sync.drain()

    with caplog.at_level(logging.WARNING, logger="core.sync"):
        game.start()
        await sync.drain()

    assert game.score == 150
    assert "Saving score" in caplog.text
    assert game.start()


@pytest.mark.asyncio
async def test_saves_run_in_order(fake_store):
    """Consecutive rounds save in the order they concluded."""
    game = stacked_game(
        "10C", "6D", "AS", "KH",
        "9C", "8D", "KS", "AH",
        address=None,
    )
    sync = ScoreSync(game, fake_store)
    game.connect(ADDRESS)

    game.start()
    game.start()
    await sync.drain()

    assert [score for _, score in fake_store.set_calls] == [150, 300]
    assert fake_store.scores[ADDRESS_LOWER] == 300


@pytest.mark.asyncio
async def test_last_identifier_wins():
    """A slow load for a previous wallet never overwrites the current wallet's score."""
    store = GatedScoreStore({"0xaaa": 1000, "0xbbb": 20})
    game = stacked_game(address=None)
    sync = ScoreSync(game, store)

    game.connect("0xAAA")
    game.connect("0xBBB")
    await asyncio.sleep(0)

    store.gate("0xbbb").set()
    await asyncio.sleep(0)
    store.gate("0xaaa").set()
    await sync.drain()

    assert game.identifier == "0xbbb"
    assert game.score == 20


@pytest.mark.asyncio
async def test_round_score_outranks_pending_load():
    """A load still in flight does not overwrite a score earned since."""
    store = GatedScoreStore({ADDRESS_LOWER: 500})
    game = stacked_game("10C", "6D", "AS", "KH", address=None)
    sync = ScoreSync(game, store)

    game.connect(ADDRESS)
    game.start()
    store.gate(ADDRESS_LOWER).set()
    await sync.drain()

    assert game.score == 150


@pytest.mark.asyncio
async def test_close_stops_following(fake_store):
    """Test that a closed adapter ignores further events."""
    game = stacked_game("10C", "6D", "AS", "KH", address=None)
    sync = ScoreSync(game, fake_store)
    sync.close()

    game.connect(ADDRESS)
    game.start()
    await sync.drain()

    assert fake_store.get_calls == []
    assert fake_store.set_calls == []


def test_no_event_loop_skips_sync(fake_store, caplog):
    """Outside an event loop the engine still plays; sync is skipped with a warning."""
    game = stacked_game("10C", "6D", "AS", "KH", address=None)
    ScoreSync(game, fake_store)

    with caplog.at_level(logging.WARNING, logger="core.sync"):
        game.connect(ADDRESS)
        game.start()

    assert game.score == 150
    assert "score sync skipped" in caplog.text


class TestHttpScoreStore:
    """Tests for the HTTP score store client."""

    @staticmethod
    def _store(handler) -> HttpScoreStore:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpScoreStore(base_url="http://scores.test/api/scores", client=client)

    @pytest.mark.asyncio
    async def test_get_score(self):
        """Test reading a score."""
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["address"] == "0xabc"
            return httpx.Response(200, json={"address": "0xabc", "score": 250})

        assert await self._store(handler).get_score("0xabc") == 250

    @pytest.mark.asyncio
    async def test_get_score_non_numeric_is_zero(self):
        """Test a payload without a usable score."""
        store = self._store(lambda request: httpx.Response(200, json={"address": "0xabc"}))
        assert await store.get_score("0xabc") == 0

    @pytest.mark.asyncio
    async def test_set_score_posts_json(self):
        """Test the upsert request body."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.read())
            return httpx.Response(200, json={"ok": True})

        await self._store(handler).set_score("0xabc", 150)

        assert seen["method"] == "POST"
        assert seen["body"] == {"address": "0xabc", "score": 150}

    @pytest.mark.asyncio
    async def test_server_error_raises_store_error(self):
        """Test that non-2xx responses become ScoreStoreError."""
        store = self._store(lambda request: httpx.Response(500, json={"error": "db down"}))
        with pytest.raises(ScoreStoreError):
            await store.get_score("0xabc")
        with pytest.raises(ScoreStoreError):
            await store.set_score("0xabc", 1)

    @pytest.mark.asyncio
    async def test_network_error_raises_store_error(self):
        """Test that transport failures become ScoreStoreError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ScoreStoreError):
            await self._store(handler).get_score("0xabc")
