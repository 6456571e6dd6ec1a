"""Pytest fixtures for wallet blackjack tests."""

import os

# Tests never talk to a real Redis and must not trip the rate limiter
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from random import Random

from core.game import BlackjackGame
from helpers import ADDRESS, FakeScoreStore, make_hand


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def empty_hand():
    """An empty player hand."""
    return make_hand()


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return make_hand("AS", "KH")


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return make_hand("AS", "6H")


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return make_hand("10S", "6H")


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return make_hand("10S", "6H", "KC")


@pytest.fixture
def fake_store():
    """A recording score store."""
    return FakeScoreStore()


@pytest.fixture
def game(rng):
    """A connected game with a seeded random card source."""
    game = BlackjackGame(rng=rng)
    game.connect(ADDRESS)
    return game
