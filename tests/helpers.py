"""Shared test helpers: card builders, a recording score store and hypothesis strategies."""

from hypothesis import strategies as st

from core.cards import Card, Rank, Suit, StackedCardSource
from core.game import BlackjackGame
from core.hand import Hand
from core.sync import ScoreStoreError

ADDRESS = "0xABCdef0123456789ABCDEF0123456789abcdef01"
ADDRESS_LOWER = ADDRESS.lower()


class FakeScoreStore:
    """In-memory score store that records calls and can be told to fail."""

    def __init__(self, scores: dict[str, int] | None = None) -> None:
        self.scores = dict(scores or {})
        self.get_calls: list[str] = []
        self.set_calls: list[tuple[str, int]] = []
        self.fail_get = False
        self.fail_set = False

    async def get_score(self, address: str) -> int:
        self.get_calls.append(address)
        if self.fail_get:
            raise ScoreStoreError("store unreachable")
        return self.scores.get(address, 0)

    async def set_score(self, address: str, score: int) -> None:
        self.set_calls.append((address, score))
        if self.fail_set:
            raise ScoreStoreError("store unreachable")
        self.scores[address] = score


def make_hand(*cards: str) -> Hand:
    """Build a hand from card strings like 'AS', '10H'."""
    return Hand(cards=[Card.from_string(c) for c in cards])


def stacked_game(*cards: str, score: int = 0, address: str | None = ADDRESS) -> BlackjackGame:
    """
    A game whose draws follow the given cards.

    Deal order is dealer, dealer, player, player, then hits and dealer draws.
    """
    game = BlackjackGame(card_source=StackedCardSource(cards), initial_score=score)
    if address:
        game.connect(address)
    return game


@st.composite
def card_strategy(draw):
    """Generate a random card."""
    rank = draw(st.sampled_from(list(Rank)))
    suit = draw(st.sampled_from(list(Suit)))
    return Card(rank, suit)


@st.composite
def hand_strategy(draw, min_cards=0, max_cards=8):
    """Generate a random hand."""
    cards = draw(st.lists(card_strategy(), min_size=min_cards, max_size=max_cards))
    return Hand(cards=cards)
