"""Card types and card sources - immutable card representations."""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from random import Random
from typing import Iterable, Protocol


class Suit(Enum):
    """Card suits. Suit has no effect on play, only on display colour."""

    SPADES = "♠"
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"

    def __str__(self) -> str:
        return self.value

    @property
    def is_red(self) -> bool:
        """Check if the suit is displayed in red."""
        return self in (Suit.HEARTS, Suit.DIAMONDS)


class Rank(Enum):
    """Card ranks, valued by their face."""

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    def __str__(self) -> str:
        return self.value

    @property
    def base_value(self) -> int:
        """Return the point value before any Ace is demoted (Ace = 11, face cards = 10)."""
        if self == Rank.ACE:
            return 11
        if self in (Rank.JACK, Rank.QUEEN, Rank.KING):
            return 10
        return int(self.value)

    @property
    def is_ace(self) -> bool:
        """Check if this rank is an Ace."""
        return self == Rank.ACE


@dataclass(frozen=True, slots=True)
class Card:
    """Immutable playing card."""

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name})"

    @property
    def value(self) -> int:
        """Return the base point value."""
        return self.rank.base_value

    @property
    def is_ace(self) -> bool:
        """Check if this card is an Ace."""
        return self.rank.is_ace

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', 'Kh', '10d'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str = s[:-1]
        suit_str = s[-1]

        rank_map = {rank.value: rank for rank in Rank}
        rank_map["T"] = Rank.TEN

        suit_map = {
            "C": Suit.CLUBS,
            "♣": Suit.CLUBS,
            "D": Suit.DIAMONDS,
            "♦": Suit.DIAMONDS,
            "H": Suit.HEARTS,
            "♥": Suit.HEARTS,
            "S": Suit.SPADES,
            "♠": Suit.SPADES,
        }

        if rank_str not in rank_map:
            raise ValueError(f"Invalid rank: {rank_str}")
        if suit_str not in suit_map:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(rank_map[rank_str], suit_map[suit_str])


class CardSource(Protocol):
    """Anything the engine can draw cards from."""

    def draw(self) -> Card:
        ...


class RandomCardSource:
    """
    An infinite deck.

    Every draw is independent and uniform over 13 ranks x 4 suits, with
    replacement, so the same card may appear any number of times in a round.
    """

    _RANKS = tuple(Rank)
    _SUITS = tuple(Suit)

    def __init__(self, rng: Random | None = None) -> None:
        """Initialize the source with an optional seeded generator."""
        self._rng = rng or Random()

    def draw(self) -> Card:
        """Draw a random card."""
        return Card(self._rng.choice(self._RANKS), self._rng.choice(self._SUITS))


class StackedCardSource:
    """A fixed, ordered sequence of cards for reproducible rounds."""

    def __init__(self, cards: Iterable[Card | str] = ()) -> None:
        self._cards: deque[Card] = deque()
        self.extend(cards)

    def extend(self, cards: Iterable[Card | str]) -> None:
        """Append cards (or card strings) to the end of the sequence."""
        for card in cards:
            self._cards.append(Card.from_string(card) if isinstance(card, str) else card)

    def draw(self) -> Card:
        """Draw the next card in sequence."""
        if not self._cards:
            raise IndexError("Cannot draw from exhausted card source")
        return self._cards.popleft()

    @property
    def cards_remaining(self) -> int:
        """Return the number of cards left in the sequence."""
        return len(self._cards)

    def __len__(self) -> int:
        return len(self._cards)
