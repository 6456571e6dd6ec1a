"""Core blackjack engine - 100% UI-agnostic."""

from core.cards import Card, CardSource, RandomCardSource, StackedCardSource, Rank, Suit
from core.hand import Hand, hand_total
from core.scoring import Outcome, apply_delta, determine_outcome, score_delta

__all__ = [
    "Card",
    "CardSource",
    "RandomCardSource",
    "StackedCardSource",
    "Rank",
    "Suit",
    "Hand",
    "hand_total",
    "Outcome",
    "apply_delta",
    "determine_outcome",
    "score_delta",
]
