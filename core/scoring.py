"""Round outcomes and the score adjustment policy."""

from enum import Enum

from config import ScoringConfig, config
from core.hand import Hand


class Outcome(Enum):
    """How a concluded round ended."""

    BLACKJACK = "blackjack"
    PLAYER_WINS = "player_wins"
    DEALER_BUST = "dealer_bust"
    DEALER_WINS = "dealer_wins"
    PLAYER_BUST = "player_bust"
    PUSH = "push"

    def __str__(self) -> str:
        return self.value

    @property
    def is_win(self) -> bool:
        """Check if the player won the round."""
        return self in (Outcome.BLACKJACK, Outcome.PLAYER_WINS, Outcome.DEALER_BUST)

    @property
    def is_loss(self) -> bool:
        """Check if the player lost the round."""
        return self in (Outcome.DEALER_WINS, Outcome.PLAYER_BUST)

    @property
    def message(self) -> str:
        """Return the message shown to the player."""
        return _MESSAGES[self]


_MESSAGES = {
    Outcome.BLACKJACK: "BLACKJACK! Perfect 21!",
    Outcome.PLAYER_WINS: "Player wins!",
    Outcome.DEALER_BUST: "Dealer busts! Player wins!",
    Outcome.DEALER_WINS: "Dealer wins!",
    Outcome.PLAYER_BUST: "Player busts! Dealer wins!",
    Outcome.PUSH: "Push!",
}


def score_delta(outcome: Outcome, scoring: ScoringConfig | None = None) -> int:
    """
    Return the score change for an outcome.

    Args:
        outcome: How the round ended
        scoring: Score table (uses the global configuration if not provided)

    Returns:
        +150 for a natural blackjack, +100 for any other win, -50 for a loss
        and 0 for a push (with the default table)
    """
    scoring = scoring or config.scoring
    if outcome == Outcome.BLACKJACK:
        return scoring.blackjack_win
    if outcome.is_win:
        return scoring.win
    if outcome.is_loss:
        return scoring.loss
    return 0


def apply_delta(score: int, delta: int) -> int:
    """Apply a score change, never letting the score drop below zero."""
    return max(0, score + delta)


def determine_outcome(player_hand: Hand, dealer_hand: Hand) -> Outcome:
    """
    Compare hands once the dealer has finished drawing.

    The player has not busted at this point; a player bust ends the round
    before the dealer plays.
    """
    player_value = player_hand.value
    dealer_value = dealer_hand.value

    if dealer_hand.is_busted:
        return Outcome.DEALER_BUST
    if dealer_value > player_value:
        return Outcome.DEALER_WINS
    if player_value > dealer_value:
        return Outcome.PLAYER_WINS
    return Outcome.PUSH
