"""Round state enumeration."""

from enum import Enum, auto


class RoundState(Enum):
    """
    Round state machine states.

    Flow: IDLE → PLAYER_TURN → DEALER_TURN → CONCLUDED → PLAYER_TURN (next start)
    """

    # No round: before the first start, after a disconnect or a wallet switch
    IDLE = auto()

    # Hands dealt, player may hit or stand
    PLAYER_TURN = auto()

    # Dealer draws to 17
    DEALER_TURN = auto()

    # Outcome fixed and score applied
    CONCLUDED = auto()

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()
