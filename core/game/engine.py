"""Blackjack game engine with state machine."""

import logging
from random import Random
from typing import Any, Callable

from transitions import Machine

from config import ScoringConfig, config
from core.cards import Card, CardSource, RandomCardSource
from core.hand import BLACKJACK, Hand
from core.identity import normalize_address
from core.scoring import Outcome, apply_delta, determine_outcome, score_delta
from core.game.events import EventEmitter, EventType, GameEvent
from core.game.state import RoundState

logger = logging.getLogger(__name__)

MSG_CONNECT = "Connect a wallet to play"
MSG_READY = "Press Start to play"
MSG_SWITCHED = "Account switched, press Start or Reset for a new round"
MSG_DEALT = "Game on! Hit or Stand"
MSG_REACHED_21 = "You reached 21, dealer's turn..."
MSG_DEALER_TURN = "Dealer is drawing..."
MSG_RESETTING = "Getting a new round ready..."


class BlackjackGame:
    """
    Single-player blackjack engine using a state machine.

    This is the core game logic, completely UI-agnostic. Every action runs
    to completion and reports through events and return values only. Invalid
    actions are ignored (they return False and emit INVALID_ACTION).

    The dealer turn is advanced one card at a time through dealer_step(), so
    a scheduler can pace it; play_dealer() runs it instantly.
    """

    # State machine states
    STATES = [s.name.lower() for s in RoundState]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "deal", "source": ["idle", "concluded"], "dest": "player_turn"},
        {"trigger": "player_action", "source": "player_turn", "dest": "player_turn"},
        {"trigger": "player_done", "source": "player_turn", "dest": "dealer_turn"},
        {"trigger": "dealer_draws", "source": "dealer_turn", "dest": "dealer_turn"},
        {"trigger": "conclude", "source": ["player_turn", "dealer_turn"], "dest": "concluded"},
        {"trigger": "clear_table", "source": "*", "dest": "idle"},
    ]

    def __init__(
        self,
        card_source: CardSource | None = None,
        scoring: ScoringConfig | None = None,
        dealer_stands_on: int | None = None,
        initial_score: int | None = None,
        rng: Random | None = None,
    ) -> None:
        """
        Initialize a new blackjack game.

        Args:
            card_source: Where cards are drawn from (infinite random deck by default)
            scoring: Score table (uses configured defaults if not provided)
            dealer_stands_on: Dealer draws while below this total
            initial_score: Score before any load from the score store
            rng: Random number generator for the default card source
        """
        self.card_source = RandomCardSource(rng=rng) if card_source is None else card_source
        self.scoring = scoring or config.scoring
        self.dealer_stands_on = dealer_stands_on or config.game.dealer_stands_on

        self.player_hand = Hand()
        self.dealer_hand = Hand()
        self.identifier: str | None = None
        self.score = config.game.starting_score if initial_score is None else initial_score
        self.outcome: Outcome | None = None
        self.message = MSG_CONNECT
        # Bumped whenever the table is cleared or re-dealt; pending dealer play
        # from an older round checks it and stops.
        self.round_id = 0
        self.events = EventEmitter()

        # Initialize state machine
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="idle",
            auto_transitions=False,
            model_attribute="_machine_state",
        )

    @property
    def state(self) -> RoundState:
        """Get current round state as enum."""
        return RoundState[self._machine_state.upper()]  # type: ignore

    @property
    def is_connected(self) -> bool:
        """Check if a player identifier is present."""
        return self.identifier is not None

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to game events."""
        self.events.subscribe(handler, event_type)

    def unsubscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Unsubscribe from game events."""
        self.events.unsubscribe(handler, event_type)

    # Identity

    def connect(self, identifier: str | None) -> bool:
        """
        Set the current player identifier.

        A new identifier ends any round in progress and leaves the table idle;
        the next round must be started explicitly. Reconnecting with the same
        identifier changes nothing.

        Returns:
            True if the identifier changed
        """
        if not identifier or not identifier.strip():
            return self.disconnect()

        address = normalize_address(identifier)
        if address == self.identifier:
            return False

        previous = self.identifier
        self.identifier = address
        self._clear_table()
        self.message = MSG_SWITCHED if previous else MSG_READY

        logger.debug("Identity changed from %s to %s", previous, address)
        self.events.emit_new(EventType.IDENTITY_CHANGED, address=address, previous=previous)
        return True

    def disconnect(self) -> bool:
        """Drop the identifier and clear the table from any state."""
        previous = self.identifier
        self.identifier = None
        self._clear_table()
        self.message = MSG_CONNECT

        logger.debug("Disconnected %s", previous)
        self.events.emit_new(EventType.DISCONNECTED, previous=previous)
        return True

    def set_score(self, score: int, identifier: str | None = None) -> bool:
        """
        Replace the in-memory score with a value loaded from the score store.

        Args:
            score: Loaded score
            identifier: Identifier the score was loaded for; ignored if it is
                no longer the current one

        Returns:
            True if the score was applied
        """
        if identifier is not None and normalize_address(identifier) != self.identifier:
            return False

        self.score = max(0, int(score))
        self.events.emit_new(EventType.SCORE_LOADED, address=self.identifier, score=self.score)
        return True

    # Player actions

    def start(self) -> bool:
        """Deal a new round: two cards to the dealer, then two to the player."""
        if self.identifier is None:
            self.message = MSG_CONNECT
            return self._invalid("start", "Connect a wallet first")

        if self.state not in (RoundState.IDLE, RoundState.CONCLUDED):
            return self._invalid("start", "Round already in progress")

        self.player_hand.clear()
        self.dealer_hand.clear()
        self.outcome = None
        self.round_id += 1
        self.deal()

        self._deal_card_to_hand(self.dealer_hand)
        self._deal_card_to_hand(self.dealer_hand, face_up=False)
        self._deal_card_to_hand(self.player_hand)
        self._deal_card_to_hand(self.player_hand)

        self.message = MSG_DEALT
        self.events.emit_new(
            EventType.ROUND_STARTED,
            round_id=self.round_id,
            player_value=self.player_hand.value,
        )

        if self.player_hand.is_blackjack:
            # Natural blackjack: dealer does not play
            self._conclude(Outcome.BLACKJACK)

        return True

    def hit(self) -> bool:
        """Player hits (takes another card)."""
        if self.state != RoundState.PLAYER_TURN:
            return self._invalid("hit", "Not the player's turn")

        self._deal_card_to_hand(self.player_hand)
        self.events.emit_new(EventType.PLAYER_HIT, hand_value=self.player_hand.value)

        if self.player_hand.is_busted:
            self._conclude(Outcome.PLAYER_BUST)
        elif self.player_hand.value == BLACKJACK:
            # 21 after a hit always has three or more cards, so it is not a
            # natural; the dealer still plays.
            self.message = MSG_REACHED_21
            self.events.emit_new(EventType.PLAYER_REACHED_21, num_cards=self.player_hand.num_cards)
            self._begin_dealer_turn()
        else:
            self.player_action()

        return True

    def stand(self) -> bool:
        """Player stands (keeps current hand)."""
        if self.state != RoundState.PLAYER_TURN:
            return self._invalid("stand", "Not the player's turn")

        self.events.emit_new(EventType.PLAYER_STAND, hand_value=self.player_hand.value)
        self.message = MSG_DEALER_TURN
        self._begin_dealer_turn()
        return True

    def reset(self) -> bool:
        """Discard the current round from any state and deal a new one."""
        if self.identifier is None:
            self.message = MSG_CONNECT
            return self._invalid("reset", "Connect a wallet first")

        self._clear_table()
        self.message = MSG_RESETTING
        return self.start()

    # Dealer play

    @property
    def dealer_should_hit(self) -> bool:
        """Determine if the dealer draws another card."""
        return self.dealer_hand.value < self.dealer_stands_on

    def dealer_step(self) -> bool:
        """
        Advance the dealer turn by one step.

        Draws one card while the dealer is below the stand threshold;
        otherwise evaluates the outcome and concludes the round.

        Returns:
            True if the dealer still has to act
        """
        if self.state != RoundState.DEALER_TURN:
            return False

        if self.dealer_should_hit:
            self._deal_card_to_hand(self.dealer_hand)
            self.dealer_draws()
            self.events.emit_new(EventType.DEALER_HITS, hand_value=self.dealer_hand.value)
            return True

        self.events.emit_new(
            EventType.DEALER_STANDS,
            hand_value=self.dealer_hand.value,
            busted=self.dealer_hand.is_busted,
        )
        self._conclude(determine_outcome(self.player_hand, self.dealer_hand))
        return False

    def play_dealer(self) -> bool:
        """Play the whole dealer turn without pauses."""
        if self.state != RoundState.DEALER_TURN:
            return False

        while self.dealer_step():
            pass
        return True

    # Internals

    def _begin_dealer_turn(self) -> None:
        """Hand control to the dealer and reveal the hole card."""
        self.player_done()
        if len(self.dealer_hand.cards) >= 2:
            self.events.emit_new(
                EventType.DEALER_REVEALS,
                card=str(self.dealer_hand.cards[1]),
                hand_value=self.dealer_hand.value,
            )

    def _deal_card_to_hand(self, hand: Hand, face_up: bool = True) -> Card:
        """Deal a card to a hand."""
        card = self.card_source.draw()
        hand.add_card(card)
        is_dealer = hand is self.dealer_hand
        self.events.emit_new(
            EventType.CARD_DEALT,
            card=str(card) if face_up else "??",
            hand="dealer" if is_dealer else "player",
            hand_value=hand.value if face_up or not is_dealer else None,
        )
        return card

    def _conclude(self, outcome: Outcome) -> None:
        """Fix the outcome, apply the score change and notify subscribers."""
        delta = score_delta(outcome, self.scoring)
        previous = self.score
        self.score = apply_delta(self.score, delta)
        self.outcome = outcome
        self.conclude()

        logger.debug(
            "Round %d concluded for %s: %s (%d -> %d)",
            self.round_id, self.identifier, outcome, previous, self.score,
        )
        self.events.emit_new(
            EventType.ROUND_CONCLUDED,
            outcome=outcome.value,
            player_value=self.player_hand.value,
            dealer_value=self.dealer_hand.value,
            delta=delta,
            score=self.score,
        )
        if delta != 0:
            self.events.emit_new(
                EventType.SCORE_CHANGED,
                address=self.identifier,
                score=self.score,
                delta=delta,
            )
        self.message = outcome.message

    def _clear_table(self) -> None:
        """End any round in progress and return to idle."""
        self.player_hand.clear()
        self.dealer_hand.clear()
        self.outcome = None
        self.round_id += 1
        self.clear_table()
        self.events.emit_new(EventType.TABLE_CLEARED, round_id=self.round_id)

    def _invalid(self, action: str, message: str) -> bool:
        """Record an ignored action."""
        logger.debug("Ignored %s in state %s: %s", action, self.state.name, message)
        self.events.emit_new(
            EventType.INVALID_ACTION,
            action=action,
            message=message,
            state=self.state.name,
        )
        return False

    # Presentation helpers

    @property
    def can_start(self) -> bool:
        """Check if a new round can be dealt."""
        return self.is_connected and self.state in (RoundState.IDLE, RoundState.CONCLUDED)

    @property
    def can_hit(self) -> bool:
        """Check if hitting is allowed."""
        return self.state == RoundState.PLAYER_TURN

    @property
    def can_stand(self) -> bool:
        """Check if standing is allowed."""
        return self.state == RoundState.PLAYER_TURN

    def snapshot(self, hide_hole_card: bool | None = None) -> dict[str, Any]:
        """
        Describe the table for the presentation layer.

        Args:
            hide_hole_card: Mask the dealer's second card; defaults to hiding
                it during the player's turn
        """
        if hide_hole_card is None:
            hide_hole_card = self.state == RoundState.PLAYER_TURN

        dealer_cards = []
        for i, card in enumerate(self.dealer_hand.cards):
            if hide_hole_card and i == 1:
                dealer_cards.append({"rank": "?", "suit": "?", "value": 0, "hidden": True})
            else:
                dealer_cards.append(_card_to_dict(card))

        dealer_value: int | None = self.dealer_hand.value
        if hide_hole_card and self.dealer_hand.cards:
            dealer_value = self.dealer_hand.cards[0].value

        return {
            "state": self.state.name,
            "address": self.identifier,
            "score": self.score,
            "message": self.message,
            "outcome": self.outcome.value if self.outcome else None,
            "round_id": self.round_id,
            "player_hand": {
                "cards": [_card_to_dict(c) for c in self.player_hand.cards],
                "value": self.player_hand.value,
                "is_soft": self.player_hand.is_soft,
                "is_blackjack": self.player_hand.is_blackjack,
                "is_busted": self.player_hand.is_busted,
            },
            "dealer_hand": {
                "cards": dealer_cards,
                "value": dealer_value,
            },
            "can_start": self.can_start,
            "can_hit": self.can_hit,
            "can_stand": self.can_stand,
        }


def _card_to_dict(card: Card) -> dict[str, Any]:
    return {
        "rank": str(card.rank),
        "suit": str(card.suit),
        "value": card.value,
        "is_red": card.suit.is_red,
        "hidden": False,
    }
