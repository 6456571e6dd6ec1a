"""Tests for outcomes and the score policy."""

import pytest

from config import ScoringConfig
from core.scoring import Outcome, apply_delta, determine_outcome, score_delta
from helpers import make_hand


class TestScoreDelta:
    """Tests for score_delta."""

    @pytest.mark.parametrize(
        "outcome,expected",
        [
            (Outcome.BLACKJACK, 150),
            (Outcome.PLAYER_WINS, 100),
            (Outcome.DEALER_BUST, 100),
            (Outcome.DEALER_WINS, -50),
            (Outcome.PLAYER_BUST, -50),
            (Outcome.PUSH, 0),
        ],
    )
    def test_default_table(self, outcome, expected):
        """Test the default score table."""
        assert score_delta(outcome) == expected

    def test_custom_table(self):
        """Test that a custom table is honoured."""
        scoring = ScoringConfig(blackjack_win=30, win=20, loss=-10)
        assert score_delta(Outcome.BLACKJACK, scoring) == 30
        assert score_delta(Outcome.DEALER_BUST, scoring) == 20
        assert score_delta(Outcome.PLAYER_BUST, scoring) == -10
        assert score_delta(Outcome.PUSH, scoring) == 0

    def test_win_and_loss_flags(self):
        """Test outcome classification."""
        assert all(o.is_win for o in (Outcome.BLACKJACK, Outcome.PLAYER_WINS, Outcome.DEALER_BUST))
        assert all(o.is_loss for o in (Outcome.DEALER_WINS, Outcome.PLAYER_BUST))
        assert not Outcome.PUSH.is_win
        assert not Outcome.PUSH.is_loss

    def test_every_outcome_has_message(self):
        """Test that every outcome can be presented."""
        for outcome in Outcome:
            assert outcome.message


class TestApplyDelta:
    """Tests for apply_delta."""

    def test_loss_floored_at_zero(self):
        """Starting at 30, a loss yields 0, not -20."""
        assert apply_delta(30, -50) == 0

    def test_loss_from_zero(self):
        """Test that a loss at 0 stays at 0."""
        assert apply_delta(0, -50) == 0

    def test_win(self):
        """Test a win adds the full delta."""
        assert apply_delta(500, 100) == 600

    def test_push(self):
        """Test a push leaves the score unchanged."""
        assert apply_delta(120, 0) == 120


class TestDetermineOutcome:
    """Tests for dealer-turn evaluation."""

    def test_dealer_bust(self):
        """Test dealer busting means player wins."""
        player = make_hand("10S", "7H")
        dealer = make_hand("10C", "6D", "KS")
        assert determine_outcome(player, dealer) == Outcome.DEALER_BUST

    def test_dealer_higher(self):
        """Test dealer wins with higher value."""
        player = make_hand("10S", "9H")
        dealer = make_hand("10C", "QD")
        assert determine_outcome(player, dealer) == Outcome.DEALER_WINS

    def test_player_higher(self):
        """Test player wins with higher value."""
        player = make_hand("10S", "9H")
        dealer = make_hand("10C", "8D")
        assert determine_outcome(player, dealer) == Outcome.PLAYER_WINS

    def test_push(self):
        """Test push (tie)."""
        player = make_hand("10S", "8H")
        dealer = make_hand("10C", "8D")
        assert determine_outcome(player, dealer) == Outcome.PUSH

    def test_three_card_21_against_dealer_natural_is_push(self):
        """Only totals count once the dealer plays: 21 against 21 is a push."""
        player = make_hand("7S", "7H", "7C")
        dealer = make_hand("AC", "KD")
        assert determine_outcome(player, dealer) == Outcome.PUSH
