"""Timed driver for the dealer turn."""

import asyncio
import logging
from typing import Awaitable, Callable

from config import config
from core.game.engine import BlackjackGame
from core.game.state import RoundState

logger = logging.getLogger(__name__)


class DealerScheduler:
    """
    Paces the dealer turn for an interactive table.

    Waits draw_delay before each dealer card and reveal_delay before the
    final evaluation. If the round is cleared while waiting (disconnect,
    reset or wallet switch), the run stops without touching the new table.
    """

    def __init__(
        self,
        game: BlackjackGame,
        draw_delay: float | None = None,
        reveal_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.game = game
        self.draw_delay = config.game.dealer_draw_delay if draw_delay is None else draw_delay
        self.reveal_delay = config.game.dealer_reveal_delay if reveal_delay is None else reveal_delay
        self._sleep = sleep

    async def run(self) -> bool:
        """
        Play the dealer turn to completion.

        Returns:
            True if this run concluded the round
        """
        game = self.game
        if game.state != RoundState.DEALER_TURN:
            return False

        round_id = game.round_id
        while game.state == RoundState.DEALER_TURN and game.round_id == round_id:
            delay = self.draw_delay if game.dealer_should_hit else self.reveal_delay
            if delay > 0:
                await self._sleep(delay)
            if game.round_id != round_id:
                logger.debug("Dealer play for round %d abandoned", round_id)
                return False
            game.dealer_step()

        return game.round_id == round_id and game.state == RoundState.CONCLUDED
