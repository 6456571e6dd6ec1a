"""Game engine and state management."""

from core.game.events import GameEvent, EventType
from core.game.state import RoundState
from core.game.engine import BlackjackGame
from core.game.scheduler import DealerScheduler

__all__ = [
    "GameEvent",
    "EventType",
    "RoundState",
    "BlackjackGame",
    "DealerScheduler",
]
