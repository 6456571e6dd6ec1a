"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field, StrictInt, StrictStr
from typing import Literal


# Score schemas
class ScoreUpsertRequest(BaseModel):
    """Request to create or overwrite a wallet's score."""

    address: StrictStr = Field(..., min_length=1, description="Wallet address")
    score: StrictInt = Field(..., ge=0, description="New score")


class ScoreResponse(BaseModel):
    """Score for a single wallet."""

    address: str
    score: int


class LeaderboardEntry(BaseModel):
    """One leaderboard row."""

    address: str
    score: int
    updated_at: str


class LeaderboardResponse(BaseModel):
    """Top scores, highest first."""

    leaderboard: list[LeaderboardEntry]


class AckResponse(BaseModel):
    """Write acknowledgement."""

    ok: bool = True


class ErrorResponse(BaseModel):
    """Error payload."""

    error: str


# Game schemas
class SessionResponse(BaseModel):
    """A new table session."""

    session_id: str


class ConnectRequest(BaseModel):
    """Wallet connected or switched."""

    address: StrictStr = Field(..., min_length=1)


class ActionRequest(BaseModel):
    """Request for player action."""

    action: Literal["hit", "stand", "reset"]


class CardResponse(BaseModel):
    """Card representation."""

    rank: str
    suit: str
    value: int
    is_red: bool = False
    hidden: bool = False


class PlayerHandResponse(BaseModel):
    """Player hand representation."""

    cards: list[CardResponse]
    value: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool


class DealerHandResponse(BaseModel):
    """Dealer hand; value is the visible value while the hole card is hidden."""

    cards: list[CardResponse]
    value: int | None


class GameStateResponse(BaseModel):
    """Current table state."""

    state: Literal["IDLE", "PLAYER_TURN", "DEALER_TURN", "CONCLUDED"]
    address: str | None
    score: int
    message: str
    outcome: str | None
    round_id: int
    player_hand: PlayerHandResponse
    dealer_hand: DealerHandResponse
    can_start: bool
    can_hit: bool
    can_stand: bool
