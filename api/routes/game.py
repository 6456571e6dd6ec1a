"""Game API endpoints. The dealer turn is played instantly over REST."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException

from api.schemas import (
    ActionRequest,
    ConnectRequest,
    GameStateResponse,
    SessionResponse,
)
from api.session import create_session, extract_session_id
from api.store import ScoreRepository, get_score_repository
from api.tables import GameTable, tables

router = APIRouter()


async def get_table(
    session_token: Annotated[str, Header(alias="X-Session-ID")],
    repository: Annotated[ScoreRepository, Depends(get_score_repository)],
) -> GameTable:
    """Resolve the caller's table from the signed session header."""
    session_id = extract_session_id(session_token)
    if session_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    await tables.evict_idle()
    return tables.get_or_create(session_id, repository)


def _game_state_response(table: GameTable) -> GameStateResponse:
    """Convert table state to response."""
    return GameStateResponse(**table.game.snapshot())


@router.post("/new")
async def new_game() -> SessionResponse:
    """Create a new table session."""
    return SessionResponse(session_id=create_session())


@router.get("/state")
async def get_state(table: Annotated[GameTable, Depends(get_table)]) -> GameStateResponse:
    """Get current table state."""
    return _game_state_response(table)


@router.post("/connect")
async def connect(
    request: ConnectRequest,
    table: Annotated[GameTable, Depends(get_table)],
) -> GameStateResponse:
    """Attach a wallet address to the table and load its score."""
    if table.game.connect(request.address):
        await table.sync.drain()
    return _game_state_response(table)


@router.post("/disconnect")
async def disconnect(table: Annotated[GameTable, Depends(get_table)]) -> GameStateResponse:
    """Detach the wallet and clear the table."""
    table.game.disconnect()
    return _game_state_response(table)


@router.post("/start")
async def start(table: Annotated[GameTable, Depends(get_table)]) -> GameStateResponse:
    """Deal a new round."""
    if not table.game.start():
        raise HTTPException(status_code=400, detail="Cannot start now")
    return _game_state_response(table)


@router.post("/action")
async def player_action(
    request: ActionRequest,
    table: Annotated[GameTable, Depends(get_table)],
) -> GameStateResponse:
    """Execute a player action."""
    game = table.game
    actions = {
        "hit": game.hit,
        "stand": game.stand,
        "reset": game.reset,
    }

    if not actions[request.action]():
        raise HTTPException(status_code=400, detail=f"Cannot {request.action} now")

    table.finish_dealer_turn()
    return _game_state_response(table)
