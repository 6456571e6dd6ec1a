"""WebSocket connection management with game engine integration."""

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from api.session import extract_session_id
from api.store import get_score_repository
from api.tables import GameTable, tables
from core.game.events import GameEvent

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Manage WebSocket connections and their event queues."""

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._event_queues: dict[str, asyncio.Queue] = {}

    async def connect(self, websocket: WebSocket, session_id: str) -> None:
        """Accept and register a new connection."""
        await websocket.accept()
        self._connections[session_id] = websocket
        self._event_queues[session_id] = asyncio.Queue()

    def disconnect(self, session_id: str) -> None:
        """Remove a connection. The table is kept for reconnection."""
        self._connections.pop(session_id, None)
        self._event_queues.pop(session_id, None)

    def queue_event(self, session_id: str, event: GameEvent, state: dict[str, Any]) -> None:
        """Queue an event, with the table state when it happened, for async delivery."""
        queue = self._event_queues.get(session_id)
        if queue is not None:
            queue.put_nowait((event, state))

    async def next_event(self, session_id: str) -> tuple[GameEvent, dict[str, Any]]:
        """Wait for the next event and its state snapshot for a session."""
        return await self._event_queues[session_id].get()

    async def send_message(self, session_id: str, message: dict[str, Any]) -> None:
        """Send a message to a specific session."""
        websocket = self._connections.get(session_id)
        if websocket is not None:
            await websocket.send_json(message)

    @property
    def active_connections(self) -> int:
        """Return number of active connections."""
        return len(self._connections)


# Global connection manager
manager = ConnectionManager()


def _event_to_message(event: GameEvent, state: dict[str, Any]) -> dict[str, Any]:
    """Convert a game event to a WebSocket message."""
    return {
        "type": "event",
        "event_type": event.event_type.name,
        "data": event.data,
        "state": state,
    }


def _state_message(table: GameTable) -> dict[str, Any]:
    return {"type": "state_update", "state": table.game.snapshot()}


def _handle_command(table: GameTable, message: dict[str, Any]) -> str | None:
    """
    Apply a client command to the table.

    Returns:
        An error message, or None if the command was applied
    """
    game = table.game
    msg_type = message.get("type")

    if msg_type == "connect":
        address = message.get("address")
        if not isinstance(address, str) or not address.strip():
            return "address is required"
        game.connect(address)
        return None

    if msg_type == "disconnect":
        game.disconnect()
        return None

    if msg_type == "start":
        return None if game.start() else "Cannot start now"

    if msg_type == "action":
        action = message.get("action")
        actions = {
            "hit": game.hit,
            "stand": game.stand,
            "reset": game.reset,
        }
        action_fn = actions.get(action)
        if action_fn is None:
            return f"Unknown action: {action}"
        if not action_fn():
            return f"Cannot {action} now"
        table.schedule_dealer_turn()
        return None

    return f"Unknown message type: {msg_type}"


@router.websocket("/game/{session_token}")
async def game_websocket(websocket: WebSocket, session_token: str) -> None:
    """
    WebSocket endpoint for real-time game updates.

    Messages from client:
    - {"type": "connect", "address": "0x..."}
    - {"type": "disconnect"}
    - {"type": "start"}
    - {"type": "action", "action": "hit"|"stand"|"reset"}
    - {"type": "get_state"}

    Messages to client:
    - {"type": "state_update", "state": {...}}
    - {"type": "event", "event_type": "...", "data": {...}, "state": {...}}
    - {"type": "error", "message": "..."}
    """
    session_id = extract_session_id(session_token)
    if session_id is None:
        await websocket.close(code=1008)
        return

    repository = await get_score_repository()
    await tables.evict_idle()
    table = tables.get_or_create(session_id, repository)

    await manager.connect(websocket, session_id)

    def on_event(event: GameEvent) -> None:
        manager.queue_event(session_id, event, table.game.snapshot())

    table.game.subscribe(on_event)
    await manager.send_message(session_id, _state_message(table))

    async def process_events() -> None:
        """Forward game events to the client."""
        while True:
            event, state = await manager.next_event(session_id)
            try:
                await manager.send_message(session_id, _event_to_message(event, state))
            except (WebSocketDisconnect, RuntimeError):
                logger.debug("Dropping events for closed session %s", session_id)
                return

    event_task = asyncio.create_task(process_events())

    try:
        while True:
            data = await websocket.receive_text()
            table.touch()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await manager.send_message(session_id, {"type": "error", "message": "Invalid JSON"})
                continue

            if not isinstance(message, dict):
                await manager.send_message(session_id, {"type": "error", "message": "Invalid message"})
                continue

            if message.get("type") == "get_state":
                await manager.send_message(session_id, _state_message(table))
                continue

            error = _handle_command(table, message)
            if error is not None:
                await manager.send_message(session_id, {"type": "error", "message": error})

    except WebSocketDisconnect:
        logger.debug("WebSocket for session %s closed", session_id)
    finally:
        table.game.unsubscribe(on_event)
        event_task.cancel()
        try:
            await event_task
        except asyncio.CancelledError:
            pass
        manager.disconnect(session_id)
