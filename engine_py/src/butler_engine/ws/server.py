"""
WebSocket connection handling for the Secret Butler game.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional, Tuple

import orjson
from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from ..errors import ACTION_NOT_ALLOWED, GameError
from ..orchestrator import GameOrchestrator
from ..rooms import RoomRegistry
from ..rules import rules_from_env
from ..serialization import sanitize_state
from .events import (
    CreateRoomEvent,
    EndGameEvent,
    ErrorCode,
    JoinRoomEvent,
    ReconnectEvent,
    RequestStateEvent,
    StartGameEvent,
    action_payload,
    create_error_event,
    create_room_joined_event,
    create_state_event,
    is_game_action,
    parse_inbound_event,
)

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections, one per seated human."""

    def __init__(self):
        self.room_connections: Dict[str, Dict[str, WebSocket]] = {}
        self.connection_seats: Dict[WebSocket, Tuple[str, str]] = {}

    def connect(self, websocket: WebSocket, room_code: str, player_id: str):
        """Bind a socket to a seat, replacing any older socket for that seat."""
        connections = self.room_connections.setdefault(room_code, {})
        previous = connections.get(player_id)
        if previous is not None and previous is not websocket:
            self.connection_seats.pop(previous, None)
        connections[player_id] = websocket
        self.connection_seats[websocket] = (room_code, player_id)
        logger.info(f"Player {player_id} connected to room {room_code}")

    def disconnect(self, websocket: WebSocket) -> Tuple[Optional[str], Optional[str]]:
        """Unbind a socket; returns the seat it held, if it still held one."""
        seat = self.connection_seats.pop(websocket, None)
        if seat is None:
            return None, None

        room_code, player_id = seat
        connections = self.room_connections.get(room_code, {})
        if connections.get(player_id) is websocket:
            del connections[player_id]
        if not connections:
            self.room_connections.pop(room_code, None)

        logger.info(f"Player {player_id} disconnected from room {room_code}")
        return room_code, player_id

    def seat_of(self, websocket: WebSocket) -> Tuple[Optional[str], Optional[str]]:
        return self.connection_seats.get(websocket, (None, None))

    def connection_count(self) -> int:
        return len(self.connection_seats)

    async def send(self, websocket: WebSocket, message: Dict):
        await websocket.send_text(orjson.dumps(message).decode())

    async def send_to_player(self, room_code: str, player_id: str, message: Dict):
        """
        Send an event to a specific player; silently skipped if not connected.

        A failed send leaves the seat bound. The socket's receive loop releases
        it through ``release_seat`` so the room registry hears about the drop.
        """
        websocket = self.room_connections.get(room_code, {}).get(player_id)
        if websocket is None:
            return
        try:
            await self.send(websocket, message)
        except Exception as e:
            logger.error(f"Error sending to player {player_id}: {e}")


registry = RoomRegistry(rules=rules_from_env())
manager = ConnectionManager()
orchestrator = GameOrchestrator(registry, manager, registry.rules)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await orchestrator.shutdown()


async def send_event(websocket: WebSocket, event):
    await manager.send(websocket, event.model_dump(mode="json"))


async def release_seat(websocket: WebSocket):
    """Drop whatever seat this socket held and tell the room."""
    room_code, player_id = manager.disconnect(websocket)
    if room_code and player_id:
        room = registry.disconnect(room_code, player_id)
        if room is not None:
            await orchestrator.broadcast(room)


async def handle_websocket(websocket: WebSocket):
    """Main WebSocket loop: one JSON event per text frame."""
    await websocket.accept()
    logger.info("WebSocket connection accepted")

    try:
        while True:
            raw_data = await websocket.receive_text()
            try:
                event = parse_inbound_event(orjson.loads(raw_data))
                await handle_event(websocket, event)
            except GameError as e:
                await send_event(websocket, create_error_event(e.code, e.message))
            except ValueError as e:
                await send_event(websocket, create_error_event(ErrorCode.INVALID_EVENT, str(e)))
            except Exception:
                logger.exception("Error handling event")
                await send_event(websocket, create_error_event(ErrorCode.INTERNAL, "Internal server error"))
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected")
    finally:
        await release_seat(websocket)


async def handle_event(websocket: WebSocket, event):
    """Route an inbound event to the lobby handlers or the orchestrator."""
    if isinstance(event, CreateRoomEvent):
        await handle_create_room(websocket, event)
    elif isinstance(event, JoinRoomEvent):
        await handle_join_room(websocket, event)
    elif isinstance(event, ReconnectEvent):
        await handle_reconnect(websocket, event)
    elif isinstance(event, StartGameEvent):
        await handle_start_game(websocket, event)
    elif isinstance(event, EndGameEvent):
        await handle_end_game(websocket, event)
    elif isinstance(event, RequestStateEvent):
        await handle_request_state(websocket, event)
    elif is_game_action(event):
        room_code, player_id = require_seat(websocket)
        await orchestrator.handle_action(room_code, player_id, event.type.value, action_payload(event))
    else:
        raise ValueError(f"Unhandled event type: {type(event)}")


def require_seat(websocket: WebSocket) -> Tuple[str, str]:
    room_code, player_id = manager.seat_of(websocket)
    if not room_code or not player_id:
        raise GameError(ACTION_NOT_ALLOWED, "Not in a room")
    return room_code, player_id


async def _seat(websocket: WebSocket, room, player):
    manager.connect(websocket, room.code, player.id)
    await send_event(websocket, create_room_joined_event(room.code, player.id, room.host_id == player.id))
    await orchestrator.broadcast(room)


async def handle_create_room(websocket: WebSocket, event: CreateRoomEvent):
    await release_seat(websocket)
    room, player = registry.create_room(event.name, event.session_token)
    await _seat(websocket, room, player)


async def handle_join_room(websocket: WebSocket, event: JoinRoomEvent):
    await release_seat(websocket)
    room, player = registry.join_room(event.code, event.name, event.session_token)
    await _seat(websocket, room, player)


async def handle_reconnect(websocket: WebSocket, event: ReconnectEvent):
    room, player = registry.reconnect(event.code, event.name, event.session_token)
    if manager.seat_of(websocket) != (room.code, player.id):
        await release_seat(websocket)
    await _seat(websocket, room, player)


async def handle_start_game(websocket: WebSocket, event: StartGameEvent):
    room_code, player_id = require_seat(websocket)
    room = registry.start_game(room_code, player_id, event.agent_count, event.seed)
    await orchestrator.after_mutation(room)


async def handle_end_game(websocket: WebSocket, event: EndGameEvent):
    room_code, player_id = require_seat(websocket)
    room = registry.end_game(room_code, player_id)
    await orchestrator.broadcast(room)


async def handle_request_state(websocket: WebSocket, event: RequestStateEvent):
    room_code, player_id = require_seat(websocket)
    room = registry.require_room(room_code)
    await send_event(websocket, create_state_event(sanitize_state(room, player_id)))
