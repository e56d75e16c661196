"""
Room registry: the repository of live rooms and the lobby operations on them.

Lobby operations raise GameError for user-facing failures; the transport turns
those into error frames for the requesting client.
"""

import logging
import random
import uuid
from typing import Dict, Optional, Tuple

from .constants import (
    AVATARS,
    PHASE_ELECTION,
    PHASE_LOBBY,
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
)
from .deck import initialize_deck
from .errors import (
    GAME_IN_PROGRESS,
    INVALID_PLAYER_COUNT,
    NOT_HOST,
    PLAYER_NOT_FOUND,
    ROOM_FULL,
    ROOM_NOT_FOUND,
    raise_error,
)
from .models import Controller, GameState, Player, Room
from .roles import assign_roles
from .rules import RuleConfig, default_rules

logger = logging.getLogger(__name__)


def generate_player_id() -> str:
    return str(uuid.uuid4())


def generate_agent_id() -> str:
    return f"AI_{uuid.uuid4().hex[:8]}"


def next_avatar(room: Room) -> Dict:
    """First avatar not already worn by someone in the room."""
    used = {p.avatar.get("index") for p in room.players}
    for index, avatar in enumerate(AVATARS):
        if index not in used:
            return {"index": index, **avatar}
    return {"index": 0, **AVATARS[0]}


def fresh_state(previous: Optional[GameState] = None) -> GameState:
    """A lobby state whose phase serial continues from ``previous``."""
    state = GameState()
    if previous is not None:
        state.phase_serial = previous.phase_serial + 1
        state.version = previous.version + 1
    return state


class RoomRegistry:
    """In-memory rooms keyed by code."""

    def __init__(self, rules: Optional[RuleConfig] = None, rng: Optional[random.Random] = None):
        self.rules = rules or default_rules
        self.rooms: Dict[str, Room] = {}
        self._rng = rng or random.Random()

    def __len__(self):
        return len(self.rooms)

    def generate_room_code(self) -> str:
        """Random code that no live room uses."""
        while True:
            code = "".join(self._rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
            if code not in self.rooms:
                return code

    def get_room(self, code: Optional[str]) -> Optional[Room]:
        if not code:
            return None
        return self.rooms.get(code.upper())

    def require_room(self, code: Optional[str]) -> Room:
        room = self.get_room(code)
        if room is None:
            raise_error(ROOM_NOT_FOUND, "Room not found")
        return room

    def delete_room(self, code: str) -> bool:
        room = self.rooms.pop(code.upper(), None)
        if room is not None:
            logger.info(f"Room {room.code} deleted")
        return room is not None

    def _new_human(self, room: Room, name: Optional[str], session_token: Optional[str]) -> Player:
        avatar = next_avatar(room)
        player = Player(
            id=generate_player_id(),
            name=(name or "").strip() or avatar["name"],
            avatar=avatar,
            controller=Controller.HUMAN,
            session_token=session_token,
        )
        room.players.append(player)
        return player

    def create_room(self, name: Optional[str] = None, session_token: Optional[str] = None) -> Tuple[Room, Player]:
        """Open a new room with the caller seated as host."""
        room = Room(code=self.generate_room_code(), rules=self.rules)
        host = self._new_human(room, name, session_token)
        room.host_id = host.id
        self.rooms[room.code] = room
        logger.info(f"Room {room.code} created by {host.name}")
        return room, host

    def join_room(self, code: str, name: Optional[str] = None, session_token: Optional[str] = None) -> Tuple[Room, Player]:
        room = self.require_room(code)
        if room.state.phase != PHASE_LOBBY:
            raise_error(GAME_IN_PROGRESS, "Game already in progress")
        if len(room.players) >= room.rules.max_players:
            raise_error(ROOM_FULL, "Room is full")

        player = self._new_human(room, name, session_token)
        room.touch()
        logger.info(f"{player.name} joined room {room.code}")
        return room, player

    def reconnect(self, code: str, name: Optional[str] = None, session_token: Optional[str] = None) -> Tuple[Room, Player]:
        """
        Re-seat a returning human by session token, falling back to name.

        Raises:
            GameError: ROOM_NOT_FOUND, or PLAYER_NOT_FOUND when nobody matches
                or the match is an agent-controlled seat
        """
        room = self.require_room(code)
        player = None
        if session_token:
            player = next((p for p in room.players if p.session_token == session_token), None)
        if player is None and name:
            player = next((p for p in room.players if p.name == name), None)

        if player is None:
            raise_error(PLAYER_NOT_FOUND, "Player not found in room")
        if player.is_agent:
            raise_error(PLAYER_NOT_FOUND, "Cannot reconnect as an agent player")

        player.connected = True
        if session_token:
            player.session_token = session_token
        room.touch()
        logger.info(f"{player.name} reconnected to room {room.code}")
        return room, player

    def disconnect(self, code: str, player_id: str) -> Optional[Room]:
        """
        Handle a dropped connection.

        In the lobby the seat is freed (the room closes once empty and the
        host passes to the next human). Mid-game the player stays seated and
        targetable, only marked disconnected.

        Returns:
            The affected room, or None if it no longer exists
        """
        room = self.get_room(code)
        if room is None:
            return None
        player = room.get_player(player_id)
        if player is None:
            return room

        if room.state.phase == PHASE_LOBBY:
            room.players.remove(player)
            if not room.human_players():
                self.delete_room(room.code)
                return None
            if room.host_id == player_id:
                room.host_id = room.human_players()[0].id
        else:
            player.connected = False

        room.touch()
        logger.info(f"{player.name} disconnected from room {room.code}")
        return room

    def _add_agents(self, room: Room, count: int):
        for _ in range(count):
            avatar = next_avatar(room)
            room.players.append(Player(
                id=generate_agent_id(),
                name=avatar["name"],
                avatar=avatar,
                controller=Controller.AGENT,
            ))

    def start_game(self, code: str, requester_id: str, agent_count: int = 0, seed: Optional[int] = None) -> Room:
        """
        Fill empty seats with agents, deal roles and open the first election.

        The agent count is clamped so the table ends up with 4-6 seats.
        """
        room = self.require_room(code)
        if requester_id != room.host_id:
            raise_error(NOT_HOST, "Only the host can start the game")
        if room.state.phase != PHASE_LOBBY:
            raise_error(GAME_IN_PROGRESS, "Game already in progress")

        rules = room.rules
        humans = len(room.players)
        agents = max(rules.min_players - humans, min(rules.max_players - humans, agent_count or 0))
        agents = max(0, agents)
        if not rules.validate_player_count(humans + agents):
            raise_error(
                INVALID_PLAYER_COUNT,
                f"Invalid player count. Game requires {rules.min_players}-{rules.max_players} players."
            )

        self._add_agents(room, agents)

        state = room.state
        state.rng = random.Random(seed)
        assign_roles(room)
        initialize_deck(state)
        state.president_index = state.rng.randrange(len(room.players))
        state.enter_phase(PHASE_ELECTION)
        state.log(f"The game began with {len(room.players)} players; {room.president.name} is President")
        room.touch()
        logger.info(f"Game started in room {room.code} ({humans} humans, {agents} agents)")
        return room

    def end_game(self, code: str, requester_id: str) -> Room:
        """
        Return the room to the lobby.

        Agents leave, and so do humans whose connection dropped mid-game; the
        host passes to the first remaining human if it was one of them.
        """
        room = self.require_room(code)
        if requester_id != room.host_id:
            raise_error(NOT_HOST, "Only the host can end the game")

        room.players = [p for p in room.players if not p.is_agent and p.connected]
        if room.get_player(room.host_id) is None and room.players:
            room.host_id = room.players[0].id
        for player in room.players:
            player.reset_for_lobby()
        room.state = fresh_state(room.state)
        logger.info(f"Game ended by host in room {room.code}")
        return room
