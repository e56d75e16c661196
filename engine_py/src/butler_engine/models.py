"""Game models and data structures"""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from .constants import PHASE_LOBBY, GAME_LOG_LIMIT
from .rules import RuleConfig, default_rules


class Controller(str, Enum):
    """Who submits a player's decisions."""
    HUMAN = "human"
    AGENT = "agent"


@dataclass
class Player:
    id: str
    name: str
    avatar: Dict[str, str] = field(default_factory=dict)
    role: Optional[str] = None  # guest, staff, butler
    is_alive: bool = True
    has_voted: bool = False
    vote: Optional[bool] = None
    controller: Controller = Controller.HUMAN
    connected: bool = True
    session_token: Optional[str] = None

    @property
    def is_agent(self) -> bool:
        return self.controller is Controller.AGENT

    def reset_for_lobby(self):
        self.role = None
        self.is_alive = True
        self.has_voted = False
        self.vote = None


@dataclass
class GameState:
    phase: str = PHASE_LOBBY
    president_index: int = 0
    chancellor_candidate_id: Optional[str] = None
    chancellor_id: Optional[str] = None
    previous_president_id: Optional[str] = None
    previous_chancellor_id: Optional[str] = None
    special_election_next_index: Optional[int] = None
    guest_tally: int = 0
    staff_tally: int = 0
    election_tracker: int = 0
    deck: List[str] = field(default_factory=list)  # top of the deck is the end of the list
    discard: List[str] = field(default_factory=list)
    pending_policies: List[str] = field(default_factory=list)
    pending_executive_power: Optional[str] = None
    investigated_players: Set[str] = field(default_factory=set)
    veto_requested: bool = False
    veto_rejected: bool = False
    votes: List[dict] = field(default_factory=list)
    vote_passed: Optional[bool] = None
    enacted_policy: Optional[str] = None
    chaos_policy: Optional[str] = None
    executed_player: Optional[dict] = None
    winner: Optional[str] = None
    win_reason: Optional[str] = None
    version: int = 0
    phase_serial: int = 0
    game_log: List[str] = field(default_factory=list)
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    def enter_phase(self, phase: str):
        """Move to a new phase; every phase change goes through here."""
        self.phase = phase
        self.phase_serial += 1

    def log(self, message: str):
        self.game_log.append(message)
        if len(self.game_log) > GAME_LOG_LIMIT:
            del self.game_log[:-GAME_LOG_LIMIT]


@dataclass
class Room:
    code: str
    host_id: Optional[str] = None
    players: List[Player] = field(default_factory=list)
    state: GameState = field(default_factory=GameState)
    rules: RuleConfig = field(default_factory=lambda: default_rules)

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        if player_id is None:
            return None
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def index_of(self, player_id: str) -> Optional[int]:
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        return None

    def alive_players(self) -> List[Player]:
        return [p for p in self.players if p.is_alive]

    def human_players(self) -> List[Player]:
        return [p for p in self.players if not p.is_agent]

    @property
    def president(self) -> Optional[Player]:
        if not self.players or self.state.phase == PHASE_LOBBY:
            return None
        return self.players[self.state.president_index]

    @property
    def chancellor(self) -> Optional[Player]:
        return self.get_player(self.state.chancellor_id)

    def touch(self):
        """Mark an accepted mutation."""
        self.state.version += 1
