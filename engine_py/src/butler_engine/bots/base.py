"""
Base bot interface and utilities.
"""

import random
from abc import ABC, abstractmethod
from typing import List, Optional

from ..constants import (
    ACTION_CAST_VOTE,
    ACTION_CHANCELLOR_ENACT_POLICY,
    ACTION_CONTINUE_FROM_EXAMINE,
    ACTION_EXECUTE,
    ACTION_INVESTIGATE,
    ACTION_NOMINATE_CHANCELLOR,
    ACTION_PRESIDENT_SELECT_POLICIES,
    ACTION_REQUEST_VETO,
    ACTION_RESPOND_TO_VETO,
    ACTION_SPECIAL_ELECTION,
    PHASE_ELECTION,
    PHASE_EXECUTIVE,
    PHASE_LEGISLATIVE_CHANCELLOR,
    PHASE_LEGISLATIVE_PRESIDENT,
    PHASE_VOTING,
    POWER_EXAMINE,
    POWER_EXECUTE,
    POWER_INVESTIGATE,
    POWER_SPECIAL_ELECTION,
    ROLE_BUTLER,
    VETO_THRESHOLD,
)
from ..models import Player, Room
from ..roles import is_staff_team, teammates


class BotAction:
    """Represents a bot action; ``type`` matches the human action name."""

    def __init__(self, action_type: str, **kwargs):
        self.type = action_type
        self.data = kwargs

    def __repr__(self):
        return f"BotAction({self.type}, {self.data})"

    @classmethod
    def nominate(cls, candidate_id: str) -> 'BotAction':
        return cls(ACTION_NOMINATE_CHANCELLOR, candidate_id=candidate_id)

    @classmethod
    def vote(cls, vote: bool) -> 'BotAction':
        return cls(ACTION_CAST_VOTE, vote=vote)

    @classmethod
    def select_policies(cls, indices: List[int]) -> 'BotAction':
        return cls(ACTION_PRESIDENT_SELECT_POLICIES, indices=indices)

    @classmethod
    def enact(cls, index: int) -> 'BotAction':
        return cls(ACTION_CHANCELLOR_ENACT_POLICY, index=index)

    @classmethod
    def request_veto(cls) -> 'BotAction':
        return cls(ACTION_REQUEST_VETO)

    @classmethod
    def respond_to_veto(cls, accept: bool) -> 'BotAction':
        return cls(ACTION_RESPOND_TO_VETO, accept=accept)

    @classmethod
    def targeted(cls, action_type: str, target_id: str) -> 'BotAction':
        return cls(action_type, target_id=target_id)


class BaseBot(ABC):
    """
    Abstract base class for agent-controlled players.

    A bot is built for exactly one decision from a room and the player it
    plays for, then thrown away; it carries no memory between decisions.
    """

    def __init__(self, room: Room, player: Player, rng: Optional[random.Random] = None):
        self.room = room
        self.state = room.state
        self.player = player
        self.rng = rng or random.Random()
        self.is_staff = is_staff_team(player)

    # Decision points

    @abstractmethod
    def decide_vote(self) -> bool:
        pass

    @abstractmethod
    def choose_chancellor_nominee(self) -> Optional[str]:
        pass

    @abstractmethod
    def choose_president_handoff(self, cards: List[str]) -> List[int]:
        pass

    @abstractmethod
    def choose_chancellor_enactment(self, cards: List[str]) -> int:
        pass

    @abstractmethod
    def choose_investigation_target(self) -> Optional[str]:
        pass

    @abstractmethod
    def choose_special_election_target(self) -> Optional[str]:
        pass

    @abstractmethod
    def choose_execution_target(self) -> Optional[str]:
        pass

    @abstractmethod
    def should_request_veto(self, cards: List[str]) -> bool:
        pass

    @abstractmethod
    def should_accept_veto(self) -> bool:
        pass

    # Helpers

    def get_teammates(self) -> List[Player]:
        return teammates(self.room, self.player)

    def team_ids(self) -> List[str]:
        """This bot plus the teammates it knows about."""
        return [self.player.id] + [p.id for p in self.get_teammates()]

    def get_butler(self) -> Optional[Player]:
        for p in self.get_teammates():
            if p.role == ROLE_BUTLER:
                return p
        return None

    def other_alive_players(self) -> List[Player]:
        return [p for p in self.room.players if p.is_alive and p.id != self.player.id]

    def pick(self, options: list):
        return options[self.rng.randrange(len(options))]

    def chance(self, probability: float) -> bool:
        return self.rng.random() < probability

    def can_request_veto(self) -> bool:
        return (
            self.room.rules.veto_enabled
            and self.state.staff_tally >= VETO_THRESHOLD
            and not self.state.veto_requested
            and not self.state.veto_rejected
        )

    def is_president(self) -> bool:
        president = self.room.president
        return president is not None and president.id == self.player.id

    def choose_action(self) -> Optional[BotAction]:
        """
        Map the current phase to the decision this player owes.

        Returns:
            BotAction to apply, or None if nothing is asked of this player
        """
        state = self.state
        phase = state.phase

        if phase == PHASE_ELECTION and self.is_president():
            candidate_id = self.choose_chancellor_nominee()
            return BotAction.nominate(candidate_id) if candidate_id else None

        if phase == PHASE_VOTING and self.player.is_alive and not self.player.has_voted:
            return BotAction.vote(self.decide_vote())

        if phase == PHASE_LEGISLATIVE_PRESIDENT and self.is_president():
            return BotAction.select_policies(self.choose_president_handoff(state.pending_policies))

        if phase == PHASE_LEGISLATIVE_CHANCELLOR:
            if state.veto_requested:
                if self.is_president():
                    return BotAction.respond_to_veto(self.should_accept_veto())
                return None
            if state.chancellor_id == self.player.id:
                if self.can_request_veto() and self.should_request_veto(state.pending_policies):
                    return BotAction.request_veto()
                return BotAction.enact(self.choose_chancellor_enactment(state.pending_policies))
            return None

        if phase == PHASE_EXECUTIVE and self.is_president():
            power = state.pending_executive_power
            if power == POWER_EXAMINE:
                return BotAction(ACTION_CONTINUE_FROM_EXAMINE)
            chooser = {
                POWER_INVESTIGATE: (ACTION_INVESTIGATE, self.choose_investigation_target),
                POWER_SPECIAL_ELECTION: (ACTION_SPECIAL_ELECTION, self.choose_special_election_target),
                POWER_EXECUTE: (ACTION_EXECUTE, self.choose_execution_target),
            }.get(power)
            if chooser is None:
                return None
            action_type, choose = chooser
            target_id = choose()
            return BotAction.targeted(action_type, target_id) if target_id else None

        return None
