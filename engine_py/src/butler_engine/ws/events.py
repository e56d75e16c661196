"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, StrictBool, field_validator


class EventType(str, Enum):
    """Inbound event types."""
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    RECONNECT = "reconnect"
    START_GAME = "start_game"
    END_GAME = "end_game"
    REQUEST_STATE = "request_state"
    NOMINATE_CHANCELLOR = "nominate_chancellor"
    CAST_VOTE = "cast_vote"
    CONTINUE_FROM_VOTE = "continue_from_vote"
    PRESIDENT_SELECT_POLICIES = "president_select_policies"
    CHANCELLOR_ENACT_POLICY = "chancellor_enact_policy"
    REQUEST_VETO = "request_veto"
    RESPOND_TO_VETO = "respond_to_veto"
    CONTINUE_FROM_POLICY = "continue_from_policy"
    INVESTIGATE = "investigate"
    EXAMINE = "examine"
    CONTINUE_FROM_EXAMINE = "continue_from_examine"
    SPECIAL_ELECTION = "special_election"
    EXECUTE = "execute"
    CONTINUE_FROM_CHAOS = "continue_from_chaos"
    CONTINUE_FROM_EXECUTION = "continue_from_execution"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    ROOM_JOINED = "room_joined"
    STATE = "state"
    INVESTIGATION_RESULT = "investigation_result"
    EXAMINE_RESULT = "examine_result"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes for client events."""
    INVALID_EVENT = "INVALID_EVENT"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
    ROOM_FULL = "ROOM_FULL"
    NOT_HOST = "NOT_HOST"
    INVALID_PLAYER_COUNT = "INVALID_PLAYER_COUNT"
    ALREADY_VOTED = "ALREADY_VOTED"
    VETO_NOT_ELIGIBLE = "VETO_NOT_ELIGIBLE"
    ALREADY_INVESTIGATED = "ALREADY_INVESTIGATED"
    INVALID_TARGET = "INVALID_TARGET"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
    INTERNAL = "INTERNAL"


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class CreateRoomEvent(BaseEvent):
    """Create room event; the sender becomes host."""
    type: EventType = EventType.CREATE_ROOM
    name: Optional[str] = Field(default=None, max_length=30)
    session_token: Optional[str] = Field(default=None, max_length=100)


class JoinRoomEvent(BaseEvent):
    """Join room event."""
    type: EventType = EventType.JOIN_ROOM
    code: str = Field(..., min_length=1, max_length=10)
    name: Optional[str] = Field(default=None, max_length=30)
    session_token: Optional[str] = Field(default=None, max_length=100)

    @field_validator('code')
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper()


class ReconnectEvent(BaseEvent):
    """Reconnect to a seat by session token or name."""
    type: EventType = EventType.RECONNECT
    code: str = Field(..., min_length=1, max_length=10)
    name: Optional[str] = Field(default=None, max_length=30)
    session_token: Optional[str] = Field(default=None, max_length=100)

    @field_validator('code')
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper()


class StartGameEvent(BaseEvent):
    """Start game event (host only)."""
    type: EventType = EventType.START_GAME
    agent_count: int = Field(default=0, ge=0, le=6)
    seed: Optional[int] = None


class EndGameEvent(BaseEvent):
    """Return the room to the lobby (host only)."""
    type: EventType = EventType.END_GAME


class RequestStateEvent(BaseEvent):
    """Request full state event."""
    type: EventType = EventType.REQUEST_STATE


class NominateChancellorEvent(BaseEvent):
    type: EventType = EventType.NOMINATE_CHANCELLOR
    candidate_id: str = Field(..., min_length=1)


class CastVoteEvent(BaseEvent):
    type: EventType = EventType.CAST_VOTE
    vote: StrictBool


class ContinueFromVoteEvent(BaseEvent):
    type: EventType = EventType.CONTINUE_FROM_VOTE


class PresidentSelectPoliciesEvent(BaseEvent):
    """President keeps two of the three drawn cards."""
    type: EventType = EventType.PRESIDENT_SELECT_POLICIES
    indices: List[int] = Field(..., min_length=2, max_length=2)

    @field_validator('indices')
    @classmethod
    def validate_indices(cls, v):
        if len(set(v)) != 2 or any(i < 0 or i > 2 for i in v):
            raise ValueError('indices must be two distinct values in 0..2')
        return v


class ChancellorEnactPolicyEvent(BaseEvent):
    """Chancellor enacts one of the two remaining cards."""
    type: EventType = EventType.CHANCELLOR_ENACT_POLICY
    index: int = Field(..., ge=0, le=1)


class RequestVetoEvent(BaseEvent):
    type: EventType = EventType.REQUEST_VETO


class RespondToVetoEvent(BaseEvent):
    type: EventType = EventType.RESPOND_TO_VETO
    accept: StrictBool


class ContinueFromPolicyEvent(BaseEvent):
    type: EventType = EventType.CONTINUE_FROM_POLICY


class InvestigateEvent(BaseEvent):
    type: EventType = EventType.INVESTIGATE
    target_id: str = Field(..., min_length=1)


class ExamineEvent(BaseEvent):
    type: EventType = EventType.EXAMINE


class ContinueFromExamineEvent(BaseEvent):
    type: EventType = EventType.CONTINUE_FROM_EXAMINE


class SpecialElectionEvent(BaseEvent):
    type: EventType = EventType.SPECIAL_ELECTION
    target_id: str = Field(..., min_length=1)


class ExecuteEvent(BaseEvent):
    type: EventType = EventType.EXECUTE
    target_id: str = Field(..., min_length=1)


class ContinueFromChaosEvent(BaseEvent):
    type: EventType = EventType.CONTINUE_FROM_CHAOS


class ContinueFromExecutionEvent(BaseEvent):
    type: EventType = EventType.CONTINUE_FROM_EXECUTION


# Lobby events are handled by the room registry
LobbyEvent = Union[
    CreateRoomEvent,
    JoinRoomEvent,
    ReconnectEvent,
    StartGameEvent,
    EndGameEvent,
    RequestStateEvent,
]

# Game events map one-to-one onto phase actions of the same name
GameActionEvent = Union[
    NominateChancellorEvent,
    CastVoteEvent,
    ContinueFromVoteEvent,
    PresidentSelectPoliciesEvent,
    ChancellorEnactPolicyEvent,
    RequestVetoEvent,
    RespondToVetoEvent,
    ContinueFromPolicyEvent,
    InvestigateEvent,
    ExamineEvent,
    ContinueFromExamineEvent,
    SpecialElectionEvent,
    ExecuteEvent,
    ContinueFromChaosEvent,
    ContinueFromExecutionEvent,
]

InboundEvent = Union[LobbyEvent, GameActionEvent]

LOBBY_EVENT_TYPES = {
    EventType.CREATE_ROOM,
    EventType.JOIN_ROOM,
    EventType.RECONNECT,
    EventType.START_GAME,
    EventType.END_GAME,
    EventType.REQUEST_STATE,
}


def is_game_action(event: BaseEvent) -> bool:
    return event.type not in LOBBY_EVENT_TYPES


def action_payload(event: BaseEvent) -> Dict[str, Any]:
    """Event fields as the data dict a phase action expects."""
    return event.model_dump(exclude={"type"})


# Outbound event models
class RoomJoinedEvent(BaseModel):
    """Seat confirmation, sent to the joining client only."""
    type: OutboundEventType = OutboundEventType.ROOM_JOINED
    code: str
    player_id: str
    is_host: bool
    timestamp: float


class StateEvent(BaseModel):
    """Per-recipient state: the shared public part plus the viewer's secrets."""
    type: OutboundEventType = OutboundEventType.STATE
    public: Dict[str, Any]
    private: Dict[str, Any]
    timestamp: float


class InvestigationResultEvent(BaseModel):
    type: OutboundEventType = OutboundEventType.INVESTIGATION_RESULT
    target_id: str
    target_name: str
    allegiance: str
    timestamp: float


class ExamineResultEvent(BaseModel):
    type: OutboundEventType = OutboundEventType.EXAMINE_RESULT
    policies: List[str]
    timestamp: float


class ErrorEvent(BaseModel):
    """Error event."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str
    timestamp: float


OutboundEvent = Union[
    RoomJoinedEvent,
    StateEvent,
    InvestigationResultEvent,
    ExamineResultEvent,
    ErrorEvent,
]


EVENT_MAP = {
    EventType.CREATE_ROOM: CreateRoomEvent,
    EventType.JOIN_ROOM: JoinRoomEvent,
    EventType.RECONNECT: ReconnectEvent,
    EventType.START_GAME: StartGameEvent,
    EventType.END_GAME: EndGameEvent,
    EventType.REQUEST_STATE: RequestStateEvent,
    EventType.NOMINATE_CHANCELLOR: NominateChancellorEvent,
    EventType.CAST_VOTE: CastVoteEvent,
    EventType.CONTINUE_FROM_VOTE: ContinueFromVoteEvent,
    EventType.PRESIDENT_SELECT_POLICIES: PresidentSelectPoliciesEvent,
    EventType.CHANCELLOR_ENACT_POLICY: ChancellorEnactPolicyEvent,
    EventType.REQUEST_VETO: RequestVetoEvent,
    EventType.RESPOND_TO_VETO: RespondToVetoEvent,
    EventType.CONTINUE_FROM_POLICY: ContinueFromPolicyEvent,
    EventType.INVESTIGATE: InvestigateEvent,
    EventType.EXAMINE: ExamineEvent,
    EventType.CONTINUE_FROM_EXAMINE: ContinueFromExamineEvent,
    EventType.SPECIAL_ELECTION: SpecialElectionEvent,
    EventType.EXECUTE: ExecuteEvent,
    EventType.CONTINUE_FROM_CHAOS: ContinueFromChaosEvent,
    EventType.CONTINUE_FROM_EXECUTION: ContinueFromExecutionEvent,
}


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")
    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    event_class = EVENT_MAP.get(event_type)
    if not event_class:
        raise ValueError(f"No handler for event type: {event_type}")

    try:
        return event_class(**data)
    except Exception as e:
        raise ValueError(f"Invalid event data: {str(e)}")


def create_error_event(code: Union[ErrorCode, str], message: str) -> ErrorEvent:
    """Create an error event; unknown codes are reported as INTERNAL."""
    try:
        code = ErrorCode(code)
    except ValueError:
        code = ErrorCode.INTERNAL
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_room_joined_event(code: str, player_id: str, is_host: bool) -> RoomJoinedEvent:
    return RoomJoinedEvent(code=code, player_id=player_id, is_host=is_host, timestamp=time.time())


def create_state_event(state: Dict[str, Any]) -> StateEvent:
    """Create a state event from a ``sanitize_state`` payload."""
    return StateEvent(public=state["public"], private=state["private"], timestamp=time.time())


def create_investigation_result_event(target_id: str, target_name: str, allegiance: str) -> InvestigationResultEvent:
    return InvestigationResultEvent(
        target_id=target_id,
        target_name=target_name,
        allegiance=allegiance,
        timestamp=time.time()
    )


def create_examine_result_event(policies: List[str]) -> ExamineResultEvent:
    return ExamineResultEvent(policies=policies, timestamp=time.time())
