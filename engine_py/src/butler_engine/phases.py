"""
Phase state machine.

Every inbound decision, human or agent, is validated and applied here as one
synchronous mutation of the room. Functions never raise for bad input; they
return an ActionResult that is either ok, ignored (wrong actor or phase, a
stale or duplicate message) or rejected (a user-facing error).
"""

from typing import Any, Dict, List, Optional

from .constants import (
    ACTION_CAST_VOTE,
    ACTION_CHANCELLOR_ENACT_POLICY,
    ACTION_CONTINUE_FROM_CHAOS,
    ACTION_CONTINUE_FROM_EXAMINE,
    ACTION_CONTINUE_FROM_EXECUTION,
    ACTION_CONTINUE_FROM_POLICY,
    ACTION_CONTINUE_FROM_VOTE,
    ACTION_EXAMINE,
    ACTION_EXECUTE,
    ACTION_INVESTIGATE,
    ACTION_NOMINATE_CHANCELLOR,
    ACTION_PRESIDENT_SELECT_POLICIES,
    ACTION_REQUEST_VETO,
    ACTION_RESPOND_TO_VETO,
    ACTION_SPECIAL_ELECTION,
    CHAOS_THRESHOLD,
    PHASE_CHAOS,
    PHASE_ELECTION,
    PHASE_EXECUTION_RESULT,
    PHASE_EXECUTIVE,
    PHASE_GAMEOVER,
    PHASE_LEGISLATIVE_CHANCELLOR,
    PHASE_LEGISLATIVE_PRESIDENT,
    PHASE_POLICY_RESULT,
    PHASE_VOTE_RESULT,
    PHASE_VOTING,
    POWER_EXAMINE,
    POWER_EXECUTE,
    POWER_INVESTIGATE,
    POWER_SPECIAL_ELECTION,
    VETO_THRESHOLD,
)
from .deck import draw_policies, peek_policies, reshuffle_if_below_threshold
from .engine import (
    advance_presidency,
    enact_policy,
    execute_player,
    is_eligible_chancellor_candidate,
    resolve_vote,
    start_special_election,
    trigger_chaos,
)
from .errors import (
    ALREADY_INVESTIGATED,
    ALREADY_VOTED,
    INVALID_TARGET,
    VETO_NOT_ELIGIBLE,
)
from .models import Room
from .roles import resolve_investigation


class ActionResult:
    """Outcome of applying one action to a room."""

    def __init__(
        self,
        success: bool,
        ignored: bool = False,
        changed: bool = False,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        private: Optional[Dict[str, Any]] = None
    ):
        self.success = success
        self.ignored = ignored
        self.changed = changed
        self.error_code = error_code
        self.error_message = error_message
        self.private = private

    @classmethod
    def ok(cls, private: Optional[Dict[str, Any]] = None, changed: bool = True) -> 'ActionResult':
        """The action was applied."""
        return cls(success=True, changed=changed, private=private)

    @classmethod
    def ignore(cls) -> 'ActionResult':
        """Protocol violation: wrong actor or phase. Dropped silently."""
        return cls(success=False, ignored=True)

    @classmethod
    def rejected(cls, error_code: str, error_message: str) -> 'ActionResult':
        """User-facing rejection, reported to the acting client only."""
        return cls(success=False, error_code=error_code, error_message=error_message)

    def __repr__(self):
        if self.success:
            return f"ActionResult(ok, changed={self.changed})"
        if self.ignored:
            return "ActionResult(ignored)"
        return f"ActionResult(rejected, {self.error_code})"


def _is_president(room: Room, actor_id: Optional[str]) -> bool:
    president = room.president
    return president is not None and actor_id is not None and president.id == actor_id


def _is_seated(room: Room, actor_id: Optional[str]) -> bool:
    # Timers continue with actor_id None
    return actor_id is None or room.get_player(actor_id) is not None


def pending_actors(room: Room) -> List[str]:
    """Ids of the players whose input the current phase is waiting on."""
    state = room.state
    phase = state.phase
    president = room.president

    if phase in (PHASE_ELECTION, PHASE_LEGISLATIVE_PRESIDENT, PHASE_EXECUTIVE):
        return [president.id] if president else []
    if phase == PHASE_VOTING:
        return [p.id for p in room.players if p.is_alive and not p.has_voted]
    if phase == PHASE_LEGISLATIVE_CHANCELLOR:
        if state.veto_requested:
            return [president.id] if president else []
        return [state.chancellor_id] if state.chancellor_id else []
    return []


# ---------------------------------------------------------------- transitions

def _go_to_election(room: Room):
    advance_presidency(room)
    room.state.pending_executive_power = None
    room.state.enter_phase(PHASE_ELECTION)
    room.state.log(f"{room.president.name} is now President")


def _start_legislative_session(room: Room):
    state = room.state
    state.pending_policies = draw_policies(state, 3)
    state.veto_requested = False
    state.veto_rejected = False
    state.enter_phase(PHASE_LEGISLATIVE_PRESIDENT)


def _enter_chaos(room: Room):
    trigger_chaos(room)
    if room.state.phase != PHASE_GAMEOVER:
        room.state.enter_phase(PHASE_CHAOS)


def nominate_chancellor(room: Room, actor_id: str, candidate_id: str) -> ActionResult:
    state = room.state
    if state.phase != PHASE_ELECTION or not _is_president(room, actor_id):
        return ActionResult.ignore()
    if not is_eligible_chancellor_candidate(room, candidate_id):
        return ActionResult.rejected(INVALID_TARGET, "That player cannot be nominated as Chancellor")

    state.chancellor_candidate_id = candidate_id
    for player in room.players:
        player.has_voted = False
        player.vote = None
    state.votes = []
    state.vote_passed = None
    state.enter_phase(PHASE_VOTING)
    state.log(f"{room.president.name} nominated {room.get_player(candidate_id).name} as Chancellor")
    room.touch()
    return ActionResult.ok()


def cast_vote(room: Room, actor_id: str, vote: bool) -> ActionResult:
    state = room.state
    player = room.get_player(actor_id)
    if state.phase != PHASE_VOTING or player is None or not player.is_alive:
        return ActionResult.ignore()
    if not isinstance(vote, bool):
        return ActionResult.ignore()
    if player.has_voted:
        return ActionResult.rejected(ALREADY_VOTED, "You have already voted")

    player.has_voted = True
    player.vote = vote

    if all(p.has_voted for p in room.alive_players()):
        resolve_vote(room)
        if state.phase != PHASE_GAMEOVER:
            state.enter_phase(PHASE_VOTE_RESULT)
    room.touch()
    return ActionResult.ok()


def continue_from_vote(room: Room, actor_id: Optional[str] = None) -> ActionResult:
    state = room.state
    if state.phase != PHASE_VOTE_RESULT or not _is_seated(room, actor_id):
        return ActionResult.ignore()

    if state.vote_passed:
        _start_legislative_session(room)
    elif state.election_tracker >= CHAOS_THRESHOLD:
        _enter_chaos(room)
    else:
        _go_to_election(room)
    room.touch()
    return ActionResult.ok()


def president_select_policies(room: Room, actor_id: str, indices: List[int]) -> ActionResult:
    state = room.state
    if state.phase != PHASE_LEGISLATIVE_PRESIDENT or not _is_president(room, actor_id):
        return ActionResult.ignore()
    if (
        indices is None
        or len(indices) != 2
        or len(set(indices)) != 2
        or any(i not in range(len(state.pending_policies)) for i in indices)
    ):
        return ActionResult.ignore()

    discard_index = next(i for i in range(len(state.pending_policies)) if i not in indices)
    state.discard.append(state.pending_policies[discard_index])
    state.pending_policies = [state.pending_policies[i] for i in indices]
    state.enter_phase(PHASE_LEGISLATIVE_CHANCELLOR)
    room.touch()
    return ActionResult.ok()


def chancellor_enact_policy(room: Room, actor_id: str, index: int) -> ActionResult:
    state = room.state
    if (
        state.phase != PHASE_LEGISLATIVE_CHANCELLOR
        or actor_id is None
        or actor_id != state.chancellor_id
        or state.veto_requested
    ):
        return ActionResult.ignore()
    if index not in range(len(state.pending_policies)):
        return ActionResult.ignore()

    enacted = state.pending_policies[index]
    state.discard.extend(p for i, p in enumerate(state.pending_policies) if i != index)
    state.pending_policies = []
    enact_policy(room, enacted)
    reshuffle_if_below_threshold(state)
    if state.phase != PHASE_GAMEOVER:
        state.enter_phase(PHASE_POLICY_RESULT)
    room.touch()
    return ActionResult.ok()


def request_veto(room: Room, actor_id: str) -> ActionResult:
    state = room.state
    if (
        state.phase != PHASE_LEGISLATIVE_CHANCELLOR
        or actor_id is None
        or actor_id != state.chancellor_id
        or state.veto_requested
    ):
        return ActionResult.ignore()
    if not room.rules.veto_enabled or state.staff_tally < VETO_THRESHOLD:
        return ActionResult.rejected(
            VETO_NOT_ELIGIBLE,
            f"Veto power is only available after {VETO_THRESHOLD} Staff policies are enacted"
        )
    if state.veto_rejected:
        return ActionResult.rejected(VETO_NOT_ELIGIBLE, "The President already refused a veto this session")

    state.veto_requested = True
    state.log(f"{room.chancellor.name} requested a veto")
    room.touch()
    return ActionResult.ok()


def respond_to_veto(room: Room, actor_id: str, accept: bool) -> ActionResult:
    state = room.state
    if (
        state.phase != PHASE_LEGISLATIVE_CHANCELLOR
        or not state.veto_requested
        or not _is_president(room, actor_id)
    ):
        return ActionResult.ignore()

    state.veto_requested = False
    if not accept:
        state.veto_rejected = True
        state.log(f"{room.president.name} refused the veto")
        room.touch()
        return ActionResult.ok()

    state.discard.extend(state.pending_policies)
    state.pending_policies = []
    state.election_tracker += 1
    state.log(f"The agenda was vetoed; election tracker at {state.election_tracker}")
    reshuffle_if_below_threshold(state)
    if state.election_tracker >= CHAOS_THRESHOLD:
        _enter_chaos(room)
    else:
        _go_to_election(room)
    room.touch()
    return ActionResult.ok()


def continue_from_policy(room: Room, actor_id: Optional[str] = None) -> ActionResult:
    state = room.state
    if state.phase != PHASE_POLICY_RESULT or not _is_seated(room, actor_id):
        return ActionResult.ignore()

    if state.pending_executive_power:
        state.enter_phase(PHASE_EXECUTIVE)
        state.log(f"{room.president.name} gains the power: {state.pending_executive_power}")
    else:
        _go_to_election(room)
    room.touch()
    return ActionResult.ok()


def _executive_actor_ok(room: Room, actor_id: str, power: str) -> bool:
    state = room.state
    return (
        state.phase == PHASE_EXECUTIVE
        and state.pending_executive_power == power
        and _is_president(room, actor_id)
    )


def _valid_power_target(room: Room, actor_id: str, target_id: str) -> bool:
    target = room.get_player(target_id)
    return target is not None and target.is_alive and target.id != actor_id


def investigate(room: Room, actor_id: str, target_id: str) -> ActionResult:
    state = room.state
    if not _executive_actor_ok(room, actor_id, POWER_INVESTIGATE):
        return ActionResult.ignore()
    if not _valid_power_target(room, actor_id, target_id):
        return ActionResult.rejected(INVALID_TARGET, "Choose another living player to investigate")
    if room.rules.investigation_no_repeat and target_id in state.investigated_players:
        return ActionResult.rejected(ALREADY_INVESTIGATED, "This player has already been investigated")

    target = room.get_player(target_id)
    state.investigated_players.add(target_id)
    state.log(f"{room.president.name} investigated {target.name}")
    private = {
        "target_id": target.id,
        "target_name": target.name,
        "allegiance": resolve_investigation(target.role),
    }
    _go_to_election(room)
    room.touch()
    return ActionResult.ok(private=private)


def examine(room: Room, actor_id: str) -> ActionResult:
    """Private peek at the top three cards; the phase does not change."""
    if not _executive_actor_ok(room, actor_id, POWER_EXAMINE):
        return ActionResult.ignore()
    return ActionResult.ok(private={"policies": peek_policies(room.state, 3)}, changed=False)


def continue_from_examine(room: Room, actor_id: str) -> ActionResult:
    if not _executive_actor_ok(room, actor_id, POWER_EXAMINE):
        return ActionResult.ignore()
    room.state.log(f"{room.president.name} examined the top of the policy deck")
    _go_to_election(room)
    room.touch()
    return ActionResult.ok()


def special_election(room: Room, actor_id: str, target_id: str) -> ActionResult:
    state = room.state
    if not _executive_actor_ok(room, actor_id, POWER_SPECIAL_ELECTION):
        return ActionResult.ignore()
    if not _valid_power_target(room, actor_id, target_id):
        return ActionResult.rejected(INVALID_TARGET, "Choose another living player as the next President")

    start_special_election(room, target_id)
    state.pending_executive_power = None
    state.enter_phase(PHASE_ELECTION)
    state.log(f"Special election: {room.president.name} is now President")
    room.touch()
    return ActionResult.ok()


def execute(room: Room, actor_id: str, target_id: str) -> ActionResult:
    state = room.state
    if not _executive_actor_ok(room, actor_id, POWER_EXECUTE):
        return ActionResult.ignore()
    if not _valid_power_target(room, actor_id, target_id):
        return ActionResult.rejected(INVALID_TARGET, "Choose another living player to dismiss")

    execute_player(room, target_id)
    if state.phase != PHASE_GAMEOVER:
        state.enter_phase(PHASE_EXECUTION_RESULT)
    room.touch()
    return ActionResult.ok()


def continue_from_chaos(room: Room, actor_id: Optional[str] = None) -> ActionResult:
    state = room.state
    if state.phase != PHASE_CHAOS or not _is_seated(room, actor_id):
        return ActionResult.ignore()

    _go_to_election(room)
    # Term limits stay cleared for the election that follows chaos
    state.previous_president_id = None
    state.previous_chancellor_id = None
    room.touch()
    return ActionResult.ok()


def continue_from_execution(room: Room, actor_id: Optional[str] = None) -> ActionResult:
    if room.state.phase != PHASE_EXECUTION_RESULT or not _is_seated(room, actor_id):
        return ActionResult.ignore()
    _go_to_election(room)
    room.touch()
    return ActionResult.ok()


def apply_action(
    room: Room,
    actor_id: Optional[str],
    action_type: str,
    data: Optional[Dict[str, Any]] = None
) -> ActionResult:
    """
    Apply an action by type name.

    Args:
        room: Room to mutate
        actor_id: Acting player, or None for timer-driven continues
        action_type: One of the ACTION_* names
        data: Action payload (candidate_id, vote, indices, index, accept, target_id)

    Returns:
        ActionResult of the matching transition; unknown types are ignored
    """
    data = data or {}
    handlers = {
        ACTION_NOMINATE_CHANCELLOR: lambda: nominate_chancellor(room, actor_id, data.get("candidate_id")),
        ACTION_CAST_VOTE: lambda: cast_vote(room, actor_id, data.get("vote")),
        ACTION_CONTINUE_FROM_VOTE: lambda: continue_from_vote(room, actor_id),
        ACTION_PRESIDENT_SELECT_POLICIES: lambda: president_select_policies(room, actor_id, data.get("indices")),
        ACTION_CHANCELLOR_ENACT_POLICY: lambda: chancellor_enact_policy(room, actor_id, data.get("index")),
        ACTION_REQUEST_VETO: lambda: request_veto(room, actor_id),
        ACTION_RESPOND_TO_VETO: lambda: respond_to_veto(room, actor_id, bool(data.get("accept"))),
        ACTION_CONTINUE_FROM_POLICY: lambda: continue_from_policy(room, actor_id),
        ACTION_INVESTIGATE: lambda: investigate(room, actor_id, data.get("target_id")),
        ACTION_EXAMINE: lambda: examine(room, actor_id),
        ACTION_CONTINUE_FROM_EXAMINE: lambda: continue_from_examine(room, actor_id),
        ACTION_SPECIAL_ELECTION: lambda: special_election(room, actor_id, data.get("target_id")),
        ACTION_EXECUTE: lambda: execute(room, actor_id, data.get("target_id")),
        ACTION_CONTINUE_FROM_CHAOS: lambda: continue_from_chaos(room, actor_id),
        ACTION_CONTINUE_FROM_EXECUTION: lambda: continue_from_execution(room, actor_id),
    }
    handler = handlers.get(action_type)
    if handler is None:
        return ActionResult.ignore()
    return handler()
