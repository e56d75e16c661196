"""Rules engine: synchronous, I/O-free transformations of a Room"""

from dataclasses import dataclass, field
from typing import List, Optional

from .constants import (
    BUTLER_CHANCELLOR_THRESHOLD,
    EXECUTIVE_POWERS,
    GUEST_POLICIES_TO_WIN,
    PHASE_GAMEOVER,
    POLICY_GUEST,
    POLICY_STAFF,
    ROLE_BUTLER,
    STAFF_POLICIES_TO_WIN,
    TEAM_GUEST,
    TEAM_STAFF,
    TERM_LIMIT_ALIVE_THRESHOLD,
)
from .deck import draw_policies, reshuffle_if_below_threshold
from .models import GameState, Player, Room
from .roles import find_butler


@dataclass
class VoteOutcome:
    passed: bool
    yes: int = 0
    no: int = 0
    votes: List[dict] = field(default_factory=list)


def get_executive_power(staff_count: int, player_count: int) -> Optional[str]:
    """Power unlocked when the ``staff_count``-th staff policy is enacted."""
    return EXECUTIVE_POWERS.get(player_count, {}).get(staff_count)


def next_alive_index(players: List[Player], index: int) -> int:
    """Index of the first alive seat strictly after ``index``, wrapping around."""
    count = len(players)
    for step in range(1, count + 1):
        candidate = (index + step) % count
        if players[candidate].is_alive:
            return candidate
    return index


def _first_alive_from(players: List[Player], index: int) -> int:
    if players[index].is_alive:
        return index
    return next_alive_index(players, index)


def advance_presidency(room: Room):
    """
    Pass the presidency on and clear the current government.

    After a special election the rotation resumes at the seat stored when the
    detour started, so the detour does not shift the normal order.
    """
    state = room.state
    president = room.players[state.president_index]
    state.previous_president_id = president.id
    state.previous_chancellor_id = state.chancellor_id

    if state.special_election_next_index is not None:
        state.president_index = _first_alive_from(room.players, state.special_election_next_index)
        state.special_election_next_index = None
    else:
        state.president_index = next_alive_index(room.players, state.president_index)

    state.chancellor_id = None
    state.chancellor_candidate_id = None


def start_special_election(room: Room, target_id: str) -> bool:
    """Hand the presidency to ``target_id`` for one election, remembering the normal successor."""
    state = room.state
    target_index = room.index_of(target_id)
    if target_index is None or not room.players[target_index].is_alive:
        return False

    president = room.players[state.president_index]
    state.special_election_next_index = next_alive_index(room.players, state.president_index)
    state.previous_president_id = president.id
    state.previous_chancellor_id = state.chancellor_id
    state.president_index = target_index
    state.chancellor_id = None
    state.chancellor_candidate_id = None
    return True


def is_eligible_chancellor_candidate(room: Room, candidate_id: Optional[str]) -> bool:
    """Term limits: never the president or the last chancellor; the last
    president too, but only while more than five players are alive."""
    state = room.state
    candidate = room.get_player(candidate_id)
    if candidate is None or not candidate.is_alive:
        return False
    if candidate_id == room.players[state.president_index].id:
        return False
    if candidate_id == state.previous_chancellor_id:
        return False
    if len(room.alive_players()) > TERM_LIMIT_ALIVE_THRESHOLD and candidate_id == state.previous_president_id:
        return False
    return True


def eligible_chancellor_candidates(room: Room) -> List[Player]:
    return [p for p in room.players if is_eligible_chancellor_candidate(room, p.id)]


def _declare_winner(state: GameState, winner: str, reason: str):
    state.winner = winner
    state.win_reason = reason
    state.pending_executive_power = None
    state.enter_phase(PHASE_GAMEOVER)
    state.log(reason)


def resolve_vote(room: Room) -> VoteOutcome:
    """
    Count the ballots of alive players; strictly more yes than no passes.

    A passed vote seats the chancellor and resets the election tracker. If the
    butler is seated once three staff policies are down, staff win at once.
    A failed vote moves the election tracker.
    """
    state = room.state
    alive = room.alive_players()
    yes = sum(1 for p in alive if p.vote is True)
    no = sum(1 for p in alive if p.vote is False)
    outcome = VoteOutcome(
        passed=yes > no,
        yes=yes,
        no=no,
        votes=[{"player_id": p.id, "player_name": p.name, "vote": p.vote} for p in alive],
    )

    state.votes = outcome.votes
    state.vote_passed = outcome.passed

    if outcome.passed:
        state.election_tracker = 0
        state.chancellor_id = state.chancellor_candidate_id
        chancellor = room.get_player(state.chancellor_id)
        state.log(f"The government of {room.players[state.president_index].name} and "
                  f"{chancellor.name if chancellor else '?'} was elected ({yes}-{no})")
        if (
            chancellor is not None
            and chancellor.role == ROLE_BUTLER
            and state.staff_tally >= BUTLER_CHANCELLOR_THRESHOLD
        ):
            _declare_winner(state, TEAM_STAFF, "The Butler was appointed Head of Household!")
    else:
        state.election_tracker += 1
        state.log(f"The election failed ({yes}-{no}); election tracker at {state.election_tracker}")

    return outcome


def check_win_condition(room: Room) -> bool:
    """Apply the first win condition that holds; True once the game is over."""
    state = room.state
    if state.winner is not None:
        return True

    if state.guest_tally >= GUEST_POLICIES_TO_WIN:
        _declare_winner(state, TEAM_GUEST, f"{GUEST_POLICIES_TO_WIN} Guest policies enacted!")
        return True

    if state.staff_tally >= STAFF_POLICIES_TO_WIN:
        _declare_winner(state, TEAM_STAFF, f"{STAFF_POLICIES_TO_WIN} Staff policies enacted!")
        return True

    butler = find_butler(room)
    if butler is not None and not butler.is_alive:
        _declare_winner(state, TEAM_GUEST, "The Butler was exposed and dismissed!")
        return True

    return False


def enact_policy(room: Room, policy: str, grant_power: bool = True) -> Optional[str]:
    """
    Put a policy into effect.

    Returns:
        The executive power unlocked by a staff policy (also stored as the
        pending power), or None when nothing unlocks or the game just ended.
    """
    state = room.state
    if policy == POLICY_GUEST:
        state.guest_tally += 1
    else:
        state.staff_tally += 1
    state.enacted_policy = policy
    state.log(f"A {policy.capitalize()} policy was enacted")

    if check_win_condition(room):
        return None

    if policy == POLICY_STAFF and grant_power:
        power = get_executive_power(state.staff_tally, len(room.players))
        state.pending_executive_power = power
        return power

    state.pending_executive_power = None
    return None


def trigger_chaos(room: Room) -> str:
    """Enact the top card after three failed elections; all term limits lapse."""
    state = room.state
    policy = draw_policies(state, 1)[0]
    state.chaos_policy = policy
    state.log("The household fell into chaos!")
    enact_policy(room, policy, grant_power=False)
    state.election_tracker = 0
    state.previous_president_id = None
    state.previous_chancellor_id = None
    reshuffle_if_below_threshold(state)
    return policy


def execute_player(room: Room, target_id: str) -> Optional[Player]:
    """Dismiss a player for good; None (no change) if the target is not alive."""
    state = room.state
    target = room.get_player(target_id)
    if target is None or not target.is_alive:
        return None

    target.is_alive = False
    state.executed_player = {"id": target.id, "name": target.name, "role": target.role}
    state.pending_executive_power = None
    state.log(f"{target.name} was dismissed from the house")
    check_win_condition(room)
    return target
