"""
Tests for the rules engine.
"""

import pytest
from conftest import card_count

from butler_engine.constants import (
    PHASE_CHAOS,
    PHASE_ELECTION,
    PHASE_GAMEOVER,
    PHASE_VOTE_RESULT,
    POLICY_GUEST,
    POLICY_STAFF,
    POWER_EXAMINE,
    POWER_EXECUTE,
    POWER_INVESTIGATE,
    POWER_SPECIAL_ELECTION,
    TEAM_GUEST,
    TEAM_STAFF,
)
from butler_engine.engine import (
    advance_presidency,
    check_win_condition,
    eligible_chancellor_candidates,
    enact_policy,
    execute_player,
    get_executive_power,
    is_eligible_chancellor_candidate,
    resolve_vote,
    start_special_election,
    trigger_chaos,
)
from butler_engine.phases import continue_from_vote


def _vote(room, votes):
    for player, vote in zip(room.players, votes):
        player.vote = vote
        player.has_voted = vote is not None


# Executive powers

def test_power_table_six_players():
    assert get_executive_power(1, 6) is None
    assert get_executive_power(2, 6) is None
    assert get_executive_power(3, 6) == POWER_INVESTIGATE
    assert get_executive_power(4, 6) == POWER_SPECIAL_ELECTION
    assert get_executive_power(5, 6) == POWER_EXECUTE


@pytest.mark.parametrize("count", [4, 5])
def test_power_table_small_rooms(count):
    assert get_executive_power(2, count) is None
    assert get_executive_power(3, count) == POWER_EXAMINE
    assert get_executive_power(4, count) == POWER_EXECUTE
    assert get_executive_power(5, count) == POWER_EXECUTE


def test_staff_policies_unlock_powers_in_order(make_room):
    """Six seats: the third, fourth and fifth staff policies unlock investigate, special election, execute."""
    room = make_room(6)
    room.state.staff_tally = 2
    assert enact_policy(room, POLICY_STAFF) == POWER_INVESTIGATE
    assert room.state.pending_executive_power == POWER_INVESTIGATE
    assert enact_policy(room, POLICY_STAFF) == POWER_SPECIAL_ELECTION
    assert enact_policy(room, POLICY_STAFF) == POWER_EXECUTE
    assert room.state.staff_tally == 5


def test_guest_policy_grants_nothing(make_room):
    room = make_room(6)
    room.state.staff_tally = 2
    assert enact_policy(room, POLICY_GUEST) is None
    assert room.state.guest_tally == 1
    assert room.state.pending_executive_power is None


# Presidency rotation

def test_rotation_skips_dead_seats(make_room):
    room = make_room(5)
    room.players[2].is_alive = False

    seats = []
    for _ in range(5):
        advance_presidency(room)
        seats.append(room.state.president_index)
    assert seats == [1, 3, 4, 0, 1]


def test_rotation_over_alive_seats(make_room):
    """k advances with m alive players land on the (start + k) mod m-th alive seat."""
    room = make_room(6)
    room.players[1].is_alive = False
    room.players[4].is_alive = False
    alive_seats = [i for i, p in enumerate(room.players) if p.is_alive]
    m = len(alive_seats)

    for k in range(1, 10):
        advance_presidency(room)
        assert room.state.president_index == alive_seats[k % m]


def test_advance_records_previous_government(make_room):
    room = make_room(5, president_index=2)
    room.state.chancellor_id = "p4"
    room.state.chancellor_candidate_id = "p4"

    advance_presidency(room)

    assert room.state.previous_president_id == "p2"
    assert room.state.previous_chancellor_id == "p4"
    assert room.state.chancellor_id is None
    assert room.state.chancellor_candidate_id is None
    assert room.state.president_index == 3


def test_special_election_returns_to_normal_order(make_room):
    """After the detour the rotation resumes after the pre-detour president."""
    room = make_room(6, president_index=1)
    assert start_special_election(room, "p4")
    assert room.state.president_index == 4
    assert room.state.special_election_next_index == 2

    advance_presidency(room)

    assert room.state.president_index == 2
    assert room.state.special_election_next_index is None
    assert room.state.previous_president_id == "p4"


def test_special_election_restores_past_dead_seat(make_room):
    room = make_room(6, president_index=1)
    start_special_election(room, "p4")
    room.players[2].is_alive = False

    advance_presidency(room)

    assert room.state.president_index == 3


def test_special_election_rejects_dead_target(make_room):
    room = make_room(5)
    room.players[3].is_alive = False
    assert not start_special_election(room, "p3")
    assert room.state.president_index == 0


# Eligibility

def test_previous_chancellor_never_eligible(make_room):
    room = make_room(4)
    room.state.previous_chancellor_id = "p2"
    assert not is_eligible_chancellor_candidate(room, "p2")


def test_president_and_dead_players_not_eligible(make_room):
    room = make_room(5)
    room.players[3].is_alive = False
    assert not is_eligible_chancellor_candidate(room, "p0")
    assert not is_eligible_chancellor_candidate(room, "p3")
    assert not is_eligible_chancellor_candidate(room, "nobody")
    assert is_eligible_chancellor_candidate(room, "p1")


def test_previous_president_ineligible_with_six_alive(make_room):
    room = make_room(6)
    room.state.previous_president_id = "p3"
    assert not is_eligible_chancellor_candidate(room, "p3")


def test_previous_president_eligible_with_five_alive_of_six_seats(make_room):
    """The threshold counts living players, not seats."""
    room = make_room(6)
    room.players[5].is_alive = False
    room.state.previous_president_id = "p3"
    assert is_eligible_chancellor_candidate(room, "p3")


def test_eligible_candidates_list(make_room):
    room = make_room(5)
    room.state.previous_chancellor_id = "p1"
    ids = [p.id for p in eligible_chancellor_candidates(room)]
    assert ids == ["p2", "p3", "p4"]


def test_previous_chancellor_stays_ineligible_as_last_other_player(make_room):
    room = make_room(4)
    room.players[1].is_alive = False
    room.players[2].is_alive = False
    room.state.previous_chancellor_id = "p3"
    assert not is_eligible_chancellor_candidate(room, "p3")
    assert eligible_chancellor_candidates(room) == []


# Votes

def test_majority_yes_passes(make_room):
    room = make_room(5)
    room.state.chancellor_candidate_id = "p2"
    room.state.election_tracker = 2
    _vote(room, [True, True, True, False, False])

    outcome = resolve_vote(room)

    assert outcome.passed
    assert (outcome.yes, outcome.no) == (3, 2)
    assert room.state.chancellor_id == "p2"
    assert room.state.election_tracker == 0
    assert room.state.vote_passed is True
    assert len(room.state.votes) == 5


def test_tie_fails(make_room):
    room = make_room(4)
    room.state.chancellor_candidate_id = "p2"
    _vote(room, [True, True, False, False])

    outcome = resolve_vote(room)

    assert not outcome.passed
    assert room.state.chancellor_id is None
    assert room.state.election_tracker == 1


def test_majority_no_fails(make_room):
    room = make_room(5)
    room.state.chancellor_candidate_id = "p2"
    _vote(room, [True, False, False, False, True])
    assert not resolve_vote(room).passed


def test_dead_players_votes_do_not_count(make_room):
    room = make_room(5)
    room.state.chancellor_candidate_id = "p2"
    _vote(room, [True, True, False, False, True])
    room.players[4].is_alive = False

    outcome = resolve_vote(room)

    assert (outcome.yes, outcome.no) == (2, 2)
    assert not outcome.passed
    assert "p4" not in [v["player_id"] for v in room.state.votes]


def test_electing_butler_late_wins_for_staff(make_room):
    """Four seats, three staff policies down, the butler is elected chancellor."""
    room = make_room(4)
    room.state.staff_tally = 3
    room.state.chancellor_candidate_id = "p3"
    _vote(room, [True, True, True, True])

    resolve_vote(room)

    assert room.state.winner == TEAM_STAFF
    assert "Butler" in room.state.win_reason
    assert room.state.phase == PHASE_GAMEOVER


def test_electing_butler_early_does_not_win(make_room):
    room = make_room(4)
    room.state.staff_tally = 2
    room.state.chancellor_candidate_id = "p3"
    _vote(room, [True, True, True, True])

    resolve_vote(room)

    assert room.state.winner is None
    assert room.state.chancellor_id == "p3"


# Win conditions

def test_guest_policy_win(make_room):
    room = make_room(5)
    room.state.guest_tally = 4
    enact_policy(room, POLICY_GUEST)
    assert room.state.winner == TEAM_GUEST
    assert room.state.phase == PHASE_GAMEOVER


def test_staff_policy_win(make_room):
    room = make_room(5)
    room.state.staff_tally = 5
    assert enact_policy(room, POLICY_STAFF) is None
    assert room.state.winner == TEAM_STAFF
    assert room.state.pending_executive_power is None


def test_win_conditions_are_exclusive(make_room):
    room = make_room(5)
    room.state.guest_tally = 5
    room.state.staff_tally = 6

    assert check_win_condition(room)
    assert room.state.winner == TEAM_GUEST
    reason = room.state.win_reason
    log_length = len(room.state.game_log)

    assert check_win_condition(room)
    assert room.state.winner == TEAM_GUEST
    assert room.state.win_reason == reason
    assert len(room.state.game_log) == log_length


def test_no_win_yet(make_room):
    room = make_room(5)
    room.state.guest_tally = 4
    room.state.staff_tally = 5
    assert not check_win_condition(room)
    assert room.state.winner is None
    assert room.state.phase == PHASE_ELECTION


def test_executing_butler_wins_for_guests(make_room):
    room = make_room(5)
    target = execute_player(room, "p4")

    assert target is room.players[4]
    assert not target.is_alive
    assert room.state.executed_player == {"id": "p4", "name": "Player 4", "role": "butler"}
    assert room.state.winner == TEAM_GUEST
    assert room.state.phase == PHASE_GAMEOVER


def test_executing_guest_continues_game(make_room):
    room = make_room(5)
    execute_player(room, "p1")
    assert not room.players[1].is_alive
    assert room.state.winner is None


def test_executing_dead_player_is_noop(make_room):
    room = make_room(5)
    room.players[1].is_alive = False
    assert execute_player(room, "p1") is None
    assert room.state.executed_player is None


# Chaos

def test_three_failed_elections_cause_chaos(make_room):
    """Tracker at 2, a failed vote, then chaos enacts exactly one card."""
    room = make_room(5)
    state = room.state
    state.election_tracker = 2
    state.previous_president_id = "p3"
    state.previous_chancellor_id = "p4"
    state.chancellor_candidate_id = "p2"
    state.enter_phase("voting")
    _vote(room, [False, False, False, True, True])

    resolve_vote(room)
    assert state.election_tracker == 3
    state.enter_phase(PHASE_VOTE_RESULT)

    deck_before = len(state.deck)
    tallies_before = state.guest_tally + state.staff_tally
    top_card = state.deck[-1]

    continue_from_vote(room)

    assert state.phase == PHASE_CHAOS
    assert state.chaos_policy == top_card
    assert len(state.deck) == deck_before - 1
    assert state.guest_tally + state.staff_tally == tallies_before + 1
    assert state.election_tracker == 0
    assert state.previous_president_id is None
    assert state.previous_chancellor_id is None
    assert card_count(state) == 17


def test_chaos_clears_term_limits(make_room):
    room = make_room(6)
    room.state.previous_president_id = "p2"
    room.state.previous_chancellor_id = "p3"
    assert not is_eligible_chancellor_candidate(room, "p3")

    trigger_chaos(room)

    assert is_eligible_chancellor_candidate(room, "p2")
    assert is_eligible_chancellor_candidate(room, "p3")


def test_chaos_policy_grants_no_power(make_room):
    room = make_room(6)
    room.state.staff_tally = 2
    room.state.deck.append(POLICY_STAFF)

    assert trigger_chaos(room) == POLICY_STAFF
    assert room.state.staff_tally == 3
    assert room.state.pending_executive_power is None


def test_chaos_can_end_the_game(make_room):
    room = make_room(5)
    room.state.guest_tally = 4
    room.state.deck.append(POLICY_GUEST)

    trigger_chaos(room)

    assert room.state.winner == TEAM_GUEST
    assert room.state.phase == PHASE_GAMEOVER


def test_card_count_includes_pending(make_room):
    room = make_room(5)
    room.state.pending_policies = [room.state.deck.pop(), room.state.deck.pop()]
    room.state.discard.append(room.state.deck.pop())
    assert card_count(room.state) == 17


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
