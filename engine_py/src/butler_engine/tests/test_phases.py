"""
Tests for the phase state machine.
"""

import pytest
from conftest import card_count

from butler_engine.constants import (
    ACTION_CAST_VOTE,
    ACTION_NOMINATE_CHANCELLOR,
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
    POLICY_GUEST,
    POLICY_STAFF,
    POWER_EXAMINE,
    POWER_EXECUTE,
    POWER_INVESTIGATE,
    POWER_SPECIAL_ELECTION,
    TEAM_GUEST,
    TEAM_STAFF,
)
from butler_engine.errors import (
    ALREADY_INVESTIGATED,
    ALREADY_VOTED,
    INVALID_TARGET,
    VETO_NOT_ELIGIBLE,
)
from butler_engine.phases import (
    apply_action,
    cast_vote,
    chancellor_enact_policy,
    continue_from_chaos,
    continue_from_examine,
    continue_from_execution,
    continue_from_policy,
    continue_from_vote,
    examine,
    execute,
    investigate,
    nominate_chancellor,
    pending_actors,
    president_select_policies,
    request_veto,
    respond_to_veto,
    special_election,
)
from butler_engine.rules import create_rules


def _to_voting(room, candidate_id="p1"):
    assert nominate_chancellor(room, room.president.id, candidate_id).success
    return room


def _vote_all(room, vote):
    for player in room.alive_players():
        cast_vote(room, player.id, vote)


def _to_chancellor(room, cards, chancellor_id="p1"):
    """Seat a chancellor holding ``cards`` taken from the deck."""
    state = room.state
    for card in cards:
        state.deck.remove(card)
    state.pending_policies = list(cards)
    state.chancellor_id = chancellor_id
    state.enter_phase(PHASE_LEGISLATIVE_CHANCELLOR)
    return room


def _to_executive(room, power):
    room.state.pending_executive_power = power
    room.state.enter_phase(PHASE_EXECUTIVE)
    return room


# Nomination

def test_nomination_moves_to_voting(make_room):
    room = make_room(5)
    room.players[2].has_voted = True
    room.players[2].vote = False

    result = nominate_chancellor(room, "p0", "p2")

    assert result.success
    assert room.state.phase == PHASE_VOTING
    assert room.state.chancellor_candidate_id == "p2"
    assert not any(p.has_voted for p in room.players)
    assert all(p.vote is None for p in room.players)


def test_nomination_by_non_president_is_ignored(make_room):
    room = make_room(5)
    version = room.state.version

    result = nominate_chancellor(room, "p1", "p2")

    assert result.ignored
    assert room.state.phase == PHASE_ELECTION
    assert room.state.version == version


def test_nominating_ineligible_candidate_is_rejected(make_room):
    room = make_room(5)
    room.state.previous_chancellor_id = "p2"

    result = nominate_chancellor(room, "p0", "p2")

    assert not result.success
    assert not result.ignored
    assert result.error_code == INVALID_TARGET
    assert room.state.phase == PHASE_ELECTION


def test_nomination_in_wrong_phase_is_ignored(make_room):
    room = make_room(5, phase=PHASE_VOTING)
    assert nominate_chancellor(room, "p0", "p2").ignored


# Voting

def test_vote_resolves_when_all_alive_voted(make_room):
    room = _to_voting(make_room(5))
    room.players[4].is_alive = False
    version = room.state.version

    for player_id in ["p0", "p1", "p2"]:
        assert cast_vote(room, player_id, True).success
    assert room.state.phase == PHASE_VOTING
    assert cast_vote(room, "p3", False).success

    assert room.state.phase == PHASE_VOTE_RESULT
    assert room.state.vote_passed is True
    assert room.state.chancellor_id == "p1"
    assert room.state.version == version + 4


def test_double_vote_is_rejected(make_room):
    room = _to_voting(make_room(5))
    cast_vote(room, "p2", True)

    result = cast_vote(room, "p2", False)

    assert result.error_code == ALREADY_VOTED
    assert room.players[2].vote is True


def test_dead_player_vote_is_ignored(make_room):
    room = _to_voting(make_room(5))
    room.players[3].is_alive = False
    assert cast_vote(room, "p3", True).ignored
    assert not room.players[3].has_voted


def test_non_boolean_vote_is_ignored(make_room):
    room = _to_voting(make_room(5))
    assert cast_vote(room, "p2", "yes").ignored
    assert not room.players[2].has_voted


def test_passed_vote_starts_legislative_session(make_room):
    room = _to_voting(make_room(5))
    _vote_all(room, True)
    deck_before = len(room.state.deck)

    assert continue_from_vote(room).success

    assert room.state.phase == PHASE_LEGISLATIVE_PRESIDENT
    assert len(room.state.pending_policies) == 3
    assert len(room.state.deck) == deck_before - 3
    assert card_count(room.state) == 17


def test_failed_vote_passes_presidency(make_room):
    room = _to_voting(make_room(5))
    _vote_all(room, False)

    continue_from_vote(room)

    assert room.state.phase == PHASE_ELECTION
    assert room.state.president_index == 1
    assert room.state.election_tracker == 1
    assert room.state.previous_president_id == "p0"


def test_third_failed_vote_triggers_chaos(make_room):
    room = make_room(5)
    room.state.election_tracker = 2
    _to_voting(room)
    _vote_all(room, False)
    assert room.state.election_tracker == 3
    assert room.state.phase == PHASE_VOTE_RESULT

    continue_from_vote(room)

    assert room.state.phase == PHASE_CHAOS
    assert room.state.election_tracker == 0
    assert room.state.chaos_policy in (POLICY_GUEST, POLICY_STAFF)


def test_continue_in_wrong_phase_is_ignored(make_room):
    room = make_room(5)
    assert continue_from_vote(room).ignored
    assert continue_from_policy(room).ignored
    assert continue_from_chaos(room).ignored
    assert continue_from_execution(room).ignored


def test_continue_from_unknown_player_is_ignored(make_room):
    room = _to_voting(make_room(5))
    _vote_all(room, True)
    assert continue_from_vote(room, "stranger").ignored
    assert continue_from_vote(room, "p3").success


# Legislative session

def test_president_discards_one(make_room):
    room = _to_voting(make_room(5))
    _vote_all(room, True)
    continue_from_vote(room)
    cards = list(room.state.pending_policies)

    result = president_select_policies(room, "p0", [0, 2])

    assert result.success
    assert room.state.pending_policies == [cards[0], cards[2]]
    assert room.state.discard == [cards[1]]
    assert room.state.phase == PHASE_LEGISLATIVE_CHANCELLOR
    assert card_count(room.state) == 17


@pytest.mark.parametrize("indices", [[0], [0, 0], [0, 3], [0, 1, 2], None])
def test_president_bad_selection_is_ignored(make_room, indices):
    room = _to_voting(make_room(5))
    _vote_all(room, True)
    continue_from_vote(room)

    assert president_select_policies(room, "p0", indices).ignored
    assert room.state.phase == PHASE_LEGISLATIVE_PRESIDENT


def test_only_president_selects(make_room):
    room = _to_voting(make_room(5))
    _vote_all(room, True)
    continue_from_vote(room)
    assert president_select_policies(room, "p1", [0, 1]).ignored


def test_chancellor_enacts(make_room):
    room = _to_chancellor(make_room(5), [POLICY_GUEST, POLICY_STAFF])

    result = chancellor_enact_policy(room, "p1", 0)

    assert result.success
    assert room.state.guest_tally == 1
    assert room.state.discard == [POLICY_STAFF]
    assert room.state.pending_policies == []
    assert room.state.phase == PHASE_POLICY_RESULT
    assert card_count(room.state) == 17


def test_chancellor_enact_wrong_actor_or_index(make_room):
    room = _to_chancellor(make_room(5), [POLICY_GUEST, POLICY_STAFF])
    assert chancellor_enact_policy(room, "p0", 0).ignored
    assert chancellor_enact_policy(room, "p1", 2).ignored
    assert room.state.phase == PHASE_LEGISLATIVE_CHANCELLOR


def test_enactment_reshuffles_low_deck(make_room):
    room = make_room(5)
    state = room.state
    state.discard = state.deck[:-4]
    state.deck = state.deck[-4:]
    _to_chancellor(room, [state.deck[-1], state.deck[-2]])

    chancellor_enact_policy(room, "p1", 0)

    assert len(state.deck) == 16
    assert state.discard == []
    assert card_count(state) == 17


def test_final_policy_ends_game(make_room):
    room = make_room(5)
    room.state.guest_tally = 4
    _to_chancellor(room, [POLICY_GUEST, POLICY_STAFF])

    chancellor_enact_policy(room, "p1", 0)

    assert room.state.phase == PHASE_GAMEOVER
    assert room.state.winner == TEAM_GUEST


def test_staff_policy_power_goes_to_executive(make_room):
    room = make_room(5)
    room.state.staff_tally = 2
    _to_chancellor(room, [POLICY_STAFF, POLICY_STAFF])
    chancellor_enact_policy(room, "p1", 1)
    assert room.state.pending_executive_power == POWER_EXAMINE

    continue_from_policy(room)

    assert room.state.phase == PHASE_EXECUTIVE
    assert pending_actors(room) == ["p0"]


def test_policy_without_power_goes_to_election(make_room):
    room = make_room(5)
    _to_chancellor(room, [POLICY_STAFF, POLICY_GUEST])
    chancellor_enact_policy(room, "p1", 0)

    continue_from_policy(room)

    assert room.state.phase == PHASE_ELECTION
    assert room.state.president_index == 1
    assert room.state.previous_chancellor_id == "p1"


# Veto

def test_veto_below_threshold_is_rejected(make_room):
    room = make_room(5)
    room.state.staff_tally = 4
    _to_chancellor(room, [POLICY_GUEST, POLICY_STAFF])

    result = request_veto(room, "p1")

    assert result.error_code == VETO_NOT_ELIGIBLE
    assert not room.state.veto_requested


def test_veto_disabled_by_rule(make_room):
    room = make_room(5, rules=create_rules(veto_enabled=False))
    room.state.staff_tally = 5
    _to_chancellor(room, [POLICY_GUEST, POLICY_STAFF])
    assert request_veto(room, "p1").error_code == VETO_NOT_ELIGIBLE


def test_accepted_veto_discards_agenda(make_room):
    room = make_room(5)
    room.state.staff_tally = 5
    _to_chancellor(room, [POLICY_GUEST, POLICY_STAFF])

    assert request_veto(room, "p1").success
    assert pending_actors(room) == ["p0"]
    assert chancellor_enact_policy(room, "p1", 0).ignored

    assert respond_to_veto(room, "p0", True).success

    assert room.state.phase == PHASE_ELECTION
    assert room.state.election_tracker == 1
    assert room.state.pending_policies == []
    assert sorted(room.state.discard) == [POLICY_GUEST, POLICY_STAFF]
    assert room.state.president_index == 1


def test_accepted_veto_can_cause_chaos(make_room):
    room = make_room(5)
    room.state.staff_tally = 5
    room.state.election_tracker = 2
    _to_chancellor(room, [POLICY_GUEST, POLICY_GUEST])
    request_veto(room, "p1")

    respond_to_veto(room, "p0", True)

    assert room.state.phase in (PHASE_CHAOS, PHASE_GAMEOVER)
    assert room.state.election_tracker == 0


def test_refused_veto_forces_enactment(make_room):
    room = make_room(5)
    room.state.staff_tally = 5
    _to_chancellor(room, [POLICY_GUEST, POLICY_STAFF])
    request_veto(room, "p1")

    assert respond_to_veto(room, "p0", False).success

    assert room.state.veto_rejected
    assert not room.state.veto_requested
    assert request_veto(room, "p1").error_code == VETO_NOT_ELIGIBLE
    assert pending_actors(room) == ["p1"]
    assert chancellor_enact_policy(room, "p1", 0).success


def test_veto_response_from_chancellor_is_ignored(make_room):
    room = make_room(5)
    room.state.staff_tally = 5
    _to_chancellor(room, [POLICY_GUEST, POLICY_STAFF])
    request_veto(room, "p1")
    assert respond_to_veto(room, "p1", True).ignored


# Executive powers

def test_investigate_reveals_party_privately(make_room):
    room = _to_executive(make_room(6), POWER_INVESTIGATE)

    result = investigate(room, "p0", "p5")

    assert result.success
    assert result.private == {"target_id": "p5", "target_name": "Player 5", "allegiance": TEAM_STAFF}
    assert "p5" in room.state.investigated_players
    assert room.state.phase == PHASE_ELECTION
    assert room.state.pending_executive_power is None


def test_investigate_same_player_twice_is_rejected(make_room):
    room = make_room(6)
    room.state.investigated_players.add("p2")
    _to_executive(room, POWER_INVESTIGATE)

    result = investigate(room, "p0", "p2")

    assert result.error_code == ALREADY_INVESTIGATED
    assert room.state.phase == PHASE_EXECUTIVE


def test_repeat_investigation_allowed_when_rule_off(make_room):
    room = make_room(6, rules=create_rules(investigation_no_repeat=False))
    room.state.investigated_players.add("p2")
    _to_executive(room, POWER_INVESTIGATE)
    assert investigate(room, "p0", "p2").success


def test_investigate_self_is_rejected(make_room):
    room = _to_executive(make_room(6), POWER_INVESTIGATE)
    assert investigate(room, "p0", "p0").error_code == INVALID_TARGET


def test_power_used_by_wrong_player_or_power_is_ignored(make_room):
    room = _to_executive(make_room(6), POWER_INVESTIGATE)
    assert investigate(room, "p1", "p2").ignored
    assert execute(room, "p0", "p2").ignored
    assert examine(room, "p0").ignored


def test_examine_peeks_without_changing_phase(make_room):
    room = _to_executive(make_room(5), POWER_EXAMINE)
    top_three = list(reversed(room.state.deck[-3:]))
    deck_before = list(room.state.deck)

    result = examine(room, "p0")

    assert result.success
    assert not result.changed
    assert result.private == {"policies": top_three}
    assert room.state.deck == deck_before
    assert room.state.phase == PHASE_EXECUTIVE

    assert continue_from_examine(room, "p0").success
    assert room.state.phase == PHASE_ELECTION


def test_special_election(make_room):
    room = _to_executive(make_room(6, president_index=1), POWER_SPECIAL_ELECTION)

    assert special_election(room, "p1", "p4").success

    assert room.state.phase == PHASE_ELECTION
    assert room.president.id == "p4"
    assert room.state.special_election_next_index == 2


def test_special_election_rejects_self_and_dead(make_room):
    room = _to_executive(make_room(6), POWER_SPECIAL_ELECTION)
    room.players[3].is_alive = False
    assert special_election(room, "p0", "p0").error_code == INVALID_TARGET
    assert special_election(room, "p0", "p3").error_code == INVALID_TARGET


def test_execute_guest(make_room):
    room = _to_executive(make_room(5), POWER_EXECUTE)

    assert execute(room, "p0", "p2").success

    assert room.state.phase == PHASE_EXECUTION_RESULT
    assert not room.players[2].is_alive

    assert continue_from_execution(room).success
    assert room.state.phase == PHASE_ELECTION
    assert room.president.id == "p1"


def test_execute_butler_ends_game(make_room):
    room = _to_executive(make_room(5), POWER_EXECUTE)
    execute(room, "p0", "p4")
    assert room.state.phase == PHASE_GAMEOVER
    assert room.state.winner == TEAM_GUEST


def test_continue_from_chaos_keeps_term_limits_clear(make_room):
    room = make_room(5)
    room.state.election_tracker = 3
    room.state.vote_passed = False
    room.state.enter_phase(PHASE_VOTE_RESULT)
    continue_from_vote(room)
    assert room.state.phase == PHASE_CHAOS

    continue_from_chaos(room)

    assert room.state.phase == PHASE_ELECTION
    assert room.state.previous_president_id is None
    assert room.state.previous_chancellor_id is None
    assert room.president.id == "p1"


# Dispatch

def test_pending_actors_by_phase(make_room):
    room = make_room(5)
    assert pending_actors(room) == ["p0"]
    _to_voting(room)
    cast_vote(room, "p1", True)
    assert pending_actors(room) == ["p0", "p2", "p3", "p4"]
    _vote_all(room, True)
    assert pending_actors(room) == []


def test_apply_action_dispatches(make_room):
    room = make_room(5)
    assert apply_action(room, "p0", ACTION_NOMINATE_CHANCELLOR, {"candidate_id": "p3"}).success
    assert apply_action(room, "p3", ACTION_CAST_VOTE, {"vote": True}).success
    assert room.players[3].has_voted


def test_apply_unknown_action_is_ignored(make_room):
    room = make_room(5)
    assert apply_action(room, "p0", "flip_table", {}).ignored


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
