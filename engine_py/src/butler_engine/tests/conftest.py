"""
Shared fixtures for the Secret Butler engine tests.
"""

import random

import pytest

from butler_engine.constants import PHASE_ELECTION, ROLE_BUTLER, ROLE_GUEST, ROLE_STAFF
from butler_engine.deck import initialize_deck
from butler_engine.models import Controller, Player, Room
from butler_engine.rules import default_rules


def card_count(state):
    """Every card the game owns, wherever it currently is."""
    return (
        len(state.deck) + len(state.discard) + len(state.pending_policies)
        + state.guest_tally + state.staff_tally
    )


def default_roles(count):
    """Guests first, then one staff, the butler last."""
    return [ROLE_GUEST] * (count - 2) + [ROLE_STAFF, ROLE_BUTLER]


@pytest.fixture
def make_room():
    """
    Factory for a seated room with a fresh shuffled deck.

    Players are ``p0``..``pN``; ``p0`` hosts. Roles default to guests first,
    then staff, then the butler in the last seat.
    """
    def _make_room(count=5, roles=None, agents=False, seed=0, phase=PHASE_ELECTION,
                   president_index=0, rules=None):
        room = Room(code="TEST", rules=rules or default_rules)
        roles = roles or default_roles(count)
        controller = Controller.AGENT if agents else Controller.HUMAN
        for i in range(count):
            room.players.append(Player(
                id=f"p{i}",
                name=f"Player {i}",
                avatar={"index": i},
                role=roles[i],
                controller=controller,
            ))
        room.host_id = "p0"
        room.state.rng = random.Random(seed)
        initialize_deck(room.state)
        room.state.president_index = president_index
        room.state.enter_phase(phase)
        return room

    return _make_room


@pytest.fixture
def rng():
    return random.Random(1234)
