# engine_py/src/butler_engine/roles.py

from typing import List

from .constants import (
    ROLE_BUTLER,
    ROLE_GUEST,
    ROLE_STAFF,
    team_of,
)
from .deck import shuffle_cards
from .models import Player, Room


def assign_roles(room: Room) -> bool:
    """
    Deal a secret role to every seated player.

    Builds the role list from the room rules' distribution for its player
    count, shuffles it and hands the roles out by seat.

    Args:
        room: The room whose players receive roles.

    Returns:
        False (and leaves roles untouched) when the player count has no
        configured distribution, True otherwise.
    """
    try:
        config = room.rules.get_role_distribution(len(room.players))
    except ValueError:
        return False

    roles_to_assign = (
        [ROLE_GUEST] * config[ROLE_GUEST]
        + [ROLE_STAFF] * config[ROLE_STAFF]
        + [ROLE_BUTLER] * config[ROLE_BUTLER]
    )
    shuffled = shuffle_cards(roles_to_assign, room.state.rng)

    for player, role in zip(room.players, shuffled):
        player.role = role
    return True


def is_staff_team(player: Player) -> bool:
    return player.role in (ROLE_STAFF, ROLE_BUTLER)


def teammates(room: Room, player: Player) -> List[Player]:
    """Staff-team members a player knows about; guests know nobody."""
    if not is_staff_team(player):
        return []
    return [p for p in room.players if p.id != player.id and is_staff_team(p)]


def find_butler(room: Room):
    for player in room.players:
        if player.role == ROLE_BUTLER:
            return player
    return None


def resolve_investigation(target_role: str) -> str:
    """Party membership revealed by an investigation; the butler shows as staff."""
    return team_of(target_role)
