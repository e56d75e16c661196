"""
State serialization and sanitization utilities.
"""

from typing import Any, Dict, List, Optional

from .constants import (
    PHASE_GAMEOVER,
    PHASE_LEGISLATIVE_CHANCELLOR,
    PHASE_LEGISLATIVE_PRESIDENT,
)
from .models import Player, Room
from .roles import is_staff_team, teammates

RECENT_LOG_ENTRIES = 10


def _serialize_player(player: Player, reveal_role: bool) -> Dict[str, Any]:
    data = {
        "id": player.id,
        "name": player.name,
        "avatar": dict(player.avatar),
        "is_alive": player.is_alive,
        "has_voted": player.has_voted,
        "is_agent": player.is_agent,
        "connected": player.connected,
    }
    if reveal_role:
        data["role"] = player.role
    return data


def _serialize_rule_config(rules) -> Dict[str, Any]:
    """Serialize the rule toggles clients need to render controls."""
    return {
        "veto_enabled": rules.veto_enabled,
        "investigation_no_repeat": rules.investigation_no_repeat,
        "min_players": rules.min_players,
        "max_players": rules.max_players,
    }


def public_state(room: Room) -> Dict[str, Any]:
    """
    State every seated player may see.

    Roles stay hidden until the game is over; the executed player's role is
    public because dismissal reveals it. Pending policy cards are reported as
    a count only.
    """
    state = room.state
    president = room.president
    game_over = state.phase == PHASE_GAMEOVER

    return {
        "code": room.code,
        "host_id": room.host_id,
        "version": state.version,
        "phase": state.phase,
        "president_id": president.id if president else None,
        "president_index": state.president_index if president else None,
        "chancellor_candidate_id": state.chancellor_candidate_id,
        "chancellor_id": state.chancellor_id,
        "previous_president_id": state.previous_president_id,
        "previous_chancellor_id": state.previous_chancellor_id,
        "guest_tally": state.guest_tally,
        "staff_tally": state.staff_tally,
        "election_tracker": state.election_tracker,
        "deck_count": len(state.deck),
        "pending_policy_count": len(state.pending_policies),
        "pending_executive_power": state.pending_executive_power,
        "enacted_policy": state.enacted_policy,
        "chaos_policy": state.chaos_policy,
        "executed_player": dict(state.executed_player) if state.executed_player else None,
        "veto_requested": state.veto_requested,
        "vote_passed": state.vote_passed,
        "votes": [dict(v) for v in state.votes],
        "winner": state.winner,
        "win_reason": state.win_reason,
        "players": [_serialize_player(p, reveal_role=game_over) for p in room.players],
        "log": state.game_log[-RECENT_LOG_ENTRIES:],
        "rules": _serialize_rule_config(room.rules),
    }


def _visible_policies(room: Room, viewer_id: str) -> Optional[List[str]]:
    """Pending cards, but only for the player currently holding them."""
    state = room.state
    president = room.president
    if state.phase == PHASE_LEGISLATIVE_PRESIDENT and president and president.id == viewer_id:
        return list(state.pending_policies)
    if state.phase == PHASE_LEGISLATIVE_CHANCELLOR and state.chancellor_id == viewer_id:
        return list(state.pending_policies)
    return None


def private_state(room: Room, viewer_id: Optional[str]) -> Dict[str, Any]:
    """Per-viewer secrets: own role, held cards and known teammates."""
    viewer = room.get_player(viewer_id)
    if viewer is None:
        return {}

    president = room.president
    private = {
        "player_id": viewer.id,
        "role": viewer.role,
        "is_president": president is not None and president.id == viewer.id,
        "is_chancellor": room.state.chancellor_id == viewer.id,
        "is_host": room.host_id == viewer.id,
    }

    policies = _visible_policies(room, viewer.id)
    if policies is not None:
        private["policies"] = policies

    if is_staff_team(viewer):
        private["teammates"] = [
            {"id": p.id, "name": p.name, "role": p.role}
            for p in teammates(room, viewer)
        ]

    return private


def sanitize_state(room: Room, viewer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the state payload for one viewer.

    Args:
        room: Room to serialize
        viewer_id: Receiving player; None yields the public part only

    Returns:
        ``{"public": ..., "private": ...}``
    """
    return {
        "public": public_state(room),
        "private": private_state(room, viewer_id),
    }
