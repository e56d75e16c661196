"""Game constants"""

from typing import Dict, List, Optional

# Roles
ROLE_GUEST = "guest"
ROLE_STAFF = "staff"
ROLE_BUTLER = "butler"

# Policy card types
POLICY_GUEST = "guest"
POLICY_STAFF = "staff"

# Teams (winner values)
TEAM_GUEST = "guest"
TEAM_STAFF = "staff"

# Phases
PHASE_LOBBY = "lobby"
PHASE_ELECTION = "election"
PHASE_VOTING = "voting"
PHASE_VOTE_RESULT = "vote-result"
PHASE_LEGISLATIVE_PRESIDENT = "legislative-president"
PHASE_LEGISLATIVE_CHANCELLOR = "legislative-chancellor"
PHASE_POLICY_RESULT = "policy-result"
PHASE_EXECUTIVE = "executive"
PHASE_CHAOS = "chaos"
PHASE_EXECUTION_RESULT = "execution-result"
PHASE_GAMEOVER = "gameover"

# Executive powers
POWER_EXAMINE = "examine"
POWER_INVESTIGATE = "investigate"
POWER_SPECIAL_ELECTION = "special-election"
POWER_EXECUTE = "execute"

# Deck composition
GUEST_POLICY_CARDS = 6
STAFF_POLICY_CARDS = 11
DECK_SIZE = GUEST_POLICY_CARDS + STAFF_POLICY_CARDS

# Thresholds
GUEST_POLICIES_TO_WIN = 5
STAFF_POLICIES_TO_WIN = 6
BUTLER_CHANCELLOR_THRESHOLD = 3
VETO_THRESHOLD = 5
CHAOS_THRESHOLD = 3
MIN_DRAW_PILE = 3
TERM_LIMIT_ALIVE_THRESHOLD = 5

MIN_PLAYERS = 4
MAX_PLAYERS = 6

# Role distribution by player count: (guests, staff, butler)
ROLE_CONFIGURATIONS: Dict[int, Dict[str, int]] = {
    4: {ROLE_GUEST: 2, ROLE_STAFF: 1, ROLE_BUTLER: 1},
    5: {ROLE_GUEST: 3, ROLE_STAFF: 1, ROLE_BUTLER: 1},
    6: {ROLE_GUEST: 4, ROLE_STAFF: 1, ROLE_BUTLER: 1},
}

# Executive power unlocked by the n-th staff policy, by player count
EXECUTIVE_POWERS: Dict[int, Dict[int, str]] = {
    4: {3: POWER_EXAMINE, 4: POWER_EXECUTE, 5: POWER_EXECUTE},
    5: {3: POWER_EXAMINE, 4: POWER_EXECUTE, 5: POWER_EXECUTE},
    6: {3: POWER_INVESTIGATE, 4: POWER_SPECIAL_ELECTION, 5: POWER_EXECUTE},
}

# Room codes skip 0/O and 1/I
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 4

AVATARS: List[Dict[str, str]] = [
    {"emoji": "🦁", "name": "Reginald", "color": "#f4a460"},
    {"emoji": "🐺", "name": "Percival", "color": "#708090"},
    {"emoji": "🦊", "name": "Theodore", "color": "#ff6b35"},
    {"emoji": "🐻", "name": "Bartholomew", "color": "#8b4513"},
    {"emoji": "🦅", "name": "Edmund", "color": "#4a90d9"},
    {"emoji": "🐍", "name": "Archibald", "color": "#228b22"},
]

GAME_LOG_LIMIT = 50

# Action types shared by human events and agent decisions
ACTION_NOMINATE_CHANCELLOR = "nominate_chancellor"
ACTION_CAST_VOTE = "cast_vote"
ACTION_CONTINUE_FROM_VOTE = "continue_from_vote"
ACTION_PRESIDENT_SELECT_POLICIES = "president_select_policies"
ACTION_CHANCELLOR_ENACT_POLICY = "chancellor_enact_policy"
ACTION_REQUEST_VETO = "request_veto"
ACTION_RESPOND_TO_VETO = "respond_to_veto"
ACTION_CONTINUE_FROM_POLICY = "continue_from_policy"
ACTION_INVESTIGATE = "investigate"
ACTION_EXAMINE = "examine"
ACTION_CONTINUE_FROM_EXAMINE = "continue_from_examine"
ACTION_SPECIAL_ELECTION = "special_election"
ACTION_EXECUTE = "execute"
ACTION_CONTINUE_FROM_CHAOS = "continue_from_chaos"
ACTION_CONTINUE_FROM_EXECUTION = "continue_from_execution"


def team_of(role: Optional[str]) -> Optional[str]:
    """Map a role to the team it plays for."""
    if role is None:
        return None
    return TEAM_GUEST if role == ROLE_GUEST else TEAM_STAFF
