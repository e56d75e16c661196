# engine_py/src/butler_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class InvariantError(GameError):
    """A rules-engine invariant was violated; indicates a bug upstream."""
    def __init__(self, message: str):
        super().__init__(INTERNAL_ERROR, message)


class DeckExhaustedError(InvariantError):
    """Both the draw pile and the discard pile are empty."""


# Specific error codes
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
INTERNAL_ERROR = "INTERNAL"

# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise GameError(code, message)
