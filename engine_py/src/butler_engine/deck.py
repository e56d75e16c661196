"""
Policy deck: creation, shuffling, drawing and reshuffling.
"""

import random
from typing import List, Optional

from .constants import (
    GUEST_POLICY_CARDS,
    MIN_DRAW_PILE,
    POLICY_GUEST,
    POLICY_STAFF,
    STAFF_POLICY_CARDS,
)
from .errors import DeckExhaustedError
from .models import GameState


def create_deck() -> List[str]:
    """Create the fixed policy deck (unshuffled)."""
    return [POLICY_GUEST] * GUEST_POLICY_CARDS + [POLICY_STAFF] * STAFF_POLICY_CARDS


def shuffle_cards(cards: List[str], rng: Optional[random.Random] = None) -> List[str]:
    """
    Return a shuffled copy of ``cards`` using a Fisher-Yates pass.

    Args:
        cards: Items to shuffle; left untouched
        rng: Random source, defaults to the module-level generator

    Returns:
        A new list holding a uniform random permutation of ``cards``
    """
    rng = rng or random
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def initialize_deck(state: GameState):
    """Reset the draw pile to the full shuffled deck and clear the discard pile."""
    state.deck = shuffle_cards(create_deck(), state.rng)
    state.discard = []


def _refill_from_discard(state: GameState):
    state.deck = shuffle_cards(state.deck + state.discard, state.rng)
    state.discard = []


def draw_policies(state: GameState, count: int) -> List[str]:
    """
    Pop ``count`` cards from the top of the deck.

    The discard pile is shuffled back in whenever the deck runs out mid-draw.

    Raises:
        DeckExhaustedError: if both piles are empty, which the fixed deck
            size makes unreachable for well-formed play
    """
    drawn = []
    for _ in range(count):
        if not state.deck:
            if not state.discard:
                raise DeckExhaustedError(
                    f"Cannot draw card {len(drawn) + 1} of {count}: deck and discard are empty"
                )
            _refill_from_discard(state)
        drawn.append(state.deck.pop())
    return drawn


def peek_policies(state: GameState, count: int = 3) -> List[str]:
    """Top ``count`` cards, top card first, without drawing them."""
    return list(reversed(state.deck[-count:]))


def reshuffle_if_below_threshold(state: GameState) -> bool:
    """Shuffle the discard pile back in if fewer than three cards remain to draw."""
    if len(state.deck) >= MIN_DRAW_PILE:
        return False
    _refill_from_discard(state)
    state.log("The policy deck was reshuffled")
    return True
