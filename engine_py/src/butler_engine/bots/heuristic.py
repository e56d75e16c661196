"""
Heuristic bot for filler players.

Strategy:
- Staff-team bots know their team and steer toward it, seating the Butler once
  that wins the game and never dismissing the Butler
- Guest bots have no information and play soft, randomized heuristics
- Every choice samples a weighted coin so humans cannot read a pattern
"""

from typing import List, Optional

from ..constants import (
    BUTLER_CHANCELLOR_THRESHOLD,
    CHAOS_THRESHOLD,
    POLICY_GUEST,
    POLICY_STAFF,
    ROLE_BUTLER,
    ROLE_GUEST,
)
from ..engine import eligible_chancellor_candidates
from .base import BaseBot

# Voting (probability of a yes vote)
STAFF_YES_BOTH_TEAMMATES = 0.9
STAFF_YES_BUTLER_CAN_WIN = 0.85
STAFF_YES_ONE_TEAMMATE = 0.65
STAFF_YES_BASELINE = 0.55
GUEST_YES_TRACKER_HIGH = 0.75
GUEST_YES_STAFF_FOUR = 0.45
GUEST_YES_STAFF_THREE = 0.5
GUEST_YES_BASELINE = 0.6

# Nomination
STAFF_NOMINATE_BUTLER = 0.8
STAFF_NOMINATE_TEAMMATE = 0.7
STAFF_NOMINATE_OUTSIDER = 0.5
MAX_SUSPICION = 0.3

# Legislation
STAFF_KEEP_TWO_STAFF = 0.85
STAFF_ENACT_EARLY = 0.6
STAFF_ENACT_MID = 0.7
STAFF_ENACT_LATE = 0.9

# Executive powers
STAFF_INVESTIGATE_TEAMMATE = 0.4
STAFF_SPECIAL_ELECT_TEAMMATE = 0.75
STAFF_EXECUTE_GUEST = 0.9

# Veto
VETO_WITHOUT_GOOD_CARD = 0.8
VETO_WITH_GOOD_CARD = 0.05
ACCEPT_VETO_WITHOUT_GOOD_CARD = 0.8
ACCEPT_VETO_WITH_GOOD_CARD = 0.2


class HeuristicBot(BaseBot):
    """Weighted-coin heuristics for every decision a human would face."""

    @property
    def favoured_policy(self) -> str:
        return POLICY_STAFF if self.is_staff else POLICY_GUEST

    def _suspicion_scores(self):
        # Re-rolled for every decision; guests remember nothing
        return {
            p.id: self.rng.random() * MAX_SUSPICION
            for p in self.room.players
            if p.id != self.player.id and p.is_alive
        }

    def _least_suspicious(self, candidates):
        scores = self._suspicion_scores()
        weights = [1 - scores.get(c.id, 0) for c in candidates]
        roll = self.rng.random() * sum(weights)
        for candidate, weight in zip(candidates, weights):
            roll -= weight
            if roll <= 0:
                return candidate
        return candidates[-1]

    def decide_vote(self) -> bool:
        state = self.state
        president = self.room.president
        president_id = president.id if president else None
        chancellor = self.room.get_player(state.chancellor_candidate_id)

        if self.is_staff:
            team = self.team_ids()
            if president_id in team and state.chancellor_candidate_id in team:
                return self.chance(STAFF_YES_BOTH_TEAMMATES)
            if (
                chancellor is not None
                and chancellor.role == ROLE_BUTLER
                and state.staff_tally >= BUTLER_CHANCELLOR_THRESHOLD
            ):
                return self.chance(STAFF_YES_BUTLER_CAN_WIN)
            if president_id in team or state.chancellor_candidate_id in team:
                return self.chance(STAFF_YES_ONE_TEAMMATE)
            return self.chance(STAFF_YES_BASELINE)

        if state.election_tracker >= CHAOS_THRESHOLD - 1:
            return self.chance(GUEST_YES_TRACKER_HIGH)
        if state.staff_tally >= 4:
            return self.chance(GUEST_YES_STAFF_FOUR)
        if state.staff_tally >= 3:
            return self.chance(GUEST_YES_STAFF_THREE)
        return self.chance(GUEST_YES_BASELINE)

    def choose_chancellor_nominee(self) -> Optional[str]:
        candidates = eligible_chancellor_candidates(self.room)
        if not candidates:
            return None

        if not self.is_staff:
            return self._least_suspicious(candidates).id

        team = self.team_ids()
        team_candidates = [c for c in candidates if c.id in team]
        butler = next((c for c in team_candidates if c.role == ROLE_BUTLER), None)

        if butler and self.state.staff_tally >= BUTLER_CHANCELLOR_THRESHOLD and self.chance(STAFF_NOMINATE_BUTLER):
            return butler.id
        if team_candidates and self.chance(STAFF_NOMINATE_TEAMMATE):
            return self.pick(team_candidates).id

        outsiders = [c for c in candidates if c.id not in team]
        if outsiders and self.chance(STAFF_NOMINATE_OUTSIDER):
            return self.pick(outsiders).id
        return self.pick(candidates).id

    def _indices_of(self, cards: List[str], policy: str) -> List[int]:
        indices = [i for i, card in enumerate(cards) if card == policy]
        self.rng.shuffle(indices)
        return indices

    def choose_president_handoff(self, cards: List[str]) -> List[int]:
        """Pick which two of the three drawn cards go to the chancellor."""
        favoured = self._indices_of(cards, self.favoured_policy)
        other_policy = POLICY_GUEST if self.favoured_policy == POLICY_STAFF else POLICY_STAFF
        others = self._indices_of(cards, other_policy)

        if self.is_staff:
            if len(favoured) >= 2:
                if others and not self.chance(STAFF_KEEP_TWO_STAFF):
                    return sorted([favoured[0], others[0]])
                return sorted(favoured[:2])
            if favoured and others:
                return sorted([favoured[0], others[0]])
            return sorted((favoured + others)[:2])

        # Guests always pass on as many guest cards as they hold
        return sorted((favoured + others)[:2])

    def choose_chancellor_enactment(self, cards: List[str]) -> int:
        favoured = self._indices_of(cards, self.favoured_policy)
        if not favoured:
            return self.rng.randrange(len(cards))
        if not self.is_staff or len(favoured) == len(cards):
            return favoured[0]

        staff_tally = self.state.staff_tally
        if staff_tally >= 4:
            probability = STAFF_ENACT_LATE
        elif staff_tally <= 1:
            probability = STAFF_ENACT_EARLY
        else:
            probability = STAFF_ENACT_MID
        if self.chance(probability):
            return favoured[0]
        return next(i for i in range(len(cards)) if i not in favoured)

    def choose_investigation_target(self) -> Optional[str]:
        targets = self.other_alive_players()
        if self.room.rules.investigation_no_repeat:
            targets = [t for t in targets if t.id not in self.state.investigated_players]
        if not targets:
            return None

        if self.is_staff:
            team = self.team_ids()
            team_targets = [t for t in targets if t.id in team]
            if team_targets and self.chance(STAFF_INVESTIGATE_TEAMMATE):
                return self.pick(team_targets).id
            guests = [t for t in targets if t.role == ROLE_GUEST]
            if guests:
                return self.pick(guests).id

        return self.pick(targets).id

    def choose_special_election_target(self) -> Optional[str]:
        targets = self.other_alive_players()
        if not targets:
            return None

        if self.is_staff:
            team = self.team_ids()
            team_targets = [t for t in targets if t.id in team]
            if team_targets and self.chance(STAFF_SPECIAL_ELECT_TEAMMATE):
                return self.pick(team_targets).id

        return self.pick(targets).id

    def choose_execution_target(self) -> Optional[str]:
        targets = self.other_alive_players()
        if not targets:
            return None
        if not self.is_staff:
            return self.pick(targets).id

        # The Butler is never a staff bot's target
        safe = [t for t in targets if t.role != ROLE_BUTLER]
        if not safe:
            return None
        team = self.team_ids()
        guests = [t for t in safe if t.role == ROLE_GUEST]
        if guests and self.chance(STAFF_EXECUTE_GUEST):
            return self.pick(guests).id
        outsiders = [t for t in safe if t.id not in team]
        if outsiders:
            return self.pick(outsiders).id
        return self.pick(safe).id

    def should_request_veto(self, cards: List[str]) -> bool:
        if not self.can_request_veto():
            return False
        if self.favoured_policy in cards:
            return self.chance(VETO_WITH_GOOD_CARD)
        return self.chance(VETO_WITHOUT_GOOD_CARD)

    def should_accept_veto(self) -> bool:
        if self.favoured_policy in self.state.pending_policies:
            return self.chance(ACCEPT_VETO_WITH_GOOD_CARD)
        return self.chance(ACCEPT_VETO_WITHOUT_GOOD_CARD)
