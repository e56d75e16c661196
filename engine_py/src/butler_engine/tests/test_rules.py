"""
Tests for rule configuration.
"""

import pytest
from pydantic import ValidationError

from butler_engine.constants import PHASE_CHAOS, PHASE_ELECTION, PHASE_VOTE_RESULT
from butler_engine.rules import RuleConfig, create_rules, default_rules, rules_from_env


def test_defaults():
    assert default_rules.veto_enabled
    assert default_rules.investigation_no_repeat
    assert (default_rules.min_players, default_rules.max_players) == (4, 6)


def test_player_count_validation():
    assert not default_rules.validate_player_count(3)
    assert all(default_rules.validate_player_count(n) for n in (4, 5, 6))
    assert not default_rules.validate_player_count(7)
    assert not create_rules(max_players=5).validate_player_count(6)


def test_role_distribution():
    assert default_rules.get_role_distribution(6) == {"guest": 4, "staff": 1, "butler": 1}
    with pytest.raises(ValueError):
        default_rules.get_role_distribution(8)


def test_bounds_are_validated():
    with pytest.raises(ValidationError):
        RuleConfig(min_players=6, max_players=4)
    with pytest.raises(ValidationError):
        RuleConfig(max_players=9)
    with pytest.raises(ValidationError):
        RuleConfig(agent_delay_min=3, agent_delay_max=1)


def test_continue_pauses():
    rules = create_rules(vote_result_pause=1.25, chaos_pause=0.5)
    assert rules.continue_pause(PHASE_VOTE_RESULT) == 1.25
    assert rules.continue_pause(PHASE_CHAOS) == 0.5
    with pytest.raises(KeyError):
        rules.continue_pause(PHASE_ELECTION)


def test_rules_from_env(monkeypatch):
    monkeypatch.setenv("BUTLER_VETO_ENABLED", "false")
    monkeypatch.setenv("BUTLER_AGENT_DELAY_MIN", "0.1")
    monkeypatch.setenv("BUTLER_AGENT_DELAY_MAX", "0.2")
    monkeypatch.delenv("BUTLER_INVESTIGATION_NO_REPEAT", raising=False)

    rules = rules_from_env()

    assert not rules.veto_enabled
    assert rules.investigation_no_repeat
    assert (rules.agent_delay_min, rules.agent_delay_max) == (0.1, 0.2)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
