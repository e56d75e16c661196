"""
Game rule configuration and validation.
"""

import os
from typing import Dict

from pydantic import BaseModel, Field, field_validator

from .constants import (
    MAX_PLAYERS,
    MIN_PLAYERS,
    PHASE_CHAOS,
    PHASE_EXECUTION_RESULT,
    PHASE_POLICY_RESULT,
    PHASE_VOTE_RESULT,
    ROLE_CONFIGURATIONS,
)


class RuleConfig(BaseModel):
    """Configuration for game rules and pacing."""

    veto_enabled: bool = Field(
        default=True,
        description="Whether the chancellor may request a veto once the veto threshold is reached"
    )
    investigation_no_repeat: bool = Field(
        default=True,
        description="Whether a player may be investigated at most once per game"
    )
    min_players: int = Field(
        default=MIN_PLAYERS,
        ge=MIN_PLAYERS,
        le=MAX_PLAYERS,
        description="Minimum seats after filling with agents"
    )
    max_players: int = Field(
        default=MAX_PLAYERS,
        ge=MIN_PLAYERS,
        le=MAX_PLAYERS,
        description="Maximum seats in a room"
    )
    agent_delay_min: float = Field(
        default=1.5,
        ge=0,
        description="Lower bound of the agent thinking delay in seconds"
    )
    agent_delay_max: float = Field(
        default=3.5,
        ge=0,
        description="Upper bound of the agent thinking delay in seconds"
    )
    vote_stagger: float = Field(
        default=0.5,
        ge=0,
        description="Extra delay added per agent voter so votes trickle in"
    )
    vote_result_pause: float = Field(default=5.0, ge=0)
    policy_result_pause: float = Field(default=2.5, ge=0)
    chaos_pause: float = Field(default=2.5, ge=0)
    execution_result_pause: float = Field(default=2.5, ge=0)

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't go below minimum."""
        min_players = info.data.get('min_players', MIN_PLAYERS)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    @field_validator('agent_delay_max')
    @classmethod
    def validate_agent_delay(cls, v, info):
        delay_min = info.data.get('agent_delay_min', 0)
        if v < delay_min:
            raise ValueError(f'agent_delay_max ({v}) must be >= agent_delay_min ({delay_min})')
        return v

    def validate_player_count(self, player_count: int) -> bool:
        """Check if a player count has a role configuration and fits the bounds."""
        return (
            self.min_players <= player_count <= self.max_players
            and player_count in ROLE_CONFIGURATIONS
        )

    def get_role_distribution(self, player_count: int) -> Dict[str, int]:
        """Get role counts for a player count."""
        if player_count not in ROLE_CONFIGURATIONS:
            raise ValueError(f"Unsupported player count: {player_count}")
        return dict(ROLE_CONFIGURATIONS[player_count])

    def continue_pause(self, phase: str) -> float:
        """Display pause before a continue-style phase auto-advances."""
        pauses = {
            PHASE_VOTE_RESULT: self.vote_result_pause,
            PHASE_POLICY_RESULT: self.policy_result_pause,
            PHASE_CHAOS: self.chaos_pause,
            PHASE_EXECUTION_RESULT: self.execution_result_pause,
        }
        return pauses[phase]


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


def rules_from_env() -> RuleConfig:
    """Build the server's rule configuration from BUTLER_* environment variables."""
    overrides = {
        "veto_enabled": _env_flag("BUTLER_VETO_ENABLED", default_rules.veto_enabled),
        "investigation_no_repeat": _env_flag(
            "BUTLER_INVESTIGATION_NO_REPEAT", default_rules.investigation_no_repeat
        ),
    }
    if os.getenv("BUTLER_AGENT_DELAY_MIN"):
        overrides["agent_delay_min"] = float(os.environ["BUTLER_AGENT_DELAY_MIN"])
    if os.getenv("BUTLER_AGENT_DELAY_MAX"):
        overrides["agent_delay_max"] = float(os.environ["BUTLER_AGENT_DELAY_MAX"])
    return create_rules(**overrides)
