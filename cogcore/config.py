"""
CogCore — Configuration System

All configuration is Pydantic-validated and loaded from:
1. default.yaml (defaults)
2. Environment variables (overrides)

Every tunable threshold, rate and retention probability lives here rather
than as a module constant, so independent engines can run side by side
with different tuning.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ─── Sub-configs ──────────────────────────────────────────────────


class ValuePolicy(enum.StrEnum):
    """What to do with an attention or truth component outside its bounds."""

    CLAMP = "clamp"
    REJECT = "reject"


class AtomSpaceConfig(BaseModel):
    value_policy: ValuePolicy = ValuePolicy.CLAMP


class AttentionConfig(BaseModel):
    # Bank capacity. Total STI held by atoms plus the bank pool never exceeds it.
    sti_funds: float = 10_000.0
    # Finite stand-in for an unbounded negative STI
    min_sti: float = -10_000.0
    max_lti: float = 10_000.0
    min_vlti: float = 0.0
    max_vlti: float = 1.0

    # Attentional focus
    focus_threshold: float = 10.0
    focus_size: int = 20

    # Spreading activation
    spread_decay: float = Field(default=0.5, gt=0.0, lt=1.0)
    spread_max_hops: int = Field(default=3, ge=0)
    spread_epsilon: float = Field(default=0.01, gt=0.0)
    # ecan_cycle spreads this fraction of each focused atom's STI
    spread_fraction: float = Field(default=0.1, ge=0.0, le=1.0)

    # Economy
    rent_rate: float = Field(default=0.01, ge=0.0, le=1.0)
    lti_decay_rate: float = Field(default=0.01, ge=0.0, le=1.0)
    forgetting_threshold: float = 1.0

    event_history_size: int = 1_000

    @property
    def max_sti(self) -> float:
        return self.sti_funds

    @model_validator(mode="after")
    def _check_ranges(self) -> AttentionConfig:
        if self.min_sti > self.sti_funds:
            raise ValueError("min_sti must not exceed sti_funds")
        if self.min_vlti > self.max_vlti:
            raise ValueError("min_vlti must not exceed max_vlti")
        return self


class SchedulerConfig(BaseModel):
    # Effective priority = urgency·w_u + norm(STI)·w_s + norm(age)·w_a
    urgency_weight: float = 0.5
    sti_weight: float = 0.3
    age_weight: float = 0.2
    sti_scale: float = Field(default=100.0, gt=0.0)
    age_horizon_s: float = Field(default=60.0, gt=0.0)
    max_concurrent: int = Field(default=4, ge=1)


class GoalsConfig(BaseModel):
    # Knowledge-gap discovery
    connectivity_threshold: int = 2
    mastery_threshold: float = 0.6
    # Performance optimisation
    success_rate_threshold: float = 0.7
    # Curiosity
    high_attention_threshold: float = 0.5
    # Sampling (bounds the quadratic pair blow-up in creative synthesis)
    creative_retention: float = Field(default=0.2, ge=0.0, le=1.0)
    curiosity_retention: float = Field(default=0.3, ge=0.0, le=1.0)

    max_active_goals: int = Field(default=8, ge=1)
    seed: int | None = None
    cycle_interval_s: float = Field(default=30.0, gt=0.0)

    default_capabilities: list[str] = Field(
        default_factory=lambda: [
            "pattern-recognition",
            "memory-management",
            "attention-allocation",
            "reasoning",
        ]
    )
    default_domains: dict[str, float] = Field(
        default_factory=lambda: {
            "logic": 0.7,
            "mathematics": 0.5,
            "learning": 0.6,
            "cognition": 0.8,
        }
    )


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"
    # Capped at WARNING regardless of level
    quiet_loggers: list[str] = Field(default_factory=lambda: ["asyncio"])


# ─── Root Configuration ──────────────────────────────────────────


class CogCoreConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="COGCORE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    instance_id: str = "cogcore-default"

    atomspace: AtomSpaceConfig = Field(default_factory=AtomSpaceConfig)
    attention: AttentionConfig = Field(default_factory=AttentionConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    goals: GoalsConfig = Field(default_factory=GoalsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> CogCoreConfig:
    """
    Load configuration from YAML file, then apply explicit overrides.

    Environment variables (COGCORE_SECTION__KEY) are applied by
    pydantic-settings for any key not given in the file or overrides.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    if overrides:
        raw = _deep_merge(raw, overrides)

    return CogCoreConfig(**raw)
