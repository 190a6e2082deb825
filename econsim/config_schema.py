"""Pydantic schema for configuration validation.

All config values are validated at startup. Typos and invalid values
fail fast with clear error messages.

Usage:
    from econsim.config_schema import load_validated_config, AppConfig
    config = load_validated_config("config/config.yaml")
    # config is now a validated AppConfig instance
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# BASE MODEL WITH STRICT VALIDATION
# =============================================================================

class StrictModel(BaseModel):
    """Base model that rejects unknown fields (catches typos)."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# SIMULATION
# =============================================================================

class SimulationConfig(StrictModel):
    """Tick loop settings."""

    seed: int = Field(
        default=0,
        ge=0,
        description="Root seed for every per-agent random stream"
    )
    max_ticks: int = Field(
        default=100,
        gt=0,
        description="Number of ticks run() executes when no limit is passed"
    )
    ticks_per_year: int = Field(
        default=365,
        gt=0,
        description="Ticks in one year; annual interest rates are divided by this"
    )
    parallel_decisions: bool = Field(
        default=True,
        description="Run the Deciding and Acting phases on the worker pool"
    )


class PoolConfig(StrictModel):
    """Worker pool for the Deciding and Acting phases."""

    num_workers: int = Field(default=4, ge=1, description="Worker threads")


# =============================================================================
# DOMAIN
# =============================================================================

class BankingConfig(StrictModel):
    """Banking domain settings."""

    deposit_rate: float = Field(
        default=0.0,
        ge=0,
        description="Annual rate paid on deposit instruments created by Deposit"
    )


# =============================================================================
# LOGGING AND PERSISTENCE
# =============================================================================

class LoggingConfig(StrictModel):
    """Audit log and diagnostics settings."""

    enabled: bool = Field(default=True, description="Write the JSONL audit log")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Level for the econsim logger"
    )
    output_file: str = Field(default="run.jsonl", description="Audit log file name")
    summary_file: str | None = Field(
        default="summary.jsonl",
        description="Per-tick summary file name (null disables summaries)"
    )
    logs_dir: str = Field(default="logs", description="Directory for log files")


class CheckpointConfig(StrictModel):
    """World state checkpoints taken at tick boundaries."""

    checkpoint_file: str = Field(default="checkpoint.json", description="Checkpoint path")
    interval_ticks: int = Field(
        default=0,
        ge=0,
        description="Checkpoint every N ticks (0 disables periodic checkpoints)"
    )


# =============================================================================
# ROOT CONFIG
# =============================================================================

class AppConfig(StrictModel):
    """Root configuration model."""

    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    banking: BankingConfig = Field(default_factory=BankingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    checkpoint: CheckpointConfig = Field(default_factory=CheckpointConfig)


def load_validated_config(config_path: str | Path = "config/config.yaml") -> AppConfig:
    """Load and validate configuration from a YAML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If config is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw_config: Any = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}

    return AppConfig.model_validate(raw_config)


def validate_config_dict(config_dict: dict[str, Any]) -> AppConfig:
    """Validate a config dictionary (e.g. from tests or runtime overrides)."""
    return AppConfig.model_validate(config_dict)
