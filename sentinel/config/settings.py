"""
Sentinel Settings

Pydantic models for risk policy, execution defaults, source timeouts,
activity log capacity and logging, loaded from YAML with environment
overrides.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILE = Path(__file__).parent / "sentinel.yaml"

# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "SENTINEL_LOG_LEVEL": ("logging", "level"),
    "SENTINEL_LOG_JSON": ("logging", "json_format"),
    "SENTINEL_INITIAL_CASH": ("execution", "initial_cash"),
    "SENTINEL_FETCH_TIMEOUT": ("sources", "fetch_timeout_seconds"),
    "SENTINEL_SIMULATION_SEED": ("sources", "simulation_seed"),
}


# =============================================================================
# Settings Sections
# =============================================================================


class RiskSettings(BaseModel):
    """Risk score policy. The step sizes are heuristics, not a risk model."""

    default_score: float = Field(default=50.0, ge=0, le=100, description="Risk score seeded on open")
    loss_step: float = Field(default=5.0, ge=0, description="Added when a price update leaves PnL negative")
    gain_step: float = Field(default=2.0, ge=0, description="Subtracted when a price update leaves PnL non-negative")
    refresh_floor: float = Field(default=10.0, ge=0, le=100, description="Floor applied on the price refresh path")
    floor: float = Field(default=0.0, ge=0, le=100, description="General floor")
    ceiling: float = Field(default=100.0, ge=0, le=100, description="General ceiling")
    simulated_move_threshold: float = Field(default=0.05, gt=0, description="Move from entry that raises simulated risk")
    simulated_calm_threshold: float = Field(default=0.01, gt=0, description="Move from entry that lowers simulated risk")
    simulated_move_step: float = Field(default=2.0, ge=0)
    simulated_calm_step: float = Field(default=1.0, ge=0)


class ExecutionSettings(BaseModel):
    """Execution engine defaults."""

    initial_cash: float = Field(default=0.0, ge=0, description="Cash the book starts with")
    reduce_fraction: float = Field(default=0.5, gt=0, le=1, description="Share of holding sold by REDUCE without a suggestion")
    default_buy_quantity: int = Field(default=10, gt=0, description="Shares bought by BUY_DIP/REALLOCATE without a suggestion")


class SourceSettings(BaseModel):
    """External price and analysis source settings."""

    fetch_timeout_seconds: float = Field(default=30.0, gt=0, le=600, description="Timeout for one fetch")
    simulation_seed: Optional[int] = Field(default=None, description="Seed for the simulated price source")
    global_trend_bias: float = Field(default=0.0, ge=-100, le=100, description="Drift applied by the simulator")
    min_simulated_price: float = Field(default=0.01, gt=0)


class ActivityLogSettings(BaseModel):
    """Activity log settings."""

    capacity: int = Field(default=50, ge=1, le=10000, description="Entries kept before the oldest is dropped")


class LoggingSettings(BaseModel):
    """Process logging settings."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    json_format: bool = Field(default=False)
    service_name: str = Field(default="sentinel")
    environment: str = Field(default="development")
    log_file: Optional[str] = Field(default=None)


class SentinelSettings(BaseModel):
    """Complete Sentinel settings."""

    risk: RiskSettings = Field(default_factory=RiskSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    sources: SourceSettings = Field(default_factory=SourceSettings)
    activity_log: ActivityLogSettings = Field(default_factory=ActivityLogSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Loading
# =============================================================================


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s. Using defaults.", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config %s is not a mapping. Using defaults.", path)
        return {}
    return data


def _apply_env_overrides(data: Dict[str, Any], environ: Dict[str, str]) -> Dict[str, Any]:
    for var, (section, field) in ENV_OVERRIDES.items():
        if var in environ:
            data.setdefault(section, {})[field] = environ[var]
            logger.debug("Config override from %s", var)
    return data


def load_settings(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> SentinelSettings:
    """
    Load settings from YAML, then apply SENTINEL_* environment overrides.

    Args:
        path: YAML file; defaults to the sentinel.yaml shipped with the package
        environ: Environment mapping, os.environ by default

    Returns:
        Validated SentinelSettings
    """
    config_path = Path(path) if path is not None else CONFIG_FILE
    data: Dict[str, Any] = {}
    if config_path.exists():
        data = _read_yaml(config_path)
        logger.info("Loaded settings from %s", config_path)
    elif path is not None:
        logger.warning("Config file %s not found. Using defaults.", config_path)

    data = _apply_env_overrides(data, dict(os.environ if environ is None else environ))
    return SentinelSettings(**data)


__all__ = [
    "RiskSettings",
    "ExecutionSettings",
    "SourceSettings",
    "ActivityLogSettings",
    "LoggingSettings",
    "SentinelSettings",
    "load_settings",
]
