from __future__ import annotations

import os
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field


class ResolverConfig(BaseModel):
    """Thresholds and limits for semantic entity resolution."""

    fuzzy_threshold: float = 0.6
    max_matches: int = 5
    disambiguation_threshold: float = 0.8
    learning_enabled: bool = True
    max_learning_queries: int = 1000
    max_selections_per_query: int = 10
    learning_window_days: float = 7.0


class RecoveryConfig(BaseModel):
    """Retry and guidance settings for the recovery controller."""

    max_retries: int = 3
    base_delay: float = Field(default=1.0, description="Seconds before the first retry")
    max_delay: float = Field(default=10.0, description="Upper bound for a single delay")
    retryable_status_codes: List[int] = Field(
        default_factory=lambda: [429, 500, 502, 503, 504]
    )
    enable_user_guidance: bool = True
    contextual_suggestions: bool = True


class FallbackConfig(BaseModel):
    """Settings for reduced-scope fallback attempts."""

    enable_simplified_operations: bool = True
    cache_ttl: float = Field(default=300.0, description="Read cache lifetime in seconds")
    cache_capacity: int = 256
    essential_fields: List[str] = Field(
        default_factory=lambda: ["name", "workspace", "projects", "project"]
    )
    minimal_read_fields: List[str] = Field(default_factory=lambda: ["name", "gid"])


class EngineConfig(BaseModel):
    """Scheduling limits for the workflow engine."""

    max_step_attempts: int = 3
    pass_multiplier: int = 2
    suggestion_threshold: float = 0.2
    max_suggestions: int = 3


class TaskpilotConfig(BaseModel):
    """Top-level configuration model."""

    resolver: ResolverConfig = ResolverConfig()
    recovery: RecoveryConfig = RecoveryConfig()
    fallback: FallbackConfig = FallbackConfig()
    engine: EngineConfig = EngineConfig()
    catalog_path: Optional[str] = None


def load_config(path: Optional[str] = None) -> TaskpilotConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to TASKPILOT_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("TASKPILOT_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = TaskpilotConfig(**data)
    else:
        config = TaskpilotConfig()

    env_retries = os.getenv("TASKPILOT_MAX_RETRIES")
    if env_retries:
        config.recovery.max_retries = int(env_retries)
    env_delay = os.getenv("TASKPILOT_BASE_DELAY")
    if env_delay:
        config.recovery.base_delay = float(env_delay)
    env_catalog = os.getenv("TASKPILOT_CATALOG")
    if env_catalog:
        config.catalog_path = env_catalog
    return config
