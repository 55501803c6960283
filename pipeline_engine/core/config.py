# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Engine Configuration - Single source of truth.
YAML is king. Env vars ONLY for secrets and deployment overrides.

- ALL configuration in plain text (YAML)
- NO hidden state - everything inspectable via `cat`, `grep`
"""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pipeline_engine.core.errors import ConfigurationError


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.
    All values from YAML. No hidden state.
    """

    # -- Service --
    service_host: str = "0.0.0.0"
    service_port: int = 8000

    # -- Paths --
    data_path: str = "./data"
    catalog_path: str = "./data/catalog"
    pipelines_path: str = "./data/pipelines"
    executions_path: str = "./data/executions"
    logs_path: str = "./data/logs"

    # -- HTTP --
    http_timeout: float = 10.0
    http_timeout_long: float = 60.0
    compatibility_api_url: Optional[str] = None
    event_sink_url: Optional[str] = None

    # -- Execution --
    step_timeout: float = 60.0
    pipeline_timeout: float = 300.0
    stale_execution_threshold: float = 600.0

    # -- Composition --
    materialize_threshold: float = 0.5
    fuzzy_max_distance: int = 3
    reference_max_price: int = 1_000_000
    weight_compatibility: float = 0.4
    weight_price: float = 0.3
    weight_reliability: float = 0.3

    # -- Suggestions --
    suggest_cache_ttl: float = 300.0
    suggest_limit: int = 20
    suggest_min_score: float = 0.5

    # -- Auth --
    signature_max_age: int = 300

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def logs_dir(self) -> Path:
        return Path(self.logs_path)

    def get_owner_secret(self) -> Optional[str]:
        """Get owner signature secret from environment"""
        return get_owner_secret()


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_owner_secret() -> Optional[str]:
    """Signing keys cannot be in version control."""
    return os.getenv("PIPELINE_OWNER_SECRET")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = "./configs/pipeline_engine.yaml") -> Config:
    """
    Load configuration from YAML.
    Missing file means defaults; env overrides still apply.
    """
    y = {}
    if Path(path).exists():
        with open(path) as f:
            try:
                y = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML: {e}", config_file=path)

    if not isinstance(y, dict):
        raise ConfigurationError("Top-level config must be a mapping", config_file=path)

    # Navigate nested dicts; only a missing or null key falls back to the default
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict) or k not in d:
                return default
            d = d[k]
        return default if d is None else d

    defaults = Config()
    data_path = get(y, "paths", "data", default=defaults.data_path)

    return Config(
        # Service
        service_host=get(y, "service", "host", default=defaults.service_host),
        service_port=int(os.getenv("PIPELINE_ENGINE_PORT", get(y, "service", "port", default=defaults.service_port))),

        # Paths
        data_path=data_path,
        catalog_path=get(y, "paths", "catalog", default=f"{data_path}/catalog"),
        pipelines_path=get(y, "paths", "pipelines", default=f"{data_path}/pipelines"),
        executions_path=get(y, "paths", "executions", default=f"{data_path}/executions"),
        logs_path=get(y, "paths", "logs", default=f"{data_path}/logs"),

        # HTTP
        http_timeout=get(y, "http", "timeouts", "default", default=defaults.http_timeout),
        http_timeout_long=get(y, "http", "timeouts", "long_running", default=defaults.http_timeout_long),
        compatibility_api_url=os.getenv("COMPATIBILITY_API_URL", get(y, "http", "compatibility_api_url")),
        event_sink_url=os.getenv("EVENT_SINK_URL", get(y, "events", "sink_url")),

        # Execution
        step_timeout=get(y, "execution", "step_timeout", default=defaults.step_timeout),
        pipeline_timeout=get(y, "execution", "pipeline_timeout", default=defaults.pipeline_timeout),
        stale_execution_threshold=get(y, "execution", "stale_threshold", default=defaults.stale_execution_threshold),

        # Composition
        materialize_threshold=get(y, "composition", "materialize_threshold", default=defaults.materialize_threshold),
        fuzzy_max_distance=get(y, "composition", "fuzzy_max_distance", default=defaults.fuzzy_max_distance),
        reference_max_price=get(y, "composition", "reference_max_price", default=defaults.reference_max_price),
        weight_compatibility=get(y, "composition", "weights", "compatibility", default=defaults.weight_compatibility),
        weight_price=get(y, "composition", "weights", "price", default=defaults.weight_price),
        weight_reliability=get(y, "composition", "weights", "reliability", default=defaults.weight_reliability),

        # Suggestions
        suggest_cache_ttl=get(y, "suggestions", "cache_ttl", default=defaults.suggest_cache_ttl),
        suggest_limit=get(y, "suggestions", "limit", default=defaults.suggest_limit),
        suggest_min_score=get(y, "suggestions", "min_score", default=defaults.suggest_min_score),

        # Auth
        signature_max_age=get(y, "auth", "signature_max_age", default=defaults.signature_max_age),

        # Logging
        log_level=os.getenv("LOG_LEVEL", get(y, "logging", "level", default=defaults.log_level)),
        log_format=get(y, "logging", "format", default=defaults.log_format),
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("PIPELINE_ENGINE_CONFIG_PATH", "./configs/pipeline_engine.yaml")
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
