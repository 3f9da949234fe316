"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .orchestration import OrchestrationConfig, get_orchestration_config
from .store import StoreConfig, get_store_config
from .tutorial import TutorialConfig, get_tutorial_config

__all__ = [
    "ConfigurationError",
    "MissingConfigurationError",
    "OrchestrationConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StoreConfig",
    "TutorialConfig",
    "configure_logging",
    "get_orchestration_config",
    "get_store_config",
    "get_tutorial_config",
    "require_env_var",
    "require_env_vars",
]
