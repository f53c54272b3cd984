"""
Core Module
===========

Configuration, exceptions and security helpers for the video orchestrator.
"""

from .config import (
    Config,
    PlannerConfig,
    ProviderTierConfig,
    FallbackConfig,
    PublishingConfig,
    ScriptConfig,
    OutputConfig,
    get_config,
    set_config,
    reset_config,
)
from .exceptions import (
    VideoOrchestratorError,
    ConfigurationError,
    ValidationError,
    InvalidDurationError,
    ProviderError,
    ProviderRejectedError,
    ProviderUnavailableError,
    PublishError,
)
from .security import sanitize_filename, sanitize_prompt, redact_api_key

__all__ = [
    # Configuration
    "Config",
    "PlannerConfig",
    "ProviderTierConfig",
    "FallbackConfig",
    "PublishingConfig",
    "ScriptConfig",
    "OutputConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "VideoOrchestratorError",
    "ConfigurationError",
    "ValidationError",
    "InvalidDurationError",
    "ProviderError",
    "ProviderRejectedError",
    "ProviderUnavailableError",
    "PublishError",
    # Security
    "sanitize_filename",
    "sanitize_prompt",
    "redact_api_key",
]
