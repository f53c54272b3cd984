"""
Configuration System
====================

Centralized, validated configuration management with typed dataclasses.

Every provider tier gets an explicit ``ProviderTierConfig`` (credentials,
endpoint, model and polling budget). The whole tree is loaded once at
startup and injected into the orchestrator; nothing below it reads the
environment mid-call.
"""

import os
import re
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class PlannerConfig:
    """Scene planning constants for the chained short-form tier."""

    base_clip_seconds: int = 8
    extension_clip_seconds: int = 7
    max_extensions: int = 20
    words_per_second: float = 2.2
    # Extended-duration tier upper bound
    max_duration_seconds: int = 900

    def __post_init__(self):
        self.validate()

    @property
    def short_form_ceiling(self) -> int:
        """Longest duration the chained tier can cover (8 + 20 * 7 = 148)."""
        return self.base_clip_seconds + self.max_extensions * self.extension_clip_seconds

    def validate(self) -> None:
        """Validate configuration values."""
        if self.base_clip_seconds < 1 or self.extension_clip_seconds < 1:
            raise ConfigurationError(
                "Clip lengths must be at least 1 second",
                config_key="planner.base_clip_seconds",
            )
        if not 0 <= self.max_extensions <= 50:
            raise ConfigurationError(
                f"max_extensions must be 0-50, got {self.max_extensions}",
                config_key="planner.max_extensions",
            )
        if self.words_per_second <= 0:
            raise ConfigurationError(
                f"words_per_second must be positive, got {self.words_per_second}",
                config_key="planner.words_per_second",
            )
        if self.max_duration_seconds < self.short_form_ceiling:
            raise ConfigurationError(
                f"max_duration_seconds ({self.max_duration_seconds}) is below "
                f"the short-form ceiling ({self.short_form_ceiling})",
                config_key="planner.max_duration_seconds",
            )


@dataclass
class ProviderTierConfig:
    """Credentials, endpoint and polling budget for one provider client."""

    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    timeout: int = 120
    poll_interval: float = 10.0
    max_poll_attempts: int = 60
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if self.poll_interval <= 0:
            raise ConfigurationError(
                f"poll_interval must be positive, got {self.poll_interval}",
                config_key="providers.poll_interval",
            )
        if self.max_poll_attempts < 1:
            raise ConfigurationError(
                f"max_poll_attempts must be >= 1, got {self.max_poll_attempts}",
                config_key="providers.max_poll_attempts",
            )
        if self.timeout < 1:
            raise ConfigurationError(
                f"timeout must be >= 1, got {self.timeout}",
                config_key="providers.timeout",
            )

    def resolve_api_key(self) -> Optional[str]:
        """Explicit key wins; otherwise read the configured env var once."""
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.getenv(self.api_key_env)
        return None


# Per-provider defaults. Short-form: 10s x 60 (~10 min), avatar: 5s x 60 (~5 min).
DEFAULT_PROVIDER_SETTINGS: Dict[str, Dict[str, Any]] = {
    "veo": {
        "api_key_env": "GEMINI_API_KEY",
        "model": "veo-3.1-generate-preview",
        "poll_interval": 10.0,
        "max_poll_attempts": 60,
    },
    "fal": {
        "api_key_env": "FAL_KEY",
        "model": "fal-ai/veo3.1/fast",
        "poll_interval": 10.0,
        "max_poll_attempts": 60,
    },
    "longcat": {
        "api_key_env": "FAL_KEY",
        "model": "fal-ai/longcat-video/text-to-video/720p",
        "poll_interval": 15.0,
        "max_poll_attempts": 120,
    },
    "heygen": {
        "api_key_env": "HEYGEN_API_KEY",
        "poll_interval": 5.0,
        "max_poll_attempts": 60,
    },
}


@dataclass
class FallbackConfig:
    """Provider priority lists per tier, tried strictly in order."""

    short_form: List[str] = field(default_factory=lambda: ["veo", "fal"])
    extended_duration: List[str] = field(default_factory=lambda: ["longcat"])
    avatar: List[str] = field(default_factory=lambda: ["heygen"])

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Every tier needs at least one provider."""
        for name in ("short_form", "extended_duration", "avatar"):
            if not getattr(self, name):
                raise ConfigurationError(
                    f"Fallback list for {name} is empty",
                    config_key=f"fallback.{name}",
                )


@dataclass
class PublishingConfig:
    """Asset hosting (Cloudinary) settings."""

    enabled: bool = True
    cloudinary_url: Optional[str] = None
    cloudinary_url_env: str = "CLOUDINARY_URL"
    folder: str = "social-media"
    timeout: int = 300

    def resolve_url(self) -> Optional[str]:
        """Explicit URL wins; otherwise read the configured env var once."""
        return self.cloudinary_url or os.getenv(self.cloudinary_url_env)


@dataclass
class ScriptConfig:
    """Text-generation collaborator (Groq chat completions) settings."""

    api_key: Optional[str] = None
    api_key_env: str = "GROQ_API_KEY"
    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "llama-3.3-70b-versatile"
    words_per_second_min: float = 1.8
    words_per_second_target: float = 2.2
    words_per_second_max: float = 2.6
    temperature: float = 0.6
    timeout: int = 60

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Word-rate bounds must be ordered."""
        if not (0 < self.words_per_second_min <= self.words_per_second_target <= self.words_per_second_max):
            raise ConfigurationError(
                "words_per_second bounds must satisfy 0 < min <= target <= max",
                config_key="script.words_per_second_target",
            )

    def resolve_api_key(self) -> Optional[str]:
        return self.api_key or os.getenv(self.api_key_env)


@dataclass
class OutputConfig:
    """Output and storage settings."""

    base_path: str = "./output"
    download_final: bool = True
    save_manifest: bool = True


# =============================================================================
# Main Configuration Class
# =============================================================================


@dataclass
class Config:
    """
    Main configuration container with validation and loading.

    Provides:
    - Type-safe access to configuration values
    - Validation on load
    - Environment variable interpolation (``${VAR}`` / ``${VAR:-default}``)
    - Sensible defaults for all values
    """

    planner: PlannerConfig = field(default_factory=PlannerConfig)
    providers: Dict[str, ProviderTierConfig] = field(default_factory=dict)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    publishing: PublishingConfig = field(default_factory=PublishingConfig)
    script: ScriptConfig = field(default_factory=ScriptConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    _raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        # Fill in any provider the caller did not configure
        for name, defaults in DEFAULT_PROVIDER_SETTINGS.items():
            if name not in self.providers:
                self.providers[name] = ProviderTierConfig(**defaults)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from file with environment variable interpolation.

        Args:
            path: Path to YAML config file (defaults.yaml)

        Returns:
            Validated Config instance
        """
        search_paths = [
            Path("./config/defaults.yaml"),
            Path("./defaults.yaml"),
            Path.home() / ".video-orchestrator" / "config.yaml",
        ]

        if path:
            search_paths.insert(0, Path(path))

        config_data = {}

        for search_path in search_paths:
            if search_path.exists():
                logger.info(f"Loading config from: {search_path}")
                try:
                    with open(search_path, "r") as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Invalid YAML in config file: {e}",
                        config_key=str(search_path),
                    )
        else:
            logger.info("No config file found, using defaults")

        config_data = cls._interpolate_env_vars(config_data)

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary with validation."""
        try:
            providers = {}
            for name, settings in (data.get("providers") or {}).items():
                merged = {**DEFAULT_PROVIDER_SETTINGS.get(name, {}), **(settings or {})}
                providers[name] = ProviderTierConfig(**merged)

            return cls(
                planner=PlannerConfig(**data.get("planner", {})),
                providers=providers,
                fallback=FallbackConfig(**data.get("fallback", {})),
                publishing=PublishingConfig(**data.get("publishing", {})),
                script=ScriptConfig(**data.get("script", {})),
                output=OutputConfig(**data.get("output", {})),
                _raw=data,
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @staticmethod
    def _interpolate_env_vars(data: Any) -> Any:
        """Recursively interpolate ${VAR} patterns with environment variables."""
        if isinstance(data, str):
            pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

            def replace(match):
                var_name = match.group(1)
                default = match.group(2) or ""
                return os.environ.get(var_name, default)

            interpolated = re.sub(pattern, replace, data)
            # An unset variable with no default means "not configured"
            return interpolated if interpolated != "" or data == "" else None
        elif isinstance(data, dict):
            return {k: Config._interpolate_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [Config._interpolate_env_vars(item) for item in data]
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (credentials omitted)."""
        result = {}
        for section in ["planner", "fallback", "publishing", "script", "output"]:
            result[section] = asdict(getattr(self, section))
        result["providers"] = {
            name: {k: v for k, v in asdict(cfg).items() if k != "api_key"}
            for name, cfg in self.providers.items()
        }
        result["publishing"].pop("cloudinary_url", None)
        result["script"].pop("api_key", None)
        return result

    def get_provider_config(self, provider: str) -> ProviderTierConfig:
        """Get provider-specific configuration."""
        if provider not in self.providers:
            raise ConfigurationError(
                f"No configuration for provider: {provider}",
                config_key=f"providers.{provider}",
            )
        return self.providers[provider]


# =============================================================================
# Convenience Functions
# =============================================================================


_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance (lazily loaded)."""
    global _global_config
    if _global_config is None:
        _global_config = Config.load()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset global configuration to None (forces reload on next access)."""
    global _global_config
    _global_config = None
