"""
Provider Factory
================

Registry and factory for video synthesis provider clients, plus the
tier-ordered priority lists used by the fallback coordinator.
"""

import logging
from typing import Optional, List, Dict, Type, Any

import httpx

from .base import BaseVideoProvider, ProviderTier
from ..core.config import Config, ProviderTierConfig, get_config
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Registry of available providers
_PROVIDERS: Dict[str, Type[BaseVideoProvider]] = {}


def register_provider(name: str):
    """Decorator to register a provider class."""
    def decorator(cls: Type[BaseVideoProvider]):
        cls.name = name.lower()
        _PROVIDERS[name.lower()] = cls
        return cls
    return decorator


def _ensure_loaded() -> None:
    # Importing the modules runs their @register_provider decorators
    from . import google, fal, heygen  # noqa: F401


def get_provider(
    name: str,
    config: Optional[ProviderTierConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseVideoProvider:
    """
    Get a video synthesis provider instance.

    Args:
        name: Provider name ('veo', 'fal', 'longcat', 'heygen')
        config: Provider settings; defaults to the global config entry
        transport: Optional httpx transport

    Returns:
        Configured provider instance

    Raises:
        ConfigurationError: If provider name is not recognized
    """
    _ensure_loaded()
    name_lower = name.lower()

    provider_class = _PROVIDERS.get(name_lower)
    if provider_class is None:
        raise ConfigurationError(
            f"Unknown provider: {name}",
            config_key="fallback",
            details={"available": sorted(_PROVIDERS)},
        )

    if config is None:
        config = get_config().providers.get(name_lower)

    return provider_class(config=config, transport=transport)


def list_providers(tier: Optional[ProviderTier] = None) -> List[str]:
    """
    List registered provider names, optionally restricted to one tier.
    """
    _ensure_loaded()
    return [
        name for name, cls in _PROVIDERS.items()
        if tier is None or cls.tier == tier
    ]


def build_priority_lists(
    config: Optional[Config] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[ProviderTier, List[BaseVideoProvider]]:
    """
    Instantiate the configured fallback lists, one client per provider name.

    Returns:
        Mapping of tier to providers in priority order
    """
    config = config or get_config()
    instances: Dict[str, BaseVideoProvider] = {}

    def resolve(names: List[str], tier: ProviderTier) -> List[BaseVideoProvider]:
        resolved = []
        for provider_name in names:
            if provider_name not in instances:
                instances[provider_name] = get_provider(
                    provider_name,
                    config=config.providers.get(provider_name),
                    transport=transport,
                )
            provider = instances[provider_name]
            if provider.tier != tier:
                raise ConfigurationError(
                    f"Provider '{provider_name}' is a {provider.tier.value} provider, "
                    f"cannot be used for {tier.value}",
                    config_key=f"fallback.{tier.value}",
                )
            resolved.append(provider)
        return resolved

    return {
        ProviderTier.SHORT_FORM: resolve(config.fallback.short_form, ProviderTier.SHORT_FORM),
        ProviderTier.EXTENDED_DURATION: resolve(
            config.fallback.extended_duration, ProviderTier.EXTENDED_DURATION
        ),
        ProviderTier.AVATAR: resolve(config.fallback.avatar, ProviderTier.AVATAR),
    }


def describe_providers(providers: Dict[ProviderTier, List[BaseVideoProvider]]) -> Dict[str, Any]:
    """Capabilities of every provider, grouped by tier."""
    return {
        tier.value: [p.get_capabilities() for p in tier_providers]
        for tier, tier_providers in providers.items()
    }
