"""Tests for the provider registry"""

import pytest

from video_orchestrator.api import (
    ProviderTier,
    build_priority_lists,
    describe_providers,
    get_provider,
    list_providers,
)
from video_orchestrator.api.fal import FalVideoProvider, LongCatProvider
from video_orchestrator.api.google import GoogleVeoProvider
from video_orchestrator.api.heygen import HeyGenProvider
from video_orchestrator.core.config import Config, FallbackConfig, ProviderTierConfig
from video_orchestrator.core.exceptions import ConfigurationError


def test_registered_providers():
    assert set(list_providers()) >= {"veo", "fal", "longcat", "heygen"}
    assert set(list_providers(ProviderTier.SHORT_FORM)) == {"veo", "fal"}
    assert list_providers(ProviderTier.EXTENDED_DURATION) == ["longcat"]
    assert list_providers(ProviderTier.AVATAR) == ["heygen"]


@pytest.mark.parametrize("name,cls", [
    ("veo", GoogleVeoProvider),
    ("FAL", FalVideoProvider),
    ("longcat", LongCatProvider),
    ("heygen", HeyGenProvider),
])
def test_get_provider(name, cls):
    provider = get_provider(name, config=ProviderTierConfig(api_key="k"))

    assert isinstance(provider, cls)
    assert provider.name == name.lower()
    assert provider.is_configured


def test_unknown_provider():
    with pytest.raises(ConfigurationError) as exc_info:
        get_provider("runway")
    assert "veo" in exc_info.value.details["available"]


def test_provider_budget_from_config(monkeypatch):
    monkeypatch.setenv("HEYGEN_API_KEY", "hg-key")

    provider = get_provider("heygen")

    assert provider.api_key == "hg-key"
    assert provider.poll_interval == 5.0
    assert provider.max_poll_attempts == 60


def test_build_priority_lists_shares_instances():
    config = Config(fallback=FallbackConfig(short_form=["fal", "veo"], extended_duration=["longcat"]))

    lists = build_priority_lists(config)

    assert [p.name for p in lists[ProviderTier.SHORT_FORM]] == ["fal", "veo"]
    assert [p.name for p in lists[ProviderTier.EXTENDED_DURATION]] == ["longcat"]
    assert [p.name for p in lists[ProviderTier.AVATAR]] == ["heygen"]


def test_build_priority_lists_reuses_duplicate_names():
    config = Config(fallback=FallbackConfig(short_form=["veo", "veo"]))

    lists = build_priority_lists(config)

    first, second = lists[ProviderTier.SHORT_FORM]
    assert first is second


def test_tier_mismatch_rejected():
    config = Config(fallback=FallbackConfig(short_form=["longcat"]))

    with pytest.raises(ConfigurationError):
        build_priority_lists(config)


def test_describe_providers():
    lists = build_priority_lists(Config())

    info = describe_providers(lists)

    veo = info["short_form"][0]
    assert veo["name"] == "veo"
    assert veo["supports_scene_extension"] is True
    assert info["extended_duration"][0]["max_duration"] == 900
