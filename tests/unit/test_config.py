"""Tests for configuration loading"""

import pytest

from video_orchestrator.core.config import (
    Config,
    FallbackConfig,
    PlannerConfig,
    ProviderTierConfig,
    ScriptConfig,
    get_config,
    set_config,
)
from video_orchestrator.core.exceptions import ConfigurationError


def write_yaml(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))

    config = Config.load()

    assert config.planner.short_form_ceiling == 148
    assert config.planner.max_duration_seconds == 900
    assert config.fallback.short_form == ["veo", "fal"]
    assert set(config.providers) == {"veo", "fal", "longcat", "heygen"}
    assert config.providers["heygen"].poll_interval == 5.0
    assert config.providers["veo"].max_poll_attempts == 60


def test_load_with_env_interpolation(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_FOLDER", "finance-reels")
    path = write_yaml(tmp_path, """
providers:
  veo:
    poll_interval: 2
  heygen:
    extra:
      avatar_id: ${TEST_AVATAR_ID}
publishing:
  folder: ${TEST_FOLDER:-social-media}
output:
  base_path: ${TEST_OUTPUT:-./out}
""")

    config = Config.load(path)

    assert config.publishing.folder == "finance-reels"
    assert config.output.base_path == "./out"
    assert config.providers["heygen"].extra["avatar_id"] is None
    # Partial provider sections keep the remaining defaults
    assert config.providers["veo"].poll_interval == 2
    assert config.providers["veo"].api_key_env == "GEMINI_API_KEY"
    assert config.providers["veo"].max_poll_attempts == 60


def test_invalid_yaml(tmp_path):
    path = write_yaml(tmp_path, "planner: [unclosed")

    with pytest.raises(ConfigurationError):
        Config.load(path)


def test_unknown_key_rejected():
    with pytest.raises(ConfigurationError):
        Config.from_dict({"planner": {"clip_seconds": 5}})


@pytest.mark.parametrize("settings", [
    {"base_clip_seconds": 0},
    {"max_extensions": 51},
    {"words_per_second": 0},
    {"max_duration_seconds": 100},
])
def test_planner_validation(settings):
    with pytest.raises(ConfigurationError):
        PlannerConfig(**settings)


@pytest.mark.parametrize("settings", [
    {"poll_interval": 0},
    {"max_poll_attempts": 0},
    {"timeout": 0},
])
def test_provider_validation(settings):
    with pytest.raises(ConfigurationError):
        ProviderTierConfig(**settings)


def test_empty_fallback_list_rejected():
    with pytest.raises(ConfigurationError):
        FallbackConfig(avatar=[])


def test_script_word_rate_bounds():
    with pytest.raises(ConfigurationError):
        ScriptConfig(words_per_second_min=3.0)


def test_api_key_resolution(monkeypatch):
    monkeypatch.setenv("FAL_KEY", "from-env")

    assert ProviderTierConfig(api_key_env="FAL_KEY").resolve_api_key() == "from-env"
    assert ProviderTierConfig(api_key="explicit", api_key_env="FAL_KEY").resolve_api_key() == "explicit"
    assert ProviderTierConfig().resolve_api_key() is None


def test_to_dict_omits_credentials():
    config = Config.from_dict({
        "providers": {"veo": {"api_key": "secret-key"}},
        "publishing": {"cloudinary_url": "cloudinary://a:b@c"},
        "script": {"api_key": "gsk_secret"},
    })

    data = config.to_dict()

    assert "api_key" not in data["providers"]["veo"]
    assert "cloudinary_url" not in data["publishing"]
    assert "api_key" not in data["script"]
    assert "secret" not in str(data)


def test_get_provider_config():
    config = Config()

    assert config.get_provider_config("longcat").model == "fal-ai/longcat-video/text-to-video/720p"
    with pytest.raises(ConfigurationError):
        config.get_provider_config("runway")


def test_global_config():
    config = Config(planner=PlannerConfig(max_extensions=4))
    set_config(config)

    assert get_config() is config
