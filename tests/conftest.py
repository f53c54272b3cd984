"""Shared pytest fixtures"""

import pytest

from video_orchestrator.api.base import ProviderTier
from video_orchestrator.core.config import Config, OutputConfig, PublishingConfig, reset_config
from video_orchestrator.workflow.models import GenerationRequest, VideoMode
from video_orchestrator.workflow.planner import ScenePlanner

from tests.mocks.providers import FakeProvider


# ============================================================
# Environment
# ============================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real credentials out of every test"""
    for var in (
        "GEMINI_API_KEY",
        "FAL_KEY",
        "HEYGEN_API_KEY",
        "GROQ_API_KEY",
        "CLOUDINARY_URL",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


# ============================================================
# Configuration
# ============================================================

@pytest.fixture
def config(tmp_path):
    """Config writing to a temp dir, publishing off"""
    return Config(
        publishing=PublishingConfig(enabled=False),
        output=OutputConfig(base_path=str(tmp_path / "output")),
    )


@pytest.fixture
def planner():
    return ScenePlanner()


# ============================================================
# Requests
# ============================================================

@pytest.fixture
def faceless_request():
    """22s faceless request: base + 2 extensions"""
    return GenerationRequest(
        mode=VideoMode.FACELESS,
        target_duration_seconds=22,
        base_prompt_or_script="Animated charts explaining compound interest",
    )


@pytest.fixture
def avatar_request():
    return GenerationRequest(
        mode=VideoMode.AVATAR,
        target_duration_seconds=22,
        base_prompt_or_script=" ".join(f"w{i}" for i in range(1, 61)),
    )


# ============================================================
# Providers
# ============================================================

@pytest.fixture
def provider_lists():
    """One fake provider per tier, all succeeding immediately"""
    return {
        ProviderTier.SHORT_FORM: [FakeProvider(name="primary")],
        ProviderTier.EXTENDED_DURATION: [
            FakeProvider(name="long", tier=ProviderTier.EXTENDED_DURATION)
        ],
        ProviderTier.AVATAR: [FakeProvider(name="avatar", tier=ProviderTier.AVATAR)],
    }

