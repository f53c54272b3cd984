"""
Video Orchestrator
==================

Long-form video synthesis on top of short-clip generation providers.

Features:
- Scene planning: 8 s base clip plus 7 s continuity extensions (up to 148 s),
  a single extended-duration clip above that (up to 15 min)
- Provider fallback in priority order (Google Veo, fal.ai, LongCat, HeyGen)
- Bounded, cancellable job polling
- Cloudinary publishing and JSON manifests

Quick Start:
    from video_orchestrator import VideoOrchestrator, GenerationRequest, VideoMode

    async with VideoOrchestrator() as orchestrator:
        result = await orchestrator.generate(
            GenerationRequest(
                mode=VideoMode.FACELESS,
                target_duration_seconds=22,
                base_prompt_or_script="Animated charts explaining compound interest",
            )
        )
        print(result.status, result.total_duration_seconds, result.hosted_url)
"""

__version__ = "0.3.0"
__author__ = "Video Orchestrator"

# Core Utilities
from .core.config import Config, get_config, set_config
from .core.exceptions import (
    VideoOrchestratorError,
    ConfigurationError,
    ValidationError,
    InvalidDurationError,
    ProviderError,
    ProviderRejectedError,
    ProviderUnavailableError,
    PublishError,
)

# Providers
from .api import (
    BaseVideoProvider,
    ClipConfig,
    JobState,
    ProviderTier,
    StatusResult,
    get_provider,
    list_providers,
)

# Workflow
from .workflow import (
    AspectRatio,
    ChainResult,
    ChainStatus,
    ClipJob,
    ClipState,
    GenerationRequest,
    ProgressEvent,
    SceneDescriptor,
    VideoMode,
    ScenePlanner,
    JobPoller,
    FallbackCoordinator,
    ChainExecutor,
    AssetPublisher,
    ScriptWriter,
    VideoOrchestrator,
)

__all__ = [
    "__version__",

    # Core
    "Config",
    "get_config",
    "set_config",

    # Exceptions
    "VideoOrchestratorError",
    "ConfigurationError",
    "ValidationError",
    "InvalidDurationError",
    "ProviderError",
    "ProviderRejectedError",
    "ProviderUnavailableError",
    "PublishError",

    # Providers
    "BaseVideoProvider",
    "ClipConfig",
    "JobState",
    "ProviderTier",
    "StatusResult",
    "get_provider",
    "list_providers",

    # Workflow
    "AspectRatio",
    "ChainResult",
    "ChainStatus",
    "ClipJob",
    "ClipState",
    "GenerationRequest",
    "ProgressEvent",
    "SceneDescriptor",
    "VideoMode",
    "ScenePlanner",
    "JobPoller",
    "FallbackCoordinator",
    "ChainExecutor",
    "AssetPublisher",
    "ScriptWriter",
    "VideoOrchestrator",
]
