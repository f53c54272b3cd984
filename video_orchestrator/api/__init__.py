"""
API Integration Layer
=====================

Uniform client contract over the video synthesis providers.

Supported Providers:
- Google Veo (short-form, native extension)
- fal.ai (short-form Veo 3.1 queue, LongCat extended-duration)
- HeyGen (avatar)

Usage:
    from video_orchestrator.api import get_provider

    provider = get_provider("veo")
    job_id = await provider.submit("A river at dawn", None, ClipConfig())
    status = await provider.check_status(job_id)
"""

from .base import (
    BaseVideoProvider,
    ClipConfig,
    JobState,
    ProviderTier,
    StatusResult,
)
from .factory import (
    get_provider,
    list_providers,
    build_priority_lists,
    describe_providers,
    register_provider,
)

__all__ = [
    "BaseVideoProvider",
    "ClipConfig",
    "JobState",
    "ProviderTier",
    "StatusResult",
    "get_provider",
    "list_providers",
    "build_priority_lists",
    "describe_providers",
    "register_provider",
]
