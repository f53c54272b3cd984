"""
Workflow Orchestration
======================

Long-form video generation, from request to published asset.

Components:
- ScenePlanner: splits a request into base/extension scenes
- JobPoller: drives one provider job to a terminal state
- FallbackCoordinator: tries providers in priority order for one scene
- ChainExecutor: runs scenes in order with continuity input
- AssetPublisher: uploads the final video
- VideoOrchestrator: main entry point
"""

from .models import (
    AspectRatio,
    ChainResult,
    ChainStatus,
    ClipJob,
    ClipState,
    GenerationRequest,
    PollOutcome,
    ProgressEvent,
    SceneDescriptor,
    VideoMode,
)
from .planner import ScenePlanner
from .poller import JobPoller
from .fallback import FallbackCoordinator
from .chainer import ChainExecutor
from .publisher import AssetPublisher
from .script_writer import ScriptWriter, ScriptDraft
from .generator import VideoOrchestrator

__all__ = [
    "AspectRatio",
    "ChainResult",
    "ChainStatus",
    "ClipJob",
    "ClipState",
    "GenerationRequest",
    "PollOutcome",
    "ProgressEvent",
    "SceneDescriptor",
    "VideoMode",
    "ScenePlanner",
    "JobPoller",
    "FallbackCoordinator",
    "ChainExecutor",
    "AssetPublisher",
    "ScriptWriter",
    "ScriptDraft",
    "VideoOrchestrator",
]
