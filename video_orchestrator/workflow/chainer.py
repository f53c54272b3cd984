"""
Continuity Chain Executor
=========================

Runs planned scenes strictly in order, feeding each scene the artifact of
its predecessor so the provider extends the previous clip instead of
starting over.
"""

import asyncio
import logging
from typing import Optional, List, Dict, Union

from ..api.base import BaseVideoProvider, ClipConfig, ProviderTier
from .fallback import FallbackCoordinator
from .models import (
    ChainResult,
    ChainStatus,
    ClipJob,
    ClipState,
    GenerationRequest,
    ProgressCallback,
    ProgressEvent,
    SceneDescriptor,
    VideoMode,
    emit_progress,
)

logger = logging.getLogger(__name__)


FACELESS_NEGATIVE_PROMPT = "people, faces, humans, hands, silhouettes"

ProviderLists = Union[List[BaseVideoProvider], Dict[ProviderTier, List[BaseVideoProvider]]]


class ChainExecutor:
    """
    Sequences scenes for continuity.

    State per chain: IDLE -> RUNNING -> COMPLETED | PARTIAL. The first
    scene that fails (after fallback) or is cancelled stops the chain;
    later scenes are never submitted.
    """

    def __init__(
        self,
        coordinator: Optional[FallbackCoordinator] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        """
        Initialize the chain executor.

        Args:
            coordinator: Fallback coordinator (one is built if omitted)
            on_progress: Optional callback for chain-level events
        """
        self.on_progress = on_progress
        self.coordinator = coordinator or FallbackCoordinator(on_progress=on_progress)
        self.status = ChainStatus.IDLE

    async def run(
        self,
        scenes: List[SceneDescriptor],
        request: GenerationRequest,
        providers: ProviderLists,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ChainResult:
        """
        Execute the chain.

        Args:
            scenes: Planned scenes in ordinal order
            request: The originating request
            providers: One priority list for every scene, or a list per tier
            cancel_event: Set to stop after the in-flight wait returns

        Returns:
            Frozen ChainResult
        """
        self.status = ChainStatus.RUNNING
        outcomes: List[ClipJob] = []
        completed_duration = 0
        last_artifact: Optional[str] = None
        cancelled = False

        logger.info(f"Starting chain of {len(scenes)} scene(s) for {request.target_duration_seconds}s request")
        await emit_progress(
            self.on_progress,
            ProgressEvent(
                scene_ordinal=None,
                state=ChainStatus.RUNNING.value,
                message=f"Generating {len(scenes)} scene(s)",
                total_scenes=len(scenes),
            ),
        )

        for scene in scenes:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break

            tier_providers = self._providers_for(scene, providers)
            continuity_input = None if scene.is_base else last_artifact

            logger.info(
                f"Scene {scene.ordinal + 1}/{len(scenes)} "
                f"[{scene.time_range_start}s-{scene.time_range_end}s] on {scene.tier.value}"
            )

            job = await self.coordinator.generate_one_scene(
                scene,
                continuity_input,
                tier_providers,
                cancel_event=cancel_event,
                clip_config=self._clip_config(request, scene),
            )
            outcomes.append(job)

            if job.state == ClipState.COMPLETED:
                completed_duration += scene.duration_seconds
                last_artifact = job.artifact_ref
                continue

            if job.state == ClipState.CANCELLED:
                cancelled = True
                logger.info(f"Chain cancelled during scene {scene.ordinal}")
            else:
                logger.warning(f"Scene {scene.ordinal} failed, stopping chain: {job.error}")
            break

        scenes_completed = sum(1 for job in outcomes if job.state == ClipState.COMPLETED)
        scenes_failed = sum(1 for job in outcomes if job.state == ClipState.FAILED)
        all_done = scenes_completed == len(scenes) and not cancelled

        self.status = ChainStatus.COMPLETED if all_done else ChainStatus.PARTIAL

        result = ChainResult(
            status=self.status,
            scenes_completed=scenes_completed,
            scenes_failed=scenes_failed,
            total_duration_seconds=completed_duration,
            final_artifact_ref=last_artifact,
            per_scene_outcomes=tuple(outcomes),
            scenes_planned=len(scenes),
            cancelled=cancelled,
        )

        logger.info(
            f"Chain {self.status.value}: {scenes_completed}/{len(scenes)} scene(s), "
            f"{completed_duration}s"
        )
        await emit_progress(
            self.on_progress,
            ProgressEvent(
                scene_ordinal=None,
                state=self.status.value,
                message=f"{scenes_completed}/{len(scenes)} scene(s) completed",
                total_scenes=len(scenes),
            ),
        )
        return result

    @staticmethod
    def _providers_for(scene: SceneDescriptor, providers: ProviderLists) -> List[BaseVideoProvider]:
        if isinstance(providers, dict):
            return providers.get(scene.tier, [])
        return list(providers)

    @staticmethod
    def _clip_config(request: GenerationRequest, scene: SceneDescriptor) -> ClipConfig:
        # Images shape the base scene only
        images = scene.is_base
        return ClipConfig(
            aspect_ratio=request.aspect_ratio.value,
            language=request.language,
            negative_prompt=None if request.mode == VideoMode.AVATAR else FACELESS_NEGATIVE_PROMPT,
            avatar_id=request.avatar_id,
            voice_id=request.voice_id,
            reference_images=list(request.reference_images) if images else [],
            first_frame=request.first_frame if images else None,
            last_frame=request.last_frame if images else None,
        )
