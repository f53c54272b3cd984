"""
Fallback Coordinator
====================

Generates one scene by trying providers strictly in priority order.
"""

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional

from ..api.base import BaseVideoProvider, ClipConfig
from ..core.exceptions import ProviderError
from ..core.security import redact_api_key
from .models import (
    ClipJob,
    ClipState,
    ProgressCallback,
    ProgressEvent,
    SceneDescriptor,
    emit_progress,
)
from .poller import JobPoller

logger = logging.getLogger(__name__)


class FallbackCoordinator:
    """
    Runs one scene against a provider priority list.

    Every provider attempt gets its own ClipJob. A completed attempt is
    returned at once; rejected, failed and timed-out attempts are kept in
    the returned job's ``history`` and the next provider is tried.
    """

    def __init__(
        self,
        poller: Optional[JobPoller] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.poller = poller or JobPoller()
        self.on_progress = on_progress

    async def generate_one_scene(
        self,
        scene: SceneDescriptor,
        continuity_input: Optional[str],
        providers: List[BaseVideoProvider],
        cancel_event: Optional[asyncio.Event] = None,
        clip_config: Optional[ClipConfig] = None,
    ) -> ClipJob:
        """
        Produce a terminal ClipJob for ``scene``.

        Args:
            scene: Scene to generate
            continuity_input: Previous scene's artifact (None for base scenes)
            providers: Providers in priority order
            cancel_event: Set to stop without trying further providers
            clip_config: Per-clip settings (duration is taken from the scene)

        Returns:
            COMPLETED, CANCELLED or FAILED ClipJob
        """
        clip_config = replace(clip_config or ClipConfig(), duration_seconds=scene.duration_seconds)

        history: List[ClipJob] = []
        attempted: List[str] = []
        errors: List[str] = []

        for provider in providers:
            if cancel_event is not None and cancel_event.is_set():
                return self._cancelled(scene, attempted, history)

            attempted.append(provider.name)
            job = ClipJob(
                scene_ordinal=scene.ordinal,
                provider=provider.name,
                providers_attempted=list(attempted),
            )

            await self._emit(scene, job, f"Submitting to {provider.provider_name}")

            try:
                job.provider_job_id = await provider.submit(
                    scene.instruction_text,
                    continuity_input,
                    clip_config,
                )
            except ProviderError as e:
                job.error = redact_api_key(e.message)
                job.transition(ClipState.FAILED)
                history.append(job)
                errors.append(f"{provider.name}: rejected: {job.error}")
                logger.warning(f"Scene {scene.ordinal}: {provider.name} rejected submission: {job.error}")
                await self._emit(scene, job, f"{provider.provider_name} rejected the request")
                continue

            job.transition(ClipState.SUBMITTED)
            await self._emit(scene, job, f"{provider.provider_name} job {job.provider_job_id} submitted")

            job.transition(ClipState.POLLING)
            outcome = await self.poller.wait(
                job.provider_job_id,
                provider,
                cancel_event=cancel_event,
            )

            job.poll_attempts = outcome.attempts
            job.artifact_ref = outcome.artifact_ref
            job.error = outcome.error
            job.transition(outcome.state)

            if outcome.state in (ClipState.COMPLETED, ClipState.CANCELLED):
                job.history = history
                await self._emit(scene, job, f"Scene {scene.ordinal} {outcome.state.value}")
                return job

            # FAILED or TIMED_OUT: keep the record, move on
            history.append(job)
            errors.append(f"{provider.name}: {outcome.state.value}: {outcome.error}")
            logger.warning(
                f"Scene {scene.ordinal}: {provider.name} ended {outcome.state.value}, "
                f"trying next provider"
            )
            await self._emit(scene, job, f"{provider.provider_name} {outcome.state.value}")

        failed = ClipJob(
            scene_ordinal=scene.ordinal,
            providers_attempted=attempted,
            history=history,
            error="All providers failed: " + "; ".join(errors) if errors else "No providers configured",
        )
        failed.transition(ClipState.FAILED)
        logger.error(f"Scene {scene.ordinal} failed on every provider: {attempted}")
        await self._emit(scene, failed, failed.error)
        return failed

    @staticmethod
    def _cancelled(scene: SceneDescriptor, attempted: List[str], history: List[ClipJob]) -> ClipJob:
        job = ClipJob(
            scene_ordinal=scene.ordinal,
            providers_attempted=list(attempted),
            history=history,
            error="Cancelled",
        )
        job.transition(ClipState.CANCELLED)
        return job

    async def _emit(self, scene: SceneDescriptor, job: ClipJob, message: str) -> None:
        await emit_progress(
            self.on_progress,
            ProgressEvent(
                scene_ordinal=scene.ordinal,
                state=job.state.value,
                message=message,
                provider=job.provider,
            ),
        )
