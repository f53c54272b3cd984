"""
Video Orchestrator
==================

Entry point: one request in, one ChainResult out.

    plan -> chain (fallback -> provider -> poller per scene)
         -> download -> publish -> manifest
"""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional, List, Dict, Any, AsyncIterator, Union

from ..api.base import BaseVideoProvider, ProviderTier
from ..api.factory import build_priority_lists, describe_providers
from ..core.config import Config, get_config
from ..core.exceptions import ProviderError, ValidationError
from ..core.security import redact_api_key, is_remote_ref
from ..utils.storage import save_manifest, video_path
from .chainer import ChainExecutor
from .models import (
    ChainResult,
    ChainStatus,
    ClipState,
    GenerationRequest,
    ProgressCallback,
    ProgressEvent,
    SceneDescriptor,
    VideoMode,
    emit_progress,
)
from .planner import ScenePlanner
from .publisher import AssetPublisher
from .script_writer import ScriptWriter

logger = logging.getLogger(__name__)


class VideoOrchestrator:
    """
    Long-form video generation orchestrator.

    Handles:
    - Scene planning for the short-form, extended-duration and avatar tiers
    - Sequential continuity chaining with per-scene provider fallback
    - Artifact download, publishing and manifest storage

    Holds no per-generation state, so concurrent ``generate`` calls on one
    instance are independent.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        providers: Optional[Dict[ProviderTier, List[BaseVideoProvider]]] = None,
        planner: Optional[ScenePlanner] = None,
        publisher: Optional[AssetPublisher] = None,
        script_writer: Optional[ScriptWriter] = None,
        auto_script: bool = True,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration (defaults to the global config)
            providers: Priority lists per tier (built from config if omitted)
            planner: Scene planner
            publisher: Asset publisher
            script_writer: Avatar script generator
            auto_script: Write a script for avatar requests that have none
        """
        self.config = config or get_config()
        self.planner = planner or ScenePlanner(self.config.planner)
        self.providers = providers if providers is not None else build_priority_lists(self.config)
        self.publisher = publisher or AssetPublisher(self.config.publishing)
        self.script_writer = script_writer or (ScriptWriter(self.config.script) if auto_script else None)
        self.output_path = Path(self.config.output.base_path)

        logger.info("VideoOrchestrator initialized")
        for tier, tier_providers in self.providers.items():
            logger.info(f"  {tier.value}: {[p.name for p in tier_providers]}")

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate(
        self,
        request: GenerationRequest,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ChainResult:
        """
        Generate one long-form video.

        Args:
            request: The generation request
            on_progress: Optional sync or async callback for ProgressEvents
            cancel_event: Set to stop; the result is PARTIAL with outcomes so far

        Returns:
            ChainResult (COMPLETED or PARTIAL)

        Raises:
            InvalidDurationError: target duration <= 0 or above the limit
            ValidationError: unusable image inputs
        """
        target = self.planner.validate_duration(request.target_duration_seconds)
        self.planner.validate_images(request, target)

        request = await self._prepare_script(request, on_progress)
        scenes = self.plan(request)

        await emit_progress(
            on_progress,
            ProgressEvent(
                scene_ordinal=None,
                state="planned",
                message=f"Planned {len(scenes)} scene(s) on {scenes[0].tier.value}",
                total_scenes=len(scenes),
            ),
        )

        executor = ChainExecutor(on_progress=on_progress)
        result = await executor.run(scenes, request, self.providers, cancel_event=cancel_event)

        if result.final_artifact_ref and not result.cancelled:
            result = await self._finalize(result, on_progress)

        if self.config.output.save_manifest:
            await self._save_manifest(request, scenes, result)

        return result

    async def stream(
        self,
        request: GenerationRequest,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[Union[ProgressEvent, ChainResult]]:
        """
        Run ``generate`` and yield its ProgressEvents as they happen,
        finishing with the ChainResult.
        """
        queue: asyncio.Queue = asyncio.Queue()
        task = asyncio.create_task(
            self.generate(request, on_progress=queue.put_nowait, cancel_event=cancel_event)
        )

        try:
            while True:
                getter = asyncio.ensure_future(queue.get())
                done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
                if getter in done:
                    yield getter.result()
                    continue
                getter.cancel()
                break

            while not queue.empty():
                yield queue.get_nowait()

            yield task.result()
        finally:
            if not task.done():
                task.cancel()

    def plan(self, request: GenerationRequest) -> List[SceneDescriptor]:
        """Plan scenes, routing hosted avatars to the avatar tier."""
        if request.uses_hosted_avatar:
            return self.planner.plan_hosted_avatar(request)
        return self.planner.plan(request)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _prepare_script(
        self,
        request: GenerationRequest,
        on_progress: Optional[ProgressCallback],
    ) -> GenerationRequest:
        """Fill in an avatar script when the caller did not supply one."""
        if request.mode != VideoMode.AVATAR or request.base_prompt_or_script.strip():
            return request

        if self.script_writer is None:
            return request

        try:
            draft = await self.script_writer.generate_script(
                topic=request.topic or "",
                duration_seconds=request.target_duration_seconds,
                platform=request.platform or "instagram",
                content_format=request.content_format or "reel",
                language=request.language,
            )
        except ProviderError as e:
            # Veo avatar prompts fall back to an auto-speech instruction
            logger.warning(f"Script generation failed, continuing without script: {redact_api_key(e.message)}")
            return request

        await emit_progress(
            on_progress,
            ProgressEvent(scene_ordinal=None, state="scripted", message=f"{draft.words}-word script ready"),
        )
        return replace(request, base_prompt_or_script=draft.script)

    async def _finalize(
        self,
        result: ChainResult,
        on_progress: Optional[ProgressCallback],
    ) -> ChainResult:
        """Download and publish the final artifact; failures degrade, never raise."""
        local_path = None
        if self.config.output.download_final and result.status == ChainStatus.COMPLETED:
            local_path = await self._download(result)
            result = replace(result, local_path=local_path)

        hosted_url = await self.publisher.publish(result)
        if hosted_url:
            result = replace(result, hosted_url=hosted_url)
            await emit_progress(
                on_progress,
                ProgressEvent(scene_ordinal=None, state="published", message=hosted_url),
            )
        return result

    async def _download(self, result: ChainResult) -> Optional[str]:
        if not is_remote_ref(result.final_artifact_ref):
            return None

        provider = self._provider_for_final(result)
        if provider is None:
            return None

        try:
            return await provider.download_artifact(
                result.final_artifact_ref,
                video_path(self.output_path, prefix=provider.name),
            )
        except (ProviderError, ValidationError) as e:
            logger.error(f"Download failed, keeping provider artifact: {redact_api_key(e.message)}")
        except OSError as e:
            logger.error(f"Download failed, keeping provider artifact: {e}")
        return None

    def _provider_for_final(self, result: ChainResult) -> Optional[BaseVideoProvider]:
        completed = [job for job in result.per_scene_outcomes if job.state == ClipState.COMPLETED]
        if not completed:
            return None
        name = completed[-1].provider
        for tier_providers in self.providers.values():
            for provider in tier_providers:
                if provider.name == name:
                    return provider
        return None

    async def _save_manifest(
        self,
        request: GenerationRequest,
        scenes: List[SceneDescriptor],
        result: ChainResult,
    ) -> None:
        manifest = {
            "request": request.to_dict(),
            "scenes": [scene.to_dict() for scene in scenes],
            "result": result.to_dict(),
        }
        try:
            path = await save_manifest(manifest, self.output_path, name="generation")
            logger.info(f"Manifest saved: {path}")
        except OSError as e:
            logger.error(f"Failed to save manifest: {e}")

    # -------------------------------------------------------------------------
    # Info & Lifecycle
    # -------------------------------------------------------------------------

    def get_provider_info(self) -> Dict[str, Any]:
        """Tier limits plus the configured providers and their capabilities."""
        return {
            "limits": self.planner.describe_limits(),
            "providers": describe_providers(self.providers),
        }

    async def close(self) -> None:
        """Close all HTTP clients."""
        seen = set()
        for tier_providers in self.providers.values():
            for provider in tier_providers:
                if id(provider) not in seen:
                    seen.add(id(provider))
                    await provider.close()
        await self.publisher.close()
        if self.script_writer is not None:
            await self.script_writer.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
