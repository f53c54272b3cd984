"""
fal.ai Providers
================

Queue-based providers on fal.ai:

- ``FalVideoProvider``: short-form clips (Veo 3.1 on fal), extensions via
  a ``video_url`` continuity input
- ``LongCatProvider``: extended-duration single clips (LongCat, up to 15 min),
  optionally animated from a first frame image

Both submit to ``https://queue.fal.run/{model}`` and poll the queue's
status/result endpoints. The fal ``request_id`` is the provider job id.
"""

import logging
from typing import Optional, Dict, Any

from .base import (
    BaseVideoProvider,
    ClipConfig,
    JobState,
    ProviderTier,
    StatusResult,
)
from .factory import register_provider
from ..core.exceptions import ProviderError, ProviderRejectedError
from ..core.security import sanitize_prompt

logger = logging.getLogger(__name__)


class _FalQueueProvider(BaseVideoProvider):
    """Shared fal.ai queue plumbing."""

    def _get_default_base_url(self) -> str:
        return "https://queue.fal.run"

    def _get_headers(self) -> Dict[str, str]:
        """fal.ai uses 'Key <id>:<secret>' auth."""
        return {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _app_root(model: str) -> str:
        """Queue status URLs use only the owner/app part of the model id."""
        return "/".join(model.split("/")[:2])

    def _job_id(self, model: str, request_id: str) -> str:
        # Keep the app root with the id so check_status needs no local state
        return f"{self._app_root(model)}::{request_id}"

    def _split_job_id(self, job_id: str):
        if "::" in job_id:
            app_root, request_id = job_id.split("::", 1)
        else:
            app_root, request_id = self._app_root(self.model), job_id
        return app_root, request_id

    async def _submit_to_queue(self, model: str, payload: Dict[str, Any]) -> str:
        data = await self._post_submission(f"{self.base_url}/{model}", payload)

        request_id = data.get("request_id")
        if not request_id:
            raise ProviderRejectedError(
                "No request_id in fal.ai queue response",
                provider=self.name,
                response_body=str(data),
            )
        return self._job_id(model, request_id)

    async def check_status(self, job_id: str) -> StatusResult:
        """Check queue status and fetch the result once completed."""
        app_root, request_id = self._split_job_id(job_id)
        request_url = f"{self.base_url}/{app_root}/requests/{request_id}"

        data = await self._get_status_json(f"{request_url}/status")
        state = JobState.from_provider_status(data.get("status", ""))

        if state == JobState.FAILED:
            return StatusResult(state=state, error=str(data.get("error") or "Unknown error"))

        if state == JobState.PENDING:
            return StatusResult(state=state)

        try:
            result = await self._get_status_json(request_url)
        except ProviderError as e:
            if e.recoverable:
                raise
            # fal reports failed generations as a 4xx on the result fetch
            return StatusResult(state=JobState.FAILED, error=e.details.get("response_body", e.message))

        return self._parse_response(result)

    def _parse_response(self, data: Dict[str, Any]) -> StatusResult:
        """Parse a fal result document."""
        video = data.get("video")
        if isinstance(video, dict):
            video_url = video.get("url")
        else:
            video_url = video or data.get("video_url")

        if video_url and isinstance(video_url, str):
            return StatusResult(state=JobState.COMPLETED, artifact_ref=video_url)

        error = data.get("error") or data.get("detail") or "No video URL in response"
        return StatusResult(state=JobState.FAILED, error=str(error))


@register_provider("fal")
class FalVideoProvider(_FalQueueProvider):
    """
    fal.ai short-form provider.

    Base clips go to the text-to-video model, or to the image, first/last
    frame or reference model when the clip has image inputs. Extensions go
    to the extend model with the previous clip as ``video_url``.
    """

    tier = ProviderTier.SHORT_FORM

    @property
    def provider_name(self) -> str:
        return "fal.ai"

    @property
    def default_model(self) -> str:
        return "fal-ai/veo3.1/fast"

    @property
    def extend_model(self) -> str:
        return self.config.extra.get("extend_model", f"{self.model}/extend-video")

    @property
    def image_model(self) -> str:
        return self.config.extra.get("image_model", f"{self.model}/image-to-video")

    @property
    def frames_model(self) -> str:
        return self.config.extra.get("frames_model", f"{self.model}/first-last-frame-to-video")

    @property
    def reference_model(self) -> str:
        return self.config.extra.get("reference_model", f"{self._app_root(self.model)}/reference-to-video")

    @property
    def supports_scene_extension(self) -> bool:
        return True

    @property
    def max_reference_images(self) -> int:
        return 3

    @property
    def supports_last_frame(self) -> bool:
        return True

    def _select_model(self, continuity_input: Optional[str], config: ClipConfig) -> str:
        if continuity_input:
            return self.extend_model
        if config.reference_images:
            return self.reference_model
        if config.first_frame and config.last_frame:
            return self.frames_model
        if config.first_frame:
            return self.image_model
        return self.model

    async def submit(
        self,
        scene_instruction: str,
        continuity_input: Optional[str],
        config: ClipConfig,
    ) -> str:
        model = self._select_model(continuity_input, config)
        payload = await self._build_payload(scene_instruction, continuity_input, config)

        logger.info(f"Submitting clip to fal.ai: {model}")
        logger.debug(f"Payload keys: {sorted(payload)}")

        return await self._submit_to_queue(model, payload)

    async def _build_payload(
        self,
        scene_instruction: str,
        continuity_input: Optional[str],
        config: ClipConfig,
    ) -> Dict[str, Any]:
        """Build the API request payload."""
        payload: Dict[str, Any] = {
            "prompt": sanitize_prompt(scene_instruction),
            "aspect_ratio": config.aspect_ratio or "16:9",
            "duration": f"{config.duration_seconds}s",
            "resolution": config.resolution or "720p",
            "generate_audio": True,
        }

        if continuity_input:
            payload["video_url"] = continuity_input
        elif config.reference_images:
            if len(config.reference_images) > self.max_reference_images:
                raise ProviderRejectedError(
                    f"fal.ai accepts at most {self.max_reference_images} reference images",
                    provider=self.name,
                )
            payload["image_urls"] = [await self.image_to_data_uri(ref) for ref in config.reference_images]
        elif config.first_frame and config.last_frame:
            payload["first_frame_url"] = await self.image_to_data_uri(config.first_frame)
            payload["last_frame_url"] = await self.image_to_data_uri(config.last_frame)
        elif config.first_frame:
            payload["image_url"] = await self.image_to_data_uri(config.first_frame)

        if config.negative_prompt:
            payload["negative_prompt"] = config.negative_prompt

        payload.update(config.extra_params.get("fal", {}))

        return payload


@register_provider("longcat")
class LongCatProvider(_FalQueueProvider):
    """
    LongCat extended-duration provider on fal.ai.

    Produces one clip for the whole target duration (up to 900 s);
    never chained, so ``continuity_input`` is ignored.
    """

    tier = ProviderTier.EXTENDED_DURATION

    SUPPORTED_FPS = (24, 25, 30)

    @property
    def provider_name(self) -> str:
        return "LongCat (fal.ai)"

    @property
    def default_model(self) -> str:
        return "fal-ai/longcat-video/text-to-video/720p"

    @property
    def max_duration(self) -> int:
        return 900

    @property
    def fps(self) -> int:
        fps = int(self.config.extra.get("fps", 24))
        return fps if fps in self.SUPPORTED_FPS else 24

    @property
    def image_model(self) -> str:
        return self.config.extra.get("image_model", "fal-ai/longcat-video/image-to-video/720p")

    async def submit(
        self,
        scene_instruction: str,
        continuity_input: Optional[str],
        config: ClipConfig,
    ) -> str:
        if not 1 <= config.duration_seconds <= self.max_duration:
            raise ProviderRejectedError(
                f"LongCat duration must be 1-{self.max_duration}s, got {config.duration_seconds}s",
                provider=self.name,
            )

        if config.reference_images or config.last_frame:
            raise ProviderRejectedError(
                "LongCat accepts only a first frame image",
                provider=self.name,
            )

        if continuity_input:
            logger.debug("LongCat ignores continuity input")

        payload: Dict[str, Any] = {
            "prompt": sanitize_prompt(scene_instruction),
            "num_frames": round(config.duration_seconds * self.fps),
            "fps": self.fps,
        }
        model = self.model
        if config.first_frame:
            model = self.image_model
            payload["image_url"] = await self.image_to_data_uri(config.first_frame)
        if config.negative_prompt:
            payload["negative_prompt"] = config.negative_prompt
        payload.update(config.extra_params.get("longcat", {}))

        logger.info(
            f"Submitting {config.duration_seconds}s clip to LongCat ({model}): "
            f"{payload['num_frames']} frames @ {self.fps}fps"
        )

        return await self._submit_to_queue(model, payload)
