"""
HeyGen Provider
===============

Avatar-tier provider: a hosted avatar speaks the given script.

The whole script is rendered as one clip, so ``continuity_input`` is
never used. The HeyGen ``video_id`` is the provider job id.
"""

import logging
from typing import Optional, Dict, Any

from .base import (
    BaseVideoProvider,
    ClipConfig,
    JobState,
    ProviderTier,
    StatusResult,
    as_dict,
)
from .factory import register_provider
from ..core.exceptions import ProviderRejectedError, ProviderError
from ..core.security import sanitize_prompt

logger = logging.getLogger(__name__)


DIMENSIONS = {
    "16:9": {"width": 1280, "height": 720},
    "9:16": {"width": 720, "height": 1280},
}


@register_provider("heygen")
class HeyGenProvider(BaseVideoProvider):
    """HeyGen v2 avatar video generation."""

    tier = ProviderTier.AVATAR

    @property
    def provider_name(self) -> str:
        return "HeyGen"

    def _get_default_base_url(self) -> str:
        return "https://api.heygen.com"

    @property
    def max_duration(self) -> int:
        return 900

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Api-Key": self.api_key or "",
            "Content-Type": "application/json",
        }

    async def submit(
        self,
        scene_instruction: str,
        continuity_input: Optional[str],
        config: ClipConfig,
    ) -> str:
        avatar_id = config.avatar_id or self.config.extra.get("avatar_id")
        voice_id = config.voice_id or self.config.extra.get("voice_id")

        if not avatar_id or not voice_id:
            raise ProviderRejectedError(
                "HeyGen requires both avatar_id and voice_id",
                provider=self.name,
            )

        payload = {
            "video_inputs": [{
                "character": {
                    "type": "avatar",
                    "avatar_id": avatar_id,
                    "avatar_style": "normal",
                },
                "voice": {
                    "type": "text",
                    "input_text": sanitize_prompt(scene_instruction, max_length=5000),
                    "voice_id": voice_id,
                },
            }],
            "dimension": DIMENSIONS.get(config.aspect_ratio, DIMENSIONS["16:9"]),
            "title": config.extra_params.get("title", "Avatar Video"),
        }

        logger.info(f"Submitting avatar video to HeyGen: avatar={avatar_id}")

        data = await self._post_submission(f"{self.base_url}/v2/video/generate", payload)

        if data.get("error"):
            raise ProviderRejectedError(
                f"HeyGen video generation failed: {self._error_message(data['error'])}",
                provider=self.name,
            )

        video_id = as_dict(data.get("data")).get("video_id")
        if not video_id:
            raise ProviderRejectedError(
                "HeyGen video generation failed: no video_id in response",
                provider=self.name,
                response_body=str(data),
            )
        return video_id

    async def check_status(self, job_id: str) -> StatusResult:
        data = await self._get_status_json(
            f"{self.base_url}/v1/video_status.get",
            params={"video_id": job_id},
        )

        if data.get("error"):
            raise ProviderError(
                f"HeyGen status check failed: {self._error_message(data['error'])}",
                provider=self.name,
            )

        body = as_dict(data.get("data"))
        state = JobState.from_provider_status(body.get("status", ""))

        if state == JobState.COMPLETED:
            video_url = body.get("video_url")
            if not video_url or not isinstance(video_url, str):
                return StatusResult(state=JobState.FAILED, error="Completed without video_url")
            return StatusResult(state=state, artifact_ref=video_url)

        if state == JobState.FAILED:
            return StatusResult(state=state, error=self._error_message(body.get("error")) or "Unknown error")

        return StatusResult(state=state)

    @staticmethod
    def _error_message(error: Any) -> str:
        if isinstance(error, dict):
            return error.get("message") or error.get("detail") or str(error)
        return str(error) if error else ""
