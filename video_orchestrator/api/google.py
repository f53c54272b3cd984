"""
Google Veo Provider
===================

Direct integration with Google's Veo video generation API via the
Gemini API (long-running operations).

Features:
- 8 second base clips
- Native scene extension: pass a previous Veo clip and get a 7 second
  continuation (up to 20 extensions)
- Native audio generation (Veo 3.1)
- Base clips can start from a first frame (optionally interpolating to a
  last frame) or follow up to 3 subject reference images
"""

import logging
from typing import Optional, List, Dict, Any

from .base import (
    BaseVideoProvider,
    ClipConfig,
    JobState,
    ProviderTier,
    StatusResult,
    as_dict,
)
from .factory import register_provider
from ..core.exceptions import ProviderRejectedError
from ..core.security import sanitize_prompt

logger = logging.getLogger(__name__)


@register_provider("veo")
class GoogleVeoProvider(BaseVideoProvider):
    """
    Google Veo video generation provider.

    Submits ``predictLongRunning`` operations and reports their state.
    The operation name is the provider job id.
    """

    tier = ProviderTier.SHORT_FORM

    @property
    def provider_name(self) -> str:
        return "Google Veo"

    @property
    def default_model(self) -> str:
        return "veo-3.1-generate-preview"

    @property
    def supported_models(self) -> List[str]:
        return ["veo-3.1-generate-preview", "veo-3.1-fast-generate-preview"]

    def _validate_config(self) -> None:
        super()._validate_config()
        if self.model not in self.supported_models:
            logger.warning(f"Unrecognized Veo model {self.model}; expected one of {self.supported_models}")

    def _get_default_base_url(self) -> str:
        return "https://generativelanguage.googleapis.com/v1beta"

    @property
    def supports_scene_extension(self) -> bool:
        return True

    @property
    def max_duration(self) -> int:
        return 8  # Base duration, extendable via scene extension

    @property
    def max_reference_images(self) -> int:
        return 3

    @property
    def supports_last_frame(self) -> bool:
        return True

    def _get_headers(self) -> Dict[str, str]:
        """Gemini API takes the key in a header, not a bearer token."""
        return {
            "x-goog-api-key": self.api_key or "",
            "Content-Type": "application/json",
        }

    def _download_params(self) -> Optional[Dict[str, str]]:
        # Generated file URIs need the key as a query param
        return {"key": self.api_key} if self.api_key else None

    async def submit(
        self,
        scene_instruction: str,
        continuity_input: Optional[str],
        config: ClipConfig,
    ) -> str:
        """Start a Veo operation; extension when ``continuity_input`` is set."""
        payload = await self._build_payload(scene_instruction, continuity_input, config)
        endpoint = f"{self.base_url}/models/{self.model}:predictLongRunning"

        kind = "extension" if continuity_input else "base"
        logger.info(f"Submitting {kind} clip to Google Veo: {self.model}")
        logger.debug(f"Payload parameters: {payload['parameters']}")

        data = await self._post_submission(endpoint, payload)

        operation_name = data.get("name")
        if not operation_name:
            raise ProviderRejectedError(
                "No operation name in Veo response",
                provider=self.name,
                response_body=str(data),
            )
        return operation_name

    async def _build_payload(
        self,
        scene_instruction: str,
        continuity_input: Optional[str],
        config: ClipConfig,
    ) -> Dict[str, Any]:
        """Build the Veo API request payload."""
        instance: Dict[str, Any] = {"prompt": sanitize_prompt(scene_instruction)}

        if continuity_input:
            # Extensions continue from the previous Veo clip
            instance["video"] = {"uri": continuity_input}

        uses_images = await self._add_images(instance, continuity_input, config)

        parameters: Dict[str, Any] = {
            "aspectRatio": config.aspect_ratio or "16:9",
            "resolution": config.resolution or "720p",
            # Text-to-video and extension only accept allow_all; image modes only allow_adult
            "personGeneration": "allow_adult" if uses_images else "allow_all",
        }

        if config.negative_prompt:
            parameters["negativePrompt"] = config.negative_prompt

        parameters.update(config.extra_params.get("veo", {}))

        return {"instances": [instance], "parameters": parameters}

    async def _add_images(
        self,
        instance: Dict[str, Any],
        continuity_input: Optional[str],
        config: ClipConfig,
    ) -> bool:
        """Attach reference images or first/last frames to a base clip."""
        if continuity_input:
            return False

        if config.reference_images:
            if len(config.reference_images) > self.max_reference_images:
                raise ProviderRejectedError(
                    f"Veo accepts at most {self.max_reference_images} reference images",
                    provider=self.name,
                )
            instance["referenceImages"] = [
                {"image": await self._image_part(ref), "referenceType": "asset"}
                for ref in config.reference_images
            ]
            return True

        if config.first_frame:
            instance["image"] = await self._image_part(config.first_frame)
            if config.last_frame:
                instance["lastFrame"] = await self._image_part(config.last_frame)
            return True

        return False

    async def _image_part(self, image_ref: str) -> Dict[str, str]:
        mime_type, data = await self.load_image(image_ref)
        return {"bytesBase64Encoded": data, "mimeType": mime_type}

    async def check_status(self, job_id: str) -> StatusResult:
        """Read the long-running operation."""
        data = await self._get_status_json(f"{self.base_url}/{job_id}")

        if not data.get("done"):
            return StatusResult(state=JobState.PENDING)

        if "error" in data:
            error = data["error"]
            message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
            return StatusResult(state=JobState.FAILED, error=message)

        return self._parse_response(as_dict(data.get("response")))

    def _parse_response(self, data: Dict[str, Any]) -> StatusResult:
        """Pull the first generated video URI out of a finished operation."""
        generated = as_dict(data.get("generateVideoResponse"))
        samples = generated.get("generatedSamples") or data.get("generatedVideos") or []

        if isinstance(samples, list) and samples:
            uri = as_dict(as_dict(samples[0]).get("video")).get("uri")
            if uri and isinstance(uri, str):
                return StatusResult(state=JobState.COMPLETED, artifact_ref=uri)

        filtered = generated.get("raiMediaFilteredReasons")
        if isinstance(filtered, list) and filtered:
            return StatusResult(state=JobState.FAILED, error=f"Filtered: {'; '.join(map(str, filtered))}")

        return StatusResult(state=JobState.FAILED, error="No video in response")
