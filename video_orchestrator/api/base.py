"""
Base Video Provider
===================

Abstract base class for all video synthesis provider clients.

Every client speaks the same two-call contract:

- ``submit(scene_instruction, continuity_input, config) -> provider_job_id``
- ``check_status(provider_job_id) -> StatusResult``

Clients hold nothing but credentials and an HTTP connection pool, so one
instance can be shared by concurrent generations.
"""

import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple, Union

import aiofiles
import httpx

from ..core.config import ProviderTierConfig, DEFAULT_PROVIDER_SETTINGS
from ..core.exceptions import (
    ProviderError,
    ProviderRejectedError,
    ProviderUnavailableError,
    ValidationError,
)
from ..core.security import redact_api_key, is_remote_ref

logger = logging.getLogger(__name__)


MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


def as_dict(value: Any) -> Dict[str, Any]:
    """Treat anything that is not a JSON object as an empty one."""
    return value if isinstance(value, dict) else {}


# =============================================================================
# Data Classes
# =============================================================================


class ProviderTier(Enum):
    """Provider categories, distinguished by clip length limits."""

    SHORT_FORM = "short_form"
    EXTENDED_DURATION = "extended_duration"
    AVATAR = "avatar"


class JobState(Enum):
    """Three-state job status every provider is normalized to."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_provider_status(cls, status: str) -> "JobState":
        """Normalize provider-specific status strings."""
        status_lower = str(status or "").lower().strip()

        if status_lower in ("completed", "succeeded", "done", "success", "finished"):
            return cls.COMPLETED

        if status_lower in (
            "failed", "error", "failure", "errored",
            "cancelled", "canceled", "aborted", "stopped",
        ):
            return cls.FAILED

        # queued, in_queue, in_progress, processing, waiting, pending...
        return cls.PENDING


@dataclass
class StatusResult:
    """Outcome of a single status check."""

    state: JobState = JobState.PENDING
    artifact_ref: Optional[str] = None
    error: Optional[str] = None

    def is_terminal(self) -> bool:
        return self.state != JobState.PENDING


@dataclass
class ClipConfig:
    """Per-submission settings passed alongside the scene instruction."""

    duration_seconds: int = 8
    aspect_ratio: str = "16:9"
    resolution: str = "720p"
    language: str = "en"
    negative_prompt: Optional[str] = None

    # Avatar tier only
    avatar_id: Optional[str] = None
    voice_id: Optional[str] = None

    # Image inputs (path, URL or data URI), base scene only
    reference_images: List[str] = field(default_factory=list)
    first_frame: Optional[str] = None
    last_frame: Optional[str] = None

    extra_params: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Base Provider Class
# =============================================================================


class BaseVideoProvider(ABC):
    """
    Abstract base class for video synthesis providers.

    Subclasses set ``name`` (the registry key) and ``tier``, and implement
    ``submit`` and ``check_status``. Polling is not done here; the job
    poller drives ``check_status`` using this client's poll budget.
    """

    name: str = ""
    tier: ProviderTier = ProviderTier.SHORT_FORM

    def __init__(
        self,
        config: Optional[ProviderTierConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the provider.

        Args:
            config: Credentials, endpoint and poll budget for this client
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or ProviderTierConfig(**DEFAULT_PROVIDER_SETTINGS.get(self.name, {}))
        self.api_key = self.config.resolve_api_key()
        self.base_url = (self.config.base_url or self._get_default_base_url()).rstrip("/")
        self.model = self.config.model or self.default_model
        self.timeout = self.config.timeout

        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

        self._validate_config()

    # -------------------------------------------------------------------------
    # Abstract Methods
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider name."""
        pass

    @property
    def default_model(self) -> Optional[str]:
        return None

    @abstractmethod
    def _get_default_base_url(self) -> str:
        """Return the default base URL for this provider."""
        pass

    @abstractmethod
    async def submit(
        self,
        scene_instruction: str,
        continuity_input: Optional[str],
        config: ClipConfig,
    ) -> str:
        """
        Submit one generation request.

        Args:
            scene_instruction: Full text instruction for the clip
            continuity_input: Artifact of the previous clip to extend from,
                or None for a base / extended-duration scene
            config: Per-clip settings

        Returns:
            Provider job id

        Raises:
            ProviderRejectedError: bad input, quota, auth or transport failure
        """
        pass

    @abstractmethod
    async def check_status(self, job_id: str) -> StatusResult:
        """
        Check the status of a submitted job.

        Idempotent: checking a completed job again returns the same artifact.

        Raises:
            ProviderUnavailableError: transport error, 429 or 5xx
            ProviderError: any other non-success response
        """
        pass

    # -------------------------------------------------------------------------
    # Polling Budget
    # -------------------------------------------------------------------------

    @property
    def poll_interval(self) -> float:
        return self.config.poll_interval

    @property
    def max_poll_attempts(self) -> int:
        return self.config.max_poll_attempts

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    # -------------------------------------------------------------------------
    # HTTP Helpers
    # -------------------------------------------------------------------------

    def _validate_config(self) -> None:
        """Validate the provider configuration."""
        if not self.api_key:
            logger.warning(
                f"No API key found for {self.provider_name}. "
                f"Set {self.config.api_key_env or 'api_key'} or pass it in the provider config."
            )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout),
                    headers=self._get_headers(),
                    transport=self._transport,
                    follow_redirects=True,
                )
            return self._client

    def _get_headers(self) -> Dict[str, str]:
        """Get default headers for requests."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise ProviderRejectedError(
                f"{self.provider_name} is not configured (missing API key)",
                provider=self.name,
            )

    async def _post_submission(
        self,
        url: str,
        payload: Dict[str, Any],
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST a generation request; any failure is a rejection."""
        self._require_api_key()
        client = await self._get_client()

        try:
            response = await client.post(url, json=payload, params=params)
        except httpx.HTTPError as e:
            raise ProviderRejectedError(
                f"{self.provider_name} submit failed: {redact_api_key(str(e))}",
                provider=self.name,
                recoverable=True,
            )

        if response.status_code >= 400:
            raise ProviderRejectedError(
                f"{self.provider_name} rejected request: HTTP {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
                response_body=redact_api_key(response.text),
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            raise ProviderRejectedError(
                f"{self.provider_name} returned a malformed submit response",
                provider=self.name,
                status_code=response.status_code,
                response_body=redact_api_key(response.text),
            )
        return data

    async def _get_status_json(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """GET a status document, classifying failures for the poller."""
        client = await self._get_client()

        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(
                f"{self.provider_name} status check failed: {redact_api_key(str(e))}",
                provider=self.name,
            )

        if response.status_code == 429 or response.status_code >= 500:
            raise ProviderUnavailableError(
                f"{self.provider_name} status check returned HTTP {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
            )

        if response.status_code >= 400:
            raise ProviderError(
                f"{self.provider_name} status check returned HTTP {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
                response_body=redact_api_key(response.text),
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            raise ProviderUnavailableError(
                f"{self.provider_name} returned a malformed status response",
                provider=self.name,
                status_code=response.status_code,
            )
        return data

    # -------------------------------------------------------------------------
    # Image Inputs
    # -------------------------------------------------------------------------

    @staticmethod
    def get_mime_type(image_ref: Union[str, Path]) -> str:
        """Get MIME type from file extension."""
        return MIME_TYPES.get(Path(str(image_ref).split("?")[0]).suffix.lower(), "image/png")

    async def encode_image_to_base64(self, image_path: Union[str, Path]) -> str:
        """Encode a local image file to base64."""
        path = Path(image_path)
        if not path.is_file():
            raise ProviderRejectedError(f"Image not found: {image_path}", provider=self.name)

        async with aiofiles.open(path, "rb") as f:
            return base64.b64encode(await f.read()).decode("utf-8")

    async def image_to_data_uri(self, image_ref: str) -> str:
        """URLs and data URIs pass through; local files are inlined."""
        if image_ref.startswith("data:") or is_remote_ref(image_ref):
            return image_ref
        data = await self.encode_image_to_base64(image_ref)
        return f"data:{self.get_mime_type(image_ref)};base64,{data}"

    async def load_image(self, image_ref: str) -> Tuple[str, str]:
        """
        Resolve an image reference to inline bytes.

        Returns:
            (mime_type, base64 data)
        """
        if image_ref.startswith("data:"):
            header, _, data = image_ref.partition(",")
            return header[5:].split(";")[0] or "image/png", data

        if not is_remote_ref(image_ref):
            return self.get_mime_type(image_ref), await self.encode_image_to_base64(image_ref)

        # Separate client: the provider client carries this provider's credentials
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
            follow_redirects=True,
        ) as fetcher:
            try:
                response = await fetcher.get(image_ref)
            except httpx.HTTPError as e:
                raise ProviderRejectedError(
                    f"Could not fetch image {image_ref}: {redact_api_key(str(e))}",
                    provider=self.name,
                )

        if response.status_code != 200:
            raise ProviderRejectedError(
                f"Could not fetch image {image_ref}: HTTP {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
            )

        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not mime_type.startswith("image/"):
            mime_type = self.get_mime_type(image_ref)
        return mime_type, base64.b64encode(response.content).decode("utf-8")

    # -------------------------------------------------------------------------
    # Download
    # -------------------------------------------------------------------------

    def _download_params(self) -> Optional[Dict[str, str]]:
        """Extra query params needed to fetch an artifact (e.g. API key)."""
        return None

    async def download_artifact(
        self,
        artifact_ref: str,
        output_path: Union[str, Path],
    ) -> str:
        """
        Download a remote artifact to local storage.

        Args:
            artifact_ref: Remote URI returned by ``check_status``
            output_path: Where to save the video

        Returns:
            Path to the downloaded video
        """
        if not artifact_ref:
            raise ValidationError(
                "No artifact reference to download",
                field="artifact_ref",
                constraint="required for download",
            )

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        client = await self._get_client()
        try:
            async with client.stream("GET", artifact_ref, params=self._download_params()) as response:
                if response.status_code != 200:
                    raise ProviderError(
                        f"Download failed with status {response.status_code}",
                        provider=self.name,
                        status_code=response.status_code,
                    )
                async with aiofiles.open(output_path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
        except httpx.HTTPError as e:
            output_path.unlink(missing_ok=True)
            raise ProviderError(
                f"Download failed: {redact_api_key(str(e))}",
                provider=self.name,
            )
        except ProviderError:
            output_path.unlink(missing_ok=True)
            raise

        logger.info(f"Video downloaded to: {output_path}")
        return str(output_path)

    # -------------------------------------------------------------------------
    # Provider Capabilities
    # -------------------------------------------------------------------------

    @property
    def supports_scene_extension(self) -> bool:
        """Whether this provider can extend from a previous clip."""
        return False

    @property
    def max_duration(self) -> int:
        """Maximum clip duration in seconds."""
        return 8

    @property
    def max_reference_images(self) -> int:
        """Subject reference images accepted on a base clip."""
        return 0

    @property
    def supports_last_frame(self) -> bool:
        return False

    @property
    def supported_aspect_ratios(self) -> List[str]:
        return ["16:9", "9:16"]

    def get_capabilities(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "provider": self.provider_name,
            "tier": self.tier.value,
            "model": self.model,
            "configured": self.is_configured,
            "max_duration": self.max_duration,
            "supports_scene_extension": self.supports_scene_extension,
            "max_reference_images": self.max_reference_images,
            "supports_last_frame": self.supports_last_frame,
            "poll_interval": self.poll_interval,
            "max_poll_attempts": self.max_poll_attempts,
        }

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client."""
        async with self._client_lock:
            if self._client:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
