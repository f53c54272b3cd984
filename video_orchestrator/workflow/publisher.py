"""
Asset Publisher
===============

Uploads a finished video to Cloudinary and returns its durable URL.

Publishing is best-effort: any failure is logged and ``publish`` returns
None, leaving the provider-native or local artifact as the result.
"""

import asyncio
import hashlib
import logging
import time
from pathlib import Path
from typing import Optional, Dict, Any, Tuple
from urllib.parse import urlparse

import aiofiles
import httpx

from ..core.config import PublishingConfig
from ..core.exceptions import PublishError, ConfigurationError
from ..core.security import redact_api_key, is_remote_ref
from .models import ChainResult

logger = logging.getLogger(__name__)


def parse_cloudinary_url(url: str) -> Tuple[str, str, str]:
    """
    Split ``cloudinary://<api_key>:<api_secret>@<cloud_name>``.

    Returns:
        (cloud_name, api_key, api_secret)
    """
    parsed = urlparse(url or "")
    if parsed.scheme != "cloudinary" or not parsed.username or not parsed.password or not parsed.hostname:
        raise ConfigurationError(
            "CLOUDINARY_URL must look like cloudinary://<key>:<secret>@<cloud>",
            config_key="publishing.cloudinary_url",
        )
    return parsed.hostname, parsed.username, parsed.password


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """Cloudinary signature: sha1 of sorted ``k=v`` pairs joined by ``&`` plus secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class AssetPublisher:
    """Cloudinary video uploader."""

    def __init__(
        self,
        config: Optional[PublishingConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or PublishingConfig()
        self._cloudinary_url = self.config.resolve_url()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return self.config.enabled and bool(self._cloudinary_url)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout),
                    transport=self._transport,
                )
            return self._client

    async def publish(self, chain_result: ChainResult) -> Optional[str]:
        """
        Upload the chain's final artifact.

        Prefers a downloaded local copy over the provider URI.

        Returns:
            Hosted URL, or None when not configured or the upload failed
        """
        source = chain_result.local_path or chain_result.final_artifact_ref
        if not source:
            logger.debug("Nothing to publish: chain produced no artifact")
            return None

        if not self.is_configured:
            logger.info("Publishing skipped: Cloudinary not configured")
            return None

        try:
            return await self.upload(source)
        except (PublishError, ConfigurationError) as e:
            logger.error(f"Publishing failed, keeping provider artifact: {redact_api_key(e.message)}")
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Publishing failed, keeping provider artifact: {redact_api_key(str(e))}")
        return None

    async def upload(self, source: str) -> str:
        """
        Signed upload of a remote URL or local file.

        Raises:
            PublishError: Cloudinary rejected the upload
        """
        cloud_name, api_key, api_secret = parse_cloudinary_url(self._cloudinary_url)

        params = {
            "folder": self.config.folder,
            "timestamp": int(time.time()),
        }
        form = {
            **params,
            "api_key": api_key,
            "signature": sign_params(params, api_secret),
        }

        endpoint = f"https://api.cloudinary.com/v1_1/{cloud_name}/video/upload"
        client = await self._get_client()

        logger.info(f"Uploading video to Cloudinary folder '{self.config.folder}'")

        if is_remote_ref(source):
            response = await client.post(endpoint, data={**form, "file": source})
        else:
            path = Path(source)
            if not path.exists():
                raise PublishError(f"Local artifact not found: {source}", artifact_ref=source)
            async with aiofiles.open(path, "rb") as f:
                content = await f.read()
            response = await client.post(
                endpoint,
                data=form,
                files={"file": (path.name, content, "video/mp4")},
            )

        if response.status_code != 200:
            raise PublishError(
                f"Cloudinary upload failed: HTTP {response.status_code}",
                artifact_ref=source,
                status_code=response.status_code,
                details={"response_body": redact_api_key(response.text)[:500]},
            )

        try:
            data = response.json()
        except ValueError:
            raise PublishError(
                "Cloudinary returned a non-JSON response",
                artifact_ref=source,
                status_code=response.status_code,
                details={"response_body": redact_api_key(response.text)[:500]},
            )

        hosted_url = data.get("secure_url") if isinstance(data, dict) else None
        if not hosted_url or not isinstance(hosted_url, str):
            raise PublishError("Cloudinary response has no secure_url", artifact_ref=source)

        logger.info(f"Published: {hosted_url}")
        return hosted_url

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
