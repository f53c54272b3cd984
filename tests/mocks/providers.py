"""Scripted provider clients for workflow tests"""

import asyncio
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

from video_orchestrator.api.base import (
    BaseVideoProvider,
    ClipConfig,
    JobState,
    ProviderTier,
    StatusResult,
)
from video_orchestrator.core.config import ProviderTierConfig
from video_orchestrator.core.exceptions import ProviderError, ProviderRejectedError


# A status script entry is a StatusResult or an exception to raise
StatusStep = Union[StatusResult, ProviderError]


def pending() -> StatusResult:
    return StatusResult(state=JobState.PENDING)


def completed(ref: str) -> StatusResult:
    return StatusResult(state=JobState.COMPLETED, artifact_ref=ref)


def failed(error: str = "generation failed") -> StatusResult:
    return StatusResult(state=JobState.FAILED, error=error)


class FakeProvider(BaseVideoProvider):
    """
    Provider whose submit/check_status answers come from a script.

    ``statuses`` is replayed for every job (``by_job`` overrides it for
    specific job ids); the last entry repeats once the script runs out.
    Without a script every check completes. Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        name: str = "fake",
        tier: ProviderTier = ProviderTier.SHORT_FORM,
        statuses: Optional[List[StatusStep]] = None,
        by_job: Optional[Dict[str, List[StatusStep]]] = None,
        reject: bool = False,
        artifact_prefix: Optional[str] = None,
        poll_interval: float = 0,
        max_poll_attempts: int = 5,
        on_check=None,
    ):
        self.name = name
        self.tier = tier
        self._statuses = statuses
        self._by_job = by_job or {}
        self._reject = reject
        self._artifact_prefix = artifact_prefix or f"https://cdn.example/{name}"
        self._poll_interval = poll_interval
        self._max_poll_attempts = max_poll_attempts
        self._on_check = on_check

        self.calls: List[Dict[str, Any]] = []
        self.submissions: List[Dict[str, Any]] = []
        self._positions: Dict[str, int] = {}
        self.closed = False

        super().__init__(config=ProviderTierConfig(api_key="test-key"))

    @property
    def provider_name(self) -> str:
        return f"Fake {self.name}"

    def _get_default_base_url(self) -> str:
        return "https://fake.example"

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def max_poll_attempts(self) -> int:
        return self._max_poll_attempts

    async def submit(
        self,
        scene_instruction: str,
        continuity_input: Optional[str],
        config: ClipConfig,
    ) -> str:
        self.calls.append({"op": "submit", "continuity_input": continuity_input})
        if self._reject:
            raise ProviderRejectedError(f"{self.name} refused the request", provider=self.name)

        job_id = f"{self.name}-job-{len(self.submissions) + 1}"
        self.submissions.append({
            "job_id": job_id,
            "instruction": scene_instruction,
            "continuity_input": continuity_input,
            "config": config,
        })
        return job_id

    async def check_status(self, job_id: str) -> StatusResult:
        self.calls.append({"op": "check_status", "job_id": job_id})
        if self._on_check is not None:
            self._on_check(self, job_id)

        script = self._by_job.get(job_id, self._statuses)
        if script is None:
            return completed(f"{self._artifact_prefix}/{job_id}.mp4")

        position = self._positions.get(job_id, 0)
        self._positions[job_id] = position + 1
        step = script[min(position, len(script) - 1)]

        if isinstance(step, ProviderError):
            raise step
        return step

    async def download_artifact(self, artifact_ref, output_path) -> str:
        self.calls.append({"op": "download", "artifact_ref": artifact_ref})
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"fake-video")
        return str(output_path)

    @property
    def submit_count(self) -> int:
        return sum(1 for call in self.calls if call["op"] == "submit")

    @property
    def check_count(self) -> int:
        return sum(1 for call in self.calls if call["op"] == "check_status")

    async def close(self) -> None:
        self.closed = True
        await super().close()


def cancel_after_checks(event: asyncio.Event, count: int):
    """on_check hook that sets ``event`` once the provider saw ``count`` checks in total."""
    def hook(provider: FakeProvider, job_id: str) -> None:
        if provider.check_count >= count:
            event.set()
    return hook
