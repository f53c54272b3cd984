"""
Job Poller
==========

Drives a submitted provider job to a terminal state with a bounded,
cancellable sleep-and-check loop.
"""

import asyncio
import logging
from typing import Optional

from ..api.base import BaseVideoProvider, JobState
from ..core.exceptions import ProviderError, ProviderUnavailableError
from ..core.security import redact_api_key
from .models import ClipState, PollOutcome

logger = logging.getLogger(__name__)


class JobPoller:
    """
    Waits for provider jobs.

    Each attempt sleeps ``interval_seconds`` then calls ``check_status``.
    ``ProviderUnavailableError`` uses up an attempt without failing the
    job; running out of attempts yields TIMED_OUT, never FAILED.
    """

    async def wait(
        self,
        provider_job_id: str,
        client: BaseVideoProvider,
        max_attempts: Optional[int] = None,
        interval_seconds: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PollOutcome:
        """
        Poll until the job completes, fails, times out or is cancelled.

        Args:
            provider_job_id: Job id returned by ``client.submit``
            client: The provider that owns the job
            max_attempts: Status checks allowed (defaults to the client's budget)
            interval_seconds: Sleep before each check (defaults to the client's budget)
            cancel_event: Set to abort the wait immediately

        Returns:
            PollOutcome with a terminal ClipState
        """
        max_attempts = max_attempts if max_attempts is not None else client.max_poll_attempts
        interval = interval_seconds if interval_seconds is not None else client.poll_interval
        last_error: Optional[str] = None

        for attempt in range(1, max_attempts + 1):
            if await self._sleep(interval, cancel_event):
                logger.info(f"Polling cancelled for {client.name} job {provider_job_id}")
                return PollOutcome(state=ClipState.CANCELLED, error="Cancelled", attempts=attempt - 1)

            try:
                status = await client.check_status(provider_job_id)
            except ProviderUnavailableError as e:
                last_error = redact_api_key(e.message)
                logger.warning(f"Transient poll error ({attempt}/{max_attempts}): {last_error}")
                continue
            except ProviderError as e:
                error = redact_api_key(e.message)
                logger.error(f"{client.name} job {provider_job_id} status check failed: {error}")
                return PollOutcome(state=ClipState.FAILED, error=error, attempts=attempt)

            if status.state == JobState.COMPLETED and not status.artifact_ref:
                return PollOutcome(
                    state=ClipState.FAILED,
                    error="Completed without an artifact reference",
                    attempts=attempt,
                )

            if status.state == JobState.COMPLETED:
                logger.info(f"{client.name} job {provider_job_id} completed after {attempt} check(s)")
                return PollOutcome(
                    state=ClipState.COMPLETED,
                    artifact_ref=status.artifact_ref,
                    attempts=attempt,
                )

            if status.state == JobState.FAILED:
                logger.warning(f"{client.name} job {provider_job_id} failed: {status.error}")
                return PollOutcome(
                    state=ClipState.FAILED,
                    error=status.error or "Unknown error",
                    attempts=attempt,
                )

            logger.debug(f"Job {provider_job_id} pending ({attempt}/{max_attempts})")

        timeout_message = f"Timed out after {max_attempts} checks at {interval}s intervals"
        if last_error:
            timeout_message += f" (last error: {last_error})"
        logger.warning(f"{client.name} job {provider_job_id}: {timeout_message}")

        return PollOutcome(state=ClipState.TIMED_OUT, error=timeout_message, attempts=max_attempts)

    @staticmethod
    async def _sleep(interval: float, cancel_event: Optional[asyncio.Event]) -> bool:
        """Sleep for ``interval``; return True if cancelled first."""
        if cancel_event is None:
            await asyncio.sleep(interval)
            return False

        if cancel_event.is_set():
            return True

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            return False
        return True
