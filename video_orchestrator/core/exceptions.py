"""
Custom Exceptions
=================

Unified exception hierarchy for consistent error handling across the orchestrator.

Scene-level errors (ProviderRejectedError, ProviderUnavailableError) are raised
inside provider clients and absorbed by the fallback coordinator and job poller.
Only request-level errors (InvalidDurationError, ConfigurationError) reach the
caller of the orchestrator entry point.
"""

from typing import Optional, Dict, Any


class VideoOrchestratorError(Exception):
    """Base exception for all orchestrator errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ConfigurationError(VideoOrchestratorError):
    """Configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type
        super().__init__(message, details=details, **kwargs)


class ValidationError(VideoOrchestratorError):
    """Input validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]
        if constraint:
            details["constraint"] = constraint
        super().__init__(message, details=details, **kwargs)


class InvalidDurationError(ValidationError):
    """Target duration is outside what any provider tier can produce."""

    def __init__(self, duration: Any, constraint: str = "must be > 0", **kwargs):
        super().__init__(
            f"Invalid target duration: {duration}s ({constraint})",
            field="target_duration_seconds",
            value=duration,
            constraint=constraint,
            code="InvalidDuration",
            **kwargs,
        )


class ProviderError(VideoOrchestratorError):
    """Provider/API-related errors."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider
        if status_code:
            details["status_code"] = status_code
        if response_body:
            # Truncate large responses
            details["response_body"] = response_body[:500] if len(response_body) > 500 else response_body

        recoverable = kwargs.pop("recoverable", status_code in (429, 500, 502, 503, 504) if status_code else False)
        super().__init__(message, recoverable=recoverable, details=details, **kwargs)
        self.provider = provider
        self.status_code = status_code


class ProviderRejectedError(ProviderError):
    """
    Provider refused a submission (bad input, quota, auth).

    Never retried inside the client; the fallback coordinator moves on
    to the next provider in the priority list.
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("code", "ProviderRejected")
        super().__init__(message, **kwargs)


class ProviderUnavailableError(ProviderError):
    """
    Transient transport failure while checking job status.

    The job poller counts it against the attempt budget but does not
    mark the job failed.
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("code", "ProviderUnavailable")
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class PublishError(VideoOrchestratorError):
    """Asset hosting upload errors."""

    def __init__(
        self,
        message: str,
        artifact_ref: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if artifact_ref:
            details["artifact_ref"] = artifact_ref[:200]
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)
