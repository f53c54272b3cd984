"""
Workflow Models
===============

Data structures shared by the planner, chain executor and entry point.
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple, Callable

from ..api.base import ProviderTier
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)


class VideoMode(Enum):
    """Whether a presenter appears on screen."""

    FACELESS = "faceless"
    AVATAR = "avatar"


class AspectRatio(Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class ClipState(Enum):
    """Lifecycle of a single provider attempt for one scene."""

    QUEUED = "queued"
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ClipState.COMPLETED,
            ClipState.FAILED,
            ClipState.TIMED_OUT,
            ClipState.CANCELLED,
        )


_ALLOWED_TRANSITIONS = {
    ClipState.QUEUED: {ClipState.SUBMITTED, ClipState.FAILED, ClipState.CANCELLED},
    ClipState.SUBMITTED: {ClipState.POLLING, ClipState.FAILED, ClipState.CANCELLED},
    ClipState.POLLING: {
        ClipState.COMPLETED,
        ClipState.FAILED,
        ClipState.TIMED_OUT,
        ClipState.CANCELLED,
    },
}


class ChainStatus(Enum):
    """Chain executor state machine: IDLE -> RUNNING -> COMPLETED | PARTIAL."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"


@dataclass(frozen=True)
class SceneDescriptor:
    """One planned clip. Immutable once produced by the planner."""

    ordinal: int
    time_range_start: int
    time_range_end: int
    instruction_text: str
    is_base: bool
    tier: ProviderTier = ProviderTier.SHORT_FORM

    @property
    def duration_seconds(self) -> int:
        return self.time_range_end - self.time_range_start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ordinal": self.ordinal,
            "time_range": [self.time_range_start, self.time_range_end],
            "is_base": self.is_base,
            "tier": self.tier.value,
            "instruction_text": self.instruction_text,
        }


def _image_list(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) and v for v in value):
        return tuple(value)
    raise ValidationError(
        "reference_images must be a list of image paths, URLs or data URIs",
        field="reference_images",
        value=value,
    )


def _describe_image(ref: Optional[str]) -> Optional[str]:
    """Manifest-safe image reference (inline data is not repeated)."""
    if ref and ref.startswith("data:"):
        return ref.split(",", 1)[0] + ",..."
    return ref


@dataclass(frozen=True)
class GenerationRequest:
    """
    A single long-form video request.

    ``base_prompt_or_script`` is a visual prompt in faceless mode and the
    spoken script in avatar mode (may be empty when a script writer is
    configured). ``avatar_id``/``voice_id`` route avatar mode to the
    hosted-avatar tier instead of the chained short-form tier.

    Image inputs shape only the base scene: ``first_frame`` starts it from
    an image (interpolating to ``last_frame`` when given), while up to 3
    ``reference_images`` keep a subject's appearance. The two kinds are
    mutually exclusive.
    """

    mode: VideoMode
    target_duration_seconds: int
    base_prompt_or_script: str = ""
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    language: str = "en"

    # Optional persona/context
    topic: Optional[str] = None
    platform: Optional[str] = None
    content_format: Optional[str] = None
    avatar_description: Optional[str] = None
    voice_description: Optional[str] = None

    # Hosted avatar
    avatar_id: Optional[str] = None
    voice_id: Optional[str] = None

    # Image inputs for the base scene: local path, URL or data URI
    reference_images: Tuple[str, ...] = ()
    first_frame: Optional[str] = None
    last_frame: Optional[str] = None

    @property
    def uses_hosted_avatar(self) -> bool:
        return self.mode == VideoMode.AVATAR and bool(self.avatar_id)

    @property
    def has_images(self) -> bool:
        return bool(self.reference_images or self.first_frame or self.last_frame)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationRequest":
        """Build a request from plain JSON-like values."""
        try:
            mode = VideoMode(data.get("mode", VideoMode.FACELESS.value))
        except ValueError:
            raise ValidationError(
                f"Unknown mode: {data.get('mode')}",
                field="mode",
                value=data.get("mode"),
                constraint="faceless | avatar",
            )
        try:
            aspect_ratio = AspectRatio(data.get("aspect_ratio", AspectRatio.LANDSCAPE.value))
        except ValueError:
            raise ValidationError(
                f"Unsupported aspect ratio: {data.get('aspect_ratio')}",
                field="aspect_ratio",
                value=data.get("aspect_ratio"),
                constraint="16:9 | 9:16",
            )

        return cls(
            mode=mode,
            target_duration_seconds=data.get("target_duration_seconds", 0),
            base_prompt_or_script=data.get("base_prompt_or_script") or "",
            aspect_ratio=aspect_ratio,
            language=data.get("language", "en"),
            topic=data.get("topic"),
            platform=data.get("platform"),
            content_format=data.get("content_format"),
            avatar_description=data.get("avatar_description"),
            voice_description=data.get("voice_description"),
            avatar_id=data.get("avatar_id"),
            voice_id=data.get("voice_id"),
            reference_images=_image_list(data.get("reference_images")),
            first_frame=data.get("first_frame") or None,
            last_frame=data.get("last_frame") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "target_duration_seconds": self.target_duration_seconds,
            "base_prompt_or_script": self.base_prompt_or_script,
            "aspect_ratio": self.aspect_ratio.value,
            "language": self.language,
            "topic": self.topic,
            "platform": self.platform,
            "content_format": self.content_format,
            "avatar_id": self.avatar_id,
            "reference_images": [_describe_image(ref) for ref in self.reference_images],
            "first_frame": _describe_image(self.first_frame),
            "last_frame": _describe_image(self.last_frame),
        }


@dataclass
class ClipJob:
    """
    One provider attempt for one scene.

    A failed attempt is never reused: the fallback coordinator starts a
    fresh ClipJob for the next provider and keeps the old one in
    ``history``.
    """

    scene_ordinal: int
    provider: Optional[str] = None
    providers_attempted: List[str] = field(default_factory=list)
    state: ClipState = ClipState.QUEUED
    provider_job_id: Optional[str] = None
    artifact_ref: Optional[str] = None
    error: Optional[str] = None
    poll_attempts: int = 0
    history: List["ClipJob"] = field(default_factory=list)

    created_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    def transition(self, new_state: ClipState) -> None:
        """Move to ``new_state``; terminal states are final."""
        allowed = _ALLOWED_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise ValidationError(
                f"Illegal clip transition {self.state.value} -> {new_state.value}",
                field="state",
                value=new_state.value,
            )
        self.state = new_state
        if new_state.is_terminal:
            self.finished_at = datetime.now()

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene_ordinal": self.scene_ordinal,
            "provider": self.provider,
            "providers_attempted": list(self.providers_attempted),
            "state": self.state.value,
            "provider_job_id": self.provider_job_id,
            "artifact_ref": self.artifact_ref,
            "error": self.error,
            "poll_attempts": self.poll_attempts,
            "created_at": self.created_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "history": [job.to_dict() for job in self.history],
        }


@dataclass
class PollOutcome:
    """Terminal result of driving one provider job."""

    state: ClipState
    artifact_ref: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0


@dataclass
class ProgressEvent:
    """Progress notification emitted per scene state change."""

    scene_ordinal: Optional[int]
    state: str
    message: str = ""
    total_scenes: Optional[int] = None
    provider: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene_ordinal": self.scene_ordinal,
            "state": self.state,
            "message": self.message,
            "total_scenes": self.total_scenes,
            "provider": self.provider,
            "timestamp": self.timestamp.isoformat(),
        }


ProgressCallback = Callable[[ProgressEvent], Any]


async def emit_progress(callback: Optional[ProgressCallback], event: ProgressEvent) -> None:
    """Deliver an event to a sync or async callback; listener errors are logged."""
    if callback is None:
        return
    try:
        result = callback(event)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.warning(f"Progress callback failed: {e}")


@dataclass(frozen=True)
class ChainResult:
    """Aggregate outcome of one generation. Frozen once the chain finishes."""

    status: ChainStatus
    scenes_completed: int
    scenes_failed: int
    total_duration_seconds: int
    final_artifact_ref: Optional[str]
    per_scene_outcomes: Tuple[ClipJob, ...] = ()
    scenes_planned: int = 0
    hosted_url: Optional[str] = None
    local_path: Optional[str] = None
    cancelled: bool = False

    @property
    def is_complete(self) -> bool:
        return self.status == ChainStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "scenes_planned": self.scenes_planned,
            "scenes_completed": self.scenes_completed,
            "scenes_failed": self.scenes_failed,
            "total_duration_seconds": self.total_duration_seconds,
            "final_artifact_ref": self.final_artifact_ref,
            "hosted_url": self.hosted_url,
            "local_path": self.local_path,
            "cancelled": self.cancelled,
            "per_scene_outcomes": [job.to_dict() for job in self.per_scene_outcomes],
        }
