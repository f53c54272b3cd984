"""
Scene Planner
=============

Turns a request into an ordered list of scenes.

- ``target <= 8``: one base scene spanning the target
- ``8 < target <= 148``: an 8 s base scene plus ``ceil((target - 8) / 7)``
  extension scenes of 7 s each, chained on the short-form tier
- ``target > 148``: one scene on the extended-duration tier, not chained

Image inputs are checked here too, before anything is submitted.
"""

import math
import logging
from pathlib import Path
from typing import List, Optional, Dict, Any

from ..api.base import ProviderTier
from ..core.config import PlannerConfig
from ..core.exceptions import InvalidDurationError, ValidationError
from ..core.security import is_remote_ref
from .models import GenerationRequest, SceneDescriptor, VideoMode

logger = logging.getLogger(__name__)


MAX_REFERENCE_IMAGES = 3

FACELESS_CONSTRAINT = "No people, faces, or humans."

FACELESS_STYLE = (
    "Abstract data visualizations, animated charts and geometric shapes, "
    "motion graphics only. Dynamic camera movement around 3D elements. "
    "Volumetric lighting with soft glows. Modern, clean, premium aesthetic. "
    "Cinematic quality."
)

AVATAR_STYLE = (
    "Camera: Medium shot, professional framing, slight depth of field. "
    "Lighting: Soft key light, professional studio setup with subtle rim lighting. "
    "Background: Elegant office environment with soft bokeh, professional corporate setting."
)

DEFAULT_AVATAR_DESCRIPTION = (
    "Indian male professional in formal business attire, confident posture, warm expression"
)
DEFAULT_VOICE_DESCRIPTION = (
    "Deep, confident Indian male voice with slight accent, clear articulation"
)

FACELESS_VARIATIONS = [
    "Camera orbits around the visual elements with dynamic lighting transitions",
    "Zoom into key data points revealing intricate details and patterns",
    "Visual elements reorganize and transform with smooth animated transitions",
    "Camera pulls back to reveal full scene with enhanced lighting effects",
    "Data elements pulse and animate with synchronized motion",
    "Cinematic rotation showcasing different angles and perspectives",
    "Volumetric lighting reveals hidden layers and depth",
    "Elements coalesce and disperse in fluid choreographed motion",
]

AVATAR_VARIATIONS = [
    "Camera slowly pushes in to medium close-up, maintaining eye contact and professional framing",
    "Subtle camera dolly right revealing more of the background environment",
    "Camera pulls back to medium wide shot showing full upper body and gestures",
    "Slight camera tilt up with natural subject movement and confident delivery",
    "Camera slowly pans left while subject maintains engagement with viewer",
    "Gentle camera push in to close-up emphasizing facial expressions and sincerity",
    "Camera arc right to slightly off-center angle adding dynamic visual interest",
    "Slow zoom out revealing professional office setting with subject centered",
]


class ScenePlanner:
    """
    Plans scenes for a generation request.

    Pure and deterministic: the same request always yields the same plan.
    """

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def plan(self, request: GenerationRequest) -> List[SceneDescriptor]:
        """
        Plan the scenes for a request.

        Raises:
            InvalidDurationError: target <= 0 or above the extended-tier limit
            ValidationError: image inputs the planned tier cannot take
        """
        target = self.validate_duration(request.target_duration_seconds)
        self.validate_images(request, target)

        if target > self.config.short_form_ceiling:
            logger.info(f"Planning {target}s as a single extended-duration scene")
            return [self._extended_scene(request, target)]

        base_length = min(target, self.config.base_clip_seconds)
        extensions = self.extension_count(target)

        words = self._script_words(request)
        base_words = words if extensions == 0 else words[:self._words_for(base_length)]

        scenes = [
            SceneDescriptor(
                ordinal=0,
                time_range_start=0,
                time_range_end=base_length,
                instruction_text=self._base_instruction(request, " ".join(base_words)),
                is_base=True,
            )
        ]

        cursor = len(base_words)
        per_extension = self._words_for(self.config.extension_clip_seconds)

        for ordinal in range(1, extensions + 1):
            start = self.config.base_clip_seconds + (ordinal - 1) * self.config.extension_clip_seconds
            end = start + self.config.extension_clip_seconds
            script_slice = " ".join(words[cursor:cursor + per_extension])
            cursor += per_extension

            scenes.append(
                SceneDescriptor(
                    ordinal=ordinal,
                    time_range_start=start,
                    time_range_end=end,
                    instruction_text=self._extension_instruction(request, ordinal, start, end, script_slice),
                    is_base=False,
                )
            )

        logger.info(
            f"Planned {len(scenes)} scene(s) for {target}s "
            f"({extensions} extension(s), covers {scenes[-1].time_range_end}s)"
        )
        return scenes

    def plan_hosted_avatar(self, request: GenerationRequest) -> List[SceneDescriptor]:
        """One avatar-tier scene: the hosted avatar speaks the whole script."""
        target = self.validate_duration(request.target_duration_seconds)
        if request.has_images:
            raise ValidationError(
                "Hosted avatars do not take image inputs",
                field="reference_images" if request.reference_images else "first_frame",
                constraint="omit avatar_id to use image inputs",
            )
        return [
            SceneDescriptor(
                ordinal=0,
                time_range_start=0,
                time_range_end=target,
                instruction_text=request.base_prompt_or_script.strip(),
                is_base=True,
                tier=ProviderTier.AVATAR,
            )
        ]

    def validate_duration(self, target: Any) -> int:
        """Reject non-integer, non-positive and over-limit durations."""
        if isinstance(target, bool) or not isinstance(target, int):
            raise InvalidDurationError(target, constraint="must be an integer number of seconds")
        if target <= 0:
            raise InvalidDurationError(target)
        if target > self.config.max_duration_seconds:
            raise InvalidDurationError(
                target,
                constraint=f"must be <= {self.config.max_duration_seconds}",
            )
        return target

    def validate_images(self, request: GenerationRequest, target: int) -> None:
        """Reject image input combinations no provider in the planned tier accepts."""
        refs = list(request.reference_images)

        if len(refs) > MAX_REFERENCE_IMAGES:
            raise ValidationError(
                f"At most {MAX_REFERENCE_IMAGES} reference images are allowed, got {len(refs)}",
                field="reference_images",
                constraint=f"<= {MAX_REFERENCE_IMAGES}",
            )
        if request.last_frame and not request.first_frame:
            raise ValidationError(
                "last_frame requires first_frame",
                field="last_frame",
                constraint="first and last frames are given together",
            )
        if refs and request.first_frame:
            raise ValidationError(
                "Reference images cannot be combined with first/last frames",
                field="reference_images",
                constraint="use either reference_images or first_frame",
            )
        if target > self.config.short_form_ceiling and (refs or request.last_frame):
            raise ValidationError(
                f"Videos over {self.config.short_form_ceiling}s take only a first frame image",
                field="reference_images" if refs else "last_frame",
                constraint="extended-duration tier supports first_frame only",
            )

        for name, ref in [("reference_images", r) for r in refs] + [
            ("first_frame", request.first_frame),
            ("last_frame", request.last_frame),
        ]:
            if ref is None:
                continue
            if not isinstance(ref, str) or not ref.strip():
                raise ValidationError(f"{name} must be a path, URL or data URI", field=name, value=ref)
            if ref.startswith("data:"):
                if ";base64," not in ref:
                    raise ValidationError(f"{name} data URI must be base64 encoded", field=name)
            elif not is_remote_ref(ref) and not Path(ref).is_file():
                raise ValidationError(f"{name} image not found: {ref}", field=name, value=ref)

    def extension_count(self, target: int) -> int:
        """Number of 7 s extensions needed after the base scene (max 20)."""
        if target <= self.config.base_clip_seconds:
            return 0
        needed = math.ceil((target - self.config.base_clip_seconds) / self.config.extension_clip_seconds)
        return min(needed, self.config.max_extensions)

    def describe_limits(self) -> Dict[str, Any]:
        return {
            "short_form": {
                "base_clip_seconds": self.config.base_clip_seconds,
                "extension_clip_seconds": self.config.extension_clip_seconds,
                "max_extensions": self.config.max_extensions,
                "max_duration_seconds": self.config.short_form_ceiling,
            },
            "extended_duration": {
                "min_duration_seconds": self.config.short_form_ceiling + 1,
                "max_duration_seconds": self.config.max_duration_seconds,
            },
        }

    # -------------------------------------------------------------------------
    # Instruction Text
    # -------------------------------------------------------------------------

    def _words_for(self, seconds: int) -> int:
        return round(seconds * self.config.words_per_second)

    @staticmethod
    def _script_words(request: GenerationRequest) -> List[str]:
        if request.mode != VideoMode.AVATAR:
            return []
        return request.base_prompt_or_script.split()

    def _base_instruction(self, request: GenerationRequest, script: str) -> str:
        if request.mode == VideoMode.AVATAR:
            return self._avatar_prompt(request, script)
        return self._faceless_prompt(request)

    @staticmethod
    def _faceless_prompt(request: GenerationRequest) -> str:
        prompt = request.base_prompt_or_script.strip().rstrip(".")
        return f"{prompt}. {FACELESS_CONSTRAINT} {FACELESS_STYLE} {request.aspect_ratio.value} aspect ratio."

    @staticmethod
    def _avatar_prompt(request: GenerationRequest, script: str) -> str:
        avatar = request.avatar_description or DEFAULT_AVATAR_DESCRIPTION
        voice = request.voice_description or DEFAULT_VOICE_DESCRIPTION

        if script:
            speech = f'speaking the following script: "{script}"'
        else:
            topic = request.topic or "financial services and investment opportunities"
            platform = request.platform or "linkedin"
            content_format = request.content_format or "testimonial"
            speech = (
                f"delivering a professional {content_format} about {topic} for {platform}. "
                "Generate natural, engaging speech that is informative, trustworthy, "
                "and appropriate for the platform"
            )

        language = f" Spoken language: {request.language}." if request.language != "en" else ""
        return f"Professional video featuring {avatar}. {voice}, {speech}.{language} {AVATAR_STYLE}"

    def _extension_instruction(
        self,
        request: GenerationRequest,
        ordinal: int,
        start: int,
        end: int,
        script_slice: str,
    ) -> str:
        is_avatar = request.mode == VideoMode.AVATAR
        variations = AVATAR_VARIATIONS if is_avatar else FACELESS_VARIATIONS
        variation = variations[(ordinal - 1) % len(variations)]

        parts = [
            "Continuation of the same shot and subject from the previous clip.",
            f"Time range: {start}s-{end}s.",
        ]

        if is_avatar:
            if script_slice:
                parts.append(f'The presenter continues speaking: "{script_slice}".')
            else:
                parts.append("The presenter continues with natural gestures and delivery.")
        else:
            parts.append(f"{request.base_prompt_or_script.strip().rstrip('.')}.")

        parts.append(f"{variation}.")

        if not is_avatar:
            parts.append(FACELESS_CONSTRAINT)

        return " ".join(parts)

    def _extended_scene(self, request: GenerationRequest, target: int) -> SceneDescriptor:
        if request.mode == VideoMode.AVATAR:
            instruction = self._avatar_prompt(request, request.base_prompt_or_script.strip())
        else:
            instruction = self._faceless_prompt(request)

        return SceneDescriptor(
            ordinal=0,
            time_range_start=0,
            time_range_end=target,
            instruction_text=instruction,
            is_base=True,
            tier=ProviderTier.EXTENDED_DURATION,
        )
