"""Tests for ScenePlanner"""

import pytest

from video_orchestrator.api.base import ProviderTier
from video_orchestrator.core.config import PlannerConfig
from video_orchestrator.core.exceptions import InvalidDurationError, ValidationError
from video_orchestrator.workflow.models import GenerationRequest, VideoMode
from video_orchestrator.workflow.planner import (
    AVATAR_VARIATIONS,
    FACELESS_CONSTRAINT,
    FACELESS_VARIATIONS,
    ScenePlanner,
)


def faceless(duration, prompt="Glowing bar charts over a dark grid"):
    return GenerationRequest(
        mode=VideoMode.FACELESS,
        target_duration_seconds=duration,
        base_prompt_or_script=prompt,
    )


def avatar(duration, script="", **kwargs):
    return GenerationRequest(
        mode=VideoMode.AVATAR,
        target_duration_seconds=duration,
        base_prompt_or_script=script,
        **kwargs,
    )


# ============================================================
# Scene Counts and Time Ranges
# ============================================================

class TestSceneLayout:
    """Base/extension layout for the short-form tier"""

    @pytest.mark.parametrize("duration", [1, 5, 8])
    def test_short_targets_get_one_base_scene(self, planner, duration):
        scenes = planner.plan(faceless(duration))

        assert len(scenes) == 1
        scene = scenes[0]
        assert scene.is_base
        assert scene.ordinal == 0
        assert (scene.time_range_start, scene.time_range_end) == (0, duration)
        assert scene.tier == ProviderTier.SHORT_FORM

    @pytest.mark.parametrize("duration,extensions", [
        (9, 1),
        (15, 1),
        (16, 2),
        (22, 2),
        (60, 8),
        (147, 20),
        (148, 20),
    ])
    def test_extension_count(self, planner, duration, extensions):
        scenes = planner.plan(faceless(duration))
        assert len(scenes) == 1 + extensions
        assert planner.extension_count(duration) == extensions

    def test_22_seconds_layout(self, planner):
        scenes = planner.plan(faceless(22))

        assert [(s.time_range_start, s.time_range_end) for s in scenes] == [(0, 8), (8, 15), (15, 22)]
        assert [s.is_base for s in scenes] == [True, False, False]
        assert [s.ordinal for s in scenes] == [0, 1, 2]

    @pytest.mark.parametrize("duration", range(9, 149))
    def test_coverage_is_contiguous_and_minimal(self, planner, duration):
        scenes = planner.plan(faceless(duration))

        for previous, current in zip(scenes, scenes[1:]):
            assert current.time_range_start == previous.time_range_end
            assert current.ordinal == previous.ordinal + 1
            assert current.duration_seconds == 7

        covered = scenes[-1].time_range_end
        assert duration <= covered < duration + 7

    def test_above_short_form_ceiling_uses_extended_tier(self, planner):
        scenes = planner.plan(faceless(149))

        assert len(scenes) == 1
        assert scenes[0].tier == ProviderTier.EXTENDED_DURATION
        assert (scenes[0].time_range_start, scenes[0].time_range_end) == (0, 149)
        assert scenes[0].is_base

    def test_extended_tier_up_to_limit(self, planner):
        scenes = planner.plan(faceless(900))
        assert scenes[0].time_range_end == 900

    def test_plan_is_deterministic(self, planner):
        request = faceless(60)
        assert planner.plan(request) == planner.plan(request)


# ============================================================
# Duration Validation
# ============================================================

class TestDurationValidation:

    @pytest.mark.parametrize("duration", [0, -1, -30])
    def test_non_positive_rejected(self, planner, duration):
        with pytest.raises(InvalidDurationError):
            planner.plan(faceless(duration))

    def test_above_extended_limit_rejected(self, planner):
        with pytest.raises(InvalidDurationError) as exc_info:
            planner.plan(faceless(901))
        assert exc_info.value.details["field"] == "target_duration_seconds"

    @pytest.mark.parametrize("duration", [8.5, "10", True, None])
    def test_non_integer_rejected(self, planner, duration):
        with pytest.raises(InvalidDurationError):
            planner.validate_duration(duration)

    def test_custom_limits(self):
        planner = ScenePlanner(PlannerConfig(max_extensions=2, max_duration_seconds=60))

        assert len(planner.plan(faceless(22))) == 3
        assert planner.plan(faceless(23))[0].tier == ProviderTier.EXTENDED_DURATION
        with pytest.raises(InvalidDurationError):
            planner.plan(faceless(61))


# ============================================================
# Instruction Text
# ============================================================

class TestFacelessInstructions:

    def test_every_scene_carries_no_people_constraint(self, planner):
        for scene in planner.plan(faceless(60)):
            assert FACELESS_CONSTRAINT in scene.instruction_text

    def test_base_scene_uses_prompt_and_aspect_ratio(self, planner):
        base = planner.plan(faceless(8, prompt="Rising line graph."))[0]

        assert base.instruction_text.startswith("Rising line graph.")
        assert "16:9 aspect ratio" in base.instruction_text

    def test_extension_text(self, planner):
        scenes = planner.plan(faceless(22))
        second = scenes[2].instruction_text

        assert second.startswith("Continuation of the same shot and subject from the previous clip.")
        assert "Time range: 15s-22s." in second
        assert "Glowing bar charts over a dark grid." in second
        assert second.endswith(FACELESS_CONSTRAINT)

    def test_variations_rotate(self, planner):
        scenes = planner.plan(faceless(148))

        for scene in scenes[1:]:
            expected = FACELESS_VARIATIONS[(scene.ordinal - 1) % len(FACELESS_VARIATIONS)]
            assert expected in scene.instruction_text

        assert FACELESS_VARIATIONS[0] in scenes[1].instruction_text
        assert FACELESS_VARIATIONS[0] in scenes[9].instruction_text


class TestAvatarInstructions:

    def test_script_sliced_across_scenes(self, planner, avatar_request):
        scenes = planner.plan(avatar_request)
        words = avatar_request.base_prompt_or_script.split()

        # 8s * 2.2 = 18 words, then 7s * 2.2 = 15 words per extension
        assert f'"{" ".join(words[:18])}"' in scenes[0].instruction_text
        assert f'"{" ".join(words[18:33])}"' in scenes[1].instruction_text
        assert f'"{" ".join(words[33:48])}"' in scenes[2].instruction_text
        assert "w49" not in " ".join(s.instruction_text for s in scenes)

    def test_short_avatar_speaks_whole_script(self, planner):
        script = " ".join(f"w{i}" for i in range(1, 31))
        base = planner.plan(avatar(8, script))[0]

        assert f'speaking the following script: "{script}"' in base.instruction_text

    def test_no_script_uses_auto_speech(self, planner):
        base = planner.plan(avatar(8, topic="SIP basics", platform="instagram", content_format="reel"))[0]

        assert "delivering a professional reel about SIP basics for instagram" in base.instruction_text

    def test_persona_descriptions(self, planner):
        base = planner.plan(avatar(
            8,
            "Hello there",
            avatar_description="Woman in a navy blazer",
            voice_description="Calm alto voice",
        ))[0]

        assert "Woman in a navy blazer" in base.instruction_text
        assert "Calm alto voice" in base.instruction_text
        assert FACELESS_CONSTRAINT not in base.instruction_text

    def test_extension_without_script_words(self, planner):
        scenes = planner.plan(avatar(22, "Short script"))

        assert "The presenter continues with natural gestures and delivery." in scenes[1].instruction_text
        assert AVATAR_VARIATIONS[0] in scenes[1].instruction_text

    def test_hosted_avatar_plan(self, planner):
        request = avatar(60, "Welcome to our channel", avatar_id="av-1", voice_id="v-1")
        scenes = planner.plan_hosted_avatar(request)

        assert len(scenes) == 1
        assert scenes[0].tier == ProviderTier.AVATAR
        assert scenes[0].instruction_text == "Welcome to our channel"
        assert scenes[0].time_range_end == 60


def test_describe_limits(planner):
    limits = planner.describe_limits()

    assert limits["short_form"]["max_duration_seconds"] == 148
    assert limits["extended_duration"]["min_duration_seconds"] == 149
    assert limits["extended_duration"]["max_duration_seconds"] == 900


# ============================================================
# Image Inputs
# ============================================================

PNG_URI = "data:image/png;base64,iVBORw0KGgo="


def with_images(duration=22, **images):
    return GenerationRequest(
        mode=VideoMode.FACELESS,
        target_duration_seconds=duration,
        base_prompt_or_script="Product on a turntable",
        **images,
    )


class TestImageValidation:

    def test_reference_images_accepted(self, planner, tmp_path):
        local = tmp_path / "logo.png"
        local.write_bytes(b"png")
        request = with_images(reference_images=(PNG_URI, "https://img.example/a.jpg", str(local)))

        scenes = planner.plan(request)

        assert len(scenes) == 3

    def test_first_and_last_frame_accepted(self, planner):
        planner.plan(with_images(first_frame=PNG_URI, last_frame="https://img.example/end.png"))

    def test_extended_tier_takes_first_frame(self, planner):
        scenes = planner.plan(with_images(300, first_frame=PNG_URI))

        assert scenes[0].tier == ProviderTier.EXTENDED_DURATION

    @pytest.mark.parametrize("images, field", [
        ({"reference_images": (PNG_URI,) * 4}, "reference_images"),
        ({"last_frame": PNG_URI}, "last_frame"),
        ({"reference_images": (PNG_URI,), "first_frame": PNG_URI}, "reference_images"),
        ({"first_frame": "data:image/png,raw"}, "first_frame"),
        ({"first_frame": "   "}, "first_frame"),
        ({"reference_images": ("/no/such/image.png",)}, "reference_images"),
    ])
    def test_invalid_combinations_rejected(self, planner, images, field):
        with pytest.raises(ValidationError) as exc_info:
            planner.plan(with_images(**images))
        assert exc_info.value.details["field"] == field

    @pytest.mark.parametrize("images", [
        {"reference_images": (PNG_URI,)},
        {"first_frame": PNG_URI, "last_frame": PNG_URI},
    ])
    def test_extended_tier_rejects_references_and_last_frame(self, planner, images):
        with pytest.raises(ValidationError):
            planner.plan(with_images(300, **images))

    def test_hosted_avatar_rejects_images(self, planner):
        request = avatar(30, "Hello", avatar_id="av-1", first_frame=PNG_URI)

        with pytest.raises(ValidationError):
            planner.plan_hosted_avatar(request)
