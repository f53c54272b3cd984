"""Tests for FallbackCoordinator"""

import asyncio

import pytest

from video_orchestrator.api.base import ClipConfig
from video_orchestrator.workflow.fallback import FallbackCoordinator
from video_orchestrator.workflow.models import ClipState, SceneDescriptor

from tests.mocks.providers import FakeProvider, cancel_after_checks, failed, pending


@pytest.fixture
def scene():
    return SceneDescriptor(
        ordinal=1,
        time_range_start=8,
        time_range_end=15,
        instruction_text="Continuation of the same shot",
        is_base=False,
    )


@pytest.fixture
def coordinator():
    return FallbackCoordinator()


@pytest.mark.asyncio
async def test_first_provider_success(coordinator, scene):
    primary = FakeProvider(name="a")
    backup = FakeProvider(name="b")

    job = await coordinator.generate_one_scene(scene, "https://cdn/prev.mp4", [primary, backup])

    assert job.state == ClipState.COMPLETED
    assert job.provider == "a"
    assert job.providers_attempted == ["a"]
    assert job.artifact_ref == "https://cdn.example/a/a-job-1.mp4"
    assert backup.submit_count == 0


@pytest.mark.asyncio
async def test_rejected_provider_falls_through(coordinator, scene):
    primary = FakeProvider(name="a", reject=True)
    backup = FakeProvider(name="b")

    job = await coordinator.generate_one_scene(scene, "https://cdn/prev.mp4", [primary, backup])

    assert job.state == ClipState.COMPLETED
    assert job.provider == "b"
    assert job.providers_attempted == ["a", "b"]
    assert primary.check_count == 0
    assert len(job.history) == 1
    assert job.history[0].state == ClipState.FAILED
    assert "refused" in job.history[0].error


@pytest.mark.asyncio
async def test_failed_and_timed_out_attempts_kept_in_history(coordinator, scene):
    first = FakeProvider(name="a", statuses=[failed("unsafe content")])
    second = FakeProvider(name="b", statuses=[pending()], max_poll_attempts=2)
    third = FakeProvider(name="c")

    job = await coordinator.generate_one_scene(scene, None, [first, second, third])

    assert job.state == ClipState.COMPLETED
    assert job.providers_attempted == ["a", "b", "c"]
    assert [(h.provider, h.state) for h in job.history] == [
        ("a", ClipState.FAILED),
        ("b", ClipState.TIMED_OUT),
    ]
    assert job.history[1].poll_attempts == 2


@pytest.mark.asyncio
async def test_all_providers_fail(coordinator, scene):
    first = FakeProvider(name="a", reject=True)
    second = FakeProvider(name="b", statuses=[failed("quota exceeded")])

    job = await coordinator.generate_one_scene(scene, None, [first, second])

    assert job.state == ClipState.FAILED
    assert job.providers_attempted == ["a", "b"]
    assert job.error.startswith("All providers failed: ")
    assert "a: rejected" in job.error
    assert "b: failed: quota exceeded" in job.error
    assert len(job.history) == 2


@pytest.mark.asyncio
async def test_timed_out_only_providers_fail_scene(coordinator, scene):
    provider = FakeProvider(name="a", statuses=[pending()], max_poll_attempts=3)

    job = await coordinator.generate_one_scene(scene, None, [provider])

    assert job.state == ClipState.FAILED
    assert "a: timed_out: Timed out after 3 checks" in job.error
    assert job.history[0].state == ClipState.TIMED_OUT


@pytest.mark.asyncio
async def test_empty_provider_list(coordinator, scene):
    job = await coordinator.generate_one_scene(scene, None, [])

    assert job.state == ClipState.FAILED
    assert job.providers_attempted == []


@pytest.mark.asyncio
async def test_continuity_and_duration_passed_to_provider(coordinator, scene):
    provider = FakeProvider(name="a")
    config = ClipConfig(aspect_ratio="9:16", duration_seconds=99)

    await coordinator.generate_one_scene(scene, "https://cdn/prev.mp4", [provider], clip_config=config)

    submission = provider.submissions[0]
    assert submission["continuity_input"] == "https://cdn/prev.mp4"
    assert submission["instruction"] == scene.instruction_text
    assert submission["config"].duration_seconds == 7
    assert submission["config"].aspect_ratio == "9:16"
    # Caller's config is left alone
    assert config.duration_seconds == 99


@pytest.mark.asyncio
async def test_cancel_stops_without_next_provider(coordinator, scene):
    cancel_event = asyncio.Event()
    first = FakeProvider(name="a", statuses=[pending()], on_check=cancel_after_checks(cancel_event, 1))
    second = FakeProvider(name="b")

    job = await coordinator.generate_one_scene(scene, None, [first, second], cancel_event=cancel_event)

    assert job.state == ClipState.CANCELLED
    assert job.provider == "a"
    assert second.submit_count == 0


@pytest.mark.asyncio
async def test_progress_events(scene):
    events = []
    coordinator = FallbackCoordinator(on_progress=events.append)

    await coordinator.generate_one_scene(scene, None, [FakeProvider(name="a")])

    assert [e.state for e in events] == ["queued", "submitted", "completed"]
    assert all(e.scene_ordinal == 1 for e in events)
    assert events[-1].provider == "a"
