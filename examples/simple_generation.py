#!/usr/bin/env python3
"""
Simple Generation Example
=========================

Generate a 22 second faceless video (one base clip plus two extensions)
and print progress as each scene finishes.
"""

import asyncio
import os
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from video_orchestrator import (
    GenerationRequest,
    ProgressEvent,
    VideoMode,
    VideoOrchestrator,
)


def on_progress(event: ProgressEvent) -> None:
    scene = event.scene_ordinal if event.scene_ordinal is not None else "-"
    print(f"  [{scene}] {event.state} {event.provider or ''} {event.message}")


async def main():
    """Simple long-form generation example."""

    # Check for API keys
    if not (os.getenv("GEMINI_API_KEY") or os.getenv("FAL_KEY")):
        print("Please set GEMINI_API_KEY or FAL_KEY environment variable")
        print("Get your keys at: https://aistudio.google.com/ and https://fal.ai/")
        return

    request = GenerationRequest(
        mode=VideoMode.FACELESS,
        target_duration_seconds=22,
        base_prompt_or_script=(
            "Abstract animated line charts rising over a dark blue grid, "
            "glowing data points, smooth camera push-in, cinematic lighting"
        ),
    )

    async with VideoOrchestrator() as orchestrator:
        scenes = orchestrator.plan(request)

        print("=== Simple Video Generation ===")
        print(f"Target: {request.target_duration_seconds}s in {len(scenes)} scenes")
        for scene in scenes:
            print(f"  {scene.ordinal}: {scene.time_range_start}s-{scene.time_range_end}s")

        print("\nGenerating video...")
        result = await orchestrator.generate(request, on_progress=on_progress)

    print(f"\nStatus: {result.status.value}")
    print(f"Covered: {result.total_duration_seconds}s")

    if result.local_path:
        print(f"Downloaded: {result.local_path}")
    if result.hosted_url:
        print(f"Hosted URL: {result.hosted_url}")

    for job in result.per_scene_outcomes:
        if job.error:
            print(f"Scene {job.scene_ordinal} error: {job.error}")


if __name__ == "__main__":
    asyncio.run(main())
