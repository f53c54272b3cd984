#!/usr/bin/env python3
"""
CLI Script: Generate Video
==========================

Command-line tool for generating one long-form video.

Usage:
    python scripts/generate_video.py --prompt "Animated market charts" --duration 22
    python scripts/generate_video.py --mode avatar --topic "SIP basics" --duration 45
    python scripts/generate_video.py --info
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from video_orchestrator import (
    ChainResult,
    Config,
    GenerationRequest,
    ProgressEvent,
    VideoMode,
    VideoOrchestrator,
    VideoOrchestratorError,
)
from video_orchestrator.workflow import AspectRatio
from video_orchestrator.utils import format_file_size, get_file_size


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Generate a long-form AI video",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --prompt "Abstract data visualization of compound growth" -d 22
  %(prog)s --mode avatar --script "Hello and welcome..." -d 30
  %(prog)s --mode avatar --topic "Tax saving tips" --platform instagram -d 60
  %(prog)s --mode avatar --avatar-id abc123 --voice-id v456 --script "..." -d 60
  %(prog)s --prompt "Product spin" --first-frame shots/start.png --last-frame shots/end.png -d 8
        """,
    )

    parser.add_argument(
        "--mode",
        default="faceless",
        choices=[m.value for m in VideoMode],
        help="Faceless visuals or a speaking avatar (default: faceless)",
    )
    parser.add_argument("--prompt", help="Visual prompt (faceless mode)")
    parser.add_argument("--script", help="Spoken script (avatar mode)")

    parser.add_argument(
        "-d", "--duration",
        type=int,
        default=8,
        help="Target duration in seconds (default: 8)",
    )
    parser.add_argument(
        "--aspect-ratio",
        default="16:9",
        choices=[a.value for a in AspectRatio],
        help="Aspect ratio (default: 16:9)",
    )
    parser.add_argument("--language", default="en", help="Language code (default: en)")

    # Avatar context
    parser.add_argument("--topic", help="Topic for auto-generated speech")
    parser.add_argument("--platform", help="Target platform (linkedin, instagram, youtube...)")
    parser.add_argument("--format", dest="content_format", help="Content format (reel, testimonial...)")
    parser.add_argument("--avatar-description", help="Presenter appearance")
    parser.add_argument("--voice-description", help="Presenter voice")
    parser.add_argument("--avatar-id", help="Hosted avatar id (routes to the avatar tier)")
    parser.add_argument("--voice-id", help="Hosted avatar voice id")

    # Image inputs (base scene)
    parser.add_argument(
        "--reference-image",
        action="append",
        dest="reference_images",
        help="Subject reference image path or URL (repeatable, max 3)",
    )
    parser.add_argument("--first-frame", help="Start the video from this image")
    parser.add_argument("--last-frame", help="Interpolate to this image (needs --first-frame)")

    # Config
    parser.add_argument("--config", help="Path to config file")
    parser.add_argument("--no-publish", action="store_true", help="Skip Cloudinary upload")
    parser.add_argument("--info", action="store_true", help="Show provider info and exit")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    return parser.parse_args()


def print_progress(event: ProgressEvent) -> None:
    scene = f"scene {event.scene_ordinal}" if event.scene_ordinal is not None else "chain"
    print(f"  [{scene}] {event.state}: {event.message}")


def print_result(result: ChainResult) -> None:
    print("\n" + "-" * 50)
    print(f"Status: {result.status.value}")
    print(f"Scenes: {result.scenes_completed}/{result.scenes_planned} completed, {result.scenes_failed} failed")
    print(f"Duration: {result.total_duration_seconds}s")

    if result.final_artifact_ref:
        print(f"Artifact: {result.final_artifact_ref}")
    if result.local_path:
        size = get_file_size(result.local_path)
        print(f"Video saved: {result.local_path}" + (f" ({format_file_size(size)})" if size else ""))
    if result.hosted_url:
        print(f"Hosted URL: {result.hosted_url}")
    if result.cancelled:
        print("Cancelled before completion")

    for job in result.per_scene_outcomes:
        if job.error:
            print(f"Scene {job.scene_ordinal} error: {job.error}")

    print("=" * 50)


async def main():
    """Main CLI entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = Config.load(args.config)
    if args.no_publish:
        config.publishing.enabled = False

    orchestrator = VideoOrchestrator(config=config)

    if args.info:
        print(json.dumps(orchestrator.get_provider_info(), indent=2))
        await orchestrator.close()
        return

    mode = VideoMode(args.mode)
    text = (args.script if mode == VideoMode.AVATAR else args.prompt) or ""

    if mode == VideoMode.FACELESS and not text:
        print("Error: --prompt is required in faceless mode")
        sys.exit(1)

    request = GenerationRequest(
        mode=mode,
        target_duration_seconds=args.duration,
        base_prompt_or_script=text,
        aspect_ratio=AspectRatio(args.aspect_ratio),
        language=args.language,
        topic=args.topic,
        platform=args.platform,
        content_format=args.content_format,
        avatar_description=args.avatar_description,
        voice_description=args.voice_description,
        avatar_id=args.avatar_id,
        voice_id=args.voice_id,
        reference_images=tuple(args.reference_images or ()),
        first_frame=args.first_frame,
        last_frame=args.last_frame,
    )

    print("=" * 50)
    print("Long-Form Video Generator")
    print("=" * 50)
    print(f"Mode: {mode.value}")
    print(f"Duration: {args.duration}s")

    # Ctrl+C stops after the current poll instead of killing the chain mid-request
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except NotImplementedError:
        # Windows event loops have no signal handlers; Ctrl+C aborts instead
        pass

    try:
        async with orchestrator:
            result = await orchestrator.generate(
                request,
                on_progress=print_progress,
                cancel_event=cancel_event,
            )
    except VideoOrchestratorError as e:
        print(f"\nError: {e.message}")
        sys.exit(2)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        print_result(result)

    if result.cancelled:
        sys.exit(130)
    sys.exit(0 if result.is_complete else 1)


if __name__ == "__main__":
    asyncio.run(main())
