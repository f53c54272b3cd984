#!/usr/bin/env python3
"""
Dashboard API
=============

FastAPI server for a video dashboard. Generation runs in the background;
the dashboard polls /status/{job_id} for per-scene progress.

Usage:
    uvicorn examples.dashboard_api:app --reload --port 8000
"""

import asyncio
from pathlib import Path
from typing import Optional, Dict, Any, List
from datetime import datetime

from fastapi import FastAPI, BackgroundTasks, HTTPException
from pydantic import BaseModel

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from video_orchestrator import (
    Config,
    GenerationRequest,
    ProgressEvent,
    VideoOrchestrator,
    VideoOrchestratorError,
)

app = FastAPI(
    title="Video Orchestrator API",
    description="REST API for long-form AI video generation",
    version="0.3.0",
)

# Global orchestrator instance
orchestrator: Optional[VideoOrchestrator] = None

# Job tracking
jobs: Dict[str, Dict[str, Any]] = {}
cancel_events: Dict[str, asyncio.Event] = {}


class GenerateBody(BaseModel):
    """Request model for video generation."""
    mode: str = "faceless"
    target_duration_seconds: int = 8
    base_prompt_or_script: str = ""
    aspect_ratio: str = "16:9"
    language: str = "en"
    topic: Optional[str] = None
    platform: Optional[str] = None
    content_format: Optional[str] = None
    avatar_description: Optional[str] = None
    voice_description: Optional[str] = None
    avatar_id: Optional[str] = None
    voice_id: Optional[str] = None
    reference_images: List[str] = []
    first_frame: Optional[str] = None
    last_frame: Optional[str] = None


@app.on_event("startup")
async def startup():
    """Initialize the orchestrator on startup."""
    global orchestrator

    project_root = Path(__file__).parent.parent
    config = Config.load(project_root / "config" / "defaults.yaml")
    orchestrator = VideoOrchestrator(config=config)

    print("Video Orchestrator initialized")


@app.on_event("shutdown")
async def shutdown():
    """Cleanup on shutdown."""
    for event in cancel_events.values():
        event.set()
    if orchestrator:
        await orchestrator.close()


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Video Orchestrator API",
        "version": "0.3.0",
        "endpoints": {
            "generate": "POST /generate",
            "status": "GET /status/{job_id}",
            "cancel": "POST /cancel/{job_id}",
            "providers": "GET /providers",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "orchestrator_ready": orchestrator is not None,
    }


@app.get("/providers")
async def providers():
    """Tier limits and configured providers."""
    if not orchestrator:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")
    return orchestrator.get_provider_info()


@app.post("/generate")
async def generate_video(body: GenerateBody, background_tasks: BackgroundTasks):
    """
    Start a generation.

    Invalid requests are rejected here; everything else runs in the
    background. Use /status/{job_id} to check progress.
    """
    if not orchestrator:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")

    try:
        request = GenerationRequest.from_dict(body.dict())
        scenes = orchestrator.plan(request)
    except VideoOrchestratorError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())

    job_id = f"job_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"
    jobs[job_id] = {
        "status": "queued",
        "created_at": datetime.now().isoformat(),
        "request": request.to_dict(),
        "total_scenes": len(scenes),
        "scenes": {},
    }
    cancel_events[job_id] = asyncio.Event()

    background_tasks.add_task(run_generation, job_id, request)

    return {
        "job_id": job_id,
        "status": "queued",
        "total_scenes": len(scenes),
        "message": "Generation started. Check /status/{job_id} for progress.",
    }


async def run_generation(job_id: str, request: GenerationRequest):
    """Background task for video generation."""
    jobs[job_id]["status"] = "processing"

    def on_progress(event: ProgressEvent) -> None:
        if event.scene_ordinal is None:
            jobs[job_id]["stage"] = event.state
            return
        jobs[job_id]["scenes"][event.scene_ordinal] = {
            "state": event.state,
            "provider": event.provider,
            "message": event.message,
        }

    try:
        result = await orchestrator.generate(
            request,
            on_progress=on_progress,
            cancel_event=cancel_events[job_id],
        )
        jobs[job_id].update({
            "status": "cancelled" if result.cancelled else result.status.value,
            "result": result.to_dict(),
            "hosted_url": result.hosted_url,
            "completed_at": datetime.now().isoformat(),
        })
    except VideoOrchestratorError as e:
        jobs[job_id].update({
            "status": "failed",
            "error": e.message,
            "completed_at": datetime.now().isoformat(),
        })
    finally:
        cancel_events.pop(job_id, None)


@app.get("/status/{job_id}")
async def get_status(job_id: str):
    """Get the status of a generation job."""
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Job not found")

    return jobs[job_id]


@app.post("/cancel/{job_id}")
async def cancel_job(job_id: str):
    """Stop a running job after its current poll."""
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Job not found")

    event = cancel_events.get(job_id)
    if event is None:
        return {"message": f"Job {job_id} is not running"}

    event.set()
    return {"message": f"Cancellation requested for {job_id}"}


@app.delete("/job/{job_id}")
async def delete_job(job_id: str):
    """Delete a finished job from tracking."""
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    if job_id in cancel_events:
        raise HTTPException(status_code=409, detail="Job is still running")

    del jobs[job_id]
    return {"message": f"Job {job_id} deleted"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
