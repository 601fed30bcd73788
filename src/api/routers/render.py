"""Render and thumbnail routes for the Reelsmith API."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, File, HTTPException, UploadFile, WebSocket
from fastapi.responses import FileResponse, Response

from api.dependencies import get_studio, http_error
from api.schemas import JobCreatedResponse, RenderRequest
from api.websocket_manager import WebSocketManager
from models.audio import TrackId

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Render"])

# Render job storage (in-memory)
render_jobs: dict[str, dict] = {}

ws_manager = WebSocketManager()

_background_tasks: set = set()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _render_in_flight() -> bool:
    return any(job["status"] == "processing" for job in render_jobs.values())


async def _run_render(job_id: str) -> None:
    job = render_jobs.get(job_id)
    if job is None:
        logger.error(f"Render job {job_id} not found")
        return

    loop = asyncio.get_running_loop()

    def on_progress(progress) -> None:
        job["progress"] = progress.to_dict()
        task = loop.create_task(
            ws_manager.broadcast(job_id, {"type": "progress", "job_id": job_id, "progress": job["progress"]})
        )
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    try:
        result = await get_studio().render(on_progress=on_progress)
        job["status"] = "completed"
        job["result"] = result.to_dict()
        job["completed_at"] = _now()
        await ws_manager.broadcast(job_id, {"type": "complete", "job_id": job_id, **job})

    except Exception as e:
        logger.error(f"Render failed for job {job_id}: {e}")
        job["status"] = "failed"
        job["error"] = str(e)
        job["completed_at"] = _now()
        await ws_manager.broadcast(job_id, {"type": "error", "job_id": job_id, **job})


@router.post(
    "/api/render",
    response_model=JobCreatedResponse,
    status_code=202,
    summary="Render video",
    description="Render the current scenes and audio tracks to MP4. Returns 202 with job_id.",
    responses={
        400: {"description": "No scenes or no narration"},
        409: {"description": "Another render is in flight"},
        503: {"description": "Media engine not loaded"},
    },
)
async def start_render(request: RenderRequest | None = None) -> dict:
    studio = get_studio()

    if _render_in_flight():
        raise HTTPException(status_code=409, detail="A render is already in progress.")
    if not studio.engine_loaded:
        raise HTTPException(status_code=503, detail="Media engine is not ready yet. Please wait for it to load.")

    if request is not None:
        if request.narration_url is not None:
            studio.select_audio(TrackId.NARRATION, request.narration_url)
        if request.bgm_url is not None:
            studio.select_audio(TrackId.BACKGROUND_MUSIC, request.bgm_url)
        if request.sfx_url is not None:
            studio.select_audio(TrackId.SOUND_EFFECTS, request.sfx_url)
        if request.volumes is not None:
            studio.set_volume(TrackId.NARRATION, request.volumes.narration)
            studio.set_volume(TrackId.BACKGROUND_MUSIC, request.volumes.bgm)
            studio.set_volume(TrackId.SOUND_EFFECTS, request.volumes.sfx)

    if not studio.scenes:
        raise HTTPException(status_code=400, detail="At least one scene is required to render a video.")
    if not studio.audio.source_url(TrackId.NARRATION):
        raise HTTPException(status_code=400, detail="Narration audio is required to render a video.")

    job_id = uuid.uuid4().hex[:12]
    render_jobs[job_id] = {
        "id": job_id,
        "status": "processing",
        "scene_count": len(studio.scenes),
        "progress": None,
        "result": None,
        "error": None,
        "created_at": _now(),
        "completed_at": None,
    }
    ws_manager.ensure_key(job_id)

    task = asyncio.create_task(_run_render(job_id))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return {"job_id": job_id, "status": "processing"}


@router.get("/api/render/{job_id}", summary="Get render job", responses={404: {"description": "Job not found"}})
async def get_render_job(job_id: str) -> dict:
    if job_id not in render_jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    return render_jobs[job_id]


@router.get(
    "/api/render/{job_id}/video",
    summary="Download render",
    responses={404: {"description": "Job or video not found"}, 400: {"description": "Job not completed"}},
)
async def get_render_video(job_id: str) -> FileResponse:
    if job_id not in render_jobs:
        raise HTTPException(status_code=404, detail="Job not found")

    job = render_jobs[job_id]
    if job["status"] != "completed":
        raise HTTPException(status_code=400, detail=f"Job is {job['status']}, not completed")

    video_path = job["result"]["local_path"]
    if not Path(video_path).exists():
        raise HTTPException(status_code=404, detail="Video file not found")

    return FileResponse(
        video_path,
        media_type="video/mp4",
        headers={"Content-Disposition": f'attachment; filename="reel_{job_id}.mp4"'},
    )


@router.websocket("/ws/render/{job_id}")
async def websocket_render_job(websocket: WebSocket, job_id: str) -> None:
    await ws_manager.serve(job_id, websocket, render_jobs.get(job_id))


@router.post(
    "/api/thumbnail",
    summary="Generate thumbnail",
    description="Generate a title from the script and draw it over the first scene. Returns PNG.",
    responses={400: {"description": "No scenes or no script"}},
)
async def generate_thumbnail() -> Response:
    try:
        thumbnail = await get_studio().generate_thumbnail()
    except Exception as e:
        raise http_error(e) from e
    return Response(content=thumbnail.image, media_type="image/png", headers={"X-Thumbnail-Title": thumbnail.title})


@router.post("/api/thumbnail/upload", summary="Upload custom thumbnail", responses={400: {"description": "Not an image"}})
async def upload_thumbnail(file: UploadFile = File(...)) -> dict:
    data = await file.read()
    try:
        thumbnail = get_studio().upload_thumbnail(data)
    except Exception as e:
        raise http_error(e) from e
    return {"title": thumbnail.title, "custom": thumbnail.custom, "size_bytes": len(thumbnail.image)}
