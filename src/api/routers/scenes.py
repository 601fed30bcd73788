"""Scene generation routes for the Reelsmith API."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, WebSocket

from api.dependencies import get_studio, http_error
from api.schemas import JobCreatedResponse, SceneGenerateRequest, SceneRegenerateRequest
from api.websocket_manager import WebSocketManager
from reel.errors import RateLimitedError, SceneGenerationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scenes"])

# Scene job storage (in-memory)
scene_jobs: dict[str, dict] = {}

ws_manager = WebSocketManager()

# Keep references to background tasks to prevent garbage collection
_background_tasks: set = set()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _scene_job_running() -> bool:
    return any(job["status"] == "processing" for job in scene_jobs.values())


async def _run_scene_generation(job_id: str) -> None:
    """Run the orchestrator, mirroring every progress step into the job record."""
    job = scene_jobs.get(job_id)
    if job is None:
        logger.error(f"Scene job {job_id} not found")
        return

    studio = get_studio()
    try:
        async for progress in studio.stream_scenes(job["source"]):
            job["progress"] = progress.to_dict()
            job["scenes"] = [scene.to_dict() for scene in progress.scenes]
            await ws_manager.broadcast(job_id, {
                "type": "progress",
                "job_id": job_id,
                "progress": job["progress"],
                "scenes": job["scenes"],
            })

        job["status"] = "completed"
        job["scenes"] = [scene.to_dict() for scene in studio.scenes]
        job["completed_at"] = _now()
        await ws_manager.broadcast(job_id, {"type": "complete", "job_id": job_id, **job})

    except Exception as e:
        logger.error(f"Scene generation failed for job {job_id}: {e}")
        partial = e.scenes if isinstance(e, (RateLimitedError, SceneGenerationError)) else studio.scenes
        job["status"] = "failed"
        job["error"] = str(e)
        job["retry_after"] = getattr(e, "retry_after", None)
        job["scenes"] = [scene.to_dict() for scene in partial]
        job["completed_at"] = _now()
        await ws_manager.broadcast(job_id, {"type": "error", "job_id": job_id, **job})


@router.post(
    "/api/scenes",
    response_model=JobCreatedResponse,
    status_code=202,
    summary="Generate scenes",
    description="Decompose a script into scenes and acquire media for each. Returns 202 with job_id.",
    responses={400: {"description": "Empty script"}, 409: {"description": "Scene generation already running"}},
)
async def generate_scenes(request: SceneGenerateRequest) -> dict:
    if not request.script.strip():
        raise HTTPException(status_code=400, detail="Script cannot be empty to generate scenes.")
    if _scene_job_running():
        raise HTTPException(status_code=409, detail="Scene generation is already running.")

    studio = get_studio()
    studio.set_script(request.script)

    job_id = uuid.uuid4().hex[:12]
    scene_jobs[job_id] = {
        "id": job_id,
        "status": "processing",
        "source": request.source,
        "script_preview": request.script.strip()[:80],
        "progress": None,
        "scenes": [],
        "error": None,
        "retry_after": None,
        "created_at": _now(),
        "completed_at": None,
    }
    ws_manager.ensure_key(job_id)

    task = asyncio.create_task(_run_scene_generation(job_id))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    logger.info(f"Scene job {job_id} started ({request.source.value})")
    return {"job_id": job_id, "status": "processing"}


@router.get("/api/scenes", summary="Current scenes", description="Scenes of the current session.")
async def list_scenes() -> list[dict]:
    return [scene.to_dict() for scene in get_studio().scenes]


@router.get("/api/scenes/{job_id}", summary="Get scene job", responses={404: {"description": "Job not found"}})
async def get_scene_job(job_id: str) -> dict:
    if job_id not in scene_jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    return scene_jobs[job_id]


@router.post(
    "/api/scenes/regenerate",
    summary="Regenerate one scene",
    description="Re-acquire media for one scene from its original prompt.",
    responses={404: {"description": "No scene at index"}, 429: {"description": "Rate limited"}},
)
async def regenerate_scene(request: SceneRegenerateRequest) -> dict:
    studio = get_studio()
    if request.index >= len(studio.scenes):
        raise HTTPException(status_code=404, detail=f"No scene at index {request.index}")
    try:
        scene = await studio.regenerate_scene(request.index)
    except Exception as e:
        raise http_error(e) from e
    return scene.to_dict()


@router.websocket("/ws/scenes/{job_id}")
async def websocket_scene_job(websocket: WebSocket, job_id: str) -> None:
    """Real-time scene job updates, starting with the current partial state."""
    await ws_manager.serve(job_id, websocket, scene_jobs.get(job_id))
