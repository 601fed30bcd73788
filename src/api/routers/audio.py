"""Audio track routes: libraries, generation, upload, selection and volume."""

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile

from api.dependencies import get_studio, http_error
from api.schemas import AudioAssetResponse, AudioGenerateRequest, AudioSelectRequest, VolumeRequest
from models.audio import TrackId

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Audio"])


def _track_state(track_id: TrackId) -> dict:
    track = get_studio().audio.track(track_id)
    return {
        "track": track_id.value,
        "source_url": track.source_url,
        "volume": track.volume,
        "is_playing": track.is_playing,
    }


@router.get("/api/audio", summary="Audio tracks", description="Source, volume and playback state of every track.")
async def list_tracks() -> list[dict]:
    return [_track_state(track_id) for track_id in TrackId]


@router.get(
    "/api/audio/library/{kind}",
    response_model=list[AudioAssetResponse],
    summary="Audio sample library",
    responses={400: {"description": "Track has no library"}},
)
async def get_library(kind: TrackId) -> list[dict]:
    try:
        return [asset.to_dict() for asset in get_studio().audio.library(kind)]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post(
    "/api/audio/{track}/generate",
    response_model=AudioAssetResponse,
    summary="Generate track audio",
    description="Narration is synthesized from the session script and speakers; music and sound effects from the prompt.",
    responses={400: {"description": "Missing prompt or script"}, 429: {"description": "Rate limited"}},
)
async def generate_audio(track: TrackId, request: AudioGenerateRequest) -> dict:
    try:
        asset = await get_studio().generate_audio(track, request.prompt)
    except Exception as e:
        logger.error(f"{track.label.capitalize()} generation failed: {e}")
        raise http_error(e) from e
    return asset.to_dict()


@router.post(
    "/api/audio/{track}/upload",
    response_model=AudioAssetResponse,
    summary="Upload track audio",
    responses={400: {"description": "Empty file"}},
)
async def upload_audio(track: TrackId, file: UploadFile = File(...)) -> dict:
    data = await file.read()
    try:
        asset = await get_studio().upload_audio(track, data, file.filename or f"{track.value}.mp3")
    except Exception as e:
        raise http_error(e) from e
    return asset.to_dict()


@router.post("/api/audio/{track}/select", summary="Select track source")
async def select_audio(track: TrackId, request: AudioSelectRequest) -> dict:
    get_studio().select_audio(track, request.path)
    return _track_state(track)


@router.put("/api/audio/{track}/volume", summary="Set track volume")
async def set_volume(track: TrackId, request: VolumeRequest) -> dict:
    get_studio().set_volume(track, request.value)
    return _track_state(track)
