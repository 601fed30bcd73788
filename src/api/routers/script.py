"""Script, speaker, narration and sample routes for the Reelsmith API."""

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile

from api.dependencies import get_studio, http_error
from api.schemas import (
    SampleResponse,
    ScriptEnhanceRequest,
    ScriptGenerateRequest,
    ScriptResponse,
    ScriptSetRequest,
    SpeakerUpdateRequest,
)
from reel.sample_prompts import list_samples
from reel.speakers import TTS_VOICES

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Script"])


def _script_state() -> dict:
    studio = get_studio()
    return {"script": studio.script, "speakers": [s.to_dict() for s in studio.speakers]}


@router.get("/api/script", response_model=ScriptResponse, summary="Current script")
async def get_script() -> dict:
    return _script_state()


@router.put("/api/script", response_model=ScriptResponse, summary="Replace script")
async def set_script(request: ScriptSetRequest) -> dict:
    get_studio().set_script(request.script)
    return _script_state()


@router.post(
    "/api/script/generate",
    response_model=ScriptResponse,
    summary="Generate script",
    description="Write a new narration script about a topic.",
    responses={400: {"description": "Empty topic"}, 429: {"description": "Rate limited"}},
)
async def generate_script(request: ScriptGenerateRequest) -> dict:
    try:
        update = await get_studio().generate_script(request.topic)
    except Exception as e:
        raise http_error(e) from e
    return update.to_dict()


@router.post(
    "/api/script/enhance",
    response_model=ScriptResponse,
    summary="Enhance script",
    description="Rewrite the script for speech with expressive audio tags.",
    responses={400: {"description": "Empty script"}, 429: {"description": "Rate limited"}},
)
async def enhance_script(request: ScriptEnhanceRequest | None = None) -> dict:
    studio = get_studio()
    if request is not None and request.script is not None:
        studio.set_script(request.script)
    try:
        update = await studio.enhance_script()
    except Exception as e:
        raise http_error(e) from e
    return update.to_dict()


@router.post(
    "/api/narration",
    response_model=ScriptResponse,
    summary="Upload narration",
    description="Use uploaded audio as narration, then transcribe and enhance it into the script.",
    responses={400: {"description": "Empty file"}, 429: {"description": "Rate limited"}},
)
async def upload_narration(file: UploadFile = File(...)) -> dict:
    data = await file.read()
    try:
        update = await get_studio().upload_narration(data, file.filename or "narration.mp3")
    except Exception as e:
        logger.error(f"Narration upload failed: {e}")
        raise http_error(e) from e
    return update.to_dict()


@router.get("/api/voices", summary="Voice catalog")
async def list_voices() -> list[str]:
    return list(TTS_VOICES)


@router.post("/api/speakers", response_model=ScriptResponse, summary="Add speaker")
async def add_speaker() -> dict:
    get_studio().add_speaker()
    return _script_state()


@router.patch(
    "/api/speakers/{speaker_id}",
    response_model=ScriptResponse,
    summary="Update speaker",
    responses={404: {"description": "Speaker not found"}, 400: {"description": "Unknown voice or blank name"}},
)
async def update_speaker(speaker_id: int, request: SpeakerUpdateRequest) -> dict:
    try:
        get_studio().update_speaker(speaker_id, name=request.name, voice=request.voice)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Speaker {speaker_id} not found") from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _script_state()


@router.delete("/api/speakers/{speaker_id}", response_model=ScriptResponse, summary="Remove speaker")
async def remove_speaker(speaker_id: int) -> dict:
    get_studio().remove_speaker(speaker_id)
    return _script_state()


@router.get("/api/samples", response_model=list[SampleResponse], summary="Sample scripts")
async def get_samples() -> list[dict]:
    return [sample.to_dict() for sample in list_samples()]


@router.post(
    "/api/samples/{key}",
    response_model=ScriptResponse,
    summary="Load sample script",
    description="Replace the script with a sample, by 1-based number or title.",
    responses={404: {"description": "Sample not found"}},
)
async def load_sample(key: str) -> dict:
    try:
        get_studio().load_sample(key)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"No sample named {key!r}") from e
    return _script_state()
