"""Preview routes: the scene slideshow and single-track previews."""

from fastapi import APIRouter

from api.dependencies import get_studio, http_error
from models.audio import TrackId

router = APIRouter(tags=["Preview"])


def _preview_state() -> dict:
    preview = get_studio().preview
    scene = preview.current_scene
    return {
        "state": preview.state.value,
        "cursor": preview.cursor,
        "scene": scene.to_dict() if scene else None,
    }


@router.get("/api/preview", summary="Preview state")
async def get_preview() -> dict:
    return _preview_state()


@router.post(
    "/api/preview/toggle",
    summary="Play or stop the preview",
    responses={409: {"description": "No scenes or no narration"}},
)
async def toggle_preview() -> dict:
    try:
        get_studio().toggle_preview()
    except Exception as e:
        raise http_error(e) from e
    return _preview_state()


@router.post(
    "/api/audio/{track}/preview",
    summary="Preview one track",
    responses={409: {"description": "Track has no source"}},
)
async def toggle_track_preview(track: TrackId) -> dict:
    try:
        playing = get_studio().toggle_track_preview(track)
    except Exception as e:
        raise http_error(e) from e
    return {"track": track.value, "is_playing": playing}
