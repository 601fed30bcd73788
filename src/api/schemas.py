"""Pydantic request/response models for the Reelsmith API."""

from pydantic import BaseModel, Field

from models.scene import MediaSource

# =============================================================================
# Response Models
# =============================================================================


class RootResponse(BaseModel):
    """Root endpoint response."""

    message: str
    version: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Reelsmith API", "version": "1.0.0"}]}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    engine_loaded: bool

    model_config = {"json_schema_extra": {"examples": [{"status": "healthy", "engine_loaded": True}]}}


class JobCreatedResponse(BaseModel):
    """Response when a background job is accepted."""

    job_id: str
    status: str

    model_config = {"json_schema_extra": {"examples": [{"job_id": "3f9c2a1b7d4e", "status": "processing"}]}}


class SpeakerModel(BaseModel):
    id: int
    name: str
    voice: str


class ScriptResponse(BaseModel):
    """A script together with the speakers derived from its labels."""

    script: str
    speakers: list[SpeakerModel]


class AudioAssetResponse(BaseModel):
    name: str
    path: str


class SampleResponse(BaseModel):
    title: str
    script: str


# =============================================================================
# Request Models
# =============================================================================


class SceneGenerateRequest(BaseModel):
    """Request body for scene generation."""

    script: str = Field(..., description="Narration script to decompose into scenes")
    source: MediaSource = Field(default=MediaSource.AI, description="ai, pexels_photo or pexels_video")


class SceneRegenerateRequest(BaseModel):
    index: int = Field(..., ge=0, description="0-based scene index")


class VolumesModel(BaseModel):
    narration: float = Field(default=1.0, ge=0.0, le=1.0)
    bgm: float = Field(default=0.5, ge=0.0, le=1.0)
    sfx: float = Field(default=0.8, ge=0.0, le=1.0)


class RenderRequest(BaseModel):
    """Request body for rendering the current session.

    Track URLs and volumes override the session's current selections when given.
    """

    narration_url: str | None = None
    bgm_url: str | None = None
    sfx_url: str | None = None
    volumes: VolumesModel | None = None


class AudioGenerateRequest(BaseModel):
    """Request body for music / sound-effect generation (narration uses the session script)."""

    prompt: str = Field(default="", description="Description of the music or sound effect")


class AudioSelectRequest(BaseModel):
    path: str | None = Field(default=None, description="Library entry URL; empty clears the track")


class ScriptGenerateRequest(BaseModel):
    topic: str = Field(..., description="What the script should be about")


class ScriptEnhanceRequest(BaseModel):
    script: str | None = Field(default=None, description="Script to enhance; defaults to the session script")


class SpeakerUpdateRequest(BaseModel):
    name: str | None = None
    voice: str | None = None


class VolumeRequest(BaseModel):
    value: float = Field(..., ge=0.0, le=1.0)


class ScriptSetRequest(BaseModel):
    script: str
