"""Reel core: scene orchestration, audio tracks, preview and rendering."""

from .errors import (
    AudioPlaybackError,
    EmptyInputError,
    EmptyScriptError,
    EngineNotReadyError,
    NoResultsError,
    NoScenesError,
    PreviewNotReadyError,
    RateLimitedError,
    ReelError,
    SceneGenerationError,
    StageFailureError,
    UnsupportedOutputTypeError,
)

__all__ = [
    "AudioPlaybackError",
    "EmptyInputError",
    "EmptyScriptError",
    "EngineNotReadyError",
    "NoResultsError",
    "NoScenesError",
    "PreviewNotReadyError",
    "RateLimitedError",
    "ReelError",
    "SceneGenerationError",
    "StageFailureError",
    "UnsupportedOutputTypeError",
]
