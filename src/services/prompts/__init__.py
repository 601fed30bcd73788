"""Prompts module - centralized prompt templates for AI services.

Re-exports all prompt constants and utilities for easy importing:
    from services.prompts import PROMPT_VERSIONS, strip_markdown_code_blocks
    from services.prompts import SCENE_PROMPT_GENERATOR_V1, apply_style
"""

from services.prompts._base import strip_markdown_code_blocks
from services.prompts.scenes import (
    CINEMATIC_STYLE_SUFFIX,
    SCENE_PROMPT_GENERATOR_V1,
    apply_style,
)
from services.prompts.script_generation import (
    SCRIPT_ENHANCER_V1,
    SCRIPT_GENERATOR_V2,
    VIDEO_TITLE_V1,
)
from services.prompts.transcription import NARRATION_TRANSCRIBER_V1

# Prompt version identifiers, logged with each request
# Increment these when prompts change
PROMPT_VERSIONS = {
    "generate_scene_prompts": "v1",
    "generate_script": "v2",
    "enhance_script": "v1",
    "generate_video_title": "v1",
    "transcribe_narration": "v1",
}

__all__ = [
    # Utilities
    "strip_markdown_code_blocks",
    "apply_style",
    # Version tracking
    "PROMPT_VERSIONS",
    # Scene prompts
    "SCENE_PROMPT_GENERATOR_V1",
    "CINEMATIC_STYLE_SUFFIX",
    # Script prompts
    "SCRIPT_GENERATOR_V2",
    "SCRIPT_ENHANCER_V1",
    "VIDEO_TITLE_V1",
    # Transcription prompts
    "NARRATION_TRANSCRIBER_V1",
]
