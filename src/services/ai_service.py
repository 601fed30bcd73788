"""AI service for script decomposition, script authoring and transcription using Google GenAI."""

import json
import logging
from typing import List, Optional

from google.genai import Client
from google.genai import types

from services.prompts import (
    NARRATION_TRANSCRIBER_V1,
    PROMPT_VERSIONS,
    SCENE_PROMPT_GENERATOR_V1,
    SCRIPT_ENHANCER_V1,
    SCRIPT_GENERATOR_V2,
    VIDEO_TITLE_V1,
    strip_markdown_code_blocks,
)
from services.provider_errors import ProviderError, translate_genai_error

logger = logging.getLogger(__name__)


class AIServiceError(ProviderError):
    """Gemini returned an error or an unusable response."""


class AIService:
    """Service for Gemini text tasks: scene prompts, scripts, titles and transcripts."""

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.5-flash",
        client: Optional[Client] = None,
    ):
        """Initialize Google GenAI client.

        Args:
            api_key: Google GenAI API key
            model_name: Gemini model to use
            client: Pre-built client (tests inject a mock here)
        """
        self.api_key = api_key
        self.model_name = model_name
        self.client = client or Client(api_key=api_key)

        logger.info(f"Initialized AI service with model: {model_name}")

    def _generate(self, task: str, contents, config: types.GenerateContentConfig) -> str:
        """Run one generate_content call and return the response text."""
        logger.debug(f"Gemini {task} ({PROMPT_VERSIONS.get(task, 'n/a')})")
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise translate_genai_error(e, error_cls=AIServiceError) from e

        if not response.text:
            raise AIServiceError(f"Gemini returned an empty response for {task}")
        return response.text

    def generate_prompts_from_script(self, script: str) -> List[str]:
        """Decompose a narration script into an ordered list of image prompts.

        Args:
            script: Narration script text

        Returns:
            Visual prompts in script order. May be empty if the model found no scenes.

        Raises:
            AIServiceError: If the response is not a JSON array of strings
            ProviderRateLimitError: If Gemini quota is exhausted
        """
        text = self._generate(
            "generate_scene_prompts",
            script,
            types.GenerateContentConfig(
                system_instruction=SCENE_PROMPT_GENERATOR_V1,
                response_mime_type="application/json",
            ),
        )
        return parse_prompt_list(text)

    def generate_full_script(self, topic: str) -> str:
        """Write a multi-speaker narration script about a topic."""
        return self._generate(
            "generate_script",
            topic,
            types.GenerateContentConfig(system_instruction=SCRIPT_GENERATOR_V2),
        ).strip()

    def enhance_script(self, script: str, instruction: str = SCRIPT_ENHANCER_V1) -> str:
        """Polish a script for speech synthesis with expressive audio tags."""
        return self._generate(
            "enhance_script",
            script,
            types.GenerateContentConfig(system_instruction=instruction),
        ).strip()

    def generate_video_title(self, script: str) -> str:
        """Generate a short thumbnail title for a script."""
        title = self._generate(
            "generate_video_title",
            script,
            types.GenerateContentConfig(system_instruction=VIDEO_TITLE_V1),
        )
        return title.strip().strip('"').strip()

    def transcribe_audio(self, audio: bytes, mime_type: str) -> str:
        """Transcribe narration audio with speaker labels and bracketed non-verbal tags.

        Args:
            audio: Raw audio bytes
            mime_type: MIME type of the audio (e.g. "audio/mpeg")

        Returns:
            Transcript text
        """
        contents = [
            types.Part.from_bytes(data=audio, mime_type=mime_type),
            NARRATION_TRANSCRIBER_V1,
        ]
        return self._generate(
            "transcribe_narration",
            contents,
            types.GenerateContentConfig(),
        ).strip()


def parse_prompt_list(text: str) -> List[str]:
    """Parse a model response that must be a JSON array of strings.

    Markdown code fences around the array are tolerated.

    Raises:
        AIServiceError: If the text is not valid JSON or not a list of strings
    """
    cleaned = strip_markdown_code_blocks(text)
    try:
        prompts = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse scene prompts: {e}")
        logger.debug(f"Raw response: {text}")
        raise AIServiceError(
            "AI failed to generate valid scene prompts in the expected format. "
            "Please try again or adjust your script."
        ) from e

    if not isinstance(prompts, list) or not all(isinstance(p, str) for p in prompts):
        logger.debug(f"Raw response: {text}")
        raise AIServiceError("Scene prompt response is not a JSON array of strings")

    return [p.strip() for p in prompts if p.strip()]
