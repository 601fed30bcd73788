"""Narration workflow: script authoring, speech synthesis and transcription.

Every operation that produces a new script re-runs speaker extraction, so
the speaker list always reflects the labels in the current script.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from models.audio import AudioAsset, TrackId
from models.speaker import Speaker
from reel.acquisition import as_rate_limit
from reel.audio_tracks import AudioTrackManager
from reel.errors import EmptyInputError
from reel.speakers import extract_speakers
from services.ai_service import AIService
from services.tts_service import TTSService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScriptUpdate:
    """A replacement script and the speakers derived from it."""

    script: str
    speakers: tuple[Speaker, ...]

    def to_dict(self) -> dict:
        return {"script": self.script, "speakers": [s.to_dict() for s in self.speakers]}


class NarrationWorkflow:
    """Ties the text model, speech synthesis and the narration track together."""

    def __init__(self, ai_service: AIService, audio: AudioTrackManager):
        self.ai_service = ai_service
        self.audio = audio

    async def _ask(self, method, *args) -> str:
        try:
            return await asyncio.to_thread(method, *args)
        except Exception as e:
            rate_limited = as_rate_limit(e)
            if rate_limited is not None:
                raise rate_limited from e
            raise

    def _update(self, script: str, speakers: Sequence[Speaker]) -> ScriptUpdate:
        return ScriptUpdate(script=script, speakers=tuple(extract_speakers(script, speakers)))

    async def generate_script(self, topic: str, speakers: Sequence[Speaker] = ()) -> ScriptUpdate:
        """Write a fresh script about ``topic``."""
        if not topic or not topic.strip():
            raise EmptyInputError("Enter a topic to generate a script.")
        logger.info(f"Generating script for topic: {topic[:60]!r}")
        script = await self._ask(self.ai_service.generate_full_script, topic.strip())
        return self._update(script, speakers)

    async def enhance_script(self, script: str, speakers: Sequence[Speaker] = ()) -> ScriptUpdate:
        """Rewrite ``script`` for speech, keeping its speaker labels."""
        if not script or not script.strip():
            raise EmptyInputError("Script cannot be empty to enhance.")
        logger.info("Enhancing script for narration")
        enhanced = await self._ask(self.ai_service.enhance_script, script)
        return self._update(enhanced, speakers)

    async def synthesize(self, script: str, speakers: Sequence[Speaker]) -> AudioAsset:
        """Generate narration for ``script`` and make it the narration source.

        Raises:
            EmptyInputError: Blank script or no speakers
            TTSServiceError: A multi-speaker entry has no name, or synthesis failed
        """
        if not script or not script.strip():
            raise EmptyInputError("Script cannot be empty to generate narration.")
        if not speakers:
            raise EmptyInputError("At least one speaker is required to generate narration.")
        return await self.audio.generate(TrackId.NARRATION, script, speakers)

    async def transcribe_upload(
        self,
        data: bytes,
        filename: str,
        speakers: Sequence[Speaker] = (),
        mime_type: Optional[str] = None,
    ) -> ScriptUpdate:
        """Use uploaded narration, then transcribe and enhance it into the new script."""
        await self.audio.upload(TrackId.NARRATION, data, filename)

        if mime_type is None:
            mime_type = TTSService.media_type_for_audio_format(TTSService.detect_audio_format(data))
        logger.info(f"Transcribing uploaded narration {filename} ({mime_type})")

        transcript = await self._ask(self.ai_service.transcribe_audio, data, mime_type)
        if not transcript:
            raise EmptyInputError("Transcription returned no text.")

        enhanced = await self._ask(self.ai_service.enhance_script, transcript)
        return self._update(enhanced, speakers)
