"""TTS Service - Gemini speech synthesis, single and multi-speaker."""

import asyncio
import io
import logging
import re
import wave
from typing import Optional, Sequence

from google.genai import Client
from google.genai import types

from models.speaker import Speaker
from services.provider_errors import ProviderError, translate_genai_error

logger = logging.getLogger(__name__)

DEFAULT_TTS_MODEL = "gemini-2.5-flash-preview-tts"

# Gemini returns raw 16-bit little-endian mono PCM
PCM_SAMPLE_RATE = 24000
PCM_SAMPLE_WIDTH = 2
PCM_CHANNELS = 1


class TTSServiceError(ProviderError):
    """Error from TTS service."""


class TTSService:
    """Speech synthesis via Gemini's prebuilt voices."""

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_TTS_MODEL,
        client: Optional[Client] = None,
    ):
        """Initialize TTS service.

        Args:
            api_key: Google GenAI API key
            model_name: Gemini TTS model
            client: Pre-built client (tests inject a mock here)
        """
        self.api_key = api_key
        self.model_name = model_name
        self.client = client or Client(api_key=api_key)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @staticmethod
    def detect_audio_format(audio_bytes: bytes) -> str:
        """Detect audio format from magic bytes."""
        if len(audio_bytes) >= 12 and audio_bytes[:4] == b"RIFF" and audio_bytes[8:12] == b"WAVE":
            return "wav"
        if audio_bytes[:3] == b"ID3" or (
            len(audio_bytes) >= 2
            and audio_bytes[0] == 0xFF
            and (audio_bytes[1] & 0xE0) == 0xE0
        ):
            return "mp3"
        if audio_bytes[:4] == b"OggS":
            return "ogg"
        if audio_bytes[:4] == b"fLaC":
            return "flac"
        return "bin"

    @staticmethod
    def media_type_for_audio_format(audio_format: str) -> str:
        """Map internal audio format to HTTP content-type."""
        return {
            "wav": "audio/wav",
            "mp3": "audio/mpeg",
            "ogg": "audio/ogg",
            "flac": "audio/flac",
        }.get(audio_format, "application/octet-stream")

    @staticmethod
    def pcm_to_wav(pcm: bytes, sample_rate: int = PCM_SAMPLE_RATE) -> bytes:
        """Wrap raw 16-bit mono PCM in a WAV container."""
        output = io.BytesIO()
        with wave.open(output, "wb") as wav_out:
            wav_out.setnchannels(PCM_CHANNELS)
            wav_out.setsampwidth(PCM_SAMPLE_WIDTH)
            wav_out.setframerate(sample_rate)
            wav_out.writeframes(pcm)
        return output.getvalue()

    @staticmethod
    def _sample_rate_from_mime(mime_type: Optional[str]) -> int:
        # e.g. "audio/L16;codec=pcm;rate=24000"
        match = re.search(r"rate=(\d+)", mime_type or "")
        return int(match.group(1)) if match else PCM_SAMPLE_RATE

    @staticmethod
    def build_speech_config(speakers: Sequence[Speaker]) -> types.SpeechConfig:
        """Build the single- or multi-speaker speech config.

        Raises:
            TTSServiceError: If no speakers are given, or a speaker in a
                multi-speaker config has no name
        """
        if not speakers:
            raise TTSServiceError("At least one speaker is required for speech synthesis")

        if len(speakers) == 1:
            return types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=speakers[0].voice)
                )
            )

        configs = []
        for speaker in speakers:
            if not speaker.name or not speaker.name.strip():
                raise TTSServiceError(
                    "Speaker name is required for each speaker in multi-speaker TTS."
                )
            configs.append(
                types.SpeakerVoiceConfig(
                    speaker=speaker.name,
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=speaker.voice)
                    ),
                )
            )
        return types.SpeechConfig(
            multi_speaker_voice_config=types.MultiSpeakerVoiceConfig(speaker_voice_configs=configs)
        )

    async def synthesize(self, text: str, speakers: Sequence[Speaker]) -> bytes:
        """Synthesize speech and return it as WAV bytes.

        Args:
            text: Script text (speaker labels included for multi-speaker)
            speakers: Voice assignments; more than one selects multi-speaker mode

        Returns:
            WAV file bytes
        """
        if not text or not text.strip():
            raise TTSServiceError("Cannot synthesize speech from empty text")

        speech_config = self.build_speech_config(speakers)
        mode = "multi-speaker" if len(speakers) > 1 else "single-speaker"
        logger.info(f"Synthesizing {len(text)} chars of speech ({mode}, {self.model_name})")

        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model_name,
                contents=text,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=speech_config,
                ),
            )
        except Exception as e:
            raise translate_genai_error(e, "Gemini TTS", error_cls=TTSServiceError) from e

        inline = _first_inline_data(response)
        if inline is None or not inline.data:
            raise TTSServiceError("Text-to-speech generation failed.")

        audio = inline.data
        if self.detect_audio_format(audio) != "wav":
            audio = self.pcm_to_wav(audio, self._sample_rate_from_mime(inline.mime_type))

        logger.info(f"Synthesized {len(audio) / 1024:.0f} KB of narration audio")
        return audio

    async def close(self) -> None:
        """Nothing to release; the genai client holds no open sockets between calls."""


def _first_inline_data(response) -> Optional[types.Blob]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        return None
    for part in candidates[0].content.parts or []:
        if part.inline_data is not None:
            return part.inline_data
    return None
