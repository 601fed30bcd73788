"""Unit tests for the narration workflow."""

from unittest.mock import AsyncMock, Mock

import pytest

from models.audio import TrackId
from reel.audio_tracks import AudioTrackManager
from reel.errors import EmptyInputError, RateLimitedError
from reel.narration import NarrationWorkflow
from reel.speakers import default_speakers
from services.provider_errors import ProviderError

WAV_BYTES = b"RIFF\x24\x00\x00\x00WAVEfmt "


@pytest.fixture
def audio(manual_clock, fake_store, temp_dir):
    tts = Mock()
    tts.synthesize = AsyncMock(return_value=WAV_BYTES)
    return AudioTrackManager(manual_clock, fake_store, tts_service=tts, scratch_dir=temp_dir / "narration")


@pytest.fixture
def workflow(mock_ai_service, audio):
    return NarrationWorkflow(mock_ai_service, audio)


class TestScriptAuthoring:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generate_script_extracts_speakers(self, workflow, mock_ai_service):
        update = await workflow.generate_script("  harbor mysteries  ", default_speakers())

        mock_ai_service.generate_full_script.assert_called_once_with("harbor mysteries")
        assert update.script == "Host: Hello there.\nGuest: Hi!"
        assert [s.name for s in update.speakers] == ["Host", "Guest"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blank_topic(self, workflow, mock_ai_service):
        with pytest.raises(EmptyInputError):
            await workflow.generate_script("   ")
        mock_ai_service.generate_full_script.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_enhance_keeps_known_speakers(self, workflow):
        first = await workflow.generate_script("harbor")
        enhanced = await workflow.enhance_script(first.script, first.speakers)

        assert enhanced.script.endswith("[warmly]")
        assert enhanced.speakers == first.speakers

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_enhance_blank_script(self, workflow):
        with pytest.raises(EmptyInputError):
            await workflow.enhance_script("")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_quota_errors_become_rate_limited(self, workflow, mock_ai_service):
        mock_ai_service.enhance_script.side_effect = ProviderError("quota", status_code=429)
        with pytest.raises(RateLimitedError):
            await workflow.enhance_script("Host: hi")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, workflow, mock_ai_service):
        mock_ai_service.generate_full_script.side_effect = ProviderError("Empty response from Gemini")
        with pytest.raises(ProviderError, match="Empty response"):
            await workflow.generate_script("harbor")


class TestSynthesize:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_synthesize_sets_narration_source(self, workflow, audio):
        speakers = default_speakers()
        asset = await workflow.synthesize("Speaker 1: Hello.", speakers)

        audio.tts_service.synthesize.assert_awaited_once_with("Speaker 1: Hello.", speakers)
        assert audio.source_url(TrackId.NARRATION) == asset.path

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_requires_script_and_speakers(self, workflow, audio):
        with pytest.raises(EmptyInputError):
            await workflow.synthesize(" ", default_speakers())
        with pytest.raises(EmptyInputError):
            await workflow.synthesize("Hello", [])
        audio.tts_service.synthesize.assert_not_awaited()


class TestTranscribeUpload:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_upload_is_transcribed_and_enhanced(self, workflow, audio, mock_ai_service):
        update = await workflow.transcribe_upload(WAV_BYTES, "voice.wav", default_speakers())

        mock_ai_service.transcribe_audio.assert_called_once_with(WAV_BYTES, "audio/wav")
        mock_ai_service.enhance_script.assert_called_once_with("Narrator: The fog rolled in.")
        assert update.script == "Narrator: The fog rolled in. [warmly]"
        assert [s.name for s in update.speakers] == ["Narrator"]
        assert audio.source_url(TrackId.NARRATION).startswith("file://")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_explicit_mime_type_wins(self, workflow, mock_ai_service):
        await workflow.transcribe_upload(b"\x00\x01\x02", "voice.m4a", mime_type="audio/mp4")
        mock_ai_service.transcribe_audio.assert_called_once_with(b"\x00\x01\x02", "audio/mp4")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_transcript(self, workflow, mock_ai_service):
        mock_ai_service.transcribe_audio.return_value = ""
        with pytest.raises(EmptyInputError):
            await workflow.transcribe_upload(WAV_BYTES, "voice.wav")
        mock_ai_service.enhance_script.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_upload(self, workflow, mock_ai_service):
        with pytest.raises(EmptyInputError):
            await workflow.transcribe_upload(b"", "voice.wav")
        mock_ai_service.transcribe_audio.assert_not_called()
