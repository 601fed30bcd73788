"""Unit tests for audio track handles and the AudioTrackManager."""

from unittest.mock import AsyncMock, Mock

import pytest

from models.audio import NO_SELECTION, AudioAsset, TrackId
from models.speaker import Speaker
from reel.audio_tracks import AudioTrack, AudioTrackManager, NullAudioPlayer, library_filename
from reel.errors import AudioPlaybackError, EmptyInputError, PreviewNotReadyError


class FailingPlayer(NullAudioPlayer):
    def play(self, loop=False):
        raise AudioPlaybackError("autoplay blocked")


@pytest.fixture
def players():
    return {}


@pytest.fixture
def manager(manual_clock, fake_store, temp_dir, players):
    def factory(track_id):
        players[track_id] = NullAudioPlayer()
        return players[track_id]

    tts = Mock()
    tts.synthesize = AsyncMock(return_value=b"RIFF\x00\x00\x00\x00WAVEdata")
    music = Mock()
    music.synthesize = AsyncMock(return_value=b"RIFF\x00\x00\x00\x00WAVEmusic")
    return AudioTrackManager(
        manual_clock,
        fake_store,
        tts_service=tts,
        music_service=music,
        scratch_dir=temp_dir / "narration",
        player_factory=factory,
    )


class TestAudioTrack:
    @pytest.mark.unit
    def test_position_follows_clock_and_resumes(self, manual_clock):
        player = NullAudioPlayer()
        track = AudioTrack(TrackId.NARRATION, player, manual_clock, volume=1.0)
        track.set_source("https://cdn.example.com/narration.wav")

        assert track.play() is True
        manual_clock.advance(3)
        track.pause()
        assert track.position == pytest.approx(3)

        manual_clock.advance(10)
        assert track.position == pytest.approx(3)

        track.play()
        assert player.position == pytest.approx(3)
        manual_clock.advance(2)
        assert track.position == pytest.approx(5)

    @pytest.mark.unit
    def test_play_without_source_is_refused(self, manual_clock):
        track = AudioTrack(TrackId.BACKGROUND_MUSIC, NullAudioPlayer(), manual_clock, volume=0.5)
        assert track.play() is False
        assert track.is_playing is False

    @pytest.mark.unit
    def test_backend_failure_is_not_fatal(self, manual_clock):
        track = AudioTrack(TrackId.NARRATION, FailingPlayer(), manual_clock, volume=1.0)
        track.set_source("https://cdn.example.com/narration.wav")

        assert track.play() is False
        assert track.is_playing is False

    @pytest.mark.unit
    def test_new_source_resets_to_stopped_at_zero(self, manual_clock):
        track = AudioTrack(TrackId.NARRATION, NullAudioPlayer(), manual_clock, volume=1.0)
        track.set_source("https://cdn.example.com/a.wav")
        track.play()
        manual_clock.advance(4)

        track.set_source("https://cdn.example.com/b.wav")

        assert track.is_playing is False
        assert track.position == 0

    @pytest.mark.unit
    @pytest.mark.parametrize("volume", [-0.1, 1.5])
    def test_volume_must_be_in_range(self, manual_clock, volume):
        track = AudioTrack(TrackId.SOUND_EFFECTS, NullAudioPlayer(), manual_clock, volume=0.8)
        with pytest.raises(ValueError):
            track.set_volume(volume)
        assert track.volume == 0.8


class TestLibraries:
    @pytest.mark.unit
    def test_libraries_start_with_placeholder(self, manager):
        assert manager.library(TrackId.BACKGROUND_MUSIC) == [NO_SELECTION]
        assert manager.library(TrackId.SOUND_EFFECTS) == [NO_SELECTION]

    @pytest.mark.unit
    def test_narration_has_no_library(self, manager):
        with pytest.raises(ValueError):
            manager.library(TrackId.NARRATION)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_load_libraries_from_store(self, manager):
        await manager.load_libraries()
        bgm = manager.library(TrackId.BACKGROUND_MUSIC)
        assert bgm[0] == NO_SELECTION
        assert bgm[1].name == "calm piano.wav"
        assert manager.library(TrackId.SOUND_EFFECTS) == [NO_SELECTION]

    @pytest.mark.unit
    def test_selecting_placeholder_clears_source(self, manager):
        asset = AudioAsset("rain.wav", "https://cdn.example.com/sfx/rain.wav")
        manager.select_from_library(TrackId.SOUND_EFFECTS, asset)
        assert manager.source_url(TrackId.SOUND_EFFECTS) == asset.path

        manager.select_from_library(TrackId.SOUND_EFFECTS, NO_SELECTION)
        assert manager.source_url(TrackId.SOUND_EFFECTS) is None

    @pytest.mark.unit
    def test_library_filename(self):
        assert library_filename("Calm lo-fi piano, rainy night!") == "Calm lofi piano rainy night.wav"
        assert library_filename("x" * 50) == "x" * 30 + ".wav"
        assert library_filename("!!!") == "audio.wav"


class TestGenerate:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generated_music_is_stored_and_selected(self, manager, fake_store):
        asset = await manager.generate(TrackId.BACKGROUND_MUSIC, "calm lo-fi piano")

        upload = fake_store.uploads[0]
        assert upload["kind"] == "bgm"
        assert upload["filename"] == "calm lofi piano.wav"
        assert upload["metadata"] == {"prompt": "calm lo-fi piano"}
        manager.music_service.synthesize.assert_awaited_once_with("calm lo-fi piano", output_seconds=60)

        assert manager.library(TrackId.BACKGROUND_MUSIC) == [asset]
        assert manager.source_url(TrackId.BACKGROUND_MUSIC) == asset.path

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sound_effects_are_short(self, manager):
        await manager.generate(TrackId.SOUND_EFFECTS, "door creak")
        manager.music_service.synthesize.assert_awaited_once_with("door creak", output_seconds=10)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_narration_is_written_to_scratch(self, manager, temp_dir):
        speakers = [Speaker(1, "Speaker 1", "Aoede")]
        asset = await manager.generate(TrackId.NARRATION, "Hello world", speakers)

        manager.tts_service.synthesize.assert_awaited_once_with("Hello world", speakers)
        assert asset.path.startswith("file://")
        assert manager.source_url(TrackId.NARRATION) == asset.path
        assert list((temp_dir / "narration").iterdir())

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blank_prompt(self, manager):
        with pytest.raises(EmptyInputError):
            await manager.generate(TrackId.BACKGROUND_MUSIC, "  ")
        manager.music_service.synthesize.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_upload_prepends_to_library(self, manager, fake_store):
        await manager.load_libraries()
        asset = await manager.upload(TrackId.BACKGROUND_MUSIC, b"ID3music", "my song.mp3")

        library = manager.library(TrackId.BACKGROUND_MUSIC)
        assert library[0] == asset
        assert NO_SELECTION not in library
        assert fake_store.uploads[0]["filename"] == "my song.mp3"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_upload(self, manager):
        with pytest.raises(EmptyInputError):
            await manager.upload(TrackId.SOUND_EFFECTS, b"", "empty.wav")


class TestTrackPreview:
    @pytest.mark.unit
    def test_preview_without_source(self, manager):
        with pytest.raises(PreviewNotReadyError):
            manager.toggle_preview(TrackId.BACKGROUND_MUSIC)

    @pytest.mark.unit
    def test_track_previews_are_mutually_exclusive(self, manager, players):
        manager.set_narration_url("https://cdn.example.com/narration.wav")
        manager.select_from_library(TrackId.BACKGROUND_MUSIC, "https://cdn.example.com/bgm.wav")

        assert manager.toggle_preview(TrackId.NARRATION) is True
        assert players[TrackId.NARRATION].loop is False

        assert manager.toggle_preview(TrackId.BACKGROUND_MUSIC) is True
        assert manager.track(TrackId.NARRATION).is_playing is False
        assert players[TrackId.BACKGROUND_MUSIC].loop is True

        assert manager.toggle_preview(TrackId.BACKGROUND_MUSIC) is False
        assert not any(track.is_playing for track in manager.tracks.values())

    @pytest.mark.unit
    def test_preview_restarts_from_zero(self, manager, manual_clock):
        manager.set_narration_url("https://cdn.example.com/narration.wav")
        manager.toggle_preview(TrackId.NARRATION)
        manual_clock.advance(7)
        manager.toggle_preview(TrackId.NARRATION)

        manager.toggle_preview(TrackId.NARRATION)
        assert manager.track(TrackId.NARRATION).position == 0

    @pytest.mark.unit
    def test_volume_change_does_not_interrupt_playback(self, manager, players):
        manager.set_narration_url("https://cdn.example.com/narration.wav")
        manager.toggle_preview(TrackId.NARRATION)

        manager.set_volume(TrackId.NARRATION, 0.25)

        assert manager.track(TrackId.NARRATION).is_playing is True
        assert players[TrackId.NARRATION].volume == 0.25
        assert manager.volumes.narration == 0.25

    @pytest.mark.unit
    def test_events_are_emitted(self, manager):
        events = []
        manager.subscribe(lambda event, track: events.append((event, track)))

        manager.set_narration_url("https://cdn.example.com/narration.wav")
        manager.toggle_preview(TrackId.NARRATION)

        assert events == [("source_changed", TrackId.NARRATION), ("preview_started", TrackId.NARRATION)]
