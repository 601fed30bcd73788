"""Unit tests for the FFmpeg media engine with the subprocess layer patched out."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from services.media_engine import MediaEngine, MediaEngineError, parse_progress_ratio


def fake_process(lines, returncode=0):
    process = MagicMock()
    process.__enter__.return_value = process
    process.stdout = iter(line + "\n" for line in lines)
    process.wait.return_value = returncode
    return process


@pytest.fixture
def engine(temp_dir):
    return MediaEngine(temp_dir / "engine")


async def load(engine):
    version = subprocess.CompletedProcess(
        ["ffmpeg", "-version"], 0, stdout="ffmpeg version 6.1.1 Copyright (c) 2000-2023", stderr=""
    )
    with patch("services.media_engine.shutil.which", return_value="/usr/bin/ffmpeg"), patch(
        "services.media_engine.subprocess.run", return_value=version
    ):
        await engine.load()


class TestLoad:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_load_reads_version(self, engine):
        await load(engine)
        assert engine.loaded
        assert engine.version == "6.1.1"
        assert engine.work_dir.is_dir()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_binary(self, engine):
        with patch("services.media_engine.shutil.which", return_value=None):
            with pytest.raises(MediaEngineError, match="FFmpeg not found"):
                await engine.load()
        assert not engine.loaded

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_broken_binary(self, engine):
        broken = subprocess.CompletedProcess(["ffmpeg"], 1, stdout="", stderr="libx264.so: not found")
        with patch("services.media_engine.shutil.which", return_value="/usr/bin/ffmpeg"), patch(
            "services.media_engine.subprocess.run", return_value=broken
        ):
            with pytest.raises(MediaEngineError, match="libx264"):
                await engine.load()


class TestWorkingNamespace:
    @pytest.mark.unit
    def test_requires_load(self, engine):
        with pytest.raises(MediaEngineError, match="not loaded"):
            engine.write_file("a.txt", "x")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_read_reset(self, engine):
        await load(engine)
        engine.write_file("concat.txt", "file 'input_0.png'\n")
        engine.write_file("input_0.png", b"\x89PNG")

        assert engine.read_file("concat.txt", encoding="utf-8") == "file 'input_0.png'\n"
        assert engine.read_file("input_0.png") == b"\x89PNG"

        engine.reset()
        assert not engine.exists("input_0.png")
        with pytest.raises(MediaEngineError, match="does not exist"):
            engine.read_file("input_0.png")

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["../escape.txt", "sub/dir.txt", ""])
    async def test_names_are_flat(self, engine, name):
        await load(engine)
        with pytest.raises(MediaEngineError, match="Invalid working file name"):
            engine.write_file(name, b"x")


class TestExec:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_progress_and_logs(self, engine):
        await load(engine)
        ratios, logs = [], []
        engine.on_progress(ratios.append)
        engine.on_log(logs.append)

        process = fake_process([
            "Input #0, image2, from 'input_0.png':",
            "out_time_us=2500000",
            "fps=25.0",
            "progress=continue",
            "out_time_us=5000000",
            "progress=end",
        ])
        with patch("services.media_engine.subprocess.Popen", return_value=process) as popen:
            await engine.exec(["-i", "input_0.png", "out.mp4"], expected_duration=10.0)

        cmd = popen.call_args.args[0]
        assert cmd[0] == "ffmpeg"
        assert cmd[-3:] == ["-i", "input_0.png", "out.mp4"]
        assert popen.call_args.kwargs["cwd"] == engine.work_dir
        assert ratios == [0.25, 0.5, 1.0]
        assert logs == ["Input #0, image2, from 'input_0.png':"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_ratios_without_expected_duration(self, engine):
        await load(engine)
        ratios = []
        engine.on_progress(ratios.append)

        with patch("services.media_engine.subprocess.Popen", return_value=fake_process(["out_time_us=100"])):
            await engine.exec(["-i", "a", "b"])

        assert ratios == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_carries_output_tail(self, engine):
        await load(engine)
        lines = [f"noise {i}" for i in range(20)] + ["input_1.mp4: Invalid data found when processing input"]

        with patch("services.media_engine.subprocess.Popen", return_value=fake_process(lines, returncode=1)):
            with pytest.raises(MediaEngineError) as exc_info:
                await engine.exec(["-i", "input_1.mp4", "out.mp4"])

        message = str(exc_info.value)
        assert message.endswith("Invalid data found when processing input")
        assert "noise 0" not in message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unsubscribe(self, engine):
        await load(engine)
        ratios = []
        unsubscribe = engine.on_progress(ratios.append)
        unsubscribe()

        with patch("services.media_engine.subprocess.Popen", return_value=fake_process(["progress=end"])):
            await engine.exec(["-i", "a", "b"], expected_duration=1.0)

        assert ratios == []


class TestParseProgressRatio:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "line,expected",
        [
            ("out_time_us=3000000", 0.5),
            ("out_time_ms=6000000", 1.0),
            ("out_time_us=9000000", 1.0),
            ("out_time_us=N/A", None),
            ("out_time_us=-5", 0.0),
        ],
    )
    def test_ratios(self, line, expected):
        assert parse_progress_ratio(line, 6.0) == expected

    @pytest.mark.unit
    def test_zero_duration(self):
        assert parse_progress_ratio("out_time_us=10", 0) is None
