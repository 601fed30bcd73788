"""Embedded media engine: a command-driven FFmpeg wrapper with a private working directory.

All files live in one flat working namespace (``work_dir``) that is reused
between commands. Commands are serialized through a single queue; log lines
and progress ratios are streamed to registered callbacks on the event loop.
"""

import asyncio
import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

LogCallback = Callable[[str], None]
ProgressCallback = Callable[[float], None]

# Lines kept for the error message when a command fails
ERROR_TAIL_LINES = 8

_PROGRESS_KEYS = ("out_time_us=", "out_time_ms=")
_VERSION_RE = re.compile(r"ffmpeg version (\S+)")


class MediaEngineError(Exception):
    """Raised when the engine is unavailable or an FFmpeg command fails."""


class MediaEngine:
    """FFmpeg running in a dedicated working directory.

    Example:
        engine = MediaEngine(Path(".reelsmith/engine"))
        await engine.load()
        engine.write_file("input_0.png", png_bytes)
        await engine.exec(["-i", "input_0.png", "out.mp4"])
        data = engine.read_file("out.mp4")
    """

    def __init__(self, work_dir: Union[str, Path], ffmpeg_binary: str = "ffmpeg"):
        self.work_dir = Path(work_dir)
        self.ffmpeg_binary = ffmpeg_binary
        self.version: Optional[str] = None
        self._loaded = False
        self._queue = asyncio.Lock()
        self._log_callbacks: list[LogCallback] = []
        self._progress_callbacks: list[ProgressCallback] = []

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        """Verify FFmpeg is runnable and prepare the working directory.

        Raises:
            MediaEngineError: If the FFmpeg binary is missing or broken
        """
        if self._loaded:
            return

        if shutil.which(self.ffmpeg_binary) is None and not Path(self.ffmpeg_binary).exists():
            raise MediaEngineError(
                f"FFmpeg not found ({self.ffmpeg_binary}). Install FFmpeg and make sure it is on PATH."
            )

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                [self.ffmpeg_binary, "-version"],
                capture_output=True,
                text=True,
                timeout=30,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise MediaEngineError(f"FFmpeg could not be started: {e}") from e

        if result.returncode != 0:
            raise MediaEngineError(f"FFmpeg version check failed: {result.stderr.strip()[:300]}")

        match = _VERSION_RE.search(result.stdout)
        self.version = match.group(1) if match else "unknown"

        self.work_dir.mkdir(parents=True, exist_ok=True)
        self._loaded = True
        logger.info(f"Media engine ready: ffmpeg {self.version} in {self.work_dir}")

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def on_log(self, callback: LogCallback) -> Callable[[], None]:
        """Register a log line callback. Returns an unsubscribe function."""
        self._log_callbacks.append(callback)
        return lambda: self._log_callbacks.remove(callback)

    def on_progress(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a progress callback (ratio in [0, 1]). Returns an unsubscribe function."""
        self._progress_callbacks.append(callback)
        return lambda: self._progress_callbacks.remove(callback)

    def _emit_log(self, line: str) -> None:
        logger.debug(f"[ffmpeg] {line}")
        for callback in list(self._log_callbacks):
            try:
                callback(line)
            except Exception as e:
                logger.warning(f"Engine log callback failed: {e}")

    def _emit_progress(self, ratio: float) -> None:
        for callback in list(self._progress_callbacks):
            try:
                callback(ratio)
            except Exception as e:
                logger.warning(f"Engine progress callback failed: {e}")

    # ------------------------------------------------------------------
    # Working namespace
    # ------------------------------------------------------------------

    def _path(self, name: str) -> Path:
        if not name or Path(name).name != name:
            raise MediaEngineError(f"Invalid working file name: {name!r}")
        return self.work_dir / name

    def write_file(self, name: str, data: Union[bytes, str]) -> Path:
        """Write (or overwrite) a file in the working namespace."""
        self._require_loaded()
        path = self._path(name)
        if isinstance(data, str):
            path.write_text(data, encoding="utf-8")
        else:
            path.write_bytes(data)
        return path

    def read_file(self, name: str, encoding: Optional[str] = None) -> Union[bytes, str]:
        """Read a file from the working namespace as bytes, or text when an encoding is given."""
        self._require_loaded()
        path = self._path(name)
        if not path.exists():
            raise MediaEngineError(f"{name} does not exist in the engine working directory")
        if encoding:
            return path.read_text(encoding=encoding)
        return path.read_bytes()

    def exists(self, name: str) -> bool:
        return self._path(name).exists()

    def reset(self) -> None:
        """Remove every file from the working namespace."""
        self._require_loaded()
        for path in self.work_dir.iterdir():
            if path.is_file():
                path.unlink()
            else:
                shutil.rmtree(path, ignore_errors=True)

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise MediaEngineError("Media engine is not loaded")

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    async def exec(self, args: list[str], expected_duration: Optional[float] = None) -> None:
        """Run one FFmpeg command inside the working directory.

        Commands wait for any command already running. Progress ratios are
        only reported when ``expected_duration`` (seconds of output) is known.

        Args:
            args: FFmpeg arguments, without the binary name
            expected_duration: Expected output duration for progress reporting

        Raises:
            MediaEngineError: If FFmpeg exits non-zero; the message is FFmpeg's own output tail
        """
        self._require_loaded()
        loop = asyncio.get_running_loop()

        def emit_log(line: str) -> None:
            loop.call_soon_threadsafe(self._emit_log, line)

        def emit_progress(ratio: float) -> None:
            loop.call_soon_threadsafe(self._emit_progress, ratio)

        async with self._queue:
            await asyncio.to_thread(self._run, args, expected_duration, emit_log, emit_progress)
            # Let callbacks scheduled from the worker thread run before returning
            await asyncio.sleep(0)

    def _run(
        self,
        args: list[str],
        expected_duration: Optional[float],
        emit_log: LogCallback,
        emit_progress: ProgressCallback,
    ) -> None:
        cmd = [
            self.ffmpeg_binary,
            "-y",
            "-hide_banner",
            "-nostats",
            "-progress", "pipe:1",
            *args,
        ]
        logger.debug(f"Command: {' '.join(cmd)}")

        tail: list[str] = []
        try:
            process = subprocess.Popen(
                cmd,
                cwd=self.work_dir,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise MediaEngineError(f"FFmpeg could not be started: {e}") from e

        with process:
            for raw_line in process.stdout:
                line = raw_line.rstrip()
                if not line:
                    continue

                if line.startswith(_PROGRESS_KEYS):
                    if expected_duration:
                        ratio = parse_progress_ratio(line, expected_duration)
                        if ratio is not None:
                            emit_progress(ratio)
                    continue
                if line == "progress=end":
                    emit_progress(1.0)
                    continue
                if "=" in line and " " not in line:
                    # Other -progress key=value pairs (fps=, bitrate=, ...)
                    continue

                emit_log(line)
                tail.append(line)
                del tail[:-ERROR_TAIL_LINES]

            returncode = process.wait()

        if returncode != 0:
            message = "\n".join(tail) or f"ffmpeg exited with status {returncode}"
            logger.error(f"FFmpeg output: {message}")
            raise MediaEngineError(message)


def parse_progress_ratio(line: str, expected_duration: float) -> Optional[float]:
    """Convert an ``out_time_us=`` progress line to a ratio of the expected duration."""
    _, _, value = line.partition("=")
    try:
        # Both keys carry microseconds
        seconds = int(value) / 1_000_000
    except ValueError:
        return None
    if expected_duration <= 0:
        return None
    return max(0.0, min(seconds / expected_duration, 1.0))
