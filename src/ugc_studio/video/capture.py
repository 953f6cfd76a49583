"""
Frame-capture stream.
An ffmpeg process reads raw rgb24 frames on stdin and streams VP9/WebM on
stdout; the recorder collects the stdout chunks and joins them on stop.
"""
import asyncio
import logging
import shutil
from typing import Optional, Protocol

from ..config import StudioSettings
from ..domain.models import EncodedVideo, VideoJobSpec
from ..errors import CaptureError, ResourceError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
STDERR_TAIL = 8 * 1024
STOP_TIMEOUT = 120.0


class FrameRecorder(Protocol):
    """Capture sink of a video job. One instance per job."""

    async def start(self) -> None:
        ...

    async def capture(self, frame: bytes) -> None:
        ...

    async def stop(self) -> EncodedVideo:
        ...

    async def release(self) -> None:
        ...


def resolve_binary(name: str) -> str:
    """Absolute path of an ffmpeg-family executable."""
    path = shutil.which(name)
    if not path:
        raise ResourceError(
            f"{name} not found in PATH. Install ffmpeg with your system package manager."
        )
    return path


def build_capture_command(ffmpeg_bin: str, spec: VideoJobSpec, settings: StudioSettings) -> list[str]:
    """ffmpeg command encoding raw rgb24 frames from stdin to WebM on stdout."""
    return [
        ffmpeg_bin, "-hide_banner", "-loglevel", "error",
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{spec.width}x{spec.height}",
        "-r", str(spec.fps),
        "-i", "pipe:0",
        "-an",
        "-c:v", settings.capture_codec,
        "-b:v", settings.capture_bitrate,
        "-deadline", "realtime",
        "-cpu-used", str(settings.capture_speed),
        "-row-mt", "1",
        "-pix_fmt", "yuv420p",
        "-f", "webm",
        "pipe:1",
    ]


class FfmpegRecorder:
    """Records the presented frames of one job into an in-memory WebM payload."""

    def __init__(self, spec: VideoJobSpec, settings: Optional[StudioSettings] = None):
        self.spec = spec
        self.settings = settings or StudioSettings()
        self.frames_written = 0
        self._frame_size = spec.width * spec.height * 3
        self._process: Optional[asyncio.subprocess.Process] = None
        self._collector: Optional[asyncio.Task] = None
        self._stopped: Optional[asyncio.Future] = None
        self._chunks: list[bytes] = []
        self._stderr = bytearray()
        self._released = False

    @property
    def stderr_tail(self) -> str:
        return self._stderr.decode("utf-8", errors="replace").strip()

    async def start(self) -> None:
        """Spawn the encoder and begin collecting its output."""
        if self._process is not None:
            raise CaptureError("Recorder already started")
        ffmpeg_bin = resolve_binary(self.settings.ffmpeg_bin)
        cmd = build_capture_command(ffmpeg_bin, self.spec, self.settings)
        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CaptureError(f"Could not start capture stream: {e}") from e

        self._stopped = asyncio.get_running_loop().create_future()
        self._collector = asyncio.create_task(self._collect())
        logger.debug(f"Capture stream started (pid {self._process.pid})")

    async def _read_stdout(self) -> None:
        while True:
            chunk = await self._process.stdout.read(CHUNK_SIZE)
            if not chunk:
                break
            self._chunks.append(chunk)

    async def _read_stderr(self) -> None:
        while True:
            chunk = await self._process.stderr.read(CHUNK_SIZE)
            if not chunk:
                break
            self._stderr.extend(chunk)
            del self._stderr[:-STDERR_TAIL]

    async def _collect(self) -> None:
        """Drain the encoder until EOF, then resolve the stop signal with its exit code."""
        try:
            await asyncio.gather(self._read_stdout(), self._read_stderr())
            returncode = await self._process.wait()
        except Exception as e:
            if not self._stopped.done():
                self._stopped.set_exception(e)
            return
        if not self._stopped.done():
            self._stopped.set_result(returncode)

    async def capture(self, frame: bytes) -> None:
        """Push one presented frame into the stream."""
        if self._process is None or self._process.stdin is None:
            raise CaptureError("Recorder is not running")
        if len(frame) != self._frame_size:
            raise CaptureError(f"Frame has {len(frame)} bytes, expected {self._frame_size}")
        try:
            self._process.stdin.write(frame)
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise CaptureError(f"Capture stream closed unexpectedly: {self.stderr_tail or e}") from e
        self.frames_written += 1

    async def stop(self) -> EncodedVideo:
        """
        Signal end of stream and wait until the encoder confirms it stopped.

        Returns:
            Intermediate WebM payload holding every captured frame
        """
        if self._process is None or self._stopped is None:
            raise CaptureError("Recorder was never started")
        try:
            self._process.stdin.close()
            await self._process.stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise CaptureError(f"Capture stream closed unexpectedly: {self.stderr_tail or e}") from e

        try:
            returncode = await asyncio.wait_for(asyncio.shield(self._stopped), STOP_TIMEOUT)
        except asyncio.TimeoutError as e:
            raise CaptureError("Capture stream did not stop in time") from e
        except OSError as e:
            raise CaptureError(f"Failed reading capture stream: {e}") from e

        if returncode != 0:
            raise CaptureError(f"Encoder exited with code {returncode}: {self.stderr_tail}")
        payload = b"".join(self._chunks)
        self._chunks.clear()
        if not payload:
            raise CaptureError("Capture stream produced no data")

        logger.info(f"Recorder stopped: {self.frames_written} frames, {len(payload)} bytes")
        return EncodedVideo(
            payload=payload,
            container="webm",
            codec="vp9",
            frame_count=self.frames_written,
            width=self.spec.width,
            height=self.spec.height,
            fps=self.spec.fps,
        )

    async def release(self) -> None:
        """Kill the encoder if still alive and drop buffered chunks. Idempotent."""
        if self._released:
            return
        self._released = True
        process = self._process
        if process is not None and process.returncode is None:
            process.kill()
            await process.wait()
        if self._collector is not None:
            if not self._collector.done():
                self._collector.cancel()
            await asyncio.gather(self._collector, return_exceptions=True)
        if self._stopped is not None and self._stopped.done() and not self._stopped.cancelled():
            # mark a failed collector result as retrieved
            self._stopped.exception()
        self._chunks.clear()
