"""
Delivery transcoder.
Re-encodes the intermediate WebM into H.264/MP4: fixed frame rate,
scale-to-fit then black padding to the exact canvas, fast-start metadata.
"""
import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from ..config import StudioSettings
from ..domain.models import EncodedVideo, VideoJobSpec
from ..errors import ResourceError, TranscodeError
from .capture import resolve_binary

logger = logging.getLogger(__name__)

INPUT_NAME = "input.webm"
OUTPUT_NAME = "output.mp4"


class TranscodeSession(Protocol):
    """Handle on the scratch resources of one transcode."""

    async def run(self, video: EncodedVideo) -> EncodedVideo:
        ...

    async def release(self) -> None:
        ...


class Transcoder(Protocol):
    def open_session(self) -> TranscodeSession:
        ...


def build_transcode_command(
    ffmpeg_bin: str,
    input_path: str,
    output_path: str,
    spec: VideoJobSpec,
    settings: StudioSettings,
) -> list[str]:
    """ffmpeg command producing the broadly compatible delivery file."""
    width, height = spec.width, spec.height
    video_filter = (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:black"
    )
    return [
        ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-y",
        "-i", input_path,
        "-r", str(spec.fps),
        "-vf", video_filter,
        "-c:v", settings.delivery_codec,
        "-preset", settings.delivery_preset,
        "-crf", str(settings.delivery_crf),
        "-pix_fmt", "yuv420p",
        "-an",
        "-movflags", "+faststart",
        output_path,
    ]


class FfmpegTranscodeSession:
    """Owns a scratch directory and, while running, the ffmpeg process."""

    def __init__(self, spec: VideoJobSpec, settings: StudioSettings):
        self.spec = spec
        self.settings = settings
        self.workdir: Optional[Path] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._released = False

    async def run(self, video: EncodedVideo) -> EncodedVideo:
        """
        Transcode ``video`` to MP4.

        Args:
            video: Intermediate payload, fully recorded

        Returns:
            Delivery payload

        Raises:
            TranscodeError: if ffmpeg fails, times out or writes nothing
            ResourceError: if ffmpeg is not installed
        """
        if self._released:
            raise TranscodeError("Transcode session already released")
        if not video.payload:
            raise TranscodeError("Nothing to transcode: empty intermediate payload")

        ffmpeg_bin = resolve_binary(self.settings.ffmpeg_bin)
        try:
            self.workdir = Path(tempfile.mkdtemp(prefix="ugc-studio-", dir=self.settings.temp_dir))
            input_path = self.workdir / INPUT_NAME
            output_path = self.workdir / OUTPUT_NAME
            input_path.write_bytes(video.payload)
        except OSError as e:
            raise ResourceError(f"Cannot prepare transcode workspace: {e}") from e

        cmd = build_transcode_command(
            ffmpeg_bin, str(input_path), str(output_path), self.spec, self.settings
        )
        logger.info(f"Transcoding {video.size_bytes} bytes of {video.container} to mp4")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await asyncio.wait_for(
                self._process.communicate(), self.settings.transcode_timeout
            )
        except asyncio.TimeoutError as e:
            raise TranscodeError(
                f"Transcode timed out after {self.settings.transcode_timeout:.0f}s"
            ) from e
        except OSError as e:
            raise TranscodeError(f"Could not run ffmpeg: {e}") from e

        if self._process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise TranscodeError(f"ffmpeg exited with code {self._process.returncode}: {message}")
        if not output_path.exists() or output_path.stat().st_size == 0:
            raise TranscodeError("Transcode produced no output")

        payload = output_path.read_bytes()
        logger.info(f"Transcoding finished: {len(payload)} bytes")
        return EncodedVideo(
            payload=payload,
            container="mp4",
            codec="h264",
            frame_count=video.frame_count,
            width=self.spec.width,
            height=self.spec.height,
            fps=self.spec.fps,
        )

    async def release(self) -> None:
        """Stop ffmpeg if running and delete the scratch directory. Idempotent."""
        if self._released:
            return
        self._released = True
        if self._process is not None and self._process.returncode is None:
            self._process.kill()
            await self._process.wait()
        if self.workdir is not None:
            shutil.rmtree(self.workdir, ignore_errors=True)


class FfmpegTranscoder:
    """Factory of per-job transcode sessions."""

    def __init__(self, spec: VideoJobSpec, settings: Optional[StudioSettings] = None):
        self.spec = spec
        self.settings = settings or StudioSettings()

    def open_session(self) -> FfmpegTranscodeSession:
        return FfmpegTranscodeSession(self.spec, self.settings)
