"""
Video synthesizer.
Drives one job through Idle -> Recording -> Finalizing -> Transcoding -> Done,
or Failed from any earlier state. Every frame is rendered, handed to the
recorder, then control is yielded before the next frame overwrites the canvas.
"""
import asyncio
import logging
from typing import Callable, Optional, Union

from ..config import StudioSettings
from ..domain.models import EncodedVideo, EnhancedAsset, JobState, RasterImage, Style, VideoJobSpec
from ..errors import CaptureError, JobCancelled, StudioError
from .capture import FfmpegRecorder, FrameRecorder
from .frames import WRAP_FONT_SIZE, WRAP_WIDTH, FrameRenderer, wrap_text
from .transcode import FfmpegTranscoder, TranscodeSession, Transcoder

logger = logging.getLogger(__name__)

RecorderFactory = Callable[[VideoJobSpec, StudioSettings], FrameRecorder]
TranscoderFactory = Callable[[VideoJobSpec, StudioSettings], Transcoder]
RasterSource = Union[RasterImage, EnhancedAsset]


class VideoJob:
    """One video synthesis run. Owns its canvas, recorder and transcode session."""

    def __init__(
        self,
        raster: RasterImage,
        caption: str,
        spec: VideoJobSpec,
        settings: StudioSettings,
        recorder_factory: RecorderFactory,
        transcoder_factory: TranscoderFactory,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.raster = raster
        self.caption = caption
        self.spec = spec
        self.settings = settings
        self.caption_lines = wrap_text(caption, WRAP_FONT_SIZE, WRAP_WIDTH)
        self.cancel_event = cancel_event
        self._recorder_factory = recorder_factory
        self._transcoder_factory = transcoder_factory

        self.state = JobState.IDLE
        self.failure: Optional[str] = None
        self.frames_rendered = 0

    def _transition(self, state: JobState) -> None:
        logger.debug(f"Video job {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, reason: str) -> None:
        self.failure = reason
        self._transition(JobState.FAILED)
        logger.error(f"Video job failed: {reason}")

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise JobCancelled(f"Cancelled after {self.frames_rendered} frames")

    async def _record(self, renderer: FrameRenderer, recorder: FrameRecorder) -> EncodedVideo:
        total = self.spec.total_frames
        await recorder.start()
        self._transition(JobState.RECORDING)
        for index in range(total):
            self._check_cancelled()
            await recorder.capture(renderer.render_bytes(index))
            self.frames_rendered += 1
            # one frame per scheduling tick
            await asyncio.sleep(0)

        self._transition(JobState.FINALIZING)
        intermediate = await recorder.stop()
        if intermediate.frame_count != total:
            raise CaptureError(
                f"Recorder captured {intermediate.frame_count} frames, expected {total}"
            )
        return intermediate

    async def run(self) -> EncodedVideo:
        """
        Execute the job.

        Returns:
            Delivery MP4 payload holding exactly ``spec.total_frames`` frames

        Raises:
            RenderTargetError, CaptureError, TranscodeError, ResourceError,
            JobCancelled: after every acquired resource has been released
        """
        if self.state is not JobState.IDLE:
            raise StudioError(f"Video job already {self.state.value}")
        logger.info(
            f"Video job started: {self.spec.total_frames} frames at {self.spec.fps} fps, "
            f"{len(self.caption_lines)} caption lines"
        )

        recorder: Optional[FrameRecorder] = None
        session: Optional[TranscodeSession] = None
        try:
            renderer = FrameRenderer(self.raster, self.spec, self.caption_lines, settings=self.settings)
            recorder = self._recorder_factory(self.spec, self.settings)
            intermediate = await self._record(renderer, recorder)

            self._transition(JobState.TRANSCODING)
            session = self._transcoder_factory(self.spec, self.settings).open_session()
            final = await session.run(intermediate)
            intermediate.release()

            self._transition(JobState.DONE)
            logger.info(f"Video job done: {final.size_bytes} bytes {final.container}")
            return final
        except JobCancelled:
            self._fail("cancelled")
            raise
        except asyncio.CancelledError:
            self._fail("cancelled")
            raise
        except StudioError as e:
            self._fail(str(e))
            raise
        except Exception as e:
            self._fail(f"unexpected error: {e!r}")
            raise
        finally:
            if session is not None:
                await session.release()
            if recorder is not None:
                await recorder.release()


class VideoSynthesizer:
    """
    Entry point for stage 2. Jobs are independent: each acquires its own
    renderer, recorder and transcode session, so they may run concurrently.
    """

    def __init__(
        self,
        settings: Optional[StudioSettings] = None,
        recorder_factory: Optional[RecorderFactory] = None,
        transcoder_factory: Optional[TranscoderFactory] = None,
    ):
        self.settings = settings or StudioSettings()
        self.recorder_factory = recorder_factory or FfmpegRecorder
        self.transcoder_factory = transcoder_factory or FfmpegTranscoder

    def create_job(
        self,
        enhanced: RasterSource,
        caption: str,
        style: "Style | str | None" = None,
        brand: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> VideoJob:
        raster = enhanced.raster if isinstance(enhanced, EnhancedAsset) else enhanced
        return VideoJob(
            raster=raster,
            caption=caption,
            spec=VideoJobSpec.for_style(style, brand),
            settings=self.settings,
            recorder_factory=self.recorder_factory,
            transcoder_factory=self.transcoder_factory,
            cancel_event=cancel_event,
        )

    async def synthesize(
        self,
        enhanced: RasterSource,
        caption: str,
        style: "Style | str | None" = None,
        brand: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> EncodedVideo:
        job = self.create_job(enhanced, caption, style, brand, cancel_event)
        return await job.run()


async def synthesize_video_async(
    enhanced: RasterSource,
    caption: str,
    style: "Style | str | None" = None,
    brand: Optional[str] = None,
    settings: Optional[StudioSettings] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> EncodedVideo:
    """Render, capture and transcode the short video of one enhanced image."""
    synthesizer = VideoSynthesizer(settings)
    return await synthesizer.synthesize(enhanced, caption, style, brand, cancel_event)


def synthesize_video(
    enhanced: RasterSource,
    caption: str,
    style: "Style | str | None" = None,
    brand: Optional[str] = None,
    settings: Optional[StudioSettings] = None,
) -> EncodedVideo:
    """Blocking wrapper around :func:`synthesize_video_async`."""
    return asyncio.run(synthesize_video_async(enhanced, caption, style, brand, settings))
