"""Video job lifecycle: frame pacing, state transitions, resource release."""

import asyncio
import unittest
from unittest import mock

from fakes import FakeRecorder, Handles, index_frame, make_raster, random_raster
from ugc_studio.domain.models import EncodedVideo, EnhancedAsset, JobState
from ugc_studio.errors import CaptureError, JobCancelled, StudioError, TranscodeError
from ugc_studio.video.frames import FrameRenderer
from ugc_studio.video.synthesizer import VideoSynthesizer

CAPTION = "Hi team, here is my ultra comfy outfit of the day! We love the coat."


def fast_frames():
    """Skip pixel work: each frame is just its own index."""
    return mock.patch.object(FrameRenderer, "render_bytes", lambda self, index: index_frame(index))


class TestVideoJob(unittest.IsolatedAsyncioTestCase):
    def synthesizer(self, handles: Handles) -> VideoSynthesizer:
        return VideoSynthesizer(
            recorder_factory=handles.recorder_factory,
            transcoder_factory=handles.transcoder_factory,
        )

    async def test_records_every_frame_in_order(self):
        handles = Handles()
        job = self.synthesizer(handles).create_job(make_raster(8, 8), CAPTION, "minimal", "Atelier")
        with fast_frames():
            video = await job.run()

        recorder = handles.recorders[0]
        self.assertEqual(recorder.frames, [index_frame(i) for i in range(360)])
        self.assertEqual(recorder.events[0], "start")
        self.assertEqual(recorder.events[-1], "stop")
        self.assertEqual(recorder.events.count("stop"), 1)
        self.assertEqual(handles.sessions[0].inputs[0].frame_count, 360)

        self.assertEqual(video.container, "mp4")
        self.assertEqual(video.frame_count, 360)
        self.assertEqual(job.state, JobState.DONE)
        self.assertEqual(job.frames_rendered, 360)

    async def test_yields_to_event_loop_between_frames(self):
        handles = Handles()
        job = self.synthesizer(handles).create_job(make_raster(8, 8), CAPTION)
        ticks = 0
        done = False

        async def ticker():
            nonlocal ticks
            while not done:
                ticks += 1
                await asyncio.sleep(0)

        task = asyncio.create_task(ticker())
        with fast_frames():
            await job.run()
        done = True
        await task
        self.assertGreaterEqual(ticks, 360)

    async def test_handles_released_once_on_success(self):
        handles = Handles()
        with fast_frames():
            await self.synthesizer(handles).synthesize(make_raster(8, 8), CAPTION)
        self.assertEqual([h.release_calls for h in handles.all_handles()], [1, 1])

    async def test_transcode_failure_releases_everything(self):
        handles = Handles(fail_transcode=True)
        job = self.synthesizer(handles).create_job(make_raster(8, 8), CAPTION)
        with fast_frames(), self.assertRaises(TranscodeError):
            await job.run()
        self.assertEqual(job.state, JobState.FAILED)
        self.assertIn("encoder crashed", job.failure)
        self.assertEqual([h.release_calls for h in handles.all_handles()], [1, 1])

    async def test_capture_failure_stops_before_transcoding(self):
        handles = Handles(fail_on_frame=10)
        job = self.synthesizer(handles).create_job(make_raster(8, 8), CAPTION)
        with fast_frames(), self.assertRaises(CaptureError):
            await job.run()
        self.assertEqual(job.state, JobState.FAILED)
        self.assertEqual(job.frames_rendered, 10)
        self.assertEqual(handles.sessions, [])
        self.assertEqual(handles.recorders[0].release_calls, 1)

    async def test_stop_failure_is_reported(self):
        handles = Handles(fail_on_stop=True)
        job = self.synthesizer(handles).create_job(make_raster(8, 8), CAPTION)
        with fast_frames(), self.assertRaises(CaptureError):
            await job.run()
        self.assertEqual(job.state, JobState.FAILED)
        self.assertEqual(handles.recorders[0].release_calls, 1)

    async def test_frame_count_mismatch_is_a_capture_error(self):
        class LossyRecorder(FakeRecorder):
            async def stop(self) -> EncodedVideo:
                video = await super().stop()
                video.frame_count -= 1
                return video

        recorders = []

        def factory(spec, settings):
            recorders.append(LossyRecorder())
            return recorders[-1]

        handles = Handles()
        synthesizer = VideoSynthesizer(
            recorder_factory=factory, transcoder_factory=handles.transcoder_factory
        )
        with fast_frames(), self.assertRaises(CaptureError):
            await synthesizer.synthesize(make_raster(8, 8), CAPTION)
        self.assertEqual(handles.sessions, [])
        self.assertEqual(recorders[0].release_calls, 1)

    async def test_cancel_event_aborts_recording(self):
        cancel = asyncio.Event()

        class CancellingRecorder(FakeRecorder):
            async def capture(self, frame: bytes) -> None:
                await super().capture(frame)
                if len(self.frames) == 50:
                    cancel.set()

        recorders = []

        def factory(spec, settings):
            recorders.append(CancellingRecorder())
            return recorders[-1]

        handles = Handles()
        synthesizer = VideoSynthesizer(
            recorder_factory=factory, transcoder_factory=handles.transcoder_factory
        )
        job = synthesizer.create_job(make_raster(8, 8), CAPTION, cancel_event=cancel)
        with fast_frames(), self.assertRaises(JobCancelled):
            await job.run()
        self.assertEqual(job.state, JobState.FAILED)
        self.assertEqual(job.frames_rendered, 50)
        self.assertNotIn("stop", recorders[0].events)
        self.assertEqual(recorders[0].release_calls, 1)

    async def test_task_cancellation_releases_recorder(self):
        handles = Handles()
        job = self.synthesizer(handles).create_job(make_raster(8, 8), CAPTION)
        with fast_frames():
            task = asyncio.create_task(job.run())
            for _ in range(20):
                await asyncio.sleep(0)
            task.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await task
        self.assertEqual(job.state, JobState.FAILED)
        self.assertLess(job.frames_rendered, 360)
        self.assertEqual(handles.recorders[0].release_calls, 1)

    async def test_job_runs_only_once(self):
        handles = Handles()
        job = self.synthesizer(handles).create_job(make_raster(8, 8), CAPTION)
        with fast_frames():
            await job.run()
            with self.assertRaises(StudioError):
                await job.run()

    async def test_accepts_enhanced_asset(self):
        handles = Handles()
        asset = EnhancedAsset(raster=make_raster(8, 8), image_bytes=b"png", scale=2)
        job = self.synthesizer(handles).create_job(asset, CAPTION, "luxury", "Atelier")
        self.assertIs(job.raster, asset.raster)
        self.assertEqual(job.spec.accent_color, "#F8E3A1")
        self.assertEqual(job.spec.brand_tag, "#Atelier")


class SizeOnlyRecorder(FakeRecorder):
    """Keeps frame sizes instead of the 6 MB frames themselves."""

    def __init__(self):
        super().__init__()
        self.sizes: list[int] = []

    async def capture(self, frame: bytes) -> None:
        self.sizes.append(len(frame))
        self.frames.append(b"")
        self.events.append("frame")


class TestRealFrames(unittest.IsolatedAsyncioTestCase):
    async def test_full_resolution_frames_reach_recorder(self):
        recorders = []

        def factory(spec, settings):
            recorders.append(SizeOnlyRecorder())
            return recorders[-1]

        handles = Handles()
        synthesizer = VideoSynthesizer(
            recorder_factory=factory, transcoder_factory=handles.transcoder_factory
        )
        video = await synthesizer.synthesize(random_raster(48, 64), CAPTION, "street", "Atelier")
        self.assertEqual(video.frame_count, 360)
        self.assertEqual(set(recorders[0].sizes), {1080 * 1920 * 3})
        self.assertEqual(len(recorders[0].sizes), 360)


if __name__ == "__main__":
    unittest.main()
