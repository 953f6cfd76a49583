"""Batch pipeline: per-item isolation and on-demand video synthesis."""

import unittest
from unittest import mock

from fakes import Handles, index_frame, png_bytes, random_raster
from ugc_studio.captions.copy import GENERIC_BODY
from ugc_studio.config import StudioSettings
from ugc_studio.domain.models import EnhancementParams
from ugc_studio.errors import DecodeError, TranscodeError
from ugc_studio.orchestrator import StudioItem, StudioOrchestrator
from ugc_studio.video.frames import FrameRenderer
from ugc_studio.video.synthesizer import VideoSynthesizer


class StaticDetector:
    def __init__(self, labels):
        self.labels = labels

    def detect(self, image):
        return set(self.labels)


class BrokenDetector:
    def detect(self, image):
        raise RuntimeError("model offline")


class TestProcessImages(unittest.TestCase):
    def test_bad_image_does_not_stop_batch(self):
        orchestrator = StudioOrchestrator(detector=StaticDetector({"Sneaker", "Jacket"}))
        items = orchestrator.process_images(
            [("a.png", png_bytes()), ("b.jpg", b"broken"), ("c", random_raster(6, 6))],
            EnhancementParams(scale=2),
            brand="Atelier",
            style="street",
        )
        self.assertEqual([item.name for item in items], ["a.png", "b.jpg", "c"])
        self.assertTrue(items[0].ok)
        self.assertIsInstance(items[1].error, DecodeError)
        self.assertFalse(items[1].ok)
        self.assertEqual(items[2].asset.raster.size, (12, 12))
        self.assertEqual(items[0].labels, ["Jacket", "Sneaker"])
        self.assertIn("Atelier We love jacket and the sneaker", items[0].caption)

    def test_detector_failure_falls_back_to_generic_caption(self):
        orchestrator = StudioOrchestrator(
            settings=StudioSettings(detection_attempts=1), detector=BrokenDetector()
        )
        [item] = orchestrator.process_images([("a", random_raster(4, 4))])
        self.assertTrue(item.ok)
        self.assertEqual(item.labels, [])
        self.assertIn(GENERIC_BODY, item.caption)


class TestGenerateVideo(unittest.IsolatedAsyncioTestCase):
    def orchestrator(self, handles: Handles) -> StudioOrchestrator:
        synthesizer = VideoSynthesizer(
            recorder_factory=handles.recorder_factory,
            transcoder_factory=handles.transcoder_factory,
        )
        return StudioOrchestrator(synthesizer=synthesizer)

    async def test_video_attached_to_item(self):
        handles = Handles()
        orchestrator = self.orchestrator(handles)
        [item] = orchestrator.process_images([("a", random_raster(4, 4))])
        with mock.patch.object(FrameRenderer, "render_bytes", lambda self, i: index_frame(i)):
            await orchestrator.generate_video(item, "casual", "Atelier")
        self.assertEqual(item.video.container, "mp4")
        self.assertIsNone(item.video_error)

    async def test_failure_is_stored_not_raised(self):
        handles = Handles(fail_transcode=True)
        orchestrator = self.orchestrator(handles)
        items = orchestrator.process_images([("a", random_raster(4, 4)), ("b", random_raster(5, 5))])
        with mock.patch.object(FrameRenderer, "render_bytes", lambda self, i: index_frame(i)):
            results = await orchestrator.generate_videos(items)
        self.assertEqual(len(results), 2)
        for item in results:
            self.assertIsNone(item.video)
            self.assertIsInstance(item.video_error, TranscodeError)
        self.assertEqual([h.release_calls for h in handles.all_handles()], [1, 1, 1, 1])

    async def test_item_without_asset_is_rejected(self):
        orchestrator = self.orchestrator(Handles())
        with self.assertRaises(ValueError):
            await orchestrator.generate_video(StudioItem(name="empty"))


if __name__ == "__main__":
    unittest.main()
