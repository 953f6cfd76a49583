"""Domain models: parameter clamping, job profile, per-frame animation state."""

import math
import unittest

import numpy as np

from ugc_studio.domain.models import (
    ACCENT_COLORS,
    EncodedVideo,
    EnhancementParams,
    FrameState,
    RasterImage,
    Style,
    VideoJobSpec,
)


class TestEnhancementParams(unittest.TestCase):
    def test_defaults(self):
        params = EnhancementParams()
        self.assertEqual(params.scale, 2)
        self.assertEqual(params.brightness, 1.0)
        self.assertEqual(params.saturation, 1.0)
        self.assertEqual(params.sharpen, 0.0)

    def test_out_of_range_values_are_clamped(self):
        params = EnhancementParams(scale=9, brightness=5.0, saturation=0.1, sharpen=-2)
        self.assertEqual(params.scale, 4)
        self.assertEqual(params.brightness, 2.0)
        self.assertEqual(params.saturation, 0.5)
        self.assertEqual(params.sharpen, 0.0)

        params = EnhancementParams(scale=0, sharpen=3.5)
        self.assertEqual(params.scale, 1)
        self.assertEqual(params.sharpen, 1.0)

    def test_fractional_scale_is_rounded(self):
        self.assertEqual(EnhancementParams(scale=2.6).scale, 3)

    def test_nan_maps_to_neutral(self):
        params = EnhancementParams(brightness=float("nan"), sharpen=float("nan"))
        self.assertEqual(params.brightness, 1.0)
        self.assertEqual(params.sharpen, 0.0)

    def test_params_are_immutable(self):
        params = EnhancementParams()
        with self.assertRaises(Exception):
            params.scale = 3


class TestRasterImage(unittest.TestCase):
    def test_rejects_wrong_layout(self):
        with self.assertRaises(ValueError):
            RasterImage(np.zeros((4, 4, 3), dtype=np.uint8))
        with self.assertRaises(ValueError):
            RasterImage(np.zeros((4, 4, 4), dtype=np.float32))

    def test_dimensions(self):
        raster = RasterImage(np.zeros((3, 5, 4), dtype=np.uint8))
        self.assertEqual(raster.size, (5, 3))


class TestVideoJobSpec(unittest.TestCase):
    def test_fixed_profile(self):
        spec = VideoJobSpec()
        self.assertEqual((spec.width, spec.height, spec.fps), (1080, 1920, 30))
        self.assertEqual(spec.duration_ms, 12_000)
        self.assertEqual(spec.total_frames, 360)

    def test_for_style_picks_accent_and_hashtag(self):
        spec = VideoJobSpec.for_style("street", "Atelier")
        self.assertEqual(spec.style, Style.STREET)
        self.assertEqual(spec.accent_color, "#CBD5FF")
        self.assertEqual(spec.brand_tag, "#Atelier")

    def test_unknown_style_falls_back_to_casual(self):
        spec = VideoJobSpec.for_style("gothic")
        self.assertEqual(spec.style, Style.CASUAL)
        self.assertEqual(spec.accent_color, ACCENT_COLORS[Style.CASUAL])
        self.assertEqual(spec.brand_tag, "")

    def test_style_tags_are_case_insensitive(self):
        self.assertEqual(Style.coerce(" Luxury "), Style.LUXURY)
        self.assertEqual(Style.coerce(None), Style.CASUAL)


class TestFrameState(unittest.TestCase):
    def test_first_frame(self):
        state = FrameState.at(0, 360)
        self.assertEqual(state.progress, 0.0)
        self.assertAlmostEqual(state.zoom, 1.05)
        self.assertAlmostEqual(state.offset_x, 0.0)
        self.assertAlmostEqual(state.offset_y, 30.0)

    def test_quarter_and_half_way(self):
        quarter = FrameState.at(90, 360)
        self.assertAlmostEqual(quarter.offset_x, 40.0)
        self.assertAlmostEqual(quarter.offset_y, 0.0, places=9)

        half = FrameState.at(180, 360)
        self.assertAlmostEqual(half.zoom, 1.125)
        self.assertAlmostEqual(half.offset_y, -30.0)

    def test_depends_only_on_index(self):
        self.assertEqual(FrameState.at(123, 360), FrameState.at(123, 360))

    def test_zoom_grows_monotonically(self):
        zooms = [FrameState.at(i, 360).zoom for i in range(360)]
        self.assertTrue(all(a < b for a, b in zip(zooms, zooms[1:])))
        self.assertLess(zooms[-1], 1.2)
        self.assertFalse(math.isnan(FrameState.at(0, 0).zoom))


class TestEncodedVideo(unittest.TestCase):
    def test_mime_type_follows_container(self):
        video = EncodedVideo(payload=b"abc", container="mp4", codec="h264", frame_count=1)
        self.assertEqual(video.mime_type, "video/mp4")
        self.assertEqual(video.size_bytes, 3)

    def test_release_drops_payload(self):
        video = EncodedVideo(payload=b"abc", container="webm", codec="vp9", frame_count=1)
        video.release()
        self.assertEqual(video.size_bytes, 0)


if __name__ == "__main__":
    unittest.main()
