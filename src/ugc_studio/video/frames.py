"""
Frame renderer for the vertical short.
Composes each frame back to front: dark background, the enhanced photo with a
slow zoom and an oscillating pan, a translucent accent panel, then the title,
the wrapped caption and the brand hashtag.
"""
import logging
import math
from functools import lru_cache
from typing import Optional, Sequence

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFont

from ..config import StudioSettings
from ..domain.models import FrameState, RasterImage, VideoJobSpec
from ..errors import RenderTargetError, ResourceError
from ..imaging.raster import to_pil

logger = logging.getLogger(__name__)

BACKGROUND = (16, 16, 16)
TITLE_TEXT = "Style & comfort"
TITLE_COLOR = "#111111"
CAPTION_COLOR = "#222222"
BRAND_COLOR = "#111111"

PANEL_MARGIN_X = 60
PANEL_BOTTOM_OFFSET = 520
PANEL_HEIGHT = 420
PANEL_OPACITY = 0.8

TEXT_LEFT = 100
TITLE_BOTTOM_OFFSET = 480
CAPTION_BOTTOM_OFFSET = 420
BRAND_BOTTOM_OFFSET = 80
LINE_HEIGHT = 48

TITLE_FONT_SIZE = 48
CAPTION_FONT_SIZE = 32
BRAND_FONT_SIZE = 36

# Word-wrap runs on an average glyph width, not on real font metrics
WRAP_FONT_SIZE = 28
WRAP_WIDTH = 680
GLYPH_WIDTH_RATIO = 0.55

MAX_ZOOM = 1.2


def estimated_width(line: str, font_size: float) -> float:
    return len(line) * (font_size * GLYPH_WIDTH_RATIO)


def wrap_text(text: str, font_size: float = WRAP_FONT_SIZE, max_width: float = WRAP_WIDTH) -> list[str]:
    """
    Greedy word wrap on the estimated width ``len * font_size * 0.55``.
    Words are never split; a single word wider than ``max_width`` gets its own line.
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        tentative = f"{current} {word}" if current else word
        if estimated_width(tentative, font_size) > max_width:
            if current:
                lines.append(current)
            current = word
        else:
            current = tentative
    if current:
        lines.append(current)
    return lines


def cover_fit(image_width: int, image_height: int, canvas_width: int, canvas_height: int) -> tuple[float, float]:
    """Size that fills the canvas on the constraining axis and overflows on the other."""
    image_ratio = image_width / image_height
    canvas_ratio = canvas_width / canvas_height
    if image_ratio > canvas_ratio:
        return canvas_height * image_ratio, float(canvas_height)
    return float(canvas_width), canvas_width / image_ratio


@lru_cache(maxsize=16)
def load_font(path: Optional[str], size: int) -> ImageFont.ImageFont:
    """TrueType font at ``path``, or Pillow's built-in scalable font."""
    if path:
        try:
            return ImageFont.truetype(path, size)
        except OSError as e:
            raise ResourceError(f"Cannot load font {path}: {e}") from e
    return ImageFont.load_default(size=size)


class FrameRenderer:
    """
    Renders the frames of one video job into a single canvas it owns.

    The panel and text overlay do not change between frames, so they are
    drawn once; only the photo layer is recomposed per frame.
    """

    def __init__(
        self,
        raster: RasterImage,
        spec: VideoJobSpec,
        caption_lines: Sequence[str],
        brand_tag: Optional[str] = None,
        settings: Optional[StudioSettings] = None,
    ):
        self.spec = spec
        self.caption_lines = list(caption_lines)
        self.brand_tag = spec.brand_tag if brand_tag is None else brand_tag
        self.settings = settings or StudioSettings()

        try:
            self._canvas = Image.new("RGB", (spec.width, spec.height), BACKGROUND)
            self._source = self._prepare_source(raster)
            self._overlay = self._build_overlay()
        except MemoryError as e:
            raise RenderTargetError(f"Cannot allocate {spec.width}x{spec.height} canvas") from e

    @property
    def total_frames(self) -> int:
        return self.spec.total_frames

    def _prepare_source(self, raster: RasterImage) -> Image.Image:
        """Downscale the photo once to the largest size any frame will draw."""
        image = to_pil(raster)
        draw_w, draw_h = cover_fit(image.width, image.height, self.spec.width, self.spec.height)
        max_w, max_h = math.ceil(draw_w * MAX_ZOOM), math.ceil(draw_h * MAX_ZOOM)
        if image.width > max_w and image.height > max_h:
            image = image.resize((max_w, max_h), Image.LANCZOS)
        if image.getextrema()[3][0] == 255:
            return image.convert("RGB")
        return image

    def _build_overlay(self) -> Image.Image:
        width, height = self.spec.width, self.spec.height
        overlay = Image.new("RGBA", (width, height), (0, 0, 0, 0))

        accent = ImageColor.getrgb(self.spec.accent_color)[:3]
        panel = Image.new(
            "RGBA",
            (width - 2 * PANEL_MARGIN_X, PANEL_HEIGHT),
            accent + (round(PANEL_OPACITY * 255),),
        )
        overlay.paste(panel, (PANEL_MARGIN_X, height - PANEL_BOTTOM_OFFSET))

        draw = ImageDraw.Draw(overlay)
        bold_path = self.settings.bold_font_path or self.settings.font_path
        draw.text(
            (TEXT_LEFT, height - TITLE_BOTTOM_OFFSET),
            TITLE_TEXT,
            font=load_font(bold_path, TITLE_FONT_SIZE),
            fill=TITLE_COLOR,
        )

        caption_font = load_font(self.settings.font_path, CAPTION_FONT_SIZE)
        text_y = height - CAPTION_BOTTOM_OFFSET
        for line in self.caption_lines:
            draw.text((TEXT_LEFT, text_y), line, font=caption_font, fill=CAPTION_COLOR)
            text_y += LINE_HEIGHT

        if self.brand_tag:
            draw.text(
                (TEXT_LEFT, height - BRAND_BOTTOM_OFFSET),
                self.brand_tag,
                font=load_font(bold_path, BRAND_FONT_SIZE),
                fill=BRAND_COLOR,
            )
        return overlay

    def _draw_photo(self, state: FrameState) -> None:
        width, height = self.spec.width, self.spec.height
        source = self._source
        draw_w, draw_h = cover_fit(source.width, source.height, width, height)
        scaled_w, scaled_h = draw_w * state.zoom, draw_h * state.zoom
        left = width / 2 + state.offset_x - scaled_w / 2
        top = height / 2 + state.offset_y - scaled_h / 2

        x0, y0 = round(max(0.0, left)), round(max(0.0, top))
        x1, y1 = round(min(width, left + scaled_w)), round(min(height, top + scaled_h))
        if x1 <= x0 or y1 <= y0:
            return

        # Region of the source that lands on the visible part of the canvas
        sx = source.width / scaled_w
        sy = source.height / scaled_h
        box = (
            max(0.0, (x0 - left) * sx),
            max(0.0, (y0 - top) * sy),
            min(float(source.width), (x1 - left) * sx),
            min(float(source.height), (y1 - top) * sy),
        )
        layer = source.resize((x1 - x0, y1 - y0), Image.BILINEAR, box=box)
        if layer.mode == "RGBA":
            self._canvas.paste(layer, (x0, y0), layer)
        else:
            self._canvas.paste(layer, (x0, y0))

    def render(self, frame_index: int) -> Image.Image:
        """
        Draw frame ``frame_index`` into the renderer's canvas and return it.
        The canvas is overwritten by the next call.
        """
        state = FrameState.at(frame_index, self.total_frames)
        self._canvas.paste(BACKGROUND, (0, 0, self.spec.width, self.spec.height))
        self._draw_photo(state)
        self._canvas.paste(self._overlay, (0, 0), self._overlay)
        return self._canvas

    def render_bytes(self, frame_index: int) -> bytes:
        """Frame as packed rgb24, the layout the capture stream expects."""
        return self.render(frame_index).tobytes()


def render_frame(
    raster: RasterImage,
    frame_index: int,
    spec: VideoJobSpec,
    caption_lines: Sequence[str],
    brand_tag: Optional[str] = None,
    settings: Optional[StudioSettings] = None,
) -> np.ndarray:
    """Render a single frame as a (height, width, 3) uint8 buffer."""
    renderer = FrameRenderer(raster, spec, caption_lines, brand_tag, settings)
    return np.asarray(renderer.render(frame_index)).copy()
