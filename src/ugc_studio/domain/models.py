"""
Domain models.
Describe the rasters, parameters and payloads that flow through the pipeline:
raw image -> enhanced raster -> (optional) synthesized video.
"""
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

MIN_SCALE = 1
MAX_SCALE = 4
MIN_COLOR_FACTOR = 0.5
MAX_COLOR_FACTOR = 2.0
MIN_SHARPEN = 0.0
MAX_SHARPEN = 1.0


class Style(str, Enum):
    """Style tag chosen by the user; drives caption copy and accent color."""
    CASUAL = "casual"
    MINIMAL = "minimal"
    LUXURY = "luxury"
    STREET = "street"
    ROMANTIC = "romantic"

    @classmethod
    def coerce(cls, value: "Style | str | None") -> "Style":
        """Map a free-form tag to a known style, falling back to casual."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            logger.warning(f"Unknown style tag {value!r}, using '{cls.CASUAL.value}'")
            return cls.CASUAL


ACCENT_COLORS = {
    Style.CASUAL: "#FFC285",
    Style.MINIMAL: "#D6E4E5",
    Style.LUXURY: "#F8E3A1",
    Style.STREET: "#CBD5FF",
    Style.ROMANTIC: "#F9D5E5",
}


class JobState(str, Enum):
    """Lifecycle of a single video job."""
    IDLE = "idle"
    RECORDING = "recording"
    FINALIZING = "finalizing"
    TRANSCODING = "transcoding"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class RasterImage:
    """
    Immutable RGBA raster: ``pixels`` has shape (height, width, 4), dtype uint8,
    row-major, top-to-bottom.
    """
    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.dtype != np.uint8:
            raise ValueError(
                f"Expected a (h, w, 4) uint8 buffer, got {pixels.shape} {pixels.dtype}"
            )
        view = pixels.view()
        view.flags.writeable = False
        object.__setattr__(self, "pixels", view)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


def _clamp(value: float, low: float, high: float, neutral: float) -> float:
    if math.isnan(value):
        return neutral
    return min(max(value, low), high)


class EnhancementParams(BaseModel):
    """
    Numeric knobs of the still-image enhancement pass.
    Out-of-range values are clamped, never rejected.
    """
    model_config = ConfigDict(frozen=True)

    scale: int = Field(2, description="Integer upscale factor")
    brightness: float = Field(1.0, description="Luminance multiplier")
    saturation: float = Field(1.0, description="Chroma multiplier")
    sharpen: float = Field(0.0, description="Unsharp intensity, 0 disables the pass")

    @field_validator("scale", mode="before")
    @classmethod
    def _clamp_scale(cls, value):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 2
        if not math.isfinite(number):
            number = MAX_SCALE if number > 0 else MIN_SCALE
        clamped = int(_clamp(round(number), MIN_SCALE, MAX_SCALE, 2))
        if clamped != number:
            logger.warning(f"Upscale factor {value!r} clamped to {clamped}")
        return clamped

    @field_validator("brightness", "saturation", mode="before")
    @classmethod
    def _clamp_color(cls, value):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 1.0
        return _clamp(number, MIN_COLOR_FACTOR, MAX_COLOR_FACTOR, 1.0)

    @field_validator("sharpen", mode="before")
    @classmethod
    def _clamp_sharpen(cls, value):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return _clamp(number, MIN_SHARPEN, MAX_SHARPEN, 0.0)


@dataclass(frozen=True)
class EnhancedAsset:
    """Enhanced raster plus its encoded still image; owned by the caller."""
    raster: RasterImage
    image_bytes: bytes
    scale: int
    mime_type: str = "image/png"

    @property
    def width(self) -> int:
        return self.raster.width

    @property
    def height(self) -> int:
        return self.raster.height


class VideoJobSpec(BaseModel):
    """Fixed vertical short-form profile of a video job."""
    model_config = ConfigDict(frozen=True)

    width: int = 1080
    height: int = 1920
    fps: int = 30
    duration_ms: int = 12_000
    style: Style = Style.CASUAL
    accent_color: str = ACCENT_COLORS[Style.CASUAL]
    brand_tag: str = ""

    @property
    def total_frames(self) -> int:
        """Number of frames rendered for the job (``duration_ms/1000*fps``, truncated)."""
        return self.duration_ms * self.fps // 1000

    @classmethod
    def for_style(cls, style: "Style | str | None", brand: Optional[str] = None) -> "VideoJobSpec":
        from ..captions.copy import brand_hashtag

        resolved = Style.coerce(style)
        return cls(
            style=resolved,
            accent_color=ACCENT_COLORS[resolved],
            brand_tag=brand_hashtag(brand),
        )


@dataclass(frozen=True)
class FrameState:
    """Animation parameters of one frame, derived only from its index."""
    progress: float
    zoom: float
    offset_x: float
    offset_y: float

    @classmethod
    def at(cls, frame_index: int, total_frames: int) -> "FrameState":
        progress = frame_index / total_frames if total_frames > 0 else 0.0
        angle = progress * math.pi * 2
        return cls(
            progress=progress,
            zoom=1.05 + progress * 0.15,
            offset_x=math.sin(angle) * 40,
            offset_y=math.cos(angle) * 30,
        )


@dataclass
class EncodedVideo:
    """Encoded video payload travelling through capture and transcoding."""
    payload: bytes
    container: str
    codec: str
    frame_count: int
    width: int = 1080
    height: int = 1920
    fps: int = 30
    mime_type: str = field(default="")

    def __post_init__(self):
        if not self.mime_type:
            self.mime_type = f"video/{self.container}"

    @property
    def size_bytes(self) -> int:
        return len(self.payload)

    def release(self) -> None:
        """Drop the payload reference once a downstream stage owns the data."""
        self.payload = b""
