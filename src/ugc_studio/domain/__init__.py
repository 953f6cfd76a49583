"""Domain models of the media pipeline."""

from .models import (
    ACCENT_COLORS,
    EncodedVideo,
    EnhancedAsset,
    EnhancementParams,
    FrameState,
    JobState,
    RasterImage,
    Style,
    VideoJobSpec,
)

__all__ = [
    "ACCENT_COLORS",
    "EncodedVideo",
    "EnhancedAsset",
    "EnhancementParams",
    "FrameState",
    "JobState",
    "RasterImage",
    "Style",
    "VideoJobSpec",
]
