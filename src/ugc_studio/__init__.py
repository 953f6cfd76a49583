"""
UGC Studio media pipeline.
Stage 1 enhances a still photo; stage 2 turns it into a 12 s vertical video
with an animated caption overlay.
"""

from .config import StudioSettings
from .domain.models import (
    EncodedVideo,
    EnhancedAsset,
    EnhancementParams,
    FrameState,
    JobState,
    RasterImage,
    Style,
    VideoJobSpec,
)
from .errors import (
    CaptureError,
    DecodeError,
    JobCancelled,
    RenderTargetError,
    ResourceError,
    StudioError,
    TranscodeError,
)
from .imaging.enhancer import EnhanceOutcome, enhance, enhance_batch
from .orchestrator import StudioItem, StudioOrchestrator
from .video.synthesizer import VideoSynthesizer, synthesize_video, synthesize_video_async

__version__ = "0.1.0"

__all__ = [
    "CaptureError",
    "DecodeError",
    "EncodedVideo",
    "EnhanceOutcome",
    "EnhancedAsset",
    "EnhancementParams",
    "FrameState",
    "JobCancelled",
    "JobState",
    "RasterImage",
    "RenderTargetError",
    "ResourceError",
    "StudioError",
    "StudioItem",
    "StudioOrchestrator",
    "StudioSettings",
    "Style",
    "TranscodeError",
    "VideoJobSpec",
    "VideoSynthesizer",
    "enhance",
    "enhance_batch",
    "synthesize_video",
    "synthesize_video_async",
]
