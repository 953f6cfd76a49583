"""Video synthesizer: frame renderer, capture stream, transcoder and job driver."""

from .capture import FfmpegRecorder, FrameRecorder, build_capture_command
from .frames import FrameRenderer, cover_fit, render_frame, wrap_text
from .synthesizer import VideoJob, VideoSynthesizer, synthesize_video, synthesize_video_async
from .transcode import FfmpegTranscoder, build_transcode_command

__all__ = [
    "FfmpegRecorder",
    "FfmpegTranscoder",
    "FrameRecorder",
    "FrameRenderer",
    "VideoJob",
    "VideoSynthesizer",
    "build_capture_command",
    "build_transcode_command",
    "cover_fit",
    "render_frame",
    "synthesize_video",
    "synthesize_video_async",
    "wrap_text",
]
