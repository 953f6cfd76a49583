"""
Error taxonomy of the media pipeline.
Every error is reported per image or per video job, never for a whole batch.
"""


class StudioError(Exception):
    """Base error for everything raised by the pipeline."""
    pass


class DecodeError(StudioError):
    """The source could not be interpreted as a raster image."""
    pass


class RenderTargetError(StudioError):
    """An output surface or frame buffer could not be allocated."""
    pass


class CaptureError(StudioError):
    """The frame-capture stream could not be established or stopped cleanly."""
    pass


class TranscodeError(StudioError):
    """The re-encode step failed or produced no output."""
    pass


class ResourceError(StudioError):
    """A required runtime capability (ffmpeg, fonts, ...) is unavailable."""
    pass


class JobCancelled(StudioError):
    """A video job was cancelled at one of its yield points."""
    pass
