"""Caption collaborators: label detection and marketing copy."""

from .copy import brand_hashtag, build_caption, normalize_label
from .detection import (
    ApparelDetector,
    CaptionWriter,
    LabelDetector,
    NullDetector,
    TemplateCaptionWriter,
    detect_labels,
    filter_apparel_labels,
)

__all__ = [
    "ApparelDetector",
    "CaptionWriter",
    "LabelDetector",
    "NullDetector",
    "TemplateCaptionWriter",
    "brand_hashtag",
    "build_caption",
    "detect_labels",
    "filter_apparel_labels",
    "normalize_label",
]
