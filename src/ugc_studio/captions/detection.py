"""
Detection collaborator.
The pipeline only sees a narrow capability, ``detect(image) -> set[str]``;
any model can sit behind it. Failures are absorbed: captions degrade
gracefully to the generic body line.
"""
import logging
from typing import Iterable, Optional, Protocol

from ..domain.models import RasterImage, Style
from ..utils.backoff import with_retry
from .copy import build_caption, normalize_label

logger = logging.getLogger(__name__)

APPAREL_KEYWORDS = (
    "shirt", "t-shirt", "tee", "top", "blouse", "dress", "gown", "skirt",
    "jacket", "coat", "trench", "jean", "denim", "pant", "trouser", "short",
    "sweater", "hoodie", "cardigan", "vest", "suit", "blazer", "scarf", "hat",
    "cap", "beanie", "bag", "handbag", "purse", "backpack", "belt", "shoe",
    "sneaker", "boot", "heel", "loafer", "sandal", "watch", "bracelet", "ring",
    "necklace", "earring", "sunglass", "glasses",
)

# Object-detector classes kept as-is
DETECTOR_APPAREL_CLASSES = {"person", "backpack", "umbrella", "handbag", "tie", "suitcase"}


class LabelDetector(Protocol):
    """Returns an unordered set of human-readable labels for a raster."""

    def detect(self, image: RasterImage) -> set[str]:
        ...


class CaptionWriter(Protocol):
    """Pure function of (labels, brand, style) -> caption text."""

    def caption(self, labels: Iterable[str], brand: Optional[str], style: "Style | str") -> str:
        ...


class NullDetector:
    """Detector used when no model is available."""

    def detect(self, image: RasterImage) -> set[str]:
        return set()


class TemplateCaptionWriter:
    """Caption writer backed by the built-in copy templates."""

    def caption(self, labels: Iterable[str], brand: Optional[str], style: "Style | str") -> str:
        return build_caption(labels, brand, style)


def filter_apparel_labels(raw_labels: Iterable[str]) -> set[str]:
    """
    Keep only apparel-related labels from raw model output.

    Detector classes in ``DETECTOR_APPAREL_CLASSES`` are kept; free-form
    classifier names are kept through the first keyword they contain.
    """
    found: set[str] = set()
    for raw in raw_labels:
        name = raw.strip().lower()
        if not name:
            continue
        if name in DETECTOR_APPAREL_CLASSES:
            found.add(normalize_label(name))
        for keyword in APPAREL_KEYWORDS:
            if keyword in name:
                found.add(normalize_label(keyword))
    return found


class ApparelDetector:
    """Wraps a raw detector and filters its output down to apparel labels."""

    def __init__(self, detector: LabelDetector):
        self.detector = detector

    def detect(self, image: RasterImage) -> set[str]:
        return filter_apparel_labels(self.detector.detect(image))


def detect_labels(
    detector: Optional[LabelDetector],
    image: RasterImage,
    attempts: int = 2,
) -> set[str]:
    """
    Best-effort label detection.

    Args:
        detector: Detection capability (None means no model)
        image: Enhanced raster to inspect
        attempts: Tries before giving up

    Returns:
        Detected labels, or an empty set if the detector is missing or failing
    """
    if detector is None:
        return set()

    @with_retry(max_attempts=attempts, min_wait=0.2, max_wait=2.0)
    def _call() -> set[str]:
        return set(detector.detect(image))

    try:
        return _call()
    except Exception as e:
        logger.warning(f"Label detection unavailable, continuing without labels: {e}")
        return set()
