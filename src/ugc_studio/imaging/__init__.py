"""Still-image enhancement."""

from .enhancer import (
    EnhanceOutcome,
    apply_color,
    enhance,
    enhance_batch,
    resample,
    sharpen,
)
from .raster import decode_image, encode_png, from_pil, to_pil

__all__ = [
    "EnhanceOutcome",
    "apply_color",
    "decode_image",
    "encode_png",
    "enhance",
    "enhance_batch",
    "from_pil",
    "resample",
    "sharpen",
    "to_pil",
]
