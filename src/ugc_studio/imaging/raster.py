"""
Raster conversions: encoded bytes <-> RasterImage <-> Pillow images.
"""
import logging
from io import BytesIO

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ..domain.models import RasterImage
from ..errors import DecodeError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {"JPEG", "PNG", "WEBP"}


def decode_image(data: bytes) -> RasterImage:
    """
    Decode a JPEG/PNG/WebP payload into an RGBA raster.

    Args:
        data: Encoded image bytes

    Returns:
        Decoded raster, EXIF orientation applied

    Raises:
        DecodeError: if the bytes are not a readable raster
    """
    if not data:
        raise DecodeError("Empty image payload")
    try:
        with Image.open(BytesIO(data)) as image:
            if image.format not in SUPPORTED_FORMATS:
                logger.warning(f"Decoding uncommon image format {image.format}")
            if getattr(image, "n_frames", 1) > 1:
                image.seek(0)
            image.load()
            oriented = ImageOps.exif_transpose(image)
            return from_pil(oriented)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise DecodeError(f"Source cannot be interpreted as a raster: {e}") from e


def from_pil(image: Image.Image) -> RasterImage:
    """Copy a Pillow image into an immutable RGBA raster."""
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    return RasterImage(np.array(image, dtype=np.uint8))


def to_pil(raster: RasterImage) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(raster.pixels))


def encode_png(raster: RasterImage) -> bytes:
    """Lossless still-image encoding of the raster."""
    buffer = BytesIO()
    to_pil(raster).save(buffer, format="PNG")
    return buffer.getvalue()
