"""
Still-image enhancer.
Upscales a photo with a high-quality filter, adjusts brightness and saturation,
then applies a 3x3 unsharp pass, without a full image-processing toolkit.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import numpy as np
from PIL import Image

from ..config import StudioSettings
from ..domain.models import EnhancedAsset, EnhancementParams, RasterImage
from ..errors import RenderTargetError, StudioError
from .raster import decode_image, encode_png, from_pil, to_pil

logger = logging.getLogger(__name__)

# Rec. 709 luma weights, the ones CSS saturate() uses
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)

Source = Union[RasterImage, bytes]


@dataclass
class EnhanceOutcome:
    """Result of one item of a batch: either an asset or the error it hit."""
    index: int
    asset: Optional[EnhancedAsset] = None
    error: Optional[StudioError] = None

    @property
    def ok(self) -> bool:
        return self.asset is not None


def resample(raster: RasterImage, scale: int, max_pixels: Optional[int] = None) -> RasterImage:
    """
    Upscale ``raster`` by an integer factor with Lanczos interpolation.

    Raises:
        RenderTargetError: if the output surface cannot be allocated
    """
    width, height = raster.width * scale, raster.height * scale
    if width <= 0 or height <= 0:
        raise RenderTargetError(f"Invalid output surface {width}x{height}")
    if max_pixels is not None and width * height > max_pixels:
        raise RenderTargetError(
            f"Output surface {width}x{height} exceeds the {max_pixels} pixel limit"
        )
    if scale == 1:
        return raster
    try:
        resized = to_pil(raster).resize((width, height), Image.LANCZOS)
        return from_pil(resized)
    except MemoryError as e:
        raise RenderTargetError(f"Cannot allocate {width}x{height} surface") from e


def apply_color(raster: RasterImage, brightness: float, saturation: float) -> RasterImage:
    """
    Multiplicative color transform: luminance scaled by ``brightness``,
    distance from the per-pixel gray scaled by ``saturation``. Alpha untouched.
    """
    if brightness == 1.0 and saturation == 1.0:
        return raster

    pixels = raster.pixels
    rgb = pixels[..., :3].astype(np.float32) * brightness
    gray = (rgb @ LUMA_WEIGHTS)[..., np.newaxis]
    rgb = gray + (rgb - gray) * saturation

    out = np.empty_like(pixels)
    out[..., :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    out[..., 3] = pixels[..., 3]
    return RasterImage(out)


def sharpen(raster: RasterImage, intensity: float) -> RasterImage:
    """
    3x3 unsharp convolution over the interior of ``raster``.

    Kernel: center ``1 + 4*intensity``, orthogonal neighbors ``-intensity``,
    diagonals 0. The weighted sum is added back onto the unmodified sample
    (``out = clamp(base + sum)``). The one-pixel border and the alpha channel
    are copied unchanged. Reads come from the source snapshot, writes go to a
    fresh buffer.
    """
    if intensity <= 0:
        return raster
    height, width = raster.height, raster.width
    if height < 3 or width < 3:
        return raster

    src = raster.pixels[..., :3].astype(np.float32)
    center = src[1:-1, 1:-1]
    neighbors = src[:-2, 1:-1] + src[2:, 1:-1] + src[1:-1, :-2] + src[1:-1, 2:]
    delta = center * (1 + 4 * intensity) - neighbors * intensity

    out = np.array(raster.pixels, copy=True)
    out[1:-1, 1:-1, :3] = np.clip(np.rint(center + delta), 0, 255).astype(np.uint8)
    return RasterImage(out)


def enhance(
    source: Source,
    params: Optional[EnhancementParams] = None,
    settings: Optional[StudioSettings] = None,
) -> EnhancedAsset:
    """
    Run the full enhancement pass on one image.

    Args:
        source: Raster or encoded JPEG/PNG/WebP bytes
        params: Enhancement parameters (defaults: x2, no color change, no sharpen)
        settings: Runtime settings (surface size limit)

    Returns:
        Enhanced raster with its PNG payload

    Raises:
        DecodeError: if ``source`` bytes cannot be decoded
        RenderTargetError: if an output buffer cannot be allocated
    """
    params = params or EnhancementParams()
    settings = settings or StudioSettings()
    raster = source if isinstance(source, RasterImage) else decode_image(source)

    logger.debug(
        f"Enhancing {raster.width}x{raster.height} x{params.scale} "
        f"(brightness={params.brightness}, saturation={params.saturation}, sharpen={params.sharpen})"
    )
    try:
        result = resample(raster, params.scale, settings.max_output_pixels)
        result = apply_color(result, params.brightness, params.saturation)
        result = sharpen(result, params.sharpen)
        payload = encode_png(result)
    except MemoryError as e:
        raise RenderTargetError(f"Out of memory while enhancing: {e}") from e

    return EnhancedAsset(raster=result, image_bytes=payload, scale=params.scale)


def enhance_batch(
    sources: Iterable[Source],
    params: Optional[EnhancementParams] = None,
    max_workers: Optional[int] = None,
    settings: Optional[StudioSettings] = None,
) -> list[EnhanceOutcome]:
    """
    Enhance several independent images concurrently.
    A failing image is reported in its outcome and never aborts the others.
    """
    settings = settings or StudioSettings()
    items = list(sources)

    def _run(index: int, source: Source) -> EnhanceOutcome:
        try:
            return EnhanceOutcome(index=index, asset=enhance(source, params, settings))
        except StudioError as e:
            logger.warning(f"Image #{index} could not be enhanced: {e}")
            return EnhanceOutcome(index=index, error=e)

    if not items:
        return []
    workers = max(1, min(max_workers or settings.enhance_workers, len(items)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_run, i, source) for i, source in enumerate(items)]
        return [future.result() for future in futures]
