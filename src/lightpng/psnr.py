"""Peak signal-to-noise ratio between two decoded PNG images.

Samples are compared at 16-bit precision (8-bit values widened by ``* 257``
and premultiplied by alpha, the way most PNG decoders expose colour).  Each
squared difference is shifted right by 16 bits to bring it back to the 8-bit
range before accumulation, so a single 8-bit step in one channel contributes
exactly 1 to the error sum.  Alpha itself is not part of the comparison.

Identical images score positive infinity.
"""

from __future__ import annotations

import io
import math

import numpy as np
from PIL import Image

from .errors import DataError

__all__ = [
    "decode_png",
    "rgb16_samples",
    "compute_psnr",
    "psnr_from_bytes",
]

MAX_VALUE = 255.0


def decode_png(data: bytes) -> Image.Image:
    """Decode PNG *data* into a fully loaded Pillow image.

    Raises:
        DataError: the bytes cannot be decoded as a PNG image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        if image.format != "PNG":
            raise DataError(f"png: failed to decode as png < unexpected format {image.format}")
        image.load()
    except DataError:
        raise
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise DataError(f"png: failed to decode as png < {e}", cause=e) from e
    return image


def rgb16_samples(image: Image.Image) -> np.ndarray:
    """Return alpha-premultiplied 16-bit RGB samples as an ``(H, W, 3)`` int64 array."""
    try:
        rgba = np.asarray(image.convert("RGBA"), dtype=np.int64)
    except ValueError as e:
        raise DataError(f"png: cannot read {image.mode} samples < {e}", cause=e) from e
    alpha = rgba[..., 3:4]
    # v * 0x101 * a / 0xff, truncating like 16-bit colour models do
    return (rgba[..., :3] * 257 * alpha) // 255


def compute_psnr(image1: Image.Image, image2: Image.Image) -> float:
    """PSNR in dB between two decoded images of identical bounds.

    Returns:
        ``10 * log10(255^2 / MSE)``, or ``math.inf`` when the images match.

    Raises:
        DataError: the images have different dimensions.
    """
    if image1.size != image2.size:
        raise DataError(
            f"png: image bounds differ: {image1.size[0]}x{image1.size[1]} "
            f"vs {image2.size[0]}x{image2.size[1]}"
        )

    width, height = image1.size
    if width == 0 or height == 0:
        return math.inf

    diff = rgb16_samples(image1) - rgb16_samples(image2)
    total = int(np.sum((diff * diff) >> 16))

    if total == 0:
        return math.inf

    mse = total / (width * height * 3)
    return 10 * math.log10(MAX_VALUE * MAX_VALUE / mse)


def psnr_from_bytes(data1: bytes, data2: bytes) -> float:
    """Decode two PNG byte strings and return :func:`compute_psnr` of the pair."""
    return compute_psnr(decode_png(data1), decode_png(data2))
