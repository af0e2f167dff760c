"""Normalise decoded PNG pixels into the buffer the quantizer consumes.

Only true-colour and grey+alpha images can be quantized.  Palette images are
already index-colour and are reported as such (``None``) so the quantization
step can be skipped; every other layout (opaque greyscale, 16-bit integer,
...) is rejected.

Engines work on premultiplied colour, while PNG stores straight alpha in
``PLTE``/``tRNS``; :func:`unpremultiply_palette` converts back before encoding.
"""

from __future__ import annotations

import numpy as np
from PIL import Image

from .errors import DataError

__all__ = [
    "INDEXED_MODES",
    "SUPPORTED_MODES",
    "is_indexed",
    "premultiply_alpha",
    "prepare_rgba",
    "unpremultiply_palette",
]

INDEXED_MODES = frozenset({"P", "PA"})
SUPPORTED_MODES = frozenset({"RGB", "RGBA", "LA"})


def is_indexed(image: Image.Image) -> bool:
    """Return ``True`` if *image* is palette based."""
    return image.mode in INDEXED_MODES


def premultiply_alpha(rgba: np.ndarray) -> np.ndarray:
    """Apply ``round(channel * alpha / 255)`` to the colour channels of *rgba*.

    Alpha is copied unchanged.  ``channel * alpha / 255`` can never land on
    ``.5`` exactly, so adding 127 before the floor division rounds correctly.
    """
    wide = rgba.astype(np.uint32)
    alpha = wide[..., 3:4]
    out = np.empty_like(rgba, dtype=np.uint8)
    out[..., :3] = (wide[..., :3] * alpha + 127) // 255
    out[..., 3] = rgba[..., 3]
    return out


def prepare_rgba(image: Image.Image) -> np.ndarray | None:
    """Return an ``(H, W, 4)`` uint8 buffer ready for quantization.

    Returns:
        ``None`` when *image* is already index-colour.

    Raises:
        DataError: the pixel layout is neither true-colour nor palette.
    """
    if is_indexed(image):
        return None

    if image.mode not in SUPPORTED_MODES:
        raise DataError(f"png: unsupported image type on decoding ({image.mode})")

    rgba = np.asarray(image.convert("RGBA"), dtype=np.uint8)
    if image.mode == "RGB":
        # Opaque: the premultiplication would be the identity
        return np.ascontiguousarray(rgba)
    return premultiply_alpha(rgba)


def unpremultiply_palette(
    palette: list[tuple[int, int, int, int]],
) -> list[tuple[int, int, int, int]]:
    """Turn premultiplied palette entries back into straight-alpha ones.

    Each channel becomes ``round(c * 255 / a)`` clamped to 255; fully
    transparent entries become ``(0, 0, 0, 0)``.
    """
    straight = []
    for r, g, b, a in palette:
        if a == 0:
            straight.append((0, 0, 0, 0))
            continue
        r, g, b = (min(255, (c * 255 + a // 2) // a) for c in (r, g, b))
        straight.append((r, g, b, a))
    return straight
