"""Colour quantization engines and the PNG-in / PNG-out quantization step.

Every engine satisfies the same narrow contract: an ``(H, W, 4)`` RGBA
buffer goes in, a palette of RGBA entries plus one palette index per pixel
comes out, or a :class:`~lightpng.errors.QuantizeError` carrying the engine's
status code is raised.  :func:`quantize_png` wraps an engine with PNG decoding
and re-encoding so the orchestrator only ever handles bytes.
"""

from __future__ import annotations

import io
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np
from PIL import Image, features

from .colorspace import prepare_rgba, unpremultiply_palette
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .errors import (
    ABORTED,
    INTERNAL_ERROR,
    VALUE_OUT_OF_RANGE,
    DataError,
    QuantizeError,
    SystemFaultError,
)
from .external_engines import CommandError, pngquant_quantize_bytes
from .psnr import decode_png
from .system_tools import discover_tool

logger = logging.getLogger(__name__)

__all__ = [
    "QuantizationResult",
    "QuantizedPng",
    "Quantizer",
    "PillowQuantizer",
    "PngquantQuantizer",
    "create_quantizer",
    "encode_indexed_png",
    "quantize_png",
]


@dataclass
class QuantizationResult:
    """Palette plus per-pixel indices produced by a quantizer."""

    palette: list[tuple[int, int, int, int]]
    indices: np.ndarray  # (H, W) uint8

    def __post_init__(self) -> None:
        if not 1 <= len(self.palette) <= 256:
            raise QuantizeError(VALUE_OUT_OF_RANGE, engine="quantizer")
        if self.indices.size and int(self.indices.max()) >= len(self.palette):
            raise QuantizeError(VALUE_OUT_OF_RANGE, engine="quantizer")


@dataclass(frozen=True)
class QuantizedPng:
    """Outcome of :func:`quantize_png`."""

    data: bytes
    already_indexed: bool = False


class Quantizer(ABC):
    """Reduce a true-colour RGBA buffer to a palette image.

    Sub-classes should not do any work in the constructor so they can be
    created freely per optimiser instance.
    """

    #: Human-readable engine name, used in error messages
    NAME: str = "quantizer"

    def __init__(self, engine_config: EngineConfig = DEFAULT_ENGINE_CONFIG):
        self.engine_config = engine_config

    @classmethod
    @abstractmethod
    def available(cls) -> bool:  # pragma: no cover - trivial in concrete classes
        """Return ``True`` iff the engine can run on the current system."""

    @abstractmethod
    def quantize(self, rgba: np.ndarray, width: int, height: int) -> QuantizationResult:
        """Quantize *rgba* (``(height, width, 4)`` uint8).

        Raises:
            QuantizeError: the engine reported a non-OK status.
        """


def _palette_from_image(image: Image.Image, used: int) -> list[tuple[int, int, int, int]]:
    palette_mode = image.palette.mode if image.palette is not None else "RGB"
    flat = image.getpalette(None) or []
    if palette_mode == "RGBA":
        entries = [tuple(flat[i : i + 4]) for i in range(0, len(flat), 4)]
    else:
        entries = [(*flat[i : i + 3], 255) for i in range(0, len(flat), 3)]

    # Palette images may keep alpha in info["transparency"] instead
    transparency = image.info.get("transparency")
    if isinstance(transparency, bytes):
        entries = [
            (r, g, b, transparency[i] if i < len(transparency) else a)
            for i, (r, g, b, a) in enumerate(entries)
        ]
    elif isinstance(transparency, int) and 0 <= transparency < len(entries):
        r, g, b, _ = entries[transparency]
        entries[transparency] = (r, g, b, 0)

    return entries[: max(used, 1)]


def _result_from_paletted(image: Image.Image) -> QuantizationResult:
    indices = np.asarray(image, dtype=np.uint8)
    used = int(indices.max()) + 1 if indices.size else 1
    return QuantizationResult(palette=_palette_from_image(image, used), indices=indices)


class PillowQuantizer(Quantizer):
    """In-process quantization through Pillow.

    Uses Pillow's libimagequant binding when the installed Pillow was built
    with it, otherwise the fast-octree method (the only built-in method that
    handles alpha).
    """

    NAME = "pillow"

    @classmethod
    def available(cls) -> bool:
        return True

    @staticmethod
    def method() -> Image.Quantize:
        if features.check_feature("libimagequant"):
            return Image.Quantize.LIBIMAGEQUANT
        return Image.Quantize.FASTOCTREE

    def quantize(self, rgba: np.ndarray, width: int, height: int) -> QuantizationResult:
        if rgba.shape != (height, width, 4):
            raise QuantizeError(VALUE_OUT_OF_RANGE, engine=self.NAME)

        source = Image.frombytes("RGBA", (width, height), np.ascontiguousarray(rgba).tobytes())
        dither = (
            Image.Dither.FLOYDSTEINBERG
            if self.engine_config.DITHERING > 0
            else Image.Dither.NONE
        )
        try:
            quantized = source.quantize(
                colors=self.engine_config.MAX_COLORS,
                method=self.method(),
                dither=dither,
            )
        except (ValueError, OSError) as e:
            raise QuantizeError(INTERNAL_ERROR, engine=self.NAME, cause=e) from e

        return _result_from_paletted(quantized)


class PngquantQuantizer(Quantizer):
    """Quantization through the ``pngquant`` command-line tool."""

    NAME = "pngquant"

    @classmethod
    def available(cls) -> bool:
        return discover_tool("pngquant").available

    def quantize(self, rgba: np.ndarray, width: int, height: int) -> QuantizationResult:
        if rgba.shape != (height, width, 4):
            raise QuantizeError(VALUE_OUT_OF_RANGE, engine=self.NAME)

        buffer = io.BytesIO()
        Image.frombytes("RGBA", (width, height), np.ascontiguousarray(rgba).tobytes()).save(
            buffer, format="PNG"
        )

        try:
            output = pngquant_quantize_bytes(buffer.getvalue(), engine_config=self.engine_config)
        except CommandError as e:
            raise QuantizeError(e.returncode, engine=self.NAME, cause=e) from e
        except subprocess.TimeoutExpired as e:
            raise QuantizeError(ABORTED, engine=self.NAME, cause=e) from e
        except RuntimeError as e:
            # Binary missing
            raise SystemFaultError(f"{self.NAME}: {e}", cause=e) from e
        except OSError as e:
            raise SystemFaultError(f"{self.NAME}: failed to run quantizer: {e}", cause=e) from e

        image = decode_png(output)
        if image.mode != "P":
            raise QuantizeError(INTERNAL_ERROR, engine=self.NAME)
        return _result_from_paletted(image)


def create_quantizer(engine_config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> Quantizer:
    """Return the engine selected by ``engine_config.QUANTIZER``."""
    if engine_config.QUANTIZER == "pngquant":
        return PngquantQuantizer(engine_config)
    return PillowQuantizer(engine_config)


def encode_indexed_png(result: QuantizationResult) -> bytes:
    """Encode straight-alpha palette + indices as an index-colour PNG (``PLTE`` + ``tRNS``)."""
    height, width = result.indices.shape
    image = Image.frombytes("P", (width, height), np.ascontiguousarray(result.indices, dtype=np.uint8).tobytes())
    flat = [channel for entry in result.palette for channel in entry]
    image.putpalette(flat, rawmode="RGBA")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def quantize_png(data: bytes, quantizer: Quantizer) -> QuantizedPng:
    """Quantize PNG *data* with *quantizer*.

    Index-colour input comes back unchanged with ``already_indexed=True``.

    Raises:
        DataError: the PNG cannot be decoded, its pixel layout is unsupported,
            or the engine failed (:class:`QuantizeError`).
        SystemFaultError: an external engine could not be executed.
    """
    try:
        image = decode_png(data)
        rgba = prepare_rgba(image)
    except DataError as e:
        raise DataError(f"png: failed to decode first in pngquant < {e.message}", cause=e) from e

    if rgba is None:
        logger.debug("Image is already index-colour, skipping quantization")
        return QuantizedPng(data=data, already_indexed=True)

    height, width = rgba.shape[:2]
    result = quantizer.quantize(rgba, width, height)
    # Engines return premultiplied colour; PLTE/tRNS hold straight alpha
    straight = QuantizationResult(
        palette=unpremultiply_palette(result.palette), indices=result.indices
    )

    try:
        encoded = encode_indexed_png(straight)
    except (ValueError, OSError) as e:
        raise DataError(f"png: failed to encode pngquant < {e}", cause=e) from e

    return QuantizedPng(data=encoded)
