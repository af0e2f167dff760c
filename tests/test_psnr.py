"""Tests for lightpng.psnr module."""

import math

import numpy as np
import pytest
from PIL import Image

from lightpng.errors import DataError
from lightpng.psnr import compute_psnr, decode_png, psnr_from_bytes, rgb16_samples

from tests.fixtures.generate_png_fixtures import BLOCK_COLORS, block_image, encode_png


def _solid(color, size=(8, 8), mode="RGB"):
    return Image.new(mode, size, color)


class TestComputePsnr:
    """Tests for compute_psnr."""

    @pytest.mark.fast
    def test_identical_images_are_infinite(self):
        image = block_image()
        assert compute_psnr(image, image.copy()) == math.inf

    @pytest.mark.fast
    def test_symmetric(self):
        a = block_image()
        b = _solid((10, 20, 30), size=a.size)

        assert compute_psnr(a, b) == compute_psnr(b, a)

    @pytest.mark.fast
    def test_one_step_difference_is_finite(self):
        a = _solid((100, 100, 100))
        b = _solid((101, 100, 100))
        score = compute_psnr(a, b)

        assert 0 < score < math.inf
        # One channel in three off by one step: MSE = 1/3
        assert score == pytest.approx(10 * math.log10(255 * 255 * 3))

    @pytest.mark.fast
    def test_four_step_red_offset(self):
        """(4 * 257)^2 >> 16 == 16 per pixel, so MSE = 16 / 3."""
        a = _solid((100, 100, 100))
        b = _solid((104, 100, 100))

        assert compute_psnr(a, b) == pytest.approx(40.8609, abs=1e-3)

    @pytest.mark.fast
    def test_black_vs_white_is_near_zero(self):
        a = _solid((0, 0, 0))
        b = _solid((255, 255, 255))

        # 65535^2 >> 16 == 65534, a hair above 255^2
        assert compute_psnr(a, b) == pytest.approx(-0.0339, abs=1e-3)

    @pytest.mark.fast
    def test_transparent_pixels_compare_equal(self):
        """Colour under zero alpha is invisible and does not count."""
        a = _solid((255, 0, 0, 0), mode="RGBA")
        b = _solid((0, 0, 255, 0), mode="RGBA")

        assert compute_psnr(a, b) == math.inf

    @pytest.mark.fast
    def test_rgb_matches_opaque_rgba(self):
        a = block_image()
        b = a.convert("RGBA")

        assert compute_psnr(a, b) == math.inf

    @pytest.mark.fast
    def test_size_mismatch(self):
        with pytest.raises(DataError, match="bounds differ"):
            compute_psnr(_solid((0, 0, 0), size=(8, 8)), _solid((0, 0, 0), size=(8, 9)))


class TestRgb16Samples:
    """Tests for rgb16_samples."""

    @pytest.mark.fast
    def test_widening_and_premultiplication(self):
        samples = rgb16_samples(_solid((255, 128, 0, 255), size=(1, 1), mode="RGBA"))
        assert samples[0, 0].tolist() == [65535, 128 * 257, 0]

        half = rgb16_samples(_solid((255, 255, 255, 128), size=(1, 1), mode="RGBA"))
        assert half[0, 0].tolist() == [65535 * 128 // 255] * 3

    @pytest.mark.fast
    def test_shape(self):
        samples = rgb16_samples(_solid((1, 2, 3), size=(5, 3)))

        assert samples.shape == (3, 5, 3)
        assert samples.dtype == np.int64


class TestBytes:
    """Tests for the byte-level helpers."""

    @pytest.mark.fast
    def test_psnr_from_bytes(self, plain_rgb_png, rgb_png):
        """Ancillary chunks do not affect the score."""
        assert psnr_from_bytes(plain_rgb_png, rgb_png) == math.inf

    @pytest.mark.fast
    def test_palette_copy_of_same_pixels(self, plain_rgb_png):
        indices = np.zeros((64, 64), dtype=np.uint8)
        indices[:32, 32:] = 1
        indices[32:, :32] = 2
        indices[32:, 32:] = 3
        image = Image.frombytes("P", (64, 64), indices.tobytes())
        image.putpalette([channel for color in BLOCK_COLORS for channel in color])
        indexed = encode_png(image)

        assert psnr_from_bytes(plain_rgb_png, indexed) == math.inf

    @pytest.mark.fast
    def test_decode_rejects_garbage(self):
        with pytest.raises(DataError, match="failed to decode as png"):
            decode_png(b"definitely not an image")

    @pytest.mark.fast
    def test_decode_rejects_other_formats(self):
        import io

        buffer = io.BytesIO()
        _solid((0, 0, 0)).save(buffer, format="BMP")

        with pytest.raises(DataError, match="unexpected format BMP"):
            decode_png(buffer.getvalue())
