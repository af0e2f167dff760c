"""Tests for lightpng.quantize module."""

import math
import subprocess
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from lightpng.config import EngineConfig
from lightpng.errors import (
    ABORTED,
    QUALITY_TOO_LOW,
    DataError,
    QuantizeError,
    SystemFaultError,
    as_data_error,
)
from lightpng.external_engines import CommandError
from lightpng.psnr import decode_png, psnr_from_bytes
from lightpng.quantize import (
    PillowQuantizer,
    PngquantQuantizer,
    QuantizationResult,
    QuantizedPng,
    create_quantizer,
    encode_indexed_png,
    quantize_png,
)

from tests.fixtures.generate_png_fixtures import (
    ExactQuantizer,
    SolidQuantizer,
    block_image,
    encode_png,
)


class TestQuantizationResult:
    """Tests for QuantizationResult validation."""

    @pytest.mark.fast
    def test_empty_palette_rejected(self):
        with pytest.raises(QuantizeError) as exc_info:
            QuantizationResult(palette=[], indices=np.zeros((1, 1), dtype=np.uint8))

        assert exc_info.value.status == "ValueOutOfRange"

    @pytest.mark.fast
    def test_index_past_palette_rejected(self):
        with pytest.raises(QuantizeError):
            QuantizationResult(palette=[(0, 0, 0, 255)], indices=np.ones((2, 2), dtype=np.uint8))


class TestEncodeIndexedPng:
    """Tests for encode_indexed_png."""

    @pytest.mark.fast
    def test_produces_palette_png_with_alpha(self):
        result = QuantizationResult(
            palette=[(255, 0, 0, 255), (0, 0, 0, 0)],
            indices=np.array([[0, 1], [1, 0]], dtype=np.uint8),
        )

        image = decode_png(encode_indexed_png(result))

        assert image.mode == "P"
        rgba = image.convert("RGBA")
        assert rgba.getpixel((0, 0)) == (255, 0, 0, 255)
        assert rgba.getpixel((1, 0))[3] == 0


class TestQuantizePng:
    """Tests for quantize_png."""

    @pytest.mark.fast
    def test_truecolor_becomes_indexed(self, plain_rgb_png):
        quantized = quantize_png(plain_rgb_png, ExactQuantizer())

        assert not quantized.already_indexed
        assert decode_png(quantized.data).mode == "P"
        assert psnr_from_bytes(plain_rgb_png, quantized.data) == math.inf

    @pytest.mark.fast
    def test_indexed_input_passes_through(self, plain_indexed_png):
        quantized = quantize_png(plain_indexed_png, ExactQuantizer())

        assert quantized == QuantizedPng(data=plain_indexed_png, already_indexed=True)

    @pytest.mark.fast
    @pytest.mark.parametrize("quantizer_cls", [ExactQuantizer, PillowQuantizer])
    def test_translucent_colour_preserved(self, quantizer_cls):
        """A lossless palette on soft alpha keeps the visible colour."""
        data = encode_png(Image.new("RGBA", (32, 32), (200, 100, 50, 128)))

        quantized = quantize_png(data, quantizer_cls())

        r, g, b, a = decode_png(quantized.data).convert("RGBA").getpixel((0, 0))
        assert a == 128
        # Premultiplying to 8 bits loses at most one straight-alpha step
        assert abs(r - 200) <= 1 and abs(g - 100) <= 1 and abs(b - 50) <= 1
        assert psnr_from_bytes(data, quantized.data) == math.inf

    @pytest.mark.fast
    def test_translucent_passes_quality_gate(self):
        from lightpng.optimizer import QUALITY_HIGH, is_acceptable_psnr

        image = block_image().convert("RGBA")
        image.putalpha(90)
        data = encode_png(image)

        quantized = quantize_png(data, ExactQuantizer())

        assert is_acceptable_psnr(QUALITY_HIGH, psnr_from_bytes(data, quantized.data))

    @pytest.mark.fast
    def test_grey_alpha_input(self):
        image = Image.new("LA", (16, 16), (120, 200))
        data = encode_png(image)

        quantized = quantize_png(data, ExactQuantizer())

        assert not quantized.already_indexed
        assert decode_png(quantized.data).mode == "P"
        assert psnr_from_bytes(data, quantized.data) == math.inf

    @pytest.mark.fast
    def test_lossy_engine(self, plain_rgb_png):
        quantized = quantize_png(plain_rgb_png, SolidQuantizer())

        assert psnr_from_bytes(plain_rgb_png, quantized.data) < 20

    @pytest.mark.fast
    def test_unsupported_layout(self):
        data = encode_png(Image.new("L", (4, 4), 128))

        with pytest.raises(DataError, match="failed to decode first in pngquant"):
            quantize_png(data, ExactQuantizer())

    @pytest.mark.fast
    def test_undecodable_input(self):
        with pytest.raises(DataError, match="failed to decode first in pngquant"):
            quantize_png(b"garbage", ExactQuantizer())


class TestPillowQuantizer:
    """Tests for the in-process engine."""

    @pytest.mark.fast
    def test_few_colours_are_exact(self, plain_rgb_png):
        quantized = quantize_png(plain_rgb_png, PillowQuantizer())

        assert decode_png(quantized.data).mode == "P"
        assert psnr_from_bytes(plain_rgb_png, quantized.data) > 40

    @pytest.mark.fast
    def test_result_shape(self):
        rgba = np.asarray(block_image(16).convert("RGBA"), dtype=np.uint8)

        result = PillowQuantizer().quantize(rgba, 16, 16)

        assert result.indices.shape == (16, 16)
        assert 1 <= len(result.palette) <= 256
        assert all(len(entry) == 4 for entry in result.palette)

    @pytest.mark.fast
    def test_shape_mismatch(self):
        rgba = np.zeros((4, 4, 4), dtype=np.uint8)

        with pytest.raises(QuantizeError):
            PillowQuantizer().quantize(rgba, 5, 4)

    @pytest.mark.fast
    def test_always_available(self):
        assert PillowQuantizer.available()


class TestPngquantQuantizer:
    """Tests for the pngquant engine with the binary mocked out."""

    @pytest.mark.fast
    def test_quality_too_low_status(self, plain_rgb_png):
        with patch(
            "lightpng.quantize.pngquant_quantize_bytes",
            side_effect=CommandError("pngquant failed", returncode=99),
        ):
            with pytest.raises(QuantizeError) as exc_info:
                quantize_png(plain_rgb_png, PngquantQuantizer())

        error = exc_info.value
        assert error.code == QUALITY_TOO_LOW
        assert error.status == "QualityTooLow"
        assert "QualityTooLow" in str(error)
        assert as_data_error(error) is error

    @pytest.mark.fast
    def test_timeout_is_aborted(self, plain_rgb_png):
        with patch(
            "lightpng.quantize.pngquant_quantize_bytes",
            side_effect=subprocess.TimeoutExpired(cmd="pngquant", timeout=60),
        ):
            with pytest.raises(QuantizeError) as exc_info:
                quantize_png(plain_rgb_png, PngquantQuantizer())

        assert exc_info.value.code == ABORTED

    @pytest.mark.fast
    def test_missing_binary_is_system_fault(self, plain_rgb_png):
        with patch(
            "lightpng.quantize.pngquant_quantize_bytes",
            side_effect=RuntimeError("Required tool 'pngquant' not found in PATH."),
        ):
            with pytest.raises(SystemFaultError, match="pngquant"):
                quantize_png(plain_rgb_png, PngquantQuantizer())

    @pytest.mark.fast
    def test_output_decoded_into_palette(self, plain_rgb_png):
        indexed = encode_png(block_image().quantize(colors=4))

        with patch("lightpng.quantize.pngquant_quantize_bytes", return_value=indexed) as mock_run:
            quantized = quantize_png(plain_rgb_png, PngquantQuantizer())

        mock_run.assert_called_once()
        assert decode_png(quantized.data).mode == "P"

    @pytest.mark.fast
    def test_premultiplied_output_restored(self):
        """pngquant sees premultiplied colour; the written palette is straight."""
        data = encode_png(Image.new("RGBA", (8, 8), (200, 100, 50, 128)))
        engine_output = Image.new("P", (8, 8), 0)
        engine_output.putpalette([100, 50, 25, 128], rawmode="RGBA")

        with patch(
            "lightpng.quantize.pngquant_quantize_bytes", return_value=encode_png(engine_output)
        ):
            quantized = quantize_png(data, PngquantQuantizer())

        assert decode_png(quantized.data).convert("RGBA").getpixel((0, 0)) == (199, 100, 50, 128)
        assert psnr_from_bytes(data, quantized.data) == math.inf

    @pytest.mark.fast
    def test_truecolor_output_rejected(self, plain_rgb_png):
        with patch("lightpng.quantize.pngquant_quantize_bytes", return_value=plain_rgb_png):
            with pytest.raises(QuantizeError, match="InternalError"):
                quantize_png(plain_rgb_png, PngquantQuantizer())


class TestCreateQuantizer:
    """Tests for create_quantizer."""

    @pytest.mark.fast
    def test_default_is_pillow(self, monkeypatch):
        monkeypatch.delenv("LIGHTPNG_QUANTIZER", raising=False)

        assert isinstance(create_quantizer(EngineConfig()), PillowQuantizer)

    @pytest.mark.fast
    def test_pngquant_selected(self, monkeypatch):
        monkeypatch.delenv("LIGHTPNG_QUANTIZER", raising=False)
        quantizer = create_quantizer(EngineConfig(QUANTIZER="pngquant"))

        assert isinstance(quantizer, PngquantQuantizer)
        assert quantizer.engine_config.QUANTIZER == "pngquant"


@pytest.mark.external_tools
def test_real_pngquant(plain_rgb_png):
    """Run the real binary when it is installed."""
    if not PngquantQuantizer.available():
        pytest.skip("pngquant not installed")

    quantized = quantize_png(plain_rgb_png, PngquantQuantizer())

    assert decode_png(quantized.data).mode == "P"
    assert psnr_from_bytes(plain_rgb_png, quantized.data) > 30
