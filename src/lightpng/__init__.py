"""LightPNG - quality-gated PNG optimisation."""

__version__: str = "0.1.0"
__author__: str = "LightPNG Team"
__email__: str = "team@lightpng.example"

# Public re-exports for convenience ---------------------------------------------------

from .chunks import Chunk, PngStructure, parse_png, serialize_png
from .comment import LightFileComment, build_comment, read_comment, write_comment
from .errors import (
    DataError,
    LightPngError,
    QuantizeError,
    SystemFaultError,
    as_data_error,
    is_data_error,
)
from .logging_sink import LoggingSink, LogSink, NullSink
from .optimizer import (
    OptimizationResult,
    Optimizer,
    StepOutcome,
    StepStatus,
    is_acceptable_psnr,
    optimize,
)
from .psnr import compute_psnr, psnr_from_bytes
from .quantize import PillowQuantizer, PngquantQuantizer, Quantizer, quantize_png
from .strip import StripResult, strip_metadata

__all__ = [
    "Chunk",
    "DataError",
    "LightFileComment",
    "LightPngError",
    "LogSink",
    "LoggingSink",
    "NullSink",
    "OptimizationResult",
    "Optimizer",
    "PillowQuantizer",
    "PngStructure",
    "PngquantQuantizer",
    "QuantizeError",
    "Quantizer",
    "StepOutcome",
    "StepStatus",
    "StripResult",
    "SystemFaultError",
    "as_data_error",
    "build_comment",
    "compute_psnr",
    "is_acceptable_psnr",
    "is_data_error",
    "optimize",
    "parse_png",
    "psnr_from_bytes",
    "quantize_png",
    "read_comment",
    "serialize_png",
    "strip_metadata",
    "write_comment",
]
