from .common import CommandError, run_command
from .pngquant import build_pngquant_args as pngquant_args
from .pngquant import quantize_bytes as pngquant_quantize_bytes
from .pngquant import quantize_file as pngquant_quantize_file

__all__ = [
    "CommandError",
    "run_command",
    # pngquant
    "pngquant_args",
    "pngquant_quantize_bytes",
    "pngquant_quantize_file",
]
