from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

from ..config import DEFAULT_ENGINE_CONFIG, EngineConfig
from ..system_tools import discover_tool
from .common import run_command

__all__ = [
    "build_pngquant_args",
    "quantize_bytes",
    "quantize_file",
]


def _pngquant_binary(engine_config: EngineConfig) -> str:
    info = discover_tool("pngquant", engine_config)
    info.require()
    return info.name


def build_pngquant_args(engine_config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> list[str]:
    """Build pngquant arguments mirroring the in-process engine settings.

    Example: pngquant --speed 4 --quality 0-100 --floyd=1.0 256
    """
    args = [
        "--speed",
        str(engine_config.SPEED),
        "--quality",
        f"{engine_config.MIN_QUALITY}-{engine_config.MAX_QUALITY}",
    ]
    if engine_config.DITHERING > 0:
        args.append(f"--floyd={engine_config.DITHERING:g}")
    else:
        args.append("--nofs")
    args.append(str(engine_config.MAX_COLORS))
    return args


def quantize_file(
    input_path: Path,
    output_path: Path,
    *,
    engine_config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> dict[str, Any]:
    """Quantize *input_path* into an index-colour PNG at *output_path*.

    Raises:
        CommandError: pngquant exited non-zero; ``returncode`` carries the
            libimagequant status (e.g. 99 when the quality range is unmet).
        subprocess.TimeoutExpired: the configured timeout elapsed.
    """
    cmd = [
        _pngquant_binary(engine_config),
        *build_pngquant_args(engine_config),
        "--force",
        "--output",
        str(output_path),
        "--",
        str(input_path),
    ]
    return run_command(
        cmd,
        engine="pngquant",
        output_path=output_path,
        timeout=engine_config.TIMEOUT_SECONDS,
    )


def quantize_bytes(data: bytes, *, engine_config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> bytes:
    """Run :func:`quantize_file` on in-memory PNG *data* via a scratch directory."""
    with tempfile.TemporaryDirectory(prefix="lightpng_") as tmpdir:
        input_path = Path(tmpdir) / "input.png"
        output_path = Path(tmpdir) / "output.png"
        input_path.write_bytes(data)
        quantize_file(input_path, output_path, engine_config=engine_config)
        return output_path.read_bytes()
