"""Subprocess plumbing shared by the external quantization engines."""

from __future__ import annotations

import os
import subprocess
import time
from pathlib import Path
from typing import Any

__all__ = [
    "CommandError",
    "run_command",
]


class CommandError(RuntimeError):
    """An external command exited with a non-zero status.

    ``returncode`` is kept because pngquant reports libimagequant status codes
    through it (99 when the requested quality cannot be met).
    """

    def __init__(self, message: str, returncode: int, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def run_command(
    cmd: list[str], *, engine: str, output_path: Path, timeout: int | None = 60
) -> dict[str, Any]:
    """Run *cmd* to completion and describe what it produced.

    Parameters
    ----------
    cmd
        Argument vector; never passed through a shell.
    engine
        Engine key used in messages, e.g. "pngquant".
    output_path
        File the command is expected to write; its size is reported.
    timeout
        Seconds before :class:`subprocess.TimeoutExpired` is raised, or *None*.

    Returns
    -------
    dict
        ``render_ms``, ``engine``, ``command`` and ``bytes`` (0 when the tool
        wrote nothing).

    Raises
    ------
    CommandError
        The command exited non-zero.
    """
    started = time.perf_counter()
    completed = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    elapsed_ms = int((time.perf_counter() - started) * 1000)

    if completed.returncode != 0:
        stderr = completed.stderr or ""
        raise CommandError(
            f"{engine} command failed (exit {completed.returncode}): {stderr.strip()}",
            returncode=completed.returncode,
            stderr=stderr,
        )

    try:
        produced = os.path.getsize(output_path)
    except OSError:
        produced = 0

    return {
        "render_ms": elapsed_ms,
        "engine": engine,
        "command": " ".join(cmd),
        "bytes": produced,
    }
