"""Discovery of the external binaries LightPNG can drive.

Quantization runs in-process by default; the ``pngquant`` executable is only
needed when the CLI engine is selected.  Discovery never raises for a
missing tool: callers get a :class:`ToolInfo` and decide with
:meth:`ToolInfo.require` whether absence is fatal.
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from shutil import which


@dataclass(frozen=True, slots=True)
class ToolInfo:
    """What was found for one external binary."""

    name: str
    available: bool
    version: str | None = None

    def require(self) -> None:
        """Raise *RuntimeError* if the tool isn't available."""
        if not self.available:
            raise RuntimeError(
                f"Required tool '{self.name}' not found in PATH.\n"
                "Install it or point LIGHTPNG_PNGQUANT_PATH at the binary."
            )


@dataclass(frozen=True, slots=True)
class _ToolSpec:
    config_attr: str
    candidates: tuple[str, ...]
    version_flag: str = "--version"
    version_pattern: str = r"(\d+\.\d+(?:\.\d+)?)"


_TOOLS: dict[str, _ToolSpec] = {
    "pngquant": _ToolSpec(config_attr="PNGQUANT_PATH", candidates=("pngquant",)),
}


def _which(cmd: str) -> str | None:
    """Return full path if *cmd* is executable in $PATH, else *None*."""
    return which(cmd)


def _extract_version(output: str, pattern: str) -> str | None:
    match = re.search(pattern, output)
    return match.group(1) if match else None


def _run_version_cmd(cmd: list[str], regex: str) -> str | None:
    """Run *cmd* and pull a version string out of stdout or stderr."""
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.SubprocessError):
        return None

    for stream in (completed.stdout, completed.stderr):
        version = _extract_version(stream or "", regex)
        if version:
            return version
    return None


def discover_tool(tool_key: str, engine_config=None) -> ToolInfo:
    """Locate *tool_key*, preferring the path configured in *engine_config*.

    Args:
        tool_key: Tool identifier (currently only ``pngquant``)
        engine_config: EngineConfig instance (uses DEFAULT_ENGINE_CONFIG if None)

    Raises:
        ValueError: *tool_key* is not a known tool.
    """
    spec = _TOOLS.get(tool_key)
    if spec is None:
        raise ValueError(f"Unknown tool: {tool_key}")

    if engine_config is None:
        from .config import DEFAULT_ENGINE_CONFIG

        engine_config = DEFAULT_ENGINE_CONFIG

    configured = getattr(engine_config, spec.config_attr, None)
    candidates = [configured] if configured else []
    candidates.extend(c for c in spec.candidates if c not in candidates)

    for candidate in candidates:
        if _which(candidate):
            version = _run_version_cmd([candidate, spec.version_flag], spec.version_pattern)
            return ToolInfo(name=candidate, available=True, version=version)

    return ToolInfo(name=spec.candidates[0], available=False)


def get_available_tools(engine_config=None) -> dict[str, ToolInfo]:
    """Availability of every known tool, without requiring any of them."""
    return {key: discover_tool(key, engine_config) for key in _TOOLS}
