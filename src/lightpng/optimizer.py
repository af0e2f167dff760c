"""PNG optimisation pipeline.

One call processes one file start to finish::

    read -> already optimised? -> strip -> quantize (PSNR gated)
         -> final PSNR -> size check -> embed comment -> inspection -> write

Stripping and quantization are soft-fail: their errors are recorded on the
result and the pipeline continues with the best bytes available.  Every other
step is hard-fail and raises a :class:`~lightpng.errors.LightPngError`.  Three
early exits return a normal result without writing anything:
``already_optimized``, ``cant_optimize`` and ``inspection_failed``.
"""

from __future__ import annotations

import math
import os
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

from .comment import LightFileComment, build_comment, read_comment, write_comment
from .config import (
    DEFAULT_ENGINE_CONFIG,
    DEFAULT_QUALITY_CONFIG,
    OUTPUT_FILE_MODE,
    EngineConfig,
    QualityConfig,
)
from .errors import DataError, LightPngError, SystemFaultError, error_context
from .logging_sink import LogSink, NullSink, format_bytes
from .maybeinf import dump_maybe_inf
from .psnr import psnr_from_bytes
from .quantize import Quantizer, create_quantizer, quantize_png
from .strip import StripResult, strip_metadata

__all__ = [
    "QUALITY_DEFAULT",
    "QUALITY_HIGH",
    "QUALITY_LOW",
    "QUALITY_FORCE",
    "StepStatus",
    "StepOutcome",
    "OptimizationResult",
    "Optimizer",
    "is_acceptable_psnr",
    "optimize",
]

QUALITY_DEFAULT = ""
QUALITY_HIGH = "high"
QUALITY_LOW = "low"
QUALITY_FORCE = "force"

Stripper = Callable[[bytes], tuple[bytes, StripResult]]


def is_acceptable_psnr(
    quality: str, psnr: float, config: QualityConfig = DEFAULT_QUALITY_CONFIG
) -> bool:
    """Return ``True`` if a quantization scoring *psnr* passes at *quality*.

    Infinity always passes; ``"force"`` accepts anything; unknown levels use
    the default threshold.
    """
    if math.isinf(psnr) and psnr > 0:
        return True

    if quality == QUALITY_HIGH:
        return psnr >= config.HIGH_MIN_PSNR
    elif quality == QUALITY_LOW:
        return psnr >= config.LOW_MIN_PSNR
    elif quality == QUALITY_FORCE:
        return True
    else:
        return psnr >= config.DEFAULT_MIN_PSNR


class StepStatus(Enum):
    """What happened in a soft-fail step."""

    SKIPPED = "skipped"
    APPLIED = "applied"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    """Tagged outcome of a soft-fail step (strip or quantize)."""

    status: StepStatus = StepStatus.SKIPPED
    psnr: float = 0.0
    error: LightPngError | None = None
    detail: StripResult | None = None

    @property
    def applied(self) -> bool:
        return self.status is StepStatus.APPLIED

    @property
    def failed(self) -> bool:
        return self.status is StepStatus.FAILED

    @classmethod
    def skipped(cls) -> StepOutcome:
        return cls(StepStatus.SKIPPED)

    @classmethod
    def failure(cls, error: LightPngError) -> StepOutcome:
        return cls(StepStatus.FAILED, error=error)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.status.value,
            "psnr": dump_maybe_inf(self.psnr),
        }
        if self.error is not None:
            payload["error"] = str(self.error)
        if self.detail is not None:
            payload["detail"] = self.detail.to_dict()
        return payload


@dataclass(frozen=True)
class OptimizationResult:
    """Snapshot of one optimisation run, fields in pipeline order."""

    before_size: int = 0
    already_optimized: bool = False
    already_optimized_by: str = ""
    strip: StepOutcome = field(default_factory=StepOutcome.skipped)
    size_after_strip: int = 0
    quantize: StepOutcome = field(default_factory=StepOutcome.skipped)
    size_after_quantize: int = 0
    cant_optimize: bool = False
    inspection_failed: bool = False
    final_psnr: float = 0.0
    after_size: int = 0

    @property
    def strip_error(self) -> LightPngError | None:
        return self.strip.error

    @property
    def quantize_error(self) -> LightPngError | None:
        return self.quantize.error

    @property
    def quantize_applied(self) -> bool:
        return self.quantize.applied

    @property
    def quantize_psnr(self) -> float:
        return self.quantize.psnr

    @property
    def written(self) -> bool:
        """``True`` when the run reached the commit step."""
        return not (self.already_optimized or self.cant_optimize or self.inspection_failed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "before_size": self.before_size,
            "already_optimized": self.already_optimized,
            "already_optimized_by": self.already_optimized_by,
            "strip": self.strip.to_dict(),
            "size_after_strip": self.size_after_strip,
            "quantize": self.quantize.to_dict(),
            "size_after_quantize": self.size_after_quantize,
            "cant_optimize": self.cant_optimize,
            "inspection_failed": self.inspection_failed,
            "final_psnr": dump_maybe_inf(self.final_psnr),
            "after_size": self.after_size,
        }


def _rewrap(error: LightPngError, message: str) -> LightPngError:
    """Prefix *error* with *message*, keeping its data/system classification."""
    error_type = DataError if isinstance(error, DataError) else SystemFaultError
    wrapped = error_type(f"{message}: {error.message}", cause=error, context=error.context)
    wrapped.__cause__ = error
    return wrapped


class Optimizer:
    """Quality-gated PNG optimiser.

    Instances hold no per-run state, so one optimiser can serve concurrent
    calls from independent threads as long as its sink is not swapped while
    runs are active.
    """

    def __init__(
        self,
        quality: str = QUALITY_DEFAULT,
        sink: LogSink | None = None,
        *,
        quantizer: Quantizer | None = None,
        stripper: Stripper = strip_metadata,
        quality_config: QualityConfig = DEFAULT_QUALITY_CONFIG,
        engine_config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ):
        self.quality = quality
        self.sink: LogSink = sink if sink is not None else NullSink()
        self.quantizer = quantizer if quantizer is not None else create_quantizer(engine_config)
        self.stripper = stripper
        self.quality_config = quality_config

    def set_sink(self, sink: LogSink | None) -> None:
        """Replace the log sink; call before starting runs, never during them."""
        self.sink = sink if sink is not None else NullSink()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def run(self, src_path: str | os.PathLike, dest_path: str | os.PathLike) -> OptimizationResult:
        """Optimise *src_path* into *dest_path*.

        Raises:
            SystemFaultError: the source cannot be read or the destination
                cannot be written (a missing directory is not created).
            DataError: the source is not a usable PNG.
        """
        sink = self.sink
        keyword = self.quality_config.COMMENT_KEYWORD
        sink.info("Starting PNG optimization (quality: %s)", self.quality)

        with error_context("read PNG file", SystemFaultError, context={"path": str(src_path)}):
            original = Path(src_path).read_bytes()
        result = OptimizationResult(before_size=len(original))

        try:
            comment, _ = read_comment(original, keyword)
        except LightPngError as e:
            sink.error("Failed to read PNG comment: %s", e)
            raise _rewrap(e, "failed to read PNG comment") from e

        if comment is not None and comment.by:
            sink.info("Already optimized by %s, skipping", comment.by)
            return replace(result, already_optimized=True, already_optimized_by=comment.by)

        data, strip_outcome = self._strip(original)
        result = replace(result, strip=strip_outcome, size_after_strip=len(data))

        data, quantize_outcome = self._quantize(data)
        result = replace(result, quantize=quantize_outcome, size_after_quantize=len(data))

        try:
            final_psnr = psnr_from_bytes(original, data)
        except LightPngError as e:
            sink.error("Failed to calculate final PSNR: %s", e)
            raise _rewrap(e, "failed to calculate final PSNR") from e
        result = replace(result, final_psnr=final_psnr)

        comment = LightFileComment(
            by=self.quality_config.TOOL_NAME,
            before=result.before_size,
            after=len(data),
            pngquant=quantize_outcome.applied,
            psnr=final_psnr,
        )
        try:
            comment_text, comment_size = build_comment(comment, keyword)
        except LightPngError as e:
            sink.error("Failed to build comment: %s", e)
            raise _rewrap(e, "failed to build comment") from e

        final_size_with_comment = len(data) + comment_size
        if final_size_with_comment >= result.before_size:
            sink.info(
                "Cannot optimize: final size (%s) >= original size (%s)",
                format_bytes(final_size_with_comment),
                format_bytes(result.before_size),
            )
            return replace(result, cant_optimize=True)

        try:
            data = write_comment(data, comment_text, keyword)
        except LightPngError as e:
            sink.error("Failed to write comment: %s", e)
            raise _rewrap(e, "failed to write comment") from e

        # Judged on the pre-comment score; the tEXt chunk carries no pixels
        floor = self.quality_config.INSPECTION_MIN_PSNR
        if not math.isinf(final_psnr) and final_psnr < floor:
            sink.warn("PSNR inspection failed: %.2f dB < %.2f dB", final_psnr, floor)
            return replace(result, inspection_failed=True)

        sink.debug("Writing optimized PNG")
        after_size = self._commit(dest_path, data)
        result = replace(result, after_size=after_size)

        sink.info(
            "Optimization completed: %s -> %s (%.1f%% reduction), PSNR: %.2f dB, PNGQuant: %s",
            format_bytes(result.before_size),
            format_bytes(after_size),
            (result.before_size - after_size) / result.before_size * 100,
            final_psnr,
            quantize_outcome.applied,
        )
        return result

    def _strip(self, data: bytes) -> tuple[bytes, StepOutcome]:
        try:
            stripped, summary = self.stripper(data)
        except Exception as e:
            # Stripping only touches in-memory bytes, so any failure is data
            reason = e.message if isinstance(e, LightPngError) else str(e)
            error = DataError(f"failed to strip metadata: {reason}", cause=e)
            error.__cause__ = e
            self.sink.warn("Failed to strip metadata: %s", e)
            return data, StepOutcome.failure(error)

        self.sink.debug(
            "Stripped metadata - size: %s -> %s",
            format_bytes(len(data)),
            format_bytes(len(stripped)),
        )
        return stripped, StepOutcome(StepStatus.APPLIED, detail=summary)

    def _quantize(self, data: bytes) -> tuple[bytes, StepOutcome]:
        try:
            quantized = quantize_png(data, self.quantizer)
        except LightPngError as e:
            self.sink.warn("Failed to quantize: %s", e)
            return data, StepOutcome.failure(e)
        except Exception as e:
            # Engine errors outside the taxonomy
            error = DataError(f"failed to quantize: {e}", cause=e)
            error.__cause__ = e
            self.sink.warn("Failed to quantize: %s", error)
            return data, StepOutcome.failure(error)

        if quantized.already_indexed:
            self.sink.debug("Skipped PNGQuant - image is already index-colour")
            return data, StepOutcome.skipped()

        try:
            psnr = psnr_from_bytes(data, quantized.data)
        except LightPngError as e:
            error = _rewrap(e, "failed to calculate PSNR after PNGQuant")
            self.sink.warn("Failed to calculate PSNR after PNGQuant: %s", e)
            return data, StepOutcome.failure(error)

        if is_acceptable_psnr(self.quality, psnr, self.quality_config):
            self.sink.debug(
                "Applied PNGQuant - PSNR: %.2f dB, size: %s",
                psnr,
                format_bytes(len(quantized.data)),
            )
            return quantized.data, StepOutcome(StepStatus.APPLIED, psnr=psnr)

        self.sink.debug(
            "Rejected PNGQuant - PSNR: %.2f (below threshold for quality: %s)",
            psnr,
            self.quality,
        )
        return data, StepOutcome(StepStatus.REJECTED, psnr=psnr)

    def _commit(self, dest_path: str | os.PathLike, data: bytes) -> int:
        try:
            fd = os.open(dest_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, OUTPUT_FILE_MODE)
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
        except OSError as e:
            self.sink.error("Failed to write optimized PNG: %s", e)
            raise SystemFaultError(f"failed to write optimized PNG: {e}", cause=e) from e

        try:
            return os.stat(dest_path).st_size
        except OSError as e:
            self.sink.error("Failed to stat destination file: %s", e)
            raise SystemFaultError(f"failed to stat destination file: {e}", cause=e) from e


def optimize(
    src_path: str | os.PathLike,
    dest_path: str | os.PathLike,
    quality: str = QUALITY_DEFAULT,
    *,
    sink: LogSink | None = None,
    quantizer: Quantizer | None = None,
) -> OptimizationResult:
    """Convenience wrapper: ``Optimizer(quality, sink).run(src_path, dest_path)``."""
    return Optimizer(quality, sink, quantizer=quantizer).run(src_path, dest_path)
