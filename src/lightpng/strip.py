"""Remove ancillary PNG chunks that web delivery does not need.

Critical chunks and the ancillary chunks that change how pixels render
(transparency, colour management, physical size, animation control) are kept.
Everything else is dropped and accounted for per category.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .chunks import parse_png, serialize_png

logger = logging.getLogger(__name__)

__all__ = [
    "KEEP_CHUNKS",
    "StripResult",
    "strip_metadata",
]

KEEP_CHUNKS = frozenset(
    {
        b"IHDR",
        b"PLTE",
        b"IDAT",
        b"IEND",
        b"tRNS",
        b"gAMA",
        b"cHRM",
        b"sRGB",
        b"iCCP",
        b"sBIT",
        b"pHYs",
        b"bKGD",
        b"acTL",
        b"fcTL",
        b"fdAT",
    }
)

TEXT_CHUNKS = frozenset({b"tEXt", b"zTXt", b"iTXt"})
TIME_CHUNKS = frozenset({b"tIME"})
EXIF_CHUNKS = frozenset({b"eXIf"})


@dataclass
class StripResult:
    """Bytes removed by :func:`strip_metadata`, per category."""

    text: int = 0
    time: int = 0
    exif: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.text + self.time + self.exif + self.other

    @property
    def removed_anything(self) -> bool:
        return self.total > 0

    def to_dict(self) -> dict[str, int]:
        return {
            "text": self.text,
            "time": self.time,
            "exif": self.exif,
            "other": self.other,
            "total": self.total,
        }


def strip_metadata(data: bytes) -> tuple[bytes, StripResult]:
    """Return PNG *data* without removable ancillary chunks.

    Raises:
        DataError: *data* is not a parseable PNG.
    """
    structure = parse_png(data)
    result = StripResult()

    kept = []
    for chunk in structure.chunks:
        if chunk.type in KEEP_CHUNKS or chunk.is_critical:
            kept.append(chunk)
            continue

        size = chunk.encoded_size()
        if chunk.type in TEXT_CHUNKS:
            result.text += size
        elif chunk.type in TIME_CHUNKS:
            result.time += size
        elif chunk.type in EXIF_CHUNKS:
            result.exif += size
        else:
            result.other += size
        logger.debug("Stripping %s chunk (%d bytes)", chunk.name, size)

    if not result.removed_anything:
        return data, result

    structure.chunks = kept
    return serialize_png(structure), result
