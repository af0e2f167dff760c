"""PNG chunk codec.

A PNG file is an 8-byte signature followed by chunks, each framed as::

    length (4 bytes, big-endian) | type (4 bytes) | data | CRC-32(type + data)

``IEND`` must be present and must be the last chunk.
"""

from __future__ import annotations

import struct
import zlib
from dataclasses import dataclass, field

from .errors import DataError

__all__ = [
    "PNG_SIGNATURE",
    "IEND",
    "Chunk",
    "PngStructure",
    "crc32",
    "parse_png",
    "serialize_png",
]

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
IEND = b"IEND"

# length + type + CRC
CHUNK_OVERHEAD = 12

_LENGTH = struct.Struct(">I")


def crc32(data: bytes) -> int:
    """CRC-32 as required by the PNG chunk integrity rule.

    Reversed polynomial ``0xEDB88320`` with all-ones initial value and final
    XOR; ``zlib`` implements exactly that table-driven variant.
    """
    return zlib.crc32(data) & 0xFFFFFFFF


@dataclass(frozen=True, slots=True)
class Chunk:
    """One length-prefixed, type-tagged, checksummed unit of a PNG file."""

    type: bytes
    data: bytes = b""

    def __post_init__(self) -> None:
        if len(self.type) != 4:
            raise ValueError(f"Chunk type must be 4 bytes, got {self.type!r}")

    @property
    def name(self) -> str:
        return self.type.decode("latin-1")

    @property
    def is_critical(self) -> bool:
        # Bit 5 of the first byte clear => critical
        return not self.type[0] & 0x20

    @property
    def crc(self) -> int:
        return crc32(self.type + self.data)

    def encoded_size(self) -> int:
        """Number of bytes this chunk occupies once serialized."""
        return CHUNK_OVERHEAD + len(self.data)

    def to_bytes(self) -> bytes:
        return (
            _LENGTH.pack(len(self.data))
            + self.type
            + self.data
            + _LENGTH.pack(self.crc)
        )


@dataclass
class PngStructure:
    """Signature plus the ordered chunk sequence of a PNG file."""

    signature: bytes = PNG_SIGNATURE
    chunks: list[Chunk] = field(default_factory=list)

    def find(self, chunk_type: bytes) -> list[Chunk]:
        return [c for c in self.chunks if c.type == chunk_type]

    def index_of_iend(self) -> int:
        """Index of the terminal chunk; raises :class:`DataError` if absent."""
        for i, chunk in enumerate(self.chunks):
            if chunk.type == IEND:
                return i
        raise DataError("PNG file missing IEND chunk")

    def to_bytes(self) -> bytes:
        return serialize_png(self)


def parse_png(data: bytes) -> PngStructure:
    """Decode *data* into a :class:`PngStructure`.

    Raises:
        DataError: signature missing, a chunk runs past the end of the data,
            or no ``IEND`` chunk is present.

    CRC mismatches are tolerated here; decoders further down the line decide
    whether the pixel data is usable.
    """
    if len(data) < len(PNG_SIGNATURE) or data[: len(PNG_SIGNATURE)] != PNG_SIGNATURE:
        raise DataError("failed to parse PNG structure: missing PNG signature")

    chunks: list[Chunk] = []
    offset = len(PNG_SIGNATURE)
    total = len(data)

    while offset < total:
        if total - offset < 8:
            raise DataError(
                f"failed to parse PNG structure: truncated chunk header at offset {offset}"
            )
        (length,) = _LENGTH.unpack_from(data, offset)
        chunk_type = data[offset + 4 : offset + 8]
        data_start = offset + 8
        data_end = data_start + length
        if data_end + 4 > total:
            raise DataError(
                f"failed to parse PNG structure: chunk {chunk_type!r} at offset {offset} "
                f"declares {length} bytes but only {max(total - data_start - 4, 0)} remain"
            )
        chunks.append(Chunk(type=bytes(chunk_type), data=bytes(data[data_start:data_end])))
        offset = data_end + 4

        if chunk_type == IEND:
            # Anything after IEND is trailing garbage and is dropped
            break

    structure = PngStructure(signature=bytes(data[: len(PNG_SIGNATURE)]), chunks=chunks)
    if not chunks or chunks[-1].type != IEND:
        raise DataError("failed to parse PNG structure: PNG file missing IEND chunk")
    return structure


def serialize_png(structure: PngStructure) -> bytes:
    """Serialize *structure* back to bytes, recomputing every length and CRC."""
    parts = [structure.signature]
    parts.extend(chunk.to_bytes() for chunk in structure.chunks)
    return b"".join(parts)
