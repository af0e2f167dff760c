"""Read and write the LightFile optimisation record embedded in PNG files.

The record is stored as JSON in a ``tEXt`` chunk whose keyword is reserved
for the tool (``LightFile`` by default)::

    tEXt  "LightFile\\0{"by":"LightFile","before":2048,"after":1536,...}"

A file carrying the record with a non-empty ``by`` field has already been
optimised and is skipped on a second pass.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from .chunks import CHUNK_OVERHEAD, Chunk, parse_png, serialize_png
from .config import DEFAULT_QUALITY_CONFIG
from .errors import DataError
from .maybeinf import dump_maybe_inf, load_maybe_inf

logger = logging.getLogger(__name__)

__all__ = [
    "TEXT_CHUNK",
    "LightFileComment",
    "read_comment",
    "build_comment",
    "write_comment",
    "comment_size_increase",
]

TEXT_CHUNK = b"tEXt"


@dataclass
class LightFileComment:
    """Outcome of one optimisation run, as embedded in the output file."""

    by: str = ""
    before: int = 0
    after: int = 0
    pngquant: bool = False
    psnr: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "by": self.by,
            "before": self.before,
            "after": self.after,
            "pngquant": self.pngquant,
            "psnr": dump_maybe_inf(self.psnr),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), allow_nan=False)

    @classmethod
    def from_dict(cls, payload: Any) -> LightFileComment:
        """Build a comment from decoded JSON, raising ``ValueError`` on bad shapes."""
        if not isinstance(payload, dict):
            raise ValueError(f"comment must be a JSON object, got {type(payload).__name__}")

        by = payload.get("by", "")
        before = payload.get("before", 0)
        after = payload.get("after", 0)
        pngquant = payload.get("pngquant", False)

        if not isinstance(by, str):
            raise ValueError("'by' must be a string")
        for key, value in (("before", before), ("after", after)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"'{key}' must be an integer")
        if not isinstance(pngquant, bool):
            raise ValueError("'pngquant' must be a boolean")

        psnr = load_maybe_inf(payload["psnr"]) if "psnr" in payload else 0.0

        return cls(by=by, before=before, after=after, pngquant=pngquant, psnr=psnr)

    @classmethod
    def from_json(cls, text: str) -> LightFileComment:
        return cls.from_dict(json.loads(text))


def _split_text_chunk(data: bytes) -> tuple[str, str] | None:
    null_index = data.find(b"\x00")
    if null_index == -1:
        return None
    return data[:null_index].decode("latin-1"), data[null_index + 1 :].decode("latin-1")


def read_comment(
    data: bytes, keyword: str = DEFAULT_QUALITY_CONFIG.COMMENT_KEYWORD
) -> tuple[LightFileComment | None, str]:
    """Look up the optimisation record in PNG *data*.

    Returns:
        ``(comment, raw_text)``.  ``(None, "")`` when no chunk carries
        *keyword*; ``(None, raw_text)`` when the payload is not a valid record
        (corrupt or foreign comments are not an error).

    Raises:
        DataError: the PNG container itself cannot be parsed.
    """
    structure = parse_png(data)

    for chunk in structure.chunks:
        if chunk.type != TEXT_CHUNK:
            continue
        parts = _split_text_chunk(chunk.data)
        if parts is None:
            continue
        chunk_keyword, text = parts
        if chunk_keyword != keyword:
            continue
        try:
            return LightFileComment.from_json(text), text
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            logger.debug("Ignoring unreadable %s comment: %s", keyword, e)
            return None, text

    return None, ""


def comment_size_increase(text: str, keyword: str = DEFAULT_QUALITY_CONFIG.COMMENT_KEYWORD) -> int:
    """Bytes a ``tEXt`` chunk holding *text* under *keyword* adds to a file."""
    return CHUNK_OVERHEAD + len(keyword.encode("latin-1")) + 1 + len(text.encode("latin-1"))


def build_comment(
    comment: LightFileComment, keyword: str = DEFAULT_QUALITY_CONFIG.COMMENT_KEYWORD
) -> tuple[str, int]:
    """Serialize *comment* and report how many bytes embedding it costs.

    Returns:
        ``(json_text, size_increase)`` where ``size_increase`` covers the whole
        chunk: length, type, keyword, NUL separator, payload and CRC.

    Raises:
        DataError: the record holds a value with no JSON encoding (NaN or
            negative-infinite score).
    """
    try:
        text = comment.to_json()
    except ValueError as e:
        raise DataError(f"failed to marshal comment to JSON: {e}", cause=e) from e
    return text, comment_size_increase(text, keyword)


def write_comment(
    data: bytes, text: str, keyword: str = DEFAULT_QUALITY_CONFIG.COMMENT_KEYWORD
) -> bytes:
    """Embed *text* as the single *keyword* ``tEXt`` chunk of PNG *data*.

    Every existing chunk with the same keyword is removed and the new chunk is
    inserted immediately before ``IEND``.

    Raises:
        DataError: *data* is not a parseable PNG, lacks ``IEND``, or *text*
            cannot be represented in Latin-1.
    """
    structure = parse_png(data)

    try:
        payload = keyword.encode("latin-1") + b"\x00" + text.encode("latin-1")
    except UnicodeEncodeError as e:
        raise DataError(f"comment text is not Latin-1 encodable: {e}", cause=e) from e

    kept: list[Chunk] = []
    for chunk in structure.chunks:
        if chunk.type == TEXT_CHUNK:
            parts = _split_text_chunk(chunk.data)
            if parts is not None and parts[0] == keyword:
                continue
        kept.append(chunk)
    structure.chunks = kept

    iend_index = structure.index_of_iend()
    structure.chunks.insert(iend_index, Chunk(type=TEXT_CHUNK, data=payload))

    return serialize_png(structure)
