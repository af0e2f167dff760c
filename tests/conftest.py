import pytest

from tests.fixtures.generate_png_fixtures import (
    PADDING_TEXT,
    ExactQuantizer,
    RecordingSink,
    block_image,
    encode_png,
)

# ---------------------------------------------------------------------------
# PNG byte fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def rgb_png() -> bytes:
    """Few-colour RGB PNG padded with a large tEXt chunk that stripping removes."""
    return encode_png(block_image(), text=PADDING_TEXT)


@pytest.fixture
def plain_rgb_png() -> bytes:
    """Few-colour RGB PNG with no ancillary chunks."""
    return encode_png(block_image())


@pytest.fixture
def indexed_png() -> bytes:
    """Palette PNG padded with a large tEXt chunk."""
    return encode_png(block_image().convert("P"), text=PADDING_TEXT)


@pytest.fixture
def plain_indexed_png() -> bytes:
    """Palette PNG with no ancillary chunks."""
    return encode_png(block_image().convert("P"))


@pytest.fixture
def write_png(tmp_path):
    """Write bytes to ``tmp_path / name`` and return the path."""

    def _write(data: bytes, name: str = "input.png"):
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return _write


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def exact_quantizer():
    return ExactQuantizer()


@pytest.fixture
def recording_sink():
    return RecordingSink()
