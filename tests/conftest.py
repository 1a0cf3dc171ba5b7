import io
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add src to sys.path so we can import stitch_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())


def _encode(image: Image.Image, fmt: str) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


# Common test fixtures
@pytest.fixture
def make_image_bytes():
    """Factory for solid-colour encoded images."""
    def _make(width=100, height=80, color=(200, 40, 40), mode="RGB", fmt="PNG"):
        image = Image.new(mode, (width, height), color)
        return _encode(image, fmt)
    return _make


@pytest.fixture
def make_noise_bytes():
    """Factory for random-noise encoded images (compress poorly)."""
    def _make(width=200, height=200, seed=0, fmt="PNG"):
        rng = np.random.default_rng(seed)
        pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
        return _encode(Image.fromarray(pixels), fmt)
    return _make


@pytest.fixture
def half_transparent_png():
    """40x30 RGBA PNG: left half opaque red, right half fully transparent."""
    pixels = np.zeros((30, 40, 4), dtype=np.uint8)
    pixels[:, :20] = (255, 0, 0, 255)
    return _encode(Image.fromarray(pixels), "PNG")


@pytest.fixture
def grey16_png():
    """12x10 16-bit greyscale PNG, every sample 40000 (about 156 in 8-bit)."""
    pixels = np.full((10, 12), 40000, dtype=np.uint16)
    return _encode(Image.fromarray(pixels), "PNG")


@pytest.fixture
def decode_bytes():
    """Decode encoded bytes into an in-memory PIL image."""
    def _decode(data: bytes) -> Image.Image:
        image = Image.open(io.BytesIO(data))
        image.load()
        return image
    return _decode


@pytest.fixture
def sample_image(tmp_path: Path):
    """Create a simple test image file."""
    img = Image.new("RGB", (200, 100), color="white")
    img_path = tmp_path / "sample.png"
    img.save(img_path)
    return img_path
