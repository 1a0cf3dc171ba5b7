import pytest

from stitch_toolkit.raster import RasterSurface


class FakeSurface(RasterSurface):
    """
    Pixel-free surface whose encoded size comes from ``size_model``.

    ``size_model(width, height, quality)`` returns the byte count an
    encode at those settings produces. Every resized copy is recorded on
    ``children`` so tests can check that copies are released.
    """

    def __init__(self, width, height, size_model=None):
        self._width = width
        self._height = height
        self.size_model = size_model or (lambda w, h, q: w * h)
        self.released = False
        self.children = []
        self.encodes = []

    @property
    def width(self):
        return self._width

    @property
    def height(self):
        return self._height

    @property
    def mode(self):
        return "RGB"

    @property
    def format(self):
        return None

    @property
    def has_alpha(self):
        return False

    def is_transparent(self):
        return False

    def draw_opaque(self, src, x, y, width=None, height=None):
        pass

    def resized(self, width, height):
        child = FakeSurface(width, height, self.size_model)
        child.encodes = self.encodes
        self.children.append(child)
        return child

    def flattened(self, background=None):
        return self.resized(self._width, self._height)

    def encode(self, fmt, quality=None):
        assert not self.released, "encode on a released surface"
        size = int(self.size_model(self._width, self._height, quality))
        self.encodes.append((self._width, self._height, quality))
        return b"\xff" * size

    def release(self):
        self.released = True


@pytest.fixture
def fake_surface():
    """Factory for FakeSurface instances."""
    def _make(width, height, size_model=None):
        return FakeSurface(width, height, size_model)
    return _make
