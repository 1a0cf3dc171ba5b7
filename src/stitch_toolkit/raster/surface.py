"""
Module: raster.surface

Purpose:
    Capability interface for everything the pipeline needs from an
    image library: decode, allocate an opaque canvas, draw without
    blending, resample, flatten, encode. Pipeline stages only talk to
    these abstractions so the underlying library can be swapped.

Key Classes:
    - RasterSurface: Abstract decoded/drawable raster
    - RasterBackend: Abstract factory for surfaces

Dependencies:
    - abc (std)

Used By:
    - raster.pillow_backend: Default implementation
    - loading, layout, compression
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from stitch_toolkit.core.models import ImageFormat

RGB = Tuple[int, int, int]

WHITE: RGB = (255, 255, 255)


class RasterSurface(ABC):
    """
    Abstract raster buffer.

    A surface exclusively owns its pixel buffer until ``release()`` is
    called. Operations that produce a new buffer (``resized``,
    ``flattened``) return a new surface and leave this one untouched;
    the caller decides when the superseded one is released.
    """

    @property
    @abstractmethod
    def width(self) -> int:
        """Width in pixels."""

    @property
    @abstractmethod
    def height(self) -> int:
        """Height in pixels."""

    @property
    @abstractmethod
    def mode(self) -> str:
        """Pixel layout name reported by the backend (e.g. ``"RGB"``)."""

    @property
    @abstractmethod
    def format(self) -> Optional[str]:
        """Format the surface was decoded from, or None if created in memory."""

    @property
    @abstractmethod
    def has_alpha(self) -> bool:
        """Whether the buffer carries an alpha channel or transparency key."""

    @abstractmethod
    def is_transparent(self) -> bool:
        """Whether any pixel is less than fully opaque."""

    @abstractmethod
    def draw_opaque(
        self,
        src: "RasterSurface",
        x: int,
        y: int,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> None:
        """
        Paint ``src`` at (x, y), overwriting what is underneath.

        ``src`` is flattened against this surface's background first, so
        no transparency leaks through and nothing is blended.

        Args:
            src: Surface to draw (must come from the same backend)
            x: Left edge in this surface
            y: Top edge in this surface
            width: Optional target width (defaults to src width)
            height: Optional target height (defaults to src height)
        """

    @abstractmethod
    def resized(self, width: int, height: int) -> "RasterSurface":
        """Return a resampled copy."""

    @abstractmethod
    def flattened(self, background: Optional[RGB] = None) -> "RasterSurface":
        """Return an opaque RGB copy with transparency composited onto ``background``."""

    @abstractmethod
    def encode(self, fmt: ImageFormat, quality: Optional[float] = None) -> bytes:
        """
        Encode to bytes without an alpha channel.

        Args:
            fmt: Output format
            quality: Encoder quality in (0, 1]; ignored for lossless formats

        Raises:
            FormatConversionError: If the encoder produced no valid bytes
        """

    @abstractmethod
    def release(self) -> None:
        """Free the pixel buffer. Further use of the surface is invalid."""

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def __enter__(self) -> "RasterSurface":
        return self

    def __exit__(self, *args) -> None:
        self.release()


class RasterBackend(ABC):
    """Factory for surfaces of one image library."""

    @abstractmethod
    def decode(self, data: bytes) -> RasterSurface:
        """
        Decode encoded image bytes.

        Raises:
            LoadError: If the data is corrupt, unsupported or zero-area
        """

    @abstractmethod
    def new_surface(self, width: int, height: int, background: RGB = WHITE) -> RasterSurface:
        """Allocate an opaque RGB surface filled with ``background``."""
