"""
Module: raster.pillow_backend

Purpose:
    Pillow implementation of the raster capability interface. Format
    and transparency are read from the decoded image structure (mode,
    palette transparency key, alpha channel values), never from byte
    prefixes.

Key Classes:
    - PillowSurface: RasterSurface over a PIL.Image.Image
    - PillowBackend: Decodes bytes and allocates opaque canvases

Dependencies:
    - PIL: Decoding, drawing, resampling, encoding
    - numpy: Alpha channel inspection, 16-bit sample scaling

Used By:
    - loading.loader (default backend)
    - layout.compositor, compression.*
"""

from __future__ import annotations

import io
import logging
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from stitch_toolkit.core.errors import FormatConversionError, LoadError
from stitch_toolkit.core.models import ImageFormat

from .surface import RGB, WHITE, RasterBackend, RasterSurface

logger = logging.getLogger(__name__)

# Modes whose last band is alpha
_ALPHA_MODES = frozenset({"RGBA", "LA", "PA", "RGBa", "La"})

# Integer modes carrying 16-bit samples (16-bit PNG/TIFF greyscale)
_HIGH_DEPTH_MODES = frozenset({"I", "I;16", "I;16B", "I;16L", "I;16N"})

RESAMPLE = Image.Resampling.LANCZOS


def quality_to_pillow(quality: float) -> int:
    """
    Map a (0, 1] quality factor onto Pillow's JPEG scale.

    Pillow discourages values above 95, so the scale is capped there.

    Example:
        >>> quality_to_pillow(0.7)
        70
    """
    return max(1, min(95, int(round(quality * 100))))


def _image_has_alpha(image: Image.Image) -> bool:
    return image.mode in _ALPHA_MODES or "transparency" in image.info


def _alpha_is_opaque(rgba: Image.Image) -> bool:
    """True when every alpha value of an RGBA image is 255."""
    alpha = np.asarray(rgba.getchannel("A"))
    return bool(alpha.min() == 255)


def _to_8bit(image: Image.Image) -> Image.Image:
    """
    Scale 16-bit integer samples down to an 8-bit greyscale image.

    ``convert("L")`` clips instead of scaling, which turns most 16-bit
    screenshots white.
    """
    samples = np.asarray(image).astype(np.int64) >> 8
    return Image.fromarray(np.clip(samples, 0, 255).astype(np.uint8))


def _flatten(image: Image.Image, background: RGB) -> Image.Image:
    """Composite ``image`` onto an opaque background, returning a new RGB image."""
    if image.mode in _HIGH_DEPTH_MODES:
        grey = _to_8bit(image)
        try:
            return grey.convert("RGB")
        finally:
            grey.close()
    if image.mode == "RGB" and "transparency" not in image.info:
        return image.copy()
    if not _image_has_alpha(image):
        return image.convert("RGB")

    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    try:
        # Alpha channel present but unused: no compositing needed
        if _alpha_is_opaque(rgba):
            return rgba.convert("RGB")
        canvas = Image.new("RGB", rgba.size, background)
        canvas.paste(rgba, mask=rgba.getchannel("A"))
        return canvas
    finally:
        if rgba is not image:
            rgba.close()


class PillowSurface(RasterSurface):
    """
    RasterSurface backed by a PIL image.

    Attributes:
        image: Underlying PIL image (owned by this surface)
        background: Fill colour used when flattening transparency
    """

    def __init__(
        self,
        image: Image.Image,
        *,
        background: RGB = WHITE,
        source_format: Optional[str] = None,
    ) -> None:
        self._image: Optional[Image.Image] = image
        self.background = background
        self._format = source_format if source_format is not None else image.format

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise ValueError("Surface has been released")
        return self._image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def mode(self) -> str:
        return self.image.mode

    @property
    def format(self) -> Optional[str]:
        return self._format

    @property
    def has_alpha(self) -> bool:
        return _image_has_alpha(self.image)

    def is_transparent(self) -> bool:
        if not self.has_alpha:
            return False
        image = self.image
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        try:
            return not _alpha_is_opaque(rgba)
        finally:
            if rgba is not image:
                rgba.close()

    def draw_opaque(
        self,
        src: RasterSurface,
        x: int,
        y: int,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> None:
        if not isinstance(src, PillowSurface):
            raise TypeError(f"Cannot draw {type(src).__name__} onto a PillowSurface")

        source = src.image
        target_size = (width or source.width, height or source.height)
        opaque = _flatten(source, self.background)
        scaled = opaque.resize(target_size, RESAMPLE) if target_size != opaque.size else opaque
        try:
            self.image.paste(scaled, (x, y))
        finally:
            if scaled is not opaque:
                scaled.close()
            opaque.close()

    def resized(self, width: int, height: int) -> "PillowSurface":
        if width <= 0 or height <= 0:
            raise ValueError(f"Resize target must be positive: {width}x{height}")
        return PillowSurface(
            self.image.resize((width, height), RESAMPLE),
            background=self.background,
            source_format=self._format,
        )

    def flattened(self, background: Optional[RGB] = None) -> "PillowSurface":
        fill = background if background is not None else self.background
        return PillowSurface(
            _flatten(self.image, fill),
            background=fill,
            source_format=self._format,
        )

    def encode(self, fmt: ImageFormat, quality: Optional[float] = None) -> bytes:
        image = self.image
        opaque = image if image.mode == "RGB" and not _image_has_alpha(image) else _flatten(image, self.background)

        options = {}
        if fmt is ImageFormat.JPEG:
            options["quality"] = quality_to_pillow(quality if quality is not None else 0.9)
            options["optimize"] = True

        buffer = io.BytesIO()
        try:
            opaque.save(buffer, format=fmt.value, **options)
        except (OSError, ValueError) as e:
            raise FormatConversionError(f"{fmt.value} encoding failed: {e}") from e
        finally:
            if opaque is not image:
                opaque.close()

        data = buffer.getvalue()
        if not data:
            raise FormatConversionError(f"{fmt.value} encoder produced no output")
        return data

    def release(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None

    def __repr__(self) -> str:
        if self._image is None:
            return "PillowSurface(released)"
        return f"PillowSurface({self.width}x{self.height}, mode={self.mode}, format={self._format})"


class PillowBackend(RasterBackend):
    """
    Default backend.

    Example:
        >>> backend = PillowBackend()
        >>> canvas = backend.new_surface(100, 50)
        >>> canvas.size
        (100, 50)
    """

    def __init__(self, background: RGB = WHITE) -> None:
        self.background = background

    def decode(self, data: bytes) -> PillowSurface:
        if not data:
            raise LoadError("Image data is empty")
        try:
            image = Image.open(io.BytesIO(data))
            source_format = image.format
            image.load()
        except Image.DecompressionBombError as e:
            raise LoadError(f"Image exceeds decoder pixel limit: {e}") from e
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise LoadError(f"Failed to decode image: {e}") from e

        if image.width <= 0 or image.height <= 0:
            image.close()
            raise LoadError(f"Image has no area: {image.width}x{image.height}")

        return PillowSurface(image, background=self.background, source_format=source_format)

    def new_surface(self, width: int, height: int, background: RGB = WHITE) -> PillowSurface:
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface dimensions must be positive: {width}x{height}")
        return PillowSurface(Image.new("RGB", (width, height), background), background=background)
