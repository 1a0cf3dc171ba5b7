"""
Module: compression.negotiator

Purpose:
    Chooses the final encoding. Encoded input that is already an opaque
    JPEG/PNG within the size threshold passes through untouched;
    anything else is flattened and encoded losslessly (PNG), falling
    back to JPEG when the PNG exceeds the threshold. The mime type
    returned is always one the consumer accepts and never has alpha.

Key Functions:
    - negotiate(): Pick the output format for bytes or a surface

Key Classes:
    - NegotiatedImage: Final bytes plus format

Used By:
    - controller: Last stage of the pipeline
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from stitch_toolkit.core.errors import FormatConversionError, LoadError
from stitch_toolkit.core.models import ACCEPTED_MIME_TYPES, ImageFormat
from stitch_toolkit.raster import RGB, WHITE, PillowBackend, RasterBackend, RasterSurface

from .config import DEFAULT_NEGOTIATION_THRESHOLD_BYTES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NegotiatedImage:
    """
    Output of format negotiation.

    Attributes:
        data: Encoded bytes
        format: Encoding of ``data``
        re_encoded: False when the input bytes were passed through
    """

    data: bytes
    format: ImageFormat
    re_encoded: bool = True

    @property
    def mime_type(self) -> str:
        return self.format.mime_type


def _encode_opaque(
    surface: RasterSurface,
    threshold_bytes: int,
    jpeg_quality: float,
    background: RGB,
) -> NegotiatedImage:
    opaque = surface.flattened(background) if surface.has_alpha else surface
    try:
        png = opaque.encode(ImageFormat.PNG)
        if len(png) <= threshold_bytes:
            logger.debug(f"Negotiated PNG ({len(png) // 1024}KB)")
            return NegotiatedImage(png, ImageFormat.PNG)

        logger.info(
            f"PNG too large ({len(png) / (1024 * 1024):.2f}MB); using JPEG q={jpeg_quality:.2f}"
        )
        jpeg = opaque.encode(ImageFormat.JPEG, jpeg_quality)
        return NegotiatedImage(jpeg, ImageFormat.JPEG)
    finally:
        if opaque is not surface:
            opaque.release()


def negotiate(
    source: Union[bytes, bytearray, memoryview, RasterSurface],
    *,
    threshold_bytes: int = DEFAULT_NEGOTIATION_THRESHOLD_BYTES,
    jpeg_quality: float = 0.9,
    background: RGB = WHITE,
    backend: Optional[RasterBackend] = None,
) -> NegotiatedImage:
    """
    Choose an opaque, consumer-accepted encoding.

    Args:
        source: Encoded bytes (decoded and inspected) or a surface
            (always encoded; the surface is not released here)
        threshold_bytes: Size above which PNG gives way to JPEG, and
            above which encoded input is not passed through
        jpeg_quality: Quality for the lossy fallback
        background: Fill used to flatten transparency
        backend: Decoder for byte input (defaults to Pillow)

    Returns:
        NegotiatedImage whose mime type is image/png or image/jpeg

    Raises:
        FormatConversionError: If bytes cannot be decoded or no encoder
            produced output

    Example:
        >>> negotiate(jpeg_bytes).re_encoded
        False
    """
    if isinstance(source, RasterSurface):
        result = _encode_opaque(source, threshold_bytes, jpeg_quality, background)
    else:
        data = bytes(source)
        backend = backend or PillowBackend(background)
        try:
            surface = backend.decode(data)
        except LoadError as e:
            raise FormatConversionError(f"Cannot inspect encoded image: {e}") from e

        try:
            fmt = ImageFormat.from_pillow(surface.format)
            if fmt is not None and not surface.has_alpha and len(data) <= threshold_bytes:
                logger.debug(f"{fmt.value} accepted as-is ({len(data) // 1024}KB)")
                return NegotiatedImage(data, fmt, re_encoded=False)

            if fmt is None:
                logger.info(f"Converting {surface.format} image to an accepted format")
            elif surface.has_alpha:
                logger.info(f"{fmt.value} carries an alpha channel; flattening")
            else:
                logger.info(
                    f"{fmt.value} is {len(data) / (1024 * 1024):.2f}MB; re-encoding"
                )
            result = _encode_opaque(surface, threshold_bytes, jpeg_quality, background)
        finally:
            surface.release()

    if result.mime_type not in ACCEPTED_MIME_TYPES:
        raise FormatConversionError(f"Negotiated unsupported mime type {result.mime_type}")
    return result
