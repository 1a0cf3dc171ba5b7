"""
Module: compression.size_guard

Purpose:
    Pixel-count safety check run before any encode attempt. Encoders and
    the downstream consumer both have pixel ceilings independent of the
    byte budget, so very large composites are resampled here first.

Key Functions:
    - guard(): Warn on large composites, resample very large ones
    - guarded_dimensions(): Pure dimension arithmetic

Used By:
    - controller: Third stage of the pipeline
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

from stitch_toolkit.raster import RasterSurface

from .config import CompressionConfig

logger = logging.getLogger(__name__)


def guarded_dimensions(
    width: int,
    height: int,
    config: Optional[CompressionConfig] = None,
) -> Tuple[int, int]:
    """
    Dimensions the guard would resample to (unchanged if within limits).

    Example:
        >>> guarded_dimensions(4000, 16000)
        (3464, 13856)
    """
    config = config or CompressionConfig()
    pixels = width * height
    if pixels <= config.very_large_pixel_threshold:
        return width, height
    scale = math.sqrt(config.very_large_pixel_threshold / pixels)
    return max(1, math.floor(width * scale)), max(1, math.floor(height * scale))


def guard(
    surface: RasterSurface,
    config: Optional[CompressionConfig] = None,
    warnings: Optional[List[str]] = None,
) -> RasterSurface:
    """
    Inspect the composite's pixel count and pre-scale if needed.

    Above ``large_pixel_threshold`` a warning is logged (and appended to
    ``warnings`` when given). Above ``very_large_pixel_threshold`` both
    dimensions are multiplied by ``sqrt(threshold / pixels)`` (floored),
    the surface is resampled and the original is released.

    Args:
        surface: Composite to inspect (ownership passes to the guard)
        config: Thresholds (defaults to CompressionConfig())
        warnings: Optional list collecting non-fatal warnings

    Returns:
        The same surface, or a resampled replacement
    """
    config = config or CompressionConfig()
    pixels = surface.pixel_count

    if pixels > config.large_pixel_threshold:
        message = (
            f"Composite is very large ({surface.width}x{surface.height}, "
            f"{pixels / 1_000_000:.1f}MP); it will be scaled down for analysis"
        )
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)

    if pixels <= config.very_large_pixel_threshold:
        return surface

    width, height = guarded_dimensions(surface.width, surface.height, config)
    logger.info(
        f"Pre-scaling composite {surface.width}x{surface.height} -> {width}x{height}"
    )
    scaled = surface.resized(width, height)
    surface.release()
    return scaled
