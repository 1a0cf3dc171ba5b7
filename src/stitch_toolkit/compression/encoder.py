"""
Module: compression.encoder

Purpose:
    Adaptive encoder. Encodes the composite as JPEG in a bounded loop,
    shrinking dimensions and quality in proportion to the measured
    overshoot until the byte ceiling is met. When the last remaining
    attempt is reached while still above the hard ceiling, that attempt
    becomes the emergency pass.

Key Functions:
    - compress(): Bounded multi-attempt compression

Dependencies:
    - compression.calculations: Attempt settings
    - stitch_toolkit.raster: Resampling and encoding

Used By:
    - controller: Fourth stage of the pipeline
"""

from __future__ import annotations

import logging
from typing import List, Optional

from stitch_toolkit.core.errors import CompressionExhausted
from stitch_toolkit.core.models import CompressionAttempt, CompressionResult, ImageFormat
from stitch_toolkit.raster import RasterSurface

from .calculations import AttemptSettings, emergency_settings, initial_settings, next_settings
from .config import CompressionConfig

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = ImageFormat.JPEG


def _encode_attempt(surface: RasterSurface, settings: AttemptSettings) -> bytes:
    """Encode ``surface`` at the attempt's size, releasing the resized copy."""
    if (settings.width, settings.height) == surface.size:
        return surface.encode(OUTPUT_FORMAT, settings.quality)

    resized = surface.resized(settings.width, settings.height)
    try:
        return resized.encode(OUTPUT_FORMAT, settings.quality)
    finally:
        resized.release()


def compress(
    surface: RasterSurface,
    config: Optional[CompressionConfig] = None,
) -> CompressionResult:
    """
    Encode ``surface`` under ``config.max_size_bytes``.

    Each attempt resamples the original surface (never the previous
    attempt's output) to the current dimensions and encodes it as JPEG.
    Between ordinary attempts dimensions shrink by
    ``min(0.8, sqrt(max_size / size))`` and quality by 0.15 down to 0.4.
    If an attempt is still above ``hard_ceiling_bytes`` and exactly one
    attempt remains, that final attempt is the emergency pass
    (dimensions x0.7, quality 0.3).

    Args:
        surface: Opaque composite (not released here)
        config: Budgets and step sizes (defaults to CompressionConfig())

    Returns:
        CompressionResult with ``len(data) <= max_size_bytes``

    Raises:
        CompressionExhausted: If no attempt met the ceiling
        FormatConversionError: If the encoder produced no valid bytes

    Example:
        >>> result = compress(composite.surface)
        >>> result.mime_type, result.attempts_used
        ('image/jpeg', 1)
    """
    config = config or CompressionConfig()
    settings = initial_settings(surface.width, surface.height, config)
    attempts: List[CompressionAttempt] = []

    logger.info(
        f"Compressing {surface.width}x{surface.height} composite "
        f"(target {config.max_size_bytes // 1024}KB, up to {config.max_attempts} attempts)"
    )

    for attempt in range(1, config.max_attempts + 1):
        data = _encode_attempt(surface, settings)
        size = len(data)
        attempts.append(
            CompressionAttempt(
                attempt=attempt,
                width=settings.width,
                height=settings.height,
                quality=settings.quality,
                result_bytes=size,
                emergency=settings.emergency,
            )
        )
        logger.debug(
            f"Attempt {attempt}: {settings.width}x{settings.height} q={settings.quality:.2f}"
            f"{' (emergency)' if settings.emergency else ''} -> {size // 1024}KB"
        )

        if size <= config.max_size_bytes:
            logger.info(f"Compressed to {size // 1024}KB after {attempt} attempt(s)")
            return CompressionResult(
                data=data,
                mime_type=OUTPUT_FORMAT.mime_type,
                attempts_used=attempt,
                width=settings.width,
                height=settings.height,
                attempts=tuple(attempts),
            )

        remaining = config.max_attempts - attempt
        if remaining == 0:
            break

        if size > config.hard_ceiling_bytes and remaining == 1 and not settings.emergency:
            logger.warning(
                f"Still {size / (1024 * 1024):.2f}MB after {attempt} attempts; "
                f"trying emergency compression"
            )
            settings = emergency_settings(settings, config)
        else:
            settings = next_settings(settings, size, config)

    final_size = attempts[-1].result_bytes
    logger.warning(
        f"Compression exhausted after {len(attempts)} attempts: "
        f"{final_size // 1024}KB > {config.max_size_bytes // 1024}KB"
    )
    raise CompressionExhausted(
        final_size, len(attempts), config.max_size_bytes, attempts=tuple(attempts)
    )
