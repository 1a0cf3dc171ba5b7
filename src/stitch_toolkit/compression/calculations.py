"""
Module: compression.calculations

Purpose:
    Pure arithmetic behind the adaptive encoder: starting dimensions,
    the next ordinary attempt's settings (scaled to the measured
    overshoot), and the emergency pass.

Key Functions:
    - initial_settings(): Settings for attempt 1
    - next_settings(): Settings after an over-budget attempt
    - emergency_settings(): Settings for the emergency pass

Key Classes:
    - AttemptSettings: (width, height, quality, emergency)

Used By:
    - compression.encoder
"""

from __future__ import annotations

import math
from typing import NamedTuple, Tuple

from .config import CompressionConfig


class AttemptSettings(NamedTuple):
    """Dimensions and quality for one encode attempt."""

    width: int
    height: int
    quality: float
    emergency: bool = False


def _scale(width: int, height: int, factor: float) -> Tuple[int, int]:
    return max(1, math.floor(width * factor)), max(1, math.floor(height * factor))


def initial_dimensions(width: int, height: int, config: CompressionConfig) -> Tuple[int, int]:
    """
    Working dimensions for the first attempt.

    Sources above ``preshrink_pixels`` are first scaled by
    ``sqrt(preshrink_pixels / pixels)``; the result is then clamped to
    ``max_width`` x ``max_height`` (per axis, or by a single factor when
    ``preserve_aspect_ratio`` is set).

    Example:
        >>> initial_dimensions(1200, 2215, CompressionConfig())
        (1040, 1600)
    """
    current_width, current_height = width, height
    pixels = width * height
    if pixels > config.preshrink_pixels:
        current_width, current_height = _scale(
            width, height, math.sqrt(config.preshrink_pixels / pixels)
        )

    if config.preserve_aspect_ratio:
        factor = min(1.0, config.max_width / current_width, config.max_height / current_height)
        if factor < 1.0:
            current_width, current_height = _scale(current_width, current_height, factor)
        return current_width, current_height

    return min(current_width, config.max_width), min(current_height, config.max_height)


def initial_settings(width: int, height: int, config: CompressionConfig) -> AttemptSettings:
    """Settings for attempt 1: initial dimensions at the configured quality."""
    start_width, start_height = initial_dimensions(width, height, config)
    return AttemptSettings(start_width, start_height, config.quality)


def next_settings(
    current: AttemptSettings,
    result_bytes: int,
    config: CompressionConfig,
) -> AttemptSettings:
    """
    Settings for the next ordinary attempt.

    Dimension reduction tracks the measured overshoot:
    ``scale = min(max_scale_step, sqrt(max_size_bytes / result_bytes))``.
    Quality drops by ``quality_step`` down to ``min_quality`` and never
    rises, so pixel count and quality are both non-increasing.

    Example:
        >>> next_settings(AttemptSettings(1000, 1000, 0.7), 16 * 1024 * 1024, CompressionConfig())
        AttemptSettings(width=500, height=500, quality=0.55, emergency=False)
    """
    scale = min(config.max_scale_step, math.sqrt(config.max_size_bytes / result_bytes))
    new_width, new_height = _scale(current.width, current.height, scale)
    new_quality = min(current.quality, max(config.min_quality, current.quality - config.quality_step))
    return AttemptSettings(new_width, new_height, round(new_quality, 4))


def emergency_settings(current: AttemptSettings, config: CompressionConfig) -> AttemptSettings:
    """
    Settings for the emergency pass: dimensions x ``emergency_scale``,
    quality forced to ``emergency_quality``.
    """
    new_width, new_height = _scale(current.width, current.height, config.emergency_scale)
    return AttemptSettings(new_width, new_height, config.emergency_quality, emergency=True)
