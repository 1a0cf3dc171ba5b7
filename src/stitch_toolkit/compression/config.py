"""
Module: compression.config

Purpose:
    Caller-facing configuration for the size guard, adaptive encoder and
    format negotiator. Immutable, validated on construction.

Key Classes:
    - CompressionConfig: Byte budgets, dimension caps and step sizes

Dependencies:
    - dataclasses (std)

Used By:
    - compression.size_guard, compression.encoder, compression.negotiator
    - controller, cli
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

MIB = 1024 * 1024

# Downstream request-size limits
DEFAULT_MAX_SIZE_BYTES = 4 * MIB
DEFAULT_HARD_CEILING_BYTES = 5 * MIB
DEFAULT_NEGOTIATION_THRESHOLD_BYTES = int(4.5 * MIB)


@dataclass(frozen=True)
class CompressionConfig:
    """
    Configuration for the compression stages (immutable).

    Attributes:
        max_width: Width cap for the first encode attempt
        max_height: Height cap for the first encode attempt
        quality: Starting encoder quality in (0, 1]
        max_size_bytes: Target byte ceiling; results never exceed it
        hard_ceiling_bytes: Consumer's absolute limit; attempts above it
            trigger the emergency pass
        max_attempts: Upper bound on encode attempts (emergency included)
        preshrink_pixels: Sources above this pixel count are scaled down
            before the first attempt
        min_quality: Quality floor for ordinary attempts
        quality_step: Quality reduction between ordinary attempts
        max_scale_step: Largest per-attempt dimension scale factor
        emergency_scale: Dimension factor for the emergency pass
        emergency_quality: Fixed quality for the emergency pass
        preserve_aspect_ratio: Clamp to max_width/max_height with a single
            scale factor instead of clamping each axis independently
        large_pixel_threshold: Pixel count that triggers a size warning
        very_large_pixel_threshold: Pixel count above which the composite
            is resampled before encoding
        negotiation_threshold_bytes: Size above which the lossless
            candidate is replaced by a lossy one
        negotiation_quality: Quality for the negotiator's lossy fallback
        background: Opaque fill used to flatten transparency

    Example:
        >>> config = CompressionConfig(max_size_bytes=1024 * 1024)
        >>> config.hard_ceiling_bytes
        5242880
    """

    max_width: int = 1200
    max_height: int = 1600
    quality: float = 0.7
    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES
    hard_ceiling_bytes: int = DEFAULT_HARD_CEILING_BYTES
    max_attempts: int = 4

    # Adaptive steps
    preshrink_pixels: int = 2_000_000
    min_quality: float = 0.4
    quality_step: float = 0.15
    max_scale_step: float = 0.8
    emergency_scale: float = 0.7
    emergency_quality: float = 0.3
    preserve_aspect_ratio: bool = False

    # Size guard
    large_pixel_threshold: int = 12_000_000
    very_large_pixel_threshold: int = 48_000_000

    # Format negotiation
    negotiation_threshold_bytes: int = DEFAULT_NEGOTIATION_THRESHOLD_BYTES
    negotiation_quality: float = 0.9

    background: Tuple[int, int, int] = (255, 255, 255)

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.max_width <= 0 or self.max_height <= 0:
            raise ValueError(
                f"max_width/max_height must be positive: {self.max_width}x{self.max_height}"
            )
        for name in ("quality", "min_quality", "emergency_quality", "negotiation_quality"):
            value = getattr(self, name)
            if not 0 < value <= 1:
                raise ValueError(f"{name} must be in (0, 1]: {value}")
        if self.max_size_bytes <= 0:
            raise ValueError(f"max_size_bytes must be positive: {self.max_size_bytes}")
        if self.hard_ceiling_bytes < self.max_size_bytes:
            raise ValueError(
                f"hard_ceiling_bytes ({self.hard_ceiling_bytes}) must be >= "
                f"max_size_bytes ({self.max_size_bytes})"
            )
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1: {self.max_attempts}")
        if self.preshrink_pixels <= 0:
            raise ValueError(f"preshrink_pixels must be positive: {self.preshrink_pixels}")
        if not 0 <= self.quality_step < 1:
            raise ValueError(f"quality_step must be in [0, 1): {self.quality_step}")
        for name in ("max_scale_step", "emergency_scale"):
            value = getattr(self, name)
            if not 0 < value < 1:
                raise ValueError(f"{name} must be in (0, 1): {value}")
        if self.large_pixel_threshold <= 0:
            raise ValueError(f"large_pixel_threshold must be positive: {self.large_pixel_threshold}")
        if self.very_large_pixel_threshold < self.large_pixel_threshold:
            raise ValueError("very_large_pixel_threshold must be >= large_pixel_threshold")
        if self.negotiation_threshold_bytes <= 0:
            raise ValueError(
                f"negotiation_threshold_bytes must be positive: {self.negotiation_threshold_bytes}"
            )
        if len(self.background) != 3 or not all(0 <= c <= 255 for c in self.background):
            raise ValueError(f"background must be an RGB triple: {self.background!r}")

    def with_overrides(self, **changes) -> "CompressionConfig":
        """Return a validated copy with ``changes`` applied."""
        return replace(self, **changes)
