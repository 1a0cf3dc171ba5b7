"""
Module: core.errors

Purpose:
    Typed failures raised synchronously from the stitching pipeline.
    Callers map these to user-facing guidance (fewer screenshots,
    smaller images); no partial byte buffer accompanies any of them.

Key Classes:
    - StitchError: Base class for every pipeline failure
    - LoadError: An asset could not be decoded
    - LayoutError: Order/overlap invariants violated
    - CompressionExhausted: No bounded attempt met the byte ceiling
    - FormatConversionError: The encoder produced no valid output

Used By:
    - loading.loader, layout, compression, controller
"""

from __future__ import annotations

from typing import Any, Optional, Tuple


class StitchError(Exception):
    """Base class for stitching pipeline failures."""
    pass


class LoadError(StitchError):
    """Asset could not be decoded into a positive-area raster."""

    def __init__(self, message: str, asset_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.asset_id = asset_id


class LayoutError(StitchError):
    """Order or overlap invariants violated (raised before any allocation)."""
    pass


class CompressionExhausted(StitchError):
    """
    All bounded attempts, including the emergency pass, failed the ceiling.

    This is an expected outcome for oversized inputs rather than a
    programming error; the caller should ask for fewer or smaller
    screenshots.

    Attributes:
        final_size_bytes: Size of the last encoded attempt.
        attempts_used: Number of encode attempts made.
        max_size_bytes: The ceiling that was not met.
        attempts: CompressionAttempt records, in order (may be empty).
    """

    def __init__(
        self,
        final_size_bytes: int,
        attempts_used: int = 0,
        max_size_bytes: Optional[int] = None,
        attempts: Tuple[Any, ...] = (),
    ) -> None:
        self.final_size_bytes = final_size_bytes
        self.attempts_used = attempts_used
        self.max_size_bytes = max_size_bytes
        self.attempts = tuple(attempts)
        final_mb = final_size_bytes / (1024 * 1024)
        message = (
            f"Failed to compress image below the size limit after "
            f"{attempts_used} attempts. Final size: {final_mb:.2f}MB"
        )
        if max_size_bytes is not None:
            message += f" (limit {max_size_bytes / (1024 * 1024):.2f}MB)"
        super().__init__(message)


class FormatConversionError(StitchError):
    """Encoder could not produce valid output bytes (distinct from size)."""
    pass
