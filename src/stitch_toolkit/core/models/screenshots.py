"""
Module: core.models.screenshots

Purpose:
    Input-side records for the stitching pipeline: the raw screenshot
    asset submitted by the upload collaborator and the geometric
    SourceImage view used by the compositor's layout fold.

Key Classes:
    - ScreenshotAsset: Submitted asset with order and overlap
    - SourceImage: Decoded dimensions plus stacking metadata

Dependencies:
    - dataclasses (std)
    - pathlib (std)

Used By:
    - loading.loader
    - layout.validation, layout.compositor
    - controller
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

# Raw encoded image: in-memory bytes, a path on disk, or an open binary stream
AssetData = Union[bytes, bytearray, memoryview, str, Path, BinaryIO]


@dataclass(frozen=True)
class ScreenshotAsset:
    """
    A screenshot as submitted for stitching.

    Attributes:
        id: Caller-assigned identifier (used in error messages only)
        data: Encoded image bytes, a file path, or a binary stream
        order: Vertical stacking position (0 = top)
        overlap_with_next: Percentage [0, 100) of the *next* image's height
            that repeats content already shown at the bottom of this one.
            Ignored on the last image.

    Example:
        >>> asset = ScreenshotAsset("shot-1", Path("top.png"), order=0, overlap_with_next=20)
    """

    id: str
    data: AssetData
    order: int
    overlap_with_next: float = 0.0


@dataclass(frozen=True, slots=True)
class SourceImage:
    """
    Geometry of one decoded screenshot.

    Attributes:
        order: Stacking position (>= 0, total and contiguous across a set)
        width: Pixel width (> 0)
        height: Pixel height (> 0)
        overlap_with_next: Overlap percentage with the following image

    Invariants:
        - width > 0 and height > 0
        - order >= 0
    """

    order: int
    width: int
    height: int
    overlap_with_next: float = 0.0

    def __post_init__(self) -> None:
        """Validate geometry on construction."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"SourceImage must have positive area: {self.width}x{self.height}"
            )
        if self.order < 0:
            raise ValueError(f"order must be >= 0: {self.order}")

    @property
    def pixel_count(self) -> int:
        """Total pixels (width x height)."""
        return self.width * self.height
