"""
Module: layout

Purpose:
    Compositor stage: validates stacking order and overlaps, folds image
    geometry into placements and paints the opaque composite.

Key Functions:
    - compute_layout(), stitch()
    - sort_by_order(), overlap_pixels()

Key Classes:
    - Placement, LayoutPlan, CompositeSurface
"""

from .validation import overlap_pixels, round_half_up, sort_by_order, validate_overlap
from .compositor import CompositeSurface, LayoutPlan, Placement, compute_layout, stitch

__all__ = [
    "overlap_pixels",
    "round_half_up",
    "sort_by_order",
    "validate_overlap",
    "CompositeSurface",
    "LayoutPlan",
    "Placement",
    "compute_layout",
    "stitch",
]
