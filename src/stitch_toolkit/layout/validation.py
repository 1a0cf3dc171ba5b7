"""
Module: layout.validation

Purpose:
    Order and overlap invariants for a screenshot set. Checked before
    anything is decoded or allocated so bad input fails fast.

Key Functions:
    - sort_by_order(): Validate and return items in stacking order
    - overlap_pixels(): Overlap percentage to whole pixels

Used By:
    - layout.compositor
    - controller: Validates assets before loading
"""

from __future__ import annotations

import math
from typing import List, Protocol, Sequence, TypeVar

from stitch_toolkit.core.errors import LayoutError

MAX_OVERLAP_PERCENT = 100.0


class Orderable(Protocol):
    order: int
    overlap_with_next: float


T = TypeVar("T", bound=Orderable)


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero for non-negatives.

    Python's ``round`` uses banker's rounding (``round(0.5) == 0``); the
    overlap arithmetic expects ``floor(x + 0.5)``.
    """
    return int(math.floor(value + 0.5))


def overlap_pixels(height: int, overlap_percent: float) -> int:
    """
    Pixels of ``height`` hidden behind the previous image.

    Example:
        >>> overlap_pixels(800, 20)
        160
        >>> overlap_pixels(700, 15)
        105
    """
    return round_half_up(height * overlap_percent / 100)


def validate_overlap(overlap: float, *, order: int) -> None:
    """
    Check a single overlap value lies in [0, 100).

    Raises:
        LayoutError: If the value is not a finite number in range
    """
    try:
        value = float(overlap)
    except (TypeError, ValueError) as e:
        raise LayoutError(f"Overlap for order {order} is not a number: {overlap!r}") from e
    if not math.isfinite(value) or value < 0 or value >= MAX_OVERLAP_PERCENT:
        raise LayoutError(
            f"Overlap for order {order} must be in [0, 100): {overlap!r}"
        )


def sort_by_order(items: Sequence[T], *, check_overlaps: bool = True) -> List[T]:
    """
    Validate stacking metadata and return items sorted by ``order``.

    Orders must be non-negative integers with no duplicates and no gaps
    (the first order may be any non-negative value). Overlaps are checked
    on every item except the last in stacking order, where the value is
    meaningless.

    Args:
        items: Anything with ``order`` and ``overlap_with_next``
        check_overlaps: Set False when overlaps are supplied separately

    Returns:
        New list in stacking order

    Raises:
        LayoutError: On empty input, negative/duplicate/non-contiguous
            orders, or an out-of-range overlap

    Example:
        >>> [s.order for s in sort_by_order([SourceImage(1, 10, 10), SourceImage(0, 10, 10)])]
        [0, 1]
    """
    if not items:
        raise LayoutError("No screenshots to stitch")

    for item in items:
        if isinstance(item.order, bool) or not isinstance(item.order, int):
            raise LayoutError(f"Order must be an integer: {item.order!r}")
        if item.order < 0:
            raise LayoutError(f"Order must be >= 0: {item.order}")

    ordered = sorted(items, key=lambda item: item.order)

    for previous, current in zip(ordered, ordered[1:]):
        if current.order == previous.order:
            raise LayoutError(f"Duplicate order {current.order}")
        if current.order != previous.order + 1:
            raise LayoutError(
                f"Gap in order between {previous.order} and {current.order}"
            )

    if check_overlaps:
        for item in ordered[:-1]:
            validate_overlap(item.overlap_with_next, order=item.order)

    return ordered
