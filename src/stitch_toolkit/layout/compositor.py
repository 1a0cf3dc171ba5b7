"""
Module: layout.compositor

Purpose:
    Stacks decoded screenshots into one tall opaque composite. Each image
    after the first is pulled up by its declared overlap with the one
    above it, so content repeated between consecutive screenshots is
    shown once.

Key Functions:
    - compute_layout(): Pure fold from image geometry to placements
    - stitch(): Paint decoded images onto a new opaque surface

Key Classes:
    - Placement: Where one screenshot lands in the composite
    - LayoutPlan: Composite size plus placements
    - CompositeSurface: Painted composite

Dependencies:
    - stitch_toolkit.raster: Surface allocation and drawing
    - layout.validation: Order/overlap invariants

Used By:
    - controller: Second stage of the pipeline
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import reduce
from typing import Dict, List, Optional, Sequence, Tuple

from stitch_toolkit.core.errors import LayoutError
from stitch_toolkit.core.models import SourceImage
from stitch_toolkit.loading import DecodedImage
from stitch_toolkit.raster import RGB, WHITE, PillowBackend, RasterBackend, RasterSurface

from .validation import overlap_pixels, sort_by_order

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Placement:
    """
    Position of one screenshot in the composite.

    Attributes:
        order: Stacking position of the source
        x: Left edge (images narrower than the composite are centred)
        y: Top edge (may be negative if the overlap exceeds what is above)
        width: Drawn width (always the source width, never stretched)
        height: Drawn height
        overlap_px: Rows stepped back before drawing (0 for the first image)
    """

    order: int
    x: int
    y: int
    width: int
    height: int
    overlap_px: int = 0


@dataclass(frozen=True)
class LayoutPlan:
    """
    Output of the layout fold.

    Attributes:
        width: Composite width (widest source)
        height: Composite height
        placements: One Placement per source, in stacking order
    """

    width: int
    height: int
    placements: Tuple[Placement, ...]


@dataclass
class CompositeSurface:
    """
    Painted composite. Owns ``surface``.

    Attributes:
        surface: Opaque RGB raster
        placements: Where each source was drawn
    """

    surface: RasterSurface
    placements: Tuple[Placement, ...] = ()

    @property
    def width(self) -> int:
        return self.surface.width

    @property
    def height(self) -> int:
        return self.surface.height

    def release(self) -> None:
        self.surface.release()


def compute_layout(sources: Sequence[SourceImage]) -> LayoutPlan:
    """
    Fold image geometry into placements and the composite size.

    The cursor starts at 0. The first image advances it by its full
    height; every later image first steps back by
    ``round(height * overlap_of_previous / 100)`` and then advances by its
    full height. The final cursor is the composite height::

        h0 + sum(h_i - round(h_i * o_(i-1) / 100))

    Args:
        sources: Image geometry (any order; sorted by ``order`` here)

    Returns:
        LayoutPlan with width = max source width

    Raises:
        LayoutError: If order/overlap invariants are violated

    Example:
        >>> plan = compute_layout([
        ...     SourceImage(0, 1000, 800, 20),
        ...     SourceImage(1, 1000, 800, 10),
        ...     SourceImage(2, 1000, 600),
        ... ])
        >>> plan.height
        1980
    """
    ordered = sort_by_order(sources)
    max_width = max(source.width for source in ordered)

    def place(
        state: Tuple[Tuple[Placement, ...], int],
        indexed: Tuple[int, SourceImage],
    ) -> Tuple[Tuple[Placement, ...], int]:
        placements, cursor = state
        index, source = indexed
        step_back = 0
        if index > 0:
            step_back = overlap_pixels(source.height, ordered[index - 1].overlap_with_next)
        y = cursor - step_back
        placement = Placement(
            order=source.order,
            x=(max_width - source.width) // 2,
            y=y,
            width=source.width,
            height=source.height,
            overlap_px=step_back,
        )
        return placements + (placement,), y + source.height

    placements, total_height = reduce(place, enumerate(ordered), ((), 0))
    return LayoutPlan(width=max_width, height=total_height, placements=placements)


def _ordered_sources(
    images: Sequence[DecodedImage],
    overlaps: Optional[Sequence[float]],
) -> Tuple[List[DecodedImage], List[SourceImage]]:
    ordered = sort_by_order(images, check_overlaps=overlaps is None)
    sources = [image.source for image in ordered]
    if overlaps is None:
        return ordered, sources

    if len(overlaps) not in (len(ordered) - 1, len(ordered)):
        raise LayoutError(
            f"Expected {len(ordered) - 1} overlap values for {len(ordered)} images, "
            f"got {len(overlaps)}"
        )
    overridden = [
        replace(source, overlap_with_next=overlaps[i] if i < len(overlaps) else 0.0)
        for i, source in enumerate(sources)
    ]
    return ordered, overridden


def stitch(
    images: Sequence[DecodedImage],
    overlaps: Optional[Sequence[float]] = None,
    *,
    background: RGB = WHITE,
    backend: Optional[RasterBackend] = None,
    release_sources: bool = False,
) -> CompositeSurface:
    """
    Stack decoded images vertically into one opaque composite.

    A single image short-circuits to an opaque copy of itself. Otherwise
    an RGB surface of the planned size is filled with ``background``
    and each image is drawn top to bottom, centred horizontally. In an
    overlap band the later image simply overwrites the earlier one.

    Args:
        images: Decoded screenshots (sorted by their ``order`` here)
        overlaps: Optional overlap percentages applied positionally to the
            order-sorted images, overriding each image's own value. The
            value for the last image, if present, is ignored.
        background: Opaque fill colour
        backend: Raster backend for the new surface (defaults to Pillow)
        release_sources: Release each decoded image once it is painted

    Returns:
        CompositeSurface owning the new raster

    Raises:
        LayoutError: On empty input or violated order/overlap invariants

    Example:
        >>> composite = stitch(decoded, release_sources=True)
        >>> composite.width, composite.height
        (1200, 2215)
    """
    if not images:
        raise LayoutError("No screenshots to stitch")

    ordered, sources = _ordered_sources(images, overlaps)
    plan = compute_layout(sources)

    if len(ordered) == 1:
        image = ordered[0]
        surface = image.surface.flattened(background)
        if release_sources:
            image.release()
        logger.debug(f"Single screenshot: normalised {surface.width}x{surface.height} copy")
        return CompositeSurface(surface=surface, placements=plan.placements)

    backend = backend or PillowBackend(background)
    logger.info(
        f"Compositing {len(ordered)} screenshots into {plan.width}x{plan.height}"
    )
    canvas = backend.new_surface(plan.width, plan.height, background)

    by_order: Dict[int, DecodedImage] = {image.order: image for image in ordered}
    try:
        for placement in plan.placements:
            image = by_order[placement.order]
            if placement.y < 0:
                logger.warning(
                    f"Overlap for order {placement.order} reaches above the composite top "
                    f"(y={placement.y}); the top of that screenshot is clipped"
                )
            canvas.draw_opaque(image.surface, placement.x, placement.y)
            if release_sources:
                image.release()
    except Exception:
        canvas.release()
        raise

    return CompositeSurface(surface=canvas, placements=plan.placements)
