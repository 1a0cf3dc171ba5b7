"""
Module: loading.loader

Purpose:
    Decode submitted screenshot assets into raster surfaces with known
    dimensions. Decoding happens first and format/transparency are read
    from the decoded result; the raw bytes are never pattern-matched.

Key Functions:
    - load(): Decode one asset
    - load_all(): Decode a set of assets, releasing on failure

Key Classes:
    - DecodedImage: Decoded surface plus stacking metadata

Dependencies:
    - stitch_toolkit.raster: Decoding backend (Pillow by default)

Used By:
    - controller: First stage of the pipeline
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from stitch_toolkit.core.errors import LoadError
from stitch_toolkit.core.models import AssetData, ScreenshotAsset, SourceImage
from stitch_toolkit.raster import PillowBackend, RasterBackend, RasterSurface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedImage:
    """
    A decoded screenshot.

    The caller owns ``surface`` and must release it (the compositor does
    this once the image has been painted).

    Attributes:
        surface: Decoded raster
        order: Stacking position
        overlap_with_next: Overlap percentage with the next image
        asset_id: Identifier of the originating asset
        source_format: Decoder-reported format (e.g. "PNG")
        has_alpha: Whether the decoded buffer carries an alpha channel or
            transparency key
        is_transparent: Whether any pixel is actually less than opaque
            (an RGBA screenshot with a fully opaque alpha channel is not)
    """

    surface: RasterSurface
    order: int = 0
    overlap_with_next: float = 0.0
    asset_id: Optional[str] = None
    source_format: Optional[str] = None
    has_alpha: bool = False
    is_transparent: bool = False

    @property
    def width(self) -> int:
        return self.surface.width

    @property
    def height(self) -> int:
        return self.surface.height

    @property
    def source(self) -> SourceImage:
        """Geometry view used by the layout fold."""
        return SourceImage(
            order=self.order,
            width=self.width,
            height=self.height,
            overlap_with_next=self.overlap_with_next,
        )

    def release(self) -> None:
        self.surface.release()


def _read_bytes(data: AssetData, asset_id: Optional[str]) -> bytes:
    """Normalise bytes / path / stream input to bytes."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, (str, Path)):
        path = Path(data)
        try:
            return path.read_bytes()
        except OSError as e:
            raise LoadError(f"Cannot read image file {path}: {e}", asset_id) from e
    read = getattr(data, "read", None)
    if read is None:
        raise LoadError(f"Unsupported asset data type: {type(data).__name__}", asset_id)
    try:
        content = read()
    except OSError as e:
        raise LoadError(f"Cannot read image stream: {e}", asset_id) from e
    if not isinstance(content, (bytes, bytearray)):
        raise LoadError("Image stream must be opened in binary mode", asset_id)
    return bytes(content)


def load(
    asset: Union[ScreenshotAsset, AssetData],
    backend: Optional[RasterBackend] = None,
) -> DecodedImage:
    """
    Decode an asset into a raster with known pixel dimensions.

    Args:
        asset: A ScreenshotAsset, or bare bytes/path/stream (treated as order 0)
        backend: Raster backend (defaults to Pillow)

    Returns:
        DecodedImage owning the decoded surface

    Raises:
        LoadError: If the data cannot be read or decoded, or has no area

    Example:
        >>> image = load(ScreenshotAsset("a", Path("top.png"), order=0))
        >>> image.width, image.height
        (1200, 900)
    """
    backend = backend or PillowBackend()
    if isinstance(asset, ScreenshotAsset):
        asset_id = asset.id
        order, overlap, data = asset.order, asset.overlap_with_next, asset.data
    else:
        asset_id, order, overlap, data = None, 0, 0.0, asset

    if data is None:
        raise LoadError("Asset has no image data", asset_id)

    raw = _read_bytes(data, asset_id)
    try:
        surface = backend.decode(raw)
    except LoadError as e:
        label = f" '{asset_id}'" if asset_id else ""
        raise LoadError(f"Failed to load image{label}: {e}", asset_id) from e

    has_alpha = surface.has_alpha
    is_transparent = has_alpha and surface.is_transparent()
    if is_transparent:
        logger.info(
            f"Asset {asset_id or 'asset'} ({surface.format}) has transparent pixels; "
            f"flattening onto the background"
        )
    elif has_alpha:
        logger.debug(f"Asset {asset_id} ({surface.format}) has an alpha channel but no transparent pixels")

    logger.debug(f"Loaded {asset_id or 'asset'}: {surface.width}x{surface.height} {surface.format}")
    return DecodedImage(
        surface=surface,
        order=order,
        overlap_with_next=overlap,
        asset_id=asset_id,
        source_format=surface.format,
        has_alpha=has_alpha,
        is_transparent=is_transparent,
    )


def load_all(
    assets: Sequence[ScreenshotAsset],
    backend: Optional[RasterBackend] = None,
) -> List[DecodedImage]:
    """
    Decode every asset, in the given sequence order.

    On the first failure (of any kind) the images already decoded are
    released before the error propagates.

    Raises:
        LoadError: If any asset fails to decode
    """
    backend = backend or PillowBackend()
    loaded: List[DecodedImage] = []
    try:
        for asset in assets:
            loaded.append(load(asset, backend))
    except BaseException:
        for image in loaded:
            image.release()
        raise

    logger.info(f"Decoded {len(loaded)} screenshot(s)")
    return loaded
