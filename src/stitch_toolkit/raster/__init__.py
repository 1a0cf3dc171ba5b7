"""
Module: raster

Purpose:
    Raster capability interface (decode / draw / resample / encode)
    and its default Pillow implementation.

Key Classes:
    - RasterSurface, RasterBackend: Abstract interface
    - PillowSurface, PillowBackend: Pillow implementation

Dependencies:
    - PIL, numpy (Pillow backend only)
"""

from .surface import RGB, WHITE, RasterBackend, RasterSurface
from .pillow_backend import PillowBackend, PillowSurface, quality_to_pillow

__all__ = [
    "RGB",
    "WHITE",
    "RasterBackend",
    "RasterSurface",
    "PillowBackend",
    "PillowSurface",
    "quality_to_pillow",
]
