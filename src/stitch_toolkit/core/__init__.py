"""
Core package: data models and the error taxonomy shared by the
loader, compositor and compression stages.
"""

from .errors import (
    CompressionExhausted,
    FormatConversionError,
    LayoutError,
    LoadError,
    StitchError,
)

__all__ = [
    "StitchError",
    "LoadError",
    "LayoutError",
    "CompressionExhausted",
    "FormatConversionError",
]
