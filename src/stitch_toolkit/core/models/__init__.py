"""
Core Models Package

Immutable records shared by every pipeline stage. Inputs (assets and
their geometry) and outputs (formats, attempts, results) are frozen
dataclasses so they can be handed between threads without copying.
"""

from .screenshots import AssetData, ScreenshotAsset, SourceImage
from .compression import (
    ACCEPTED_MIME_TYPES,
    CompressionAttempt,
    CompressionResult,
    ImageFormat,
)

__all__ = [
    "AssetData",
    "ScreenshotAsset",
    "SourceImage",
    "ACCEPTED_MIME_TYPES",
    "CompressionAttempt",
    "CompressionResult",
    "ImageFormat",
]
