"""
Module: compression

Purpose:
    Size Guard, Adaptive Encoder and Format Negotiator stages, plus the
    configuration they share.

Key Functions:
    - guard(): Pixel-count pre-scaling
    - compress(): Bounded adaptive JPEG compression
    - negotiate(): Final opaque format choice

Key Classes:
    - CompressionConfig
    - AttemptSettings, NegotiatedImage

Dependencies:
    - stitch_toolkit.raster: Resampling and encoding
"""

from .config import (
    DEFAULT_HARD_CEILING_BYTES,
    DEFAULT_MAX_SIZE_BYTES,
    DEFAULT_NEGOTIATION_THRESHOLD_BYTES,
    MIB,
    CompressionConfig,
)
from .calculations import (
    AttemptSettings,
    emergency_settings,
    initial_dimensions,
    initial_settings,
    next_settings,
)
from .size_guard import guard, guarded_dimensions
from .encoder import compress
from .negotiator import NegotiatedImage, negotiate

__all__ = [
    "DEFAULT_HARD_CEILING_BYTES",
    "DEFAULT_MAX_SIZE_BYTES",
    "DEFAULT_NEGOTIATION_THRESHOLD_BYTES",
    "MIB",
    "CompressionConfig",
    "AttemptSettings",
    "emergency_settings",
    "initial_dimensions",
    "initial_settings",
    "next_settings",
    "guard",
    "guarded_dimensions",
    "compress",
    "NegotiatedImage",
    "negotiate",
]
