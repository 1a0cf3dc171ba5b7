"""
Module: loading

Purpose:
    Image Loader stage. Turns submitted assets into decoded rasters.

Key Functions:
    - load(), load_all()

Key Classes:
    - DecodedImage
"""

from .loader import DecodedImage, load, load_all

__all__ = [
    "DecodedImage",
    "load",
    "load_all",
]
