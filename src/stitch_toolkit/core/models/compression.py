"""
Module: core.models.compression

Purpose:
    Output-side records: the encoding formats the pipeline may emit,
    one immutable record per encode trial, and the final compression
    result handed to the storage collaborator.

Key Classes:
    - ImageFormat: Opaque output formats (JPEG lossy, PNG lossless)
    - CompressionAttempt: One encode trial
    - CompressionResult: Encoded bytes plus how they were produced

Dependencies:
    - dataclasses (std)
    - enum (std)

Used By:
    - compression.encoder, compression.negotiator
    - controller
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ImageFormat(Enum):
    """
    Encodings the pipeline can produce.

    Both are written without an alpha channel. The value is the
    Pillow format name.

    Example:
        >>> ImageFormat.JPEG.mime_type
        'image/jpeg'
    """

    JPEG = "JPEG"
    PNG = "PNG"

    @property
    def mime_type(self) -> str:
        """Mime type tag for the downstream consumer."""
        return _MIME_TYPES[self]

    @property
    def is_lossy(self) -> bool:
        """Whether the encoder honours a quality setting."""
        return self is ImageFormat.JPEG

    @classmethod
    def from_pillow(cls, name: Optional[str]) -> Optional["ImageFormat"]:
        """Map a decoder-reported format name to an ImageFormat (None if unknown)."""
        if name is None:
            return None
        try:
            return cls(name.upper())
        except ValueError:
            return None


_MIME_TYPES = {
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.PNG: "image/png",
}

# Mime types the vision-analysis consumer accepts
ACCEPTED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


@dataclass(frozen=True, slots=True)
class CompressionAttempt:
    """
    Record of a single encode trial.

    Attributes:
        attempt: 1-based attempt number
        width: Encoded width in pixels
        height: Encoded height in pixels
        quality: Encoder quality in (0, 1]
        result_bytes: Size of the encoded output
        emergency: Whether this was the emergency pass
    """

    attempt: int
    width: int
    height: int
    quality: float
    result_bytes: int
    emergency: bool = False

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class CompressionResult:
    """
    Successful output of the adaptive encoder.

    Invariant: ``len(data) <= max_size_bytes`` of the config that produced
    it. Over-budget outcomes raise CompressionExhausted instead.

    Attributes:
        data: Encoded image bytes
        mime_type: Mime type of ``data``
        attempts_used: Number of encode trials made
        width: Encoded width
        height: Encoded height
        attempts: Every trial, in order
    """

    data: bytes
    mime_type: str
    attempts_used: int
    width: int
    height: int
    attempts: Tuple[CompressionAttempt, ...] = ()

    @property
    def size_bytes(self) -> int:
        return len(self.data)
