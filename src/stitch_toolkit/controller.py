"""
Module: controller

Purpose:
    Orchestrate the stitching pipeline.
    Validate → Load → Stitch → Guard → Compress → Negotiate

Key Functions:
    - stitch_screenshots(): Synchronous entry point
    - stitch_screenshots_async(): Same pipeline on a worker thread

Key Classes:
    - StitchResult: Final bytes, mime type and diagnostics
    - StitchWorkerPool: Thread pool for independent invocations

Dependencies:
    - loading, layout, compression: Pipeline stages
    - concurrent.futures / asyncio: Off-loop execution

Used By:
    - cli
    - Upload/analysis collaborators (callers)
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from stitch_toolkit.compression import CompressionConfig, compress, guard, negotiate
from stitch_toolkit.core.errors import CompressionExhausted, LayoutError, StitchError
from stitch_toolkit.core.models import CompressionResult, ScreenshotAsset
from stitch_toolkit.layout import sort_by_order, stitch
from stitch_toolkit.loading import load_all
from stitch_toolkit.raster import PillowBackend, RasterBackend

from .timing import PhaseTimings, timed_phase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StitchResult:
    """
    Pipeline output (immutable).

    Attributes:
        data: Final encoded bytes (``len(data) <= max_size_bytes``)
        mime_type: image/jpeg or image/png
        compression: Adaptive encoder result (attempt history)
        composite_width: Composite width before guarding/compression
        composite_height: Composite height before guarding/compression
        source_count: Number of screenshots stitched
        warnings: Non-fatal warnings raised along the way
        timings: Per-phase durations

    Example:
        >>> result = stitch_screenshots(assets)
        >>> print(f"{result.mime_type} {result.size_bytes // 1024}KB in {result.attempts_used} attempts")
    """
    data: bytes
    mime_type: str
    compression: CompressionResult
    composite_width: int
    composite_height: int
    source_count: int
    warnings: Tuple[str, ...] = ()
    timings: PhaseTimings = field(default_factory=PhaseTimings)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def attempts_used(self) -> int:
        return self.compression.attempts_used


def stitch_screenshots(
    assets: Sequence[ScreenshotAsset],
    config: Optional[CompressionConfig] = None,
    *,
    backend: Optional[RasterBackend] = None,
) -> StitchResult:
    """
    Turn ordered, overlapping screenshots into one budget-compliant image.

    Pipeline:
    1. Validate order/overlap metadata (before anything is decoded)
    2. Decode every asset
    3. Stitch into one opaque composite (single image: opaque copy)
    4. Guard pixel count (warn / pre-scale)
    5. Adaptive JPEG compression under ``max_size_bytes``
    6. Negotiate final format

    Each stage releases the buffer it supersedes.

    Args:
        assets: Screenshots with order and overlap metadata (at least one)
        config: Budgets and thresholds (defaults to CompressionConfig())
        backend: Raster backend (defaults to Pillow)

    Returns:
        StitchResult

    Raises:
        LayoutError: Empty input or broken order/overlap invariants
        LoadError: An asset could not be decoded
        CompressionExhausted: No attempt met the byte ceiling
        FormatConversionError: The encoder produced no valid bytes
    """
    config = config or CompressionConfig()
    backend = backend or PillowBackend(config.background)
    timings = PhaseTimings()
    warnings: List[str] = []

    if not assets:
        raise LayoutError("No screenshots to stitch")

    with timed_phase(timings, "validate"):
        ordered_assets = sort_by_order(list(assets))

    logger.info(f"Stitching {len(ordered_assets)} screenshot(s)")

    with timed_phase(timings, "load"):
        images = load_all(ordered_assets, backend)

    with timed_phase(timings, "stitch"):
        try:
            composite = stitch(
                images,
                background=config.background,
                backend=backend,
                release_sources=True,
            )
        except Exception:
            for image in images:
                image.release()
            raise

    composite_size = (composite.width, composite.height)
    surface = composite.surface
    try:
        with timed_phase(timings, "guard"):
            surface = guard(surface, config, warnings)
        with timed_phase(timings, "compress"):
            compressed = compress(surface, config)
    finally:
        surface.release()

    with timed_phase(timings, "negotiate"):
        negotiated = negotiate(
            compressed.data,
            threshold_bytes=max(config.negotiation_threshold_bytes, config.max_size_bytes),
            jpeg_quality=config.negotiation_quality,
            background=config.background,
            backend=backend,
        )

    if len(negotiated.data) > config.max_size_bytes:
        raise CompressionExhausted(
            len(negotiated.data),
            compressed.attempts_used,
            config.max_size_bytes,
            attempts=compressed.attempts,
        )

    logger.info(
        f"Stitched {composite_size[0]}x{composite_size[1]} -> "
        f"{compressed.width}x{compressed.height} {negotiated.mime_type} "
        f"{len(negotiated.data) // 1024}KB in {timings.total:.2f}s"
    )
    return StitchResult(
        data=negotiated.data,
        mime_type=negotiated.mime_type,
        compression=compressed,
        composite_width=composite_size[0],
        composite_height=composite_size[1],
        source_count=len(ordered_assets),
        warnings=tuple(warnings),
        timings=timings,
    )


async def stitch_screenshots_async(
    assets: Sequence[ScreenshotAsset],
    config: Optional[CompressionConfig] = None,
    *,
    backend: Optional[RasterBackend] = None,
) -> StitchResult:
    """
    Run ``stitch_screenshots`` on a worker thread.

    Raster work is CPU-bound; this keeps it off the event loop. Wrap
    with ``asyncio.wait_for`` to impose a deadline.
    """
    return await asyncio.to_thread(stitch_screenshots, assets, config, backend=backend)


class StitchWorkerPool:
    """
    Thread pool running independent pipeline invocations in parallel.

    Invocations share no mutable state, so any number may run at once.

    Usage:
        with StitchWorkerPool(max_workers=4) as pool:
            for assets in uploads:
                pool.submit(assets)
            outcomes = pool.wait_all()

    Attributes:
        config: Default configuration for submitted jobs
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        config: Optional[CompressionConfig] = None,
    ) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="stitch"
        )
        self._futures: List[Future] = []
        self.config = config or CompressionConfig()

    def submit(
        self,
        assets: Sequence[ScreenshotAsset],
        config: Optional[CompressionConfig] = None,
    ) -> "Future[StitchResult]":
        """Queue one invocation and return its future."""
        future = self._executor.submit(stitch_screenshots, list(assets), config or self.config)
        self._futures.append(future)
        return future

    def wait_all(
        self, timeout: Optional[float] = None
    ) -> List[Union[StitchResult, StitchError]]:
        """
        Wait for every queued invocation.

        Args:
            timeout: Max seconds to wait per invocation (None = indefinite)

        Returns:
            One entry per submission, in submission order: the
            StitchResult, or the StitchError it failed with.

        Raises:
            concurrent.futures.TimeoutError: If an invocation is still
                running after ``timeout``. It and every later submission
                stay queued for the next call.
            Exception: Any non-StitchError raised by an invocation. That
                invocation is dropped from the queue.

        Outcomes collected before either exception are not returned.
        """
        outcomes: List[Union[StitchResult, StitchError]] = []
        while self._futures:
            future = self._futures[0]
            try:
                outcome = future.result(timeout=timeout)
            except StitchError as e:
                logger.error(f"Stitch failed: {e}")
                outcome = e
            except FuturesTimeoutError:
                if future.done():
                    self._futures.pop(0)
                logger.warning(f"Stitch still running after {timeout}s; {len(self._futures)} job(s) pending")
                raise
            except Exception:
                self._futures.pop(0)
                raise
            self._futures.pop(0)
            outcomes.append(outcome)
        return outcomes

    def shutdown(self) -> None:
        """Shutdown the thread pool after pending work completes."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "StitchWorkerPool":
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()
