"""
Integration tests for the stitching pipeline controller.

Verifies:
1. Out-of-order screenshots become one budget-compliant JPEG
2. Layout problems are reported before anything is decoded
3. Typed errors propagate (LoadError, CompressionExhausted)
4. Async and thread-pool entry points produce the same results
5. The worker pool queue stays consistent when a job times out or crashes
"""

import asyncio
import threading
from concurrent.futures import TimeoutError as FuturesTimeoutError

import pytest

from stitch_toolkit import (
    CompressionConfig,
    CompressionExhausted,
    LayoutError,
    LoadError,
    ScreenshotAsset,
    StitchResult,
    StitchWorkerPool,
    stitch_screenshots,
    stitch_screenshots_async,
)
from stitch_toolkit.raster import PillowBackend


class CountingBackend(PillowBackend):
    """PillowBackend that counts decode calls."""

    def __init__(self):
        super().__init__()
        self.decode_calls = 0

    def decode(self, data):
        self.decode_calls += 1
        return super().decode(data)


@pytest.fixture
def page_assets(make_image_bytes):
    """Three 1200px-wide screenshots supplied out of order."""
    return [
        ScreenshotAsset("bottom", make_image_bytes(1200, 700, color=(30, 30, 200)), order=2),
        ScreenshotAsset("top", make_image_bytes(1200, 900, color=(200, 30, 30)), order=0, overlap_with_next=20),
        ScreenshotAsset("middle", make_image_bytes(1200, 900, color=(30, 200, 30)), order=1, overlap_with_next=15),
    ]


class TestStitchScreenshots:
    """Tests for stitch_screenshots()."""

    def test_stitch_when_out_of_order_then_budget_compliant_jpeg(self, page_assets, decode_bytes):
        result = stitch_screenshots(page_assets)

        assert isinstance(result, StitchResult)
        assert (result.composite_width, result.composite_height) == (1200, 2215)
        assert result.source_count == 3
        assert result.mime_type == "image/jpeg"
        assert result.size_bytes <= 4 * 1024 * 1024
        assert result.attempts_used == 1
        assert decode_bytes(result.data).size == (1040, 1600)

    def test_stitch_when_single_rgba_asset_then_opaque_output(self, half_transparent_png, decode_bytes):
        result = stitch_screenshots([ScreenshotAsset("only", half_transparent_png, order=0)])
        image = decode_bytes(result.data)

        assert (result.composite_width, result.composite_height) == (40, 30)
        assert image.mode == "RGB"
        assert result.mime_type in ("image/jpeg", "image/png")

    def test_stitch_when_completed_then_records_phase_timings(self, page_assets):
        result = stitch_screenshots(page_assets)
        phases = result.timings.phases

        for phase in ("validate", "load", "stitch", "guard", "compress", "negotiate"):
            assert phase in phases
        assert result.timings.total >= 0

    def test_stitch_when_large_composite_then_warning_reported(self, make_image_bytes):
        config = CompressionConfig(large_pixel_threshold=1_000, very_large_pixel_threshold=5_000)
        assets = [
            ScreenshotAsset("a", make_image_bytes(100, 50), order=0),
            ScreenshotAsset("b", make_image_bytes(100, 50), order=1),
        ]

        result = stitch_screenshots(assets, config)

        assert len(result.warnings) == 1
        assert (result.composite_width, result.composite_height) == (100, 100)
        assert result.compression.width * result.compression.height <= 5_000

    # ─────────────────────────────────────────────────────────────────────────
    # Failure Tests
    # ─────────────────────────────────────────────────────────────────────────

    def test_stitch_when_empty_then_layout_error(self):
        with pytest.raises(LayoutError, match="No screenshots"):
            stitch_screenshots([])

    def test_stitch_when_duplicate_orders_then_fails_before_decoding(self):
        """Undecodable data is never touched when the layout is invalid."""
        backend = CountingBackend()
        assets = [
            ScreenshotAsset("a", b"garbage", order=0),
            ScreenshotAsset("b", b"garbage", order=0),
        ]

        with pytest.raises(LayoutError, match="Duplicate"):
            stitch_screenshots(assets, backend=backend)
        assert backend.decode_calls == 0

    def test_stitch_when_overlap_out_of_range_then_layout_error(self, make_image_bytes):
        assets = [
            ScreenshotAsset("a", make_image_bytes(), order=0, overlap_with_next=100),
            ScreenshotAsset("b", make_image_bytes(), order=1),
        ]
        with pytest.raises(LayoutError):
            stitch_screenshots(assets)

    def test_stitch_when_corrupt_asset_then_load_error(self, make_image_bytes):
        assets = [
            ScreenshotAsset("good", make_image_bytes(), order=0),
            ScreenshotAsset("bad", b"\x00\x01\x02", order=1),
        ]
        with pytest.raises(LoadError) as exc_info:
            stitch_screenshots(assets)
        assert exc_info.value.asset_id == "bad"

    def test_stitch_when_budget_unreachable_then_compression_exhausted(self, make_noise_bytes):
        assets = [ScreenshotAsset("noise", make_noise_bytes(300, 300), order=0)]

        with pytest.raises(CompressionExhausted) as exc_info:
            stitch_screenshots(assets, CompressionConfig(max_size_bytes=100))

        assert exc_info.value.attempts_used == 4
        assert exc_info.value.max_size_bytes == 100


class TestAsyncAndPool:
    """Tests for the async wrapper and the worker pool."""

    def test_stitch_async_when_awaited_then_same_result_shape(self, page_assets):
        result = asyncio.run(stitch_screenshots_async(page_assets))

        assert (result.composite_width, result.composite_height) == (1200, 2215)
        assert result.mime_type == "image/jpeg"

    def test_stitch_async_when_invalid_then_raises(self):
        with pytest.raises(LayoutError):
            asyncio.run(stitch_screenshots_async([]))

    def test_pool_when_mixed_jobs_then_outcomes_in_submission_order(self, make_image_bytes):
        good = [ScreenshotAsset("a", make_image_bytes(60, 40), order=0)]
        bad = [ScreenshotAsset("b", make_image_bytes(), order=1), ScreenshotAsset("c", make_image_bytes(), order=3)]

        with StitchWorkerPool(max_workers=2) as pool:
            pool.submit(good)
            pool.submit(bad)
            pool.submit(good)
            outcomes = pool.wait_all()

        assert len(outcomes) == 3
        assert isinstance(outcomes[0], StitchResult)
        assert isinstance(outcomes[1], LayoutError)
        assert isinstance(outcomes[2], StitchResult)
        assert outcomes[0].data == outcomes[2].data

    def test_pool_when_submitted_then_future_returned(self, make_image_bytes):
        with StitchWorkerPool(max_workers=1) as pool:
            future = pool.submit([ScreenshotAsset("a", make_image_bytes(), order=0)])
            assert future.result().source_count == 1

    def test_pool_when_job_raises_unexpected_error_then_queue_cleared(self, monkeypatch):
        def crash(assets, config):
            raise RuntimeError("worker crashed")

        monkeypatch.setattr("stitch_toolkit.controller.stitch_screenshots", crash)

        with StitchWorkerPool(max_workers=1) as pool:
            pool.submit([])
            with pytest.raises(RuntimeError, match="worker crashed"):
                pool.wait_all()
            assert pool.wait_all() == []

    def test_pool_when_wait_times_out_then_job_stays_queued(self, monkeypatch, make_image_bytes):
        release = threading.Event()

        def slow(assets, config):
            release.wait(timeout=10)
            return "done"

        monkeypatch.setattr("stitch_toolkit.controller.stitch_screenshots", slow)

        with StitchWorkerPool(max_workers=1) as pool:
            pool.submit([ScreenshotAsset("a", make_image_bytes(), order=0)])
            try:
                with pytest.raises(FuturesTimeoutError):
                    pool.wait_all(timeout=0.01)
            finally:
                release.set()
            outcomes = pool.wait_all()

        assert outcomes == ["done"]
