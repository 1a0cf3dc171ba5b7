"""
Tests for the compositor.

Test Coverage:
- compute_layout height formula and placements
- Out-of-order input is stacked by order
- Narrower images are centred; later images overwrite overlap bands
- Single image short-circuit returns an opaque identical copy
- Composite is always opaque RGB
- Overlap overrides, negative placements and source release
"""

import logging

import numpy as np
import pytest
from PIL import Image

from stitch_toolkit.core.errors import LayoutError
from stitch_toolkit.core.models import ScreenshotAsset, SourceImage
from stitch_toolkit.layout import compute_layout, stitch
from stitch_toolkit.loading import DecodedImage, load
from stitch_toolkit.raster import PillowSurface

RED = (255, 0, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


@pytest.fixture
def decoded():
    """Factory for in-memory DecodedImage instances."""
    def _make(width, height, order, overlap=0.0, color=RED, mode="RGB"):
        return DecodedImage(
            surface=PillowSurface(Image.new(mode, (width, height), color)),
            order=order,
            overlap_with_next=overlap,
        )
    return _make


class TestComputeLayout:
    """Tests for the pure layout fold."""

    def test_compute_layout_when_three_images_then_height_matches_formula(self):
        """800 + (800 - 160) + (600 - 60) = 1980."""
        plan = compute_layout([
            SourceImage(0, 1000, 800, 20),
            SourceImage(1, 1000, 800, 10),
            SourceImage(2, 1000, 600),
        ])

        assert plan.width == 1000
        assert plan.height == 1980
        assert [p.y for p in plan.placements] == [0, 640, 1380]
        assert [p.overlap_px for p in plan.placements] == [0, 160, 60]

    def test_compute_layout_when_zero_overlaps_then_heights_sum(self):
        plan = compute_layout([SourceImage(0, 50, 30), SourceImage(1, 50, 70)])
        assert plan.height == 100

    def test_compute_layout_when_widths_differ_then_centres_narrow_images(self):
        plan = compute_layout([SourceImage(0, 101, 10), SourceImage(1, 50, 10)])

        assert plan.width == 101
        assert plan.placements[0].x == 0
        assert plan.placements[1].x == 25

    def test_compute_layout_when_overlap_uses_later_image_height(self):
        """The step back is a fraction of the later image, not the earlier one."""
        plan = compute_layout([SourceImage(0, 10, 1000, 50), SourceImage(1, 10, 100)])
        assert plan.placements[1].y == 950
        assert plan.height == 1050

    def test_compute_layout_when_overlap_exceeds_content_above_then_negative_y(self):
        plan = compute_layout([SourceImage(0, 10, 10, 90), SourceImage(1, 10, 100)])

        assert plan.placements[1].y == -80
        assert plan.height == 20


class TestStitch:
    """Tests for stitch()."""

    def test_stitch_when_out_of_order_then_stacks_by_order(self, decoded):
        """Given orders 2, 0, 1 the composite is 1200x2215."""
        images = [
            decoded(1200, 700, order=2),
            decoded(1200, 900, order=0, overlap=20),
            decoded(1200, 900, order=1, overlap=15),
        ]

        composite = stitch(images)

        assert (composite.width, composite.height) == (1200, 2215)
        assert [p.order for p in composite.placements] == [0, 1, 2]
        assert [p.y for p in composite.placements] == [0, 720, 1515]

    def test_stitch_when_no_overlap_then_concatenates(self, decoded):
        composite = stitch([
            decoded(50, 40, order=0, color=RED),
            decoded(50, 60, order=1, color=BLUE),
        ])
        image = composite.surface.image

        assert composite.height == 100
        assert image.getpixel((25, 39)) == RED
        assert image.getpixel((25, 40)) == BLUE

    def test_stitch_when_overlap_then_later_image_overwrites_band(self, decoded):
        composite = stitch([
            decoded(100, 100, order=0, overlap=50, color=RED),
            decoded(100, 100, order=1, color=BLUE),
        ])
        image = composite.surface.image

        assert composite.height == 150
        assert image.getpixel((50, 49)) == RED
        assert image.getpixel((50, 50)) == BLUE
        assert image.getpixel((50, 149)) == BLUE

    def test_stitch_when_narrower_image_then_centred_on_background(self, decoded):
        composite = stitch([
            decoded(100, 10, order=0, color=RED),
            decoded(50, 10, order=1, color=BLUE),
        ])
        image = composite.surface.image

        assert image.getpixel((10, 15)) == WHITE
        assert image.getpixel((25, 15)) == BLUE
        assert image.getpixel((74, 15)) == BLUE
        assert image.getpixel((75, 15)) == WHITE

    def test_stitch_when_single_image_then_identical_opaque_copy(self, half_transparent_png):
        image = load(half_transparent_png)
        expected = np.zeros((30, 40, 3), dtype=np.uint8)
        expected[:, :20] = RED
        expected[:, 20:] = WHITE

        composite = stitch([image])
        pixels = np.asarray(composite.surface.image)

        assert composite.surface.mode == "RGB"
        assert (composite.width, composite.height) == (40, 30)
        assert np.array_equal(pixels, expected)

    def test_stitch_when_single_16_bit_grey_image_then_tones_preserved(self, grey16_png):
        composite = stitch([load(grey16_png)])
        pixels = np.asarray(composite.surface.image)

        assert (composite.width, composite.height) == (12, 10)
        assert (pixels == 156).all()

    def test_stitch_when_16_bit_grey_among_sources_then_tones_preserved(self, decoded, grey16_png):
        grey = load(ScreenshotAsset("grey", grey16_png, order=1))
        composite = stitch([decoded(12, 10, order=0, color=RED), grey])

        assert composite.surface.image.getpixel((6, 15)) == (156, 156, 156)

    def test_stitch_when_transparent_sources_then_composite_opaque(self, decoded):
        composite = stitch([
            decoded(20, 20, order=0, color=(0, 255, 0, 0), mode="RGBA"),
            decoded(20, 20, order=1, color=(0, 0, 255, 128), mode="RGBA"),
        ])

        assert composite.surface.mode == "RGB"
        assert composite.surface.has_alpha is False
        assert composite.surface.image.getpixel((10, 5)) == WHITE

    def test_stitch_when_overlaps_given_then_override_image_values(self, decoded):
        images = [
            decoded(10, 100, order=0, overlap=0),
            decoded(10, 100, order=1, overlap=0),
        ]
        composite = stitch(images, overlaps=[25])
        assert composite.height == 175

    def test_stitch_when_overlap_count_wrong_then_raises(self, decoded):
        images = [decoded(10, 10, order=i) for i in range(3)]
        with pytest.raises(LayoutError, match="Expected 2 overlap values"):
            stitch(images, overlaps=[10])

    def test_stitch_when_override_out_of_range_then_raises(self, decoded):
        images = [decoded(10, 10, order=0), decoded(10, 10, order=1)]
        with pytest.raises(LayoutError):
            stitch(images, overlaps=[100])

    def test_stitch_when_empty_then_raises(self):
        with pytest.raises(LayoutError, match="No screenshots"):
            stitch([])

    def test_stitch_when_negative_placement_then_warns_and_clips(self, decoded, caplog):
        images = [
            decoded(10, 10, order=0, overlap=90, color=RED),
            decoded(10, 100, order=1, color=BLUE),
        ]
        with caplog.at_level(logging.WARNING):
            composite = stitch(images)

        assert composite.height == 20
        assert composite.surface.image.getpixel((5, 0)) == BLUE
        assert "clipped" in caplog.text

    def test_stitch_when_release_sources_then_sources_released(self, decoded):
        images = [decoded(10, 10, order=0), decoded(10, 10, order=1)]

        composite = stitch(images, release_sources=True)

        assert composite.height == 20
        for image in images:
            with pytest.raises(ValueError, match="released"):
                image.width
