"""
Command-line front end.

Stacks image files in argument order and writes the compressed
composite:

    stitch-screenshots top.png middle.png bottom.png --overlap 20 --overlap 15 -o page.jpg
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from stitch_toolkit.compression import MIB, CompressionConfig
from stitch_toolkit.controller import stitch_screenshots
from stitch_toolkit.core.errors import (
    CompressionExhausted,
    FormatConversionError,
    LayoutError,
    LoadError,
)
from stitch_toolkit.core.models import ScreenshotAsset

logger = logging.getLogger("stitch_toolkit.cli")

EXIT_OK = 0
EXIT_INPUT_ERROR = 2
EXIT_EXHAUSTED = 3
EXIT_FORMAT_ERROR = 4

# File suffixes per output mime type (first is used when correcting)
OUTPUT_SUFFIXES = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
}


def output_path(requested: Path, mime_type: str) -> Path:
    """
    Path the result is written to: ``requested``, with its suffix replaced
    when it does not match the encoding the pipeline chose.

    Example:
        >>> output_path(Path("page.png"), "image/jpeg")
        PosixPath('page.jpg')
    """
    suffixes = OUTPUT_SUFFIXES.get(mime_type)
    if suffixes is None or requested.suffix.lower() in suffixes:
        return requested
    corrected = requested.with_suffix(suffixes[0])
    logger.warning(f"Result is {mime_type}; writing {corrected} instead of {requested}")
    return corrected


def build_parser() -> argparse.ArgumentParser:
    defaults = CompressionConfig()
    parser = argparse.ArgumentParser(
        prog="stitch-screenshots",
        description="Stitch overlapping screenshots into one size-limited image",
    )
    parser.add_argument("images", nargs="+", type=Path, help="Screenshots, top to bottom")
    parser.add_argument("-o", "--output", type=Path, required=True, help="Output file")
    parser.add_argument(
        "--overlap",
        action="append",
        type=float,
        default=[],
        metavar="PCT",
        help="Overlap percentage between consecutive images (repeat per pair; missing pairs use 0)",
    )
    parser.add_argument(
        "--max-size-mb",
        type=float,
        default=defaults.max_size_bytes / MIB,
        help="Target byte ceiling in MiB (default: %(default)s)",
    )
    parser.add_argument("--max-width", type=int, default=defaults.max_width)
    parser.add_argument("--max-height", type=int, default=defaults.max_height)
    parser.add_argument("--quality", type=float, default=defaults.quality, help="Starting quality in (0, 1]")
    parser.add_argument("--preserve-aspect", action="store_true", help="Scale both axes together")
    parser.add_argument("--timings", action="store_true", help="Print per-phase timings")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    pairs = len(args.images) - 1
    if len(args.overlap) > pairs:
        parser.error(f"{len(args.overlap)} --overlap values given for {pairs} image pair(s)")
    overlaps = args.overlap + [0.0] * (pairs - len(args.overlap))

    max_size_bytes = int(args.max_size_mb * MIB)
    defaults = CompressionConfig()
    try:
        config = CompressionConfig(
            max_width=args.max_width,
            max_height=args.max_height,
            quality=args.quality,
            max_size_bytes=max_size_bytes,
            hard_ceiling_bytes=max(defaults.hard_ceiling_bytes, max_size_bytes),
            preserve_aspect_ratio=args.preserve_aspect,
        )
    except ValueError as e:
        parser.error(str(e))

    assets = [
        ScreenshotAsset(
            id=path.name,
            data=path,
            order=index,
            overlap_with_next=overlaps[index] if index < pairs else 0.0,
        )
        for index, path in enumerate(args.images)
    ]

    try:
        result = stitch_screenshots(assets, config)
    except (LayoutError, LoadError) as e:
        logger.error(f"Error: {e}")
        return EXIT_INPUT_ERROR
    except CompressionExhausted as e:
        logger.error(f"Error: {e}. Try fewer or smaller screenshots.")
        return EXIT_EXHAUSTED
    except FormatConversionError as e:
        logger.error(f"Error: {e}")
        return EXIT_FORMAT_ERROR

    output = output_path(args.output, result.mime_type)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.data)

    logger.info(
        f"Wrote {output} ({result.mime_type}, {result.size_bytes // 1024}KB, "
        f"{result.attempts_used} attempt(s))"
    )
    if args.timings:
        print(result.timings.summary())
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
