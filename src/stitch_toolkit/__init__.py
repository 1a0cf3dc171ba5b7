"""Top-level package for the screenshot stitching toolkit.

Provides subpackages:
- stitch_toolkit.loading – decode submitted screenshots
- stitch_toolkit.layout – order/overlap validation and the compositor
- stitch_toolkit.compression – size guard, adaptive encoder, format negotiator
- stitch_toolkit.raster – raster capability interface (Pillow backend)

Entry point: ``stitch_screenshots()``.
"""


def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            for line in pyproject.read_text().splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.1.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    try:
        from importlib.metadata import PackageNotFoundError, version as pkg_version
        return pkg_version("stitch-toolkit")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

from .core.errors import (  # noqa: E402
    CompressionExhausted,
    FormatConversionError,
    LayoutError,
    LoadError,
    StitchError,
)
from .core.models import ScreenshotAsset, SourceImage  # noqa: E402
from .compression import CompressionConfig  # noqa: E402
from .controller import (  # noqa: E402
    StitchResult,
    StitchWorkerPool,
    stitch_screenshots,
    stitch_screenshots_async,
)

__all__: list[str] = [
    "__version__",
    "ScreenshotAsset",
    "SourceImage",
    "CompressionConfig",
    "StitchResult",
    "StitchWorkerPool",
    "stitch_screenshots",
    "stitch_screenshots_async",
    "StitchError",
    "LoadError",
    "LayoutError",
    "CompressionExhausted",
    "FormatConversionError",
]
