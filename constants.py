"""
PHOTO EDIT KERNEL - Constants

Centralized limits, defaults, and tuning values.
Import from here instead of hardcoding values throughout the codebase.

Usage:
    from constants import Crop, Adjust

    if rect.width < Crop.MIN_SIZE:
        ...
"""

from pathlib import Path


class Decode:
    """Decoder/downsampler limits."""

    # Largest requested edge; sources are subsampled by powers of two toward this
    MAX_DIMENSION = 2048


class Crop:
    """Interactive crop rectangle tuning (display units)."""

    MIN_SIZE = 50.0         # Minimum crop width/height
    HANDLE_RADIUS = 100.0   # Corner hit-test radius

    # Aspect ratio presets: key -> (width_ratio, height_ratio, display_name)
    ASPECT_RATIOS = {
        'free': (None, None, 'Free'),
        '1:1': (1, 1, '1:1'),
        '4:3': (4, 3, '4:3'),
        '16:9': (16, 9, '16:9'),
    }


class Adjust:
    """Brightness/contrast ranges and preview debounce."""

    BRIGHTNESS_MIN = -100.0
    BRIGHTNESS_MAX = 100.0
    CONTRAST_MIN = -50.0
    CONTRAST_MAX = 150.0

    # Quiet period before a preview is recomputed
    DEBOUNCE_MS = 300


class Text:
    """Text overlay defaults and limits."""

    FONT_SIZE_MIN = 10.0
    FONT_SIZE_MAX = 500.0

    DEFAULT_TEXT = "Text"
    DEFAULT_FONT_SIZE = 60.0
    DEFAULT_COLOR = (255, 255, 255, 255)  # RGBA


class Export:
    """Export encoding and destination."""

    JPEG_QUALITY = 100
    FILE_EXTENSION = ".jpg"
    FILENAME_PREFIX = "IMG_"
    OUTPUT_DIR = Path.home() / "Pictures" / "photo-edit-kernel"
