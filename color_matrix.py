"""
PHOTO EDIT KERNEL - Color Matrix Engine

Builds 4x5 affine color matrices (brightness/contrast, presets) and applies
them to RGBA rasters.
"""

import cv2
import numpy as np

import presets
from constants import Adjust
from raster import RasterBuffer


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(value)))


def brightness_contrast_matrix(brightness: float, contrast: float) -> np.ndarray:
    """
    Matrix for a brightness/contrast adjustment.

    Contrast scales each color channel about mid-gray (128 stays fixed),
    brightness is a uniform offset:

        scale     = 1 + contrast / 100
        translate = 128 * (1 - scale)
        C'        = C * scale + translate + brightness     (R, G, B)
        A'        = A

    Args:
        brightness: -100 to 100 (clamped)
        contrast: -50 to 150 (clamped)
    """
    brightness = _clamp(brightness, Adjust.BRIGHTNESS_MIN, Adjust.BRIGHTNESS_MAX)
    contrast = _clamp(contrast, Adjust.CONTRAST_MIN, Adjust.CONTRAST_MAX)

    scale = 1.0 + contrast / 100.0
    translate = 128.0 * (1.0 - scale)
    offset = translate + brightness

    return np.array([
        [scale, 0, 0, 0, offset],
        [0, scale, 0, 0, offset],
        [0, 0, scale, 0, offset],
        [0, 0, 0, 1, 0],
    ], dtype=np.float32)


def is_identity(matrix: np.ndarray) -> bool:
    return np.allclose(matrix, presets.IDENTITY_MATRIX, atol=1e-7)


def apply_color_matrix(buffer: RasterBuffer, matrix: np.ndarray) -> RasterBuffer:
    """
    Apply a 4x5 color matrix to every pixel.

    Results are rounded and saturated to 0-255. An identity matrix returns
    the input buffer itself.
    """
    matrix = np.asarray(matrix, dtype=np.float32)
    if matrix.shape != (4, 5):
        raise ValueError(f"Color matrix must be 4x5, got {matrix.shape}")
    if is_identity(matrix):
        return buffer
    return RasterBuffer.adopt(cv2.transform(buffer.pixels, matrix))


def apply_brightness_contrast(buffer: RasterBuffer, brightness: float, contrast: float) -> RasterBuffer:
    """Brightness/contrast adjustment; (0, 0) is pixel-identical to the input."""
    return apply_color_matrix(buffer, brightness_contrast_matrix(brightness, contrast))


def apply_filter(buffer: RasterBuffer, filter_key: str) -> RasterBuffer:
    """Apply a named filter preset from presets.PRESETS."""
    return apply_color_matrix(buffer, presets.get_preset(filter_key)['matrix'])
