"""
PHOTO EDIT KERNEL - Image Processor

Standalone job functions run on the background pool. Each takes the input
image plus a settings dict and returns a new RasterBuffer.
"""

from typing import Any, Callable, Dict

import color_matrix
import processing
from raster import RasterBuffer


def crop_job(img: RasterBuffer, settings: Dict[str, Any]) -> RasterBuffer:
    """Crop to settings x, y, w, h (source pixels, clamped)."""
    return processing.crop_image(img, settings['x'], settings['y'], settings['w'], settings['h'])


def rotate_job(img: RasterBuffer, settings: Dict[str, Any]) -> RasterBuffer:
    """Rotate clockwise by settings['degrees']."""
    return processing.rotate_image(img, settings.get('degrees', 90.0))


def flip_job(img: RasterBuffer, settings: Dict[str, Any]) -> RasterBuffer:
    return processing.flip_image(img, settings.get('horizontal', False), settings.get('vertical', False))


def brightness_contrast_job(img: RasterBuffer, settings: Dict[str, Any]) -> RasterBuffer:
    return color_matrix.apply_brightness_contrast(
        img, settings.get('brightness', 0.0), settings.get('contrast', 0.0))


def filter_job(img: RasterBuffer, settings: Dict[str, Any]) -> RasterBuffer:
    return color_matrix.apply_filter(img, settings.get('filter', 'original'))


# Map job types to their processing functions
JOB_FUNCTIONS: Dict[str, Callable[[RasterBuffer, Dict[str, Any]], RasterBuffer]] = {
    'crop': crop_job,
    'rotate': rotate_job,
    'flip': flip_job,
    'brightness_contrast': brightness_contrast_job,
    'filter': filter_job,
}


def run_job(job_type: str, img: RasterBuffer, settings: Dict[str, Any]) -> RasterBuffer:
    """Run a transform job by type name.

    Raises:
        ValueError: if job_type is unknown
    """
    func = JOB_FUNCTIONS.get(job_type)
    if func is None:
        raise ValueError(f"Unknown job type: {job_type}. Valid types: {list(JOB_FUNCTIONS.keys())}")
    return func(img, settings)
