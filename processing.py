"""
PHOTO EDIT KERNEL - Image Processing Core

Decoding with power-of-two downsampling, and the geometric transforms
(crop, rotate, flip). Every function here is pure: the input RasterBuffer is
never modified and a new buffer is returned.
"""

import io
import math
import cv2
import numpy as np
from pathlib import Path
from typing import Tuple, Union, BinaryIO

from PIL import Image, UnidentifiedImageError

from constants import Decode
from errors import DecodeError
from raster import RasterBuffer

ImageSource = Union[str, Path, BinaryIO]

# OpenCV can subsample JPEG/PNG while decoding, but only by these factors
_REDUCED_COLOR_FLAGS = {
    2: cv2.IMREAD_REDUCED_COLOR_2,
    4: cv2.IMREAD_REDUCED_COLOR_4,
    8: cv2.IMREAD_REDUCED_COLOR_8,
}

# Pillow modes with an alpha channel
_ALPHA_MODES = {'RGBA', 'LA', 'PA', 'RGBa', 'La'}

# Clockwise quarter turns
_QUARTER_TURNS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


# =============================================================================
# DECODING
# =============================================================================

def compute_sample_size(width: int, height: int,
                        req_width: int = Decode.MAX_DIMENSION,
                        req_height: int = Decode.MAX_DIMENSION) -> int:
    """
    Largest power-of-two subsampling factor that keeps both halved
    dimensions at or above the requested size.

    A 2048x2048 request keeps a 4000x3000 photo at full size, decodes a
    4096x4096 source at 1/2 and an 8192x8192 source at 1/4.
    """
    sample = 1
    if height > req_height or width > req_width:
        half_height = height // 2
        half_width = width // 2
        while (half_height // sample) >= req_height and (half_width // sample) >= req_width:
            sample *= 2
    return sample


def _probe_header(data: bytes) -> Tuple[Tuple[int, int], bool]:
    """(width, height) and whether the source carries transparency."""
    try:
        with Image.open(io.BytesIO(data)) as probe:
            has_alpha = probe.mode in _ALPHA_MODES or 'transparency' in probe.info
            return probe.size, has_alpha
    except (UnidentifiedImageError, OSError) as exc:
        raise DecodeError(f"Source is not a recognizable image: {exc}") from exc


def read_image_bounds(data: bytes) -> Tuple[int, int]:
    """Read (width, height) from the image header without decoding pixels."""
    size, _ = _probe_header(data)
    return size


def decode_image(data: bytes, max_dimension: int = Decode.MAX_DIMENSION) -> RasterBuffer:
    """
    Decode encoded image bytes into an RGBA RasterBuffer bounded by max_dimension.

    The header is probed first so the subsampling factor is known before any
    pixel memory is allocated. Opaque sources are then decoded directly at
    the reduced size. The reduced decoders only produce 3-channel color, so
    sources with transparency are decoded in full and area-resized instead.
    EXIF orientation is never applied: pixels keep their stored order on
    every path, matching read_image_bounds.

    Raises:
        DecodeError: if the bytes are empty, unreadable, or not a valid raster
    """
    if not data:
        raise DecodeError("Image source is empty")

    (width, height), has_alpha = _probe_header(data)
    sample = compute_sample_size(width, height, max_dimension, max_dimension)

    if sample > 1 and not has_alpha:
        decoded_at = min(sample, 8)
        flags = _REDUCED_COLOR_FLAGS[decoded_at] | cv2.IMREAD_IGNORE_ORIENTATION
    else:
        decoded_at = 1
        flags = cv2.IMREAD_UNCHANGED

    encoded = np.frombuffer(data, dtype=np.uint8)
    try:
        img = cv2.imdecode(encoded, flags)
    except cv2.error as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc
    if img is None:
        raise DecodeError(f"Could not decode image ({width}x{height})")

    # 16-bit sources (PNG/TIFF) are reduced to 8 bits per channel
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    elif img.dtype != np.uint8:
        raise DecodeError(f"Unsupported pixel depth: {img.dtype}")

    # Finish whatever the decoder could not reduce with an area resize
    remaining = sample // decoded_at
    if remaining > 1:
        h, w = img.shape[:2]
        img = cv2.resize(img, (max(1, w // remaining), max(1, h // remaining)),
                         interpolation=cv2.INTER_AREA)

    return RasterBuffer.from_bgr(img)


def load_image(source: ImageSource, max_dimension: int = Decode.MAX_DIMENSION) -> RasterBuffer:
    """Load an image from a path or a readable binary stream.

    Raises:
        DecodeError: if the source cannot be read or decoded
    """
    if hasattr(source, 'read'):
        try:
            data = source.read()
        except OSError as exc:
            raise DecodeError(f"Could not read image stream: {exc}") from exc
    else:
        path = Path(source)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise DecodeError(f"Could not load image: {path}") from exc
    return decode_image(data, max_dimension)


# =============================================================================
# GEOMETRY
# =============================================================================

def crop_image(buffer: RasterBuffer, x: int, y: int, w: int, h: int) -> RasterBuffer:
    """
    Crop to the pixel rectangle (x, y, w, h).

    Out-of-range values are clamped, never rejected: x and y are pulled into
    the image, w and h shrink so the rectangle stays inside. An empty result
    leaves the image unchanged.
    """
    x = min(max(int(x), 0), buffer.width - 1)
    y = min(max(int(y), 0), buffer.height - 1)
    w = min(int(w), buffer.width - x)
    h = min(int(h), buffer.height - y)

    if w <= 0 or h <= 0:
        return buffer
    if (x, y, w, h) == (0, 0, buffer.width, buffer.height):
        return buffer

    return RasterBuffer.adopt(buffer.pixels[y:y + h, x:x + w].copy())


def rotated_bounds(width: int, height: int, degrees: float) -> Tuple[int, int]:
    """Size of the bounding box of a width x height image rotated by degrees."""
    rad = math.radians(degrees)
    cos_a = abs(math.cos(rad))
    sin_a = abs(math.sin(rad))
    new_w = int(round(width * cos_a + height * sin_a))
    new_h = int(round(width * sin_a + height * cos_a))
    return max(1, new_w), max(1, new_h)


def rotate_image(buffer: RasterBuffer, degrees: float) -> RasterBuffer:
    """
    Rotate clockwise by degrees about the image center.

    Quarter turns are exact pixel permutations (width and height swap for
    90/270). Any other angle is resampled bilinearly into the rotated
    bounding box, with uncovered corners left fully transparent.

    Raises:
        MemoryError: if the rotated bounding box cannot be allocated
    """
    degrees = float(degrees) % 360.0
    nearest_quarter = round(degrees / 90.0) * 90 % 360
    if abs(degrees - nearest_quarter) < 1e-9 or abs(degrees - 360.0) < 1e-9:
        if nearest_quarter == 0:
            return buffer
        return RasterBuffer.adopt(cv2.rotate(buffer.pixels, _QUARTER_TURNS[nearest_quarter]))

    from services.memory_manager import MemoryManager

    w, h = buffer.width, buffer.height
    new_w, new_h = rotated_bounds(w, h, degrees)
    if not MemoryManager().can_process_image(new_w, new_h):
        raise MemoryError(f"Not enough memory to rotate into {new_w}x{new_h}")

    # OpenCV treats positive angles as counter-clockwise
    center = ((w - 1) / 2.0, (h - 1) / 2.0)
    matrix = cv2.getRotationMatrix2D(center, -degrees, 1.0)
    matrix[0, 2] += (new_w - 1) / 2.0 - center[0]
    matrix[1, 2] += (new_h - 1) / 2.0 - center[1]

    rotated = cv2.warpAffine(
        buffer.pixels, matrix, (new_w, new_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )
    return RasterBuffer.adopt(rotated)


def flip_image(buffer: RasterBuffer, horizontal: bool, vertical: bool) -> RasterBuffer:
    """Mirror columns (horizontal) and/or rows (vertical)."""
    if horizontal and vertical:
        code = -1
    elif horizontal:
        code = 1
    elif vertical:
        code = 0
    else:
        return buffer
    return RasterBuffer.adopt(cv2.flip(buffer.pixels, code))
