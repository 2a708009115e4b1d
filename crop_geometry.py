"""
PHOTO EDIT KERNEL - Crop Geometry

Mapping between the on-screen crop rectangle (display coordinates) and the
source pixel rectangle, plus the handle-driven resize/move rules.

All functions are pure and clamp instead of raising.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from constants import Crop

Point = Tuple[float, float]


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle as (left, top, right, bottom)."""
    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_size(cls, left: float, top: float, width: float, height: float) -> 'Rect':
        return cls(left, top, left + width, top + height)

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center(self) -> Point:
        return ((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, point: Point) -> bool:
        """Half-open containment, matching pointer hit semantics."""
        x, y = point
        return self.left <= x < self.right and self.top <= y < self.bottom

    def contains_rect(self, other: 'Rect', tolerance: float = 1e-6) -> bool:
        return (other.left >= self.left - tolerance and other.top >= self.top - tolerance and
                other.right <= self.right + tolerance and other.bottom <= self.bottom + tolerance)

    def translate(self, dx: float, dy: float) -> 'Rect':
        return Rect(self.left + dx, self.top + dy, self.right + dx, self.bottom + dy)


EMPTY_RECT = Rect(0.0, 0.0, 0.0, 0.0)


class CropHandle(Enum):
    """What a drag gesture on the crop overlay manipulates."""
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_RIGHT = "bottom_right"
    MOVE = "move"
    NONE = "none"


# =============================================================================
# DISPLAY FIT
# =============================================================================

def fit_display(viewport_width: float, viewport_height: float,
                bitmap_width: int, bitmap_height: int) -> Tuple[float, Point]:
    """
    Scale and offset that fit a bitmap inside the viewport, centered.

    Returns:
        (scale, (dx, dy)); a zero-sized viewport or bitmap yields (1.0, (0, 0))
    """
    if viewport_width <= 0 or viewport_height <= 0 or bitmap_width <= 0 or bitmap_height <= 0:
        return 1.0, (0.0, 0.0)
    scale = min(viewport_width / bitmap_width, viewport_height / bitmap_height)
    dx = (viewport_width - bitmap_width * scale) / 2.0
    dy = (viewport_height - bitmap_height * scale) / 2.0
    return scale, (dx, dy)


def image_display_rect(viewport_width: float, viewport_height: float,
                       bitmap_width: int, bitmap_height: int) -> Rect:
    """Where the fitted bitmap lands inside the viewport."""
    if viewport_width <= 0 or viewport_height <= 0:
        return EMPTY_RECT
    scale, (dx, dy) = fit_display(viewport_width, viewport_height, bitmap_width, bitmap_height)
    return Rect.from_size(dx, dy, bitmap_width * scale, bitmap_height * scale)


# =============================================================================
# HANDLES
# =============================================================================

def hit_test(rect: Rect, point: Point, threshold: float = Crop.HANDLE_RADIUS) -> CropHandle:
    """
    Pick the handle a gesture starting at `point` should drive.

    The nearest corner within `threshold` wins; otherwise a point inside the
    rectangle moves it, and anything else is ignored.
    """
    x, y = point
    corners = (
        (CropHandle.TOP_LEFT, rect.left, rect.top),
        (CropHandle.TOP_RIGHT, rect.right, rect.top),
        (CropHandle.BOTTOM_LEFT, rect.left, rect.bottom),
        (CropHandle.BOTTOM_RIGHT, rect.right, rect.bottom),
    )
    handle, distance = min(
        ((h, math.hypot(x - cx, y - cy)) for h, cx, cy in corners),
        key=lambda item: item[1],
    )
    if distance < threshold:
        return handle
    if rect.contains(point):
        return CropHandle.MOVE
    return CropHandle.NONE


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _move_rect(rect: Rect, dx: float, dy: float, bounds: Rect) -> Rect:
    """Translate as a unit, keeping the size and staying inside bounds."""
    width, height = rect.width, rect.height
    left = _clamp(rect.left + dx, bounds.left, bounds.right - width)
    top = _clamp(rect.top + dy, bounds.top, bounds.bottom - height)
    return Rect(left, top, left + width, top + height)


def _resize_rect(rect: Rect, handle: CropHandle, dx: float, dy: float,
                 bounds: Rect, min_size: float) -> Rect:
    """Move the two edges adjacent to the dragged corner; opposite edges stay put."""
    left, top, right, bottom = rect.left, rect.top, rect.right, rect.bottom

    if handle in (CropHandle.TOP_LEFT, CropHandle.BOTTOM_LEFT):
        left = _clamp(left + dx, bounds.left, right - min_size)
    else:
        right = _clamp(right + dx, left + min_size, bounds.right)

    if handle in (CropHandle.TOP_LEFT, CropHandle.TOP_RIGHT):
        top = _clamp(top + dy, bounds.top, bottom - min_size)
    else:
        bottom = _clamp(bottom + dy, top + min_size, bounds.bottom)

    return Rect(left, top, right, bottom)


def drag_rect(rect: Rect, handle: CropHandle, dx: float, dy: float, bounds: Rect,
              aspect_ratio: Optional[float] = None,
              min_size: float = Crop.MIN_SIZE) -> Rect:
    """
    Apply one drag delta to the crop rectangle.

    Args:
        rect: Current crop rectangle (display space)
        handle: Handle chosen at gesture start
        dx, dy: Pointer delta since the previous update
        bounds: The image display rect the crop must stay inside
        aspect_ratio: width/height lock applied after corner resizes, or None
        min_size: Minimum crop width and height

    Returns:
        The updated rectangle (unchanged for CropHandle.NONE)
    """
    if handle == CropHandle.NONE:
        return rect
    if handle == CropHandle.MOVE:
        return _move_rect(rect, dx, dy, bounds)

    resized = _resize_rect(rect, handle, dx, dy, bounds, min_size)
    if aspect_ratio is not None:
        resized = fit_aspect_ratio(resized, bounds, aspect_ratio, min_size)
    return resized


# =============================================================================
# ASPECT RATIO
# =============================================================================

def fit_aspect_ratio(rect: Rect, bounds: Rect, ratio: float,
                     min_size: float = Crop.MIN_SIZE) -> Rect:
    """
    Reshape `rect` to width/height == ratio and keep it inside `bounds`.

    The width is kept and the height derived from it; if that is taller than
    the bounds, the height is capped and the width derived instead, and if
    the width then overflows it is capped again. A box whose shorter side
    ends up under `min_size` is grown, ratio kept, until it reaches it (the
    bounds still win when they are smaller than that). The new box is
    centered on the old center and finally shifted back inside bounds.
    """
    if ratio <= 0:
        raise ValueError(f"Aspect ratio must be positive, got {ratio}")

    w = rect.width
    h = w / ratio

    if h > bounds.height:
        h = bounds.height
        w = h * ratio
    if w > bounds.width:
        w = bounds.width
        h = w / ratio

    shorter = min(w, h)
    if 0 < shorter < min_size:
        grow = min_size / shorter
        w = min(w * grow, bounds.width)
        h = min(h * grow, bounds.height)

    cx, cy = rect.center
    left, top = cx - w / 2.0, cy - h / 2.0
    right, bottom = cx + w / 2.0, cy + h / 2.0

    if left < bounds.left:
        shift = bounds.left - left
        left += shift
        right += shift
    if top < bounds.top:
        shift = bounds.top - top
        top += shift
        bottom += shift
    if right > bounds.right:
        shift = right - bounds.right
        left -= shift
        right -= shift
    if bottom > bounds.bottom:
        shift = bottom - bounds.bottom
        top -= shift
        bottom -= shift

    return Rect(left, top, right, bottom)


# =============================================================================
# PIXEL MAPPING
# =============================================================================

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_pixel_rect(crop_rect: Rect, image_rect: Rect, bitmap_width: int) -> Tuple[int, int, int, int]:
    """
    Convert a display-space crop into a source pixel rectangle (x, y, w, h).

    The result is handed to processing.crop_image, which clamps anything
    rounding pushed past the bitmap edge.
    """
    if image_rect.width <= 0:
        return 0, 0, 0, 0
    pixel_scale = bitmap_width / image_rect.width
    x = _round_half_up((crop_rect.left - image_rect.left) * pixel_scale)
    y = _round_half_up((crop_rect.top - image_rect.top) * pixel_scale)
    w = _round_half_up(crop_rect.width * pixel_scale)
    h = _round_half_up(crop_rect.height * pixel_scale)
    return x, y, w, h


def to_display_rect(x: int, y: int, w: int, h: int, image_rect: Rect, bitmap_width: int) -> Rect:
    """Inverse of to_pixel_rect: place a source pixel rectangle on screen."""
    display_scale = image_rect.width / bitmap_width
    return Rect.from_size(
        image_rect.left + x * display_scale,
        image_rect.top + y * display_scale,
        w * display_scale,
        h * display_scale,
    )
