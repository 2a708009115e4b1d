"""
PHOTO EDIT KERNEL - Shared State

The single-owner "current image" slot and the interactive crop state.
"""

import threading
from typing import Optional, Tuple

from PySide6.QtCore import QObject, Signal

import crop_geometry
from constants import Crop
from crop_geometry import CropHandle, Rect, EMPTY_RECT, Point
from raster import RasterBuffer


class EditorState(QObject):
    """Holds the image currently being edited.

    The slot is replaced atomically: readers always get either the previous
    or the next complete RasterBuffer. Buffers are immutable, so handing out
    the reference is safe.
    """

    imageChanged = Signal(object)  # RasterBuffer or None

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._image: Optional[RasterBuffer] = None

    @property
    def image(self) -> Optional[RasterBuffer]:
        with self._lock:
            return self._image

    def set_image(self, image: Optional[RasterBuffer]):
        """Replace the current image."""
        with self._lock:
            self._image = image
        self.imageChanged.emit(image)


class CropState(QObject):
    """Interactive crop rectangle over a fitted bitmap.

    Coordinates are display units. The crop always stays inside the image
    display rect and never gets smaller than Crop.MIN_SIZE on either side.
    """

    cropChanged = Signal(object)            # Rect
    aspectRatioChanged = Signal(str)        # Aspect ratio key

    ASPECT_RATIOS = Crop.ASPECT_RATIOS

    def __init__(self):
        super().__init__()
        self._viewport = (0.0, 0.0)
        self._bitmap_size = (0, 0)
        self._image_rect = EMPTY_RECT
        self._crop_rect = EMPTY_RECT
        self._active_handle = CropHandle.NONE
        self._aspect_ratio = 'free'

    @property
    def image_rect(self) -> Rect:
        return self._image_rect

    @property
    def crop_rect(self) -> Rect:
        return self._crop_rect

    @property
    def active_handle(self) -> CropHandle:
        return self._active_handle

    @property
    def fit_scale(self) -> float:
        """Display units per source pixel."""
        scale, _ = crop_geometry.fit_display(*self._viewport, *self._bitmap_size)
        return scale

    @property
    def aspect_ratio(self) -> str:
        return self._aspect_ratio

    def get_aspect_ratio_value(self) -> Optional[float]:
        """Get the current aspect ratio as a float (width/height), or None if free."""
        ratio_data = self.ASPECT_RATIOS.get(self._aspect_ratio)
        if ratio_data and ratio_data[0] is not None:
            return ratio_data[0] / ratio_data[1]
        return None

    def set_viewport(self, width: float, height: float):
        """Viewport resized; the crop resets to the whole image."""
        self._viewport = (float(width), float(height))
        self.reset()

    def set_bitmap_size(self, width: int, height: int):
        """Bitmap replaced; the crop resets to the whole image."""
        self._bitmap_size = (int(width), int(height))
        self.reset()

    def reset(self):
        """Recompute the image display rect and select all of it."""
        if self._bitmap_size[0] > 0 and self._bitmap_size[1] > 0:
            self._image_rect = crop_geometry.image_display_rect(*self._viewport, *self._bitmap_size)
        else:
            self._image_rect = EMPTY_RECT
        self._active_handle = CropHandle.NONE
        self._set_crop(self._image_rect)

    def set_aspect_ratio(self, key: str):
        """Select an aspect ratio preset and reshape the crop to it right away."""
        if key not in self.ASPECT_RATIOS:
            raise KeyError(f"Unknown aspect ratio: {key}. Valid ratios: {list(self.ASPECT_RATIOS)}")
        changed = key != self._aspect_ratio
        self._aspect_ratio = key
        ratio = self.get_aspect_ratio_value()
        if ratio is not None and not self._crop_rect.is_empty:
            self._set_crop(crop_geometry.fit_aspect_ratio(self._crop_rect, self._image_rect, ratio))
        if changed:
            self.aspectRatioChanged.emit(key)

    def begin_drag(self, point: Point) -> CropHandle:
        """Start a gesture; the handle is chosen once and kept until end_drag()."""
        if self._crop_rect.is_empty:
            self._active_handle = CropHandle.NONE
        else:
            self._active_handle = crop_geometry.hit_test(self._crop_rect, point)
        return self._active_handle

    def drag_by(self, dx: float, dy: float) -> Rect:
        """Apply one drag delta with the handle picked in begin_drag()."""
        if self._active_handle == CropHandle.NONE:
            return self._crop_rect
        updated = crop_geometry.drag_rect(
            self._crop_rect, self._active_handle, dx, dy,
            self._image_rect, self.get_aspect_ratio_value(),
        )
        self._set_crop(updated)
        return updated

    def end_drag(self):
        self._active_handle = CropHandle.NONE

    def pixel_rect(self) -> Tuple[int, int, int, int]:
        """The crop as (x, y, w, h) in source pixels."""
        return crop_geometry.to_pixel_rect(self._crop_rect, self._image_rect, self._bitmap_size[0])

    def set_pixel_rect(self, x: int, y: int, w: int, h: int):
        """Place the crop from a source pixel rectangle (clamped to the image)."""
        if self._image_rect.is_empty:
            return
        rect = crop_geometry.to_display_rect(x, y, w, h, self._image_rect, self._bitmap_size[0])
        bounds = self._image_rect
        left = max(bounds.left, min(rect.left, bounds.right - Crop.MIN_SIZE))
        top = max(bounds.top, min(rect.top, bounds.bottom - Crop.MIN_SIZE))
        right = min(bounds.right, max(rect.right, left + Crop.MIN_SIZE))
        bottom = min(bounds.bottom, max(rect.bottom, top + Crop.MIN_SIZE))
        self._set_crop(Rect(left, top, right, bottom))

    def _set_crop(self, rect: Rect):
        if rect != self._crop_rect:
            self._crop_rect = rect
            self.cropChanged.emit(rect)
