"""
PHOTO EDIT KERNEL - Raster Buffer

Immutable 8-bit RGBA pixel store shared by every transform.
"""

import cv2
import numpy as np
from typing import Tuple


class RasterBuffer:
    """Owned, read-only RGBA pixel memory plus dimensions.

    Pixels are stored as a C-contiguous uint8 array of shape (height, width, 4)
    in RGBA order. The array is flagged read-only, so a buffer can be handed to
    any number of readers; transforms always allocate a new buffer.

    OpenCV works in BGR(A), so conversions happen only at the boundary via
    from_bgr() / to_bgr().
    """

    CHANNELS = 4

    __slots__ = ('_pixels',)

    def __init__(self, pixels: np.ndarray):
        """Wrap a copy of an RGBA uint8 array of shape (h, w, 4)."""
        self._pixels = self._validate(np.array(pixels, dtype=np.uint8, order='C', copy=True))
        self._pixels.flags.writeable = False

    @classmethod
    def adopt(cls, pixels: np.ndarray) -> 'RasterBuffer':
        """Take ownership of a freshly allocated array without copying.

        Callers must not keep a writable reference to `pixels` afterwards.
        """
        buf = cls.__new__(cls)
        arr = pixels if pixels.flags.c_contiguous else np.ascontiguousarray(pixels)
        buf._pixels = cls._validate(arr)
        buf._pixels.flags.writeable = False
        return buf

    @classmethod
    def blank(cls, width: int, height: int,
              color: Tuple[int, int, int, int] = (0, 0, 0, 0)) -> 'RasterBuffer':
        """Create a buffer filled with a single RGBA color."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid raster size: {width}x{height}")
        arr = np.empty((height, width, cls.CHANNELS), dtype=np.uint8)
        arr[:, :] = color
        return cls.adopt(arr)

    @classmethod
    def from_bgr(cls, img: np.ndarray) -> 'RasterBuffer':
        """Convert an OpenCV image (gray, BGR or BGRA, uint8) to a buffer."""
        if img.dtype != np.uint8:
            raise ValueError(f"Expected uint8 image, got {img.dtype}")
        if img.ndim == 2:
            rgba = cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
        elif img.shape[2] == 3:
            rgba = cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
        elif img.shape[2] == 4:
            rgba = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
        else:
            raise ValueError(f"Unsupported channel count: {img.shape[2]}")
        return cls.adopt(rgba)

    @staticmethod
    def _validate(arr: np.ndarray) -> np.ndarray:
        if arr.ndim != 3 or arr.shape[2] != RasterBuffer.CHANNELS:
            raise ValueError(f"Expected (h, w, 4) RGBA array, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {arr.dtype}")
        if arr.shape[0] == 0 or arr.shape[1] == 0:
            raise ValueError("Raster must not be empty")
        return arr

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        return self.width, self.height

    @property
    def pixels(self) -> np.ndarray:
        """Read-only RGBA view of the pixel store."""
        return self._pixels

    @property
    def nbytes(self) -> int:
        return self._pixels.nbytes

    def to_array(self) -> np.ndarray:
        """Writable RGBA copy of the pixels."""
        return self._pixels.copy()

    def to_bgr(self) -> np.ndarray:
        """BGR copy (alpha dropped) for OpenCV encoding."""
        return cv2.cvtColor(self._pixels, cv2.COLOR_RGBA2BGR)

    def __eq__(self, other):
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return self._pixels.shape == other._pixels.shape and np.array_equal(self._pixels, other._pixels)

    __hash__ = None

    def __repr__(self):
        return f"RasterBuffer({self.width}x{self.height})"
