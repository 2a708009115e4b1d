"""
PHOTO EDIT KERNEL - Exporter

Flattens the current image and its text layers and hands the encoded JPEG
to a sink.
"""

import time
from typing import Iterable

import cv2

import compositor
from constants import Export
from errors import ExportError
from raster import RasterBuffer
from text_layers import TextLayer


def flatten(buffer: RasterBuffer, layers: Iterable[TextLayer]) -> RasterBuffer:
    """Copy of the buffer with every text layer drawn in insertion order."""
    return compositor.render_text_layers(buffer, layers)


def encode_jpeg(buffer: RasterBuffer, quality: int = Export.JPEG_QUALITY) -> bytes:
    """Encode as JPEG. Alpha is dropped, so transparent areas come out black.

    Raises:
        ExportError: if OpenCV cannot encode the image
    """
    try:
        ok, encoded = cv2.imencode('.jpg', buffer.to_bgr(), [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    except cv2.error as exc:
        raise ExportError(f"JPEG encoding failed: {exc}") from exc
    if not ok:
        raise ExportError("JPEG encoding failed")
    return encoded.tobytes()


def default_filename() -> str:
    """Timestamped export name, e.g. IMG_1760745600123.jpg."""
    return f"{Export.FILENAME_PREFIX}{int(time.time() * 1000)}{Export.FILE_EXTENSION}"


def export_image(buffer: RasterBuffer, layers: Iterable[TextLayer], sink, name: str = None):
    """
    Flatten, encode and store an image.

    Args:
        buffer: Image to export
        layers: Text layers to draw on top, bottom first
        sink: Object with write(data: bytes, name: str) returning a handle
        name: File name; defaults to a timestamped one

    Returns:
        Whatever the sink returned for the stored file

    Raises:
        ExportError: if there is no image, or flattening, encoding or the
            sink write fails
    """
    if buffer is None:
        raise ExportError("No image to export")

    try:
        flattened = flatten(buffer, layers)
    except (cv2.error, ValueError, MemoryError) as exc:
        raise ExportError(f"Could not draw text layers: {exc}") from exc

    data = encode_jpeg(flattened)

    try:
        handle = sink.write(data, name or default_filename())
    except OSError as exc:
        raise ExportError(f"Could not write export: {exc}") from exc

    print(f"[Exporter] Saved {flattened.width}x{flattened.height} ({len(data)} bytes) to {handle}")
    return handle
