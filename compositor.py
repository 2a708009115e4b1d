"""
PHOTO EDIT KERNEL - Text Compositor

Rasterizes text layers onto an RGBA image with OpenCV's Hershey fonts.
"""

from typing import Iterable, List, Tuple

import cv2
import numpy as np

from raster import RasterBuffer
from text_layers import FontFamily, TextLayer

# Font family -> Hershey face
_FONT_FACES = {
    FontFamily.DEFAULT: cv2.FONT_HERSHEY_SIMPLEX,
    FontFamily.SERIF: cv2.FONT_HERSHEY_COMPLEX,
    FontFamily.SANS: cv2.FONT_HERSHEY_DUPLEX,
    FontFamily.MONO: cv2.FONT_HERSHEY_PLAIN,
    FontFamily.CURSIVE: cv2.FONT_HERSHEY_SCRIPT_SIMPLEX,
}

# Blank margin around the rendered glyphs so antialiased edges survive rotation
_PAD = 4
_LINE_SPACING = 0.2


def resolve_font(family: FontFamily) -> int:
    """Concrete OpenCV font face for a font family."""
    return _FONT_FACES.get(family, cv2.FONT_HERSHEY_SIMPLEX)


def _stroke_thickness(font_size: float) -> int:
    return max(1, int(round(font_size / 20.0)))


def _render_text_mask(layer: TextLayer) -> Tuple[np.ndarray, Tuple[float, float]]:
    """
    Draw the layer's text as an 8-bit coverage mask.

    Each line is centered horizontally in the block; the block spans
    ascent + descent of every line. Returns the mask and the point in it
    that should land on the layer position.
    """
    face = resolve_font(layer.font_family)
    thickness = _stroke_thickness(layer.font_size)
    font_scale = cv2.getFontScaleFromHeight(face, int(round(layer.font_size)), thickness)

    lines = layer.text.split('\n')
    metrics: List[Tuple[int, int, int]] = []
    for line in lines:
        (w, ascent), descent = cv2.getTextSize(line or ' ', face, font_scale, thickness)
        metrics.append((w, ascent, descent + thickness))

    gap = int(round(layer.font_size * _LINE_SPACING))
    block_w = max(w for w, _, _ in metrics)
    block_h = sum(a + d for _, a, d in metrics) + gap * (len(lines) - 1)

    mask = np.zeros((block_h + 2 * _PAD, block_w + 2 * _PAD), dtype=np.uint8)
    y = _PAD
    for line, (w, ascent, descent) in zip(lines, metrics):
        x = _PAD + (block_w - w) // 2
        if line:
            cv2.putText(mask, line, (x, y + ascent), face, font_scale, 255, thickness, cv2.LINE_AA)
        y += ascent + descent + gap

    anchor = (_PAD + block_w / 2.0, _PAD + block_h / 2.0)
    return mask, anchor


def _placement(anchor: Tuple[float, float], layer: TextLayer) -> np.ndarray:
    """Affine map from mask coordinates to image coordinates."""
    # OpenCV angles are counter-clockwise; layer rotation is clockwise on screen
    matrix = cv2.getRotationMatrix2D(anchor, -layer.rotation, layer.scale)
    matrix[0, 2] += layer.position[0] - anchor[0]
    matrix[1, 2] += layer.position[1] - anchor[1]
    return matrix


def draw_text_layer(canvas: np.ndarray, layer: TextLayer):
    """Draw one layer onto a writable RGBA array in place (source-over)."""
    if not layer.text.strip() or layer.alpha <= 0:
        return

    mask, anchor = _render_text_mask(layer)
    matrix = _placement(anchor, layer)

    # Only warp into the region the rotated mask covers
    mh, mw = mask.shape
    corners = np.array([[0, 0, 1], [mw, 0, 1], [0, mh, 1], [mw, mh, 1]], dtype=np.float64)
    mapped = corners @ matrix.T
    height, width = canvas.shape[:2]
    x0 = max(0, int(np.floor(mapped[:, 0].min())))
    y0 = max(0, int(np.floor(mapped[:, 1].min())))
    x1 = min(width, int(np.ceil(mapped[:, 0].max())) + 1)
    y1 = min(height, int(np.ceil(mapped[:, 1].max())) + 1)
    if x1 <= x0 or y1 <= y0:
        return

    matrix[0, 2] -= x0
    matrix[1, 2] -= y0
    coverage = cv2.warpAffine(mask, matrix, (x1 - x0, y1 - y0),
                              flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT, borderValue=0)

    r, g, b, a = layer.color
    src_alpha = coverage.astype(np.float32) / 255.0 * (a / 255.0) * layer.alpha
    src_alpha = src_alpha[:, :, None]

    region = canvas[y0:y1, x0:x1].astype(np.float32)
    color = np.array([r, g, b], dtype=np.float32)
    region[:, :, :3] = region[:, :, :3] * (1.0 - src_alpha) + color * src_alpha
    region[:, :, 3:] = region[:, :, 3:] + (255.0 - region[:, :, 3:]) * src_alpha
    canvas[y0:y1, x0:x1] = np.clip(np.rint(region), 0, 255).astype(np.uint8)


def render_text_layers(buffer: RasterBuffer, layers: Iterable[TextLayer]) -> RasterBuffer:
    """
    Draw layers over a copy of the buffer, first layer at the bottom.

    Returns the input buffer itself when there is nothing to draw.
    """
    layers = tuple(layers)
    if not layers:
        return buffer
    canvas = buffer.to_array()
    for layer in layers:
        draw_text_layer(canvas, layer)
    return RasterBuffer.adopt(canvas)
