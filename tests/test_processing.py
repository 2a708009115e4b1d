import io

import cv2
import numpy as np
import pytest
from PIL import Image

import processing
from errors import DecodeError
from raster import RasterBuffer
from services.memory_manager import MemoryManager


# =============================================================================
# Decoding
# =============================================================================

@pytest.mark.parametrize("width, height, expected", [
    (4000, 3000, 1),
    (2048, 2048, 1),
    (4096, 4096, 2),
    (5000, 5000, 2),
    (8192, 8192, 4),
    (100, 100, 1),
])
def test_compute_sample_size(width, height, expected):
    assert processing.compute_sample_size(width, height) == expected


def test_read_image_bounds(png_bytes):
    assert processing.read_image_bounds(png_bytes) == (64, 32)


def test_decode_image_full_size(png_bytes):
    buf = processing.decode_image(png_bytes)
    assert buf.size == (64, 32)
    assert tuple(buf.pixels[0, 0]) == (0, 0, 255, 255)
    assert tuple(buf.pixels[0, 63]) == (255, 0, 0, 255)


def test_decode_image_downsamples(png_bytes):
    # 64x32 toward 8: halved 32x16 still fits a further factor of 2
    buf = processing.decode_image(png_bytes, max_dimension=8)
    assert buf.size == (16, 8)


def exif_rotated_jpeg(width, height, orientation=6):
    """JPEG whose EXIF asks viewers to rotate it (6 = 90 degrees clockwise)."""
    exif = Image.Exif()
    exif[0x0112] = orientation
    out = io.BytesIO()
    Image.new('RGB', (width, height), (200, 50, 50)).save(out, 'JPEG', exif=exif.tobytes())
    return out.getvalue()


@pytest.mark.parametrize("max_dimension, expected", [
    (2048, (400, 300)),
    (100, (200, 150)),
])
def test_decode_ignores_exif_orientation_on_every_path(max_dimension, expected):
    data = exif_rotated_jpeg(400, 300)
    assert processing.read_image_bounds(data) == (400, 300)
    assert processing.decode_image(data, max_dimension=max_dimension).size == expected


def test_downsampled_png_keeps_transparency():
    bgra = np.zeros((128, 256, 4), dtype=np.uint8)
    bgra[:, :128] = (255, 0, 0, 255)
    ok, encoded = cv2.imencode('.png', bgra)
    assert ok
    buf = processing.decode_image(encoded.tobytes(), max_dimension=32)
    assert buf.size == (64, 32)
    assert tuple(buf.pixels[0, 0]) == (0, 0, 255, 255)
    assert buf.pixels[0, -1, 3] == 0


def test_decode_empty_raises():
    with pytest.raises(DecodeError):
        processing.decode_image(b"")


def test_decode_garbage_raises():
    with pytest.raises(DecodeError):
        processing.decode_image(b"definitely not an image")


def test_load_image_from_stream(png_bytes):
    buf = processing.load_image(io.BytesIO(png_bytes))
    assert buf.size == (64, 32)


def test_load_image_from_path(tmp_path, png_bytes):
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes)
    assert processing.load_image(path).size == (64, 32)
    assert processing.load_image(str(path)).size == (64, 32)


def test_load_image_missing_file(tmp_path):
    with pytest.raises(DecodeError):
        processing.load_image(tmp_path / "missing.png")


# =============================================================================
# Crop
# =============================================================================

def test_crop_exact_region(gradient):
    cropped = processing.crop_image(gradient, 50, 50, 200, 150)
    assert cropped.size == (200, 150)
    assert np.array_equal(cropped.pixels, gradient.pixels[50:200, 50:250])


def test_crop_clamps_to_image(gradient):
    cropped = processing.crop_image(gradient, 350, 250, 200, 200)
    assert cropped.size == (50, 50)
    assert np.array_equal(cropped.pixels, gradient.pixels[250:300, 350:400])


def test_crop_negative_origin_is_clamped(gradient):
    cropped = processing.crop_image(gradient, -20, -10, 100, 100)
    assert cropped.size == (100, 100)
    assert np.array_equal(cropped.pixels, gradient.pixels[0:100, 0:100])


def test_crop_full_image_returns_input(gradient):
    assert processing.crop_image(gradient, 0, 0, 400, 300) is gradient


def test_crop_empty_leaves_image_unchanged(gradient):
    assert processing.crop_image(gradient, 10, 10, 0, 50) is gradient


def test_crop_does_not_modify_input(gradient):
    before = gradient.to_array()
    processing.crop_image(gradient, 10, 10, 20, 20)
    assert np.array_equal(gradient.pixels, before)


# =============================================================================
# Rotate / flip
# =============================================================================

def test_rotate_quarter_turn_swaps_dimensions(noise):
    rotated = processing.rotate_image(noise, 90)
    assert rotated.size == (noise.height, noise.width)
    # Clockwise: the top-left pixel ends up top-right
    assert np.array_equal(rotated.pixels[0, -1], noise.pixels[0, 0])


def test_rotate_back_and_forth_is_identity(noise):
    there = processing.rotate_image(noise, 90)
    assert processing.rotate_image(there, -90) == noise


def test_rotate_full_turn_is_identity(noise):
    assert processing.rotate_image(noise, 360) is noise


def test_rotate_arbitrary_angle_grows_canvas(gradient):
    rotated = processing.rotate_image(gradient, 30)
    assert rotated.size == processing.rotated_bounds(400, 300, 30)
    assert rotated.width > 400 and rotated.height > 300
    # Corners are outside the rotated image
    assert rotated.pixels[0, 0, 3] == 0


def test_rotate_refuses_when_memory_is_short(gradient, monkeypatch):
    monkeypatch.setattr(MemoryManager, 'can_process_image', lambda self, w, h: False)
    with pytest.raises(MemoryError):
        processing.rotate_image(gradient, 45)


def test_flip_twice_is_identity(noise):
    for horizontal, vertical in [(True, False), (False, True), (True, True)]:
        once = processing.flip_image(noise, horizontal, vertical)
        assert processing.flip_image(once, horizontal, vertical) == noise


def test_flip_horizontal_mirrors_columns(noise):
    flipped = processing.flip_image(noise, True, False)
    assert np.array_equal(flipped.pixels[:, 0], noise.pixels[:, -1])


def test_flip_neither_returns_input(noise):
    assert processing.flip_image(noise, False, False) is noise


def test_transforms_return_new_buffers(noise):
    before = RasterBuffer(noise.pixels)
    processing.rotate_image(noise, 90)
    processing.flip_image(noise, True, True)
    assert noise == before
