"""Shared fixtures: small synthetic rasters and encoded images."""

import cv2
import numpy as np
import pytest

from raster import RasterBuffer


def make_gradient(width, height):
    """RGBA raster whose red/green channels encode x/y, fully opaque."""
    xs = np.linspace(0, 255, width, dtype=np.float32)
    ys = np.linspace(0, 255, height, dtype=np.float32)
    arr = np.empty((height, width, 4), dtype=np.uint8)
    arr[:, :, 0] = xs[None, :].astype(np.uint8)
    arr[:, :, 1] = ys[:, None].astype(np.uint8)
    arr[:, :, 2] = 80
    arr[:, :, 3] = 255
    return RasterBuffer(arr)


def make_noise(width, height, seed=0):
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    arr[:, :, 3] = 255
    return RasterBuffer(arr)


@pytest.fixture
def gradient():
    return make_gradient(400, 300)


@pytest.fixture
def image_factory():
    return make_gradient


@pytest.fixture
def noise():
    return make_noise(64, 48)


@pytest.fixture
def png_bytes():
    """64x32 PNG: left half blue, right half red (BGR order for OpenCV)."""
    img = np.zeros((32, 64, 3), dtype=np.uint8)
    img[:, :32] = (255, 0, 0)
    img[:, 32:] = (0, 0, 255)
    ok, encoded = cv2.imencode('.png', img)
    assert ok
    return encoded.tobytes()


class MemorySink:
    """Sink that keeps written files in a dict."""

    def __init__(self):
        self.files = {}

    def write(self, data, name):
        self.files[name] = data
        return name


class FailingSink:
    def write(self, data, name):
        raise OSError("disk full")


@pytest.fixture
def memory_sink():
    return MemorySink()


@pytest.fixture
def failing_sink():
    return FailingSink()
