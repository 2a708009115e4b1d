import os
import re

import cv2
import numpy as np
import pytest

import compositor
import exporter
import storage
from errors import ExportError
from raster import RasterBuffer
from storage import FileSink
from text_layers import TextLayer


def decode(data):
    return cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)


def test_encode_jpeg_produces_jpeg(gradient):
    data = exporter.encode_jpeg(gradient)
    assert data[:2] == b"\xff\xd8"
    assert decode(data).shape == (300, 400, 3)


def test_transparent_pixels_export_black():
    data = exporter.encode_jpeg(RasterBuffer.blank(16, 16, (0, 0, 0, 0)))
    assert decode(data).max() <= 2


def test_default_filename():
    assert re.fullmatch(r"IMG_\d+\.jpg", exporter.default_filename())


def test_export_flattens_layers(gradient, memory_sink):
    layer = TextLayer(text="HHHH", position=(200, 150), color=(255, 255, 255))
    handle = exporter.export_image(gradient, [layer], memory_sink, "out.jpg")
    assert handle == "out.jpg"
    plain = decode(exporter.encode_jpeg(gradient))
    flattened = decode(memory_sink.files["out.jpg"])
    assert flattened.shape == plain.shape
    assert np.abs(flattened.astype(int) - plain.astype(int)).max() > 100


def test_export_default_name(gradient, memory_sink):
    handle = exporter.export_image(gradient, [], memory_sink)
    assert handle.startswith("IMG_")


def test_export_without_image_fails(memory_sink):
    with pytest.raises(ExportError):
        exporter.export_image(None, [], memory_sink)
    assert memory_sink.files == {}


def test_sink_failure_becomes_export_error(gradient, failing_sink):
    with pytest.raises(ExportError):
        exporter.export_image(gradient, [], failing_sink, "out.jpg")


def test_render_failure_becomes_export_error(gradient, memory_sink, monkeypatch):
    def broken(buffer, layers):
        raise ValueError("bad layer")

    monkeypatch.setattr(compositor, 'render_text_layers', broken)
    with pytest.raises(ExportError):
        exporter.export_image(gradient, [TextLayer()], memory_sink, "out.jpg")
    assert memory_sink.files == {}


def test_export_does_not_modify_source(gradient, memory_sink):
    before = gradient.to_array()
    exporter.export_image(gradient, [TextLayer(position=(10, 10))], memory_sink, "out.jpg")
    assert np.array_equal(gradient.pixels, before)


# =============================================================================
# FileSink
# =============================================================================

def test_file_sink_writes_file(tmp_path):
    sink = FileSink(tmp_path / "exports")
    path = sink.write(b"abc", "IMG_1.jpg")
    assert path == tmp_path / "exports" / "IMG_1.jpg"
    assert path.read_bytes() == b"abc"
    assert sorted(p.name for p in (tmp_path / "exports").iterdir()) == ["IMG_1.jpg"]


def test_file_sink_replace_failure_keeps_previous_file(tmp_path, monkeypatch):
    sink = FileSink(tmp_path)
    sink.write(b"old", "IMG_1.jpg")

    def fail(src, dst):
        raise OSError("rename failed")

    monkeypatch.setattr(os, 'replace', fail)
    with pytest.raises(OSError):
        sink.write(b"new", "IMG_1.jpg")
    assert (tmp_path / "IMG_1.jpg").read_bytes() == b"old"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["IMG_1.jpg"]


def test_export_to_file_sink(tmp_path, gradient):
    path = exporter.export_image(gradient, [], FileSink(tmp_path), "photo.jpg")
    assert decode(path.read_bytes()).shape == (300, 400, 3)


def test_get_storage_is_shared():
    assert storage.get_storage() is storage.get_storage()
