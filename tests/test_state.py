import pytest

from crop_geometry import CropHandle, Rect
from raster import RasterBuffer
from state import CropState, EditorState


@pytest.fixture
def crop_state():
    crop = CropState()
    crop.set_viewport(1000, 800)
    crop.set_bitmap_size(400, 300)
    return crop


# =============================================================================
# EditorState
# =============================================================================

def test_set_image_notifies():
    state = EditorState()
    seen = []
    state.imageChanged.connect(seen.append)
    image = RasterBuffer.blank(2, 2)
    state.set_image(image)
    assert state.image is image
    assert seen == [image]
    state.set_image(None)
    assert state.image is None
    assert seen == [image, None]


# =============================================================================
# CropState
# =============================================================================

def test_crop_resets_to_image_rect(crop_state):
    assert crop_state.image_rect == Rect(0, 25, 1000, 775)
    assert crop_state.crop_rect == crop_state.image_rect
    assert crop_state.fit_scale == pytest.approx(2.5)
    assert crop_state.pixel_rect() == (0, 0, 400, 300)


def test_handle_is_fixed_for_the_whole_gesture(crop_state):
    assert crop_state.begin_drag((5, 30)) == CropHandle.TOP_LEFT
    crop_state.drag_by(100, 100)
    # The pointer is now far from the original corner; the handle does not change
    crop_state.drag_by(10, 10)
    assert crop_state.active_handle == CropHandle.TOP_LEFT
    assert crop_state.crop_rect == Rect(110, 135, 1000, 775)
    crop_state.end_drag()
    assert crop_state.active_handle == CropHandle.NONE
    assert crop_state.pixel_rect() == (44, 44, 356, 256)


def test_drag_without_handle_does_nothing(crop_state):
    crop_state.drag_by(50, 50)
    assert crop_state.crop_rect == crop_state.image_rect


def test_crop_changes_are_signalled(crop_state):
    seen = []
    crop_state.cropChanged.connect(seen.append)
    crop_state.begin_drag((500, 400))
    crop_state.drag_by(0, 0)
    assert seen == []
    crop_state.end_drag()
    crop_state.begin_drag((1000, 775))
    crop_state.drag_by(-100, 0)
    assert seen == [Rect(0, 25, 900, 775)]


def test_set_aspect_ratio_refits_immediately(crop_state):
    seen = []
    crop_state.aspectRatioChanged.connect(seen.append)
    crop_state.set_aspect_ratio('1:1')
    assert crop_state.crop_rect == Rect(125, 25, 875, 775)
    assert crop_state.get_aspect_ratio_value() == pytest.approx(1.0)
    assert seen == ['1:1']


def test_aspect_ratio_applies_to_corner_drags(crop_state):
    crop_state.set_aspect_ratio('16:9')
    crop_state.begin_drag((crop_state.crop_rect.right, crop_state.crop_rect.bottom))
    rect = crop_state.drag_by(-200, -10)
    assert rect.width / rect.height == pytest.approx(16 / 9)
    assert crop_state.image_rect.contains_rect(rect)


def test_aspect_ratio_on_narrow_crop_keeps_min_size(crop_state):
    crop_state.set_pixel_rect(0, 0, 20, 200)
    assert crop_state.crop_rect.width == pytest.approx(50)
    crop_state.set_aspect_ratio('16:9')
    rect = crop_state.crop_rect
    assert min(rect.width, rect.height) == pytest.approx(50)
    assert rect.width / rect.height == pytest.approx(16 / 9)
    assert crop_state.image_rect.contains_rect(rect)


def test_free_aspect_ratio_has_no_value(crop_state):
    assert crop_state.get_aspect_ratio_value() is None


def test_unknown_aspect_ratio_raises(crop_state):
    with pytest.raises(KeyError):
        crop_state.set_aspect_ratio('3:2')


def test_set_pixel_rect_round_trips(crop_state):
    crop_state.set_pixel_rect(50, 50, 200, 150)
    assert crop_state.crop_rect == Rect(125, 150, 625, 525)
    assert crop_state.pixel_rect() == (50, 50, 200, 150)


def test_set_pixel_rect_clamps(crop_state):
    crop_state.set_pixel_rect(-100, -100, 5000, 5000)
    assert crop_state.crop_rect == crop_state.image_rect


def test_viewport_change_resets_crop(crop_state):
    crop_state.set_pixel_rect(50, 50, 200, 150)
    crop_state.set_viewport(400, 300)
    assert crop_state.crop_rect == Rect(0, 0, 400, 300)
