import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

import color_matrix
from services.adjustment_session import BrightnessContrastSession, FilterSession, SessionState
from state import EditorState

DELAY = 0.05


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def state(noise):
    editor_state = EditorState()
    editor_state.set_image(noise)
    return editor_state


@pytest.fixture
def recorded(monkeypatch):
    """Record every brightness/contrast recomputation."""
    calls = []
    original = color_matrix.apply_brightness_contrast

    def recording(buffer, brightness, contrast):
        calls.append((buffer, brightness, contrast))
        return original(buffer, brightness, contrast)

    monkeypatch.setattr(color_matrix, 'apply_brightness_contrast', recording)
    return calls


def test_enter_captures_baseline(state, executor, noise):
    session = BrightnessContrastSession(state, executor, DELAY)
    assert session.state == SessionState.IDLE
    session.enter()
    assert session.state == SessionState.ACTIVE
    assert session.baseline is noise


def test_enter_without_image_fails(executor):
    session = BrightnessContrastSession(EditorState(), executor, DELAY)
    with pytest.raises(ValueError):
        session.enter()
    assert not session.is_active


def test_burst_recomputes_once_from_baseline(state, executor, noise, recorded):
    session = BrightnessContrastSession(state, executor, DELAY)
    session.enter()
    for value in (10, 20, 30):
        session.on_brightness_changed(value)
    assert session.wait(timeout=2)

    assert [(b, c) for _, b, c in recorded] == [(30.0, 0.0)]
    assert recorded[0][0] is noise
    assert state.image == color_matrix.apply_brightness_contrast(noise, 30, 0)


def test_previews_never_compound(state, executor, noise, recorded):
    session = BrightnessContrastSession(state, executor, DELAY)
    session.enter()
    session.on_brightness_changed(40)
    session.wait(timeout=2)
    session.on_brightness_changed(40)
    session.wait(timeout=2)
    assert all(buffer is noise for buffer, _, _ in recorded)
    assert state.image == color_matrix.apply_brightness_contrast(noise, 40, 0)


def test_cancel_restores_baseline(state, executor, noise):
    session = BrightnessContrastSession(state, executor, DELAY)
    session.enter()
    session.on_contrast_changed(80)
    session.wait(timeout=2)
    assert state.image != noise

    assert session.exit(save=False)
    assert state.image is noise
    assert not session.is_active
    assert (session.brightness, session.contrast) == (0.0, 0.0)


def test_save_keeps_pending_value(state, executor, noise, recorded):
    session = BrightnessContrastSession(state, executor, 5.0)
    session.enter()
    session.on_brightness_changed(25)
    assert session.is_pending

    assert session.exit(save=True)
    assert state.image == color_matrix.apply_brightness_contrast(noise, 25, 0)
    assert session.baseline is None
    assert not session.is_pending


def test_save_keeps_published_preview(state, executor, noise):
    session = BrightnessContrastSession(state, executor, DELAY)
    session.enter()
    session.on_brightness_changed(-60)
    session.wait(timeout=2)
    preview = state.image
    session.exit(save=True)
    assert state.image is preview


def test_exit_when_idle_is_noop(state, executor):
    session = BrightnessContrastSession(state, executor, DELAY)
    assert not session.exit(save=False)


def test_reenter_keeps_original_baseline(state, executor, noise):
    session = BrightnessContrastSession(state, executor, DELAY)
    session.enter()
    session.on_brightness_changed(50)
    session.wait(timeout=2)
    session.enter()
    assert session.baseline is noise
    assert state.image is noise
    assert session.brightness == 0.0


def test_stale_preview_does_not_publish_after_cancel(state, executor, noise, monkeypatch):
    started = threading.Event()
    original = color_matrix.apply_brightness_contrast

    def slow(buffer, brightness, contrast):
        started.set()
        time.sleep(0.2)
        return original(buffer, brightness, contrast)

    monkeypatch.setattr(color_matrix, 'apply_brightness_contrast', slow)
    session = BrightnessContrastSession(state, executor, 0.01)
    session.enter()
    session.on_brightness_changed(90)
    assert started.wait(timeout=2)
    session.exit(save=False)
    assert session.wait(timeout=2)
    assert state.image is noise


def test_failed_preview_is_reported_and_keeps_image(state, executor, noise, monkeypatch):
    errors = []

    def broken(buffer, brightness, contrast):
        raise MemoryError("out of pixels")

    monkeypatch.setattr(color_matrix, 'apply_brightness_contrast', broken)
    session = BrightnessContrastSession(state, executor, DELAY, on_error=errors.append)
    session.enter()
    session.on_brightness_changed(40)
    assert session.wait(timeout=2)
    assert errors == ["out of pixels"]
    assert state.image is noise
    assert session.is_active


def test_values_are_clamped(state, executor):
    session = BrightnessContrastSession(state, executor, DELAY)
    session.enter()
    session.on_brightness_changed(1000)
    session.on_contrast_changed(-1000)
    assert (session.brightness, session.contrast) == (100.0, -50.0)
    session.exit(save=False)


def test_changes_while_idle_do_not_schedule(state, executor, noise):
    session = BrightnessContrastSession(state, executor, DELAY)
    session.on_brightness_changed(50)
    assert not session.is_pending
    assert state.image is noise


def test_filter_session_previews_and_reverts(state, executor, noise):
    session = FilterSession(state, executor, DELAY)
    session.enter()
    assert session.current_filter == 'original'
    session.on_filter_selected('invert')
    session.wait(timeout=2)
    assert state.image == color_matrix.apply_filter(noise, 'invert')
    session.on_filter_selected('sepia')
    session.wait(timeout=2)
    assert state.image == color_matrix.apply_filter(noise, 'sepia')
    session.exit(save=False)
    assert state.image is noise
    assert session.current_filter == 'original'


def test_filter_session_rejects_unknown_filter(state, executor):
    session = FilterSession(state, executor, DELAY)
    session.enter()
    with pytest.raises(KeyError):
        session.on_filter_selected('lomo')
    assert session.current_filter == 'original'
    assert not session.is_pending
