"""
PHOTO EDIT KERNEL - Adjustment Sessions

Debounced live preview over a fixed baseline, with revert-to-baseline on
cancel. Brightness/contrast and filter modes are independent sessions built
on the same base class.
"""

import threading
from concurrent.futures import Executor
from enum import Enum
from typing import Any, Callable, Dict, Optional

import presets
from constants import Adjust
from raster import RasterBuffer
from state import EditorState
from workers.debounce import Debouncer
from workers.image_processor import run_job


class SessionState(Enum):
    IDLE = "idle"
    ACTIVE = "active"


class AdjustmentSession:
    """
    IDLE -> ACTIVE(baseline) -> IDLE.

    enter() snapshots the current image once as the baseline. Every value
    change cancels the pending preview and schedules a new one after the
    quiet period; previews are always computed from the baseline, never from
    the previous preview, so repeated edits do not accumulate. exit(save=False)
    puts the baseline back.
    """

    # Job type in workers.image_processor.JOB_FUNCTIONS
    JOB_TYPE = None

    def __init__(self, state: EditorState, executor: Executor,
                 delay: float = Adjust.DEBOUNCE_MS / 1000.0,
                 on_error: Optional[Callable[[str], None]] = None):
        """
        Args:
            state: Current-image slot previews are published to
            executor: Pool the debounced recomputations run on
            delay: Quiet period in seconds
            on_error: Called with the message when a preview fails to render
        """
        self._state = state
        self._on_error = on_error
        self._debouncer = Debouncer(executor, delay)
        self._lock = threading.RLock()
        self._baseline: Optional[RasterBuffer] = None
        # Bumped whenever in-flight previews must no longer publish
        self._epoch = 0
        self._reset_values()

    # --- Subclass hooks ---

    def _reset_values(self):
        raise NotImplementedError

    def _current_params(self) -> Dict[str, Any]:
        raise NotImplementedError

    # --- State ---

    @property
    def state(self) -> SessionState:
        return SessionState.ACTIVE if self._baseline is not None else SessionState.IDLE

    @property
    def is_active(self) -> bool:
        return self._baseline is not None

    @property
    def baseline(self) -> Optional[RasterBuffer]:
        return self._baseline

    @property
    def is_pending(self) -> bool:
        return self._debouncer.is_pending

    def enter(self):
        """
        Start the session, or restart it if already active.

        The baseline is captured only if none exists; re-entering keeps the
        existing baseline (never re-snapshots an adjusted preview) and shows
        it again with neutral values.

        Raises:
            ValueError: if there is no image to adjust
        """
        with self._lock:
            if self._baseline is None:
                image = self._state.image
                if image is None:
                    raise ValueError("No image loaded")
                self._baseline = image
                self._epoch += 1
                self._reset_values()
                return

            self._debouncer.cancel()
            self._epoch += 1
            self._reset_values()
            if self._state.image is not self._baseline:
                self._state.set_image(self._baseline)

    def exit(self, save: bool) -> bool:
        """
        Leave the session.

        save=True keeps the adjusted image; a preview still waiting for its
        quiet period is computed right away so the last value is what is kept.
        save=False restores the baseline. Either way the baseline is released
        and values return to neutral.

        Returns:
            False if the session was not active
        """
        if not self.is_active:
            return False

        if save:
            pending = self._debouncer.cancel()
            self._debouncer.wait()
            if pending:
                with self._lock:
                    epoch, baseline, params = self._epoch, self._baseline, self._current_params()
                self._recompute(epoch, baseline, params)
        else:
            with self._lock:
                self._epoch += 1
                self._debouncer.cancel()
                self._state.set_image(self._baseline)

        with self._lock:
            self._epoch += 1
            self._baseline = None
            self._reset_values()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until no preview is waiting or running."""
        return self._debouncer.wait(timeout)

    # --- Preview pipeline ---

    def _schedule(self):
        """Debounce a recomputation with the current values."""
        with self._lock:
            if self._baseline is None:
                return
            epoch, baseline, params = self._epoch, self._baseline, self._current_params()
        self._debouncer.schedule(self._recompute, epoch, baseline, params)

    def _recompute(self, epoch: int, baseline: RasterBuffer, params: Dict[str, Any]) -> bool:
        """Render from the baseline and publish unless the session moved on."""
        try:
            result = run_job(self.JOB_TYPE, baseline, params)
        except Exception as e:
            print(f"[{type(self).__name__}] Preview failed: {e}")
            if self._on_error is not None:
                self._on_error(str(e) or type(e).__name__)
            return False

        with self._lock:
            if epoch != self._epoch or self._baseline is None:
                return False
            self._state.set_image(result)
        return True


class BrightnessContrastSession(AdjustmentSession):
    """Brightness (-100..100) and contrast (-50..150) preview."""

    JOB_TYPE = 'brightness_contrast'

    @property
    def brightness(self) -> float:
        return self._brightness

    @property
    def contrast(self) -> float:
        return self._contrast

    def _reset_values(self):
        self._brightness = 0.0
        self._contrast = 0.0

    def _current_params(self) -> Dict[str, Any]:
        return {'brightness': self._brightness, 'contrast': self._contrast}

    def on_brightness_changed(self, value: float):
        with self._lock:
            self._brightness = max(Adjust.BRIGHTNESS_MIN, min(Adjust.BRIGHTNESS_MAX, float(value)))
        self._schedule()

    def on_contrast_changed(self, value: float):
        with self._lock:
            self._contrast = max(Adjust.CONTRAST_MIN, min(Adjust.CONTRAST_MAX, float(value)))
        self._schedule()


class FilterSession(AdjustmentSession):
    """Preset filter preview."""

    JOB_TYPE = 'filter'

    @property
    def current_filter(self) -> str:
        return self._filter

    def _reset_values(self):
        self._filter = presets.DEFAULT_FILTER

    def _current_params(self) -> Dict[str, Any]:
        return {'filter': self._filter}

    def on_filter_selected(self, key: str):
        """Select a filter by preset key.

        Raises:
            KeyError: if the key names no preset
        """
        presets.get_preset(key)
        with self._lock:
            self._filter = key
        self._schedule()
