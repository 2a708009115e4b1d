"""
PHOTO EDIT KERNEL - Editor Service

Qt-compatible coordinator for one editing session: owns the current image,
the text layers, the crop state and the adjustment sessions, and runs all
decode/transform/export work off the calling thread.
"""

import threading
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from PySide6.QtCore import QObject, Signal

import crop_geometry
import exporter
import processing
import storage
from constants import Adjust
from errors import SessionConflictError
from raster import RasterBuffer
from services.adjustment_session import BrightnessContrastSession, FilterSession
from services.task_runner import TaskRunner
from state import CropState, EditorState
from text_layers import TextLayer, TextLayerStack
from workers.image_processor import run_job


class OperationStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class OperationState:
    """Observable state of a load or save: status plus result handle or message."""
    status: OperationStatus = OperationStatus.IDLE
    handle: object = None
    message: Optional[str] = None


class EditMode(Enum):
    NONE = "none"
    CROP = "crop"
    ADJUST = "adjust"
    FILTER = "filter"


class EditorService(QObject):
    """
    Main service for a single editor screen.

    Image-replacing work (load, crop, rotate, flip) goes through a
    single-thread runner so transforms apply in the order they were
    requested. Previews and exports use the shared pool. Every background
    operation returns a Future resolving to a TaskResult.

    Only one mode (crop, brightness/contrast, filter) can be active at a
    time; geometry transforms are refused while an adjustment session holds
    a baseline.
    """

    # Public signals for UI integration
    imageChanged = Signal(object)        # RasterBuffer or None
    loadStateChanged = Signal(object)    # OperationState
    saveStateChanged = Signal(object)    # OperationState
    previewStateChanged = Signal(object)  # OperationState
    modeChanged = Signal(str)            # EditMode value

    def __init__(self, parent: QObject = None, sink=None, max_workers: Optional[int] = None,
                 debounce_ms: int = Adjust.DEBOUNCE_MS):
        super().__init__(parent)
        self._state = EditorState()
        self._state.imageChanged.connect(self.imageChanged.emit)

        self._runner = TaskRunner(max_workers, name="editor")
        self._transform_runner = TaskRunner(1, name="transform")
        self._sink = sink if sink is not None else storage.get_storage()

        self.text_layers = TextLayerStack()
        self.crop = CropState()
        delay = debounce_ms / 1000.0
        self.adjustments = BrightnessContrastSession(
            self._state, self._runner.executor, delay, on_error=self._on_preview_failed)
        self.filters = FilterSession(
            self._state, self._runner.executor, delay, on_error=self._on_preview_failed)

        self._mode = EditMode.NONE
        self._mode_lock = threading.Lock()
        self._last_transform: Optional[Future] = None
        self._viewport = (0.0, 0.0)
        self._load_state = OperationState()
        self._save_state = OperationState()
        self._preview_state = OperationState()

    # --- State ---

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def image(self) -> Optional[RasterBuffer]:
        return self._state.image

    @property
    def mode(self) -> EditMode:
        return self._mode

    @property
    def load_state(self) -> OperationState:
        return self._load_state

    @property
    def save_state(self) -> OperationState:
        return self._save_state

    @property
    def preview_state(self) -> OperationState:
        """ERROR while the last preview in the current mode failed to render."""
        return self._preview_state

    @property
    def fit_scale(self) -> float:
        """Display units per source pixel for the current image and viewport."""
        image = self._state.image
        if image is None:
            return 1.0
        scale, _ = crop_geometry.fit_display(*self._viewport, image.width, image.height)
        return scale

    def set_viewport(self, width: float, height: float):
        self._viewport = (float(width), float(height))
        self.crop.set_viewport(width, height)

    def _set_load_state(self, state: OperationState):
        self._load_state = state
        self.loadStateChanged.emit(state)

    def _set_save_state(self, state: OperationState):
        self._save_state = state
        self.saveStateChanged.emit(state)

    def _set_preview_state(self, state: OperationState):
        self._preview_state = state
        self.previewStateChanged.emit(state)

    def _on_preview_failed(self, message: str):
        self._set_preview_state(OperationState(OperationStatus.ERROR, message=message))

    def _set_mode(self, mode: EditMode):
        self._mode = mode
        self.modeChanged.emit(mode.value)

    def _enter_mode(self, mode: EditMode):
        with self._mode_lock:
            if self._mode not in (EditMode.NONE, mode):
                message = f"Cannot enter {mode.value} mode while {self._mode.value} mode is active"
                print(f"[EditorService] {message}")
                raise SessionConflictError(message)
            self._mode = mode
        self.modeChanged.emit(mode.value)

    def _require_no_session(self, operation: str):
        if self.adjustments.is_active or self.filters.is_active:
            raise SessionConflictError(f"Cannot {operation} while an adjustment session is active")

    def _wait_for_transforms(self):
        """Block until queued image replacements have been applied."""
        last = self._last_transform
        if last is not None:
            last.result()

    def _replace_image(self, image: Optional[RasterBuffer]):
        """Install a new current image; an open crop frame is refitted to it."""
        self._state.set_image(image)
        if self._mode == EditMode.CROP:
            if image is None:
                self.crop.set_bitmap_size(0, 0)
            else:
                self.crop.set_bitmap_size(image.width, image.height)

    # --- Loading ---

    def load_image(self, source) -> Future:
        """
        Decode an image (path or binary stream) in the background.

        Text layers from the previous image are discarded.

        Raises:
            SessionConflictError: if an adjustment session is active
        """
        self._require_no_session("load an image")
        self.text_layers.clear()
        self._set_load_state(OperationState(OperationStatus.LOADING))
        future = self._transform_runner.submit("load", self._load_task, source)
        self._last_transform = future
        return future

    def _load_task(self, source) -> RasterBuffer:
        try:
            image = processing.load_image(source)
        except Exception as e:
            self._set_load_state(OperationState(OperationStatus.ERROR, message=str(e)))
            raise
        self._replace_image(image)
        self._set_load_state(OperationState(OperationStatus.SUCCESS, handle=image))
        print(f"[EditorService] Loaded {image.width}x{image.height}")
        return image

    def set_image(self, image: Optional[RasterBuffer]):
        """Install an already decoded image directly."""
        self._require_no_session("replace the image")
        self._replace_image(image)

    # --- Geometry transforms ---

    def _submit_transform(self, job_type: str, settings: dict) -> Future:
        self._require_no_session(job_type)
        future = self._transform_runner.submit(job_type, self._transform_task, job_type, settings)
        self._last_transform = future
        return future

    def _transform_task(self, job_type: str, settings: dict) -> RasterBuffer:
        image = self._state.image
        if image is None:
            raise ValueError("No image loaded")
        result = run_job(job_type, image, settings)
        if result is not image:
            self._replace_image(result)
        return result

    def crop_bitmap(self, x: int, y: int, w: int, h: int) -> Future:
        """Crop to a source-pixel rectangle (clamped to the image)."""
        return self._submit_transform('crop', {'x': x, 'y': y, 'w': w, 'h': h})

    def rotate_bitmap(self, degrees: float = 90.0) -> Future:
        """Rotate clockwise; the canvas grows to fit the rotated image."""
        return self._submit_transform('rotate', {'degrees': degrees})

    def flip_bitmap(self, horizontal: bool, vertical: bool) -> Future:
        return self._submit_transform('flip', {'horizontal': horizontal, 'vertical': vertical})

    # --- Crop mode ---

    def enter_crop_mode(self):
        """Show the crop frame over the whole image.

        Raises:
            SessionConflictError: if another mode is active
            ValueError: if no image is loaded
        """
        self._wait_for_transforms()
        image = self._state.image
        if image is None:
            raise ValueError("No image loaded")
        self._enter_mode(EditMode.CROP)
        self.crop.set_bitmap_size(image.width, image.height)

    def confirm_crop(self) -> Future:
        """Apply the crop frame and leave crop mode."""
        if self._mode != EditMode.CROP:
            raise SessionConflictError("Crop mode is not active")
        x, y, w, h = self.crop.pixel_rect()
        self._set_mode(EditMode.NONE)
        return self.crop_bitmap(x, y, w, h)

    def cancel_crop_mode(self):
        if self._mode == EditMode.CROP:
            self.crop.reset()
            self._set_mode(EditMode.NONE)

    # --- Brightness / contrast ---

    def enter_adjustment_mode(self):
        """
        Raises:
            SessionConflictError: if another mode is active
            ValueError: if no image is loaded
        """
        self._wait_for_transforms()
        self._enter_mode(EditMode.ADJUST)
        self._set_preview_state(OperationState())
        try:
            self.adjustments.enter()
        except ValueError:
            self._set_mode(EditMode.NONE)
            raise

    def on_brightness_changed(self, value: float):
        self.adjustments.on_brightness_changed(value)

    def on_contrast_changed(self, value: float):
        self.adjustments.on_contrast_changed(value)

    def exit_adjustment_mode(self, save: bool):
        self.adjustments.exit(save)
        if self._mode == EditMode.ADJUST:
            self._set_mode(EditMode.NONE)

    # --- Filters ---

    def enter_filter_mode(self):
        """
        Raises:
            SessionConflictError: if another mode is active
            ValueError: if no image is loaded
        """
        self._wait_for_transforms()
        self._enter_mode(EditMode.FILTER)
        self._set_preview_state(OperationState())
        try:
            self.filters.enter()
        except ValueError:
            self._set_mode(EditMode.NONE)
            raise

    def on_filter_selected(self, key: str):
        self.filters.on_filter_selected(key)

    def exit_filter_mode(self, save: bool):
        self.filters.exit(save)
        if self._mode == EditMode.FILTER:
            self._set_mode(EditMode.NONE)

    # --- Text layers ---

    def add_text_layer(self, **overrides) -> TextLayer:
        """Add a default text layer at the image center and select it."""
        image = self._state.image
        if image is None:
            raise ValueError("No image loaded")
        return self.text_layers.add((image.width / 2.0, image.height / 2.0), **overrides)

    def update_text_layer(self, layer_id: str, *intents) -> Optional[TextLayer]:
        return self.text_layers.update(layer_id, *intents)

    def select_text_layer(self, layer_id: Optional[str]):
        self.text_layers.select(layer_id)

    def remove_selected_text_layer(self) -> bool:
        return self.text_layers.remove_selected()

    def drag_text_layer(self, layer_id: str, dx: float, dy: float) -> Optional[TextLayer]:
        """Move a layer by a display-space delta."""
        return self.text_layers.drag(layer_id, dx, dy, self.fit_scale)

    def transform_text_layer(self, layer_id: str, pan: Tuple[float, float], zoom: float,
                             rotation_delta: float) -> Optional[TextLayer]:
        """Apply one pinch/rotate gesture frame to a layer."""
        return self.text_layers.transform_gesture(layer_id, pan, zoom, rotation_delta, self.fit_scale)

    # --- Export ---

    def save_image(self, name: Optional[str] = None) -> Future:
        """
        Flatten text layers onto the current image and store it as JPEG.

        The image and layers are captured now; edits made while the export
        runs do not affect it.
        """
        image = self._state.image
        layers = self.text_layers.layers
        self._set_save_state(OperationState(OperationStatus.LOADING))
        return self._runner.submit("save", self._save_task, image, layers, name)

    def _save_task(self, image: Optional[RasterBuffer], layers, name: Optional[str]):
        try:
            handle = exporter.export_image(image, layers, self._sink, name)
        except Exception as e:
            self._set_save_state(OperationState(OperationStatus.ERROR, message=str(e)))
            raise
        self._set_save_state(OperationState(OperationStatus.SUCCESS, handle=handle))
        return handle

    def reset_save_state(self):
        self._set_save_state(OperationState())

    # --- Lifecycle ---

    def get_resource_summary(self) -> dict:
        summary = self._runner.memory_manager.get_resource_summary()
        summary['workers'] = self._runner.get_worker_count()
        return summary

    def shutdown(self):
        """Drop pending previews and wait for running work to finish."""
        self.adjustments.exit(save=False)
        self.filters.exit(save=False)
        self._transform_runner.shutdown(wait=True)
        self._runner.shutdown(wait=True)
