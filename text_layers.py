"""
PHOTO EDIT KERNEL - Text Layers

Floating text overlay descriptors, the named edits that can be applied to
them, and the ordered copy-on-write collection the editor keeps.

Positions are stored in source-image pixel space so they do not depend on
the current zoom or viewport.
"""

import threading
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from constants import Text

Color = Tuple[int, int, int, int]  # RGBA 0-255


class FontFamily(Enum):
    """Font choice; resolved to a concrete face only when rendering."""
    DEFAULT = "default"
    SERIF = "serif"
    SANS = "sans"
    MONO = "mono"
    CURSIVE = "cursive"


def clamp_font_size(size: float) -> float:
    return max(Text.FONT_SIZE_MIN, min(Text.FONT_SIZE_MAX, float(size)))


def normalize_rotation(degrees: float) -> float:
    """Wrap an angle into [0, 360)."""
    value = float(degrees) % 360.0
    return 0.0 if value >= 360.0 else value


def _clamp_alpha(alpha: float) -> float:
    return max(0.0, min(1.0, float(alpha)))


def _clamp_color(color) -> Color:
    channels = tuple(max(0, min(255, int(c))) for c in color)
    if len(channels) == 3:
        channels += (255,)
    if len(channels) != 4:
        raise ValueError(f"Color must be RGB or RGBA, got {color!r}")
    return channels


@dataclass(frozen=True)
class TextLayer:
    """One text overlay. Instances are immutable; edits produce copies."""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    text: str = Text.DEFAULT_TEXT
    position: Tuple[float, float] = (0.0, 0.0)
    font_size: float = Text.DEFAULT_FONT_SIZE
    color: Color = Text.DEFAULT_COLOR
    rotation: float = 0.0
    scale: float = 1.0
    alpha: float = 1.0
    font_family: FontFamily = FontFamily.DEFAULT

    def __post_init__(self):
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, 'position', (float(self.position[0]), float(self.position[1])))
        object.__setattr__(self, 'font_size', clamp_font_size(self.font_size))
        object.__setattr__(self, 'color', _clamp_color(self.color))
        object.__setattr__(self, 'rotation', normalize_rotation(self.rotation))
        object.__setattr__(self, 'alpha', _clamp_alpha(self.alpha))
        if self.scale <= 0:
            raise ValueError(f"Scale must be positive, got {self.scale}")


# =============================================================================
# EDIT INTENTS
# =============================================================================

@dataclass(frozen=True)
class SetText:
    text: str


@dataclass(frozen=True)
class SetPosition:
    x: float
    y: float


@dataclass(frozen=True)
class MoveBy:
    dx: float
    dy: float


@dataclass(frozen=True)
class SetFontSize:
    size: float


@dataclass(frozen=True)
class ScaleFontSize:
    factor: float


@dataclass(frozen=True)
class SetColor:
    color: Color


@dataclass(frozen=True)
class SetRotation:
    degrees: float


@dataclass(frozen=True)
class RotateBy:
    degrees: float


@dataclass(frozen=True)
class SetScale:
    scale: float


@dataclass(frozen=True)
class SetAlpha:
    alpha: float


@dataclass(frozen=True)
class SetFontFamily:
    family: FontFamily


# Each handler returns a new layer; TextLayer.__post_init__ clamps/normalizes
_INTENT_HANDLERS: Dict[type, Callable[[TextLayer, object], TextLayer]] = {
    SetText: lambda layer, i: replace(layer, text=i.text),
    SetPosition: lambda layer, i: replace(layer, position=(i.x, i.y)),
    MoveBy: lambda layer, i: replace(layer, position=(layer.position[0] + i.dx, layer.position[1] + i.dy)),
    SetFontSize: lambda layer, i: replace(layer, font_size=i.size),
    ScaleFontSize: lambda layer, i: replace(layer, font_size=layer.font_size * i.factor),
    SetColor: lambda layer, i: replace(layer, color=i.color),
    SetRotation: lambda layer, i: replace(layer, rotation=i.degrees),
    RotateBy: lambda layer, i: replace(layer, rotation=layer.rotation + i.degrees),
    SetScale: lambda layer, i: replace(layer, scale=i.scale),
    SetAlpha: lambda layer, i: replace(layer, alpha=i.alpha),
    SetFontFamily: lambda layer, i: replace(layer, font_family=FontFamily(i.family)),
}


def apply_intent(layer: TextLayer, intent) -> TextLayer:
    """Apply one edit intent, returning the edited copy."""
    handler = _INTENT_HANDLERS.get(type(intent))
    if handler is None:
        raise TypeError(f"Unknown text layer intent: {intent!r}")
    return handler(layer, intent)


# =============================================================================
# LAYER STACK
# =============================================================================

class TextLayerStack(QObject):
    """Ordered text layers plus the current selection.

    Insertion order is render order (first added is drawn first). The stored
    tuple is replaced on every change, so a `layers` snapshot taken by a
    reader never changes underneath it.
    """

    layersChanged = Signal(object)      # tuple of TextLayer
    selectionChanged = Signal(object)   # layer id or None

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._layers: Tuple[TextLayer, ...] = ()
        self._selected_id: Optional[str] = None

    @property
    def layers(self) -> Tuple[TextLayer, ...]:
        with self._lock:
            return self._layers

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    def get(self, layer_id: str) -> Optional[TextLayer]:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def add(self, center: Tuple[float, float], **overrides) -> TextLayer:
        """Create a layer at the given source-pixel position, append and select it."""
        layer = TextLayer(position=center, **overrides)
        with self._lock:
            self._layers = self._layers + (layer,)
            layers = self._layers
        self.layersChanged.emit(layers)
        self.select(layer.id)
        return layer

    def update(self, layer_id: str, *intents) -> Optional[TextLayer]:
        """
        Apply intents to a copy of the layer and store the copy.

        Returns the new layer, or None when the id is unknown (the layer may
        have been deleted while an edit was in flight).
        """
        with self._lock:
            for index, layer in enumerate(self._layers):
                if layer.id == layer_id:
                    break
            else:
                return None
            updated = layer
            for intent in intents:
                updated = apply_intent(updated, intent)
            self._layers = self._layers[:index] + (updated,) + self._layers[index + 1:]
            layers = self._layers
        self.layersChanged.emit(layers)
        return updated

    def remove(self, layer_id: str) -> bool:
        """Delete a layer. Unknown ids are ignored."""
        with self._lock:
            remaining = tuple(layer for layer in self._layers if layer.id != layer_id)
            if len(remaining) == len(self._layers):
                return False
            self._layers = remaining
        self.layersChanged.emit(remaining)
        if self._selected_id == layer_id:
            self.select(None)
        return True

    def remove_selected(self) -> bool:
        if self._selected_id is None:
            return False
        return self.remove(self._selected_id)

    def clear(self):
        with self._lock:
            self._layers = ()
        self.layersChanged.emit(())
        self.select(None)

    def select(self, layer_id: Optional[str]):
        """Select a layer by id; None (or an unknown id) clears the selection."""
        if layer_id is not None and self.get(layer_id) is None:
            layer_id = None
        if layer_id != self._selected_id:
            self._selected_id = layer_id
            self.selectionChanged.emit(layer_id)

    # --- Gestures (display-space input) ---

    def drag(self, layer_id: str, dx: float, dy: float, fit_scale: float) -> Optional[TextLayer]:
        """Translate by a display-space delta, converted to source pixels."""
        if fit_scale <= 0:
            return self.get(layer_id)
        return self.update(layer_id, MoveBy(dx / fit_scale, dy / fit_scale))

    def transform_gesture(self, layer_id: str, pan: Tuple[float, float], zoom: float,
                          rotation_delta: float, fit_scale: float) -> Optional[TextLayer]:
        """
        One frame of a pinch/rotate gesture on a layer.

        Zoom multiplies the font size (clamped 10-500), the rotation delta is
        added and wrapped into [0, 360), and the pan moves the layer.
        """
        if layer_id != self._selected_id:
            self.select(layer_id)
        intents = [ScaleFontSize(zoom), RotateBy(rotation_delta)]
        if fit_scale > 0:
            intents.append(MoveBy(pan[0] / fit_scale, pan[1] / fit_scale))
        return self.update(layer_id, *intents)
