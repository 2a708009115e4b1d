"""
Filter Presets for PHOTO EDIT KERNEL

Each preset is a fixed 4x5 color matrix applied per pixel as

    [R', G', B', A'] = M[:, :4] @ [R, G, B, A] + M[:, 4]

with channel values in 0-255 and results clamped to that range.
"""

import numpy as np

# Rec.709 luminance weights, as used by a zero-saturation color matrix
LUMA_R = 0.213
LUMA_G = 0.715
LUMA_B = 0.072

IDENTITY_MATRIX = np.array([
    [1, 0, 0, 0, 0],
    [0, 1, 0, 0, 0],
    [0, 0, 1, 0, 0],
    [0, 0, 0, 1, 0],
], dtype=np.float32)


def saturation_matrix(saturation: float) -> np.ndarray:
    """Saturation matrix; 0 is fully desaturated, 1 is the identity."""
    s = float(saturation)
    inv = 1.0 - s
    r = inv * LUMA_R
    g = inv * LUMA_G
    b = inv * LUMA_B
    return np.array([
        [r + s, g, b, 0, 0],
        [r, g + s, b, 0, 0],
        [r, g, b + s, 0, 0],
        [0, 0, 0, 1, 0],
    ], dtype=np.float32)


def scale_matrix(r: float, g: float, b: float, a: float = 1.0) -> np.ndarray:
    """Per-channel multiplier matrix."""
    m = np.zeros((4, 5), dtype=np.float32)
    m[0, 0], m[1, 1], m[2, 2], m[3, 3] = r, g, b, a
    return m


def _make_preset(name: str, description: str, rows=None) -> dict:
    """Helper to create a preset; rows default to the identity matrix."""
    if rows is None:
        matrix = IDENTITY_MATRIX.copy()
    else:
        matrix = np.array(rows, dtype=np.float32)
        if matrix.shape != (4, 5):
            raise ValueError(f"Preset '{name}' matrix must be 4x5, got {matrix.shape}")
    matrix.flags.writeable = False
    return {
        'name': name,
        'description': description,
        'matrix': matrix,
    }


def _polaroid_rows() -> list:
    """Higher contrast around mid-gray with a warm (yellow) cast."""
    contrast = 1.2
    translate = 128.0 * (1.0 - contrast)
    return [
        [contrast * 1.0, 0, 0, 0, translate + 10],
        [0, contrast * 0.95, 0, 0, translate + 10],
        [0, 0, contrast * 0.8, 0, translate - 20],
        [0, 0, 0, 1, 0],
    ]


# ============================================================================
# FILTER PRESETS
# ============================================================================

PRESETS = {
    # Original - no change
    'original': _make_preset(
        'Original',
        'No filter applied',
    ),

    'grayscale': _make_preset(
        'Grayscale',
        'Desaturated to luminance',
        rows=saturation_matrix(0.0),
    ),

    'sepia': _make_preset(
        'Sepia',
        'Vintage brown tone',
        rows=[
            [0.393, 0.769, 0.189, 0, 0],
            [0.349, 0.686, 0.168, 0, 0],
            [0.272, 0.534, 0.131, 0, 0],
            [0, 0, 0, 1, 0],
        ],
    ),

    'warm': _make_preset(
        'Warm',
        'Slightly more red, slightly less blue',
        rows=scale_matrix(1.1, 1.0, 0.9),
    ),

    'cool': _make_preset(
        'Cool',
        'Slightly more blue, slightly less red',
        rows=scale_matrix(0.9, 1.0, 1.1),
    ),

    'invert': _make_preset(
        'Invert',
        'Negative colors',
        rows=[
            [-1, 0, 0, 0, 255],
            [0, -1, 0, 0, 255],
            [0, 0, -1, 0, 255],
            [0, 0, 0, 1, 0],
        ],
    ),

    'polaroid': _make_preset(
        'Polaroid',
        'Punchy contrast with a yellow cast',
        rows=_polaroid_rows(),
    ),
}

# Ordered list for display
PRESET_ORDER = [
    'original',
    'grayscale',
    'sepia',
    'warm',
    'cool',
    'invert',
    'polaroid',
]

DEFAULT_FILTER = 'original'


def get_preset(key: str) -> dict:
    """Get a preset by key.

    Raises:
        KeyError: if the key names no preset
    """
    try:
        return PRESETS[key]
    except KeyError:
        raise KeyError(f"Unknown filter: {key}. Valid filters: {PRESET_ORDER}") from None
