"""
PHOTO EDIT KERNEL - Errors

Exception types surfaced by decode, export and mode handling.
Geometry never raises (it clamps) and a missing text layer is a no-op,
so neither has an exception here.
"""


class EditorError(Exception):
    """Base class for editor failures."""


class DecodeError(EditorError):
    """The image source is unreadable or is not a valid raster."""


class ExportError(EditorError):
    """Encoding the flattened image or writing it to the sink failed."""


class SessionConflictError(EditorError):
    """An editing mode was requested while another one is still active."""
