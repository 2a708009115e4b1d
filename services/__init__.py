"""
PHOTO EDIT KERNEL - Services Layer

Background execution, adjustment sessions and the editor coordinator.
"""

from services.memory_manager import MemoryManager
from services.task_runner import TaskRunner, TaskResult
from services.adjustment_session import (
    AdjustmentSession,
    BrightnessContrastSession,
    FilterSession,
    SessionState,
)
from services.editor_service import EditorService, EditMode, OperationState, OperationStatus

__all__ = [
    'MemoryManager',
    'TaskRunner',
    'TaskResult',
    'AdjustmentSession',
    'BrightnessContrastSession',
    'FilterSession',
    'SessionState',
    'EditorService',
    'EditMode',
    'OperationState',
    'OperationStatus',
]
