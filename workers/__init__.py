"""
PHOTO EDIT KERNEL - Workers Module

Background job functions and the debounced job scheduler.
"""

from workers.image_processor import (
    JOB_FUNCTIONS,
    run_job,
)
from workers.debounce import Debouncer

__all__ = [
    'JOB_FUNCTIONS',
    'run_job',
    'Debouncer',
]
