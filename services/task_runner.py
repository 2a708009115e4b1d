"""
PHOTO EDIT KERNEL - Task Runner

Thread pool for decode/transform/export work. Failures are caught at the
task boundary and turned into TaskResult values instead of escaping as
uncaught exceptions.
"""

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional

from services.memory_manager import MemoryManager


@dataclass
class TaskResult:
    """Outcome of one background task."""
    name: str
    ok: bool
    value: Any = None
    error: Optional[str] = None
    exception: Optional[BaseException] = None


class TaskRunner:
    """
    Runs discrete, blocking units of work on a ThreadPoolExecutor.

    Every task runs to completion once started; tasks not yet started are
    dropped by shutdown(cancel_pending=True). Nothing is retried.
    """

    def __init__(self, max_workers: Optional[int] = None, name: str = "editor"):
        """
        Args:
            max_workers: Thread count; defaults to MemoryManager.get_optimal_workers()
            name: Thread name prefix, also used in log lines
        """
        self._memory_manager = MemoryManager()
        self._workers = max_workers or self._memory_manager.get_optimal_workers()
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix=name)

    @property
    def executor(self) -> Executor:
        return self._executor

    @property
    def memory_manager(self) -> MemoryManager:
        return self._memory_manager

    def submit(self, name: str, fn: Callable, *args, **kwargs) -> Future:
        """Schedule fn(*args, **kwargs); the future resolves to a TaskResult."""
        return self._executor.submit(self._run, name, fn, args, kwargs)

    def _run(self, name: str, fn: Callable, args: tuple, kwargs: dict) -> TaskResult:
        try:
            value = fn(*args, **kwargs)
        except Exception as e:
            print(f"[TaskRunner:{self._name}] {name} failed: {e}")
            return TaskResult(name=name, ok=False, error=str(e) or type(e).__name__, exception=e)
        return TaskResult(name=name, ok=True, value=value)

    def shutdown(self, wait: bool = True, cancel_pending: bool = False):
        """Shut down the executor."""
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)

    def get_worker_count(self) -> int:
        """Get the number of worker threads."""
        return self._workers
