"""
PHOTO EDIT KERNEL - Debounced Jobs

Delay a job until input has been quiet for a fixed period, replacing any
job that is still waiting.
"""

import threading
from concurrent.futures import Executor, Future
from typing import Callable, Optional

from constants import Adjust


class Debouncer:
    """
    Cancellable delayed submission to an executor.

    Each schedule() cancels the waiting job (if any) and arms a new timer, so
    at most one job is pending and a burst of calls settles to one run with
    the last arguments. A job that has already been handed to the executor is
    never interrupted.
    """

    def __init__(self, executor: Executor, delay: float = Adjust.DEBOUNCE_MS / 1000.0):
        self._executor = executor
        self._delay = delay
        self._cond = threading.Condition()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._running = 0

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def is_pending(self) -> bool:
        """True while a job is waiting for its quiet period to elapse."""
        with self._cond:
            return self._timer is not None

    @property
    def is_idle(self) -> bool:
        with self._cond:
            return self._timer is None and self._running == 0

    def schedule(self, fn: Callable, *args):
        """Run fn(*args) on the executor after the quiet period."""
        with self._cond:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self._delay, self._fire, args=(self._generation, fn, args))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self, generation: int, fn: Callable, args: tuple):
        with self._cond:
            # A newer schedule() or cancel() superseded this timer
            if generation != self._generation:
                return
            self._timer = None
            self._running += 1
            try:
                future = self._executor.submit(fn, *args)
            except RuntimeError:
                # Executor shut down
                self._running -= 1
                self._cond.notify_all()
                return
        future.add_done_callback(self._on_done)

    def _on_done(self, future: Future):
        with self._cond:
            self._running -= 1
            self._cond.notify_all()

    def cancel(self) -> bool:
        """Drop the waiting job. Returns True if one was waiting."""
        with self._cond:
            self._generation += 1
            pending = self._timer is not None
            if pending:
                self._timer.cancel()
                self._timer = None
            self._cond.notify_all()
            return pending

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is waiting or running. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._timer is None and self._running == 0, timeout)
