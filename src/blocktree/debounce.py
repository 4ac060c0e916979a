"""Trailing-edge debounce with a pluggable scheduler.

The default scheduler never starts a thread: the pending call is parked
until the owner pumps ``poll()`` (runs it once ``wait`` has elapsed) or
``flush()`` (runs it now), so callbacks fire on the caller's thread.
Pass ``thread_timer_scheduler`` to have a ``threading.Timer`` fire it
instead; callbacks then run on the timer thread.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any, Protocol


class Cancellable(Protocol):
    def cancel(self) -> None: ...


# (delay_seconds, callback) -> handle with cancel()
Scheduler = Callable[[float, Callable[[], None]], Cancellable]


class _Parked:
    """Handle for a call that waits for poll() or flush()."""

    def cancel(self) -> None:
        pass


def deferred_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    return _Parked()


def thread_timer_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class Debouncer:
    """Runs ``func`` once the calls have stopped for ``wait`` seconds.

    Each call replaces the pending arguments. A ``wait`` of zero or less
    calls straight through.
    """

    def __init__(
        self,
        func: Callable[..., None],
        wait: float,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.func = func
        self.wait = wait
        self.scheduler = scheduler or deferred_scheduler
        self.clock = clock
        self._lock = threading.Lock()
        self._handle: Cancellable | None = None
        self._args: tuple[Any, ...] = ()
        self._generation = 0
        self._due = 0.0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any) -> None:
        if self.wait <= 0:
            self.func(*args)
            return
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._args = args
            self._due = self.clock() + self.wait
            self._generation += 1
            generation = self._generation
            self._handle = self.scheduler(self.wait, lambda: self._fire(generation))

    def _fire(self, generation: int | None = None) -> bool:
        with self._lock:
            if self._handle is None:
                return False
            # a timer superseded by a later call
            if generation is not None and generation != self._generation:
                return False
            self._handle = None
            args, self._args = self._args, ()
        self.func(*args)
        return True

    def poll(self) -> bool:
        """Run the pending call if its wait has elapsed.

        Returns:
            True when the call ran.
        """
        with self._lock:
            if self._handle is None or self.clock() < self._due:
                return False
        return self.flush()

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            self._args = ()

    def flush(self) -> bool:
        """Run the pending call now, if any."""
        with self._lock:
            if self._handle is None:
                return False
            self._handle.cancel()
        return self._fire()
