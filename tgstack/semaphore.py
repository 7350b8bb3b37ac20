"""A small counting semaphore."""

from __future__ import annotations

import threading


class CountingSemaphore:
    """Lets at most ``size`` holders in at once; usable as a context manager."""

    def __init__(self, size: int) -> None:
        self.size = size
        self._semaphore = threading.BoundedSemaphore(size)

    def acquire(self) -> None:
        """Take a permit, blocking until one is free."""
        self._semaphore.acquire()

    def release(self) -> None:
        """Return a permit; raises ValueError if none is held."""
        self._semaphore.release()

    def __enter__(self) -> "CountingSemaphore":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()