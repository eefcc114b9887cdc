"""Fan-in of outcomes reported by concurrent workers."""

import queue
import time
from typing import Optional

from dockhand.errors import WaitTimeoutError


class ErrorWaitGroup:
    """Wait group that collects ``size`` outcomes and keeps the first error.

    Every worker calls :meth:`done` exactly once, passing the exception it
    failed with or ``None``. Later errors are discarded. Waiting never
    cancels the workers; it only stops the caller from blocking.
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"Wait group size must be >= 0, got {size}")
        self.size = size
        self._outcomes: "queue.Queue[Optional[BaseException]]" = queue.Queue(maxsize=size)

    def done(self, err: Optional[BaseException] = None) -> None:
        """Report the outcome of one worker."""
        self._outcomes.put_nowait(err)

    def wait(self) -> Optional[BaseException]:
        """Block until every outcome arrived and return the first error, if any."""
        first = None
        for _ in range(self.size):
            err = self._outcomes.get()
            if err is not None and first is None:
                first = err
        return first

    def wait_for(self, timeout: float) -> Optional[BaseException]:
        """Same as :meth:`wait` with an overall deadline of ``timeout`` seconds.

        Returns a :class:`WaitTimeoutError` when the deadline elapses first.
        """
        deadline = time.monotonic() + timeout
        first = None
        for _ in range(self.size):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return WaitTimeoutError(timeout)
            try:
                err = self._outcomes.get(timeout=remaining)
            except queue.Empty:
                return WaitTimeoutError(timeout)
            if err is not None and first is None:
                first = err
        return first
