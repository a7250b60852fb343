"""
Cooperative cancellation for running jobs.
"""

import threading

from ..errors import JobCancelledError


class CancellationToken:
    """
    Cancellation flag shared between the caller and a running job.

    The job checks it between batches (and every few hundred coerced rows),
    never while a batch write is in flight.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            JobCancelledError: If cancel() was called
        """
        if self._event.is_set():
            raise JobCancelledError("Job cancelled by user")
