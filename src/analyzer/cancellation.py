"""Cooperative cancellation for long reference scans."""
import threading


class OperationCancelled(Exception):
    """Raised inside a scan when its token is cancelled. Not an analysis error."""


class CancellationToken:
    """Thread-safe cancellation flag checked periodically by scanners."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self):
        """Raise OperationCancelled if cancellation was requested."""
        if self._event.is_set():
            raise OperationCancelled()
