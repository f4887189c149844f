"""Access Log Analyzer - Cancellation token"""

import threading


class CancelToken:
    """Thread-safe flag a caller sets to stop a long-running parse or export.

    Workers poll ``cancelled`` between records; a record is never abandoned
    half way through.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
