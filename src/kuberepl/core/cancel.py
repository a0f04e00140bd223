"""
Cooperative cancellation for foreground operations.

A single token is owned by each session and handed to whatever blocking
operation is running. An interrupt handler flips it; the operation notices
at its next poll boundary.
"""

import threading


class CancellationToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleeps up to `timeout` seconds, returning early (True) if cancelled."""
        return self._event.wait(timeout)
