"""
Bounded, thread-safe text buffer for a port-forward's captured output.

One background reader appends; foreground commands take snapshots. Once
`capacity` characters are exceeded the oldest text is dropped.
"""

import threading

DEFAULT_CAPACITY = 64 * 1024


class OutputBuffer:
    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._lock = threading.Lock()
        self._text = ""
        self._dropped = 0

    def append(self, text: str):
        with self._lock:
            self._text += text
            overflow = len(self._text) - self.capacity
            if overflow > 0:
                self._text = self._text[overflow:]
                self._dropped += overflow

    def snapshot(self) -> str:
        with self._lock:
            return self._text

    @property
    def dropped(self) -> int:
        """Characters discarded so far to stay within capacity."""
        with self._lock:
            return self._dropped
