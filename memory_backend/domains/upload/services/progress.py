"""
Progress Tracker for Upload Domain
Turns chunk acknowledgements into a monotonically non-decreasing fraction
"""
import time
import threading
from typing import Callable, Optional

from domains.upload.config import UploadConfig

ProgressCallback = Callable[[float, int, int], None]


class ProgressTracker:
    """
    Per-upload progress reporting.

    The callback receives ``(fraction, bytes_transferred, total_bytes)``
    where ``fraction`` is in [0, 1] and never decreases, even when a resumed
    transfer re-sends bytes the server already had. Emissions are
    rate-limited to one per ``emit_interval`` seconds; the first and the
    final (1.0) update are always delivered.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        emit_interval: float = UploadConfig.EMIT_INTERVAL
    ):
        self.callback = callback
        self.emit_interval = emit_interval
        self.fraction = 0.0
        self.bytes_transferred = 0
        self.total_bytes = 0
        self.last_emit_time: Optional[float] = None
        self._lock = threading.Lock()

    def update(self, bytes_transferred: int, total_bytes: int) -> None:
        """Record an acknowledged offset and emit if due."""
        if total_bytes <= 0:
            fraction = 1.0
        else:
            fraction = min(max(bytes_transferred / total_bytes, 0.0), 1.0)

        with self._lock:
            if fraction < self.fraction:
                return
            if fraction >= 1.0 and self.fraction >= 1.0 and self.last_emit_time is not None:
                return
            self.fraction = fraction
            self.bytes_transferred = bytes_transferred
            self.total_bytes = total_bytes

            now = time.monotonic()
            due = (
                self.last_emit_time is None
                or fraction >= 1.0
                or now - self.last_emit_time >= self.emit_interval
            )
            if not due:
                return
            self.last_emit_time = now

        if self.callback:
            self.callback(fraction, bytes_transferred, total_bytes)
