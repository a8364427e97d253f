"""JSONL event logger for completion and compression metrics."""

import json
import logging
import threading
import time
from pathlib import Path

log = logging.getLogger(__name__)


class MetricsLogger:
    """Thread-safe JSONL logger with periodic flushing.

    Every event is stamped with the wall-clock time and the static
    ``fields`` given at construction (for example the model id).
    """

    def __init__(self, metrics_config: dict, **fields):
        self._enabled = bool(metrics_config.get("enabled", False))
        self._file_path = Path(metrics_config.get("file", "chat_metrics.jsonl"))
        try:
            flush_interval = int(metrics_config.get("flush_interval", 10))
        except (TypeError, ValueError):
            flush_interval = 10
        self._flush_interval = max(1, flush_interval)
        self._fields = fields

        self._buffer: list[str] = []
        self._lock = threading.Lock()
        self._event_count = 0
        self._dropped_count = 0
        self._last_warn_s = 0.0
        self._warn_interval_s = 30.0

        if self._enabled:
            try:
                self._file_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError:
                self._enabled = False
                self._warn("metrics path is not writable; disabling metrics")

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    def log(self, event_type: str, **data) -> None:
        """Buffer an event; flushes every ``flush_interval`` events."""
        if not self._enabled:
            return

        entry = {
            "timestamp": time.time(),
            "event": event_type,
            **self._fields,
            **data,
        }
        try:
            line = json.dumps(entry, ensure_ascii=False)
        except (TypeError, ValueError, OverflowError):
            with self._lock:
                self._dropped_count += 1
            self._warn("metrics serialization failed; dropping event")
            return

        with self._lock:
            self._buffer.append(line)
            self._event_count += 1
            if self._event_count % self._flush_interval == 0:
                self._flush_locked_safe()

    def flush(self) -> None:
        """Write all buffered events to disk."""
        with self._lock:
            self._flush_locked_safe()

    def _flush_locked_safe(self) -> None:
        """Flush with the lock held; filesystem errors drop the buffer."""
        if not self._buffer:
            return
        try:
            with open(self._file_path, "a", encoding="utf-8") as f:
                f.write("\n".join(self._buffer) + "\n")
        except (OSError, ValueError):
            self._dropped_count += len(self._buffer)
            self._warn("metrics flush failed; dropping buffered events")
        self._buffer.clear()

    def _warn(self, message: str) -> None:
        now = time.monotonic()
        if now - self._last_warn_s < self._warn_interval_s:
            return
        self._last_warn_s = now
        log.warning(message)
