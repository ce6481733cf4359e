"""
JSONL utilities for telemetry record logs.

Provides locked appends, batched writes and a tolerant reader used to
inspect what a sink has recorded.
"""

import json
import sys
import time
from pathlib import Path
from typing import List, Callable, Optional
from datetime import datetime, timezone, timedelta
import fcntl


class JSONLReader:
    """Read and filter telemetry JSONL logs."""

    @staticmethod
    def read_log(
        path: Path,
        days: Optional[int] = None,
        event_type: Optional[str] = None,
        filter_fn: Optional[Callable[[dict], bool]] = None
    ) -> List[dict]:
        """
        Read JSONL with optional filtering.

        Args:
            path: Path to JSONL file
            days: Only return entries from last N days
            event_type: Only return entries of this event type
            filter_fn: Optional filter function (entry) -> bool

        Returns:
            List of dict entries
        """
        path = Path(path).expanduser()
        if not path.exists():
            return []

        cutoff = None
        if days:
            cutoff = datetime.now(timezone.utc) - timedelta(days=days)

        entries = []
        with open(path, 'r') as f:
            for line_num, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError as e:
                    print(f"Warning: Malformed JSON at {path}:{line_num}: {e}",
                          file=sys.stderr)
                    continue

                if event_type and entry.get("event_type") != event_type:
                    continue

                if cutoff:
                    try:
                        timestamp = datetime.fromisoformat(
                            entry.get("timestamp", "").replace('Z', '+00:00')
                        )
                    except (ValueError, AttributeError):
                        continue
                    if timestamp < cutoff:
                        continue

                if filter_fn and not filter_fn(entry):
                    continue

                entries.append(entry)

        return entries


class JSONLWriter:
    """Process-safe JSONL appender using an exclusive file lock."""

    def __init__(self, path: Path):
        """
        Initialize writer.

        Args:
            path: Path to JSONL file ("~" is expanded)
        """
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, data: dict):
        """Atomically append one entry."""
        self.append_batch([data])

    def append_batch(self, data_list: List[dict]):
        """
        Atomically append multiple entries.

        Args:
            data_list: List of dictionaries to append
        """
        if not data_list:
            return

        with open(self.path, 'a') as f:
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                for data in data_list:
                    f.write(json.dumps(data, ensure_ascii=False, default=str) + '\n')
                f.flush()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)


class BatchedJSONLWriter:
    """
    Buffered JSONL writer with automatic batching.

    Accumulates entries in memory and flushes when:
    - Buffer reaches batch_size
    - Time since last flush exceeds flush_interval
    - flush() is called explicitly

    While the destination stays unwritable, at most max_buffer entries are
    retained; the oldest are dropped with a warning.
    """

    def __init__(
        self,
        path: Path,
        batch_size: int = 10,
        flush_interval: float = 5.0,
        max_buffer: int = 1000
    ):
        """
        Initialize batched writer.

        Args:
            path: Path to JSONL file
            batch_size: Flush when buffer reaches this size
            flush_interval: Flush after this many seconds (0 = disable)
            max_buffer: Most entries kept while flushes keep failing
        """
        self.writer = JSONLWriter(path)
        self.path = self.writer.path
        self.batch_size = max(1, int(batch_size))
        self.flush_interval = flush_interval
        self.max_buffer = max(self.batch_size, int(max_buffer))
        self.buffer = []
        self.last_flush = time.monotonic()

    def append(self, data: dict):
        """
        Add entry to buffer (may trigger flush).

        Args:
            data: Dictionary to append
        """
        self.buffer.append(data)

        should_flush = (
            len(self.buffer) >= self.batch_size or
            (self.flush_interval > 0 and
             (time.monotonic() - self.last_flush) > self.flush_interval)
        )

        if should_flush:
            self.flush()

    def flush(self):
        """Force flush buffered entries to disk."""
        if not self.buffer:
            return

        try:
            self.writer.append_batch(self.buffer)
            self.buffer.clear()
            self.last_flush = time.monotonic()
        except OSError as e:
            print(f"Warning: Failed to flush batch to {self.path}: {e}",
                  file=sys.stderr)
            overflow = len(self.buffer) - self.max_buffer
            if overflow > 0:
                del self.buffer[:overflow]
                print(f"Warning: Dropped {overflow} unwritten entries for {self.path}",
                      file=sys.stderr)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Flush remaining buffer."""
        self.flush()

    def __del__(self):
        """Destructor - flush on cleanup."""
        try:
            self.flush()
        except Exception:
            pass  # Don't raise exceptions in destructor
