"""
Outbound sinks for telemetry records and local diagnostics.

A metrics sink is write-only: the recorder never consults a return value,
so sink failures are reported on stderr and absorbed here.
"""

import atexit
import sys
import uuid
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, TextIO

from statslog.config import config
from statslog.jsonl_utils import BatchedJSONLWriter

from .schema import AcquiredRecord, AuthenticatedRecord, EnrolledRecord, ErrorRecord


class MetricsSink:
    """
    Base metrics sink with one write operation per event kind.

    Subclasses normally override write(); the per-kind methods exist so a
    sink can treat individual record kinds differently.
    """

    def write_acquired(self, record: AcquiredRecord):
        self.write(record)

    def write_error(self, record: ErrorRecord):
        self.write(record)

    def write_authenticated(self, record: AuthenticatedRecord):
        self.write(record)

    def write_enrolled(self, record: EnrolledRecord):
        self.write(record)

    def write(self, record):
        raise NotImplementedError

    def flush(self):
        """Push any buffered records out (no-op by default)."""


class MemoryMetricsSink(MetricsSink):
    """Keeps emitted records in memory for local inspection."""

    def __init__(self):
        self.records = []

    def write(self, record):
        self.records.append(record)

    def of_type(self, event_type: str) -> List:
        """Records whose event_type matches."""
        return [r for r in self.records if r.event_type == event_type]

    def clear(self):
        self.records.clear()


class JSONLMetricsSink(MetricsSink):
    """
    Appends each record as one JSON line.

    Lines carry an event id, a UTC timestamp and the event type next to
    the record fields. Writes are batched through BatchedJSONLWriter.
    """

    def __init__(
        self,
        log_path: Path,
        batch_size: int = 10,
        flush_interval: float = 5.0,
        enabled: bool = True
    ):
        """
        Args:
            log_path: Destination JSONL file
            batch_size: Flush after this many buffered records
            flush_interval: Flush after this many seconds (0 = disable)
            enabled: When False, records are dropped without touching disk
        """
        self.enabled = enabled
        self.writer = None
        if not enabled:
            return

        try:
            self.writer = BatchedJSONLWriter(
                log_path,
                batch_size=batch_size,
                flush_interval=flush_interval
            )
        except OSError as e:
            print(f"Warning: Failed to open telemetry log {log_path}: {e}", file=sys.stderr)
            self.enabled = False

    def write(self, record):
        if not self.enabled:
            return

        entry = {
            "event_id": str(uuid.uuid4()),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": record.event_type,
            **record.to_dict()
        }

        try:
            self.writer.append(entry)
        except OSError as e:
            print(f"Warning: Failed to log telemetry record: {e}", file=sys.stderr)

    def flush(self):
        """Force flush buffered records to disk."""
        if self.enabled and self.writer is not None:
            self.writer.flush()

    def __del__(self):
        """Destructor - flush on cleanup."""
        try:
            self.flush()
        except Exception:
            pass  # Don't raise in destructor


class DiagnosticLog:
    """
    Local diagnostic line sink.

    Never part of the authoritative telemetry path. Each call prints one
    line tagged with the component name; the most recent lines are also
    kept in memory.
    """

    def __init__(
        self,
        tag: Optional[str] = None,
        stream: Optional[TextIO] = None,
        history_size: Optional[int] = None
    ):
        self.tag = tag or config.get('diagnostics.tag', 'Biometrics/OperationRecorder')
        self.stream = stream
        self.lines = deque(maxlen=history_size or config.get('diagnostics.history_size', 200))

    def verbose(self, message: str):
        self._emit("V", message)

    def warning(self, message: str):
        self._emit("W", message)

    def warnings(self) -> List[str]:
        """Recorded warning lines."""
        return [line for line in self.lines if line.startswith("W/")]

    def _emit(self, level: str, message: str):
        line = f"{level}/{self.tag}: {message}"
        self.lines.append(line)
        # Resolved per call so redirected stderr is honoured
        print(line, file=self.stream or sys.stderr)


_sink = None


def get_sink() -> JSONLMetricsSink:
    """
    Get the process-wide JSONL metrics sink, configured from statslog.config.

    Returns:
        JSONLMetricsSink instance
    """
    global _sink
    if _sink is None:
        _sink = JSONLMetricsSink(
            Path(config.get('telemetry.log_path')),
            batch_size=config.get('telemetry.batch_size', 10),
            flush_interval=config.get('telemetry.batch_flush_interval_sec', 5.0),
            enabled=config.is_enabled('telemetry')
        )
    return _sink


def reset_sink():
    """Flush and drop the process-wide sink so the next get_sink() rereads config."""
    global _sink
    if _sink is not None:
        _sink.flush()
    _sink = None


def _flush_at_exit():
    if _sink is not None:
        _sink.flush()


# Buffered records reach disk before the interpreter exits
atexit.register(_flush_at_exit)
