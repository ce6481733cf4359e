"""
Shared utilities for biometric telemetry.

This package provides common utilities used by the telemetry core:
- jsonl_utils: JSONL file reading/writing with locking and batching
- config: Unified configuration management
"""

from .jsonl_utils import JSONLReader, JSONLWriter, BatchedJSONLWriter
from .config import TelemetryConfig, config

__all__ = [
    'JSONLReader',
    'JSONLWriter',
    'BatchedJSONLWriter',
    'TelemetryConfig',
    'config',
]

__version__ = '1.0.0'
