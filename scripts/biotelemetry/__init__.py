"""
Telemetry package for biometric operations.

Records outcome and timing of each operation attempt as structured,
privacy-gated records, with pluggable sinks and local diagnostics.
"""

from .schema import (
    LATENCY_UNSET,
    AcquiredInfo,
    Modality,
    Action,
    ClientCategory,
    AuthState,
    AcquiredRecord,
    ErrorRecord,
    AuthenticatedRecord,
    EnrolledRecord
)

from .sinks import (
    MetricsSink,
    MemoryMetricsSink,
    JSONLMetricsSink,
    DiagnosticLog,
    get_sink,
    reset_sink
)
from .recorder import OperationRecorder, derive_auth_state, start_marker_for
from .context import is_debug_enabled, is_verbose, create_recorder
from .capability import CapabilityDescriptor, FormatSpec, ModelState, model_state_to_string

__all__ = [
    # Schemas
    'LATENCY_UNSET',
    'AcquiredInfo',
    'Modality',
    'Action',
    'ClientCategory',
    'AuthState',
    'AcquiredRecord',
    'ErrorRecord',
    'AuthenticatedRecord',
    'EnrolledRecord',
    # Sinks
    'MetricsSink',
    'MemoryMetricsSink',
    'JSONLMetricsSink',
    'DiagnosticLog',
    'get_sink',
    'reset_sink',
    # Recorder
    'OperationRecorder',
    'derive_auth_state',
    'start_marker_for',
    # Context
    'is_debug_enabled',
    'is_verbose',
    'create_recorder',
    # Capability descriptor
    'CapabilityDescriptor',
    'FormatSpec',
    'ModelState',
    'model_state_to_string',
]

__version__ = '1.0.0'
