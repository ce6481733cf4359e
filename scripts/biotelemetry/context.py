"""
Context utilities for telemetry.

Resolves per-subject debug mode and wires recorders to the configured
sink and diagnostic log.
"""

from statslog.config import config


def debug_subjects() -> set:
    """
    Subject ids listed under debug.subjects, as integers.

    Numeric strings from a JSON config file are accepted; other values are
    ignored.
    """
    subjects = set()
    for item in config.get('debug.subjects') or []:
        try:
            subjects.add(int(item))
        except (TypeError, ValueError):
            continue
    return subjects


def is_debug_enabled(subject_id: int) -> bool:
    """
    Check whether debug telemetry is enabled for a subject.

    Args:
        subject_id: Subject (user/profile) the event belongs to

    Returns:
        True if debug mode is on globally or for this subject
    """
    if config.is_enabled('debug'):
        return True
    return subject_id in debug_subjects()


def is_verbose() -> bool:
    """Process-wide verbose diagnostics flag."""
    return bool(config.get('diagnostics.verbose', False))


def create_recorder(modality, action, client, sink=None, log=None, **kwargs):
    """
    Create a recorder for one operation attempt.

    Args:
        modality: Modality of the operation
        action: Action being performed
        client: Calling client category
        sink: Metrics sink (defaults to the process-wide JSONL sink)
        log: Diagnostic log (defaults to a stderr DiagnosticLog)
        **kwargs: Passed through to OperationRecorder

    Returns:
        OperationRecorder instance
    """
    from .recorder import OperationRecorder
    from .sinks import DiagnosticLog, get_sink

    kwargs.setdefault('verbose', is_verbose())
    kwargs.setdefault('debug_mode', is_debug_enabled)
    return OperationRecorder(
        modality,
        action,
        client,
        sink if sink is not None else get_sink(),
        log=log if log is not None else DiagnosticLog(),
        **kwargs
    )
