"""
Telemetry recorder for one biometric operation attempt.

An OperationRecorder is created when an attempt begins and dropped when it
concludes. It tracks when the first usable signal appeared, derives
latencies from it and forwards one record per reported event to a metrics
sink. Records are suppressed entirely when any part of the operation's
classification is unknown; local diagnostics still run.

Calls against one recorder must be serialized by the caller. There is no
internal locking and no teardown step.
"""

import time
from typing import Callable, Optional, Union

from .schema import (
    LATENCY_UNSET,
    AcquiredInfo,
    AcquiredRecord,
    Action,
    AuthenticatedRecord,
    AuthState,
    ClientCategory,
    EnrolledRecord,
    ErrorRecord,
    Modality,
)
from .context import is_debug_enabled
from .sinks import DiagnosticLog, MetricsSink


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _label(value):
    return getattr(value, "name", value)


def _coerce(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        return value


def derive_auth_state(
    authenticated: bool,
    requires_confirmation: bool,
    is_prompt_context: bool
) -> AuthState:
    """
    Map an authentication result to its reported outcome.

    AuthState.UNKNOWN is never returned; every input combination resolves
    to REJECTED, PENDING_CONFIRMATION or CONFIRMED.
    """
    if not authenticated:
        return AuthState.REJECTED
    if is_prompt_context and requires_confirmation:
        return AuthState.PENDING_CONFIRMATION
    return AuthState.CONFIRMED


def start_marker_for(modality) -> int:
    """Signal kind that marks the start of a usable acquisition for a modality."""
    if modality == Modality.FACE:
        return AcquiredInfo.FACE_START
    if modality == Modality.FINGERPRINT:
        return AcquiredInfo.FINGERPRINT_START
    return AcquiredInfo.GOOD


class OperationRecorder:
    """
    Records outcome and timing telemetry for a single operation attempt.

    Args:
        modality: Modality of the operation
        action: Action being performed
        client: Calling client category
        sink: Metrics sink receiving emitted records
        log: Diagnostic log for local lines (a stderr DiagnosticLog by default)
        crypto_operation: Whether the attempt backs a cryptographic operation,
            as a bool or a zero-argument callable evaluated per record
        debug_mode: Per-subject debug query, (subject_id) -> bool
        clock: Wall clock in milliseconds
        verbose: Emit full-detail diagnostic lines
    """

    def __init__(
        self,
        modality: Modality,
        action: Action,
        client: ClientCategory,
        sink: MetricsSink,
        log: Optional[DiagnosticLog] = None,
        crypto_operation: Union[bool, Callable[[], bool]] = False,
        debug_mode: Optional[Callable[[int], bool]] = None,
        clock: Optional[Callable[[], int]] = None,
        verbose: bool = False
    ):
        self.modality = _coerce(Modality, modality)
        self.action = _coerce(Action, action)
        self.client = _coerce(ClientCategory, client)
        self.sink = sink
        self.log = log if log is not None else DiagnosticLog()
        self._crypto_operation = crypto_operation
        self._debug_mode = debug_mode or is_debug_enabled
        self._clock = clock or _wall_clock_ms
        self.verbose = verbose

        # Unset until the first qualifying acquisition signal
        self.first_signal_time_ms = None

    def is_crypto_operation(self) -> bool:
        if callable(self._crypto_operation):
            return bool(self._crypto_operation())
        return bool(self._crypto_operation)

    def is_any_field_unknown(self) -> bool:
        """True when the classification gate blocks outbound records."""
        return (self.modality == Modality.UNKNOWN
                or self.action == Action.UNKNOWN
                or self.client == ClientCategory.UNKNOWN)

    def _elapsed_since_first_signal(self) -> int:
        if self.first_signal_time_ms is None:
            return LATENCY_UNSET
        return self._clock() - self.first_signal_time_ms

    def sanitize_latency(self, latency: int) -> int:
        """
        Clamp impossible latencies to the sentinel.

        LATENCY_UNSET passes through silently; any other negative value is
        logged as an anomaly and replaced by LATENCY_UNSET.
        """
        if latency == LATENCY_UNSET:
            return LATENCY_UNSET
        if latency < 0:
            self.log.warning(f"found a negative latency : {latency}")
            return LATENCY_UNSET
        return latency

    def report_signal_acquired(self, signal_kind: int, vendor_detail: int, subject_id: int):
        """
        Report an acquisition signal.

        The first signal matching the modality's start marker becomes the
        latency origin for later error and authentication reports.
        """
        if (self.first_signal_time_ms is None
                and signal_kind == start_marker_for(self.modality)):
            self.first_signal_time_ms = self._clock()

        is_crypto = self.is_crypto_operation()
        if self.verbose:
            self.log.verbose(
                f"Acquired! Modality: {_label(self.modality)}, User: {subject_id}, "
                f"IsCrypto: {is_crypto}, Action: {_label(self.action)}, "
                f"Client: {_label(self.client)}, AcquiredInfo: {signal_kind}, "
                f"VendorCode: {vendor_detail}")

        if self.is_any_field_unknown():
            return

        self.sink.write_acquired(AcquiredRecord(
            modality=self.modality,
            subject_id=subject_id,
            is_crypto=is_crypto,
            action=self.action,
            client=self.client,
            signal_kind=signal_kind,
            vendor_detail=vendor_detail,
            debug_enabled=self._debug_mode(subject_id),
        ))

    def report_error(self, error_kind: int, vendor_detail: int, subject_id: int):
        """Report an error, with latency measured from the first signal."""
        latency = self._elapsed_since_first_signal()

        is_crypto = self.is_crypto_operation()
        if self.verbose:
            self.log.verbose(
                f"Error! Modality: {_label(self.modality)}, User: {subject_id}, "
                f"IsCrypto: {is_crypto}, Action: {_label(self.action)}, "
                f"Client: {_label(self.client)}, Error: {error_kind}, "
                f"VendorCode: {vendor_detail}, Latency: {latency}")
        else:
            self.log.verbose(f"Error latency: {latency}")

        if self.is_any_field_unknown():
            return

        self.sink.write_error(ErrorRecord(
            modality=self.modality,
            subject_id=subject_id,
            is_crypto=is_crypto,
            action=self.action,
            client=self.client,
            error_kind=error_kind,
            vendor_detail=vendor_detail,
            debug_enabled=self._debug_mode(subject_id),
            latency_ms=self.sanitize_latency(latency),
        ))

    def report_authenticated(
        self,
        authenticated: bool,
        requires_confirmation: bool,
        subject_id: int,
        is_prompt_context: bool
    ):
        """Report the result of an authentication attempt."""
        state = derive_auth_state(authenticated, requires_confirmation, is_prompt_context)
        latency = self._elapsed_since_first_signal()

        is_crypto = self.is_crypto_operation()
        if self.verbose:
            self.log.verbose(
                f"Authenticated! Modality: {_label(self.modality)}, User: {subject_id}, "
                f"IsCrypto: {is_crypto}, Client: {_label(self.client)}, "
                f"RequireConfirmation: {requires_confirmation}, "
                f"State: {state.name}, Latency: {latency}")
        else:
            self.log.verbose(f"Authentication latency: {latency}")

        if self.is_any_field_unknown():
            return

        self.sink.write_authenticated(AuthenticatedRecord(
            modality=self.modality,
            subject_id=subject_id,
            is_crypto=is_crypto,
            client=self.client,
            requires_confirmation=requires_confirmation,
            state=state,
            latency_ms=self.sanitize_latency(latency),
            debug_enabled=self._debug_mode(subject_id),
        ))

    def report_enrolled(self, subject_id: int, latency: int, success: bool):
        """Report an enrollment result. The caller measures the latency."""
        if self.verbose:
            self.log.verbose(
                f"Enrolled! Modality: {_label(self.modality)}, User: {subject_id}, "
                f"Client: {_label(self.client)}, Latency: {latency}, "
                f"Success: {success}")
        else:
            self.log.verbose(f"Enroll latency: {latency}")

        if self.is_any_field_unknown():
            return

        self.sink.write_enrolled(EnrolledRecord(
            modality=self.modality,
            subject_id=subject_id,
            latency_ms=self.sanitize_latency(latency),
            success=success,
        ))
