#!/usr/bin/env python3
"""
Tests for the operation recorder.

Tests the classification gate, latency origin tracking, latency
sanitization, authentication outcome derivation and diagnostics.
"""

import io
import itertools
import sys
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from biotelemetry.recorder import OperationRecorder, derive_auth_state, start_marker_for
from biotelemetry.schema import (
    LATENCY_UNSET,
    AcquiredInfo,
    Action,
    AuthState,
    ClientCategory,
    Modality,
)
from biotelemetry.sinks import DiagnosticLog, MemoryMetricsSink


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


def make_recorder(
    modality=Modality.FINGERPRINT,
    action=Action.AUTHENTICATE,
    client=ClientCategory.KEYGUARD,
    **kwargs
):
    sink = MemoryMetricsSink()
    log = DiagnosticLog(tag="test", stream=io.StringIO())
    kwargs.setdefault('clock', FakeClock())
    kwargs.setdefault('debug_mode', lambda subject_id: False)
    recorder = OperationRecorder(modality, action, client, sink, log=log, **kwargs)
    return recorder, sink, log


def exercise_all(recorder):
    """Call each of the four report operations once."""
    recorder.report_signal_acquired(start_marker_for(recorder.modality), 0, 0)
    recorder.report_error(5, 0, 0)
    recorder.report_authenticated(True, False, 0, False)
    recorder.report_enrolled(0, 100, True)


def test_gate_blocks_unknown_classification():
    """Any unknown classification field suppresses every record."""
    print("Testing classification gate...")

    known = (Modality.FACE, Action.ENROLL, ClientCategory.SETTINGS)
    unknown = (Modality.UNKNOWN, Action.UNKNOWN, ClientCategory.UNKNOWN)

    for mask in itertools.product([False, True], repeat=3):
        if not any(mask):
            continue
        triple = [unknown[i] if mask[i] else known[i] for i in range(3)]
        recorder, sink, log = make_recorder(*triple, verbose=True)

        assert recorder.is_any_field_unknown()
        exercise_all(recorder)

        assert sink.records == [], f"Records emitted for {triple}"
        assert len(log.lines) > 0, "Diagnostics should still run"

    print("✓ Classification gate test passed")


def test_one_record_per_call():
    """A fully classified recorder emits exactly one record per report."""
    print("Testing one record per call...")

    recorder, sink, _ = make_recorder()
    assert not recorder.is_any_field_unknown()

    exercise_all(recorder)

    event_types = [r.event_type for r in sink.records]
    assert event_types == [
        "biometric_acquired",
        "biometric_error_occurred",
        "biometric_authenticated",
        "biometric_enrolled",
    ], f"Unexpected records: {event_types}"

    print("✓ One record per call test passed")


def test_origin_set_once():
    """Only the first qualifying signal seeds the latency origin."""
    print("Testing latency origin...")

    clock = FakeClock(5000)
    recorder, sink, _ = make_recorder(modality=Modality.FACE, clock=clock)

    # Not the face start marker
    recorder.report_signal_acquired(AcquiredInfo.GOOD, 0, 0)
    assert recorder.first_signal_time_ms is None

    recorder.report_signal_acquired(AcquiredInfo.FACE_START, 0, 0)
    assert recorder.first_signal_time_ms == 5000

    clock.advance(300)
    recorder.report_signal_acquired(AcquiredInfo.FACE_START, 0, 0)
    assert recorder.first_signal_time_ms == 5000, "Origin must not be overwritten"

    clock.advance(200)
    recorder.report_error(1, 0, 0)
    assert sink.of_type("biometric_error_occurred")[0].latency_ms == 500

    print("✓ Latency origin test passed")


def test_start_markers_per_modality():
    """Face and fingerprint use their start markers, others use GOOD."""
    print("Testing start markers...")

    assert start_marker_for(Modality.FACE) == AcquiredInfo.FACE_START
    assert start_marker_for(Modality.FINGERPRINT) == AcquiredInfo.FINGERPRINT_START
    assert start_marker_for(Modality.IRIS) == AcquiredInfo.GOOD

    recorder, _, _ = make_recorder(modality=Modality.FINGERPRINT)
    recorder.report_signal_acquired(AcquiredInfo.GOOD, 0, 0)
    assert recorder.first_signal_time_ms is None
    recorder.report_signal_acquired(AcquiredInfo.FINGERPRINT_START, 0, 0)
    assert recorder.first_signal_time_ms is not None

    recorder, _, _ = make_recorder(modality=Modality.IRIS)
    recorder.report_signal_acquired(AcquiredInfo.FINGERPRINT_START, 0, 0)
    assert recorder.first_signal_time_ms is None
    recorder.report_signal_acquired(AcquiredInfo.GOOD, 0, 0)
    assert recorder.first_signal_time_ms is not None

    # Gate does not stop origin tracking
    recorder, _, _ = make_recorder(modality=Modality.IRIS, client=ClientCategory.UNKNOWN)
    recorder.report_signal_acquired(AcquiredInfo.GOOD, 0, 0)
    assert recorder.first_signal_time_ms is not None

    print("✓ Start markers test passed")


def test_latency_without_signal():
    """Error and authentication latencies are -1 without an origin."""
    print("Testing latency without signal...")

    recorder, sink, log = make_recorder()
    recorder.report_error(3, 7, 10)
    recorder.report_authenticated(False, False, 10, False)

    assert sink.records[0].latency_ms == LATENCY_UNSET
    assert sink.records[1].latency_ms == LATENCY_UNSET
    assert log.warnings() == [], "Sentinel latency must not warn"

    print("✓ Latency without signal test passed")


def test_sanitize_latency():
    """-1 passes silently, other negatives warn, non-negatives pass."""
    print("Testing latency sanitization...")

    recorder, _, log = make_recorder()

    assert recorder.sanitize_latency(-1) == -1
    assert log.warnings() == []

    assert recorder.sanitize_latency(0) == 0
    assert recorder.sanitize_latency(1234) == 1234
    assert log.warnings() == []

    assert recorder.sanitize_latency(-2) == -1
    assert recorder.sanitize_latency(-500) == -1
    assert len(log.warnings()) == 2
    assert "-500" in log.warnings()[1]

    print("✓ Latency sanitization test passed")


def test_clock_skew_sanitized():
    """A clock moving backwards yields the sentinel and a warning."""
    print("Testing clock skew...")

    clock = FakeClock(10_000)
    recorder, sink, log = make_recorder(clock=clock)
    recorder.report_signal_acquired(AcquiredInfo.FINGERPRINT_START, 0, 0)

    clock.advance(-40)
    recorder.report_authenticated(True, False, 0, False)

    assert sink.of_type("biometric_authenticated")[0].latency_ms == LATENCY_UNSET
    assert len(log.warnings()) == 1

    print("✓ Clock skew test passed")


def test_enrolled_latency_is_verbatim():
    """Enrollment latency comes from the caller, not the origin."""
    print("Testing enrollment latency...")

    clock = FakeClock()
    recorder, sink, log = make_recorder(action=Action.ENROLL, clock=clock)
    recorder.report_signal_acquired(AcquiredInfo.FINGERPRINT_START, 0, 3)
    origin = recorder.first_signal_time_ms
    clock.advance(9999)

    recorder.report_enrolled(3, 420, True)
    recorder.report_enrolled(3, -1, False)
    recorder.report_enrolled(3, -7, False)

    enrolled = sink.of_type("biometric_enrolled")
    assert [r.latency_ms for r in enrolled] == [420, -1, -1]
    assert [r.success for r in enrolled] == [True, False, False]
    assert recorder.first_signal_time_ms == origin
    assert len(log.warnings()) == 1

    print("✓ Enrollment latency test passed")


def test_auth_state_derivation():
    """Outcome derivation never produces UNKNOWN."""
    print("Testing auth state derivation...")

    for confirm, prompt in itertools.product([False, True], repeat=2):
        assert derive_auth_state(False, confirm, prompt) == AuthState.REJECTED

    assert derive_auth_state(True, True, True) == AuthState.PENDING_CONFIRMATION
    assert derive_auth_state(True, True, False) == AuthState.CONFIRMED
    assert derive_auth_state(True, False, True) == AuthState.CONFIRMED
    assert derive_auth_state(True, False, False) == AuthState.CONFIRMED

    states = {
        derive_auth_state(*flags)
        for flags in itertools.product([False, True], repeat=3)
    }
    assert AuthState.UNKNOWN not in states

    recorder, sink, _ = make_recorder(client=ClientCategory.BIOMETRIC_PROMPT)
    recorder.report_authenticated(True, True, 0, True)
    record = sink.records[0]
    assert record.state == AuthState.PENDING_CONFIRMATION
    assert record.requires_confirmation is True

    print("✓ Auth state derivation test passed")


def test_record_fields():
    """Records carry classification, subject, crypto and debug flags."""
    print("Testing record fields...")

    calls = []

    def crypto():
        calls.append(1)
        return True

    recorder, sink, _ = make_recorder(
        modality=Modality.FACE,
        action=Action.AUTHENTICATE,
        client=ClientCategory.KEYGUARD,
        crypto_operation=crypto,
        debug_mode=lambda subject_id: subject_id == 11
    )

    recorder.report_signal_acquired(AcquiredInfo.FACE_START, 42, 11)
    recorder.report_error(8, 9, 12)

    acquired, error = sink.records
    assert acquired.as_tuple() == (
        Modality.FACE, 11, True, Action.AUTHENTICATE, ClientCategory.KEYGUARD,
        AcquiredInfo.FACE_START, 42, True
    )
    assert error.error_kind == 8
    assert error.vendor_detail == 9
    assert error.debug_enabled is False
    assert len(calls) == 2, "Crypto predicate evaluated per record"

    print("✓ Record fields test passed")


def test_plain_int_classification():
    """Integer classification values are accepted."""
    print("Testing integer classification...")

    recorder, sink, _ = make_recorder(modality=4, action=2, client=1)
    assert recorder.modality is Modality.FACE
    recorder.report_error(1, 0, 0)
    assert len(sink.records) == 1

    recorder, sink, _ = make_recorder(modality=0, action=2, client=1)
    recorder.report_error(1, 0, 0)
    assert sink.records == []

    print("✓ Integer classification test passed")


def test_diagnostics():
    """Latency is always logged; full detail only when verbose."""
    print("Testing diagnostics...")

    recorder, _, log = make_recorder(client=ClientCategory.UNKNOWN)
    recorder.report_signal_acquired(AcquiredInfo.FINGERPRINT_START, 0, 0)
    assert list(log.lines) == [], "Acquisition is silent unless verbose"

    recorder.report_error(1, 0, 0)
    recorder.report_authenticated(True, False, 0, False)
    recorder.report_enrolled(0, 12, True)
    assert list(log.lines) == [
        "V/test: Error latency: 0",
        "V/test: Authentication latency: 0",
        "V/test: Enroll latency: 12",
    ]

    recorder, _, log = make_recorder(verbose=True)
    recorder.report_signal_acquired(AcquiredInfo.FINGERPRINT_START, 3, 7)
    recorder.report_error(1, 2, 7)
    assert log.lines[0].startswith("V/test: Acquired! Modality: FINGERPRINT, User: 7")
    assert "Latency: 0" in log.lines[1]
    assert log.stream.getvalue().count("\n") == 2

    print("✓ Diagnostics test passed")


def run_all_tests():
    """Run all recorder tests."""
    print("=" * 60)
    print("Running Operation Recorder Tests")
    print("=" * 60 + "\n")

    tests = [
        test_gate_blocks_unknown_classification,
        test_one_record_per_call,
        test_origin_set_once,
        test_start_markers_per_modality,
        test_latency_without_signal,
        test_sanitize_latency,
        test_clock_skew_sanitized,
        test_enrolled_latency_is_verbatim,
        test_auth_state_derivation,
        test_record_fields,
        test_plain_int_classification,
        test_diagnostics,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
            print()
        except AssertionError as e:
            print(f"✗ Test failed: {e}")
            failed += 1
            print()

    print("=" * 60)
    print(f"Tests: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
