"""
Record schemas for biometric telemetry.

Defines the classification enums and one dataclass per outbound record.
Field order of each record is the ordered tuple handed to a metrics sink.
"""

from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Any, Dict, Tuple


# Latency reported when no measurable duration exists
LATENCY_UNSET = -1


class Modality(IntEnum):
    """Sensing technology of the operation."""
    UNKNOWN = 0
    FINGERPRINT = 1
    IRIS = 2
    FACE = 4


class Action(IntEnum):
    """High-level action being performed."""
    UNKNOWN = 0
    ENROLL = 1
    AUTHENTICATE = 2
    ENUMERATE = 3
    REMOVE = 4


class ClientCategory(IntEnum):
    """Calling context of the operation."""
    UNKNOWN = 0
    KEYGUARD = 1
    BIOMETRIC_PROMPT = 2
    FINGERPRINT_MANAGER = 3
    SETTINGS = 4


class AuthState(IntEnum):
    """
    Outcome of an authentication attempt.

    UNKNOWN is part of the record vocabulary but no reporting path
    currently produces it.
    """
    UNKNOWN = 0
    REJECTED = 1
    PENDING_CONFIRMATION = 2
    CONFIRMED = 3


class AcquiredInfo:
    """Acquisition signal kinds that seed the latency origin."""
    GOOD = 0
    FINGERPRINT_START = 7
    FACE_START = 20


def _render(value: Any) -> Any:
    if isinstance(value, IntEnum):
        return value.name
    return value


class _Record:
    """Shared behaviour for outbound telemetry records."""

    event_type = "unknown"

    def as_tuple(self) -> Tuple[Any, ...]:
        """Ordered field values, as written to a metrics sink."""
        return tuple(getattr(self, f.name) for f in fields(self))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, enums rendered by name."""
        return {f.name: _render(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class AcquiredRecord(_Record):
    """An acquisition signal was observed."""
    modality: Modality
    subject_id: int
    is_crypto: bool
    action: Action
    client: ClientCategory
    signal_kind: int
    vendor_detail: int
    debug_enabled: bool

    event_type = "biometric_acquired"


@dataclass(frozen=True)
class ErrorRecord(_Record):
    """The operation reported an error."""
    modality: Modality
    subject_id: int
    is_crypto: bool
    action: Action
    client: ClientCategory
    error_kind: int
    vendor_detail: int
    debug_enabled: bool
    latency_ms: int

    event_type = "biometric_error_occurred"


@dataclass(frozen=True)
class AuthenticatedRecord(_Record):
    """An authentication attempt concluded."""
    modality: Modality
    subject_id: int
    is_crypto: bool
    client: ClientCategory
    requires_confirmation: bool
    state: AuthState
    latency_ms: int
    debug_enabled: bool

    event_type = "biometric_authenticated"


@dataclass(frozen=True)
class EnrolledRecord(_Record):
    """An enrollment concluded."""
    modality: Modality
    subject_id: int
    latency_ms: int
    success: bool

    event_type = "biometric_enrolled"
