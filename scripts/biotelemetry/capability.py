"""
Capability descriptor exchanged with other components.

A plain immutable value: field validation plus a JSON-friendly wire
form. Nothing in the recorder reads or produces it.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict


class ModelState(IntEnum):
    """Availability of the model backing a capability."""
    AVAILABLE_TO_DOWNLOAD = 1
    DOWNLOADING = 2
    ON_DEVICE = 3


def model_state_to_string(value: int) -> str:
    """Name of a model state, or its hex value when unrecognized."""
    try:
        return f"STATE_{ModelState(value).name}"
    except ValueError:
        return format(value, 'x')


@dataclass(frozen=True)
class FormatSpec:
    """Language and data format on one side of a capability."""
    language: str
    data_format: int = 1

    def __post_init__(self):
        if not self.language:
            raise ValueError("language should not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {"language": self.language, "data_format": self.data_format}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormatSpec":
        return cls(language=data["language"], data_format=int(data.get("data_format", 1)))


@dataclass(frozen=True)
class CapabilityDescriptor:
    """
    Describes one supported source/target pairing.

    Raises:
        ValueError: If a spec is missing or the state is not a ModelState
    """
    state: ModelState
    source_spec: FormatSpec
    target_spec: FormatSpec
    ui_enabled: bool = False
    supported_flags: int = 0

    def __post_init__(self):
        if self.source_spec is None:
            raise ValueError("source_spec should not be null")
        if self.target_spec is None:
            raise ValueError("target_spec should not be null")
        try:
            state = ModelState(self.state)
        except ValueError:
            allowed = ", ".join(f"{model_state_to_string(s)}({int(s)})" for s in ModelState)
            raise ValueError(f"state was {self.state} but must be one of: {allowed}") from None
        object.__setattr__(self, "state", state)

    def to_dict(self) -> Dict[str, Any]:
        """Wire form of the descriptor."""
        return {
            "state": int(self.state),
            "source_spec": self.source_spec.to_dict(),
            "target_spec": self.target_spec.to_dict(),
            "ui_enabled": self.ui_enabled,
            "supported_flags": self.supported_flags,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CapabilityDescriptor":
        """
        Decode a descriptor from its wire form.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        try:
            source = data["source_spec"]
            target = data["target_spec"]
            state = int(data["state"])
            source_spec = FormatSpec.from_dict(source) if source is not None else None
            target_spec = FormatSpec.from_dict(target) if target is not None else None
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed capability descriptor: {e}") from e

        return cls(
            state=state,
            source_spec=source_spec,
            target_spec=target_spec,
            ui_enabled=bool(data.get("ui_enabled", False)),
            supported_flags=int(data.get("supported_flags", 0)),
        )

    def __str__(self) -> str:
        return (
            "CapabilityDescriptor { "
            f"state = {model_state_to_string(self.state)}, "
            f"source_spec = {self.source_spec}, "
            f"target_spec = {self.target_spec}, "
            f"ui_enabled = {self.ui_enabled}, "
            f"supported_flags = {self.supported_flags} }}"
        )
