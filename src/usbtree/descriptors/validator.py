"""
Structural validation of descriptor trees.

Checks declared lengths, type tags and endpoint slot occupancy against the
fixed values the protocol mandates. Violations are returned as located
values for the caller to act on; nothing here raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from usbtree.descriptors.interface import Interface


class ErrorKind(Enum):
    """Kinds of structural violation."""

    NONE = "none"
    INVALID_DESCRIPTOR = "invalid_descriptor"
    NULL_OBJECT = "null_object"


class ObjectKind(Enum):
    """Entity a violation was found on."""

    INTERFACE = "interface"
    ENDPOINT = "endpoint"


class Violation(IntEnum):
    """Sub-codes for INVALID_DESCRIPTOR violations."""

    NONE = 0x00
    LENGTH = 0x01
    TYPE = 0x02


@dataclass(frozen=True)
class DefinitionError:
    """
    First structural violation found in a subtree.

    Coordinates locate the offending entity: configuration id, interface
    number, alternate setting and, for endpoint failures, the slot index.
    """

    kind: ErrorKind = ErrorKind.NONE
    code: int = 0
    object_kind: ObjectKind | None = None
    config_id: int | None = None
    interface_number: int | None = None
    alternate_setting: int | None = None
    endpoint_index: int | None = None

    @classmethod
    def none(cls) -> DefinitionError:
        """The "no error" sentinel."""
        return NO_ERROR

    @property
    def error(self) -> bool:
        """True if this describes an actual violation."""
        return self.kind is not ErrorKind.NONE

    def __bool__(self) -> bool:
        return self.error

    def __str__(self) -> str:
        if not self.error:
            return "no error"
        location = (
            f"config {self.config_id}, interface {self.interface_number}, "
            f"alt {self.alternate_setting}"
        )
        if self.endpoint_index is not None:
            location += f", endpoint slot {self.endpoint_index}"
        return f"{self.kind.value} (0x{self.code:02X}) on {self.object_kind.value}: {location}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "error": self.error,
            "kind": self.kind.value,
            "code": self.code,
            "object": self.object_kind.value if self.object_kind else None,
            "config_id": self.config_id,
            "interface_number": self.interface_number,
            "alternate_setting": self.alternate_setting,
            "endpoint_index": self.endpoint_index,
        }


NO_ERROR = DefinitionError()


def validate_interface(
    interface: Interface,
    config_id: int,
    interface_number: int | None = None,
) -> DefinitionError:
    """
    Validate an interface and every endpoint it owns.

    Convenience function for quick validation.

    Args:
        interface: Interface node to check
        config_id: Configuration the interface belongs to
        interface_number: Reported interface number; defaults to the header's

    Returns:
        The first violation found, or ``NO_ERROR``
    """
    return interface.is_defined(config_id, interface_number)
