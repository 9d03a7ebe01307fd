"""
Opaque descriptors: class-specific and vendor records kept byte for byte.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from usbtree.descriptors.constants import get_descriptor_type_name
from usbtree.descriptors.cursor import MIN_RECORD_LENGTH, DescriptorRecord


@dataclass(frozen=True)
class GenericDescriptor:
    """A descriptor record this tree does not interpret."""

    raw: bytes

    def __post_init__(self) -> None:
        raw = bytes(self.raw)
        if len(raw) < MIN_RECORD_LENGTH:
            raise ValueError(f"Descriptor needs at least {MIN_RECORD_LENGTH} bytes, got {len(raw)}")
        if raw[0] != len(raw):
            raise ValueError(f"Descriptor declares length {raw[0]} but holds {len(raw)} bytes")
        object.__setattr__(self, "raw", raw)

    @classmethod
    def from_record(cls, record: DescriptorRecord) -> GenericDescriptor:
        return cls(raw=record.data)

    @property
    def length(self) -> int:
        return self.raw[0]

    @property
    def descriptor_type(self) -> int:
        return self.raw[1]

    @property
    def full_length(self) -> int:
        return len(self.raw)

    def to_bytes(self) -> bytes:
        return self.raw

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": f"0x{self.descriptor_type:02X}",
            "type_name": get_descriptor_type_name(self.descriptor_type),
            "length": self.length,
            "data": self.raw.hex(),
        }
