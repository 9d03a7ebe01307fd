"""
HID class descriptor attached to an interface.

Only the framing is interpreted: the version, country code and the list of
subordinate (type, length) entries. Report descriptors themselves are
fetched separately by the host and never appear here.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from usbtree.descriptors.constants import HID_DESCRIPTOR_MIN_SIZE, DescriptorType
from usbtree.descriptors.cursor import DescriptorRecord
from usbtree.descriptors.errors import MalformedDescriptorError

# bLength, bDescriptorType, bcdHID, bCountryCode, bNumDescriptors
_HID_HEADER_FORMAT = "<BBHBB"
# bDescriptorType, wDescriptorLength
_HID_ENTRY_FORMAT = "<BH"
_HID_ENTRY_SIZE = struct.calcsize(_HID_ENTRY_FORMAT)


class HIDClassDescriptor(NamedTuple):
    """Entry naming one subordinate HID descriptor (usually the report)."""

    descriptor_type: int
    length: int


@dataclass
class HIDDescriptor:
    """HID Descriptor (type 0x21)."""

    hid_version: int
    country_code: int
    class_descriptors: list[HIDClassDescriptor] = field(default_factory=list)
    num_descriptors: int | None = None
    length: int | None = None
    descriptor_type: int = DescriptorType.HID
    # Trailing bytes not covered by the declared entries
    extra: bytes = field(default=b"", repr=False)

    def __post_init__(self) -> None:
        if self.num_descriptors is None:
            self.num_descriptors = len(self.class_descriptors)
        if self.length is None:
            self.length = self.full_length

    @classmethod
    def from_record(cls, record: DescriptorRecord) -> HIDDescriptor:
        """
        Parse a HID descriptor from a raw descriptor record.

        Raises:
            MalformedDescriptorError: If the record is too short for the
                fixed HID header
        """
        data = record.data
        if len(data) < HID_DESCRIPTOR_MIN_SIZE:
            raise MalformedDescriptorError(
                f"HID descriptor of {len(data)} bytes is shorter than "
                f"{HID_DESCRIPTOR_MIN_SIZE}",
                record.offset,
            )
        length, descriptor_type, hid_version, country_code, num_descriptors = (
            struct.unpack_from(_HID_HEADER_FORMAT, data)
        )

        entries = []
        offset = HID_DESCRIPTOR_MIN_SIZE
        while len(entries) < num_descriptors and offset + _HID_ENTRY_SIZE <= len(data):
            entries.append(HIDClassDescriptor(*struct.unpack_from(_HID_ENTRY_FORMAT, data, offset)))
            offset += _HID_ENTRY_SIZE

        return cls(
            hid_version=hid_version,
            country_code=country_code,
            class_descriptors=entries,
            num_descriptors=num_descriptors,
            length=length,
            descriptor_type=descriptor_type,
            extra=bytes(data[offset:]),
        )

    @property
    def full_length(self) -> int:
        return (
            HID_DESCRIPTOR_MIN_SIZE
            + _HID_ENTRY_SIZE * len(self.class_descriptors)
            + len(self.extra)
        )

    @property
    def report_descriptor_length(self) -> int | None:
        """Declared size of the report descriptor, if one is listed."""
        for entry in self.class_descriptors:
            if entry.descriptor_type == DescriptorType.HID_REPORT:
                return entry.length
        return None

    def to_bytes(self) -> bytes:
        data = bytearray(struct.pack(
            _HID_HEADER_FORMAT,
            self.length,
            self.descriptor_type,
            self.hid_version,
            self.country_code,
            self.num_descriptors,
        ))
        for entry in self.class_descriptors:
            data += struct.pack(_HID_ENTRY_FORMAT, entry.descriptor_type, entry.length)
        data += self.extra
        return bytes(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "hid_version": f"{self.hid_version >> 8:x}.{self.hid_version & 0xFF:02x}",
            "country_code": self.country_code,
            "class_descriptors": [
                {"type": f"0x{entry.descriptor_type:02X}", "length": entry.length}
                for entry in self.class_descriptors
            ],
        }
