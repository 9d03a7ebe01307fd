"""
USB Endpoint descriptors.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any

from usbtree.descriptors.constants import (
    ENDPOINT_DESCRIPTOR_SIZE,
    VALID_ENDPOINT_SIZES,
    DescriptorType,
    get_endpoint_direction,
    get_transfer_type_name,
)
from usbtree.descriptors.cursor import DescriptorRecord
from usbtree.descriptors.errors import MalformedDescriptorError
from usbtree.descriptors.validator import (
    NO_ERROR,
    DefinitionError,
    ErrorKind,
    ObjectKind,
    Violation,
)

# bLength, bDescriptorType, bEndpointAddress, bmAttributes, wMaxPacketSize, bInterval
_ENDPOINT_FORMAT = "<BBBBHB"


@dataclass(frozen=True)
class Endpoint:
    """USB Endpoint Descriptor."""

    address: int
    attributes: int
    max_packet_size: int
    interval: int
    length: int = ENDPOINT_DESCRIPTOR_SIZE
    descriptor_type: int = DescriptorType.ENDPOINT
    # Bytes past the standard seven (bRefresh/bSynchAddress on audio endpoints)
    extra: bytes = field(default=b"", repr=False)

    @classmethod
    def create(
        cls,
        address: int,
        attributes: int,
        max_packet_size: int,
        interval: int,
    ) -> Endpoint:
        """Build a standard seven-byte endpoint descriptor."""
        return cls(
            address=address,
            attributes=attributes,
            max_packet_size=max_packet_size,
            interval=interval,
        )

    @classmethod
    def from_record(cls, record: DescriptorRecord) -> Endpoint:
        """
        Parse an endpoint from a raw descriptor record.

        Raises:
            MalformedDescriptorError: If the record is too short for the
                fixed endpoint fields
        """
        data = record.data
        if len(data) < ENDPOINT_DESCRIPTOR_SIZE:
            raise MalformedDescriptorError(
                f"Endpoint descriptor of {len(data)} bytes is shorter than "
                f"{ENDPOINT_DESCRIPTOR_SIZE}",
                record.offset,
            )
        length, descriptor_type, address, attributes, max_packet_size, interval = (
            struct.unpack_from(_ENDPOINT_FORMAT, data)
        )
        return cls(
            address=address,
            attributes=attributes,
            max_packet_size=max_packet_size,
            interval=interval,
            length=length,
            descriptor_type=descriptor_type,
            extra=bytes(data[ENDPOINT_DESCRIPTOR_SIZE:]),
        )

    @property
    def number(self) -> int:
        """Endpoint number without the direction bit."""
        return self.address & 0x0F

    @property
    def direction(self) -> str:
        """Get endpoint direction (IN or OUT)."""
        return get_endpoint_direction(self.address)

    @property
    def transfer_type(self) -> str:
        """Get transfer type."""
        return get_transfer_type_name(self.attributes & 0x03)

    @property
    def full_length(self) -> int:
        """Encoded size of this endpoint, including any extra bytes."""
        return ENDPOINT_DESCRIPTOR_SIZE + len(self.extra)

    def to_bytes(self) -> bytes:
        """Encode the endpoint exactly as it appeared on the wire."""
        header = struct.pack(
            _ENDPOINT_FORMAT,
            self.length,
            self.descriptor_type,
            self.address,
            self.attributes,
            self.max_packet_size,
            self.interval,
        )
        return header + self.extra

    def is_defined(
        self,
        config_id: int,
        interface_number: int,
        alternate_setting: int,
        index: int,
    ) -> DefinitionError:
        """Check the fixed header fields of this endpoint."""
        if self.length not in VALID_ENDPOINT_SIZES:
            code = Violation.LENGTH
        elif self.descriptor_type != DescriptorType.ENDPOINT:
            code = Violation.TYPE
        else:
            return NO_ERROR
        return DefinitionError(
            kind=ErrorKind.INVALID_DESCRIPTOR,
            code=code,
            object_kind=ObjectKind.ENDPOINT,
            config_id=config_id,
            interface_number=interface_number,
            alternate_setting=alternate_setting,
            endpoint_index=index,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "address": f"0x{self.address:02X}",
            "direction": self.direction,
            "transfer_type": self.transfer_type,
            "attributes": self.attributes,
            "max_packet_size": self.max_packet_size,
            "interval": self.interval,
            "length": self.length,
            "extra": self.extra.hex(),
        }
