"""
USB Interface descriptor node.

An interface (one interface number / alternate setting pair) is a 9-byte
header followed by a run of child records: its endpoints, an optional HID
descriptor and any class-specific or vendor records. The run ends at the
next interface header or at the end of the buffer; there is no outer length
field, so the children are found by walking record by record.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Any, Iterator, Union

from usbtree.descriptors.constants import (
    DEFAULT_LANGUAGE_ID,
    INTERFACE_DESCRIPTOR_SIZE,
    DescriptorType,
    get_class_name,
)
from usbtree.descriptors.cursor import DescriptorCursor, DescriptorRecord
from usbtree.descriptors.endpoint import Endpoint
from usbtree.descriptors.errors import EndpointCapacityError, MalformedDescriptorError
from usbtree.descriptors.generic import GenericDescriptor
from usbtree.descriptors.hid import HIDDescriptor
from usbtree.descriptors.strings import StringLookup
from usbtree.descriptors.validator import (
    NO_ERROR,
    DefinitionError,
    ErrorKind,
    ObjectKind,
    Violation,
)


logger = logging.getLogger(__name__)

_INTERFACE_FORMAT = "<9B"

ChildDescriptor = Union[Endpoint, HIDDescriptor, GenericDescriptor]


@dataclass(frozen=True)
class InterfaceHeader:
    """The fixed 9-byte interface descriptor."""

    length: int
    descriptor_type: int
    number: int
    alternate_setting: int
    num_endpoints: int
    interface_class: int
    interface_subclass: int
    interface_protocol: int
    string_index: int

    @classmethod
    def create(
        cls,
        number: int,
        alternate_setting: int,
        num_endpoints: int,
        interface_class: int,
        interface_subclass: int,
        interface_protocol: int,
        string_index: int = 0,
    ) -> InterfaceHeader:
        """Build a conformant header (length 9, interface type)."""
        return cls(
            INTERFACE_DESCRIPTOR_SIZE,
            DescriptorType.INTERFACE,
            number,
            alternate_setting,
            num_endpoints,
            interface_class,
            interface_subclass,
            interface_protocol,
            string_index,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> InterfaceHeader:
        if len(data) < INTERFACE_DESCRIPTOR_SIZE:
            raise MalformedDescriptorError(
                f"Interface header needs {INTERFACE_DESCRIPTOR_SIZE} bytes, got {len(data)}"
            )
        return cls(*struct.unpack_from(_INTERFACE_FORMAT, data))

    def to_bytes(self) -> bytes:
        return struct.pack(
            _INTERFACE_FORMAT,
            self.length,
            self.descriptor_type,
            self.number,
            self.alternate_setting,
            self.num_endpoints,
            self.interface_class,
            self.interface_subclass,
            self.interface_protocol,
            self.string_index,
        )

    @property
    def class_name(self) -> str:
        """Get human-readable class name."""
        return get_class_name(self.interface_class)


def build_child(record: DescriptorRecord) -> ChildDescriptor:
    """Turn one child record into its typed descriptor, chosen by type tag."""
    if record.descriptor_type == DescriptorType.ENDPOINT:
        return Endpoint.from_record(record)
    if record.descriptor_type == DescriptorType.HID:
        return HIDDescriptor.from_record(record)
    return GenericDescriptor.from_record(record)


class Interface:
    """
    One interface alternate setting and the descriptors it owns.

    The endpoint slots are sized once from the header's endpoint count and
    never resized; each slot is empty (``None``) or holds one endpoint.

    Args:
        header: Interface header to copy
        string_lookup: Optional ``(index, language_id) -> str`` resolver
    """

    def __init__(self, header: InterfaceHeader, string_lookup: StringLookup | None = None) -> None:
        self._header = header
        self._endpoints: list[Endpoint | None] = [None] * header.num_endpoints
        self._hid: HIDDescriptor | None = None
        self._generic: list[GenericDescriptor] = []
        self.string_lookup = string_lookup
        # Endpoints refused during decoding because every slot was taken
        self.dropped_endpoints: list[Endpoint] = []

    @classmethod
    def create(
        cls,
        number: int,
        alternate_setting: int,
        num_endpoints: int,
        interface_class: int,
        interface_subclass: int,
        interface_protocol: int,
        string_index: int = 0,
        string_lookup: StringLookup | None = None,
    ) -> Interface:
        """Build an empty interface field by field."""
        header = InterfaceHeader.create(
            number,
            alternate_setting,
            num_endpoints,
            interface_class,
            interface_subclass,
            interface_protocol,
            string_index,
        )
        return cls(header, string_lookup)

    @classmethod
    def decode(cls, cursor: DescriptorCursor, string_lookup: StringLookup | None = None) -> Interface:
        """
        Decode an interface starting at the cursor's position.

        Consumes the header and every child record up to the next interface
        header or the cursor's bound. The cursor is left on the next
        interface header (or at its end).

        Raises:
            MalformedDescriptorError: If any record cannot be walked safely
        """
        start = cursor.position
        header = InterfaceHeader.from_bytes(cursor.consume(INTERFACE_DESCRIPTOR_SIZE))
        interface = cls(header, string_lookup)

        while not cursor.at_end and cursor.peek_type() != DescriptorType.INTERFACE:
            record = cursor.next_record()
            logger.debug(
                "Interface %d.%d: record type 0x%02X, %d bytes at offset %d",
                header.number,
                header.alternate_setting,
                record.descriptor_type,
                record.length,
                record.offset,
            )
            interface._attach(build_child(record))

        logger.debug(
            "Decoded interface %d.%d (%d bytes): %d/%d endpoints, %d generic descriptors%s",
            header.number,
            header.alternate_setting,
            cursor.position - start,
            len(interface.endpoints),
            header.num_endpoints,
            len(interface._generic),
            ", HID" if interface._hid else "",
        )
        return interface

    @classmethod
    def from_bytes(cls, data: bytes, string_lookup: StringLookup | None = None) -> Interface:
        """Decode an interface from a buffer beginning with its header."""
        return cls.decode(DescriptorCursor(data), string_lookup)

    def _attach(self, child: ChildDescriptor) -> None:
        if isinstance(child, Endpoint):
            try:
                self.add_endpoint(child)
            except EndpointCapacityError as e:
                logger.warning("%s", e)
                self.dropped_endpoints.append(child)
        elif isinstance(child, HIDDescriptor):
            if self._hid is not None:
                logger.debug("Interface %d: replacing HID descriptor", self.number)
            self._hid = child
        else:
            self._generic.append(child)

    def __repr__(self) -> str:
        return (
            f"Interface(number={self.number}, alternate_setting={self.alternate_setting}, "
            f"endpoints={len(self.endpoints)}/{self.endpoint_count}, "
            f"generic={len(self._generic)}, hid={self._hid is not None})"
        )

    #
    # Header accessors
    #

    @property
    def header(self) -> InterfaceHeader:
        return self._header

    @property
    def number(self) -> int:
        return self._header.number

    @property
    def alternate_setting(self) -> int:
        return self._header.alternate_setting

    @property
    def endpoint_count(self) -> int:
        """Declared endpoint count (the number of slots)."""
        return self._header.num_endpoints

    @property
    def class_name(self) -> str:
        return self._header.class_name

    def interface_string(self, language_id: int = DEFAULT_LANGUAGE_ID) -> str | None:
        """Resolve the interface name through the string lookup, if any."""
        if not self._header.string_index or self.string_lookup is None:
            return None
        return self.string_lookup(self._header.string_index, language_id)

    #
    # Endpoints
    #

    @property
    def endpoint_slots(self) -> tuple[Endpoint | None, ...]:
        """All slots in order, empty ones included."""
        return tuple(self._endpoints)

    @property
    def endpoints(self) -> list[Endpoint]:
        """Occupied slots in order."""
        return [ep for ep in self._endpoints if ep is not None]

    def add_endpoint(self, endpoint: Endpoint) -> None:
        """
        Place an endpoint, replacing any endpoint with the same address.

        Raises:
            EndpointCapacityError: If no slot has the same address and none
                is free
        """
        for index, current in enumerate(self._endpoints):
            if current is not None and current.address == endpoint.address:
                logger.debug(
                    "Interface %d: endpoint 0x%02X replaced in slot %d",
                    self.number,
                    endpoint.address,
                    index,
                )
                self._endpoints[index] = endpoint
                return

        for index, current in enumerate(self._endpoints):
            if current is None:
                self._endpoints[index] = endpoint
                return

        raise EndpointCapacityError(self.number, endpoint.address, len(self._endpoints))

    def get_endpoint_by_index(self, index: int) -> Endpoint | None:
        if not 0 <= index < len(self._endpoints):
            return None
        return self._endpoints[index]

    def get_endpoint_by_address(self, address: int) -> Endpoint | None:
        for endpoint in self._endpoints:
            if endpoint is not None and endpoint.address == address:
                return endpoint
        return None

    #
    # HID and generic descriptors
    #

    @property
    def hid(self) -> HIDDescriptor | None:
        return self._hid

    def set_hid(self, hid: HIDDescriptor | None) -> None:
        """Attach a HID descriptor, replacing any existing one."""
        self._hid = hid

    @property
    def generic_descriptors(self) -> tuple[GenericDescriptor, ...]:
        return tuple(self._generic)

    @property
    def generic_descriptor_count(self) -> int:
        return len(self._generic)

    def get_generic_descriptor(self, index: int) -> GenericDescriptor | None:
        if not 0 <= index < len(self._generic):
            return None
        return self._generic[index]

    def add_generic_descriptor(self, descriptor: GenericDescriptor | bytes) -> GenericDescriptor:
        """Append a copy of a raw descriptor block; returns the stored copy."""
        raw = descriptor.raw if isinstance(descriptor, GenericDescriptor) else descriptor
        stored = GenericDescriptor(raw=bytes(raw))
        self._generic.append(stored)
        return stored

    #
    # Serialization
    #

    @property
    def full_length(self) -> int:
        """Size of the encoded interface, header and children included."""
        total = INTERFACE_DESCRIPTOR_SIZE
        if self._hid is not None:
            total += self._hid.full_length
        total += sum(descriptor.full_length for descriptor in self._generic)
        total += sum(endpoint.full_length for endpoint in self.endpoints)
        return total

    def to_bytes(self) -> bytes:
        """Encode header, HID, generic descriptors, then endpoints in slot order."""
        buffer = bytearray(self.full_length)
        self.write_into(buffer)
        return bytes(buffer)

    def write_into(self, buffer: bytearray, offset: int = 0) -> int:
        """
        Encode into ``buffer`` at ``offset``.

        Returns:
            Offset just past the last byte written

        Raises:
            ValueError: If the buffer is too small
        """
        needed = self.full_length
        if len(buffer) - offset < needed:
            raise ValueError(
                f"Buffer has {len(buffer) - offset} bytes free, interface needs {needed}"
            )

        parts: list[bytes] = [self._header.to_bytes()]
        if self._hid is not None:
            parts.append(self._hid.to_bytes())
        parts.extend(descriptor.to_bytes() for descriptor in self._generic)
        parts.extend(endpoint.to_bytes() for endpoint in self.endpoints)

        for part in parts:
            buffer[offset:offset + len(part)] = part
            offset += len(part)
        return offset

    #
    # Validation
    #

    def is_defined(self, config_id: int, interface_number: int | None = None) -> DefinitionError:
        """
        Check this interface and its endpoints for structural validity.

        Every endpoint slot must be occupied. Stops at the first violation.

        Args:
            config_id: Configuration the interface belongs to
            interface_number: Reported interface number; defaults to the header's

        Returns:
            The first violation found, or ``NO_ERROR``
        """
        if interface_number is None:
            interface_number = self._header.number
        alternate_setting = self._header.alternate_setting

        if self._header.length != INTERFACE_DESCRIPTOR_SIZE:
            code = Violation.LENGTH
        elif self._header.descriptor_type != DescriptorType.INTERFACE:
            code = Violation.TYPE
        else:
            code = None
        if code is not None:
            return DefinitionError(
                kind=ErrorKind.INVALID_DESCRIPTOR,
                code=code,
                object_kind=ObjectKind.INTERFACE,
                config_id=config_id,
                interface_number=interface_number,
                alternate_setting=alternate_setting,
            )

        for index, endpoint in enumerate(self._endpoints):
            if endpoint is None:
                return DefinitionError(
                    kind=ErrorKind.NULL_OBJECT,
                    code=Violation.NONE,
                    object_kind=ObjectKind.ENDPOINT,
                    config_id=config_id,
                    interface_number=interface_number,
                    alternate_setting=alternate_setting,
                    endpoint_index=index,
                )
            result = endpoint.is_defined(config_id, interface_number, alternate_setting, index)
            if result.error:
                return result

        return NO_ERROR

    def to_dict(self, language_id: int = DEFAULT_LANGUAGE_ID) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        header = self._header
        return {
            "number": header.number,
            "alternate_setting": header.alternate_setting,
            "num_endpoints": header.num_endpoints,
            "interface_class": header.interface_class,
            "interface_subclass": header.interface_subclass,
            "interface_protocol": header.interface_protocol,
            "class_name": header.class_name,
            "string_index": header.string_index,
            "name": self.interface_string(language_id),
            "length": self.full_length,
            "hid": self._hid.to_dict() if self._hid else None,
            "generic_descriptors": [descriptor.to_dict() for descriptor in self._generic],
            "endpoints": [
                endpoint.to_dict() if endpoint is not None else None
                for endpoint in self._endpoints
            ],
            "dropped_endpoints": [endpoint.to_dict() for endpoint in self.dropped_endpoints],
        }


def decode_interfaces(data: bytes, string_lookup: StringLookup | None = None) -> Iterator[Interface]:
    """
    Decode consecutive interfaces from a buffer that starts with a header.

    Raises:
        MalformedDescriptorError: If a header is expected but something else
            is found, or any interface is malformed
    """
    cursor = DescriptorCursor(data)
    while not cursor.at_end:
        if cursor.peek_type() != DescriptorType.INTERFACE:
            raise MalformedDescriptorError(
                f"Expected an interface descriptor, found type 0x{cursor.peek_type():02X}",
                cursor.position,
            )
        yield Interface.decode(cursor, string_lookup)
