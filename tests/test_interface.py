"""
Tests for the Interface descriptor node.
"""

from __future__ import annotations

import dataclasses
import logging

import pytest

from usbtree.descriptors.cursor import DescriptorCursor
from usbtree.descriptors.endpoint import Endpoint
from usbtree.descriptors.errors import EndpointCapacityError, MalformedDescriptorError
from usbtree.descriptors.generic import GenericDescriptor
from usbtree.descriptors.hid import HIDDescriptor
from usbtree.descriptors.interface import Interface, InterfaceHeader, decode_interfaces
from usbtree.descriptors.strings import StringTable
from tests.descriptor_data import (
    AUDIO_CS_ENDPOINT,
    AUDIO_STREAMING_INTERFACE,
    CDC_ACM_FUNCTION,
    CDC_CONTROL_INTERFACE,
    CDC_DATA_INTERFACE,
    KEYBOARD_INTERFACE,
    ORDERED_GENERIC_INTERFACE,
    endpoint,
    generic,
    header,
    hid,
)


# =============================================================================
# Decoding
# =============================================================================


class TestInterfaceDecode:
    """Tests for decoding interface blocks."""

    def test_decode_keyboard(self, keyboard_bytes: bytes, strings: StringTable) -> None:
        """Test decoding a boot keyboard interface."""
        interface = Interface.from_bytes(keyboard_bytes, strings)

        assert interface.number == 0
        assert interface.alternate_setting == 0
        assert interface.class_name == "HID"
        assert interface.endpoint_count == 1
        assert interface.hid is not None
        assert interface.hid.report_descriptor_length == 63
        assert interface.generic_descriptor_count == 0
        assert interface.get_endpoint_by_address(0x81).interval == 10
        assert interface.interface_string() == "Boot Keyboard"

    def test_decode_cdc_functional_descriptors(self) -> None:
        """Test class-specific records are kept as generic descriptors."""
        interface = Interface.from_bytes(CDC_CONTROL_INTERFACE)

        assert interface.generic_descriptor_count == 4
        assert all(d.descriptor_type == 0x24 for d in interface.generic_descriptors)
        assert interface.hid is None
        assert interface.endpoints[0].address == 0x82

    def test_stops_at_next_interface(self) -> None:
        """Test decoding stops at the next interface header."""
        cursor = DescriptorCursor(CDC_ACM_FUNCTION)

        control = Interface.decode(cursor)

        assert control.number == 0
        assert cursor.position == len(CDC_CONTROL_INTERFACE)
        assert cursor.peek_type() == 0x04

        data = Interface.decode(cursor)
        assert data.number == 1
        assert cursor.at_end

    def test_decode_interfaces(self) -> None:
        """Test walking several consecutive interfaces."""
        interfaces = list(decode_interfaces(CDC_ACM_FUNCTION + AUDIO_STREAMING_INTERFACE))

        assert [(i.number, i.alternate_setting) for i in interfaces] == [(0, 0), (1, 0), (1, 1)]

    def test_decode_interfaces_requires_header(self) -> None:
        """Test a buffer not starting with an interface header is malformed."""
        with pytest.raises(MalformedDescriptorError, match="Expected an interface"):
            list(decode_interfaces(endpoint(0x81) + KEYBOARD_INTERFACE))

    def test_generic_order_preserved(self) -> None:
        """Test generic records keep wire order."""
        interface = Interface.from_bytes(ORDERED_GENERIC_INTERFACE)

        types = [d.descriptor_type for d in interface.generic_descriptors]
        assert types == [0x30, 0x31, 0x32]
        assert interface.to_bytes() == ORDERED_GENERIC_INTERFACE

    def test_zero_length_record_aborts(self) -> None:
        """Test a zero-length record aborts construction."""
        data = bytes([9, 0x04, 0, 0, 1, 0, 0, 0, 0, 0x00, 0x05, 0x81, 0x03, 0x08, 0x00, 0x0A])

        with pytest.raises(MalformedDescriptorError) as exc_info:
            Interface.from_bytes(data)

        assert exc_info.value.offset == 9

    def test_record_past_bound_aborts(self) -> None:
        """Test a record running off the end of the buffer aborts construction."""
        data = header(0, 0, 1) + endpoint(0x81)[:5]

        with pytest.raises(MalformedDescriptorError):
            Interface.from_bytes(data)

    def test_truncated_header_aborts(self) -> None:
        """Test a buffer shorter than the interface header."""
        with pytest.raises(MalformedDescriptorError):
            Interface.from_bytes(header()[:6])

    def test_short_endpoint_aborts(self) -> None:
        """Test an endpoint record too short to hold its fields."""
        data = header(0, 0, 1) + bytes([4, 0x05, 0x81, 0x03])

        with pytest.raises(MalformedDescriptorError, match="Endpoint"):
            Interface.from_bytes(data)

    def test_slots_sized_from_header(self) -> None:
        """Test slot count equals declared endpoint count regardless of stream."""
        data = header(0, 0, 3) + endpoint(0x81)

        interface = Interface.from_bytes(data)

        assert len(interface.endpoint_slots) == 3
        assert interface.endpoint_slots[1] is None
        assert interface.endpoint_slots[2] is None
        assert len(interface.endpoints) == 1

    def test_last_hid_wins(self) -> None:
        """Test a second HID descriptor replaces the first."""
        data = header(0, 0, 0, cls=0x03) + hid(63) + hid(120)

        interface = Interface.from_bytes(data)

        assert interface.hid.report_descriptor_length == 120

    def test_capacity_overflow_reported(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test extra endpoints are each reported and parsing continues."""
        data = (
            header(4, 0, 1)
            + endpoint(0x81)
            + endpoint(0x02)
            + endpoint(0x83)
            + generic(0x30)
        )

        with caplog.at_level(logging.WARNING, logger="usbtree"):
            interface = Interface.from_bytes(data)

        assert [ep.address for ep in interface.endpoints] == [0x81]
        assert [ep.address for ep in interface.dropped_endpoints] == [0x02, 0x83]
        assert interface.generic_descriptor_count == 1
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 2
        assert "interface 4" in warnings[0].getMessage()

    def test_duplicate_address_in_stream(self) -> None:
        """Test a repeated endpoint address keeps one endpoint per address."""
        data = header(0, 0, 2) + endpoint(0x81, interval=1) + endpoint(0x81, interval=2)

        interface = Interface.from_bytes(data)

        assert len(interface.endpoints) == 1
        assert interface.get_endpoint_by_address(0x81).interval == 2
        assert interface.endpoint_slots[1] is None


# =============================================================================
# Encoding
# =============================================================================


class TestInterfaceEncode:
    """Tests for serializing interface trees."""

    @pytest.mark.parametrize(
        "data",
        [KEYBOARD_INTERFACE, CDC_CONTROL_INTERFACE, CDC_DATA_INTERFACE, AUDIO_STREAMING_INTERFACE],
        ids=["keyboard", "cdc-control", "cdc-data", "audio-streaming"],
    )
    def test_round_trip(self, data: bytes) -> None:
        """Test decode then encode reproduces conformant input exactly."""
        interface = Interface.from_bytes(data)

        encoded = interface.to_bytes()

        assert encoded == data
        assert interface.full_length == len(data)

    def test_round_trip_multiple(self, cdc_bytes: bytes) -> None:
        """Test a run of interfaces re-encodes to the original bytes."""
        interfaces = decode_interfaces(cdc_bytes)

        assert b"".join(i.to_bytes() for i in interfaces) == cdc_bytes

    def test_canonical_order(self) -> None:
        """Test encoding emits header, HID, generic, then endpoints."""
        data = header(0, 0, 1, cls=0x03) + endpoint(0x81) + generic(0x30) + hid()

        encoded = Interface.from_bytes(data).to_bytes()

        assert encoded == header(0, 0, 1, cls=0x03) + hid() + generic(0x30) + endpoint(0x81)

    def test_trailing_class_record_moves_before_endpoints(self) -> None:
        """Test records after the endpoints are emitted with the other generic ones."""
        data = AUDIO_STREAMING_INTERFACE + AUDIO_CS_ENDPOINT
        interface = Interface.from_bytes(data)

        encoded = interface.to_bytes()

        assert len(encoded) == len(data)
        assert interface.generic_descriptors[-1].descriptor_type == 0x25
        assert encoded.endswith(endpoint(0x01, attributes=0x09, max_packet_size=192,
                                         interval=1, extra=bytes([0x00, 0x00])))

    def test_size_matches_partial_tree(self) -> None:
        """Test size and output agree while slots are still empty."""
        interface = Interface.create(0, 0, 3, 0xFF, 0, 0)
        assert interface.full_length == len(interface.to_bytes()) == 9

        interface.add_endpoint(Endpoint.create(0x81, 0x02, 512, 0))
        interface.add_generic_descriptor(generic(0x30, b"\x01\x02"))
        interface.set_hid(HIDDescriptor(hid_version=0x0111, country_code=0))

        encoded = interface.to_bytes()
        assert interface.full_length == len(encoded) == 9 + 6 + 4 + 7

    def test_malformed_header_length_round_trips(self) -> None:
        """Test a bad header length byte is kept verbatim, not corrected."""
        data = header(length=8) + generic(0x30)

        interface = Interface.from_bytes(data)

        assert interface.header.length == 8
        assert interface.to_bytes() == data

    def test_write_into_offset(self, keyboard_bytes: bytes) -> None:
        """Test writing into a larger buffer at an offset."""
        interface = Interface.from_bytes(keyboard_bytes)
        buffer = bytearray(4 + interface.full_length)

        end = interface.write_into(buffer, 4)

        assert end == len(buffer)
        assert bytes(buffer[4:]) == keyboard_bytes
        assert bytes(buffer[:4]) == bytes(4)

    def test_write_into_too_small(self, keyboard_bytes: bytes) -> None:
        """Test a buffer without enough capacity is refused."""
        interface = Interface.from_bytes(keyboard_bytes)

        with pytest.raises(ValueError):
            interface.write_into(bytearray(interface.full_length - 1))


# =============================================================================
# Child collections
# =============================================================================


class TestChildCollections:
    """Tests for endpoint slots and generic descriptor management."""

    def test_create(self) -> None:
        """Test field-by-field construction."""
        interface = Interface.create(3, 1, 2, 0x08, 0x06, 0x50, string_index=4)

        assert interface.header.length == 9
        assert interface.header.descriptor_type == 0x04
        assert interface.header.interface_protocol == 0x50
        assert interface.endpoint_slots == (None, None)

    def test_from_header(self) -> None:
        """Test construction from an externally supplied header."""
        source = InterfaceHeader.create(1, 0, 2, 0x0A, 0, 0)

        interface = Interface(source)

        assert interface.header == source
        assert interface.endpoint_count == 2
        assert interface.endpoints == []

    def test_add_endpoint_fills_in_order(self) -> None:
        """Test endpoints fill the first free slot."""
        interface = Interface.create(0, 0, 2, 0, 0, 0)

        interface.add_endpoint(Endpoint.create(0x01, 0x02, 64, 0))
        interface.add_endpoint(Endpoint.create(0x82, 0x02, 64, 0))

        assert interface.get_endpoint_by_index(0).address == 0x01
        assert interface.get_endpoint_by_index(1).address == 0x82

    def test_add_endpoint_replaces_same_address(self) -> None:
        """Test an endpoint with an occupied address displaces the holder."""
        interface = Interface.create(0, 0, 2, 0, 0, 0)
        old = Endpoint.create(0x81, 0x03, 8, 10)
        new = Endpoint.create(0x81, 0x03, 16, 4)
        interface.add_endpoint(old)
        interface.add_endpoint(Endpoint.create(0x02, 0x02, 64, 0))

        interface.add_endpoint(new)

        matches = [ep for ep in interface.endpoints if ep.address == 0x81]
        assert matches == [new]
        assert matches[0] is new
        assert all(ep is not old for ep in interface.endpoint_slots)
        assert interface.get_endpoint_by_index(0) is new

    def test_stored_endpoint_address_is_fixed(self) -> None:
        """Test a stored endpoint cannot be re-addressed onto another slot."""
        interface = Interface.create(0, 0, 2, 0, 0, 0)
        first = Endpoint.create(0x81, 0x03, 8, 10)
        interface.add_endpoint(first)
        interface.add_endpoint(Endpoint.create(0x02, 0x02, 64, 0))

        with pytest.raises(dataclasses.FrozenInstanceError):
            first.address = 0x02  # type: ignore[misc]

        assert {ep.address for ep in interface.endpoints} == {0x81, 0x02}

    def test_add_endpoint_capacity_overflow(self) -> None:
        """Test inserting past the declared count is rejected."""
        interface = Interface.create(5, 0, 1, 0, 0, 0)
        interface.add_endpoint(Endpoint.create(0x81, 0x03, 8, 10))

        with pytest.raises(EndpointCapacityError) as exc_info:
            interface.add_endpoint(Endpoint.create(0x02, 0x02, 64, 0))

        assert exc_info.value.interface_number == 5
        assert exc_info.value.address == 0x02
        assert len(interface.endpoint_slots) == 1

    def test_zero_endpoint_interface(self) -> None:
        """Test an interface declaring no endpoints has no room for one."""
        interface = Interface.create(0, 0, 0, 0, 0, 0)

        with pytest.raises(EndpointCapacityError):
            interface.add_endpoint(Endpoint.create(0x81, 0x03, 8, 10))

    def test_get_endpoint_by_index_out_of_range(self) -> None:
        """Test out-of-range slot lookups return None."""
        interface = Interface.from_bytes(KEYBOARD_INTERFACE)

        assert interface.get_endpoint_by_index(1) is None
        assert interface.get_endpoint_by_index(-1) is None
        assert interface.get_endpoint_by_index(0) is not None

    def test_get_endpoint_by_address_missing(self) -> None:
        """Test lookups of absent addresses return None, even with empty slots."""
        interface = Interface.create(0, 0, 2, 0, 0, 0)
        interface.add_endpoint(Endpoint.create(0x81, 0x03, 8, 10))

        assert interface.get_endpoint_by_address(0x02) is None
        assert interface.get_endpoint_by_address(0x81) is not None

    def test_add_generic_descriptor_copies(self) -> None:
        """Test generic descriptors are copied and appended."""
        interface = Interface.create(0, 0, 0, 0xFF, 0, 0)
        raw = bytearray(generic(0x40, b"\xAA"))

        stored = interface.add_generic_descriptor(raw)
        raw[2] = 0x00
        interface.add_generic_descriptor(GenericDescriptor(generic(0x41)))

        assert stored.raw == b"\x03\x40\xAA"
        assert interface.generic_descriptor_count == 2
        assert interface.get_generic_descriptor(1).descriptor_type == 0x41
        assert interface.get_generic_descriptor(2) is None
        assert interface.get_generic_descriptor(-1) is None

    def test_add_generic_descriptor_rejects_bad_length(self) -> None:
        """Test a block whose length byte disagrees with its size."""
        interface = Interface.create(0, 0, 0, 0xFF, 0, 0)

        with pytest.raises(ValueError):
            interface.add_generic_descriptor(b"\x05\x40\x00")

    def test_interface_string(self, strings: StringTable) -> None:
        """Test name resolution through the lookup hook."""
        named = Interface.create(0, 0, 0, 0x03, 0, 0, string_index=2, string_lookup=strings)
        unnamed = Interface.create(0, 0, 0, 0x03, 0, 0, string_index=0, string_lookup=strings)
        detached = Interface.create(0, 0, 0, 0x03, 0, 0, string_index=2)

        assert named.interface_string() == "Boot Keyboard"
        assert named.interface_string(0x0407) is None
        assert unnamed.interface_string() is None
        assert detached.interface_string() is None

    def test_to_dict(self, keyboard_bytes: bytes, strings: StringTable) -> None:
        """Test dictionary conversion."""
        d = Interface.from_bytes(keyboard_bytes, strings).to_dict()

        assert d["number"] == 0
        assert d["class_name"] == "HID"
        assert d["name"] == "Boot Keyboard"
        assert d["length"] == len(keyboard_bytes)
        assert d["hid"]["hid_version"] == "1.11"
        assert d["endpoints"][0]["address"] == "0x81"
        assert d["dropped_endpoints"] == []
