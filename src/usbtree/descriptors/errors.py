"""
Exceptions raised while building descriptor trees.
"""

from __future__ import annotations


class DescriptorError(Exception):
    """Base class for descriptor tree errors."""

    pass


class MalformedDescriptorError(DescriptorError):
    """The byte stream cannot be walked safely.

    Raised for zero or undersized record lengths and for records that would
    extend past the end of the supplied buffer.
    """

    def __init__(self, message: str, offset: int = -1):
        if offset >= 0:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.offset = offset


class EndpointCapacityError(DescriptorError):
    """More endpoints were presented than the interface declared."""

    def __init__(self, interface_number: int, address: int, capacity: int):
        super().__init__(
            f"Ran out of endpoint storage space on interface {interface_number}: "
            f"endpoint 0x{address:02X} does not fit in {capacity} slot(s)"
        )
        self.interface_number = interface_number
        self.address = address
        self.capacity = capacity
