"""
Bounds-checked cursor over a run of length-prefixed descriptor records.

Every descriptor starts with its own length byte followed by a type tag.
The cursor hands those records out one at a time and never reads past the
end it was given; all advancement goes through ``consume``.
"""

from __future__ import annotations

from typing import NamedTuple

from usbtree.descriptors.errors import MalformedDescriptorError

# Smallest record able to hold its own length and type bytes
MIN_RECORD_LENGTH = 2


class DescriptorRecord(NamedTuple):
    """One raw descriptor record as found in the stream."""

    offset: int
    length: int
    descriptor_type: int
    data: bytes


class DescriptorCursor:
    """
    Walks a byte buffer one self-described record at a time.

    Args:
        data: Buffer holding the descriptors
        start: Offset of the first byte to read
        end: Hard upper bound (exclusive); defaults to the buffer length
    """

    def __init__(self, data: bytes | bytearray | memoryview, start: int = 0, end: int | None = None) -> None:
        self._data = bytes(data)
        if end is None:
            end = len(self._data)
        if not 0 <= start <= end <= len(self._data):
            raise ValueError(f"Invalid cursor bounds {start}:{end} for {len(self._data)} bytes")
        self._position = start
        self._end = end

    def __repr__(self) -> str:
        return f"DescriptorCursor(position={self._position}, end={self._end})"

    @property
    def position(self) -> int:
        """Offset of the next unread byte."""
        return self._position

    @property
    def end(self) -> int:
        return self._end

    @property
    def remaining(self) -> int:
        """Number of bytes left before the bound."""
        return self._end - self._position

    @property
    def at_end(self) -> bool:
        return self._position >= self._end

    def consume(self, size: int) -> bytes:
        """
        Take the next ``size`` bytes and advance past them.

        Raises:
            MalformedDescriptorError: If fewer than ``size`` bytes remain
        """
        if size < 0:
            raise ValueError(f"Cannot consume a negative size ({size})")
        if size > self.remaining:
            raise MalformedDescriptorError(
                f"Need {size} bytes but only {self.remaining} remain", self._position
            )
        chunk = self._data[self._position:self._position + size]
        self._position += size
        return chunk

    def peek_type(self) -> int:
        """Type tag of the next record, without consuming anything."""
        if self.remaining < MIN_RECORD_LENGTH:
            raise MalformedDescriptorError(
                "Truncated descriptor header", self._position
            )
        return self._data[self._position + 1]

    def next_record(self) -> DescriptorRecord:
        """
        Consume the next record, advancing by its own declared length.

        Raises:
            MalformedDescriptorError: For a length too small to make progress
                or a record running past the bound
        """
        offset = self._position
        if self.remaining < MIN_RECORD_LENGTH:
            raise MalformedDescriptorError("Truncated descriptor header", offset)

        length = self._data[offset]
        descriptor_type = self._data[offset + 1]
        if length < MIN_RECORD_LENGTH:
            # A zero length would never advance the cursor.
            raise MalformedDescriptorError(
                f"Descriptor type 0x{descriptor_type:02X} declares length {length}", offset
            )
        if length > self.remaining:
            raise MalformedDescriptorError(
                f"Descriptor type 0x{descriptor_type:02X} declares length {length} "
                f"but only {self.remaining} bytes remain",
                offset,
            )

        return DescriptorRecord(offset, length, descriptor_type, self.consume(length))
