"""
USB Descriptor Constants.

Descriptor type tags, fixed descriptor sizes and class codes used when
decoding and validating interface descriptor trees.
"""

from __future__ import annotations

from enum import IntEnum
from typing import NamedTuple


class DescriptorType(IntEnum):
    """Descriptor type tags (bDescriptorType)."""

    DEVICE = 0x01
    CONFIGURATION = 0x02
    STRING = 0x03
    INTERFACE = 0x04  # Also terminates an interface's child records
    ENDPOINT = 0x05
    DEVICE_QUALIFIER = 0x06
    OTHER_SPEED_CONFIGURATION = 0x07
    INTERFACE_POWER = 0x08
    OTG = 0x09
    DEBUG = 0x0A
    INTERFACE_ASSOCIATION = 0x0B
    BOS = 0x0F
    DEVICE_CAPABILITY = 0x10
    HID = 0x21
    HID_REPORT = 0x22
    HID_PHYSICAL = 0x23
    CS_INTERFACE = 0x24
    CS_ENDPOINT = 0x25
    SS_ENDPOINT_COMPANION = 0x30
    SSP_ISOCHRONOUS_ENDPOINT_COMPANION = 0x31


# Fixed descriptor sizes (bLength)
INTERFACE_DESCRIPTOR_SIZE = 9
ENDPOINT_DESCRIPTOR_SIZE = 7
AUDIO_ENDPOINT_DESCRIPTOR_SIZE = 9  # USB Audio 1.0 adds bRefresh, bSynchAddress
HID_DESCRIPTOR_MIN_SIZE = 6  # Header without any class descriptor entries

VALID_ENDPOINT_SIZES = frozenset({ENDPOINT_DESCRIPTOR_SIZE, AUDIO_ENDPOINT_DESCRIPTOR_SIZE})

# Default string descriptor language (English, United States)
DEFAULT_LANGUAGE_ID = 0x0409


class USBClass(IntEnum):
    """USB Interface Class Codes."""

    PER_INTERFACE = 0x00
    AUDIO = 0x01
    CDC_CONTROL = 0x02
    HID = 0x03
    PHYSICAL = 0x05
    IMAGE = 0x06
    PRINTER = 0x07
    MASS_STORAGE = 0x08
    HUB = 0x09
    CDC_DATA = 0x0A
    SMART_CARD = 0x0B
    CONTENT_SECURITY = 0x0D
    VIDEO = 0x0E
    PERSONAL_HEALTHCARE = 0x0F
    AUDIO_VIDEO = 0x10
    BILLBOARD = 0x11
    USB_TYPE_C_BRIDGE = 0x12
    DIAGNOSTIC = 0xDC
    WIRELESS_CONTROLLER = 0xE0
    MISCELLANEOUS = 0xEF
    APPLICATION_SPECIFIC = 0xFE
    VENDOR_SPECIFIC = 0xFF


class TransferType(IntEnum):
    """USB Transfer Types."""

    CONTROL = 0x00
    ISOCHRONOUS = 0x01
    BULK = 0x02
    INTERRUPT = 0x03


class EndpointDirection(IntEnum):
    """USB Endpoint Direction."""

    OUT = 0x00  # Host to device
    IN = 0x80  # Device to host


class ClassInfo(NamedTuple):
    """Information about a USB class."""

    code: int
    name: str


USB_CLASS_INFO: dict[int, ClassInfo] = {
    USBClass.PER_INTERFACE: ClassInfo(0x00, "Per-Interface"),
    USBClass.AUDIO: ClassInfo(0x01, "Audio"),
    USBClass.CDC_CONTROL: ClassInfo(0x02, "Communications"),
    USBClass.HID: ClassInfo(0x03, "HID"),
    USBClass.PHYSICAL: ClassInfo(0x05, "Physical"),
    USBClass.IMAGE: ClassInfo(0x06, "Image"),
    USBClass.PRINTER: ClassInfo(0x07, "Printer"),
    USBClass.MASS_STORAGE: ClassInfo(0x08, "Mass Storage"),
    USBClass.HUB: ClassInfo(0x09, "Hub"),
    USBClass.CDC_DATA: ClassInfo(0x0A, "CDC-Data"),
    USBClass.SMART_CARD: ClassInfo(0x0B, "Smart Card"),
    USBClass.CONTENT_SECURITY: ClassInfo(0x0D, "Content Security"),
    USBClass.VIDEO: ClassInfo(0x0E, "Video"),
    USBClass.PERSONAL_HEALTHCARE: ClassInfo(0x0F, "Personal Healthcare"),
    USBClass.AUDIO_VIDEO: ClassInfo(0x10, "Audio/Video"),
    USBClass.BILLBOARD: ClassInfo(0x11, "Billboard"),
    USBClass.USB_TYPE_C_BRIDGE: ClassInfo(0x12, "USB Type-C Bridge"),
    USBClass.DIAGNOSTIC: ClassInfo(0xDC, "Diagnostic"),
    USBClass.WIRELESS_CONTROLLER: ClassInfo(0xE0, "Wireless"),
    USBClass.MISCELLANEOUS: ClassInfo(0xEF, "Miscellaneous"),
    USBClass.APPLICATION_SPECIFIC: ClassInfo(0xFE, "Application Specific"),
    USBClass.VENDOR_SPECIFIC: ClassInfo(0xFF, "Vendor Specific"),
}


def get_class_name(class_code: int) -> str:
    """
    Get human-readable name for a USB class.

    Args:
        class_code: USB class code

    Returns:
        Class name string
    """
    info = USB_CLASS_INFO.get(class_code)
    if info:
        return info.name
    return f"Unknown (0x{class_code:02X})"


def get_descriptor_type_name(descriptor_type: int) -> str:
    """Get name for a descriptor type tag."""
    try:
        return DescriptorType(descriptor_type).name
    except ValueError:
        return f"UNKNOWN_0x{descriptor_type:02X}"


def get_transfer_type_name(transfer_type: int) -> str:
    """
    Get name for a transfer type.

    Args:
        transfer_type: Transfer type code (from endpoint attributes & 0x03)

    Returns:
        Transfer type name
    """
    names = {
        TransferType.CONTROL: "Control",
        TransferType.ISOCHRONOUS: "Isochronous",
        TransferType.BULK: "Bulk",
        TransferType.INTERRUPT: "Interrupt",
    }
    return names.get(transfer_type, f"Unknown (0x{transfer_type:02X})")


def get_endpoint_direction(address: int) -> str:
    """
    Get endpoint direction from address.

    Args:
        address: Endpoint address

    Returns:
        "IN" or "OUT"
    """
    return "IN" if address & EndpointDirection.IN else "OUT"
