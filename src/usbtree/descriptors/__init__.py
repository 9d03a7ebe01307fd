"""
USB Descriptor Tree.

Decodes interface descriptor runs into typed trees, re-encodes them byte
for byte, and checks them for structural validity.
"""

from usbtree.descriptors.constants import (
    DescriptorType,
    USBClass,
    TransferType,
    get_class_name,
    get_descriptor_type_name,
)
from usbtree.descriptors.cursor import DescriptorCursor, DescriptorRecord
from usbtree.descriptors.endpoint import Endpoint
from usbtree.descriptors.errors import (
    DescriptorError,
    EndpointCapacityError,
    MalformedDescriptorError,
)
from usbtree.descriptors.generic import GenericDescriptor
from usbtree.descriptors.hid import HIDClassDescriptor, HIDDescriptor
from usbtree.descriptors.interface import (
    Interface,
    InterfaceHeader,
    build_child,
    decode_interfaces,
)
from usbtree.descriptors.strings import StringLookup, StringTable
from usbtree.descriptors.validator import (
    NO_ERROR,
    DefinitionError,
    ErrorKind,
    ObjectKind,
    Violation,
    validate_interface,
)

__all__ = [
    # Constants
    "DescriptorType",
    "USBClass",
    "TransferType",
    "get_class_name",
    "get_descriptor_type_name",
    # Cursor
    "DescriptorCursor",
    "DescriptorRecord",
    # Nodes
    "Endpoint",
    "GenericDescriptor",
    "HIDClassDescriptor",
    "HIDDescriptor",
    "Interface",
    "InterfaceHeader",
    "build_child",
    "decode_interfaces",
    # Strings
    "StringLookup",
    "StringTable",
    # Errors
    "DescriptorError",
    "EndpointCapacityError",
    "MalformedDescriptorError",
    # Validator
    "NO_ERROR",
    "DefinitionError",
    "ErrorKind",
    "ObjectKind",
    "Violation",
    "validate_interface",
]
