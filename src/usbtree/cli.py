"""
usbtree Command Line Interface.

Provides commands for working with interface descriptor dumps:
- decode: Show the decoded descriptor tree
- validate: Check structural validity
- roundtrip: Check that decoding then encoding reproduces the input
- encode: Decode and write the re-encoded bytes
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from usbtree import __version__
from usbtree.config import TreeConfig, load_config, validate_config
from usbtree.descriptors.errors import DescriptorError
from usbtree.descriptors.interface import Interface, decode_interfaces
from usbtree.descriptors.strings import StringTable


logger = logging.getLogger("usbtree")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="usbtree",
        description="Decode, re-encode and validate USB interface descriptors",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        metavar="FILE",
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    # Options shared by every command that reads descriptors
    input_parser = argparse.ArgumentParser(add_help=False)
    input_parser.add_argument(
        "input",
        nargs="?",
        help="Binary descriptor file, or - for stdin",
    )
    input_parser.add_argument(
        "--hex",
        metavar="HEX",
        help="Descriptor bytes as a hex string instead of a file",
    )
    input_parser.add_argument(
        "-s", "--string",
        metavar="INDEX=TEXT",
        action="append",
        default=[],
        help="String descriptor text for an index (repeatable)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # decode command
    decode_parser = subparsers.add_parser(
        "decode", parents=[input_parser], help="Show the decoded descriptor tree"
    )
    decode_parser.set_defaults(func=cmd_decode)

    # validate command
    validate_parser = subparsers.add_parser(
        "validate", parents=[input_parser], help="Check structural validity"
    )
    validate_parser.add_argument(
        "--config-id",
        type=int,
        help="Configuration id reported in violations",
    )
    validate_parser.set_defaults(func=cmd_validate)

    # roundtrip command
    roundtrip_parser = subparsers.add_parser(
        "roundtrip", parents=[input_parser], help="Decode then encode and compare"
    )
    roundtrip_parser.set_defaults(func=cmd_roundtrip)

    # encode command
    encode_parser = subparsers.add_parser(
        "encode", parents=[input_parser], help="Decode and write re-encoded bytes"
    )
    encode_parser.add_argument(
        "-o", "--output",
        required=True,
        help="Output file",
    )
    encode_parser.set_defaults(func=cmd_encode)

    # config command
    config_parser = subparsers.add_parser("config", help="Show and check configuration")
    config_parser.set_defaults(func=cmd_config)

    # Parse arguments
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        args.settings = load_config(args.config)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1
    setup_logging(args.settings, args.verbose)

    # Execute command
    try:
        return args.func(args)
    except DescriptorError as e:
        print(f"Malformed descriptor: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def setup_logging(config: TreeConfig, verbose: bool = False) -> None:
    """Configure logging based on config."""
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        filename=config.logging.file,
    )


def read_input(args: argparse.Namespace) -> bytes:
    """Read descriptor bytes from --hex, stdin, or a file."""
    if args.hex is not None:
        return bytes.fromhex(args.hex)
    if args.input is None:
        raise ValueError("No input given (pass a file, - for stdin, or --hex)")
    if args.input == "-":
        return sys.stdin.buffer.read()
    return Path(args.input).read_bytes()


def build_strings(args: argparse.Namespace) -> StringTable:
    """Collect --string INDEX=TEXT options into a lookup table."""
    table = StringTable()
    language_id = args.settings.decoder.language_id
    for item in args.string:
        index, sep, text = item.partition("=")
        if not sep:
            raise ValueError(f"Expected INDEX=TEXT, got {item!r}")
        table.add(int(index, 0), text, language_id)
    return table


def load_interfaces(args: argparse.Namespace) -> tuple[bytes, list[Interface]]:
    """Read the input and decode every interface in it."""
    data = read_input(args)
    interfaces = list(decode_interfaces(data, build_strings(args)))
    logger.debug("Decoded %d interface(s) from %d bytes", len(interfaces), len(data))
    return data, interfaces


def use_json(args: argparse.Namespace) -> bool:
    return getattr(args, "json", False) or args.settings.output.format == "json"


def output(data: Any, args: argparse.Namespace) -> None:
    """Output data in requested format."""
    if use_json(args):
        print(json.dumps(data, indent=args.settings.output.indent, default=str))
    elif isinstance(data, dict):
        for key, value in data.items():
            print(f"{key}: {value}")
    elif isinstance(data, list):
        for item in data:
            if isinstance(item, dict):
                for key, value in item.items():
                    print(f"  {key}: {value}")
                print()
            else:
                print(f"  {item}")
    else:
        print(data)


def format_interface(interface: Interface, language_id: int) -> list[str]:
    """Render one interface tree as indented text lines."""
    header = interface.header
    lines = [
        f"Interface {header.number} alt {header.alternate_setting}: "
        f"{header.class_name} (0x{header.interface_class:02X}/"
        f"0x{header.interface_subclass:02X}/0x{header.interface_protocol:02X}), "
        f"{interface.full_length} bytes"
    ]
    name = interface.interface_string(language_id)
    if name:
        lines.append(f"  Name: {name}")
    if interface.hid:
        hid = interface.hid.to_dict()
        lines.append(f"  HID {hid['hid_version']}: country {hid['country_code']}, {hid['class_descriptors']}")
    for descriptor in interface.generic_descriptors:
        lines.append(f"  Other(0x{descriptor.descriptor_type:02X}): {descriptor.raw.hex(' ')}")
    for index, endpoint in enumerate(interface.endpoint_slots):
        if endpoint is None:
            lines.append(f"  Endpoint slot {index}: empty")
        else:
            lines.append(
                f"  Endpoint 0x{endpoint.address:02X}: {endpoint.direction} {endpoint.transfer_type}, "
                f"max packet {endpoint.max_packet_size}, interval {endpoint.interval}"
            )
    for endpoint in interface.dropped_endpoints:
        lines.append(f"  Dropped endpoint 0x{endpoint.address:02X}: no free slot")
    return lines


def cmd_decode(args: argparse.Namespace) -> int:
    """Show the decoded descriptor tree."""
    _, interfaces = load_interfaces(args)
    language_id = args.settings.decoder.language_id

    if use_json(args):
        output([interface.to_dict(language_id) for interface in interfaces], args)
        return 0

    if not interfaces:
        print("No interfaces found.")
    for interface in interfaces:
        print("\n".join(format_interface(interface, language_id)))
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate every interface; exit status 1 if any is invalid."""
    _, interfaces = load_interfaces(args)
    config_id = args.config_id
    if config_id is None:
        config_id = args.settings.decoder.configuration_id

    results = []
    failed = False
    for interface in interfaces:
        result = interface.is_defined(config_id)
        failed = failed or result.error or bool(interface.dropped_endpoints)
        results.append({
            "interface": interface.number,
            "alternate_setting": interface.alternate_setting,
            "valid": not result.error,
            "violation": result.to_dict() if result.error else None,
            "dropped_endpoints": len(interface.dropped_endpoints),
        })

    if use_json(args):
        output(results, args)
    else:
        for interface, entry in zip(interfaces, results):
            status = "OK" if entry["valid"] else f"INVALID: {interface.is_defined(config_id)}"
            print(f"Interface {entry['interface']} alt {entry['alternate_setting']}: {status}")
            if entry["dropped_endpoints"]:
                print(f"  {entry['dropped_endpoints']} endpoint(s) exceeded the declared count")

    return 1 if failed else 0


def cmd_roundtrip(args: argparse.Namespace) -> int:
    """Check that decode followed by encode reproduces the input."""
    data, interfaces = load_interfaces(args)
    encoded = b"".join(interface.to_bytes() for interface in interfaces)

    if encoded == data:
        output({"identical": True, "length": len(data)}, args)
        return 0

    mismatch = next(
        (i for i, (a, b) in enumerate(zip(data, encoded)) if a != b),
        min(len(data), len(encoded)),
    )
    output({
        "identical": False,
        "input_length": len(data),
        "encoded_length": len(encoded),
        "first_difference": mismatch,
    }, args)
    return 1


def cmd_encode(args: argparse.Namespace) -> int:
    """Decode the input and write the re-encoded bytes."""
    _, interfaces = load_interfaces(args)
    total = sum(interface.full_length for interface in interfaces)
    buffer = bytearray(total)
    offset = 0
    for interface in interfaces:
        offset = interface.write_into(buffer, offset)

    Path(args.output).write_bytes(bytes(buffer))
    print(f"Wrote {offset} bytes to: {args.output}")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show effective configuration and any problems with it."""
    settings = args.settings
    errors = validate_config(settings)
    data = {
        "logging": vars(settings.logging),
        "decoder": vars(settings.decoder),
        "output": vars(settings.output),
        "errors": errors,
    }
    output(data, args)
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
