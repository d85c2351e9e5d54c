"""
Command-line interface for romlayout.

Commands:
- parse: Place a schema at an address and report the resulting array
- search: Find the best placement for a schema among pointed-to regions
- discover: Identify the game and anchor its header and name arrays
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .arrays import ArrayRegion, SchemaFormatError, parse_at, search
from .config import SearchProfile
from .debug.trace import Tracer, setup_logging
from .memory import AddressSpace, AutoSearch, region_kind


def hex_address(text: str) -> int:
    """Parse a hexadecimal address, with or without a 0x prefix."""
    try:
        value = int(text, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex address: {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"address must be non-negative: {text!r}")
    return value


def get_arg_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="romlayout",
        description="Describe, validate and discover arrays inside ROM images",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--profile",
        type=str,
        default=None,
        help="Path to a search profile (TOML); defaults to the built-in GBA profile",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parse_parser = subparsers.add_parser(
        "parse",
        help="Place a schema at an address",
    )
    parse_parser.add_argument("file", type=str, help="Image file")
    parse_parser.add_argument("schema", type=str, help='Schema text, e.g. [name""13]354')
    parse_parser.add_argument(
        "--at",
        type=hex_address,
        required=True,
        help="Array start address (hex)",
    )
    parse_parser.add_argument(
        "--offset",
        type=hex_address,
        help="Translate this address (hex) into element/segment coordinates",
    )
    parse_parser.add_argument(
        "--dump",
        action="store_true",
        help="Print every element as text",
    )

    # Search command
    search_parser = subparsers.add_parser(
        "search",
        help="Find the best placement for a schema",
    )
    search_parser.add_argument("file", type=str, help="Image file")
    search_parser.add_argument("schema", type=str, help='Schema text, e.g. [name""13]')
    search_parser.add_argument(
        "--dump",
        action="store_true",
        help="Print every element of the match as text",
    )

    # Discover command
    discover_parser = subparsers.add_parser(
        "discover",
        help="Anchor the header and name arrays of a known game",
    )
    discover_parser.add_argument("file", type=str, help="Image file")
    discover_parser.add_argument(
        "--save-trace",
        type=str,
        help="Save event trace to file",
    )
    discover_parser.add_argument(
        "--dump",
        action="store_true",
        help="Print every discovered array as text",
    )

    return parser


def load_profile(args: argparse.Namespace) -> SearchProfile:
    if args.profile is None:
        return SearchProfile()
    return SearchProfile.from_toml(args.profile)


def load_space(args: argparse.Namespace, profile: SearchProfile) -> AddressSpace:
    return AddressSpace.from_file(args.file, pointers=profile.pointers)


def print_region(region: ArrayRegion) -> None:
    print(f"Array at 0x{region.start:06X}: {region.schema_text}")
    print(f"  Elements: {region.element_count}")
    print(f"  Element length: {region.element_length}")
    print(f"  Total length: {region.total_length}")
    print(f"  Segments: {', '.join(f'{s.name}({s.length})' for s in region.segments)}")
    if region.back_references:
        refs = ", ".join(f"0x{r:06X}" for r in sorted(region.back_references))
        print(f"  Referenced from: {refs}")


def cmd_parse(args: argparse.Namespace) -> int:
    """Run parse command."""
    profile = load_profile(args)
    space = load_space(args, profile)
    if profile.pointers.discover:
        space.discover_pointers()

    result = parse_at(space, args.schema, args.at)
    if not result.ok:
        print(f"Schema error: {result.error}")
        return 1
    region = result.value
    print_region(region)

    if args.offset is not None:
        if not region.start <= args.offset < region.end:
            print(f"Address 0x{args.offset:06X} is outside the array")
            return 1
        offset = region.to_offset(args.offset)
        segment = region.segments[offset.segment_index]
        print(
            f"0x{args.offset:06X}: element {offset.element_index}, "
            f"segment {offset.segment_index} ({segment.name}) "
            f"starting at 0x{offset.segment_start:06X}, offset {offset.segment_offset}"
        )

    if args.dump:
        print(region.serialize(space.data, space.codec), end="")
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    """Run search command."""
    profile = load_profile(args)
    space = load_space(args, profile)
    count = space.discover_pointers()
    print(f"Discovered {count} pointers")

    region = search(space, args.schema)
    if region is None:
        print(f"No match for {args.schema}")
        return 1

    print_region(region)
    if args.dump:
        print(region.serialize(space.data, space.codec), end="")
    return 0


def cmd_discover(args: argparse.Namespace) -> int:
    """Run discover command."""
    profile = load_profile(args)
    space = load_space(args, profile)
    tracer = Tracer(enabled=bool(args.save_trace))
    tracer.start()

    auto = AutoSearch(space, profile, tracer)
    if not auto.is_supported:
        print(f"Unsupported game code: {auto.game_code!r}")
        return 1

    found = auto.run()
    print(f"Game code: {auto.game_code}")
    print(f"Anchors: {len(found)}")
    for name, region in found.items():
        print(f"  {name:20s} 0x{region.start:06X} {region_kind(region).value:8s} length={region.length}")
        if args.dump and isinstance(region, ArrayRegion):
            print(region.serialize(space.data, space.codec), end="")

    if args.save_trace:
        trace_path = Path(args.save_trace)
        tracer.save(trace_path)
        print(f"Trace saved to {trace_path}")

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = get_arg_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "parse": cmd_parse,
        "search": cmd_search,
        "discover": cmd_discover,
    }

    cmd_func = commands.get(args.command)
    if cmd_func is None:
        print(f"Unknown command: {args.command}")
        return 1

    try:
        return cmd_func(args)
    except (SchemaFormatError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
