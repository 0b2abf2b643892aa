"""
Lookup and scan commands.

Usage:
    # Resolve identifiers given explicitly
    python -m unity_lens.cli lookup --table 0f6e...c1 --schema 7a1b...9d

    # Resolve every __unitystorage path in a listing (file or stdin)
    aws s3 ls --recursive s3://bucket/ | python -m unity_lens.cli scan

    # Machine-readable output
    python -m unity_lens.cli lookup --catalog 5c2e...aa --json
"""

import argparse
import json
import sys
from typing import List, Optional, TextIO

from unity_lens.domain.identifiers import (
    IdentifierKind,
    IdentifierValidationError,
    TypedIdentifier,
    annotate_lines,
    collect_typed_identifiers,
)
from unity_lens.infrastructure.resolution import LookupResult

from .common import add_common_arguments, build_services, run_lookup


def build_lookup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unity_lens.cli lookup",
        description="Resolve Unity Catalog storage UUIDs to qualified names",
    )
    for kind in IdentifierKind:
        parser.add_argument(
            f"--{kind.value}",
            dest=f"{kind.value}_ids",
            action="append",
            default=[],
            metavar="UUID",
            help=f"{kind.value} UUID to resolve (repeatable)",
        )
    parser.add_argument("--json", action="store_true", help="Print the raw lookup result as JSON")
    add_common_arguments(parser)
    return parser


def build_scan_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unity_lens.cli scan",
        description="Annotate lines containing __unitystorage paths with resolved names",
    )
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="File to scan ('-' or omitted reads stdin)",
    )
    parser.add_argument(
        "--only-resolved",
        action="store_true",
        help="Print only lines that received a label",
    )
    add_common_arguments(parser)
    return parser


def _print_result(result: LookupResult, as_json: bool, out: TextIO) -> None:
    if as_json:
        json.dump(result.to_dict(), out, indent=2, ensure_ascii=False)
        out.write("\n")
        return
    for uuid, name in sorted(result.matches.items()):
        print(f"{uuid}\t{name.kind.value}\t{name.name}", file=out)
    if result.error:
        print(f"warning: {result.error}", file=sys.stderr)


def lookup_main(argv: Optional[List[str]] = None) -> int:
    args = build_lookup_parser().parse_args(argv)

    identifiers: List[TypedIdentifier] = []
    for kind in IdentifierKind:
        for token in getattr(args, f"{kind.value}_ids"):
            try:
                identifiers.append(TypedIdentifier.of(token, kind))
            except IdentifierValidationError:
                print(f"error: not a UUID: {token}", file=sys.stderr)
                return 2

    if not identifiers:
        print("error: give at least one --table, --schema or --catalog UUID", file=sys.stderr)
        return 2

    services = build_services(args)
    result = run_lookup(services.coordinator, identifiers)
    _print_result(result, args.json, sys.stdout)
    return 0 if result.matches or not result.error else 1


def scan_main(argv: Optional[List[str]] = None) -> int:
    args = build_scan_parser().parse_args(argv)

    if args.input == "-":
        lines = [line.rstrip("\n") for line in sys.stdin]
    else:
        with open(args.input, "r", encoding="utf-8") as f:
            lines = [line.rstrip("\n") for line in f]

    identifiers = collect_typed_identifiers(lines)
    if not identifiers:
        print("No __unitystorage identifiers found", file=sys.stderr)
        return 0

    services = build_services(args)
    result = run_lookup(services.coordinator, identifiers)
    labels = annotate_lines(lines, result.matches)

    for line in lines:
        label = labels.get(line)
        if label is not None:
            print(f"{line}  [{label.name}]")
        elif not args.only_resolved:
            print(line)

    if result.error:
        print(f"warning: {result.error}", file=sys.stderr)
    return 0
