"""
Resolution cache CLI for Unity Lens.

Usage:
    python -m unity_lens.cli cache status
    python -m unity_lens.cli cache clear
"""

import argparse
import sys
from typing import List, Optional

from unity_lens.io.storage import StateStoreError

from .common import add_common_arguments, build_services


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unity_lens.cli cache",
        description="Inspect or clear the resolution cache",
    )
    subparsers = parser.add_subparsers(
        title="operations",
        dest="operation",
        required=True,
        help="Cache operation to perform",
    )
    add_common_arguments(subparsers.add_parser("status", help="Show entry count and last update"))
    add_common_arguments(subparsers.add_parser("clear", help="Remove every cached entry"))
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    services = build_services(args)

    try:
        if args.operation == "clear":
            services.cache.clear()
            print("Cache cleared")
            return 0
        status = services.cache.status()
    except StateStoreError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    updated = status.updated_at.isoformat() if status.updated_at else "never"
    print(f"Entries:      {status.size}")
    print(f"Last updated: {updated}")
    return 0
