"""
Unified CLI entry point for Unity Lens.

Usage:
    python -m unity_lens.cli <command> [options]

Available commands:
    lookup           - Resolve table/schema/catalog UUIDs
    scan             - Annotate __unitystorage paths read from a file or stdin
    config           - Show or save the connection configuration
    test-connection  - Run SELECT 1 on the configured warehouse
    cache            - Show or clear the resolution cache
"""

import argparse
import sys
from typing import List, Optional


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unity_lens.cli",
        description="Unity Lens CLI - resolve Unity Catalog storage UUIDs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Save connection details once
  python -m unity_lens.cli config set --workspace-url https://dbc-123.cloud.databricks.com \\
      --warehouse-id abc123 --token dapi...

  # Resolve a table UUID
  python -m unity_lens.cli lookup --table 0f6e0c1e-2b7d-4f0a-9d7e-3c5a1b2c3d4e

  # Annotate an object listing
  python -m unity_lens.cli scan listing.txt

  # Cache housekeeping
  python -m unity_lens.cli cache status
        """,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
        help="Command to execute",
    )

    # Each command parses its own arguments
    subparsers.add_parser("lookup", help="Resolve typed UUIDs", add_help=False)
    subparsers.add_parser("scan", help="Annotate storage paths", add_help=False)
    subparsers.add_parser("config", help="Connection configuration", add_help=False)
    subparsers.add_parser("test-connection", help="Check warehouse connectivity", add_help=False)
    subparsers.add_parser("cache", help="Resolution cache operations", add_help=False)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point with subcommand routing.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = build_parser()
    args, remaining_args = parser.parse_known_args(argv)
    delegated_argv = remaining_args if remaining_args else []

    if args.command == "lookup":
        from unity_lens.cli.lookup import lookup_main

        return lookup_main(delegated_argv)

    elif args.command == "scan":
        from unity_lens.cli.lookup import scan_main

        return scan_main(delegated_argv)

    elif args.command == "config":
        from unity_lens.cli.config import main as config_main

        return config_main(delegated_argv)

    elif args.command == "test-connection":
        from unity_lens.cli.config import check_connection_main

        return check_connection_main(delegated_argv)

    elif args.command == "cache":
        from unity_lens.cli.cache import main as cache_main

        return cache_main(delegated_argv)

    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
