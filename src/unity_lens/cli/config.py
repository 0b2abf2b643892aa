"""
Connection configuration CLI for Unity Lens.

Usage:
    # Show the current connection and cache summary (token is never printed)
    python -m unity_lens.cli config show

    # Save connection values to the state file
    python -m unity_lens.cli config set --workspace-url https://dbc-123.cloud.databricks.com \\
        --warehouse-id abc123 --token dapi...

    # Run SELECT 1 against the configured warehouse
    python -m unity_lens.cli test-connection
"""

import argparse
import json
import sys
from typing import List, Optional

from unity_lens.infrastructure.resolution import ConfigurationError
from unity_lens.infrastructure.resolution.coordinator import NO_TOKEN_MESSAGE
from unity_lens.io.connectors.sql_statements import (
    StatementClientError,
    StatementExecutionClient,
)
from unity_lens.io.storage import StateStoreError

from .common import add_common_arguments, build_services


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unity_lens.cli config",
        description="Unity Lens connection configuration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m unity_lens.cli config show
  python -m unity_lens.cli config set --warehouse-id abc123
  python -m unity_lens.cli config set --token dapi0123456789
        """,
    )
    subparsers = parser.add_subparsers(
        title="operations",
        dest="operation",
        required=True,
        help="Configuration operation to perform",
    )

    show_parser = subparsers.add_parser("show", help="Show connection and cache summary")
    add_common_arguments(show_parser)

    set_parser = subparsers.add_parser("set", help="Save connection values")
    set_parser.add_argument("--workspace-url", default=None, help="Workspace base URL")
    set_parser.add_argument("--warehouse-id", default=None, help="SQL warehouse ID")
    set_parser.add_argument(
        "--token",
        default=None,
        help="Personal access token (blank keeps the stored token)",
    )
    add_common_arguments(set_parser)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    services = build_services(args)

    try:
        if args.operation == "set":
            if args.workspace_url is None and args.warehouse_id is None and args.token is None:
                print("Nothing to save: pass --workspace-url, --warehouse-id or --token", file=sys.stderr)
                return 2
            services.connections.save(
                workspace_url=args.workspace_url,
                warehouse_id=args.warehouse_id,
                pat_token=args.token,
            )
            print("Configuration saved")
            return 0

        summary = services.connections.describe(services.cache)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except StateStoreError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))
    return 0


def build_check_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unity_lens.cli test-connection",
        description="Run SELECT 1 on the configured SQL warehouse",
    )
    add_common_arguments(parser)
    return parser


def check_connection_main(argv: Optional[List[str]] = None) -> int:
    args = build_check_parser().parse_args(argv)
    services = build_services(args)

    try:
        config = services.connections.load()
        if not config.has_token:
            raise ConfigurationError(NO_TOKEN_MESSAGE)
        client = StatementExecutionClient(
            token=config.pat_token,
            workspace_url=config.workspace_url,
            warehouse_id=config.warehouse_id,
        )
        try:
            client.test_connection()
        finally:
            client.close()
    except (ConfigurationError, StatementClientError, StateStoreError) as e:
        print(f"Connection failed: {e}", file=sys.stderr)
        return 1

    print(f"Connected to {config.workspace_url} (warehouse {config.warehouse_id})")
    return 0
