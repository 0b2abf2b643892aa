"""
Shared wiring for Unity Lens CLI commands.
"""

import argparse
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from dotenv import load_dotenv

from unity_lens.config.connection_store import ConnectionStore
from unity_lens.config.settings import get_settings, reset_settings_cache
from unity_lens.domain.identifiers import TypedIdentifier
from unity_lens.infrastructure.resolution import (
    LookupCoordinator,
    LookupResult,
    ResolutionCache,
)
from unity_lens.io.storage import JsonFileStore


@dataclass
class Services:
    """Components sharing one state file for the lifetime of a CLI run."""

    store: JsonFileStore
    cache: ResolutionCache
    connections: ConnectionStore
    coordinator: LookupCoordinator


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--state-file",
        type=Path,
        default=None,
        help="JSON state file (default: ULENS_STATE_FILE or ~/.unity_lens/state.json)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load ULENS_* variables from this .env file before running",
    )


def build_services(args: argparse.Namespace) -> Services:
    env_file: Optional[Path] = getattr(args, "env_file", None)
    if env_file is not None:
        load_dotenv(dotenv_path=env_file, override=True)
        reset_settings_cache()

    settings = get_settings()
    state_file = getattr(args, "state_file", None) or settings.state_path

    store = JsonFileStore(state_file)
    cache = ResolutionCache(store)
    connections = ConnectionStore(store, settings)
    return Services(
        store=store,
        cache=cache,
        connections=connections,
        coordinator=LookupCoordinator(cache, connections),
    )


def run_lookup(
    coordinator: LookupCoordinator,
    identifiers: Iterable[Union[TypedIdentifier, Mapping[str, Any]]],
) -> LookupResult:
    """
    Run a lookup on a worker thread so Ctrl-C cancels in-flight statements.

    The first KeyboardInterrupt sets the cancel event and waits for the lookup
    to return whatever it resolved so far.
    """
    cancel_event = threading.Event()
    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(coordinator.lookup, list(identifiers), cancel_event)
        try:
            return future.result()
        except KeyboardInterrupt:
            cancel_event.set()
            return future.result()
