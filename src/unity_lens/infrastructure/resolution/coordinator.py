"""
Lookup coordinator: cache first, SQL resolution for the rest.

Known-good data never regresses: whatever the cache already answered is
returned even when resolving the misses fails.
"""

import threading
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from unity_lens.config.connection_store import ConnectionConfig, ConnectionStore
from unity_lens.domain.identifiers import (
    IdentifierValidationError,
    ResolvedName,
    TypedIdentifier,
    merge_by_specificity,
)
from unity_lens.io.connectors.sql_statements import (
    StatementClientError,
    StatementExecutionClient,
)
from unity_lens.io.storage import StateStoreError
from unity_lens.utils.logging import bind_context

from .cache import ResolutionCache
from .resolver import TypedResolver
from .types import ConfigurationError, LookupResult, ResolutionError

NO_TOKEN_MESSAGE = "No PAT token configured"

ResolverFactory = Callable[[ConnectionConfig], TypedResolver]


def default_resolver_factory(config: ConnectionConfig) -> TypedResolver:
    """Build a TypedResolver backed by a StatementExecutionClient for config."""
    client = StatementExecutionClient(
        token=config.pat_token,
        workspace_url=config.workspace_url,
        warehouse_id=config.warehouse_id,
    )
    return TypedResolver(client)


class LookupCoordinator:
    """
    Entry point for resolving a batch of typed identifiers.

    Attributes:
        cache: ResolutionCache answering repeat lookups.
        connections: Source of the current connection configuration; read on
            every lookup so saved changes apply immediately.
        resolver_factory: Builds a TypedResolver for a connection config.
    """

    def __init__(
        self,
        cache: ResolutionCache,
        connections: ConnectionStore,
        resolver_factory: ResolverFactory = default_resolver_factory,
    ) -> None:
        self.cache = cache
        self.connections = connections
        self.resolver_factory = resolver_factory

    def lookup(
        self,
        requested: Iterable[Union[TypedIdentifier, Mapping[str, Any]]],
        cancel_event: Optional[threading.Event] = None,
    ) -> LookupResult:
        """
        Resolve identifiers to qualified names.

        Args:
            requested: TypedIdentifiers or ``{uuid, type}`` mappings; malformed
                entries are dropped
            cancel_event: Optional event that abandons remote resolution

        Returns:
            LookupResult whose matches are authoritative even when error is set
        """
        log = bind_context(__name__, lookup_id=uuid.uuid4().hex[:12])

        identifiers = _normalize(requested)
        if not identifiers:
            return LookupResult(matches={})

        log.info("lookup.started", requested=len(identifiers))

        try:
            hits, misses = self.cache.split(identifiers)
        except StateStoreError as e:
            log.error("lookup.cache_unavailable", error=str(e))
            hits, misses = {}, identifiers

        if not misses:
            log.info("lookup.completed", matches=len(hits), source="cache")
            return LookupResult(matches=hits)

        try:
            config = self.connections.load()
            _require_connection(config)
        except (ConfigurationError, StateStoreError) as e:
            log.warning("lookup.not_configured", error=str(e), cached=len(hits))
            return LookupResult(matches=hits, error=str(e))

        try:
            resolver = self.resolver_factory(config)
            outcome = resolver.resolve(misses, cancel_event=cancel_event)
        except (ResolutionError, StatementClientError) as e:
            log.error("lookup.resolution_failed", error=str(e))
            return LookupResult(matches=hits, error=str(e))

        fresh: Dict[str, ResolvedName] = outcome.matches
        errors: List[str] = list(outcome.errors)
        try:
            self.cache.merge(fresh)
        except StateStoreError as e:
            log.error("lookup.cache_write_failed", error=str(e))
            errors.append(str(e))

        matches = {**hits, **fresh}
        log.info(
            "lookup.completed",
            matches=len(matches),
            cached=len(hits),
            resolved=len(fresh),
            errors=len(errors),
        )
        return LookupResult(matches=matches, error="; ".join(errors) or None)


def _require_connection(config: ConnectionConfig) -> None:
    if not config.has_token:
        raise ConfigurationError(NO_TOKEN_MESSAGE)
    if not config.workspace_url or not config.warehouse_id:
        raise ConfigurationError("Workspace URL and warehouse ID must be configured")


def _normalize(
    requested: Iterable[Union[TypedIdentifier, Mapping[str, Any]]],
) -> List[TypedIdentifier]:
    identifiers: List[TypedIdentifier] = []
    for item in requested:
        try:
            identifiers.append(TypedIdentifier.from_payload(item))
        except (IdentifierValidationError, AttributeError, TypeError):
            continue
    return merge_by_specificity(identifiers)
