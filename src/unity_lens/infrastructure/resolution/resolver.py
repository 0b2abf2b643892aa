"""
Typed identifier resolver.

Maps table, schema and catalog UUIDs to qualified names by querying
``system.information_schema.tables`` through a SQL statement executor.

Resolution is best-effort:
- Table UUIDs are resolved in one batched query; if it fails, the whole group
  stays unresolved.
- Schema and catalog UUIDs are resolved one query each; a failure only affects
  that UUID.
- UUIDs with no matching row are simply absent from the result.
"""

import threading
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Type,
    Union,
)

from pydantic import ValidationError

from unity_lens.domain.identifiers import (
    IdentifierKind,
    IdentifierValidationError,
    ResolvedName,
    TypedIdentifier,
    is_canonical_identifier,
)
from unity_lens.io.connectors.sql_statements import (
    StatementCancelledError,
    StatementClientError,
)
from unity_lens.utils.logging import get_logger

from .queries import (
    CatalogRow,
    SchemaRow,
    TableRow,
    build_catalog_query,
    build_schema_query,
    build_table_query,
    parse_rows,
    trailing_token,
)
from .types import ResolutionOutcome, SchemaError

logger = get_logger(__name__)


class StatementExecutor(Protocol):
    """Anything that can run a SQL statement and return its rows."""

    def execute(
        self, statement: str, cancel_event: Optional[threading.Event] = None
    ) -> List[List[Any]]:
        ...


class _Cancelled(Exception):
    pass


class TypedResolver:
    """
    Resolve typed storage identifiers to qualified Unity Catalog names.

    Example:
        >>> resolver = TypedResolver(StatementExecutionClient(token="dapi..."))
        >>> outcome = resolver.resolve([TypedIdentifier.of(uuid, "table")])
        >>> outcome.matches[uuid].name
        'main.sales.orders'
    """

    def __init__(self, executor: StatementExecutor) -> None:
        self.executor = executor

    def resolve(
        self,
        identifiers: Iterable[Union[TypedIdentifier, Mapping[str, Any]]],
        cancel_event: Optional[threading.Event] = None,
    ) -> ResolutionOutcome:
        """
        Resolve identifiers group by group.

        Args:
            identifiers: Typed identifiers (or ``{uuid, type}`` mappings); ids are
                expected to be unique, with kind conflicts already settled
            cancel_event: Optional event that abandons remaining queries

        Returns:
            ResolutionOutcome with matches for every id that resolved and one
            error message per failed query
        """
        outcome = ResolutionOutcome()
        valid = self._validated(identifiers)
        if not valid:
            return outcome

        groups: Dict[IdentifierKind, List[str]] = {kind: [] for kind in _GROUP_ORDER}
        for ident in valid:
            groups[ident.kind].append(ident.id)

        logger.info(
            "resolver.started",
            tables=len(groups[IdentifierKind.TABLE]),
            schemas=len(groups[IdentifierKind.SCHEMA]),
            catalogs=len(groups[IdentifierKind.CATALOG]),
        )

        try:
            if groups[IdentifierKind.TABLE]:
                self._resolve_tables(groups[IdentifierKind.TABLE], outcome, cancel_event)
            for kind in (IdentifierKind.SCHEMA, IdentifierKind.CATALOG):
                for token in groups[kind]:
                    self._resolve_one(kind, token, outcome, cancel_event)
        except _Cancelled:
            logger.info("resolver.cancelled", resolved=len(outcome.matches))

        logger.info(
            "resolver.completed",
            requested=len(valid),
            resolved=len(outcome.matches),
            errors=len(outcome.errors),
        )
        return outcome

    def _validated(
        self, identifiers: Iterable[Union[TypedIdentifier, Mapping[str, Any]]]
    ) -> List[TypedIdentifier]:
        valid: List[TypedIdentifier] = []
        for item in identifiers:
            try:
                ident = TypedIdentifier.from_payload(item)
            except (IdentifierValidationError, AttributeError, TypeError):
                logger.debug("resolver.dropped_invalid_identifier")
                continue
            # model_construct() bypasses validation; check the token again
            if not is_canonical_identifier(ident.id):
                logger.debug("resolver.dropped_invalid_identifier")
                continue
            valid.append(ident)
        return valid

    def _run(
        self,
        statement: str,
        row_type: Type[Any],
        label: str,
        outcome: ResolutionOutcome,
        cancel_event: Optional[threading.Event],
    ) -> Optional[list]:
        """Execute one query; record and swallow its failure, re-raise cancellation."""
        try:
            rows = self.executor.execute(statement, cancel_event=cancel_event)
            return parse_rows(rows, row_type)
        except StatementCancelledError as e:
            outcome.errors.append(f"{label}: {e}")
            raise _Cancelled() from e
        except (StatementClientError, SchemaError) as e:
            logger.error("resolver.query_failed", target=label, error=str(e))
            outcome.errors.append(f"{label}: {e}")
            return None

    def _resolve_tables(
        self,
        tokens: Sequence[str],
        outcome: ResolutionOutcome,
        cancel_event: Optional[threading.Event],
    ) -> None:
        rows = self._run(
            build_table_query(tokens), TableRow, "table lookup", outcome, cancel_event
        )
        if rows is None:
            return

        requested = set(tokens)
        found = 0
        for row in rows:
            if row.storage_sub_directory is None:
                continue
            token = trailing_token(str(row.storage_sub_directory))
            if token not in requested:
                logger.warning("resolver.unrequested_table_row", identifier=token)
                continue
            name = _to_name(
                IdentifierKind.TABLE, (row.table_catalog, row.table_schema, row.table_name)
            )
            if name is not None:
                outcome.matches[token] = name
                found += 1

        logger.info("resolver.tables_resolved", resolved=found, requested=len(tokens))

    def _resolve_one(
        self,
        kind: IdentifierKind,
        token: str,
        outcome: ResolutionOutcome,
        cancel_event: Optional[threading.Event],
    ) -> None:
        build, row_type, parts = _SINGLE_LOOKUPS[kind]
        rows = self._run(
            build(token), row_type, f"{kind.value} lookup for {token}", outcome, cancel_event
        )
        if not rows:
            return
        name = _to_name(kind, parts(rows[0]))
        if name is not None:
            outcome.matches[token] = name


def _to_name(kind: IdentifierKind, parts: Tuple[Any, ...]) -> Optional[ResolvedName]:
    if any(p is None or p == "" for p in parts):
        logger.warning("resolver.incomplete_row", kind=kind.value)
        return None
    try:
        return ResolvedName.from_parts(kind, *parts)
    except ValidationError as e:
        logger.warning("resolver.invalid_name", kind=kind.value, error=str(e))
        return None


_GROUP_ORDER = (IdentifierKind.TABLE, IdentifierKind.SCHEMA, IdentifierKind.CATALOG)

_SINGLE_LOOKUPS: Dict[
    IdentifierKind, Tuple[Callable[[str], str], Type[Any], Callable[[Any], Tuple[Any, ...]]]
] = {
    IdentifierKind.SCHEMA: (
        build_schema_query,
        SchemaRow,
        lambda r: (r.table_catalog, r.table_schema),
    ),
    IdentifierKind.CATALOG: (
        build_catalog_query,
        CatalogRow,
        lambda r: (r.table_catalog,),
    ),
}
