"""
SQL builders and row schemas for resolving storage identifiers.

All three lookups read ``system.information_schema.tables``:

- Table UUIDs:   storage_sub_directory = 'tables/<uuid>'   (one batched IN query)
- Schema UUIDs:  storage_path LIKE '%/schemas/<uuid>/%'    (one query per UUID)
- Catalog UUIDs: storage_path LIKE '%/catalogs/<uuid>/%'   (one query per UUID)

Identifiers are interpolated into SQL text, so every builder re-checks the
canonical UUID shape and refuses anything else.
"""

from typing import Any, Iterable, List, NamedTuple, Sequence, Type, TypeVar

from unity_lens.domain.identifiers import IdentifierValidationError, is_canonical_identifier

from .types import SchemaError

INFORMATION_SCHEMA_TABLES = "system.information_schema.tables"
TABLE_SUBDIR_PREFIX = "tables/"


class TableRow(NamedTuple):
    table_catalog: Any
    table_schema: Any
    table_name: Any
    storage_sub_directory: Any


class SchemaRow(NamedTuple):
    table_catalog: Any
    table_schema: Any


class CatalogRow(NamedTuple):
    table_catalog: Any


RowT = TypeVar("RowT", TableRow, SchemaRow, CatalogRow)


def _require_canonical(token: str) -> str:
    if not is_canonical_identifier(token):
        raise IdentifierValidationError(f"Refusing to build SQL for {token!r}")
    return token


def build_table_query(tokens: Iterable[str]) -> str:
    """Batched lookup of table UUIDs by exact storage sub-directory."""
    conditions = ", ".join(
        f"'{TABLE_SUBDIR_PREFIX}{_require_canonical(t)}'" for t in tokens
    )
    if not conditions:
        raise ValueError("At least one table identifier is required")
    return (
        "SELECT table_catalog, table_schema, table_name, storage_sub_directory\n"
        f"FROM {INFORMATION_SCHEMA_TABLES}\n"
        f"WHERE storage_sub_directory IN ({conditions})"
    )


def build_schema_query(token: str) -> str:
    """Single-row lookup of a schema UUID by storage path pattern."""
    return (
        "SELECT DISTINCT table_catalog, table_schema\n"
        f"FROM {INFORMATION_SCHEMA_TABLES}\n"
        f"WHERE storage_path LIKE '%/schemas/{_require_canonical(token)}/%'\n"
        "LIMIT 1"
    )


def build_catalog_query(token: str) -> str:
    """Single-row lookup of a catalog UUID by storage path pattern."""
    return (
        "SELECT DISTINCT table_catalog\n"
        f"FROM {INFORMATION_SCHEMA_TABLES}\n"
        f"WHERE storage_path LIKE '%/catalogs/{_require_canonical(token)}/%'\n"
        "LIMIT 1"
    )


def parse_rows(rows: Sequence[Sequence[Any]], row_type: Type[RowT]) -> List[RowT]:
    """
    Bind positional result rows to a typed row schema.

    Raises:
        SchemaError: If any row's arity differs from the schema's field count
    """
    arity = len(row_type._fields)
    parsed: List[RowT] = []
    for index, row in enumerate(rows):
        if not isinstance(row, (list, tuple)) or len(row) != arity:
            raise SchemaError(
                f"{row_type.__name__} expects {arity} columns, "
                f"row {index} has {len(row) if isinstance(row, (list, tuple)) else 'no'} columns"
            )
        parsed.append(row_type(*row))
    return parsed


def trailing_token(sub_directory: str) -> str:
    """Return the lower-cased last path segment, e.g. 'tables/<UUID>' -> '<uuid>'."""
    return sub_directory.rstrip("/").rsplit("/", 1)[-1].lower()
