"""
Extraction of typed identifiers from ``__unitystorage`` paths.

Managed Unity Catalog storage is laid out as::

    __unitystorage/schemas/<schema_uuid>/tables/<table_uuid>
    __unitystorage/catalogs/<catalog_uuid>/tables/<table_uuid>
    __unitystorage/catalogs/<catalog_uuid>
    __unitystorage/schemas/<schema_uuid>/tables

Each ``<segment>/<uuid>`` pair yields one TypedIdentifier. Segments without a
UUID after them (``__unitystorage/schemas``) are skipped.
"""

import re
from typing import Dict, Iterable, List, Mapping, Optional

from .models import (
    IdentifierKind,
    ResolvedName,
    TypedIdentifier,
    is_canonical_identifier,
    merge_by_specificity,
)

UNITY_STORAGE_MARKER = "__unitystorage/"

SEGMENT_KINDS = {
    "tables": IdentifierKind.TABLE,
    "schemas": IdentifierKind.SCHEMA,
    "catalogs": IdentifierKind.CATALOG,
}

_NON_UUID_CHARS = re.compile(r"[^0-9a-f-]", re.IGNORECASE)


def parse_unity_path(text: str) -> List[TypedIdentifier]:
    """
    Parse the first ``__unitystorage/`` path found in text.

    Returns:
        TypedIdentifiers in path order; empty if text holds no resolvable UUID.
    """
    idx = text.find(UNITY_STORAGE_MARKER)
    if idx == -1:
        return []

    segments = text[idx:].split("/")
    results: List[TypedIdentifier] = []

    # segments[0] is the marker itself; then (kind, uuid) pairs
    for i in range(1, len(segments), 2):
        kind = SEGMENT_KINDS.get(segments[i])
        token = segments[i + 1] if i + 1 < len(segments) else ""
        if kind is None or not token:
            continue

        cleaned = _NON_UUID_CHARS.sub("", token).lower()
        if not is_canonical_identifier(cleaned):
            continue

        results.append(TypedIdentifier(id=cleaned, kind=kind))

    return results


def collect_typed_identifiers(texts: Iterable[str]) -> List[TypedIdentifier]:
    """Parse many texts and return one identifier per UUID, most specific kind winning."""
    found: List[TypedIdentifier] = []
    for text in texts:
        found.extend(parse_unity_path(text))
    return merge_by_specificity(found)


def best_match(
    parsed: Iterable[TypedIdentifier],
    matches: Mapping[str, ResolvedName],
) -> Optional[ResolvedName]:
    """
    Pick the label to show for one path occurrence.

    Among the occurrence's identifiers that resolved, the most specific resolved
    name wins (a table name beats its schema, a schema beats its catalog).
    """
    chosen: Optional[ResolvedName] = None
    for ident in parsed:
        info = matches.get(ident.id)
        if info is None:
            continue
        if chosen is None or info.kind.specificity > chosen.kind.specificity:
            chosen = info
    return chosen


def annotate_lines(
    lines: Iterable[str], matches: Mapping[str, ResolvedName]
) -> Dict[str, Optional[ResolvedName]]:
    """Map each line containing a unity path to its best resolved label (or None)."""
    annotated: Dict[str, Optional[ResolvedName]] = {}
    for line in lines:
        parsed = parse_unity_path(line)
        if parsed:
            annotated[line] = best_match(parsed, matches)
    return annotated
