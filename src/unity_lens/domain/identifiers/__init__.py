"""
Typed storage identifiers and their resolved names.
"""

from .models import (
    UUID_PATTERN,
    IdentifierKind,
    IdentifierValidationError,
    ResolvedName,
    TypedIdentifier,
    is_canonical_identifier,
    merge_by_specificity,
    normalize_identifier,
)
from .path_parser import (
    annotate_lines,
    best_match,
    collect_typed_identifiers,
    parse_unity_path,
)

__all__ = [
    "UUID_PATTERN",
    "IdentifierKind",
    "IdentifierValidationError",
    "ResolvedName",
    "TypedIdentifier",
    "is_canonical_identifier",
    "merge_by_specificity",
    "normalize_identifier",
    "annotate_lines",
    "best_match",
    "collect_typed_identifiers",
    "parse_unity_path",
]
