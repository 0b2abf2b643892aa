"""
Pydantic v2 data models for Unity Catalog identifier resolution.

This module defines the data contracts shared by the path scanner, the
resolution cache and the SQL-backed resolver:

1. IdentifierKind - position of a UUID in the catalog > schema > table hierarchy
2. TypedIdentifier - a validated storage UUID tagged with its kind
3. ResolvedName - the dot-joined qualified name a UUID resolves to
"""

import re
from enum import Enum
from typing import Any, Iterable, List, Mapping, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)


class IdentifierValidationError(ValueError):
    """Raised when a token does not have the canonical UUID shape."""

    pass


class IdentifierKind(str, Enum):
    """
    Kind of a storage identifier.

    TABLE is the terminal resource (LEAF), SCHEMA the mid-level container
    (BRANCH) and CATALOG the top-level container (ROOT).
    """

    TABLE = "table"
    SCHEMA = "schema"
    CATALOG = "catalog"

    # Hierarchy-position aliases
    LEAF = "table"
    BRANCH = "schema"
    ROOT = "catalog"

    @property
    def specificity(self) -> int:
        """Tie-break rank; higher wins. Equals the qualified-name segment count."""
        return _SPECIFICITY[self]

    @property
    def segment_count(self) -> int:
        return _SPECIFICITY[self]


_SPECIFICITY = {
    IdentifierKind.TABLE: 3,
    IdentifierKind.SCHEMA: 2,
    IdentifierKind.CATALOG: 1,
}


def is_canonical_identifier(token: Any) -> bool:
    """Return True if token is a lower-case canonical UUID string."""
    return isinstance(token, str) and bool(UUID_PATTERN.match(token))


def normalize_identifier(token: Any) -> str:
    """
    Lower-case and strip a token, rejecting anything that is not a UUID.

    Raises:
        IdentifierValidationError: If the token does not match the canonical shape.
    """
    if not isinstance(token, str):
        raise IdentifierValidationError(f"Identifier must be a string, got {type(token).__name__}")
    cleaned = token.strip().lower()
    if not UUID_PATTERN.match(cleaned):
        raise IdentifierValidationError(f"Not a canonical identifier: {token!r}")
    return cleaned


class TypedIdentifier(BaseModel):
    """A storage UUID and the kind of Unity Catalog object it names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., validation_alias="uuid", description="Canonical lower-case UUID")
    kind: IdentifierKind = Field(..., validation_alias="type")

    @field_validator("id", mode="before")
    @classmethod
    def canonical_id(cls, v: Any) -> str:
        return normalize_identifier(v)

    @classmethod
    def of(cls, token: str, kind: Union[IdentifierKind, str]) -> "TypedIdentifier":
        """
        Build a TypedIdentifier, raising IdentifierValidationError on bad input.

        Pydantic wraps validator errors in its own ValidationError; callers of this
        module only ever need to catch IdentifierValidationError.
        """
        try:
            return cls(id=token, kind=kind)
        except ValidationError as e:
            raise IdentifierValidationError(str(e)) from e

    @classmethod
    def from_payload(
        cls, payload: Union["TypedIdentifier", Mapping[str, Any]]
    ) -> "TypedIdentifier":
        """Accept a TypedIdentifier or a mapping with ``uuid``/``id`` and ``type``/``kind``."""
        if isinstance(payload, TypedIdentifier):
            return payload
        token = payload.get("uuid") or payload.get("id")
        kind = payload.get("type") or payload.get("kind")
        return cls.of(token, kind)


class ResolvedName(BaseModel):
    """
    Qualified Unity Catalog name for a resolved identifier.

    Serialized with the field names of the persisted cache record
    (``{"type": ..., "fullName": ...}``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: IdentifierKind = Field(..., alias="type")
    name: str = Field(..., alias="fullName", min_length=1)

    @model_validator(mode="after")
    def segment_count_matches_kind(self) -> "ResolvedName":
        segments = self.name.split(".")
        if len(segments) != self.kind.segment_count or not all(segments):
            raise ValueError(
                f"{self.kind.value} names need {self.kind.segment_count} "
                f"non-empty segment(s), got {self.name!r}"
            )
        return self

    @classmethod
    def from_parts(cls, kind: IdentifierKind, *parts: Any) -> "ResolvedName":
        return cls(kind=kind, name=".".join(str(p) for p in parts))

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def merge_by_specificity(identifiers: Iterable[TypedIdentifier]) -> List[TypedIdentifier]:
    """
    Collapse repeated ids to one entry each, keeping the most specific kind.

    Order of first appearance is preserved.
    """
    chosen: dict[str, TypedIdentifier] = {}
    for ident in identifiers:
        existing = chosen.get(ident.id)
        if existing is None or ident.kind.specificity > existing.kind.specificity:
            chosen[ident.id] = ident
    return list(chosen.values())
