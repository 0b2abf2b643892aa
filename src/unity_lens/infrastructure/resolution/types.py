"""
Type definitions for identifier resolution.

This module defines the error taxonomy and result types shared by the
TypedResolver, the ResolutionCache and the LookupCoordinator.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from unity_lens.domain.identifiers import ResolvedName

# Fixed validity window for cached resolutions
CACHE_TTL_MS = 24 * 60 * 60 * 1000


class ResolutionError(Exception):
    """Base exception for resolution failures surfaced to callers."""

    pass


class ConfigurationError(ResolutionError):
    """Raised when no credential or connection target is configured."""

    pass


class SchemaError(ResolutionError):
    """Raised when a result row does not have the shape its query promises."""

    pass


@dataclass
class ResolutionOutcome:
    """
    Result of one TypedResolver run.

    Attributes:
        matches: Resolved names keyed by lower-case identifier.
        errors: One message per failed group (tables) or identifier (schemas, catalogs).
    """

    matches: Dict[str, ResolvedName] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)


@dataclass
class LookupResult:
    """
    Result returned to lookup callers.

    ``matches`` is authoritative even when ``error`` is set.
    """

    matches: Dict[str, ResolvedName] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "matches": {k: v.to_record() for k, v in self.matches.items()}
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass
class CacheStatus:
    """Size and last-update time of the resolution cache."""

    size: int
    updated_at_ms: Optional[int]

    @property
    def updated_at(self) -> Optional[datetime]:
        if self.updated_at_ms is None:
            return None
        return datetime.fromtimestamp(self.updated_at_ms / 1000, tz=timezone.utc)
