"""
Identifier resolution package.

Resolution flow:
1. LookupCoordinator normalizes the request and asks the ResolutionCache
2. Cache misses go to the TypedResolver, which queries the SQL warehouse
3. Fresh names are merged back into the cache and returned with the hits
"""

from .cache import ResolutionCache
from .coordinator import LookupCoordinator, default_resolver_factory
from .resolver import TypedResolver
from .types import (
    CACHE_TTL_MS,
    CacheStatus,
    ConfigurationError,
    LookupResult,
    ResolutionError,
    ResolutionOutcome,
    SchemaError,
)

__all__ = [
    "CACHE_TTL_MS",
    "CacheStatus",
    "ConfigurationError",
    "LookupCoordinator",
    "LookupResult",
    "ResolutionCache",
    "ResolutionError",
    "ResolutionOutcome",
    "SchemaError",
    "TypedResolver",
    "default_resolver_factory",
]
