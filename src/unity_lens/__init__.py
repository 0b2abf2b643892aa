"""
Unity Lens - Unity Catalog storage identifier resolution.

Resolves the UUIDs embedded in ``__unitystorage`` object-store paths into
readable ``catalog.schema.table`` names through a Databricks SQL warehouse,
with a 24-hour local cache.
"""

__version__ = "0.1.0"
