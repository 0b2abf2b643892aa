"""
Persisted Databricks connection configuration.

Connection values saved through the CLI live in the state file next to the
resolution cache. Anything not saved there falls back to Settings
(``ULENS_WORKSPACE_URL``, ``ULENS_WAREHOUSE_ID``, ``ULENS_PAT_TOKEN``).
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from unity_lens.config.settings import Settings, get_settings
from unity_lens.io.storage import KeyValueStore
from unity_lens.utils.logging import get_logger

if TYPE_CHECKING:
    from unity_lens.infrastructure.resolution.cache import ResolutionCache

logger = get_logger(__name__)

WORKSPACE_URL_KEY = "workspaceUrl"
WAREHOUSE_ID_KEY = "warehouseId"
PAT_TOKEN_KEY = "patToken"


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Connection target for the SQL Statement API.

    Attributes:
        workspace_url: Workspace base URL without trailing slash.
        warehouse_id: SQL warehouse to run statements on.
        pat_token: Personal access token (never logged or displayed).
    """

    workspace_url: str = ""
    warehouse_id: str = ""
    pat_token: str = ""

    @property
    def has_token(self) -> bool:
        return bool(self.pat_token)

    def __repr__(self) -> str:
        return (
            f"ConnectionConfig(workspace_url={self.workspace_url!r}, "
            f"warehouse_id={self.warehouse_id!r}, has_token={self.has_token})"
        )


class ConnectionStore:
    """Read and update the connection configuration held in a KeyValueStore."""

    def __init__(self, store: KeyValueStore, settings: Optional[Settings] = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    def load(self) -> ConnectionConfig:
        stored = self.store.get([WORKSPACE_URL_KEY, WAREHOUSE_ID_KEY, PAT_TOKEN_KEY])
        return ConnectionConfig(
            workspace_url=(stored.get(WORKSPACE_URL_KEY) or self.settings.workspace_url).rstrip("/"),
            warehouse_id=stored.get(WAREHOUSE_ID_KEY) or self.settings.warehouse_id,
            pat_token=stored.get(PAT_TOKEN_KEY) or self.settings.pat_token,
        )

    def save(
        self,
        workspace_url: Optional[str] = None,
        warehouse_id: Optional[str] = None,
        pat_token: Optional[str] = None,
    ) -> None:
        """
        Persist the given fields; None leaves a field unchanged.

        Raises:
            ValueError: If an explicitly given workspace URL or warehouse id is blank
        """
        updates: Dict[str, Any] = {}
        if workspace_url is not None:
            cleaned = workspace_url.strip().rstrip("/")
            if not cleaned:
                raise ValueError("Workspace URL is required")
            updates[WORKSPACE_URL_KEY] = cleaned
        if warehouse_id is not None:
            cleaned = warehouse_id.strip()
            if not cleaned:
                raise ValueError("Warehouse ID is required")
            updates[WAREHOUSE_ID_KEY] = cleaned
        if pat_token is not None and pat_token.strip():
            updates[PAT_TOKEN_KEY] = pat_token.strip()

        if not updates:
            return
        self.store.set(updates)
        logger.info("connection_config.saved", fields=sorted(updates.keys()))

    def describe(self, cache: "ResolutionCache") -> Dict[str, Any]:
        """Summary for display; exposes only whether a token is set."""
        config = self.load()
        status = cache.status()
        return {
            "workspaceUrl": config.workspace_url,
            "warehouseId": config.warehouse_id,
            "hasToken": config.has_token,
            "cacheSize": status.size,
            "cacheUpdatedAt": status.updated_at_ms,
        }
