"""
Key-value persistence for connection settings and the resolution cache.

The state file is a single flat JSON object. Every ``set`` rewrites the whole
file through a temporary sibling and ``os.replace`` so readers never see a
half-written document.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol

from unity_lens.utils.logging import get_logger

logger = get_logger(__name__)


class StateStoreError(Exception):
    """Raised when the state file cannot be read or written."""

    pass


class KeyValueStore(Protocol):
    """Protocol for the opaque get/set persistence layer."""

    def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Return the stored values for the keys that exist."""
        ...

    def set(self, values: Mapping[str, Any]) -> None:
        """Store (overwrite) the given keys, leaving other keys untouched."""
        ...


class InMemoryStore:
    """Process-local store, used for tests and embedding."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        with self._lock:
            # Round-trip through JSON so callers never share mutable state
            return {k: json.loads(json.dumps(self._data[k])) for k in keys if k in self._data}

    def set(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            self._data.update(json.loads(json.dumps(dict(values))))


class JsonFileStore:
    """
    File-backed KeyValueStore.

    Attributes:
        path: Location of the JSON state file (created on first write).
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(
                "state_store.corrupt_file",
                path=str(self.path),
                error=str(e),
            )
            return {}
        except OSError as e:
            raise StateStoreError(f"Failed to read state file {self.path}: {e}") from e

        if not isinstance(data, dict):
            logger.error("state_store.unexpected_document", path=str(self.path))
            return {}
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StateStoreError(f"Failed to write state file {self.path}: {e}") from e

    def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        with self._lock:
            data = self._read_all()
        return {k: data[k] for k in keys if k in data}

    def set(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            data = self._read_all()
            data.update(values)
            self._write_all(data)

        logger.debug("state_store.saved", path=str(self.path), keys=sorted(values.keys()))
