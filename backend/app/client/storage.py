"""
Key-value stores used by the storefront client

MemoryStore mirrors a browser's sessionStorage (lives as long as the
process); JsonFileStore mirrors localStorage (survives restarts).
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

TOKEN_KEY = "authToken"
REFRESH_TOKEN_KEY = "refreshToken"
USER_KEY = "authUser"
CART_KEY = "cart"
CSRF_TOKEN_KEY = "csrf_token"


class MemoryStore:
    """In-process string key-value store"""

    def __init__(self, initial: Dict[str, Any] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore(MemoryStore):
    """Store persisted to a JSON file after every write"""

    def __init__(self, path: str):
        self.path = Path(path)
        data = {}
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.error(f"Failed to read store {self.path}: {e}")
        super().__init__(data)

    def _flush(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write store {self.path}: {e}")

    def set(self, key: str, value: Any) -> None:
        super().set(key, value)
        self._flush()

    def remove(self, key: str) -> None:
        super().remove(key)
        self._flush()

    def clear(self) -> None:
        super().clear()
        self._flush()
