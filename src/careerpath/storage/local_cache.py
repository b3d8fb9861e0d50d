"""Client-resident key/value cache.

A small string-to-string mapping persisted as one JSON file, the local
counterpart of browser storage. Values are themselves JSON strings. The
cache is never authoritative: it backs up data the durable store normally
provides, so read and write problems are logged and degrade to "no value".
"""

import json
import threading
from pathlib import Path
from typing import Optional

from careerpath.utils.files import atomic_write
from careerpath.utils.logging import get_logger


logger = get_logger(__name__)


def avoidances_key(user_id: str) -> str:
    return f"avoidances:{user_id}"


class LocalCache:
    """JSON-file backed key/value cache."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("local_cache_unreadable", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("local_cache_unexpected_shape", path=str(self.path))
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: dict[str, str]) -> bool:
        try:
            atomic_write(self.path, json.dumps(data, indent=2, ensure_ascii=False))
        except OSError as e:
            logger.warning("local_cache_write_failed", path=str(self.path), error=str(e))
            return False
        return True

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> bool:
        """Store a value. Returns False if the cache file could not be written."""
        with self._lock:
            data = self._load()
            data[key] = value
            return self._save(data)

    def remove(self, key: str) -> bool:
        with self._lock:
            data = self._load()
            if key not in data:
                return True
            del data[key]
            return self._save(data)
