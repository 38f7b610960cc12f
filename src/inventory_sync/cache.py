"""On-device snapshot cache keyed by the signed-in identity."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock

from pydantic import ValidationError as SchemaError

from .schemas import CacheSnapshot

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "inventory_cache_"
GUEST_CACHE_KEY = f"{CACHE_KEY_PREFIX}guest"


def cache_key(identity: str | None) -> str:
    """Return the cache key for ``identity``, or the guest key when signed out."""

    if not identity:
        return GUEST_CACHE_KEY
    return f"{CACHE_KEY_PREFIX}{identity}"


@dataclass
class LocalCacheStore:
    """Best-effort snapshot store: one JSON file per key, overwritten wholesale.

    Failures never propagate. ``write`` reports success as a boolean and
    ``read`` returns ``None`` for missing or unreadable entries.
    """

    directory: Path
    _lock: RLock = field(default_factory=RLock, init=False)

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)

    def path_for(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.directory / f"{safe}.json"

    def write(self, key: str, snapshot: CacheSnapshot) -> bool:
        path = self.path_for(key)
        with self._lock:
            try:
                payload = json.dumps(snapshot.to_wire(), ensure_ascii=False)
                path.parent.mkdir(parents=True, exist_ok=True)
                temp_path = path.with_suffix(".tmp")
                temp_path.write_text(payload, encoding="utf-8")
                temp_path.replace(path)
            except (OSError, TypeError, ValueError) as exc:
                logger.warning("Cache write for %s failed: %s", key, exc)
                return False
        return True

    def read(self, key: str) -> CacheSnapshot | None:
        path = self.path_for(key)
        with self._lock:
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Cache read for %s failed: %s", key, exc)
                return None
        try:
            return CacheSnapshot.model_validate(json.loads(raw))
        except (json.JSONDecodeError, SchemaError) as exc:
            logger.warning("Discarding unreadable cache entry %s: %s", key, exc)
            return None


__all__ = ["LocalCacheStore", "cache_key", "GUEST_CACHE_KEY"]
