"""Inventory sync engine: record model, CSV codec, cache, save scheduler and coordinator."""
from __future__ import annotations

from .cache import LocalCacheStore, cache_key
from .codec import ImportResult, parse_inventory, serialize_inventory
from .coordinator import SyncCoordinator, SyncState, UserSession
from .errors import (
    InventorySyncError,
    ParseError,
    PersistenceError,
    RecordNotFound,
    ValidationError,
)
from .remote import HttpRemoteStore, RemoteStore, SqlRemoteStore
from .scheduler import SaveScheduler, SaveState
from .schemas import (
    CacheSnapshot,
    CustomFieldDefinition,
    InventoryItem,
    ItemCreate,
    RemoteRow,
    SizeVariant,
    VariantCreate,
)

__all__ = [
    "CacheSnapshot",
    "CustomFieldDefinition",
    "HttpRemoteStore",
    "ImportResult",
    "InventoryItem",
    "InventorySyncError",
    "ItemCreate",
    "LocalCacheStore",
    "ParseError",
    "PersistenceError",
    "RecordNotFound",
    "RemoteRow",
    "RemoteStore",
    "SaveScheduler",
    "SaveState",
    "SizeVariant",
    "SqlRemoteStore",
    "SyncCoordinator",
    "SyncState",
    "UserSession",
    "ValidationError",
    "VariantCreate",
    "cache_key",
    "parse_inventory",
    "serialize_inventory",
]
