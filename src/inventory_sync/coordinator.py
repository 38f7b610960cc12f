"""Identity-scoped orchestration of memory, the local cache and the row store.

The coordinator owns the in-memory inventory for the signed-in user. Every
accepted edit is written through to the cache before the method returns and
then handed to the :class:`~inventory_sync.scheduler.SaveScheduler`. Until the
first authoritative remote read completes, edits stay in memory only, so a
half-loaded state can never be saved over real remote data.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Literal

from . import codec, records
from .cache import LocalCacheStore, cache_key
from .config import Settings, get_settings
from .errors import InventorySyncError, PersistenceError, RecordNotFound, ValidationError
from .remote import RemoteStore
from .scheduler import SaveScheduler
from .schemas import (
    CacheSnapshot,
    CustomFieldDefinition,
    CustomValue,
    InventoryItem,
    InventoryStats,
    ItemCreate,
    SizeVariant,
)

logger = logging.getLogger(__name__)

ErrorListener = Callable[[InventorySyncError], None]


@dataclass(frozen=True)
class UserSession:
    """The signed-in identity the coordinator is scoped to."""

    identity: str


@dataclass(frozen=True)
class SyncState:
    loaded: bool
    dirty: bool
    saving: bool
    timer_pending: bool


class SyncCoordinator:
    def __init__(
        self,
        store: RemoteStore,
        cache: LocalCacheStore,
        *,
        settings: Settings | None = None,
        on_error: ErrorListener | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._store = store
        self._cache = cache
        self._on_error = on_error
        self._session: UserSession | None = None
        self._items: list[InventoryItem] = []
        self._fields: list[CustomFieldDefinition] = []
        self._loaded = False
        self._epoch = 0
        self._scheduler = SaveScheduler(
            self._save_snapshot,
            delay=self.settings.change_debounce,
            on_error=self._report,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def session(self) -> UserSession | None:
        return self._session

    @property
    def items(self) -> tuple[InventoryItem, ...]:
        return tuple(self._items)

    @property
    def custom_fields(self) -> tuple[CustomFieldDefinition, ...]:
        return tuple(self._fields)

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def state(self) -> SyncState:
        return SyncState(
            loaded=self._loaded,
            dirty=self._scheduler.dirty,
            saving=self._scheduler.saving,
            timer_pending=self._scheduler.timer_pending,
        )

    def get_item(self, item_id: str) -> InventoryItem:
        for item in self._items:
            if item.id == item_id:
                return item
        raise RecordNotFound(f"Item '{item_id}' not found")

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    async def sign_in(self, session: UserSession) -> bool:
        """Hydrate from the cache, then replace with the authoritative remote row.

        Returns ``False`` when the session ended or changed before loading
        finished. Remote failures raise :class:`PersistenceError` and leave the
        coordinator unloaded, showing whatever the cache held.
        """

        current = self._session
        if current is not None and current.identity != session.identity:
            self.sign_out()
        elif current is not None and self._loaded:
            await self._flush_best_effort("reload")
            # The reload must read what an in-flight or deferred save wrote.
            await self._scheduler.drain()

        self._epoch += 1
        epoch = self._epoch
        self._session = session
        self._loaded = False
        self._scheduler.reset()
        key = cache_key(session.identity)
        logger.info("Loading inventory for %s", session.identity)

        cached = self._cache.read(key)
        if cached is not None:
            self._items = list(cached.inventory)
            self._fields = list(cached.custom_fields)
            logger.info("Hydrated %d cached items for %s", len(self._items), session.identity)

        await self._store.ensure_row(session.identity)
        if epoch != self._epoch:
            return False
        row = await self._store.read_row(session.identity)
        if epoch != self._epoch:
            logger.info("Discarding stale load for %s", session.identity)
            return False

        self._items = list(row.inventory) if row is not None else []
        self._fields = list(row.custom_fields) if row is not None else []
        self._cache.write(key, self._snapshot())
        self._loaded = True
        self._scheduler.reset()
        logger.info("Loaded %d items for %s", len(self._items), session.identity)
        return True

    def sign_out(self) -> None:
        """Drop in-memory state; the cache entry is kept for the next sign-in."""

        if self._session is not None:
            logger.info("Signing out %s", self._session.identity)
        self._epoch += 1
        self._scheduler.reset()
        self._session = None
        self._loaded = False
        self._items = []
        self._fields = []

    async def on_background(self) -> bool:
        """Host moved to the background or was hidden."""

        return await self._flush_best_effort("background")

    async def on_terminate(self) -> bool:
        """Host is about to exit; completion is not guaranteed."""

        return await self._flush_best_effort("terminate")

    async def flush(self, reason: str = "flush") -> bool:
        """Save pending edits now, raising :class:`PersistenceError` on failure."""

        if not self._loaded:
            return False
        return await self._scheduler.flush_now(reason)

    async def close(self) -> None:
        await self._flush_best_effort("close")
        await self._scheduler.drain()
        self._scheduler.reset()

    # ------------------------------------------------------------------
    # Item mutations
    # ------------------------------------------------------------------
    def add_item(self, data: ItemCreate) -> InventoryItem:
        items = records.add_item(self._items, data, unique_sku=self.settings.enforce_unique_sku)
        self._commit(items=items, key="add_item")
        return items[-1]

    def edit_item(self, item_id: str, data: ItemCreate) -> InventoryItem:
        items = records.edit_item(
            self._items, item_id, data, unique_sku=self.settings.enforce_unique_sku
        )
        self._commit(items=items, key="edit_item")
        return self.get_item(item_id)

    def delete_item(self, item_id: str) -> None:
        self._commit(items=records.delete_item(self._items, item_id), key="delete_item")

    def update_sku(self, item_id: str, sku: str) -> None:
        items = records.update_sku(
            self._items, item_id, sku, unique_sku=self.settings.enforce_unique_sku
        )
        self._commit(items=items, delay=self.settings.typing_debounce)

    def update_title(self, item_id: str, title: str) -> None:
        items = records.update_title(self._items, item_id, title)
        self._commit(items=items, delay=self.settings.typing_debounce)

    def update_image_url(self, item_id: str, image_url: str | None) -> None:
        self._commit(items=records.update_image_url(self._items, item_id, image_url))

    def update_custom_value(self, item_id: str, field_id: str, value: CustomValue | None) -> None:
        self._commit(items=records.update_custom_value(self._items, item_id, field_id, value))

    # ------------------------------------------------------------------
    # Variant mutations
    # ------------------------------------------------------------------
    def add_variant(self, item_id: str, size: str) -> SizeVariant:
        items = records.add_variant(self._items, item_id, size)
        self._commit(items=items, key="add_variant")
        return self.get_item(item_id).variants[-1]

    def delete_variant(self, item_id: str, variant_id: str) -> None:
        items = records.delete_variant(self._items, item_id, variant_id)
        self._commit(items=items, key="delete_variant")

    def update_quantity(self, item_id: str, variant_id: str, quantity: int) -> None:
        items = records.update_quantity(self._items, item_id, variant_id, quantity=quantity)
        self._commit(items=items, delay=self.settings.typing_debounce)

    def adjust_quantity(self, item_id: str, variant_id: str, delta: int) -> None:
        items = records.update_quantity(self._items, item_id, variant_id, delta=delta)
        self._commit(items=items, delay=self.settings.typing_debounce)

    def update_location(self, item_id: str, variant_id: str, location: str) -> None:
        items = records.update_location(self._items, item_id, variant_id, location)
        self._commit(items=items, delay=self.settings.typing_debounce)

    # ------------------------------------------------------------------
    # Custom field definitions
    # ------------------------------------------------------------------
    def add_custom_field(
        self, label: str, field_type: Literal["text", "number"] = "text"
    ) -> CustomFieldDefinition:
        fields = records.add_custom_field(self._fields, label, field_type)
        self._commit(fields=fields, key="custom_fields")
        return fields[-1]

    def delete_custom_field(self, field_id: str) -> None:
        self._commit(fields=records.delete_custom_field(self._fields, field_id), key="custom_fields")

    # ------------------------------------------------------------------
    # Import / export and read helpers
    # ------------------------------------------------------------------
    def import_csv(self, text: str) -> codec.ImportResult:
        result = codec.parse_inventory(text)
        items = records.import_items(
            self._items, result.items, unique_sku=self.settings.enforce_unique_sku
        )
        self._commit(items=items, key="csv_import")
        logger.info(
            "Imported %d items (%d variants), skipped %d rows",
            len(result.items),
            result.total_variants,
            len(result.skipped_rows),
        )
        return codec.ImportResult(items=items[-len(result.items):], skipped_rows=result.skipped_rows)

    def export_csv(self, today: date | None = None) -> tuple[str, str]:
        if not self._items:
            raise ValidationError("no data to export")
        text = codec.serialize_inventory(
            self._items, quote_fields=self.settings.quote_exported_fields
        )
        return codec.export_filename(today), text

    def search(self, query: str | None) -> list[InventoryItem]:
        return records.filter_items(self._items, query)

    def stats(self) -> InventoryStats:
        return records.compute_stats(
            self._items, low_stock_threshold=self.settings.low_stock_threshold
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(inventory=list(self._items), custom_fields=list(self._fields))

    def _commit(
        self,
        *,
        items: list[InventoryItem] | None = None,
        fields: list[CustomFieldDefinition] | None = None,
        delay: float | None = None,
        key: str | None = None,
    ) -> None:
        if items is not None:
            self._items = items
        if fields is not None:
            self._fields = fields
        if not self._loaded or self._session is None:
            return
        self._cache.write(cache_key(self._session.identity), self._snapshot())
        self._scheduler.mark_dirty(delay)
        if key is not None:
            self._scheduler.flush_soon(key)

    async def _save_snapshot(self, reason: str) -> None:
        session = self._session
        if session is None or not self._loaded:
            return
        await self._store.save_row(session.identity, list(self._items), list(self._fields))

    async def _flush_best_effort(self, reason: str) -> bool:
        try:
            return await self.flush(reason)
        except PersistenceError as exc:
            self._report(exc)
            return False

    def _report(self, exc: InventorySyncError) -> None:
        logger.warning("%s", exc)
        if self._on_error is not None:
            self._on_error(exc)


__all__ = ["SyncCoordinator", "SyncState", "UserSession"]
