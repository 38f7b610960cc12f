from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from inventory_sync import models  # noqa: F401
from inventory_sync.api import create_app
from inventory_sync.cache import LocalCacheStore
from inventory_sync.config import Settings
from inventory_sync.database import Base, get_session
from inventory_sync.errors import PersistenceError
from inventory_sync.schemas import CustomFieldDefinition, InventoryItem, RemoteRow, utcnow


class RecordingStore:
    """In-memory row store that records every call.

    ``fail`` makes the next calls raise :class:`PersistenceError`; ``gate``,
    when set, holds ``save_row`` until the event is released.
    """

    def __init__(self) -> None:
        self.rows: dict[str, RemoteRow] = {}
        self.calls: list[tuple[str, str]] = []
        self.saved: list[tuple[str, list[InventoryItem], list[CustomFieldDefinition]]] = []
        self.fail = False
        self.gate: asyncio.Event | None = None
        self.active_saves = 0
        self.max_active_saves = 0

    async def ensure_row(self, identity: str) -> None:
        self.calls.append(("ensure_row", identity))
        if self.fail:
            raise PersistenceError("store offline", reason="ensure_row")
        self.rows.setdefault(identity, RemoteRow(identity=identity, updated_at=utcnow()))

    async def read_row(self, identity: str) -> RemoteRow | None:
        self.calls.append(("read_row", identity))
        if self.fail:
            raise PersistenceError("store offline", reason="read_row")
        return self.rows.get(identity)

    async def save_row(
        self,
        identity: str,
        inventory: Sequence[InventoryItem],
        custom_fields: Sequence[CustomFieldDefinition],
    ) -> None:
        self.calls.append(("save_row", identity))
        self.active_saves += 1
        self.max_active_saves = max(self.max_active_saves, self.active_saves)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.fail:
                raise PersistenceError("store offline")
            self.saved.append((identity, list(inventory), list(custom_fields)))
            self.rows[identity] = RemoteRow(
                identity=identity,
                inventory=list(inventory),
                custom_fields=list(custom_fields),
                updated_at=utcnow(),
            )
        finally:
            self.active_saves -= 1

    @property
    def save_calls(self) -> int:
        return sum(1 for name, _ in self.calls if name == "save_row")


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        environment="test",
        app_name="Test Inventory Sync",
        cache_dir=tmp_path / "cache",
        typing_debounce_ms=20,
        change_debounce_ms=30,
    )


@pytest.fixture()
def cache(settings: Settings) -> LocalCacheStore:
    return LocalCacheStore(settings.cache_dir)


@pytest.fixture()
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture()
async def session_factory(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(settings.database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture()
async def app(
    settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> AsyncIterator[FastAPI]:
    async def override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app = create_app(settings)
    app.dependency_overrides[get_session] = override_get_session

    yield app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
