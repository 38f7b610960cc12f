"""Clients for the remote row store.

Both implementations satisfy :class:`RemoteStore`: ``ensure_row`` never
overwrites existing data, ``read_row`` returns ``None`` for an unknown identity,
and ``save_row`` replaces the whole snapshot. Transport failures surface as
:class:`~inventory_sync.errors.PersistenceError`.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol
from urllib.parse import quote

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from . import crud
from .config import Settings, get_settings
from .errors import PersistenceError
from .schemas import CustomFieldDefinition, InventoryItem, RemoteRow, SaveRowPayload

logger = logging.getLogger(__name__)


class RemoteStore(Protocol):
    async def ensure_row(self, identity: str) -> None:
        ...

    async def read_row(self, identity: str) -> RemoteRow | None:
        ...

    async def save_row(
        self,
        identity: str,
        inventory: Sequence[InventoryItem],
        custom_fields: Sequence[CustomFieldDefinition],
    ) -> None:
        ...


class SqlRemoteStore:
    """Row store backed directly by a SQLAlchemy async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def ensure_row(self, identity: str) -> None:
        try:
            async with self._session_factory() as session:
                await crud.ensure_row(session, identity)
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not prepare storage: {exc}", reason="ensure_row") from exc

    async def read_row(self, identity: str) -> RemoteRow | None:
        try:
            async with self._session_factory() as session:
                row = await crud.read_row(session, identity)
                return RemoteRow.model_validate(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load inventory: {exc}", reason="read_row") from exc

    async def save_row(
        self,
        identity: str,
        inventory: Sequence[InventoryItem],
        custom_fields: Sequence[CustomFieldDefinition],
    ) -> None:
        try:
            async with self._session_factory() as session:
                await crud.save_row(
                    session,
                    identity,
                    [item.to_wire() for item in inventory],
                    [definition.to_wire() for definition in custom_fields],
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not save inventory: {exc}", reason="save_row") from exc


class HttpRemoteStore:
    """Row store reached through the HTTP API in :mod:`inventory_sync.api`."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.remote_base_url, timeout=settings.remote_timeout
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _row_path(identity: str) -> str:
        return f"/rows/{quote(identity, safe='')}"

    async def ensure_row(self, identity: str) -> None:
        try:
            response = await self._client.post(f"{self._row_path(identity)}/ensure")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PersistenceError(f"Could not prepare storage: {exc}", reason="ensure_row") from exc

    async def read_row(self, identity: str) -> RemoteRow | None:
        try:
            response = await self._client.get(self._row_path(identity))
            if response.status_code == httpx.codes.NOT_FOUND:
                return None
            response.raise_for_status()
            # Covers non-JSON bodies and rows that fail validation.
            return RemoteRow.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            raise PersistenceError(f"Could not load inventory: {exc}", reason="read_row") from exc

    async def save_row(
        self,
        identity: str,
        inventory: Sequence[InventoryItem],
        custom_fields: Sequence[CustomFieldDefinition],
    ) -> None:
        payload = SaveRowPayload(inventory=list(inventory), custom_fields=list(custom_fields))
        try:
            response = await self._client.put(
                self._row_path(identity),
                json=payload.model_dump(mode="json", by_alias=True),
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PersistenceError(f"Could not save inventory: {exc}", reason="save_row") from exc


__all__ = ["RemoteStore", "SqlRemoteStore", "HttpRemoteStore"]
