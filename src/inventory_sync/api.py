"""FastAPI router exposing the per-identity inventory row store."""
from __future__ import annotations

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, schemas
from .config import Settings, get_settings
from .database import get_session

router = APIRouter()


def provide_settings() -> Settings:
    """Dependency returning the active :class:`Settings` instance."""

    return get_settings()


@router.get("/health", response_model=schemas.HealthStatus, tags=["system"])
async def health_check(settings: Settings = Depends(provide_settings)) -> schemas.HealthStatus:
    return schemas.HealthStatus(environment=settings.environment)


@router.post(
    "/rows/{identity}/ensure",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["rows"],
)
async def ensure_row(identity: str, session: AsyncSession = Depends(get_session)) -> Response:
    await crud.ensure_row(session, identity)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/rows/{identity}", response_model=schemas.RemoteRow, tags=["rows"])
async def read_row(
    identity: str, session: AsyncSession = Depends(get_session)
) -> schemas.RemoteRow:
    row = await crud.read_row(session, identity)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Row {identity} not found")
    return schemas.RemoteRow.model_validate(row)


@router.put("/rows/{identity}", response_model=schemas.RemoteRow, tags=["rows"])
async def save_row(
    identity: str,
    payload: schemas.SaveRowPayload,
    session: AsyncSession = Depends(get_session),
) -> schemas.RemoteRow:
    row = await crud.save_row(
        session,
        identity,
        [item.to_wire() for item in payload.inventory],
        [definition.to_wire() for definition in payload.custom_fields],
    )
    await session.commit()
    return schemas.RemoteRow.model_validate(row)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name)
    app.dependency_overrides[provide_settings] = lambda: settings
    app.include_router(router)
    return app


app = create_app()


__all__ = ["app", "create_app", "router"]
