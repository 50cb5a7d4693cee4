from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..db.session import session_scope
from ..engine.client import SearchEngineClient
from ..registry import get_searchable
from ..service import SearchSyncService


# Resources are opened by the application lifespan and kept on app.state

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_search_client(request: Request) -> SearchEngineClient:
    return request.app.state.search_client


def get_sync_service(request: Request) -> SearchSyncService:
    return request.app.state.sync_service


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory


async def get_async_session(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_scope(factory) as session:
        yield session


def get_entity_type(entity: str) -> type:
    """Resolve the ``{entity}`` path parameter; unknown names become 404s."""
    return get_searchable(entity)


async def verify_admin(
    request: Request,
    x_admin_key: Optional[str] = Header(None, alias="x-admin-key"),
    key: Optional[str] = Query(None),
) -> None:
    """
    Verify the request is from an admin using the configured API key.
    Checks header first, then query param.
    """
    cfg: Settings = request.app.state.settings
    expected_key = cfg.admin_api_key.get_secret_value() if cfg.admin_api_key else None

    if not expected_key:
        # If no key is configured, disable admin access securely
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access is not configured (ADMIN_API_KEY missing)",
        )

    provided_key = x_admin_key or key

    if not provided_key or provided_key != expected_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing admin API key",
        )
