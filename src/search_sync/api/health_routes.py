from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import get_search_client
from .models import HealthResponse
from ..engine.client import SearchEngineClient
from ..registry import registered_entities

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(
    client: Annotated[SearchEngineClient, Depends(get_search_client)],
) -> HealthResponse:
    reachable = await client.ping(timeout=2.0)
    return HealthResponse(
        status="ok" if reachable else "degraded",
        elasticsearch=client.base_url,
        elasticsearch_reachable=reachable,
        entities=registered_entities(),
    )
