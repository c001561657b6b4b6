import logging
from datetime import timedelta
from functools import lru_cache
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import decode_token
from app.db.session import get_db
from app.services.soil.cache import DatabaseSoilCache, RedisSoilCache, SoilCache
from app.services.soil.providers.base import SoilProvider
from app.services.soil.providers.ssurgo import UsdaSsurgoProvider
from app.services.soil.sda_client import SdaClient
from app.services.soil.service import SoilService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Module-level Redis client (connection pool, created once on first use)
_redis_client: aioredis.Redis | None = None


class TokenUser(BaseModel):
    id: str


async def get_current_user(token: Annotated[str, Depends(oauth2_scheme)]) -> TokenUser:
    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise credentials_exc
        user_id: str = payload.get("sub")
        if not user_id:
            raise credentials_exc
    except JWTError:
        raise credentials_exc

    return TokenUser(id=str(user_id))


CurrentUser = Annotated[TokenUser, Depends(get_current_user)]


def _get_redis() -> aioredis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


@lru_cache
def get_soil_providers() -> tuple[SoilProvider, ...]:
    """Registered soil data providers, in selection order."""
    client = SdaClient(settings.SDA_REST_URL, timeout=settings.SDA_TIMEOUT_SECONDS)
    providers = (UsdaSsurgoProvider(client, wms_url=settings.SDA_WMS_URL),)
    logger.info("Registered soil providers: %s", ", ".join(p.name for p in providers))
    return providers


async def get_soil_cache(db: AsyncSession = Depends(get_db)) -> SoilCache:
    if settings.SOIL_CACHE_BACKEND == "redis":
        return RedisSoilCache(_get_redis())
    return DatabaseSoilCache(db)


async def get_soil_service(
    providers: tuple[SoilProvider, ...] = Depends(get_soil_providers),
    cache: SoilCache = Depends(get_soil_cache),
) -> SoilService:
    return SoilService(
        providers,
        cache,
        default_provider=settings.DEFAULT_SOIL_PROVIDER,
        cache_ttl=timedelta(seconds=settings.SOIL_CACHE_TTL_SECONDS),
    )


SoilServiceDep = Annotated[SoilService, Depends(get_soil_service)]
