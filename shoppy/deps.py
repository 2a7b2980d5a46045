# shoppy/deps.py
from functools import lru_cache

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import JWT_SECRET_KEY, ALGORITHM
from .db import get_db
from .models import User
from . import crud
from .agents.orchestrator import ChatOrchestrator
from .cache import CartCache, redis_from_url
from .sensay import SensayClient
from .shopify import ShopifyClient

security = HTTPBearer(auto_error=False)

def get_user_from_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing auth token")
    token = credentials.credentials
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid token")
        return user_id
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

async def get_current_user(
    user_id: str = Depends(get_user_from_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


# ---------- service singletons (overridable in tests) ----------
@lru_cache
def get_shopify_client() -> ShopifyClient:
    return ShopifyClient()

@lru_cache
def get_sensay_client() -> SensayClient:
    return SensayClient()

@lru_cache
def get_cart_cache() -> CartCache:
    return CartCache(redis_from_url())

def get_orchestrator(
    sensay: SensayClient = Depends(get_sensay_client),
    shopify: ShopifyClient = Depends(get_shopify_client),
    cache: CartCache = Depends(get_cart_cache),
) -> ChatOrchestrator:
    return ChatOrchestrator(sensay, shopify, cache)

async def close_clients() -> None:
    if get_shopify_client.cache_info().currsize:
        await get_shopify_client().aclose()
    if get_sensay_client.cache_info().currsize:
        await get_sensay_client().aclose()
    if get_cart_cache.cache_info().currsize:
        await get_cart_cache().redis.aclose()
