# shoppy/db.py
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse, ParseResult
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from .config import DATABASE_URL


def strip_query_params(url: str, drop_keys=("sslmode", "channel_binding")) -> str:
    p = urlparse(url)
    qs = parse_qs(p.query, keep_blank_values=True)
    if not any(k in qs for k in drop_keys):
        return url
    for k in drop_keys:
        qs.pop(k, None)
    new_query = urlencode({k: v[0] for k, v in qs.items()})
    newp = ParseResult(
        scheme=p.scheme, netloc=p.netloc, path=p.path,
        params=p.params, query=new_query, fragment=p.fragment
    )
    return urlunparse(newp)


def normalize_database_url(url: str) -> str:
    # Ensure async driver
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return strip_query_params(url)


CLEAN_DATABASE_URL = normalize_database_url(DATABASE_URL)

# sqlite has no connection pool to tune
ENGINE_KWARGS = {} if CLEAN_DATABASE_URL.startswith("sqlite") else {
    "pool_pre_ping": True,
    "pool_recycle": 1800,
    "pool_size": 5,
    "max_overflow": 10,
}

engine = create_async_engine(
    CLEAN_DATABASE_URL,
    echo=False,
    future=True,
    **ENGINE_KWARGS,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)

class Base(DeclarativeBase):
    pass

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
