# shoppy/app.py

import os
import logging
from contextlib import asynccontextmanager
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shoppy.config import CORS_ORIGINS, LOG_LEVEL
from shoppy.db import engine, Base
from shoppy.deps import close_clients
from shoppy.responses import register_exception_handlers
from shoppy import auth, cart, chat, storefront

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    if level.upper() != "DEBUG":
        for noisy in ("httpx", "httpcore", "sqlalchemy.engine"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("[APP] database ready")
    yield
    await close_clients()
    await engine.dispose()

app = FastAPI(
    title="Shoppy - Sensay + Shopify chat commerce backend",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

# Routers
app.include_router(auth.router)
app.include_router(chat.router)
app.include_router(cart.router)
app.include_router(storefront.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run(
        "shoppy.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=True,
    )
