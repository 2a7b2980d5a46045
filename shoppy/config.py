# shoppy/config.py
import os
from dotenv import load_dotenv
load_dotenv()

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./shoppy.db")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change_me_long_secret")
ALGORITHM = "HS256"
# 7 days
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CART_CACHE_TTL_SECONDS = int(os.getenv("CART_CACHE_TTL_SECONDS", "30"))

SENSAY_API_URL = os.getenv("SENSAY_API_URL", "https://api.sensay.io").rstrip("/")
SENSAY_API_KEY = os.getenv("SENSAY_API_KEY", "")
SENSAY_REPLICA_UUID = os.getenv("SENSAY_REPLICA_UUID", "")
SENSAY_API_VERSION = os.getenv("SENSAY_API_VERSION", "2025-03-25")

SHOPIFY_STORE_NAME = os.getenv("SHOPIFY_STORE_NAME", "your-store")
SHOPIFY_STOREFRONT_TOKEN = os.getenv("SHOPIFY_STOREFRONT_TOKEN", "")
SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2024-07")

HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
HTTP_MAX_ATTEMPTS = int(os.getenv("HTTP_MAX_ATTEMPTS", "3"))

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    ).split(",")
    if o.strip()
]


def is_development() -> bool:
    return ENVIRONMENT.lower() == "development"
