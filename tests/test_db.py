from shoppy.db import normalize_database_url, strip_query_params


def test_postgres_urls_get_async_driver():
    assert normalize_database_url("postgres://u:p@host/db") == "postgresql+asyncpg://u:p@host/db"
    assert normalize_database_url("postgresql://u:p@host/db") == "postgresql+asyncpg://u:p@host/db"


def test_neon_only_params_are_dropped():
    url = "postgresql://u:p@host/db?sslmode=require&channel_binding=require&application_name=shoppy"
    assert normalize_database_url(url) == "postgresql+asyncpg://u:p@host/db?application_name=shoppy"


def test_sqlite_untouched():
    assert strip_query_params("sqlite+aiosqlite:///./shoppy.db") == "sqlite+aiosqlite:///./shoppy.db"
