"""
Postgres pool for the product catalog (asyncpg, raw SQL).

Only the Postgres product store uses this module: `products.repository.init_store`
opens the pool and creates the `products` table, `close_store` closes it.
Rows come back as plain dicts so both stores hand the routers the same shape.

Configuration:
- DATABASE_URL: required; a libpq `sslmode` query parameter is dropped
  because asyncpg rejects it (use DATABASE_SSL instead)
- DATABASE_SSL=require: TLS without certificate checks
- DB_POOL_MIN_SIZE / DB_POOL_MAX_SIZE: pool bounds (defaults 1 / 5)

Queries use asyncpg positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import os
import ssl
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

_pool: asyncpg.Pool | None = None


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    """
    DATABASE_URL with `sslmode` stripped, or RuntimeError when unset.
    """
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


def ssl_context() -> ssl.SSLContext | None:
    """
    TLS for hosted Postgres (e.g. Render) when DATABASE_SSL=require.

    Those providers use certificates we can't verify locally, so the
    context encrypts without checking the chain.
    """
    mode = os.environ.get("DATABASE_SSL", "").strip().lower()
    if mode not in {"require", "true", "1"}:
        return None
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


async def init_pool() -> None:
    global _pool
    if _pool is not None:
        return None
    _pool = await asyncpg.create_pool(
        dsn=database_url(),
        min_size=_env_int("DB_POOL_MIN_SIZE", 1),
        max_size=_env_int("DB_POOL_MAX_SIZE", 5),
        command_timeout=30,
        ssl=ssl_context(),
    )


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None


def pool() -> asyncpg.Pool:
    # Store methods turn this RuntimeError into StorageError.
    if _pool is None:
        raise RuntimeError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Single product row (SELECT or INSERT/UPDATE/DELETE ... RETURNING) as a dict, or None.
    """
    row = await pool().fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    All rows of a query as dicts (product listing).
    """
    rows = await pool().fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def execute(sql: str, *args: Any) -> None:
    """
    Statement without a result; used for the table bootstrap DDL.
    """
    await pool().execute(sql, *args)
