"""
Product persistence.

Two interchangeable stores implement the same interface:
- `PostgresProductStore`: raw SQL against the `products` table (asyncpg).
- `InMemoryProductStore`: process-local, for development and tests.

Rows are plain dicts with the columns in `PRODUCT_COLUMNS`. Updates are
full overwrites: every column takes the payload's value, missing ones
become NULL.

The process-wide store is opened in the FastAPI lifespan (see `api/main.py`).
"""

from __future__ import annotations

import asyncio
import copy
import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator

import asyncpg

from core import db

PRODUCT_COLUMNS = ("id", "title", "price", "image", "category", "colors", "quantity", "sizes")
WRITABLE_COLUMNS = PRODUCT_COLUMNS[1:]

STORE_BACKENDS = {"postgres", "memory"}

# `id` is a SERIAL (int4) column; nothing outside this range can exist.
PG_ID_MIN = -(2**31)
PG_ID_MAX = 2**31 - 1

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS products (
    id SERIAL PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    price DECIMAL(10, 2) NOT NULL,
    image TEXT,
    category VARCHAR(100),
    colors TEXT[],
    quantity INT NOT NULL,
    sizes TEXT[]
)
"""


class StorageError(RuntimeError):
    pass


def _values(payload: dict[str, Any]) -> list[Any]:
    return [payload.get(column) for column in WRITABLE_COLUMNS]


def _pg_id_in_range(product_id: int) -> bool:
    return PG_ID_MIN <= product_id <= PG_ID_MAX


class ProductStore:
    """
    Interface shared by both backends.
    """

    async def list(self) -> list[dict[str, Any]]:
        raise NotImplementedError

    async def get(self, product_id: int) -> dict[str, Any] | None:
        raise NotImplementedError

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    async def update(self, product_id: int, payload: dict[str, Any]) -> dict[str, Any] | None:
        raise NotImplementedError

    async def delete(self, product_id: int) -> bool:
        raise NotImplementedError


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, RuntimeError) as exc:
        raise StorageError(f"Product {action} failed: {exc}") from exc


class PostgresProductStore(ProductStore):
    _select = "SELECT " + ", ".join(PRODUCT_COLUMNS) + " FROM products"

    async def list(self) -> list[dict[str, Any]]:
        with _storage_errors("list"):
            return await db.fetch_all(f"{self._select} ORDER BY id")

    async def get(self, product_id: int) -> dict[str, Any] | None:
        if not _pg_id_in_range(product_id):
            return None
        with _storage_errors("get"):
            return await db.fetch_one(f"{self._select} WHERE id = $1", product_id)

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        with _storage_errors("create"):
            row = await db.fetch_one(
                """
                INSERT INTO products (title, price, image, category, colors, quantity, sizes)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING id, title, price, image, category, colors, quantity, sizes
                """,
                *_values(payload),
            )
        if row is None:
            raise StorageError("Failed to create product.")
        return row

    async def update(self, product_id: int, payload: dict[str, Any]) -> dict[str, Any] | None:
        if not _pg_id_in_range(product_id):
            return None
        with _storage_errors("update"):
            return await db.fetch_one(
                """
                UPDATE products
                SET title = $1,
                    price = $2,
                    image = $3,
                    category = $4,
                    colors = $5,
                    quantity = $6,
                    sizes = $7
                WHERE id = $8
                RETURNING id, title, price, image, category, colors, quantity, sizes
                """,
                *_values(payload),
                product_id,
            )

    async def delete(self, product_id: int) -> bool:
        if not _pg_id_in_range(product_id):
            return False
        with _storage_errors("delete"):
            row = await db.fetch_one("DELETE FROM products WHERE id = $1 RETURNING id", product_id)
        return row is not None


class InMemoryProductStore(ProductStore):
    """
    Ordered in-process store.

    Ids come from a counter that only moves forward, so an id is never
    handed out twice even after deletions. All access goes through one lock.
    """

    def __init__(self) -> None:
        self._rows: dict[int, dict[str, Any]] = {}
        self._last_id = 0
        self._lock = asyncio.Lock()

    async def list(self) -> list[dict[str, Any]]:
        async with self._lock:
            return [copy.deepcopy(row) for row in self._rows.values()]

    async def get(self, product_id: int) -> dict[str, Any] | None:
        async with self._lock:
            row = self._rows.get(product_id)
            return copy.deepcopy(row) if row is not None else None

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            self._last_id += 1
            row = {"id": self._last_id, **dict(zip(WRITABLE_COLUMNS, copy.deepcopy(_values(payload))))}
            self._rows[row["id"]] = row
            return copy.deepcopy(row)

    async def update(self, product_id: int, payload: dict[str, Any]) -> dict[str, Any] | None:
        async with self._lock:
            if product_id not in self._rows:
                return None
            row = {"id": product_id, **dict(zip(WRITABLE_COLUMNS, copy.deepcopy(_values(payload))))}
            self._rows[product_id] = row
            return copy.deepcopy(row)

    async def delete(self, product_id: int) -> bool:
        async with self._lock:
            return self._rows.pop(product_id, None) is not None


_store: ProductStore | None = None


def store_backend() -> str:
    backend = os.environ.get("PRODUCT_STORE", "postgres").strip().lower() or "postgres"
    if backend not in STORE_BACKENDS:
        raise RuntimeError(f"Invalid PRODUCT_STORE '{backend}'. Allowed: {sorted(STORE_BACKENDS)}")
    return backend


async def ensure_schema() -> None:
    """
    Create the `products` table if it doesn't exist yet.
    """
    await db.execute(CREATE_TABLE_SQL)
    logger.info("products_table_ready")


async def init_store() -> ProductStore:
    global _store
    if _store is not None:
        return _store

    backend = store_backend()
    if backend == "postgres":
        await db.init_pool()
        await ensure_schema()
        _store = PostgresProductStore()
    else:
        _store = InMemoryProductStore()
    logger.info("product_store_ready backend=%s", backend)
    return _store


async def close_store() -> None:
    global _store
    if _store is None:
        return None
    if isinstance(_store, PostgresProductStore):
        await db.close_pool()
    _store = None


def store() -> ProductStore:
    if _store is None:
        raise RuntimeError("Product store is not initialized. Call init_store() on startup.")
    return _store
