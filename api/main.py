import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.request_body import BodySizeLimitMiddleware
from media import router as media_router
from products import repository as product_repository
from products import router as products_router

# Inline base64 images travel in JSON/form bodies, so the cap is generous.
DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024  # 10 MiB


def log_level() -> int:
    raw = os.environ.get("LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(raw) if raw else logging.INFO
    return level if isinstance(level, int) else logging.INFO


logging.basicConfig(level=log_level())


def max_body_bytes() -> int:
    raw = os.environ.get("MAX_BODY_BYTES", "").strip()
    try:
        value = int(raw) if raw else DEFAULT_MAX_BODY_BYTES
    except ValueError:
        return DEFAULT_MAX_BODY_BYTES
    return value if value > 0 else DEFAULT_MAX_BODY_BYTES


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Opens the DB pool (and creates the table) when the store is Postgres.
    await product_repository.init_store()
    try:
        yield
    finally:
        await product_repository.close_store()


app = FastAPI(title="Product Catalog API", lifespan=lifespan)

# Added first so CORS wraps it and 413 answers still carry CORS headers.
app.add_middleware(BodySizeLimitMiddleware, max_bytes=max_body_bytes)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(media_router.router, tags=["media"])
app.include_router(products_router.router, tags=["products"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "product catalog api"}
