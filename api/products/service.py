"""
Product business logic.

Delete ordering matters: look the product up (404 before anything else),
remove its Cloudinary image, then delete the row. If the image removal
fails the row is kept, so the caller sees a single failure and can retry.
"""

from __future__ import annotations

import logging
from typing import Any

from media import service as media_service

from . import repository, schemas

logger = logging.getLogger(__name__)


class ProductNotFound(LookupError):
    def __init__(self, product_id: int) -> None:
        super().__init__(f"Product {product_id} not found.")
        self.product_id = product_id


def _payload_fields(payload: schemas.ProductPayload) -> dict[str, Any]:
    return payload.model_dump()


async def list_products() -> list[dict[str, Any]]:
    return await repository.store().list()


async def get_product(product_id: int) -> dict[str, Any]:
    row = await repository.store().get(product_id)
    if row is None:
        raise ProductNotFound(product_id)
    return row


async def create_product(payload: schemas.ProductPayload) -> dict[str, Any]:
    row = await repository.store().create(_payload_fields(payload))
    logger.info("product_created product_id=%s", row["id"])
    return row


async def update_product(product_id: int, payload: schemas.ProductPayload) -> dict[str, Any]:
    row = await repository.store().update(product_id, _payload_fields(payload))
    if row is None:
        raise ProductNotFound(product_id)
    logger.info("product_updated product_id=%s", product_id)
    return row


async def delete_product(product_id: int) -> None:
    store = repository.store()
    row = await store.get(product_id)
    if row is None:
        raise ProductNotFound(product_id)

    public_id = media_service.public_id_from_url(row.get("image"))
    if public_id:
        await media_service.destroy(public_id)
    elif row.get("image"):
        logger.warning("image_public_id_unresolved product_id=%s image=%s", product_id, row["image"])

    # Someone else may have deleted it while the image was being removed.
    if not await store.delete(product_id):
        raise ProductNotFound(product_id)
    logger.info("product_deleted product_id=%s public_id=%s", product_id, public_id)
