"""
Product CRUD endpoints.

Storage and Cloudinary failures are logged here and answered with a static
message; their details never reach the client.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from core import cloudinary, request_body

from . import repository, schemas, service

router = APIRouter(prefix="/products")

logger = logging.getLogger(__name__)

NOT_FOUND_DETAIL = "Produto não encontrado"


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)


def _server_error(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


async def product_payload(request: Request) -> schemas.ProductPayload:
    return await request_body.parse_model(request, schemas.ProductPayload)


@router.get("")
async def list_products() -> list[schemas.ProductResponse]:
    try:
        rows = await service.list_products()
    except repository.StorageError:
        logger.exception("product_list_failed")
        raise _server_error("Erro ao buscar produtos")
    return [schemas.ProductResponse(**row) for row in rows]


@router.get("/{product_id}")
async def get_product(product_id: int) -> schemas.ProductResponse:
    try:
        row = await service.get_product(product_id)
    except service.ProductNotFound:
        raise _not_found()
    except repository.StorageError:
        logger.exception("product_get_failed product_id=%s", product_id)
        raise _server_error("Erro ao buscar produto")
    return schemas.ProductResponse(**row)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(payload: schemas.ProductPayload = Depends(product_payload)) -> schemas.ProductResponse:
    try:
        row = await service.create_product(payload)
    except repository.StorageError:
        logger.exception("product_create_failed")
        raise _server_error("Erro ao adicionar produto")
    return schemas.ProductResponse(**row)


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    payload: schemas.ProductPayload = Depends(product_payload),
) -> schemas.ProductResponse:
    try:
        row = await service.update_product(product_id, payload)
    except service.ProductNotFound:
        raise _not_found()
    except repository.StorageError:
        logger.exception("product_update_failed product_id=%s", product_id)
        raise _server_error("Erro ao atualizar produto")
    return schemas.ProductResponse(**row)


@router.delete("/{product_id}")
async def delete_product(product_id: int) -> schemas.MessageResponse:
    try:
        await service.delete_product(product_id)
    except service.ProductNotFound:
        raise _not_found()
    except (repository.StorageError, cloudinary.CloudinaryError):
        logger.exception("product_delete_failed product_id=%s", product_id)
        raise _server_error("Erro ao excluir produto")
    return schemas.MessageResponse(message="Produto excluído com sucesso")
