"""
Image upload endpoint.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from core import cloudinary, request_body

from . import schemas, service

router = APIRouter()

logger = logging.getLogger(__name__)


async def upload_request(request: Request) -> schemas.UploadRequest:
    # JSON or form-encoded; a missing body reads as no file.
    return await request_body.parse_model(request, schemas.UploadRequest)


@router.post("/upload")
async def upload_image(payload: schemas.UploadRequest = Depends(upload_request)) -> schemas.UploadResponse:
    file = payload.file or ""
    if not file.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nenhum arquivo enviado")

    try:
        url = await service.upload(file)
    except cloudinary.CloudinaryError:
        logger.exception("image_upload_failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro ao fazer upload da imagem",
        )
    return schemas.UploadResponse(url=url)
