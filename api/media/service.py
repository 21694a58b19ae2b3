"""
Media service: image upload/delete through Cloudinary.

Uploaded images live under one folder, so their public id is
`<folder>/<name>`. We never store that id; it is recovered from the
stored `secure_url` with `public_id_from_url` when a product is deleted.
"""

from __future__ import annotations

import logging
import os
import re

from core import cloudinary

DEFAULT_UPLOAD_FOLDER = "produtos"

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def upload_folder() -> str:
    folder = os.environ.get("CLOUDINARY_FOLDER", DEFAULT_UPLOAD_FOLDER).strip().strip("/")
    return folder or DEFAULT_UPLOAD_FOLDER


def cloudinary_timeout_s() -> float:
    return _env_float("CLOUDINARY_TIMEOUT_S", 60.0)


def public_id_from_url(url: str | None, folder: str | None = None) -> str | None:
    """
    Recover the Cloudinary public id from a stored image URL.

    `.../image/upload/v1712/produtos/abc123.jpg` -> `produtos/abc123`

    Returns None for empty values and URLs outside the upload folder.
    """
    if not url:
        return None
    folder = folder or upload_folder()
    match = re.search(rf"{re.escape(folder)}/[^.?#]+", url)
    return match.group(0) if match else None


async def upload(file: str) -> str:
    """
    Upload one image and return its public URL.
    """
    result = await cloudinary.upload_image(
        credentials=cloudinary.credentials_from_env(),
        file=file,
        folder=upload_folder(),
        timeout_s=cloudinary_timeout_s(),
    )
    logger.info("image_uploaded public_id=%s", result.get("public_id"))
    return str(result["secure_url"])


async def destroy(public_id: str) -> None:
    """
    Delete one image. Raises `cloudinary.CloudinaryError` on failure.

    An asset that is already gone counts as deleted.
    """
    result = await cloudinary.destroy_image(
        credentials=cloudinary.credentials_from_env(),
        public_id=public_id,
        invalidate=True,
        timeout_s=cloudinary_timeout_s(),
    )
    outcome = str(result.get("result") or "")
    if outcome == "ok":
        logger.info("image_deleted public_id=%s", public_id)
    elif outcome == "not found":
        logger.warning("image_not_found public_id=%s", public_id)
    else:
        raise cloudinary.CloudinaryError(f"Unexpected destroy result for {public_id}: {outcome or result}")
