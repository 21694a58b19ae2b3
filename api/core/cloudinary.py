"""
Cloudinary HTTP client helpers.

Used endpoints (signed, form-encoded):
- POST /v1_1/<cloud>/image/upload   -> {"secure_url": "...", "public_id": "...", ...}
- POST /v1_1/<cloud>/image/destroy  -> {"result": "ok" | "not found"}
"""

from __future__ import annotations

import hashlib
import os
import time
from dataclasses import dataclass
from typing import Any

import httpx

API_BASE_URL = "https://api.cloudinary.com"

# Never part of the string to sign.
_UNSIGNED_PARAMS = {"file", "cloud_name", "resource_type", "api_key", "signature"}


# Cloudinary failures are explicit and separable from other runtime errors.
class CloudinaryError(RuntimeError):
    pass


@dataclass(frozen=True)
class CloudinaryCredentials:
    cloud_name: str
    api_key: str
    api_secret: str


def credentials_from_env() -> CloudinaryCredentials:
    cloud_name = os.environ.get("CLOUDINARY_CLOUD_NAME", "").strip()
    api_key = os.environ.get("CLOUDINARY_API_KEY", "").strip()
    api_secret = os.environ.get("CLOUDINARY_API_SECRET", "").strip()
    missing = [
        name
        for name, value in (
            ("CLOUDINARY_CLOUD_NAME", cloud_name),
            ("CLOUDINARY_API_KEY", api_key),
            ("CLOUDINARY_API_SECRET", api_secret),
        )
        if not value
    ]
    if missing:
        raise CloudinaryError(f"Cloudinary is not configured: {', '.join(missing)} not set.")
    return CloudinaryCredentials(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret)


def _param_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """
    SHA-1 signature of the sorted `key=value` pairs plus the API secret.
    """
    pairs = [
        f"{key}={_param_str(value)}"
        for key, value in sorted(params.items())
        if key not in _UNSIGNED_PARAMS and value is not None and value != ""
    ]
    to_sign = "&".join(pairs) + api_secret
    return hashlib.sha1(to_sign.encode("utf-8")).hexdigest()


def _signed_form(credentials: CloudinaryCredentials, params: dict[str, Any]) -> dict[str, str]:
    params = {**params, "timestamp": int(time.time())}
    form = {key: _param_str(value) for key, value in params.items() if value is not None}
    form["api_key"] = credentials.api_key
    form["signature"] = sign_params(params, credentials.api_secret)
    return form


async def _post(
    credentials: CloudinaryCredentials,
    action: str,
    form: dict[str, str],
    *,
    timeout_s: float,
    transport: httpx.AsyncBaseTransport | None,
) -> dict[str, Any]:
    path = f"/v1_1/{credentials.cloud_name}/image/{action}"
    try:
        async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=timeout_s, transport=transport) as client:
            resp = await client.post(path, data=form)
    except httpx.HTTPError as exc:
        raise CloudinaryError(f"Cloudinary {action} request failed: {exc}") from exc

    if resp.status_code != 200:
        # Avoid dumping huge bodies; include a small snippet.
        body = resp.text[:500]
        raise CloudinaryError(f"Cloudinary {action} request failed: {resp.status_code} {body}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise CloudinaryError(f"Cloudinary {action} returned a non-JSON body.") from exc
    if not isinstance(data, dict):
        raise CloudinaryError(f"Cloudinary {action} returned an unexpected body.")
    return data


async def upload_image(
    *,
    credentials: CloudinaryCredentials,
    file: str,
    folder: str,
    timeout_s: float = 60.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """
    Upload an image given as a data URI, base64 payload or remote URL.
    """
    if not (file or "").strip():
        raise CloudinaryError("Upload file is empty.")

    form = _signed_form(credentials, {"folder": folder})
    form["file"] = file
    data = await _post(credentials, "upload", form, timeout_s=timeout_s, transport=transport)

    if not isinstance(data.get("secure_url"), str) or not data["secure_url"]:
        raise CloudinaryError("Cloudinary returned no secure_url.")
    return data


async def destroy_image(
    *,
    credentials: CloudinaryCredentials,
    public_id: str,
    invalidate: bool = True,
    timeout_s: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """
    Delete the asset addressed by `public_id`, invalidating CDN copies.
    """
    public_id = (public_id or "").strip()
    if not public_id:
        raise CloudinaryError("public_id is empty.")

    form = _signed_form(credentials, {"public_id": public_id, "invalidate": invalidate})
    return await _post(credentials, "destroy", form, timeout_s=timeout_s, transport=transport)
