"""
Pydantic schemas for the upload endpoint.
"""

from __future__ import annotations

from pydantic import BaseModel


class UploadRequest(BaseModel):
    # Data URI (`data:image/png;base64,...`), raw base64 or a remote URL.
    file: str | None = None


class UploadResponse(BaseModel):
    url: str
