"""
Request body helpers shared by the feature routers.

- `parse_model`: build a pydantic model from a JSON or form-encoded body
  (`application/x-www-form-urlencoded` or `multipart/form-data`).
- `BodySizeLimitMiddleware`: reject bodies over the configured size, whether
  they announce a Content-Length or arrive chunked.

Form conventions accepted for list fields: `colors=a&colors=b`,
`colors[]=a&colors[]=b` and `colors[0]=a&colors[1]=b`.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, TypeVar, get_args, get_origin

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.datastructures import FormData, UploadFile
from starlette.types import ASGIApp, Message, Receive, Scope, Send

ModelT = TypeVar("ModelT", bound=BaseModel)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

_FORM_KEY = re.compile(r"^(?P<name>[^\[\]]+)(?:\[(?P<index>\d*)\])?$")


def _is_list_field(model: type[BaseModel], name: str) -> bool:
    field = model.model_fields.get(name)
    if field is None:
        return False
    annotation = field.annotation
    candidates = [annotation, *get_args(annotation)]
    return any(c is list or get_origin(c) is list for c in candidates)


def form_to_dict(form: FormData, model: type[BaseModel]) -> dict[str, Any]:
    """
    Flatten form fields into the dict shape the model expects.

    Blank values count as absent, the way HTML forms send empty inputs.
    """
    data: dict[str, Any] = {}
    indexed: dict[str, list[tuple[int, str]]] = {}

    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            continue
        match = _FORM_KEY.match(key)
        if match is None:
            continue
        name, index = match.group("name"), match.group("index")

        if _is_list_field(model, name):
            if index:
                indexed.setdefault(name, []).append((int(index), value))
            elif value != "":
                data.setdefault(name, []).append(value)
        elif value != "":
            data[name] = value

    for name, items in indexed.items():
        data.setdefault(name, []).extend(v for _, v in sorted(items) if v != "")

    return data


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}}]
        ) from exc
    return {} if data is None else data


async def parse_model(request: Request, model: type[ModelT]) -> ModelT:
    """
    Validate the request body into `model`. An empty body yields an empty model.
    """
    content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if content_type in FORM_CONTENT_TYPES:
        data: Any = form_to_dict(await request.form(), model)
    else:
        data = await _read_json(request)

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        errors = [{**error, "loc": ("body", *error["loc"])} for error in exc.errors(include_url=False)]
        raise RequestValidationError(errors) from exc


def _too_large(max_bytes: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"Request body too large. Max is {max_bytes} bytes.",
    )


class BodySizeLimitMiddleware:
    """
    Pure ASGI middleware capping request body size.

    A declared Content-Length over the cap is refused before the app runs.
    Otherwise bytes are counted as the app reads them, and reading past the
    cap raises a 413 `HTTPException` inside the app.
    """

    def __init__(self, app: ASGIApp, max_bytes: Callable[[], int]) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = self.max_bytes()
        content_length = dict(scope["headers"]).get(b"content-length", b"")
        if content_length.isdigit() and int(content_length) > limit:
            exc = _too_large(limit)
            response = JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    raise _too_large(limit)
            return message

        await self.app(scope, limited_receive, send)
