from __future__ import annotations

import json
from typing import Any

from fastapi import Request

from ..core.errors import MalformedBody, UnsupportedMediaType


def _is_json(content_type: str | None) -> bool:
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    return media_type == "application/json" or (media_type.startswith("application/") and media_type.endswith("+json"))


async def json_payload(request: Request) -> dict[str, Any]:
    """Request body of a POST/PUT as a dict, insisting on a JSON content type."""
    if not _is_json(request.headers.get("content-type")):
        raise UnsupportedMediaType()
    body = await request.body()
    if not body.strip():
        return {}
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise MalformedBody("Your request body is not valid JSON") from exc
    if not isinstance(data, dict):
        raise MalformedBody("Your request body must be a JSON object")
    return data
