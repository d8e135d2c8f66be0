from __future__ import annotations

from pydantic import BaseModel


class TokenResponse(BaseModel):
    token: str

    model_config = {
        "json_schema_extra": {
            "example": {"token": "<jwt>"}
        }
    }
