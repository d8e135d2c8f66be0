"""Public projections of User resources."""

from __future__ import annotations

from pydantic import BaseModel


class UserOut(BaseModel):
    """The only User fields ever serialized: no name, email or password."""

    id: int
    username: str

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {"example": {"id": 1, "username": "jd"}},
    }


class UserList(BaseModel):
    users: list[UserOut]
