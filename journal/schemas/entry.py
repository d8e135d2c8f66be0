"""Public projections of Entry resources and their paginated listing."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class EntryOut(BaseModel):
    id: int
    timestamp_in_utc: str = Field(..., alias="timestampInUTC")
    utc_zone_of_timestamp: str = Field(..., alias="utcZoneOfTimestamp")
    content: str
    user_id: int = Field(..., alias="userId")

    model_config = {
        "from_attributes": True,
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "id": 1,
                "timestampInUTC": "2021-01-01T00:00:17.000Z",
                "utcZoneOfTimestamp": "+02:00",
                "content": "Happy New Year to everybody in the UK!",
                "userId": 1,
            }
        },
    }


class EntryLocalTime(BaseModel):
    id: int
    local_time: str = Field(..., alias="localTime")
    utc_zone_of_timestamp: str = Field(..., alias="utcZoneOfTimestamp")
    display: str

    model_config = {"populate_by_name": True}


class PageMeta(BaseModel):
    total_items: int = Field(..., alias="totalItems")
    per_page: int = Field(..., alias="perPage")
    total_pages: int = Field(..., alias="totalPages")
    page: int

    model_config = {"populate_by_name": True}


class PageLinks(BaseModel):
    self_: str = Field(..., alias="self")
    next: Optional[str] = None
    prev: Optional[str] = None
    first: str
    last: str

    model_config = {"populate_by_name": True}


class EntryList(BaseModel):
    entries: list[EntryOut]
    meta: Optional[PageMeta] = Field(default=None, alias="_meta")
    links: Optional[PageLinks] = Field(default=None, alias="_links")

    model_config = {"populate_by_name": True}
