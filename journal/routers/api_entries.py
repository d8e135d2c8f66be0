from __future__ import annotations

import math
from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import InvalidPagination
from ..crud.entries import count_entries, create_entry, delete_entry, list_entries, update_entry
from ..db.session import get_db
from ..deps.auth import owned_entry, require_user
from ..deps.payload import json_payload
from ..models.entry import Entry
from ..models.user import User
from ..schemas.entry import EntryList, EntryLocalTime, EntryOut, PageLinks, PageMeta
from ..services import timecodec

router = APIRouter(prefix="/api/entries", tags=["entries"])


def _page_url(page: int, per_page: int) -> str:
    return f"{router.prefix}?{urlencode({'perPage': per_page, 'page': page})}"


def _paginate(db: Session, owner: User, page: Optional[int], per_page: Optional[int]) -> EntryList:
    per_page = settings.ENTRIES_PER_PAGE if per_page is None else per_page
    page = 1 if page is None else page
    if page < 1:
        raise InvalidPagination("The 'page' query parameter must be a positive integer")
    if not 1 <= per_page <= settings.ENTRIES_MAX_PER_PAGE:
        raise InvalidPagination(
            f"The 'perPage' query parameter must be between 1 and {settings.ENTRIES_MAX_PER_PAGE}"
        )

    total_items = count_entries(db, owner)
    total_pages = max(math.ceil(total_items / per_page), 1)
    entries = list_entries(db, owner, limit=per_page, offset=(page - 1) * per_page)
    return EntryList(
        entries=[EntryOut.model_validate(entry) for entry in entries],
        meta=PageMeta(total_items=total_items, per_page=per_page, total_pages=total_pages, page=page),
        links=PageLinks(
            self_=_page_url(page, per_page),
            next=_page_url(page + 1, per_page) if page < total_pages else None,
            prev=_page_url(page - 1, per_page) if page > 1 else None,
            first=_page_url(1, per_page),
            last=_page_url(total_pages, per_page),
        ),
    )


@router.post("", response_model=EntryOut, status_code=201)
def api_create_entry(
    response: Response,
    owner: User = Depends(require_user),
    payload: dict[str, Any] = Depends(json_payload),
    db: Session = Depends(get_db),
):
    entry = create_entry(db, owner, payload)
    response.headers["Location"] = f"{router.prefix}/{entry.id}"
    return entry


@router.get("", response_model=EntryList, response_model_exclude_unset=True)
def api_list_entries(
    page: Optional[int] = Query(default=None),
    per_page: Optional[int] = Query(default=None, alias="perPage"),
    owner: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    if page is None and per_page is None:
        return EntryList(entries=[EntryOut.model_validate(entry) for entry in list_entries(db, owner)])
    return _paginate(db, owner, page, per_page)


@router.get("/{entry_id}", response_model=EntryOut)
def api_get_entry(entry: Entry = Depends(owned_entry)):
    return entry


@router.get("/{entry_id}/local-time", response_model=EntryLocalTime, summary="Entry time as its author saw it")
def api_get_entry_local_time(entry: Entry = Depends(owned_entry)):
    return EntryLocalTime(
        id=entry.id,
        local_time=timecodec.to_local(entry.timestamp_in_utc, entry.utc_zone_of_timestamp),
        utc_zone_of_timestamp=entry.utc_zone_of_timestamp,
        display=timecodec.describe(entry.timestamp_in_utc, entry.utc_zone_of_timestamp),
    )


@router.put("/{entry_id}", response_model=EntryOut)
def api_update_entry(
    entry: Entry = Depends(owned_entry),
    payload: dict[str, Any] = Depends(json_payload),
    db: Session = Depends(get_db),
):
    return update_entry(db, entry, payload)


@router.delete("/{entry_id}", status_code=204, response_class=Response)
def api_delete_entry(entry: Entry = Depends(owned_entry), db: Session = Depends(get_db)):
    delete_entry(db, entry)
    return Response(status_code=204)
