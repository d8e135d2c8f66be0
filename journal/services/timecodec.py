"""Conversions between a user's wall-clock time and the stored UTC instant.

Offsets are literal ``±HH:MM`` shifts; no timezone database is consulted.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

OFFSET_RE = re.compile(r"^([+-])(\d{2}):(\d{2})$")
LOCAL_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M")


def parse_offset(offset: str) -> timedelta:
    """Return the signed shift from UTC described by ``offset``."""
    match = OFFSET_RE.match(offset or "")
    if not match:
        raise ValueError(f"invalid UTC offset: {offset!r}")
    sign, hours, minutes = match.group(1), int(match.group(2)), int(match.group(3))
    if hours > 23 or minutes > 59:
        raise ValueError(f"invalid UTC offset: {offset!r}")
    delta = timedelta(hours=hours, minutes=minutes)
    return -delta if sign == "-" else delta


def parse_local_time(local_time: str) -> datetime:
    """Parse ``YYYY-MM-DD HH:MM[:SS]`` into a naive datetime."""
    value = (local_time or "").replace("T", " ", 1)
    for fmt in LOCAL_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"invalid local time: {local_time!r}")


def to_utc(local_time: str, offset: str) -> datetime:
    naive = parse_local_time(local_time)
    shift = parse_offset(offset)
    try:
        return (naive - shift).replace(tzinfo=timezone.utc)
    except OverflowError as exc:
        raise ValueError(f"local time out of range: {local_time!r}") from exc


def _date_part(dt: datetime) -> str:
    # strftime("%Y") does not zero-pad years before 1000 on every platform.
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def format_utc(instant: datetime) -> str:
    """Render an instant as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if instant.tzinfo is not None:
        instant = instant.astimezone(timezone.utc)
    return (
        f"{_date_part(instant)}T{instant.hour:02d}:{instant.minute:02d}:{instant.second:02d}"
        f".{instant.microsecond // 1000:03d}Z"
    )


def parse_utc(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(instant: datetime | str, offset: str, *, with_seconds: bool = False) -> str:
    if isinstance(instant, str):
        instant = parse_utc(instant)
    elif instant.tzinfo is None:
        # Naive instants are already UTC.
        instant = instant.replace(tzinfo=timezone.utc)
    try:
        shifted = instant.astimezone(timezone.utc).replace(tzinfo=None) + parse_offset(offset)
    except OverflowError as exc:
        raise ValueError(f"instant out of range for offset {offset!r}") from exc
    local = f"{_date_part(shifted)} {shifted.hour:02d}:{shifted.minute:02d}"
    return f"{local}:{shifted.second:02d}" if with_seconds else local


def describe(instant: datetime | str, offset: str) -> str:
    """Label used by journal clients, e.g. ``2021-09-01 06:01 (UTC +00:00)``."""
    return f"{to_local(instant, offset)} (UTC {offset})"
