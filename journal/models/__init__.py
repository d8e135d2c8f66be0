from __future__ import annotations

from .entry import Entry
from .user import User

__all__ = ["Entry", "User"]
