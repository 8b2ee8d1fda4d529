"""Small helpers shared by the store, services and surfaces."""
from __future__ import annotations

import json
import time
from datetime import UTC, date, datetime
from typing import Any


def json_dump(value: Any) -> str | None:
    return None if value is None else json.dumps(value, default=str)


def utcnow() -> datetime:
    return datetime.now(UTC)


def day_key(when: datetime | date | None = None) -> str:
    """ISO date (``YYYY-MM-DD``) used as the daily stats key."""
    when = when or utcnow()
    return when.date().isoformat() if isinstance(when, datetime) else when.isoformat()


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}"


def isoformat(value: datetime | None) -> str | None:
    """ISO timestamp in UTC.  SQLite hands datetimes back naive."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()
