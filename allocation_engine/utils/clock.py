"""Injectable wall clock so TTL logic stays testable."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
