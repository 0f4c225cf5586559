"""Identifier and timestamp sources used when records are written."""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class IdProvider(Protocol):
    def new_id(self) -> str: ...


class Clock(Protocol):
    def now(self) -> str: ...


class UuidProvider:
    """Random UUID4 identifiers."""

    def new_id(self) -> str:
        return str(uuid.uuid4())


class UtcClock:
    """RFC 3339 UTC timestamps that never repeat or go backwards.

    If the wall clock stalls or steps back, the previous value is advanced by
    one microsecond instead.
    """

    def __init__(self) -> None:
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def now(self) -> str:
        with self._lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
            return current.isoformat(timespec="microseconds")
