"""
utils/ctime.py

ISO-8601 timestamps with a fixed wire format.

    ISO8601("2021-03-04")                -> 2021-03-04T00:00:00.000Z
    ISO8601("2021-03-04T10:11:12.345Z")  -> 2021-03-04T10:11:12.345Z

str() always renders millisecond precision and a trailing Z. Epoch values
are nanoseconds since the unix epoch.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable

ISO8601_DATE_FORMAT = "%Y-%m-%d"
ISO8601_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_NS_PER_SEC = 1_000_000_000


class ISO8601:
    __slots__ = ("_time",)

    def __init__(self, value: str):
        self._time = _parse(value)

    @classmethod
    def from_datetime(cls, dt: datetime) -> "ISO8601":
        """Naive datetimes are taken to be UTC."""
        obj = cls.__new__(cls)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        obj._time = dt.astimezone(timezone.utc)
        return obj

    def __str__(self) -> str:
        return self._time.strftime("%Y-%m-%dT%H:%M:%S.") + f"{self._time.microsecond // 1000:03d}Z"

    def __repr__(self) -> str:
        return f"ISO8601({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ISO8601):
            return NotImplemented
        return self._time == other._time

    def __lt__(self, other: "ISO8601") -> bool:
        return self._time < other._time

    def __hash__(self) -> int:
        return hash(self._time)

    def date_string(self) -> str:
        return self._time.strftime(ISO8601_DATE_FORMAT)

    def to_epoch(self) -> "Epoch":
        delta = self._time - datetime(1970, 1, 1, tzinfo=timezone.utc)
        return Epoch((delta.days * 86_400 + delta.seconds) * _NS_PER_SEC + delta.microseconds * 1000)

    def val(self) -> datetime:
        return self._time


def _parse(value: str) -> datetime:
    for fmt in (ISO8601_DATE_FORMAT, ISO8601_FORMAT):
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except (TypeError, ValueError):
            continue
    raise ValueError(
        f"time - unable to parse value. Format should be either :{ISO8601_DATE_FORMAT} or {ISO8601_FORMAT}"
    )


class Epoch(int):
    """Nanoseconds past the unix epoch."""

    def to_iso8601(self) -> ISO8601:
        seconds, nanos = divmod(int(self), _NS_PER_SEC)
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=nanos // 1000)
        return ISO8601.from_datetime(dt)

    def __str__(self) -> str:
        return str(self.to_iso8601())


ProviderFunc = Callable[[], datetime]
EpochProviderFunc = Callable[[], Epoch]


def current_epoch() -> Epoch:
    return Epoch(time.time_ns())
