from datetime import datetime
from typing import Protocol


class TimeStore(Protocol):
    """Key-value storage of points in time, used for throttle lift times."""

    async def get_time(self, key: str) -> datetime | None:
        ...

    async def set_time(self, key: str, value: datetime) -> None:
        ...


class InMemoryTimeStore:
    """Process-local TimeStore; restrictions are lost on restart."""

    def __init__(self):
        self._times: dict[str, datetime] = {}

    async def get_time(self, key: str) -> datetime | None:
        return self._times.get(key)

    async def set_time(self, key: str, value: datetime) -> None:
        self._times[key] = value
