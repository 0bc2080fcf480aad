import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from domain.models.currency import ThrottleRecord
from infrastructure.cache.base import TimeStore

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 30 * 60


def utc_now() -> datetime:
    return datetime.now(UTC)


class BandwidthGate:
    """Cooldown gate in front of a paid remote API.

    ``consume`` stores ``now + cooldown`` as the lift time for a resource key;
    ``is_restricted`` compares the clock against it on every read, so expiry
    needs no timer. A cooldown of zero never restricts.
    """

    def __init__(
            self,
            store: TimeStore,
            cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
            clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self.clock = clock

    async def get_record(self, resource_key: str) -> ThrottleRecord:
        lift_at = await self.store.get_time(resource_key)
        return ThrottleRecord(resource_key=resource_key, lift_at=lift_at)

    async def is_restricted(self, resource_key: str) -> bool:
        if self.cooldown <= timedelta(0):
            return False
        record = await self.get_record(resource_key)
        return record.is_active(self.clock())

    async def consume(self, resource_key: str) -> ThrottleRecord:
        lift_at = self.clock() + self.cooldown
        await self.store.set_time(resource_key, lift_at)
        logger.info(f"{resource_key} did use bandwidth. Will lift restriction at {lift_at.isoformat()}")
        return ThrottleRecord(resource_key=resource_key, lift_at=lift_at)
