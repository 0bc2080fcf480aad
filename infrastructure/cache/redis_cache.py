import json
from datetime import datetime

from redis import asyncio as redis
from redis.exceptions import RedisError

from domain.exceptions.currency import CacheError


class RedisTimeStore:
    """TimeStore backed by Redis so throttle windows survive restarts."""

    def __init__(self, redis_client: redis.Redis, namespace: str = "currency_layer_bandwidth_control"):
        self.redis = redis_client
        self.namespace = namespace

    def _make_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get_time(self, key: str) -> datetime | None:
        try:
            data = await self.redis.get(self._make_key(key))
        except RedisError as e:
            raise CacheError(f"Failed to read {key}: {e}") from e

        if not data:
            return None

        try:
            return datetime.fromisoformat(json.loads(data)["value"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise CacheError(f"Invalid json data for {key}") from e

    async def set_time(self, key: str, value: datetime) -> None:
        try:
            await self.redis.set(self._make_key(key), json.dumps({"value": value.isoformat()}))
        except RedisError as e:
            raise CacheError(f"Failed to write {key}: {e}") from e
