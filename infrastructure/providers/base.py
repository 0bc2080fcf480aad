from typing import Protocol

from domain.models.currency import RateSnapshot


class RateProvider(Protocol):
    """One remote call per fetch; no retries.

    Implementations raise ``ProviderError`` for every failure, using the
    provider's own error code when the body carries one.
    """

    @property
    def name(self) -> str:
        ...

    async def fetch_latest(self) -> RateSnapshot:
        ...

    async def close(self) -> None:
        ...
