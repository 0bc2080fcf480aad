"""
Shared fakes and fixtures for coordinator, gate and API tests.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from application.services import BandwidthGate, ConversionEngine, RateCoordinator
from domain.exceptions.currency import PersistenceError, ProviderError
from domain.models.currency import RateSnapshot
from infrastructure.cache.base import InMemoryTimeStore

START_TIME = datetime(2026, 1, 15, 10, 30, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeProvider:
    """Returns queued results in order; an exception result is raised instead."""

    name = "fake"

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0
        self.release: asyncio.Event | None = None

    def hold(self) -> None:
        """Keep responses in flight until ``release.set()`` is called."""
        self.release = asyncio.Event()

    async def fetch_latest(self) -> RateSnapshot:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if self.release is not None:
            await self.release.wait()
        if isinstance(result, Exception):
            raise result
        return result

    async def close(self) -> None:
        pass


class InMemorySnapshotStore:
    def __init__(self, snapshot: RateSnapshot | None = None):
        self.snapshot = snapshot
        self.saved: list[RateSnapshot] = []
        self.load_calls = 0
        self.fail_saves = False

    async def load(self) -> RateSnapshot | None:
        self.load_calls += 1
        return self.snapshot

    async def save(self, snapshot: RateSnapshot) -> None:
        if self.fail_saves:
            raise PersistenceError("disk is full")
        self.saved.append(snapshot)
        self.snapshot = snapshot


@pytest.fixture
def usd_snapshot():
    return RateSnapshot(
        observed_at=START_TIME,
        basis_currency="USD",
        quotes={"USDJPY": Decimal("115.7"), "USDEGP": Decimal("16.0"), "KWD": Decimal("0.3")},
    )


@pytest.fixture
def persisted_snapshot():
    return RateSnapshot(
        observed_at=START_TIME - timedelta(days=1),
        basis_currency="USD",
        quotes={"USDJPY": Decimal("110.0"), "USDEUR": Decimal("0.9")},
    )


@pytest.fixture
def api_error():
    return ProviderError("User did not supply an access key or supplied an invalid access key.", code=101)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def time_store():
    return InMemoryTimeStore()


@pytest.fixture
def gate(time_store, clock):
    return BandwidthGate(time_store, cooldown_seconds=1800, clock=clock)


@pytest.fixture
def snapshot_store():
    return InMemorySnapshotStore()


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def make_coordinator(gate, snapshot_store):
    def _make(provider, store=None, gate_override=None, **kwargs):
        return RateCoordinator(
            provider=provider,
            gate=gate_override or gate,
            store=store if store is not None else snapshot_store,
            engine=ConversionEngine(),
            **kwargs
        )
    return _make
