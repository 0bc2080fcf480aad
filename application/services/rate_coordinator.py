import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from decimal import Decimal

from application.services.bandwidth_gate import BandwidthGate
from application.services.conversion_service import ConversionEngine
from domain.exceptions.currency import (
    TRANSPORT_ERROR_CODE,
    CacheError,
    InvalidCurrencyError,
    PersistenceError,
    ProviderError,
)
from domain.models.currency import ConversionState, RateSnapshot
from infrastructure.persistence.repositories.currency import SnapshotRepository
from infrastructure.providers.base import RateProvider

logger = logging.getLogger(__name__)

RATES_RESOURCE_KEY = "conversion_rates"


@dataclass(frozen=True)
class CoordinatorState:
    snapshot: RateSnapshot | None = None
    conversion: ConversionState = field(default_factory=ConversionState)
    is_fetching: bool = False
    error_message: str | None = None

    @property
    def has_rates(self) -> bool:
        return self.snapshot is not None

    @property
    def has_error(self) -> bool:
        return self.error_message is not None


# Events

@dataclass(frozen=True)
class RequestFetch:
    pass


@dataclass(frozen=True)
class FetchSucceeded:
    snapshot: RateSnapshot


@dataclass(frozen=True)
class FetchFailed:
    code: int
    message: str


@dataclass(frozen=True)
class SnapshotPersisted:
    snapshot: RateSnapshot
    error: str | None = None


@dataclass(frozen=True)
class DismissError:
    pass


@dataclass(frozen=True)
class LoadPersistedIfEmpty:
    pass


@dataclass(frozen=True)
class PersistedSnapshotLoaded:
    snapshot: RateSnapshot | None


@dataclass(frozen=True)
class ChangeBasis:
    currency_code: str


@dataclass(frozen=True)
class SetAmount:
    raw_input: str


@dataclass(frozen=True)
class MoveRate:
    from_index: int
    to_index: int


Event = (
    RequestFetch | FetchSucceeded | FetchFailed | SnapshotPersisted | DismissError
    | LoadPersistedIfEmpty | PersistedSnapshotLoaded | ChangeBasis | SetAmount | MoveRate
)


# Effects

@dataclass(frozen=True)
class ConsumeBandwidth:
    resource_key: str


@dataclass(frozen=True)
class FetchRates:
    pass


@dataclass(frozen=True)
class PersistSnapshot:
    snapshot: RateSnapshot


@dataclass(frozen=True)
class LoadSnapshot:
    pass


Effect = ConsumeBandwidth | FetchRates | PersistSnapshot | LoadSnapshot


class RateReducer:
    """Pure transition function ``(state, event) -> (state, effects)``.

    ``restricted`` is the bandwidth gate reading taken when a RequestFetch is
    dequeued; it is ignored for every other event.
    """

    def __init__(
            self,
            engine: ConversionEngine,
            resource_key: str = RATES_RESOURCE_KEY,
            block_while_fetching: bool = False
    ):
        self.engine = engine
        self.resource_key = resource_key
        self.block_while_fetching = block_while_fetching

    def reduce(
            self,
            state: CoordinatorState,
            event: Event,
            restricted: bool = False
    ) -> tuple[CoordinatorState, list[Effect]]:
        if isinstance(event, RequestFetch):
            if restricted:
                return state, []
            if self.block_while_fetching and state.is_fetching:
                return state, []
            return (
                replace(state, is_fetching=True),
                [ConsumeBandwidth(self.resource_key), FetchRates()],
            )

        if isinstance(event, FetchSucceeded):
            conversion = self.engine.update_with_snapshot(state.conversion, event.snapshot)
            return (
                replace(state, snapshot=event.snapshot, conversion=conversion),
                [PersistSnapshot(event.snapshot)],
            )

        if isinstance(event, SnapshotPersisted):
            return replace(state, is_fetching=False), []

        if isinstance(event, FetchFailed):
            return replace(state, is_fetching=False, error_message=event.message), []

        if isinstance(event, DismissError):
            return replace(state, error_message=None), []

        if isinstance(event, LoadPersistedIfEmpty):
            if state.has_rates:
                return state, []
            return state, [LoadSnapshot()]

        if isinstance(event, PersistedSnapshotLoaded):
            # A fetch that landed first always wins over the persisted copy
            if event.snapshot is None or state.has_rates:
                return state, []
            conversion = self.engine.update_with_snapshot(state.conversion, event.snapshot)
            return replace(state, snapshot=event.snapshot, conversion=conversion), []

        if isinstance(event, ChangeBasis):
            try:
                conversion = self.engine.change_basis(state.conversion, event.currency_code)
            except InvalidCurrencyError as e:
                logger.warning(f"Ignoring basis change: {e}")
                return state, []
            return replace(state, conversion=conversion), []

        if isinstance(event, SetAmount):
            return replace(state, conversion=self.engine.apply_amount(state.conversion, event.raw_input)), []

        if isinstance(event, MoveRate):
            conversion = self.engine.move(state.conversion, event.from_index, event.to_index)
            return replace(state, conversion=conversion), []

        raise TypeError(f"Unsupported event: {event!r}")


StateListener = Callable[[CoordinatorState], None]


class RateCoordinator:
    """Owns the rate state and serializes every change through one event queue.

    Events are handled one at a time. Effects that touch persistence are awaited
    in place and their completion events are handled before the next queued
    event, so a reaction chain is never interleaved with unrelated input.
    Provider calls run as tasks and come back as queued events.
    """

    def __init__(
            self,
            provider: RateProvider,
            gate: BandwidthGate,
            store: SnapshotRepository,
            engine: ConversionEngine | None = None,
            resource_key: str = RATES_RESOURCE_KEY,
            block_while_fetching: bool = False
    ):
        self.provider = provider
        self.gate = gate
        self.store = store
        self.engine = engine or ConversionEngine()
        self.resource_key = resource_key
        self.reducer = RateReducer(self.engine, resource_key, block_while_fetching)

        self.state = CoordinatorState()
        self._events: asyncio.Queue = asyncio.Queue()
        self._reactions: deque = deque()
        self._fetch_tasks: set[asyncio.Task] = set()
        self._listeners: list[StateListener] = []
        self._worker: asyncio.Task | None = None

    # Intents

    def send(self, event: Event) -> None:
        self._events.put_nowait(event)

    def request_fetch(self) -> None:
        self.send(RequestFetch())

    def load_persisted_if_empty(self) -> None:
        self.send(LoadPersistedIfEmpty())

    def dismiss_error(self) -> None:
        self.send(DismissError())

    def change_basis(self, currency_code: str) -> None:
        self.send(ChangeBasis(currency_code))

    def set_amount(self, raw_input: str) -> None:
        self.send(SetAmount(raw_input))

    def move_rate(self, from_index: int, to_index: int) -> None:
        self.send(MoveRate(from_index, to_index))

    # Observation

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def converted_amount(self, target_currency: str, amount: Decimal | None = None) -> Decimal:
        conversion = self.state.conversion
        if amount is None:
            amount = conversion.amount_to_convert
        return self.engine.converted_amount(conversion, amount, target_currency)

    # Event loop

    @property
    def is_idle(self) -> bool:
        return self._events.empty() and not self._fetch_tasks

    async def process_next(self) -> None:
        event = await self._events.get()
        try:
            await self._handle(event)
        finally:
            self._events.task_done()

    async def run_until_idle(self) -> None:
        """Processes queued events, waiting on in-flight fetches, until nothing is left."""
        while True:
            while not self._events.empty():
                await self.process_next()
            if not self._fetch_tasks:
                return
            await asyncio.wait(set(self._fetch_tasks))

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run_forever())

    async def stop(self) -> None:
        tasks = [t for t in (self._worker, *self._fetch_tasks) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._worker = None

    async def _run_forever(self) -> None:
        while True:
            try:
                await self.process_next()
            except Exception as e:
                logger.error(f"Failed to handle rate event: {e}", exc_info=True)

    async def _handle(self, event: Event) -> None:
        self._reactions.append(event)
        while self._reactions:
            current = self._reactions.popleft()

            restricted = False
            if isinstance(current, RequestFetch):
                restricted = await self._is_restricted()
                if restricted:
                    logger.debug(f"Skipping fetch, bandwidth for {self.resource_key} is restricted")

            new_state, effects = self.reducer.reduce(self.state, current, restricted)
            self._set_state(new_state)

            for effect in effects:
                await self._run_effect(effect)

    def _set_state(self, new_state: CoordinatorState) -> None:
        if new_state == self.state:
            return
        self.state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception as e:
                logger.error(f"State listener {listener!r} failed: {e}", exc_info=True)

    async def _is_restricted(self) -> bool:
        try:
            return await self.gate.is_restricted(self.resource_key)
        except CacheError as e:
            # Fail open when the throttle store cannot be read
            logger.error(f"Could not read bandwidth state for {self.resource_key}: {e}")
            return False

    # Effects

    async def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, ConsumeBandwidth):
            try:
                await self.gate.consume(effect.resource_key)
            except CacheError as e:
                logger.error(f"Could not record bandwidth use for {effect.resource_key}: {e}")

        elif isinstance(effect, FetchRates):
            task = asyncio.create_task(self._fetch())
            self._fetch_tasks.add(task)
            task.add_done_callback(self._fetch_tasks.discard)

        elif isinstance(effect, PersistSnapshot):
            error = None
            try:
                await self.store.save(effect.snapshot)
            except PersistenceError as e:
                # In-memory rates stay authoritative
                logger.error(f"Failed to persist fetched rates: {e}")
                error = str(e)
            self._reactions.append(SnapshotPersisted(effect.snapshot, error))

        elif isinstance(effect, LoadSnapshot):
            snapshot = None
            try:
                snapshot = await self.store.load()
            except PersistenceError as e:
                logger.error(f"Failed to load persisted rates: {e}")
            if snapshot is None:
                logger.info("No persisted rates available")
            self._reactions.append(PersistedSnapshotLoaded(snapshot))

    async def _fetch(self) -> None:
        try:
            snapshot = await self.provider.fetch_latest()
        except ProviderError as e:
            logger.warning(f"Provider {self.provider.name} failed with code {e.code}: {e.message}")
            self.send(FetchFailed(code=e.code, message=e.message))
        except Exception as e:
            logger.error(f"Unexpected failure fetching from {self.provider.name}: {e}", exc_info=True)
            self.send(FetchFailed(code=TRANSPORT_ERROR_CODE, message=str(e)))
        else:
            logger.info(
                f"Fetched {len(snapshot.quotes)} {snapshot.basis_currency} quotes from {self.provider.name}"
            )
            self.send(FetchSucceeded(snapshot))
