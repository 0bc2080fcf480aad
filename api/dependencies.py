import logging

from redis.asyncio import Redis

from application.services import BandwidthGate, RateCoordinator
from config.settings import Settings, get_settings
from infrastructure.cache.base import InMemoryTimeStore, TimeStore
from infrastructure.cache.redis_cache import RedisTimeStore
from infrastructure.persistence.database import Database
from infrastructure.persistence.repositories.currency import SnapshotRepository
from infrastructure.providers import CurrencyLayerProvider, RateProvider

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for application-wide singleton dependencies."""

	db: Database | None = None
	redis_client: Redis | None = None
	provider: RateProvider | None = None
	coordinator: RateCoordinator | None = None


deps = AppDependencies()


def init_dependencies(settings: Settings | None = None) -> None:
	"""Initialize all singleton dependencies. Called at app startup."""
	logger.info('Initializing dependencies...')
	settings = settings or get_settings()

	deps.db = Database(settings.DATABASE_URL)

	time_store: TimeStore
	if settings.THROTTLE_BACKEND == 'redis':
		deps.redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
		time_store = RedisTimeStore(deps.redis_client)
	else:
		time_store = InMemoryTimeStore()

	deps.provider = CurrencyLayerProvider(
		settings.CURRENCYLAYER_API_KEY,
		timeout=settings.PROVIDER_TIMEOUT,
		base_url=settings.CURRENCYLAYER_BASE_URL,
	)
	deps.coordinator = RateCoordinator(
		provider=deps.provider,
		gate=BandwidthGate(time_store, cooldown_seconds=settings.BANDWIDTH_COOLDOWN_SECONDS),
		store=SnapshotRepository(deps.db),
		resource_key=settings.RATES_RESOURCE_KEY,
		block_while_fetching=settings.BLOCK_WHILE_FETCHING,
	)
	logger.info('Dependencies initialized')


async def bootstrap() -> None:
	"""Creates tables, starts the coordinator and queues the cold-start sequence."""
	logger.info('Bootstrapping application...')

	if deps.db is None or deps.coordinator is None:
		raise RuntimeError('Dependencies not initialized. Call init_dependencies() first.')

	await deps.db.create_tables()
	deps.coordinator.start()
	# Persisted rates first, so the screen has data while the fetch is in flight
	deps.coordinator.load_persisted_if_empty()
	deps.coordinator.request_fetch()

	logger.info('Bootstrap complete')


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')

	if deps.coordinator:
		await deps.coordinator.stop()
	if deps.provider:
		await deps.provider.close()
	if deps.redis_client:
		await deps.redis_client.aclose()
	if deps.db:
		await deps.db.close()

	logger.info('Cleanup complete')


def get_coordinator() -> RateCoordinator:
	if deps.coordinator is None:
		raise RuntimeError('Rate coordinator not initialized')
	return deps.coordinator
