import logging

from sqlalchemy import delete
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.future import select
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from domain.exceptions.currency import PersistenceError
from domain.models.currency import RateSnapshot
from infrastructure.persistence.database import Database
from infrastructure.persistence.models.currency import RateQuoteDB, RateSnapshotDB
from infrastructure.persistence.timestamps import decode_timestamp, encode_timestamp

logger = logging.getLogger(__name__)

SNAPSHOT_SLOT = 1


class SnapshotRepository:
	"""Durable copy of the most recent snapshot. Saving replaces it, no history is kept."""

	def __init__(self, db: Database):
		self.db = db

	async def load(self) -> RateSnapshot | None:
		try:
			async with self.db.session() as session:
				result = await session.execute(
					select(RateSnapshotDB).where(RateSnapshotDB.id == SNAPSHOT_SLOT)
				)
				row = result.scalar_one_or_none()
				if row is None:
					return None
				return RateSnapshot(
					observed_at=decode_timestamp(row.timestamp),
					basis_currency=row.basis_currency,
					quotes={q.pair_code: q.rate for q in row.quotes},
				)
		except SQLAlchemyError as e:
			raise PersistenceError(f'Failed to load persisted rates: {e}') from e

	async def save(self, snapshot: RateSnapshot) -> None:
		try:
			await self._replace(snapshot)
		except SQLAlchemyError as e:
			raise PersistenceError(f'Failed to persist rates: {e}') from e
		logger.info(
			f'Persisted {len(snapshot.quotes)} {snapshot.basis_currency} quotes '
			f'observed at {snapshot.observed_at.isoformat()}'
		)

	@retry(
		stop=stop_after_attempt(3),
		wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
		retry=retry_if_exception_type(OperationalError),
		reraise=True,
	)
	async def _replace(self, snapshot: RateSnapshot) -> None:
		async with self.db.session() as session:
			await session.execute(delete(RateQuoteDB))
			await session.execute(delete(RateSnapshotDB))
			session.add(
				RateSnapshotDB(
					id=SNAPSHOT_SLOT,
					timestamp=encode_timestamp(snapshot.observed_at),
					basis_currency=snapshot.basis_currency,
					quotes=[
						RateQuoteDB(pair_code=code, rate=rate) for code, rate in snapshot.quotes.items()
					],
				)
			)
