from decimal import Decimal

from sqlalchemy import DECIMAL, BigInteger, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
	pass


class RateSnapshotDB(Base):
	"""Single-slot table: at most one row, replaced on every save."""

	__tablename__ = 'rate_snapshot'

	id: Mapped[int] = mapped_column(Integer, primary_key=True)
	timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
	basis_currency: Mapped[str] = mapped_column(String(10), nullable=False)

	quotes: Mapped[list['RateQuoteDB']] = relationship(
		back_populates='snapshot', cascade='all, delete-orphan', lazy='selectin'
	)


class RateQuoteDB(Base):
	__tablename__ = 'rate_quotes'

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	snapshot_id: Mapped[int] = mapped_column(
		ForeignKey('rate_snapshot.id', ondelete='CASCADE'), nullable=False, index=True
	)
	pair_code: Mapped[str] = mapped_column(String(20), nullable=False)
	rate: Mapped[Decimal] = mapped_column(DECIMAL(precision=28, scale=12), nullable=False)

	snapshot: Mapped[RateSnapshotDB] = relationship(back_populates='quotes')
