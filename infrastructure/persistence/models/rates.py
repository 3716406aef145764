from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, JSON, Boolean, Date, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
	pass


class RateProviderDB(Base):
	__tablename__ = 'rate_providers'

	id: Mapped[str] = mapped_column(String(64), primary_key=True)
	name: Mapped[str] = mapped_column(String(100), nullable=False)
	type: Mapped[str] = mapped_column(String(20), nullable=False)
	is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
	supported_currencies: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
	config: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class ExchangeRateDB(Base):
	__tablename__ = 'exchange_rates'

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	from_currency: Mapped[str] = mapped_column(String(10), nullable=False)
	to_currency: Mapped[str] = mapped_column(String(10), nullable=False)
	rate: Mapped[Decimal] = mapped_column(DECIMAL(precision=28, scale=12), nullable=False)
	rate_date: Mapped[date] = mapped_column('date', Date, nullable=False, index=True)
	fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
	provider_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

	__table_args__ = (Index('idx_rate_pair_date', 'from_currency', 'to_currency', 'date'),)
