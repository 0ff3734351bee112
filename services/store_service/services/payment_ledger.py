"""Payment ledger: one row per transaction id, written only by upsert."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from libs.common.config import get_settings
from libs.common.currency import to_money
from libs.common.datetime_utils import as_utc, local_day_bounds, utc_now
from libs.common.logging import get_logger
from services.store_service.models import LedgerStatus, Payment
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass
class LedgerSummary:
    total_amount: Decimal
    count: int


@dataclass
class TodaySummary(LedgerSummary):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    payments: list[Payment] = field(default_factory=list)


async def upsert_by_transaction_id(
    db: AsyncSession, *, transaction_id: str, **fields: Any
) -> None:
    """
    Insert the ledger row for ``transaction_id`` or update it in place.

    Runs inside the caller's transaction; the caller commits. Concurrent
    callers for the same id converge on a single row.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _DIALECT_INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Ledger upsert not supported on {dialect}")

    now = utc_now()
    values = {"transaction_id": transaction_id, "updated_at": now, **fields}
    stmt = insert(Payment).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["transaction_id"],
        set_={key: stmt.excluded[key] for key in values if key != "transaction_id"},
    )
    await db.execute(stmt)
    status = fields.get("status")
    logger.info(
        f"Ledger upsert for {transaction_id}",
        extra={"extra_fields": {"ledger_status": getattr(status, "value", status)}},
    )


async def get_by_transaction_id(
    db: AsyncSession, transaction_id: str
) -> Optional[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.transaction_id == transaction_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def aggregate_completed_between(
    db: AsyncSession, start: datetime, end: datetime
) -> LedgerSummary:
    """Sum and count completed payments with ``start <= payment_date <= end``."""
    query = select(
        func.coalesce(func.sum(Payment.amount), 0), func.count(Payment.id)
    ).where(
        Payment.status == LedgerStatus.COMPLETED,
        Payment.payment_date >= as_utc(start),
        Payment.payment_date <= as_utc(end),
    )
    total, count = (await db.execute(query)).one()
    return LedgerSummary(total_amount=to_money(total), count=int(count))


async def list_all(db: AsyncSession, newest_first: bool = True) -> list[Payment]:
    order = Payment.payment_date.desc() if newest_first else Payment.payment_date.asc()
    result = await db.execute(
        select(Payment).order_by(order).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def today_summary(
    db: AsyncSession, now: Optional[datetime] = None
) -> TodaySummary:
    """Completed payments for the current day in the store's timezone."""
    start, end = local_day_bounds(get_settings().TIMEZONE, now)
    summary = await aggregate_completed_between(db, start, end)

    result = await db.execute(
        select(Payment)
        .where(
            Payment.status == LedgerStatus.COMPLETED,
            Payment.payment_date >= start,
            Payment.payment_date <= end,
        )
        .order_by(Payment.payment_date.desc())
        .execution_options(populate_existing=True)
    )
    return TodaySummary(
        total_amount=summary.total_amount,
        count=summary.count,
        start=start,
        end=end,
        payments=list(result.scalars().all()),
    )
