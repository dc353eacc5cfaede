"""Per-day write serialisation for booking mutations.

Every write that can change whether a slot is free (booking, reschedule,
series creation, block creation, re-occupying status changes) bumps the
`schedule_day_locks` row of each affected day before it re-validates.

The bump is an INSERT .. ON CONFLICT DO UPDATE. On PostgreSQL it holds the
row lock until commit; on SQLite it takes the database write lock. A second
writer for the same day waits for the first to commit and then re-reads the
committed state, so it fails fast with SlotUnavailable instead of double-booking.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from clinic_api.db.models import ScheduleDayLock

logger = logging.getLogger(__name__)


def days_between(start: datetime, end: datetime) -> list[date]:
    """Calendar days touched by the half-open range [start, end)."""
    first = start.date()
    last = (end - timedelta(microseconds=1)).date() if end > start else first
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Day locks are not supported on {dialect}")


def lock_days(db: Session, days: Iterable[date]) -> list[date]:
    """
    Take the write lock for each day, in ascending order.

    Must run before any other write in the transaction. Returns the locked days.
    """
    insert = _insert_for(db)
    locked = sorted(set(days))
    for day in locked:
        stmt = insert(ScheduleDayLock).values(day=day, version=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ScheduleDayLock.day],
            set_={"version": ScheduleDayLock.version + 1},
        )
        db.execute(stmt)
    if locked:
        logger.debug("Locked schedule days %s..%s", locked[0], locked[-1])
    return locked


def lock_range(db: Session, start: datetime, end: datetime) -> list[date]:
    """Lock every day touched by [start, end)."""
    return lock_days(db, days_between(start, end))
