"""
Metric store: the read/write seam between the logging tables and the
analytics engine.

Reads are by (user, date range) and always ordered ascending by date.
Writes are upserts by (user, date). No commit happens here except in
`upsert_daily`, which is the only write.

Public API
----------
fetch_rows(db, user_id, descriptor, start, end)        -> list[row]
fetch_series(db, user_id, descriptor, start, end)      -> list[MetricPoint]
count_rows(db, user_id, descriptor, start, end)        -> int
active_dates(db, user_id, descriptors, start)          -> set[date]
upsert_daily(db, user_id, descriptor, day, **values)   -> row
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vitalstudy.services.metric_registry import MetricDescriptor


@dataclass
class MetricPoint:
    date: date
    value: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _bound(descriptor: MetricDescriptor, day: date, end_of_day: bool = False):
    """Date bound in the column's own type (Date or DateTime)."""
    if not descriptor.timestamp_column:
        return day
    return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def _range_query(db: Session, user_id: int, descriptor: MetricDescriptor,
                 start: date, end: Optional[date]):
    col = descriptor.date_attr
    q = db.query(descriptor.model).filter(
        descriptor.model.user_id == user_id,
        col >= _bound(descriptor, start),
    )
    if end is not None:
        q = q.filter(col <= _bound(descriptor, end, end_of_day=True))
    return q


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def fetch_rows(
    db: Session,
    user_id: int,
    descriptor: MetricDescriptor,
    start: date,
    end: Optional[date] = None,
) -> list[Any]:
    return (
        _range_query(db, user_id, descriptor, start, end)
        .order_by(descriptor.date_attr.asc())
        .all()
    )


def fetch_series(
    db: Session,
    user_id: int,
    descriptor: MetricDescriptor,
    start: date,
    end: Optional[date] = None,
) -> list[MetricPoint]:
    """Rows of one metric as an ascending MetricSeries."""
    return to_series(descriptor, fetch_rows(db, user_id, descriptor, start, end))


def to_series(descriptor: MetricDescriptor, rows: Iterable[Any]) -> list[MetricPoint]:
    return [
        MetricPoint(
            date=_as_date(getattr(row, descriptor.date_column)),
            value=descriptor.extract_value(row),
        )
        for row in rows
    ]


def count_rows(
    db: Session,
    user_id: int,
    descriptor: MetricDescriptor,
    start: date,
    end: Optional[date] = None,
) -> int:
    q = _range_query(db, user_id, descriptor, start, end)
    return q.with_entities(func.count(descriptor.model.id)).scalar() or 0


def active_dates(
    db: Session,
    user_id: int,
    descriptors: Iterable[MetricDescriptor],
    start: date,
) -> set[date]:
    """Distinct calendar days with at least one row in any of the tables."""
    days: set[date] = set()
    for descriptor in descriptors:
        rows = (
            _range_query(db, user_id, descriptor, start, None)
            .with_entities(descriptor.date_attr)
            .distinct()
            .all()
        )
        days.update(_as_date(r[0]) for r in rows)
    return days


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------

def _locked_daily_row(db: Session, user_id: int, descriptor: MetricDescriptor, day: date):
    model = descriptor.model
    return (
        db.query(model)
        .filter(model.user_id == user_id, descriptor.date_attr == day)
        .with_for_update()
        .first()
    )


def _write_daily(db: Session, user_id: int, descriptor: MetricDescriptor, day: date, values: dict):
    row = _locked_daily_row(db, user_id, descriptor, day)
    if row is None:
        row = descriptor.model(user_id=user_id, **{descriptor.date_column: day}, **values)
        db.add(row)
    else:
        for name, value in values.items():
            setattr(row, name, value)
    db.commit()
    db.refresh(row)
    return row


def upsert_daily(
    db: Session,
    user_id: int,
    descriptor: MetricDescriptor,
    day: date,
    **values: Any,
):
    """
    Insert or update the single (user, day) row of a daily metric table.

    Two concurrent first writes for the same day both see no row; the
    unique (user_id, date) constraint rejects the second insert, which is
    then replayed once as an update against the row that won.
    """
    if not descriptor.daily:
        raise ValueError(f"{descriptor.key} is not a one-row-per-day table")
    try:
        return _write_daily(db, user_id, descriptor, day, values)
    except IntegrityError:
        db.rollback()
        return _write_daily(db, user_id, descriptor, day, values)
