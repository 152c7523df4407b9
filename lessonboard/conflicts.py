"""Teacher double-booking checks run before a batch of sessions is stored."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from .errors import ConflictDetails, TeacherConflictError
from .extensions import db
from .models import Employee, Session, TeacherDayLock
from .timezone import DEFAULT_TIMEZONE, convert_to_utc, format_local_range, parse_clock


@dataclass(frozen=True)
class RequestedSession:
    """A sub-session of an incoming batch, already resolved to UTC instants."""

    subject_type: str
    teacher_id: Optional[int]
    start: datetime
    end: datetime
    start_clock: str
    end_clock: str


def wall_clock_interval(
    day: date, start_clock: str, end_clock: str, tz_name: str = DEFAULT_TIMEZONE
) -> tuple[datetime, datetime]:
    return convert_to_utc(day, start_clock, tz_name), convert_to_utc(day, end_clock, tz_name)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def find_teacher_conflict(
    teacher_id: int,
    day: date,
    start: datetime,
    end: datetime,
    *,
    ignore_session_id: int | None = None,
) -> Optional[Session]:
    query = Session.query.filter(
        Session.teacher_id == teacher_id,
        Session.date == day,
        Session.start_time < end,
        Session.end_time > start,
    )
    if ignore_session_id is not None:
        query = query.filter(Session.id != ignore_session_id)
    return query.order_by(Session.start_time, Session.id).first()


def _teacher_name(teacher_id: int) -> str:
    teacher = db.session.get(Employee, teacher_id)
    return teacher.full_name if teacher is not None else f"Teacher #{teacher_id}"


def check_batch(
    scheduled_date: date,
    requested: Sequence[RequestedSession],
    tz_name: str = DEFAULT_TIMEZONE,
) -> None:
    """Raise :class:`TeacherConflictError` for the first conflicting sub-session.

    Sub-sessions are checked in submission order; the first one that overlaps
    a stored session of the same teacher on the same date stops the walk.
    Assistants and rooms are not considered.
    """

    for item in requested:
        if item.teacher_id is None:
            continue
        existing = find_teacher_conflict(item.teacher_id, scheduled_date, item.start, item.end)
        if existing is None:
            continue
        raise TeacherConflictError(
            ConflictDetails(
                teacher_name=_teacher_name(item.teacher_id),
                conflict_time=format_local_range(existing.start_time, existing.end_time, tz_name),
                conflict_date=existing.date.isoformat(),
                session_type=item.subject_type,
                requested_time=f"{_short(item.start_clock)} - {_short(item.end_clock)}",
            )
        )


def _short(clock: str) -> str:
    return parse_clock(clock).strftime("%H:%M")


def ensure_lock_rows(keys: Iterable[tuple[int, date]]) -> None:
    """Create the lock rows for ``keys`` that do not exist yet.

    Each row is committed on its own so a concurrent creator hitting the
    unique constraint only loses its own insert. The transaction is always
    closed on return so the locking read that follows starts a new one.
    """

    for teacher_id, day in sorted(set(keys)):
        if TeacherDayLock.query.filter_by(teacher_id=teacher_id, day=day).first() is not None:
            continue
        db.session.add(TeacherDayLock(teacher_id=teacher_id, day=day))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
    db.session.commit()


def lock_teacher_days(keys: Iterable[tuple[int, date]]) -> list[TeacherDayLock]:
    """Lock the ``(teacher, day)`` rows until the current transaction ends.

    Rows are locked in a fixed order so two batches touching the same
    teachers cannot deadlock. Engines without row locks ignore ``FOR UPDATE``.
    """

    ordered = sorted(set(keys))
    if not ordered:
        return []
    ensure_lock_rows(ordered)
    conditions = [
        (TeacherDayLock.teacher_id == teacher_id) & (TeacherDayLock.day == day)
        for teacher_id, day in ordered
    ]
    return (
        TeacherDayLock.query.filter(or_(*conditions))
        .order_by(TeacherDayLock.teacher_id, TeacherDayLock.day)
        .with_for_update()
        .all()
    )
