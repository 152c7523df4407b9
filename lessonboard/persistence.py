"""Create, update and delete main sessions and their sub-sessions.

Creating a main session is a create-then-verify-then-compensate sequence:

1. the main session row is inserted and committed on its own (provisional),
   which gives it an identifier;
2. the teacher/day lock rows of the batch are taken and the conflict check
   runs against stored sessions;
3. the sub-sessions are inserted and committed (committed).

A conflict or storage failure in steps 2-3 deletes the provisional row again
(aborted). That delete is best effort: if it fails it is logged and the
orphan is left for ``flask purge-orphans``.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .composer import compute_duration
from .conflicts import RequestedSession, check_batch, lock_teacher_days, wall_clock_interval
from .curriculum import resolve_lesson_identifier
from .errors import (
    RecordNotFoundError,
    SessionValidationError,
    StorageError,
    TeacherConflictError,
)
from .extensions import db
from .models import ClassGroup, MainSession, Session
from .timezone import (
    DEFAULT_TIMEZONE,
    convert_to_utc,
    extract_timezone,
    isoformat_utc,
    local_clock,
    parse_date,
    parse_instant,
)


SESSION_UPDATE_FIELDS = (
    "subject_type",
    "teacher_id",
    "teaching_assistant_id",
    "location_id",
    "start_time",
    "end_time",
    "date",
    "data",
)


def _optional_id(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise SessionValidationError(f"Invalid identifier: {value!r}") from exc


def _parse_requested(
    scheduled_date: date, raw_sessions: list[Mapping[str, Any]], tz_name: str
) -> list[tuple[RequestedSession, dict[str, Optional[int]], int]]:
    requested: list[tuple[RequestedSession, dict[str, Optional[int]], int]] = []
    for position, raw in enumerate(raw_sessions, start=1):
        start_clock = raw.get("start_time")
        end_clock = raw.get("end_time")
        if not start_clock or not end_clock:
            raise SessionValidationError(f"Session {position}: start and end time are required")
        try:
            start, end = wall_clock_interval(scheduled_date, start_clock, end_clock, tz_name)
        except ValueError as exc:
            raise SessionValidationError(f"Session {position}: invalid time format") from exc
        if end <= start:
            raise SessionValidationError(f"Session {position}: end time must be after start time")
        try:
            duration = int(raw.get("duration_minutes") or compute_duration(start_clock, end_clock))
        except (TypeError, ValueError) as exc:
            raise SessionValidationError(f"Session {position}: invalid duration") from exc
        requested.append(
            (
                RequestedSession(
                    subject_type=raw.get("subject_type") or "",
                    teacher_id=_optional_id(raw.get("teacher_id")),
                    start=start,
                    end=end,
                    start_clock=start_clock,
                    end_clock=end_clock,
                ),
                {
                    "teaching_assistant_id": _optional_id(raw.get("teaching_assistant_id")),
                    "location_id": _optional_id(raw.get("location_id")),
                },
                duration,
            )
        )
    return requested


def _compensate(main_session_id: int) -> None:
    try:
        main_session = db.session.get(MainSession, main_session_id)
        if main_session is not None:
            db.session.delete(main_session)
            db.session.commit()
            current_app.logger.warning("Provisional main session %s deleted", main_session_id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "Unable to delete provisional main session %s; it is left orphaned.",
            main_session_id,
        )


def create_main_session(
    payload: Mapping[str, Any],
    *,
    default_timezone: str = DEFAULT_TIMEZONE,
) -> MainSession:
    name = (payload.get("main_session_name") or "").strip()
    raw_date = payload.get("scheduled_date")
    class_id = payload.get("class_id")
    if not name or not raw_date or not class_id:
        raise SessionValidationError("main_session_name, scheduled_date and class_id are required")

    tz_name = extract_timezone(payload, default_timezone)
    try:
        scheduled_date = parse_date(raw_date)
    except ValueError as exc:
        raise SessionValidationError("scheduled_date must use YYYY-MM-DD") from exc

    class_group = db.session.get(ClassGroup, _optional_id(class_id))
    if class_group is None:
        raise RecordNotFoundError(f"Class {class_id} not found")

    requested = _parse_requested(scheduled_date, list(payload.get("sessions") or []), tz_name)

    if requested:
        envelope_start = min(item.start for item, _, _ in requested)
        envelope_end = max(item.end for item, _, _ in requested)
        total_duration = sum(duration for _, _, duration in requested)
    else:
        try:
            envelope_start = (
                convert_to_utc(scheduled_date, payload["start_time"], tz_name)
                if payload.get("start_time")
                else None
            )
            envelope_end = (
                convert_to_utc(scheduled_date, payload["end_time"], tz_name)
                if payload.get("end_time")
                else None
            )
        except ValueError as exc:
            raise SessionValidationError("Invalid start_time or end_time") from exc
        total_duration = int(payload.get("total_duration_minutes") or 0)

    main_session = MainSession(
        name=name,
        class_id=class_group.id,
        scheduled_date=scheduled_date,
        lesson_id=resolve_lesson_identifier(class_group.unit, payload.get("lesson_number"), name),
        start_time=envelope_start,
        end_time=envelope_end,
        total_duration_minutes=total_duration,
        data=_envelope_data(envelope_start, envelope_end, total_duration, tz_name),
    )
    try:
        db.session.add(main_session)
        db.session.flush()
        main_session_id = main_session.id
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Unable to create main session %r", name)
        raise StorageError("Unable to create the main session") from exc

    # Nothing may be read between this commit and the row locks, so the
    # locking read opens a fresh snapshot.
    try:
        lock_teacher_days(
            (item.teacher_id, scheduled_date) for item, _, _ in requested if item.teacher_id is not None
        )
        check_batch(scheduled_date, [item for item, _, _ in requested], tz_name)
        for item, extras, duration in requested:
            db.session.add(
                Session(
                    main_session_id=main_session_id,
                    subject_type=item.subject_type,
                    teacher_id=item.teacher_id,
                    teaching_assistant_id=extras["teaching_assistant_id"],
                    location_id=extras["location_id"],
                    start_time=item.start,
                    end_time=item.end,
                    date=scheduled_date,
                    duration_minutes=duration,
                    data={"created_by_form": True},
                )
            )
        db.session.commit()
    except TeacherConflictError as exc:
        db.session.rollback()
        current_app.logger.warning("Main session %s rejected: %s", main_session_id, exc)
        _compensate(main_session_id)
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Unable to create sessions for main session %s", main_session_id)
        _compensate(main_session_id)
        raise StorageError("Unable to create the sessions; the lesson was rolled back") from exc

    current_app.logger.info(
        "Main session %s created with %s session(s)", main_session_id, len(requested)
    )
    return db.session.get(MainSession, main_session_id)


def _envelope_data(
    start: Optional[datetime],
    end: Optional[datetime],
    total_duration: int,
    tz_name: str,
    *,
    base: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    data: dict[str, Any] = dict(base or {})
    data.update(
        {
            "start_time": local_clock(start, tz_name) if start else None,
            "end_time": local_clock(end, tz_name) if end else None,
            "total_duration_minutes": total_duration,
            "start_timestamp": isoformat_utc(start),
            "end_timestamp": isoformat_utc(end),
            "created_by_form": True,
        }
    )
    return data


def refresh_envelope(main_session: MainSession, tz_name: str = DEFAULT_TIMEZONE) -> None:
    """Recompute the envelope and total duration from the current sub-sessions."""

    sessions = list(main_session.sessions)
    if not sessions:
        return
    main_session.start_time = min(session.start_time for session in sessions)
    main_session.end_time = max(session.end_time for session in sessions)
    main_session.total_duration_minutes = sum(session.duration_minutes for session in sessions)
    main_session.data = _envelope_data(
        main_session.start_time,
        main_session.end_time,
        main_session.total_duration_minutes,
        tz_name,
        base=main_session.data,
    )


def _resolve_instant(value: str, day: date, tz_name: str) -> datetime:
    if "T" in value:
        return parse_instant(value)
    return convert_to_utc(day, value, tz_name)


def update_session(
    session: Session,
    changes: Mapping[str, Any],
    *,
    tz_name: str = DEFAULT_TIMEZONE,
) -> Session:
    """Apply ``changes`` to ``session`` without re-running the conflict check."""

    try:
        if "subject_type" in changes:
            session.subject_type = changes["subject_type"] or session.subject_type
        for field in ("teacher_id", "teaching_assistant_id", "location_id"):
            if field in changes:
                setattr(session, field, _optional_id(changes[field]))
        if "data" in changes and isinstance(changes["data"], Mapping):
            session.data = dict(changes["data"])

        previous_day = session.date
        new_day = parse_date(changes["date"]) if changes.get("date") else previous_day
        start = session.start_time
        end = session.end_time
        if new_day != previous_day:
            start = convert_to_utc(new_day, local_clock(start, tz_name), tz_name)
            end = convert_to_utc(new_day, local_clock(end, tz_name), tz_name)
        if changes.get("start_time"):
            start = _resolve_instant(changes["start_time"], new_day, tz_name)
        if changes.get("end_time"):
            end = _resolve_instant(changes["end_time"], new_day, tz_name)
    except ValueError as exc:
        raise SessionValidationError(str(exc)) from exc

    if end <= start:
        raise SessionValidationError("End time must be after start time")

    session.date = new_day
    session.start_time = start
    session.end_time = end
    session.duration_minutes = session.elapsed_minutes
    refresh_envelope(session.main_session, tz_name)
    commit_changes("Unable to update session %s", session.id)
    return session


def update_main_session(
    main_session: MainSession,
    changes: Mapping[str, Any],
) -> MainSession:
    """Rename or reschedule a main session; nothing is cross-validated."""

    if "main_session_name" in changes:
        name = (changes["main_session_name"] or "").strip()
        if not name:
            raise SessionValidationError("main_session_name cannot be empty")
        main_session.name = name
    if changes.get("scheduled_date"):
        try:
            main_session.scheduled_date = parse_date(changes["scheduled_date"])
        except ValueError as exc:
            raise SessionValidationError("scheduled_date must use YYYY-MM-DD") from exc
    if "lesson_id" in changes:
        main_session.lesson_id = changes["lesson_id"] or None
    if isinstance(changes.get("data"), Mapping):
        main_session.data = {**(main_session.data or {}), **changes["data"]}
    commit_changes("Unable to update main session %s", main_session.id)
    return main_session


def delete_main_session(main_session: MainSession) -> None:
    db.session.delete(main_session)
    commit_changes("Unable to delete main session %s", main_session.id)


def delete_session(session: Session, *, tz_name: str = DEFAULT_TIMEZONE) -> None:
    main_session = session.main_session
    db.session.delete(session)
    db.session.flush()
    db.session.refresh(main_session)
    refresh_envelope(main_session, tz_name)
    commit_changes("Unable to delete session %s", session.id)


def sessions_in_window(
    start_date: date,
    end_date: date,
    *,
    class_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
) -> list[Session]:
    """Sessions dated inside the window, in creation order."""

    query = Session.query.filter(Session.date >= start_date, Session.date <= end_date)
    if class_id is not None:
        query = query.join(MainSession).filter(MainSession.class_id == class_id)
    if teacher_id is not None:
        query = query.filter(Session.teacher_id == teacher_id)
    return query.order_by(Session.created_at, Session.id).all()


def purge_orphaned_main_sessions(*, older_than_minutes: int = 30) -> int:
    cutoff = datetime.utcnow() - timedelta(minutes=older_than_minutes)
    orphans = MainSession.query.filter(
        ~MainSession.sessions.any(), MainSession.created_at < cutoff
    ).all()
    for main_session in orphans:
        db.session.delete(main_session)
    commit_changes("Unable to purge %s orphaned main session(s)", len(orphans))
    if orphans:
        current_app.logger.info("Purged %s orphaned main session(s)", len(orphans))
    return len(orphans)


def commit_changes(message: str, *args: Any) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(message, *args)
        raise StorageError(message % args) from exc


__all__ = [
    "SESSION_UPDATE_FIELDS",
    "commit_changes",
    "create_main_session",
    "delete_main_session",
    "delete_session",
    "purge_orphaned_main_sessions",
    "sessions_in_window",
    "refresh_envelope",
    "update_main_session",
    "update_session",
]
