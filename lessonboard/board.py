"""Day/week schedule board with drag-to-reschedule.

The board renders only the days and half-hour rows that hold sessions. Each
rendered row is 50 px tall and stands for 30 minutes, so a pointer offset
inside a day column maps back to a wall-clock time that is then converted to
UTC through the timezone boundary.

Dropping a session issues an update with the candidate times as they are;
the teacher conflict check is not run again at that point.
"""
from __future__ import annotations

import enum
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from .models import Session
from .conflicts import overlaps
from .timeslots import SLOT_MINUTES, derive_time_slots, earliest_slot
from .timezone import (
    CLOCK_FORMAT,
    DEFAULT_TIMEZONE,
    convert_from_utc,
    convert_to_utc,
    isoformat_utc,
    parse_clock,
)


VIEW_DAY = "day"
VIEW_WEEK = "week"
VIEW_MODES = (VIEW_DAY, VIEW_WEEK)

SLOT_HEIGHT_PX = 50
SNAP_MINUTES = 5
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

INLINE_EDIT_FIELDS = ("teacher_id", "teaching_assistant_id", "start_time", "end_time")


def date_range(current: date, view_mode: str = VIEW_WEEK) -> tuple[date, date]:
    if view_mode == VIEW_DAY:
        return current, current
    monday = current - timedelta(days=current.weekday())
    return monday, monday + timedelta(days=6)


def week_dates(start: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range(7)]


def round_to_nearest(value: float, step: int = SNAP_MINUTES) -> int:
    return int(math.floor(value / step + 0.5)) * step


def pointer_to_offset_minutes(pointer_y: float) -> int:
    """Minutes below the first row for a pointer ``pointer_y`` px under the column top."""

    return round_to_nearest(pointer_y * (SLOT_MINUTES / SLOT_HEIGHT_PX))


def candidate_range(
    pointer_y: float, first_slot: str, duration_minutes: int, day: date
) -> tuple[datetime, datetime]:
    """Local start and end for a drop; a start past midnight rolls onto the next day."""

    start = datetime.combine(day, parse_clock(first_slot)) + timedelta(
        minutes=pointer_to_offset_minutes(pointer_y)
    )
    return start, start + timedelta(minutes=duration_minutes)


@dataclass
class SessionCard:
    id: int
    day: date
    start: datetime
    end: datetime
    start_clock: str
    end_clock: str
    duration_minutes: int
    subject_type: str
    main_session_name: Optional[str] = None
    class_name: Optional[str] = None
    program_type: Optional[str] = None
    teacher_id: Optional[int] = None
    teacher_name: Optional[str] = None
    teaching_assistant_id: Optional[int] = None
    teaching_assistant_name: Optional[str] = None
    room_name: Optional[str] = None
    width: str = "100%"
    left: str = "0%"

    @classmethod
    def from_session(cls, session: Session, tz_name: str = DEFAULT_TIMEZONE) -> "SessionCard":
        local_start = convert_from_utc(session.start_time, tz_name)
        local_end = convert_from_utc(session.end_time, tz_name)
        main_session = session.main_session
        class_group = main_session.class_group if main_session is not None else None
        return cls(
            id=session.id,
            day=local_start.date(),
            start=session.start_time,
            end=session.end_time,
            start_clock=local_start.strftime(CLOCK_FORMAT),
            end_clock=local_end.strftime(CLOCK_FORMAT),
            duration_minutes=session.elapsed_minutes,
            subject_type=session.subject_type,
            main_session_name=main_session.name if main_session is not None else None,
            class_name=class_group.class_name if class_group is not None else None,
            program_type=class_group.program_type if class_group is not None else None,
            teacher_id=session.teacher_id,
            teacher_name=session.teacher.full_name if session.teacher else None,
            teaching_assistant_id=session.teaching_assistant_id,
            teaching_assistant_name=(
                session.teaching_assistant.full_name if session.teaching_assistant else None
            ),
            room_name=session.location.display_name if session.location else None,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.day.isoformat(),
            "start_time": isoformat_utc(self.start),
            "end_time": isoformat_utc(self.end),
            "start_clock": self.start_clock,
            "end_clock": self.end_clock,
            "duration_minutes": self.duration_minutes,
            "subject_type": self.subject_type,
            "main_session_name": self.main_session_name,
            "class_name": self.class_name,
            "program_type": self.program_type,
            "teacher_id": self.teacher_id,
            "teacher_name": self.teacher_name,
            "teaching_assistant_id": self.teaching_assistant_id,
            "teaching_assistant_name": self.teaching_assistant_name,
            "room_name": self.room_name,
            "width": self.width,
            "left": self.left,
        }


def detect_overlaps(cards: list[SessionCard]) -> dict[str, list[SessionCard]]:
    """Group each card with every card it overlaps, keyed by the sorted ids."""

    groups: dict[str, list[SessionCard]] = {}
    for index, card in enumerate(cards):
        overlapping = [
            other
            for other_index, other in enumerate(cards)
            if other_index == index or overlaps(card.start, card.end, other.start, other.end)
        ]
        if len(overlapping) < 2:
            continue
        key = "-".join(str(item_id) for item_id in sorted(item.id for item in overlapping))
        groups.setdefault(key, overlapping)
    return groups


def _apply_layout(cards: list[SessionCard]) -> None:
    groups = detect_overlaps(cards)
    for card in cards:
        group = next((members for members in groups.values() if card in members), None)
        if group is None:
            continue
        position = group.index(card)
        card.width = f"{100 / len(group):g}%"
        card.left = f"{position * 100 / len(group):g}%"


@dataclass
class DayColumn:
    day: date
    cards: list[SessionCard] = field(default_factory=list)

    @property
    def day_name(self) -> str:
        return WEEKDAY_NAMES[self.day.weekday()]

    @property
    def time_slots(self) -> list[str]:
        return derive_time_slots((card.start_clock, card.end_clock) for card in self.cards)

    @property
    def earliest_slot(self) -> Optional[str]:
        return earliest_slot(self.time_slots)

    def rows(self) -> list[dict[str, Any]]:
        """Slot rows holding at least one card starting inside the slot."""

        slots = self.time_slots
        rows: list[dict[str, Any]] = []
        for index, slot in enumerate(slots):
            slot_start = parse_clock(slot)
            slot_end = parse_clock(slots[index + 1]) if index + 1 < len(slots) else None
            starting = [
                card
                for card in self.cards
                if parse_clock(card.start_clock) >= slot_start
                and (slot_end is None or parse_clock(card.start_clock) < slot_end)
            ]
            if starting:
                rows.append({"slot": slot, "sessions": [card.as_dict() for card in starting]})
        return rows

    def as_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "day_name": self.day_name,
            "time_slots": self.time_slots,
            "rows": self.rows(),
        }


class ScheduleBoard:
    def __init__(
        self,
        sessions: Iterable[Session],
        current_date: date,
        view_mode: str = VIEW_WEEK,
        tz_name: str = DEFAULT_TIMEZONE,
    ) -> None:
        if view_mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {view_mode!r}")
        self.current_date = current_date
        self.view_mode = view_mode
        self.tz_name = tz_name
        self.start_date, self.end_date = date_range(current_date, view_mode)
        self.cards = sorted(
            (SessionCard.from_session(session, tz_name) for session in sessions),
            key=lambda card: (card.start, card.id),
        )

    def visible_dates(self) -> list[date]:
        if self.view_mode == VIEW_DAY:
            return [self.current_date]
        return week_dates(self.start_date)

    def columns(self) -> list[DayColumn]:
        by_day: dict[date, list[SessionCard]] = defaultdict(list)
        for card in self.cards:
            by_day[card.day].append(card)
        columns: list[DayColumn] = []
        for day in self.visible_dates():
            cards = by_day.get(day)
            if not cards:
                continue
            _apply_layout(cards)
            columns.append(DayColumn(day=day, cards=cards))
        return columns

    def column_for(self, day: date) -> Optional[DayColumn]:
        return next((column for column in self.columns() if column.day == day), None)

    def card(self, session_id: int) -> Optional[SessionCard]:
        return next((card for card in self.cards if card.id == session_id), None)

    def as_dict(self) -> dict[str, Any]:
        return {
            "view_mode": self.view_mode,
            "timezone": self.tz_name,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "days": [column.as_dict() for column in self.columns()],
        }


class DragState(enum.Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    OVER_TARGET = "over_target"
    DROPPED = "dropped"


@dataclass(frozen=True)
class DragPreview:
    start: datetime
    end: datetime

    @property
    def day(self) -> date:
        return self.start.date()

    @property
    def label(self) -> str:
        return f"{self.start.strftime(CLOCK_FORMAT)} - {self.end.strftime(CLOCK_FORMAT)}"


Updater = Callable[[int, dict[str, Any]], Any]


class DragController:
    """Tracks one drag gesture from pick-up to drop."""

    def __init__(self, updater: Updater, tz_name: str = DEFAULT_TIMEZONE) -> None:
        self.updater = updater
        self.tz_name = tz_name
        self.state = DragState.IDLE
        self.card: Optional[SessionCard] = None
        self.preview: Optional[DragPreview] = None

    def start(self, card: SessionCard) -> None:
        if self.state is not DragState.IDLE:
            raise RuntimeError(f"Cannot start a drag while {self.state.value}")
        self.card = card
        self.preview = None
        self.state = DragState.DRAGGING

    def over(self, day: date, pointer_y: float, first_slot: str) -> DragPreview:
        if self.state not in (DragState.DRAGGING, DragState.OVER_TARGET) or self.card is None:
            raise RuntimeError("No session is being dragged")
        start, end = candidate_range(pointer_y, first_slot, self.card.duration_minutes, day)
        self.preview = DragPreview(start=start, end=end)
        self.state = DragState.OVER_TARGET
        return self.preview

    def drop(self) -> dict[str, Any]:
        if self.state is not DragState.OVER_TARGET or self.card is None or self.preview is None:
            raise RuntimeError("Nothing to drop")
        self.state = DragState.DROPPED
        start = convert_to_utc(self.preview.day, self.preview.start.time(), self.tz_name)
        end = start + timedelta(minutes=self.card.duration_minutes)
        changes: dict[str, Any] = {
            "start_time": isoformat_utc(start),
            "end_time": isoformat_utc(end),
        }
        if self.preview.day != self.card.day:
            changes["date"] = self.preview.day.isoformat()
        session_id = self.card.id
        try:
            self.updater(session_id, changes)
        finally:
            self._reset()
        return changes

    def cancel(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self.card = None
        self.preview = None
        self.state = DragState.IDLE


def inline_update(field_name: str, value: Any) -> dict[str, Any]:
    """Build the single-field update issued by an inline edit."""

    if field_name not in INLINE_EDIT_FIELDS:
        raise ValueError(f"{field_name} cannot be edited inline")
    return {field_name: value}
