from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .extensions import db


SUBJECT_TYPE_CHOICES = ("TSI", "REP", "GRA", "VOC", "LIS", "REA")

TEACHER_POSITION_KEYWORDS = ("giáo viên", "teacher", "gv")
ASSISTANT_POSITION_KEYWORDS = ("trợ giảng", "assistant", "ta")


def _position_matches(position: str | None, keywords: tuple[str, ...]) -> bool:
    label = (position or "").lower()
    return any(keyword in label for keyword in keywords)


class TimeStampedModel:
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow)


class Employee(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    position: Mapped[Optional[str]] = mapped_column(String(120))
    email: Mapped[Optional[str]] = mapped_column(String(255))

    @property
    def is_teacher(self) -> bool:
        return _position_matches(self.position, TEACHER_POSITION_KEYWORDS)

    @property
    def is_assistant(self) -> bool:
        return _position_matches(self.position, ASSISTANT_POSITION_KEYWORDS)

    @classmethod
    def teachers(cls) -> List["Employee"]:
        return [employee for employee in cls.query.order_by(cls.full_name).all() if employee.is_teacher]

    @classmethod
    def assistants(cls) -> List["Employee"]:
        return [employee for employee in cls.query.order_by(cls.full_name).all() if employee.is_assistant]

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Employee<{self.full_name}>"


class Facility(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)

    rooms: Mapped[List["Room"]] = relationship(
        back_populates="facility", cascade="all, delete-orphan", order_by="Room.name"
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"Facility<{self.name}>"


class Room(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facility.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)

    facility: Mapped[Facility] = relationship(back_populates="rooms")

    __table_args__ = (UniqueConstraint("facility_id", "name", name="uq_room_facility_name"),)

    @property
    def display_name(self) -> str:
        if self.facility is None:
            return self.name
        return f"{self.name} ({self.facility.name})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Room<{self.display_name}>"


class ClassGroup(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    class_name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    program_type: Mapped[Optional[str]] = mapped_column(String(60))
    unit: Mapped[Optional[str]] = mapped_column(String(10))
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    main_sessions: Mapped[List["MainSession"]] = relationship(back_populates="class_group")

    @property
    def unit_transitions(self) -> list[dict[str, Any]]:
        return list((self.data or {}).get("unit_transitions") or [])

    def __repr__(self) -> str:  # pragma: no cover
        return f"ClassGroup<{self.class_name}>"


class MainSession(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    class_id: Mapped[int] = mapped_column(ForeignKey("class_group.id"), nullable=False, index=True)
    scheduled_date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    lesson_id: Mapped[Optional[str]] = mapped_column(String(20))
    start_time: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)
    end_time: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)
    total_duration_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    class_group: Mapped[ClassGroup] = relationship(back_populates="main_sessions")
    sessions: Mapped[List["Session"]] = relationship(
        back_populates="main_session",
        cascade="all, delete-orphan",
        order_by="Session.start_time",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"MainSession<{self.name} {self.scheduled_date}>"


class Session(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    main_session_id: Mapped[int] = mapped_column(ForeignKey("main_session.id"), nullable=False, index=True)
    subject_type: Mapped[str] = mapped_column(String(20), nullable=False)
    teacher_id: Mapped[Optional[int]] = mapped_column(ForeignKey("employee.id"))
    teaching_assistant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("employee.id"))
    location_id: Mapped[Optional[int]] = mapped_column(ForeignKey("room.id"))
    start_time: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    main_session: Mapped[MainSession] = relationship(back_populates="sessions")
    teacher: Mapped[Optional[Employee]] = relationship(foreign_keys=[teacher_id])
    teaching_assistant: Mapped[Optional[Employee]] = relationship(foreign_keys=[teaching_assistant_id])
    location: Mapped[Optional[Room]] = relationship()

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="chk_session_time_order"),
        Index("ix_session_teacher_date", "teacher_id", "date"),
    )

    @property
    def elapsed_minutes(self) -> int:
        delta = self.end_time - self.start_time
        return max(int(delta.total_seconds() // 60), 0)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Session<{self.subject_type} {self.start_time}→{self.end_time}>"


class TeacherDayLock(db.Model):
    """Row locked while a batch for this teacher and day is checked and written."""

    id: Mapped[int] = mapped_column(primary_key=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("employee.id"), nullable=False)
    day: Mapped[dt.date] = mapped_column(Date, nullable=False)

    __table_args__ = (UniqueConstraint("teacher_id", "day", name="uq_teacher_day_lock"),)
