"""Assemble sub-session drafts into a main-session submission.

The composer mirrors what the lesson form does before anything reaches the
network: it keeps one or more sub-session drafts, derives each duration and
the main-session envelope from them, names curriculum lessons automatically
and validates the whole batch, reporting the first problem it finds.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Optional, Protocol

from .curriculum import (
    CURRICULUM_PROGRAM,
    is_curriculum_program,
    lesson_indices,
    resolve_lesson_name,
)
from .errors import SessionValidationError
from .timezone import DEFAULT_TIMEZONE, parse_clock


class ClassInfo(Protocol):
    id: int
    class_name: str
    program_type: Optional[str]
    unit: Optional[str]


def compute_duration(start_time: str | None, end_time: str | None) -> int:
    """Minutes between two ``HH:MM`` values, 0 when missing or not increasing."""

    if not start_time or not end_time:
        return 0
    try:
        start = parse_clock(start_time)
        end = parse_clock(end_time)
    except ValueError:
        return 0
    if end <= start:
        return 0
    delta = datetime.combine(date.min, end) - datetime.combine(date.min, start)
    return round(delta.total_seconds() / 60)


@dataclass
class SubSessionDraft:
    subject_type: str = ""
    teacher_id: Optional[int] = None
    teaching_assistant_id: Optional[int] = None
    location_id: Optional[int] = None
    start_time: str = ""
    end_time: str = ""

    @property
    def duration_minutes(self) -> int:
        return compute_duration(self.start_time, self.end_time)

    @property
    def has_times(self) -> bool:
        return bool(self.start_time and self.end_time)

    def as_payload(self) -> dict[str, Any]:
        return {
            "subject_type": self.subject_type,
            "teacher_id": self.teacher_id,
            "teaching_assistant_id": self.teaching_assistant_id,
            "location_id": self.location_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_minutes": self.duration_minutes,
        }


DRAFT_FIELDS = frozenset(SubSessionDraft.__dataclass_fields__)


@dataclass
class MainSessionComposer:
    class_info: Optional[ClassInfo] = None
    main_session_name: str = ""
    scheduled_date: str = ""
    lesson_index: str = ""
    curriculum_program: str = CURRICULUM_PROGRAM
    sessions: list[SubSessionDraft] = field(default_factory=lambda: [SubSessionDraft()])

    @property
    def class_id(self) -> Optional[int]:
        return self.class_info.id if self.class_info is not None else None

    @property
    def is_curriculum(self) -> bool:
        return self.class_info is not None and is_curriculum_program(
            self.class_info.program_type, self.curriculum_program
        )

    def lesson_options(self) -> list[str]:
        return lesson_indices() if self.is_curriculum else []

    def select_class(self, class_info: Optional[ClassInfo]) -> None:
        self.class_info = class_info
        self.lesson_index = ""
        if self.is_curriculum:
            self.main_session_name = ""

    def select_lesson(self, lesson_index: str) -> str:
        """Pick a lesson index and regenerate the lesson name from it."""

        self.lesson_index = lesson_index
        generated = self.generated_name()
        if generated:
            self.main_session_name = generated
        return generated

    def generated_name(self) -> str:
        if self.class_info is None:
            return ""
        return resolve_lesson_name(
            self.class_info.class_name,
            self.class_info.program_type,
            self.class_info.unit,
            self.lesson_index,
            program=self.curriculum_program,
        )

    def add_session(self, draft: Optional[SubSessionDraft] = None) -> SubSessionDraft:
        draft = draft or SubSessionDraft()
        self.sessions.append(draft)
        return draft

    def remove_session(self, index: int) -> bool:
        if len(self.sessions) <= 1:
            return False
        del self.sessions[index]
        return True

    def update_session(self, index: int, field_name: str, value: Any) -> SubSessionDraft:
        if field_name not in DRAFT_FIELDS:
            raise KeyError(field_name)
        self.sessions[index] = replace(self.sessions[index], **{field_name: value})
        return self.sessions[index]

    def _timed_sessions(self) -> list[SubSessionDraft]:
        return [draft for draft in self.sessions if draft.has_times]

    @property
    def envelope_start(self) -> str:
        timed = self._timed_sessions()
        if not timed:
            return ""
        return min(timed, key=lambda draft: parse_clock(draft.start_time)).start_time

    @property
    def envelope_end(self) -> str:
        timed = self._timed_sessions()
        if not timed:
            return ""
        return max(timed, key=lambda draft: parse_clock(draft.end_time)).end_time

    @property
    def total_duration_minutes(self) -> int:
        return sum(draft.duration_minutes for draft in self.sessions)

    def validate(self) -> Optional[str]:
        """Return the first validation message, or ``None`` when submittable."""

        if self.class_info is None:
            return "Class is required"
        if self.is_curriculum:
            if not self.lesson_index:
                return "Lesson number is required for curriculum classes"
            if not self.generated_name():
                return "Lesson name could not be resolved; the class has no current unit"
        elif not self.main_session_name.strip():
            return "Lesson name is required"
        if not self.scheduled_date:
            return "Scheduled date is required"
        if not self.sessions:
            return "At least one session is required"

        for position, draft in enumerate(self.sessions, start=1):
            if not draft.subject_type:
                return f"Session {position}: subject type is required"
            if not draft.teacher_id:
                return f"Session {position}: teacher is required"
            if not draft.location_id:
                return f"Session {position}: room is required"
            if not draft.start_time:
                return f"Session {position}: start time is required"
            if not draft.end_time:
                return f"Session {position}: end time is required"
            if draft.duration_minutes <= 0:
                return (
                    f"Session {position}: duration must be greater than 0 "
                    "(check start and end time)"
                )

        if not self.envelope_start or not self.envelope_end:
            return "At least one session with valid times is needed to derive the lesson time"
        return None

    def build_payload(self, timezone: str = DEFAULT_TIMEZONE) -> dict[str, Any]:
        error = self.validate()
        if error:
            raise SessionValidationError(error)
        name = self.generated_name() if self.is_curriculum else self.main_session_name.strip()
        return {
            "main_session_name": name,
            "scheduled_date": self.scheduled_date,
            "start_time": self.envelope_start,
            "end_time": self.envelope_end,
            "total_duration_minutes": self.total_duration_minutes,
            "class_id": self.class_id,
            "sessions": [draft.as_payload() for draft in self.sessions],
            "lesson_number": self.lesson_index or None,
            "timezone": timezone,
        }
