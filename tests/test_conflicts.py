import unittest
from datetime import date, datetime

from lessonboard import create_app, db
from lessonboard.config import TestConfig
from lessonboard.conflicts import (
    RequestedSession,
    check_batch,
    find_teacher_conflict,
    lock_teacher_days,
    overlaps,
)
from lessonboard.errors import TeacherConflictError
from lessonboard.models import ClassGroup, Employee, Facility, MainSession, Room, TeacherDayLock
from lessonboard.persistence import create_main_session


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.app = create_app(TestConfig)
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.app_context.pop()


class OverlapTestCase(unittest.TestCase):
    def test_touching_intervals_do_not_overlap(self) -> None:
        nine, ten, eleven = (datetime(2024, 6, 3, hour) for hour in (9, 10, 11))

        self.assertFalse(overlaps(nine, ten, ten, eleven))
        self.assertFalse(overlaps(ten, eleven, nine, ten))

    def test_partial_overlap_is_symmetric(self) -> None:
        a = (datetime(2024, 6, 3, 9), datetime(2024, 6, 3, 10))
        b = (datetime(2024, 6, 3, 9, 30), datetime(2024, 6, 3, 10, 30))

        self.assertTrue(overlaps(*a, *b))
        self.assertTrue(overlaps(*b, *a))


class TeacherConflictTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = Employee(full_name="Alice Nguyen", position="Teacher")
        self.bob = Employee(full_name="Bob Tran", position="Teacher")
        self.assistant = Employee(full_name="Ha Le", position="Teaching Assistant")
        facility = Facility(name="Central")
        self.room = Room(name="101", facility=facility)
        self.class_group = ClassGroup(class_name="GS12", program_type="GrapeSEED", unit="U10", data={})
        self.other_class = ClassGroup(class_name="GS07", program_type="GrapeSEED", unit="U3", data={})
        db.session.add_all(
            [self.alice, self.bob, self.assistant, facility, self.room, self.class_group, self.other_class]
        )
        db.session.commit()

    def _create(self, *sessions, class_group=None, day: str = "2024-06-03") -> MainSession:
        return create_main_session(
            {
                "main_session_name": "Lesson",
                "scheduled_date": day,
                "class_id": (class_group or self.class_group).id,
                "sessions": list(sessions),
            }
        )

    def _session(self, teacher: Employee, start: str, end: str, subject: str = "TSI", **extra) -> dict:
        return {
            "subject_type": subject,
            "teacher_id": teacher.id,
            "location_id": self.room.id,
            "start_time": start,
            "end_time": end,
            **extra,
        }

    def test_overlapping_session_for_same_teacher_is_rejected(self) -> None:
        self._create(self._session(self.alice, "09:00", "10:00"))

        with self.assertRaises(TeacherConflictError) as raised:
            self._create(self._session(self.alice, "09:30", "10:30", "REP"), class_group=self.other_class)

        details = raised.exception.details
        self.assertEqual(details.teacher_name, "Alice Nguyen")
        self.assertEqual(details.conflict_time, "09:00 - 10:00")
        self.assertEqual(details.conflict_date, "2024-06-03")
        self.assertEqual(details.session_type, "REP")
        self.assertEqual(details.requested_time, "09:30 - 10:30")
        self.assertEqual(MainSession.query.count(), 1)

    def test_touching_session_is_accepted(self) -> None:
        self._create(self._session(self.alice, "09:00", "10:00"))

        created = self._create(self._session(self.alice, "10:00", "11:00"), class_group=self.other_class)

        self.assertEqual(len(created.sessions), 1)
        self.assertEqual(MainSession.query.count(), 2)

    def test_other_day_and_other_teacher_are_accepted(self) -> None:
        self._create(self._session(self.alice, "09:00", "10:00"))

        self._create(self._session(self.alice, "09:00", "10:00"), day="2024-06-04")
        self._create(self._session(self.bob, "09:00", "10:00"))

        self.assertEqual(MainSession.query.count(), 3)

    def test_assistant_and_room_are_not_checked(self) -> None:
        self._create(self._session(self.alice, "09:00", "10:00", teaching_assistant_id=self.assistant.id))

        created = self._create(
            self._session(self.bob, "09:00", "10:00", teaching_assistant_id=self.assistant.id),
            class_group=self.other_class,
        )

        self.assertEqual(created.sessions[0].location_id, self.room.id)
        self.assertEqual(created.sessions[0].teaching_assistant_id, self.assistant.id)

    def test_first_conflicting_sub_session_is_reported(self) -> None:
        self._create(self._session(self.alice, "09:00", "10:00"), self._session(self.bob, "11:00", "12:00"))

        with self.assertRaises(TeacherConflictError) as raised:
            self._create(
                self._session(self.bob, "11:30", "12:30", "GRA"),
                self._session(self.alice, "09:30", "10:30", "VOC"),
                class_group=self.other_class,
            )

        self.assertEqual(raised.exception.details.teacher_name, "Bob Tran")
        self.assertEqual(raised.exception.details.session_type, "GRA")

    def test_earliest_existing_session_is_reported(self) -> None:
        self._create(self._session(self.alice, "10:00", "11:00"))
        self._create(self._session(self.alice, "08:00", "09:00"), class_group=self.other_class)

        with self.assertRaises(TeacherConflictError) as raised:
            self._create(self._session(self.alice, "08:30", "10:30"))

        self.assertEqual(raised.exception.details.conflict_time, "08:00 - 09:00")

    def test_sessions_of_the_same_batch_are_not_compared(self) -> None:
        created = self._create(
            self._session(self.alice, "09:00", "10:00"),
            self._session(self.alice, "09:30", "10:30"),
        )

        self.assertEqual(len(created.sessions), 2)

    def test_sessions_without_teacher_are_skipped(self) -> None:
        self._create(self._session(self.alice, "09:00", "10:00"))

        check_batch(
            date(2024, 6, 3),
            [
                RequestedSession(
                    subject_type="TSI",
                    teacher_id=None,
                    start=datetime(2024, 6, 3, 2),
                    end=datetime(2024, 6, 3, 3),
                    start_clock="09:00",
                    end_clock="10:00",
                )
            ],
        )

    def test_find_conflict_can_ignore_a_session(self) -> None:
        created = self._create(self._session(self.alice, "09:00", "10:00"))
        existing = created.sessions[0]

        found = find_teacher_conflict(self.alice.id, date(2024, 6, 3), existing.start_time, existing.end_time)
        ignored = find_teacher_conflict(
            self.alice.id,
            date(2024, 6, 3),
            existing.start_time,
            existing.end_time,
            ignore_session_id=existing.id,
        )

        self.assertEqual(found.id, existing.id)
        self.assertIsNone(ignored)

    def test_lock_rows_are_created_once(self) -> None:
        keys = [(self.alice.id, date(2024, 6, 3)), (self.alice.id, date(2024, 6, 3)), (self.bob.id, date(2024, 6, 3))]

        locked = lock_teacher_days(keys)
        db.session.commit()
        lock_teacher_days(keys)
        db.session.commit()

        self.assertEqual([row.teacher_id for row in locked], sorted([self.alice.id, self.bob.id]))
        self.assertEqual(TeacherDayLock.query.count(), 2)


if __name__ == "__main__":
    unittest.main()
