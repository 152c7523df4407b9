import unittest
from datetime import date, datetime

from lessonboard import create_app, db
from lessonboard.board import (
    VIEW_DAY,
    VIEW_WEEK,
    DragController,
    DragState,
    ScheduleBoard,
    SessionCard,
    candidate_range,
    date_range,
    detect_overlaps,
    inline_update,
    pointer_to_offset_minutes,
    round_to_nearest,
    week_dates,
)
from lessonboard.config import TestConfig
from lessonboard.models import ClassGroup, Employee, Facility, MainSession, Room, Session


def _card(card_id: int, start: datetime, end: datetime, clock: tuple[str, str]) -> SessionCard:
    return SessionCard(
        id=card_id,
        day=date(2024, 6, 3),
        start=start,
        end=end,
        start_clock=clock[0],
        end_clock=clock[1],
        duration_minutes=int((end - start).total_seconds() // 60),
        subject_type="TSI",
    )


class PointerConversionTestCase(unittest.TestCase):
    def test_hundred_pixels_is_one_hour(self) -> None:
        self.assertEqual(pointer_to_offset_minutes(100), 60)
        self.assertEqual(
            candidate_range(100, "09:00", 45, date(2024, 6, 3)),
            (datetime(2024, 6, 3, 10), datetime(2024, 6, 3, 10, 45)),
        )

    def test_candidate_past_midnight_rolls_to_next_day(self) -> None:
        start, end = candidate_range(150, "22:30", 60, date(2024, 6, 3))

        self.assertEqual(start, datetime(2024, 6, 4, 0, 0))
        self.assertEqual(end, datetime(2024, 6, 4, 1, 0))

    def test_offsets_snap_to_five_minutes(self) -> None:
        self.assertEqual(pointer_to_offset_minutes(0), 0)
        self.assertEqual(pointer_to_offset_minutes(12), 5)
        self.assertEqual(pointer_to_offset_minutes(45), 25)

    def test_halfway_values_round_up(self) -> None:
        self.assertEqual(round_to_nearest(62.5), 65)
        self.assertEqual(round_to_nearest(67.5), 70)
        self.assertEqual(round_to_nearest(62.4), 60)


class DateRangeTestCase(unittest.TestCase):
    def test_week_runs_monday_to_sunday(self) -> None:
        self.assertEqual(date_range(date(2024, 6, 5), VIEW_WEEK), (date(2024, 6, 3), date(2024, 6, 9)))
        self.assertEqual(date_range(date(2024, 6, 9), VIEW_WEEK), (date(2024, 6, 3), date(2024, 6, 9)))

    def test_day_view_is_a_single_date(self) -> None:
        self.assertEqual(date_range(date(2024, 6, 5), VIEW_DAY), (date(2024, 6, 5), date(2024, 6, 5)))

    def test_week_dates(self) -> None:
        dates = week_dates(date(2024, 6, 3))

        self.assertEqual(len(dates), 7)
        self.assertEqual(dates[-1], date(2024, 6, 9))


class OverlapLayoutTestCase(unittest.TestCase):
    def test_overlapping_cards_are_grouped(self) -> None:
        first = _card(1, datetime(2024, 6, 3, 2), datetime(2024, 6, 3, 3), ("09:00", "10:00"))
        second = _card(2, datetime(2024, 6, 3, 2, 30), datetime(2024, 6, 3, 3, 30), ("09:30", "10:30"))
        third = _card(3, datetime(2024, 6, 3, 3, 30), datetime(2024, 6, 3, 4), ("10:30", "11:00"))

        groups = detect_overlaps([first, second, third])

        self.assertIn("1-2", groups)
        self.assertNotIn("3", "".join(groups))


class DragControllerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.updates: list[tuple[int, dict]] = []
        self.controller = DragController(
            lambda session_id, changes: self.updates.append((session_id, changes)),
            "Asia/Ho_Chi_Minh",
        )
        self.card = _card(5, datetime(2024, 6, 3, 2), datetime(2024, 6, 3, 2, 45), ("09:00", "09:45"))

    def test_drop_on_same_day_moves_times_only(self) -> None:
        self.controller.start(self.card)
        preview = self.controller.over(date(2024, 6, 3), 100, "09:00")

        self.assertEqual(self.controller.state, DragState.OVER_TARGET)
        self.assertEqual(preview.label, "10:00 - 10:45")

        changes = self.controller.drop()

        self.assertEqual(
            changes,
            {"start_time": "2024-06-03T03:00:00+00:00", "end_time": "2024-06-03T03:45:00+00:00"},
        )
        self.assertEqual(self.updates, [(5, changes)])
        self.assertEqual(self.controller.state, DragState.IDLE)

    def test_drop_on_another_day_includes_date(self) -> None:
        self.controller.start(self.card)
        self.controller.over(date(2024, 6, 4), 50, "08:00")

        changes = self.controller.drop()

        self.assertEqual(changes["date"], "2024-06-04")
        self.assertEqual(changes["start_time"], "2024-06-04T01:30:00+00:00")

    def test_drop_past_midnight_moves_to_next_day(self) -> None:
        late = _card(6, datetime(2024, 6, 3, 15, 30), datetime(2024, 6, 3, 16, 30), ("22:30", "23:30"))
        self.controller.start(late)
        preview = self.controller.over(date(2024, 6, 3), 150, "22:30")

        self.assertEqual(preview.day, date(2024, 6, 4))
        self.assertEqual(preview.label, "00:00 - 01:00")

        changes = self.controller.drop()

        self.assertEqual(
            changes,
            {
                "start_time": "2024-06-03T17:00:00+00:00",
                "end_time": "2024-06-03T18:00:00+00:00",
                "date": "2024-06-04",
            },
        )
        self.assertGreater(datetime(2024, 6, 3, 17), late.start)

    def test_cancel_returns_to_idle_without_update(self) -> None:
        self.controller.start(self.card)
        self.controller.over(date(2024, 6, 3), 100, "09:00")
        self.controller.cancel()

        self.assertEqual(self.controller.state, DragState.IDLE)
        self.assertEqual(self.updates, [])

    def test_invalid_transitions(self) -> None:
        with self.assertRaises(RuntimeError):
            self.controller.drop()
        with self.assertRaises(RuntimeError):
            self.controller.over(date(2024, 6, 3), 10, "09:00")
        self.controller.start(self.card)
        with self.assertRaises(RuntimeError):
            self.controller.start(self.card)

    def test_failed_update_still_resets(self) -> None:
        def failing(session_id: int, changes: dict) -> None:
            raise ValueError("storage down")

        controller = DragController(failing)
        controller.start(self.card)
        controller.over(date(2024, 6, 3), 0, "09:00")

        with self.assertRaises(ValueError):
            controller.drop()
        self.assertEqual(controller.state, DragState.IDLE)


class InlineUpdateTestCase(unittest.TestCase):
    def test_single_field_update(self) -> None:
        self.assertEqual(inline_update("teacher_id", 4), {"teacher_id": 4})
        self.assertEqual(inline_update("end_time", "10:15"), {"end_time": "10:15"})

    def test_other_fields_are_not_inline_editable(self) -> None:
        with self.assertRaises(ValueError):
            inline_update("location_id", 2)


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


class ScheduleBoardTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.teacher = Employee(full_name="Alice Nguyen", position="Teacher")
        self.room = Room(name="101", facility=Facility(name="Central"))
        class_group = ClassGroup(class_name="GS12", program_type="GrapeSEED", unit="U10", data={})
        self.main_session = MainSession(
            name="GS12.U10.L3", class_group=class_group, scheduled_date=date(2024, 6, 3), data={}
        )
        db.session.add_all([self.teacher, self.room, self.main_session])
        db.session.commit()

    def _add(self, start: datetime, end: datetime, day: date = date(2024, 6, 3)) -> Session:
        session = Session(
            main_session=self.main_session,
            subject_type="TSI",
            teacher=self.teacher,
            location=self.room,
            start_time=start,
            end_time=end,
            date=day,
            duration_minutes=int((end - start).total_seconds() // 60),
            data={},
        )
        db.session.add(session)
        db.session.commit()
        return session

    def test_week_renders_only_days_with_sessions(self) -> None:
        self._add(datetime(2024, 6, 3, 2), datetime(2024, 6, 3, 3, 30))
        self._add(datetime(2024, 6, 3, 4, 15), datetime(2024, 6, 3, 5))

        board = ScheduleBoard(Session.query.all(), date(2024, 6, 5), VIEW_WEEK, "Asia/Ho_Chi_Minh")
        columns = board.columns()

        self.assertEqual([column.day for column in columns], [date(2024, 6, 3)])
        self.assertEqual(
            columns[0].time_slots,
            ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30", "12:00"],
        )
        self.assertEqual([row["slot"] for row in columns[0].rows()], ["09:00", "11:00"])
        self.assertEqual(columns[0].day_name, "Monday")

    def test_cards_show_local_clock_and_names(self) -> None:
        self._add(datetime(2024, 6, 3, 2), datetime(2024, 6, 3, 2, 45))

        card = ScheduleBoard(Session.query.all(), date(2024, 6, 3), VIEW_DAY).cards[0]

        self.assertEqual((card.start_clock, card.end_clock), ("09:00", "09:45"))
        self.assertEqual(card.teacher_name, "Alice Nguyen")
        self.assertEqual(card.class_name, "GS12")
        self.assertEqual(card.room_name, "101 (Central)")

    def test_overlapping_cards_share_the_column(self) -> None:
        self._add(datetime(2024, 6, 3, 2), datetime(2024, 6, 3, 3))
        self._add(datetime(2024, 6, 3, 2, 30), datetime(2024, 6, 3, 3, 30))

        cards = ScheduleBoard(Session.query.all(), date(2024, 6, 3), VIEW_DAY).columns()[0].cards

        self.assertEqual([(card.width, card.left) for card in cards], [("50%", "0%"), ("50%", "50%")])

    def test_day_view_ignores_other_days(self) -> None:
        self._add(datetime(2024, 6, 4, 2), datetime(2024, 6, 4, 3), day=date(2024, 6, 4))

        board = ScheduleBoard(Session.query.all(), date(2024, 6, 3), VIEW_DAY)

        self.assertEqual(board.as_dict()["days"], [])

    def test_unknown_view_mode(self) -> None:
        with self.assertRaises(ValueError):
            ScheduleBoard([], date(2024, 6, 3), "month")


if __name__ == "__main__":
    unittest.main()
