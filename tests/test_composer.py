import unittest
from types import SimpleNamespace

from lessonboard.composer import MainSessionComposer, SubSessionDraft, compute_duration
from lessonboard.errors import SessionValidationError


def _curriculum_class(unit: str | None = "U10") -> SimpleNamespace:
    return SimpleNamespace(id=7, class_name="GS12", program_type="GrapeSEED", unit=unit)


def _draft(start: str, end: str, teacher_id: int = 1) -> SubSessionDraft:
    return SubSessionDraft(
        subject_type="TSI",
        teacher_id=teacher_id,
        location_id=3,
        start_time=start,
        end_time=end,
    )


class ComputeDurationTestCase(unittest.TestCase):
    def test_minutes_between_clocks(self) -> None:
        self.assertEqual(compute_duration("09:00", "09:45"), 45)

    def test_missing_or_reversed_values_give_zero(self) -> None:
        self.assertEqual(compute_duration("", "09:45"), 0)
        self.assertEqual(compute_duration("10:00", "09:00"), 0)
        self.assertEqual(compute_duration("10:00", "10:00"), 0)
        self.assertEqual(compute_duration("soon", "10:00"), 0)


class MainSessionComposerTestCase(unittest.TestCase):
    def _ready_composer(self) -> MainSessionComposer:
        composer = MainSessionComposer(scheduled_date="2024-06-03")
        composer.select_class(_curriculum_class())
        composer.select_lesson("L3")
        composer.sessions = [_draft("09:00", "09:45"), _draft("09:45", "10:30", teacher_id=2)]
        return composer

    def test_selecting_lesson_generates_name(self) -> None:
        composer = MainSessionComposer()
        composer.select_class(_curriculum_class())

        self.assertEqual(composer.lesson_options()[:2], ["L1", "L2"])
        self.assertEqual(composer.select_lesson("L3"), "GS12.U10.L3")
        self.assertEqual(composer.main_session_name, "GS12.U10.L3")

    def test_non_curriculum_class_has_no_lesson_options(self) -> None:
        composer = MainSessionComposer()
        composer.select_class(SimpleNamespace(id=1, class_name="IE1", program_type="IELTS", unit=None))

        self.assertEqual(composer.lesson_options(), [])
        self.assertEqual(composer.select_lesson("L3"), "")

    def test_envelope_and_total_follow_the_drafts(self) -> None:
        composer = self._ready_composer()
        composer.add_session(_draft("08:30", "11:00", teacher_id=3))

        self.assertEqual(composer.envelope_start, "08:30")
        self.assertEqual(composer.envelope_end, "11:00")
        self.assertEqual(composer.total_duration_minutes, 45 + 45 + 150)

    def test_envelope_end_is_latest_end_not_last_start(self) -> None:
        composer = self._ready_composer()
        composer.sessions = [_draft("09:00", "11:00"), _draft("09:30", "10:00", teacher_id=2)]

        self.assertEqual(composer.envelope_end, "11:00")

    def test_remove_keeps_at_least_one_draft(self) -> None:
        composer = MainSessionComposer()

        self.assertFalse(composer.remove_session(0))
        composer.add_session()
        self.assertTrue(composer.remove_session(0))
        self.assertEqual(len(composer.sessions), 1)

    def test_update_session_replaces_a_single_field(self) -> None:
        composer = self._ready_composer()

        draft = composer.update_session(1, "end_time", "10:45")

        self.assertEqual(draft.duration_minutes, 60)
        with self.assertRaises(KeyError):
            composer.update_session(0, "colour", "red")

    def test_validation_reports_first_problem(self) -> None:
        composer = MainSessionComposer()
        self.assertEqual(composer.validate(), "Class is required")

        composer.select_class(_curriculum_class())
        self.assertEqual(composer.validate(), "Lesson number is required for curriculum classes")

        composer.select_lesson("L3")
        self.assertEqual(composer.validate(), "Scheduled date is required")

        composer.scheduled_date = "2024-06-03"
        self.assertEqual(composer.validate(), "Session 1: subject type is required")

    def test_class_without_unit_cannot_be_named(self) -> None:
        composer = MainSessionComposer(scheduled_date="2024-06-03")
        composer.select_class(_curriculum_class(unit=None))
        composer.select_lesson("L3")

        self.assertEqual(
            composer.validate(),
            "Lesson name could not be resolved; the class has no current unit",
        )

    def test_non_positive_duration_is_reported_with_position(self) -> None:
        composer = self._ready_composer()
        composer.update_session(1, "end_time", "09:30")

        self.assertEqual(
            composer.validate(),
            "Session 2: duration must be greater than 0 (check start and end time)",
        )
        with self.assertRaises(SessionValidationError):
            composer.build_payload()

    def test_build_payload(self) -> None:
        payload = self._ready_composer().build_payload("Asia/Ho_Chi_Minh")

        self.assertEqual(payload["main_session_name"], "GS12.U10.L3")
        self.assertEqual(payload["class_id"], 7)
        self.assertEqual(payload["start_time"], "09:00")
        self.assertEqual(payload["end_time"], "10:30")
        self.assertEqual(payload["total_duration_minutes"], 90)
        self.assertEqual(payload["lesson_number"], "L3")
        self.assertEqual(payload["timezone"], "Asia/Ho_Chi_Minh")
        self.assertEqual([item["duration_minutes"] for item in payload["sessions"]], [45, 45])

    def test_manual_name_is_required_for_other_programs(self) -> None:
        composer = MainSessionComposer(scheduled_date="2024-06-03")
        composer.select_class(SimpleNamespace(id=1, class_name="IE1", program_type="IELTS", unit=None))
        composer.sessions = [_draft("09:00", "10:00")]

        self.assertEqual(composer.validate(), "Lesson name is required")
        composer.main_session_name = "Speaking club"
        self.assertEqual(composer.build_payload()["main_session_name"], "Speaking club")


if __name__ == "__main__":
    unittest.main()
