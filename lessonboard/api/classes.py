"""Class lookups, lesson naming options and unit transitions."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_restx import Namespace, Resource, fields

from ..curriculum import (
    is_curriculum_program,
    lesson_indices,
    next_unit_capped,
    next_unit_for_transition,
    record_unit_transition,
    resolve_lesson_name,
)
from ..errors import SessionValidationError
from ..extensions import db
from ..models import ClassGroup
from ..persistence import commit_changes
from ..timezone import parse_date
from .common import envelope, fetch_or_404


ns = Namespace("classes", description="Classes and curriculum progression")

transition_input = ns.model(
    "UnitTransitionInput",
    {
        "to_unit": fields.String(example="U12", description="Defaults to two units ahead"),
        "transition_date": fields.String(example="2024-06-03"),
    },
)


def _program() -> str:
    return current_app.config["CURRICULUM_PROGRAM"]


def serialize_class(class_group: ClassGroup) -> dict[str, Any]:
    return {
        "id": class_group.id,
        "class_name": class_group.class_name,
        "program_type": class_group.program_type,
        "unit": class_group.unit,
        "is_curriculum": is_curriculum_program(class_group.program_type, _program()),
    }


@ns.route("")
class ClassList(Resource):
    def get(self) -> tuple[dict[str, Any], int]:
        classes = ClassGroup.query.order_by(ClassGroup.class_name).all()
        return envelope([serialize_class(class_group) for class_group in classes])


@ns.route("/<int:class_id>/lesson-options")
class LessonOptions(Resource):
    def get(self, class_id: int) -> tuple[dict[str, Any], int]:
        class_group = fetch_or_404(ClassGroup, class_id)
        program = _program()
        options = lesson_indices() if is_curriculum_program(class_group.program_type, program) else []
        names = {
            index: resolve_lesson_name(
                class_group.class_name, class_group.program_type, class_group.unit, index, program=program
            )
            for index in options
        }
        return envelope({"class": serialize_class(class_group), "options": options, "names": names})


@ns.route("/<int:class_id>/unit-suggestions")
class UnitSuggestions(Resource):
    def get(self, class_id: int) -> tuple[dict[str, Any], int]:
        class_group = fetch_or_404(ClassGroup, class_id)
        return envelope(
            {
                "current_unit": class_group.unit,
                "next_unit": next_unit_capped(class_group.unit),
                "transition_unit": next_unit_for_transition(class_group.unit),
                "transitions": class_group.unit_transitions,
            }
        )


@ns.route("/<int:class_id>/unit-transitions")
class UnitTransitions(Resource):
    def get(self, class_id: int) -> tuple[dict[str, Any], int]:
        class_group = fetch_or_404(ClassGroup, class_id)
        return envelope(class_group.unit_transitions)

    @ns.expect(transition_input)
    def post(self, class_id: int) -> tuple[dict[str, Any], int]:
        class_group = fetch_or_404(ClassGroup, class_id)
        payload = request.get_json(silent=True) or {}
        try:
            transition_date = (
                parse_date(payload["transition_date"]) if payload.get("transition_date") else None
            )
            transition = record_unit_transition(class_group, payload.get("to_unit"), transition_date)
        except ValueError as exc:
            db.session.rollback()
            raise SessionValidationError(str(exc)) from exc
        commit_changes("Unable to record unit transition for class %s", class_id)
        current_app.logger.info(
            "Class %s moved from %s to %s", class_id, transition.from_unit, transition.to_unit
        )
        return envelope(transition.as_dict(), "Unit transition recorded", 201)
