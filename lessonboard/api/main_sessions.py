"""Main-session endpoints: create a lesson with its sub-sessions."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_restx import Namespace, Resource, fields

from ..models import SUBJECT_TYPE_CHOICES, MainSession
from ..persistence import create_main_session, delete_main_session, update_main_session
from ..timezone import isoformat_utc
from .common import envelope, fetch_or_404, optional_int
from .sessions import serialize_session


ns = Namespace("main-sessions", description="Create and manage lessons")

sub_session_input = ns.model(
    "SubSessionInput",
    {
        "subject_type": fields.String(required=True, enum=list(SUBJECT_TYPE_CHOICES)),
        "teacher_id": fields.Integer(required=True),
        "teaching_assistant_id": fields.Integer,
        "location_id": fields.Integer,
        "start_time": fields.String(required=True, example="09:00"),
        "end_time": fields.String(required=True, example="09:45"),
        "duration_minutes": fields.Integer,
    },
)

main_session_input = ns.model(
    "MainSessionInput",
    {
        "main_session_name": fields.String(required=True, example="GS12.U10.L3"),
        "scheduled_date": fields.String(required=True, example="2024-06-03"),
        "start_time": fields.String,
        "end_time": fields.String,
        "total_duration_minutes": fields.Integer,
        "class_id": fields.Integer(required=True),
        "sessions": fields.List(fields.Nested(sub_session_input)),
        "lesson_number": fields.String(example="L3"),
        "timezone": fields.String(example="Asia/Ho_Chi_Minh"),
    },
)

main_session_patch = ns.model(
    "MainSessionPatch",
    {
        "main_session_name": fields.String,
        "scheduled_date": fields.String,
        "lesson_id": fields.String,
        "data": fields.Raw,
    },
)


def serialize_main_session(main_session: MainSession, *, include_sessions: bool = True) -> dict[str, Any]:
    payload = {
        "id": main_session.id,
        "name": main_session.name,
        "class_id": main_session.class_id,
        "class_name": main_session.class_group.class_name if main_session.class_group else None,
        "scheduled_date": main_session.scheduled_date.isoformat(),
        "lesson_id": main_session.lesson_id,
        "start_time": isoformat_utc(main_session.start_time),
        "end_time": isoformat_utc(main_session.end_time),
        "total_duration_minutes": main_session.total_duration_minutes,
        "data": main_session.data or {},
    }
    if include_sessions:
        payload["sessions"] = [serialize_session(session) for session in main_session.sessions]
    return payload


@ns.route("")
class MainSessionList(Resource):
    def get(self) -> tuple[dict[str, Any], int]:
        query = MainSession.query
        class_id = optional_int(request.args, "class_id")
        if class_id is not None:
            query = query.filter(MainSession.class_id == class_id)
        main_sessions = query.order_by(MainSession.scheduled_date.desc(), MainSession.id.desc()).all()
        return envelope([serialize_main_session(item, include_sessions=False) for item in main_sessions])

    @ns.expect(main_session_input)
    def post(self) -> tuple[dict[str, Any], int]:
        payload = request.get_json(silent=True) or {}
        main_session = create_main_session(
            payload, default_timezone=current_app.config["SCHEDULE_TIMEZONE"]
        )
        return envelope(serialize_main_session(main_session), "Main session created", 201)


@ns.route("/<int:main_session_id>")
class MainSessionResource(Resource):
    def get(self, main_session_id: int) -> tuple[dict[str, Any], int]:
        main_session = fetch_or_404(MainSession, main_session_id)
        return envelope(serialize_main_session(main_session))

    @ns.expect(main_session_patch)
    def put(self, main_session_id: int) -> tuple[dict[str, Any], int]:
        main_session = fetch_or_404(MainSession, main_session_id)
        main_session = update_main_session(main_session, request.get_json(silent=True) or {})
        return envelope(serialize_main_session(main_session), "Main session updated")

    def delete(self, main_session_id: int) -> tuple[dict[str, Any], int]:
        main_session = fetch_or_404(MainSession, main_session_id)
        delete_main_session(main_session)
        return envelope(None, "Main session deleted")
