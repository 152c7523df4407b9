"""Sub-session listing and edits."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from ..errors import SessionValidationError
from ..models import Session
from ..persistence import SESSION_UPDATE_FIELDS, delete_session, sessions_in_window, update_session
from ..timezone import isoformat_utc
from .common import envelope, fetch_or_404, optional_int, request_timezone, required_date


ns = Namespace("sessions", description="Sessions inside lessons")

session_patch = ns.model(
    "SessionPatch",
    {
        "subject_type": fields.String,
        "teacher_id": fields.Integer,
        "teaching_assistant_id": fields.Integer,
        "location_id": fields.Integer,
        "start_time": fields.String(description="ISO instant or HH:MM wall clock"),
        "end_time": fields.String(description="ISO instant or HH:MM wall clock"),
        "date": fields.String(example="2024-06-03"),
        "data": fields.Raw,
        "timezone": fields.String,
    },
)


def serialize_session(session: Session) -> dict[str, Any]:
    main_session = session.main_session
    class_group = main_session.class_group if main_session is not None else None
    return {
        "id": session.id,
        "main_session_id": session.main_session_id,
        "main_session_name": main_session.name if main_session is not None else None,
        "class_id": class_group.id if class_group is not None else None,
        "class_name": class_group.class_name if class_group is not None else None,
        "program_type": class_group.program_type if class_group is not None else None,
        "subject_type": session.subject_type,
        "teacher_id": session.teacher_id,
        "teacher_name": session.teacher.full_name if session.teacher else None,
        "teaching_assistant_id": session.teaching_assistant_id,
        "teaching_assistant_name": (
            session.teaching_assistant.full_name if session.teaching_assistant else None
        ),
        "location_id": session.location_id,
        "room_name": session.location.display_name if session.location else None,
        "start_time": isoformat_utc(session.start_time),
        "end_time": isoformat_utc(session.end_time),
        "date": session.date.isoformat(),
        "duration_minutes": session.duration_minutes,
        "data": session.data or {},
    }


@ns.route("")
class SessionList(Resource):
    @ns.doc(params={"start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD", "class_id": "", "teacher_id": ""})
    def get(self) -> tuple[dict[str, Any], int]:
        start_date = required_date(request.args, "start_date")
        end_date = required_date(request.args, "end_date")
        if end_date < start_date:
            raise SessionValidationError("end_date must not be before start_date")
        sessions = sessions_in_window(
            start_date,
            end_date,
            class_id=optional_int(request.args, "class_id"),
            teacher_id=optional_int(request.args, "teacher_id"),
        )
        return envelope([serialize_session(session) for session in sessions])


@ns.route("/<int:session_id>")
class SessionResource(Resource):
    def get(self, session_id: int) -> tuple[dict[str, Any], int]:
        return envelope(serialize_session(fetch_or_404(Session, session_id)))

    @ns.expect(session_patch)
    def put(self, session_id: int) -> tuple[dict[str, Any], int]:
        session = fetch_or_404(Session, session_id)
        payload = request.get_json(silent=True) or {}
        changes = {key: payload[key] for key in SESSION_UPDATE_FIELDS if key in payload}
        session = update_session(session, changes, tz_name=request_timezone(payload))
        return envelope(serialize_session(session), "Session updated")

    def delete(self, session_id: int) -> tuple[dict[str, Any], int]:
        session = fetch_or_404(Session, session_id)
        delete_session(session, tz_name=request_timezone(request.args))
        return envelope(None, "Session deleted")
