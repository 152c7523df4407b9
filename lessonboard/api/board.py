"""Schedule board rendering and drag-and-drop rescheduling."""
from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from ..board import (
    VIEW_DAY,
    VIEW_MODES,
    VIEW_WEEK,
    DragController,
    ScheduleBoard,
    SessionCard,
    date_range,
)
from ..errors import SessionValidationError
from ..models import Session
from ..persistence import sessions_in_window, update_session
from .common import envelope, fetch_or_404, optional_int, request_timezone, required_date
from .sessions import serialize_session


ns = Namespace("board", description="Day and week schedule board")

drop_input = ns.model(
    "SessionDrop",
    {
        "target_date": fields.String(required=True, example="2024-06-04"),
        "pointer_y": fields.Float(required=True, description="Pixels below the day column top"),
        "class_id": fields.Integer,
        "timezone": fields.String,
    },
)


def _view_mode(value: str | None) -> str:
    view = (value or VIEW_WEEK).lower()
    if view not in VIEW_MODES:
        raise SessionValidationError(f"view must be one of: {', '.join(VIEW_MODES)}")
    return view


def build_board(
    current_date: date, view_mode: str, tz_name: str, class_id: int | None = None
) -> ScheduleBoard:
    # Stored dates are the scheduled local day; one extra day on each side
    # catches cards that fall on a neighbouring day in another zone.
    start_date, end_date = date_range(current_date, view_mode)
    sessions = sessions_in_window(
        start_date - timedelta(days=1), end_date + timedelta(days=1), class_id=class_id
    )
    return ScheduleBoard(sessions, current_date, view_mode, tz_name)


@ns.route("")
class BoardResource(Resource):
    @ns.doc(params={"date": "YYYY-MM-DD", "view": "day or week", "class_id": "", "timezone": "IANA zone"})
    def get(self) -> tuple[dict[str, Any], int]:
        current_date = required_date(request.args, "date")
        board = build_board(
            current_date,
            _view_mode(request.args.get("view")),
            request_timezone(request.args),
            optional_int(request.args, "class_id"),
        )
        return envelope(board.as_dict())


@ns.route("/sessions/<int:session_id>/drop")
class SessionDropResource(Resource):
    @ns.expect(drop_input)
    def post(self, session_id: int) -> tuple[dict[str, Any], int]:
        session = fetch_or_404(Session, session_id)
        payload = request.get_json(silent=True) or {}
        tz_name = request_timezone(payload)
        target_date = required_date(payload, "target_date")
        try:
            pointer_y = float(payload["pointer_y"])
        except (KeyError, TypeError, ValueError) as exc:
            raise SessionValidationError("pointer_y must be a number") from exc
        if not math.isfinite(pointer_y):
            raise SessionValidationError("pointer_y must be a finite number")

        column = build_board(
            target_date, VIEW_DAY, tz_name, optional_int(payload, "class_id")
        ).column_for(target_date)
        if column is None or column.earliest_slot is None:
            raise SessionValidationError(f"No time slots are shown on {target_date.isoformat()}")

        controller = DragController(
            lambda _, changes: update_session(session, changes, tz_name=tz_name), tz_name
        )
        controller.start(SessionCard.from_session(session, tz_name))
        preview = controller.over(target_date, pointer_y, column.earliest_slot)
        changes = controller.drop()
        return envelope(
            {"session": serialize_session(session), "changes": changes, "preview": preview.label},
            "Session moved",
        )
