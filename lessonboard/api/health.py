"""Readiness of the scheduling service: storage and schedule settings."""
from __future__ import annotations

from typing import Any

from flask import current_app
from flask_restx import Namespace, Resource
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import TeacherDayLock
from ..timezone import is_valid_timezone


ns = Namespace("health", description="Scheduling service readiness")


def storage_status() -> str:
    try:
        db.session.execute(select(func.count()).select_from(TeacherDayLock)).scalar_one()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Schedule storage is unreachable")
        return "error"
    return "ok"


@ns.route("/health")
class HealthResource(Resource):
    def get(self) -> tuple[dict[str, Any], int]:
        tz_name = current_app.config["SCHEDULE_TIMEZONE"]
        checks = {
            "database": storage_status(),
            "timezone": tz_name,
            "timezone_valid": is_valid_timezone(tz_name),
            "curriculum_program": current_app.config["CURRICULUM_PROGRAM"],
        }
        ready = checks["database"] == "ok" and checks["timezone_valid"]
        return (
            {
                "success": ready,
                "data": checks,
                "message": "Scheduling service ready" if ready else "Scheduling service degraded",
            },
            200 if ready else 503,
        )
