"""REST API definition using Flask-RESTX."""
from __future__ import annotations

from typing import Any

from flask import Blueprint
from flask_restx import Api

from ..errors import SchedulingError, TeacherConflictError
from .board import ns as board_ns
from .classes import ns as classes_ns
from .employees import ns as employees_ns
from .health import ns as health_ns
from .main_sessions import ns as main_sessions_ns
from .rooms import ns as rooms_ns
from .sessions import ns as sessions_ns


def register_namespaces(api: Api) -> None:
    """Register all API namespaces."""
    api.add_namespace(health_ns, path="/health")
    api.add_namespace(main_sessions_ns, path="/main-sessions")
    api.add_namespace(sessions_ns, path="/sessions")
    api.add_namespace(board_ns, path="/board")
    api.add_namespace(classes_ns, path="/classes")
    api.add_namespace(employees_ns, path="/employees")
    api.add_namespace(rooms_ns, path="/rooms")


def register_error_handlers(api: Api) -> None:
    @api.errorhandler(SchedulingError)
    def handle_scheduling_error(error: SchedulingError) -> tuple[dict[str, Any], int]:
        body: dict[str, Any] = {
            "success": False,
            "message": str(error),
            "error": type(error).__name__,
        }
        if isinstance(error, TeacherConflictError):
            body["conflict_details"] = error.details.as_dict()
        return body, error.status_code


def create_api_blueprint(url_prefix: str = "") -> Blueprint:
    blueprint = Blueprint("api", __name__, url_prefix=f"{url_prefix}/api")
    api = Api(blueprint, version="0.1.0", title="Lessonboard API", doc="/docs")
    register_namespaces(api)
    register_error_handlers(api)
    return blueprint
