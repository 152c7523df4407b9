"""Teacher and assistant rosters."""
from __future__ import annotations

from typing import Any

from flask_restx import Namespace, Resource

from ..models import Employee
from .common import envelope


ns = Namespace("employees", description="Teaching staff rosters")


def serialize_employee(employee: Employee) -> dict[str, Any]:
    return {
        "id": employee.id,
        "full_name": employee.full_name,
        "position": employee.position,
        "email": employee.email,
    }


@ns.route("/teachers")
class TeacherList(Resource):
    def get(self) -> tuple[dict[str, Any], int]:
        return envelope([serialize_employee(employee) for employee in Employee.teachers()])


@ns.route("/assistants")
class AssistantList(Resource):
    def get(self) -> tuple[dict[str, Any], int]:
        return envelope([serialize_employee(employee) for employee in Employee.assistants()])
