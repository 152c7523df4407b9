"""Helpers shared by the API namespaces."""
from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, TypeVar

from flask import current_app

from ..errors import RecordNotFoundError, SessionValidationError
from ..extensions import db
from ..timezone import extract_timezone, parse_date


T = TypeVar("T")


def envelope(data: Any = None, message: str = "", code: int = 200) -> tuple[dict[str, Any], int]:
    return {"success": True, "data": data, "message": message}, code


def fetch_or_404(model: type[T], record_id: int) -> T:
    record = db.session.get(model, record_id)
    if record is None:
        raise RecordNotFoundError(f"{model.__name__} {record_id} not found")
    return record


def request_timezone(values: Optional[Mapping[str, Any]]) -> str:
    return extract_timezone(values, current_app.config["SCHEDULE_TIMEZONE"])


def required_date(values: Mapping[str, Any], key: str) -> date:
    raw = values.get(key)
    if not raw:
        raise SessionValidationError(f"{key} is required")
    try:
        return parse_date(raw)
    except ValueError as exc:
        raise SessionValidationError(f"{key} must use YYYY-MM-DD") from exc


def optional_int(values: Mapping[str, Any], key: str) -> Optional[int]:
    raw = values.get(key)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise SessionValidationError(f"{key} must be an integer") from exc
