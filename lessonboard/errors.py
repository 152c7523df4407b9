from __future__ import annotations

from dataclasses import asdict, dataclass


class SchedulingError(Exception):
    """Base class for failures of the main-session workflow."""

    status_code = 500


class SessionValidationError(SchedulingError, ValueError):
    status_code = 400


@dataclass(frozen=True)
class ConflictDetails:
    teacher_name: str
    conflict_time: str
    conflict_date: str
    session_type: str
    requested_time: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


class TeacherConflictError(SchedulingError):
    status_code = 409

    def __init__(self, details: ConflictDetails) -> None:
        self.details = details
        super().__init__(
            f"{details.teacher_name} already teaches {details.conflict_time} on "
            f"{details.conflict_date}; requested {details.session_type} "
            f"{details.requested_time} overlaps."
        )


class StorageError(SchedulingError):
    status_code = 500


class RecordNotFoundError(SchedulingError, LookupError):
    status_code = 404
