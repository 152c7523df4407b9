"""Curriculum unit progression and lesson naming.

Two unit-increment policies coexist on purpose: the class setup helper moves
one unit forward and never suggests past ``U30``, while the manual unit
transition suggests two units ahead without a ceiling. They are kept as two
named functions until product decides whether they should converge.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Optional

from .models import ClassGroup


CURRICULUM_PROGRAM = "GrapeSEED"
MAX_UNIT = 30
MAX_LESSON_INDEX = 40
DEFAULT_UNIT = "U1"

UNIT_PATTERN = re.compile(r"U(\d+)")
LESSON_FRAGMENT_PATTERN = re.compile(r"\.L(\d+)")


def _unit_number(unit: str | None) -> int | None:
    if not unit:
        return None
    match = UNIT_PATTERN.search(unit)
    if match is None:
        return None
    return int(match.group(1))


def next_unit_capped(unit: str | None) -> str:
    """Suggest the next unit one step ahead, holding at ``U30``."""

    number = _unit_number(unit)
    if number is None:
        return DEFAULT_UNIT
    if number + 1 > MAX_UNIT:
        return unit
    return f"U{number + 1}"


def next_unit_for_transition(unit: str | None) -> str:
    """Suggest the unit for a manual transition, two steps ahead."""

    number = _unit_number(unit)
    if number is None:
        return DEFAULT_UNIT
    return f"U{number + 2}"


def lesson_indices(limit: int = MAX_LESSON_INDEX) -> list[str]:
    return [f"L{index}" for index in range(1, limit + 1)]


def is_curriculum_program(program_type: str | None, program: str = CURRICULUM_PROGRAM) -> bool:
    return bool(program_type) and program_type == program


def resolve_lesson_name(
    class_name: str | None,
    program_type: str | None,
    unit: str | None,
    lesson_index: str | None,
    *,
    program: str = CURRICULUM_PROGRAM,
) -> str:
    """Return ``<ClassName>.<Unit>.<LessonIndex>`` or ``""`` for manual naming."""

    if not class_name or not lesson_index:
        return ""
    if is_curriculum_program(program_type, program) and unit:
        return f"{class_name}.{unit}.{lesson_index}"
    return ""


def resolve_lesson_identifier(
    unit: str | None,
    lesson_index: str | None = None,
    name: str | None = None,
) -> Optional[str]:
    """Build the ``<Unit>.L<n>`` identifier stored on a main session.

    Without an explicit lesson index the lesson number is read from a
    ``.L<n>`` fragment of the submitted name and qualified with the unit the
    class currently has.
    """

    if not unit:
        return None
    if lesson_index:
        return f"{unit}.{lesson_index}"
    if name:
        match = LESSON_FRAGMENT_PATTERN.search(name)
        if match is not None:
            return f"{unit}.L{match.group(1)}"
    return None


@dataclass(frozen=True)
class UnitTransition:
    from_unit: str
    to_unit: str
    transition_date: str
    created_at: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def record_unit_transition(
    class_group: ClassGroup,
    to_unit: str | None = None,
    transition_date: date | None = None,
) -> UnitTransition:
    """Advance ``class_group`` to ``to_unit`` and append the transition log entry.

    When ``to_unit`` is omitted the manual-transition suggestion is used.
    The caller commits.
    """

    from_unit = class_group.unit or ""
    target = (to_unit or "").strip() or next_unit_for_transition(from_unit)
    if UNIT_PATTERN.fullmatch(target) is None:
        raise ValueError(f"Invalid unit label: {target!r}")
    transition = UnitTransition(
        from_unit=from_unit,
        to_unit=target,
        transition_date=(transition_date or date.today()).isoformat(),
        created_at=datetime.utcnow().isoformat(),
    )
    payload: dict[str, Any] = dict(class_group.data or {})
    payload["unit"] = target
    payload["unit_transitions"] = [*class_group.unit_transitions, transition.as_dict()]
    class_group.data = payload
    class_group.unit = target
    return transition
