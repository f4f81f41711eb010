"""
Raw backend record -> domain model transforms.

Each resource has its own transform. They are pure functions: no I/O, no
logging of whole payloads, and they never raise on a single bad field.
A malformed logbook field degrades to a one-item list rather than failing
the record, and a missing payload is an empty list rather than an error.
"""

import json
import logging
from typing import Any, Callable, Iterable, Optional

from .models import Coach, Exercise, LogbookEntry, Program, ResourceName, Routine

logger = logging.getLogger(__name__)


def _to_float(value: Any, default: float = 0.0) -> float:
    """Best-effort numeric conversion (Snowflake NUMBER columns arrive as Decimal)."""
    if value is None or value == "":
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    # NaN compares unequal to itself
    return result if result == result else default


def _by_order_index(items: Optional[Iterable[dict]]) -> list[dict]:
    return sorted(items or [], key=lambda item: item.get("order_index") or 0)


def parse_json_field(value: Any, field_name: str = "field") -> Any:
    """
    Decode a field that may have been stored as a JSON string.

    Non-strings pass through untouched. A string that isn't valid JSON is
    wrapped as a single-element list so the record still loads.
    """
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        logger.warning(
            "Failed to parse JSON field, wrapping raw value",
            extra={"field": field_name, "value": value[:100]}
        )
        return [value]


# ---------------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------------

def _transform_exercise(link: dict) -> Optional[Exercise]:
    exercise = link.get("exercises")
    if not exercise:
        return None

    target_value = link.get("custom_target_value") or exercise.get("target_value") or 0
    target_unit = exercise.get("target_unit") or ""

    return Exercise(
        id=exercise.get("code"),
        name=exercise.get("title"),
        target=f"{target_value} {target_unit}".strip(),
        difficulty=exercise.get("difficulty"),
        description=exercise.get("description"),
        routine_exercise_id=exercise.get("id"),
    )


def _transform_routine(routine: dict) -> Routine:
    exercises = [
        _transform_exercise(link)
        for link in _by_order_index(routine.get("routine_exercises"))
    ]
    return Routine(
        id=routine.get("id"),
        name=routine.get("name"),
        description=routine.get("description"),
        time_estimate=f"{routine.get('time_estimate_minutes') or 0} min",
        exercises=[exercise for exercise in exercises if exercise is not None],
    )


def transform_program_data(programs: Any) -> list[Program]:
    """Normalize program rows with their nested routines and exercises."""
    if not isinstance(programs, list):
        return []

    return [
        Program(
            id=program.get("id"),
            name=program.get("name"),
            description=program.get("description"),
            category=program.get("category"),
            tier=program.get("tier"),
            thumbnail=program.get("thumbnail_url"),
            rating=_to_float(program.get("rating")),
            added_count=program.get("added_count") or 0,
            routines=[
                _transform_routine(routine)
                for routine in _by_order_index(program.get("routines"))
            ],
            created_at=program.get("created_at"),
        )
        for program in programs
    ]


# ---------------------------------------------------------------------------
# Coaches
# ---------------------------------------------------------------------------

def transform_coach_data(coaches: Any) -> list[Coach]:
    """Map backend coach columns onto directory fields."""
    if not isinstance(coaches, list):
        return []

    return [
        Coach(
            id=coach.get("id"),
            name=coach.get("name"),
            bio=coach.get("bio"),
            dupr_rating=coach.get("dupr_rating"),
            # stored in cents
            hourly_rate=_to_float(coach.get("hourly_rate")) / 100,
            rating=coach.get("rating_avg"),
            review_count=coach.get("rating_count"),
            specialties=coach.get("specialties"),
            location=coach.get("location"),
            verified=bool(coach.get("is_verified")),
            image=coach.get("avatar_url"),
        )
        for coach in coaches
    ]


# ---------------------------------------------------------------------------
# Logbook
# ---------------------------------------------------------------------------

def transform_logbook_entry(entry: dict) -> LogbookEntry:
    return LogbookEntry(
        id=entry.get("id"),
        date=entry.get("date"),
        hours=entry.get("hours"),
        session_type=entry.get("session_type"),
        training_focus=parse_json_field(entry.get("training_focus"), "training_focus"),
        difficulty=parse_json_field(entry.get("difficulty"), "difficulty"),
        feeling=entry.get("feeling"),
        notes=entry.get("notes"),
        location=entry.get("location"),
        created_at=entry.get("created_at"),
    )


def transform_logbook_entries(entries: Any) -> list[LogbookEntry]:
    if not isinstance(entries, list):
        return []
    return [transform_logbook_entry(entry) for entry in entries]


TRANSFORMS: dict[ResourceName, Callable[[Any], list]] = {
    ResourceName.PROGRAMS: transform_program_data,
    ResourceName.COACHES: transform_coach_data,
    ResourceName.LOGBOOK: transform_logbook_entries,
}
