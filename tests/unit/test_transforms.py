"""
Unit tests for the raw record -> domain model transforms.

These are pure functions: no event loop, no backend.
"""

from picklepro.core.preload.models import Coach, LogbookEntry, Program
from picklepro.core.preload.transforms import (
    parse_json_field,
    transform_coach_data,
    transform_logbook_entries,
    transform_program_data,
)


# ---------------------------------------------------------------------------
# Logbook JSON fields
# ---------------------------------------------------------------------------

class TestParseJsonField:
    """Tests for the JSON-or-wrap field policy."""

    def test_json_list_string_is_decoded(self):
        assert parse_json_field('["Dinks", "Serves"]') == ["Dinks", "Serves"]

    def test_invalid_json_is_wrapped_in_a_list(self):
        """A bad value degrades to a one-item list instead of failing."""
        assert parse_json_field("not valid json") == ["not valid json"]

    def test_empty_string_is_wrapped(self):
        assert parse_json_field("") == [""]

    def test_native_values_pass_through(self):
        assert parse_json_field(["Hard"]) == ["Hard"]
        assert parse_json_field(3) == 3
        assert parse_json_field(None) is None

    def test_json_scalar_string_is_decoded(self):
        assert parse_json_field('"Medium"') == "Medium"


class TestTransformLogbook:
    """Tests for logbook entry normalization."""

    def test_malformed_training_focus_does_not_fail_the_batch(self):
        entries = transform_logbook_entries([
            {"id": "a", "training_focus": "not valid json", "difficulty": '["Easy"]'},
            {"id": "b", "training_focus": '["Drops"]', "difficulty": "Hard"},
        ])

        assert len(entries) == 2
        assert entries[0].training_focus == ["not valid json"]
        assert entries[0].difficulty == ["Easy"]
        assert entries[1].training_focus == ["Drops"]
        assert entries[1].difficulty == ["Hard"]

    def test_fields_are_renamed(self):
        [entry] = transform_logbook_entries([{
            "id": "a",
            "date": "2024-05-01",
            "hours": 2,
            "session_type": "Lesson",
            "feeling": 4,
            "notes": "Good",
            "location": "Riverside",
            "created_at": "2024-05-01T10:00:00",
        }])

        assert entry == LogbookEntry(
            id="a",
            date="2024-05-01",
            hours=2,
            session_type="Lesson",
            feeling=4,
            notes="Good",
            location="Riverside",
            created_at="2024-05-01T10:00:00",
        )

    def test_non_list_payload_is_empty(self):
        assert transform_logbook_entries(None) == []


# ---------------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------------

class TestTransformPrograms:
    """Tests for program/routine/exercise normalization."""

    def test_routines_and_exercises_are_ordered(self):
        [program] = transform_program_data([{
            "id": "p1",
            "name": "Dink Foundations",
            "rating": "4.7",
            "routines": [
                {"id": "r2", "name": "B", "order_index": 2, "routine_exercises": []},
                {
                    "id": "r1",
                    "name": "A",
                    "order_index": 1,
                    "time_estimate_minutes": 15,
                    "routine_exercises": [
                        {"order_index": 2, "exercises": {"id": "e2", "code": "1.2", "title": "Two",
                                                         "target_value": 10, "target_unit": "reps"}},
                        {"order_index": 1, "exercises": {"id": "e1", "code": "1.1", "title": "One",
                                                         "target_value": 20, "target_unit": "reps"}},
                    ],
                },
            ],
        }])

        assert isinstance(program, Program)
        assert program.rating == 4.7
        assert [r.id for r in program.routines] == ["r1", "r2"]
        assert program.routines[0].time_estimate == "15 min"
        assert program.routines[1].time_estimate == "0 min"
        assert [e.id for e in program.routines[0].exercises] == ["1.1", "1.2"]
        assert program.routines[0].exercises[0].routine_exercise_id == "e1"

    def test_custom_target_overrides_exercise_target(self):
        [program] = transform_program_data([{
            "id": "p1",
            "name": "P",
            "routines": [{
                "id": "r1",
                "name": "R",
                "routine_exercises": [
                    {"custom_target_value": 15,
                     "exercises": {"code": "1.1", "title": "Dinks", "target_value": 20, "target_unit": "in a row"}},
                    {"exercises": {"code": "1.2", "title": "No unit"}},
                ],
            }],
        }])

        exercises = program.routines[0].exercises
        assert exercises[0].target == "15 in a row"
        assert exercises[1].target == "0"

    def test_links_without_exercise_data_are_dropped(self):
        [program] = transform_program_data([{
            "id": "p1",
            "name": "P",
            "routines": [{
                "id": "r1",
                "name": "R",
                "routine_exercises": [
                    {"order_index": 1, "exercises": None},
                    {"order_index": 2, "exercises": {"code": "1.1", "title": "Dinks"}},
                ],
            }],
        }])

        assert [e.id for e in program.routines[0].exercises] == ["1.1"]

    def test_invalid_rating_defaults_to_zero(self):
        [program] = transform_program_data([{"id": "p1", "name": "P", "rating": "n/a"}])
        assert program.rating == 0.0
        assert program.added_count == 0
        assert program.routines == []

    def test_non_list_payload_is_empty(self):
        assert transform_program_data(None) == []
        assert transform_program_data({"id": "p1"}) == []


# ---------------------------------------------------------------------------
# Coaches
# ---------------------------------------------------------------------------

class TestTransformCoaches:
    """Tests for coach directory normalization."""

    def test_backend_fields_map_to_directory_fields(self):
        [coach] = transform_coach_data([{
            "id": "c1",
            "name": "Maria",
            "dupr_rating": 5.2,
            "hourly_rate": 8500,
            "rating_avg": 4.9,
            "rating_count": 57,
            "specialties": ["Dinks"],
            "is_verified": True,
            "avatar_url": "https://example.com/maria.png",
        }])

        assert coach == Coach(
            id="c1",
            name="Maria",
            dupr_rating=5.2,
            hourly_rate=85.0,
            rating=4.9,
            review_count=57,
            specialties=["Dinks"],
            verified=True,
            image="https://example.com/maria.png",
        )

    def test_missing_hourly_rate_is_zero(self):
        [coach] = transform_coach_data([{"id": "c1", "name": "Sam", "hourly_rate": None}])
        assert coach.hourly_rate == 0.0
        assert coach.verified is False
