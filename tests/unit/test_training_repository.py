"""
Unit tests for the Snowflake training-data repository.

Runs the real queries against MockSnowflakeConnection, so no database or
snowflake-connector-python install is needed.
"""

import asyncio
from decimal import Decimal
from functools import partial

import pytest

from picklepro.core.preload import PreloadingService
from picklepro.infrastructure.snowflake.client import (
    MockSnowflakeConnection,
    create_snowflake_connection,
)
from picklepro.infrastructure.snowflake.repositories import (
    SnowflakeDataSource,
    TrainingDataRepository,
)
from picklepro.infrastructure.snowflake.repositories.training import _plain


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_conn():
    """Mock connection seeded with the sample tables."""
    return MockSnowflakeConnection()


@pytest.fixture
def repository(mock_conn):
    return TrainingDataRepository(mock_conn)


def make_data_source(conn, user_id=None):
    return SnowflakeDataSource(
        partial(create_snowflake_connection, mock_connection=conn),
        user_id_provider=lambda: user_id,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class TestGetPrograms:
    """Tests for rebuilding nested programs from join rows."""

    def test_published_programs_featured_first(self, repository):
        programs = repository.get_programs()

        assert [p["id"] for p in programs] == ["prog-dink-foundations", "prog-third-shot"]

    def test_routines_and_links_are_nested(self, repository):
        [dinks, _] = repository.get_programs()

        assert [r["id"] for r in dinks["routines"]] == ["rt-dink-warmup", "rt-dink-pressure"]
        warmup = dinks["routines"][0]
        assert warmup["time_estimate_minutes"] == 15
        assert [link["exercises"]["code"] for link in warmup["routine_exercises"]] == ["1.1", "1.2"]
        assert warmup["routine_exercises"][1]["custom_target_value"] == 15

    def test_program_without_routines_has_empty_list(self, mock_conn, repository):
        mock_conn._add_row("programs", {
            "program_id": "prog-empty",
            "name": "Empty",
            "is_published": True,
            "is_featured": False,
        })

        programs = {p["id"]: p for p in repository.get_programs()}

        assert programs["prog-empty"]["routines"] == []

    def test_link_to_missing_exercise_has_no_exercise(self, mock_conn, repository):
        mock_conn._add_row("routine_exercises", {
            "routine_id": "rt-drop-basics",
            "exercise_id": "ex-deleted",
            "order_index": 2,
        })

        programs = {p["id"]: p for p in repository.get_programs()}
        links = programs["prog-third-shot"]["routines"][0]["routine_exercises"]

        assert len(links) == 2
        assert links[1]["exercises"] is None


class TestGetCoaches:
    """Tests for the coach directory query."""

    def test_best_rated_first_unrated_last(self, repository):
        coaches = repository.get_coaches()

        assert [c["id"] for c in coaches] == ["coach-maria", "coach-dev", "coach-sam"]

    def test_specialties_are_decoded(self, repository):
        [maria, *_] = repository.get_coaches()

        assert maria["specialties"] == ["Dinks", "Strategy"]
        assert maria["hourly_rate"] == 8500

    def test_inactive_coaches_are_hidden(self, mock_conn, repository):
        mock_conn._add_row("coaches", {"coach_id": "coach-retired", "name": "Retired", "is_active": False})

        assert "coach-retired" not in [c["id"] for c in repository.get_coaches()]


class TestGetLogbookEntries:
    """Tests for the logbook query."""

    def test_newest_first(self, repository):
        entries = repository.get_logbook_entries()

        assert [e["id"] for e in entries] == ["log-3", "log-2", "log-1"]
        assert entries[0]["date"] == "2024-05-18"

    def test_filtered_by_user(self, repository):
        assert len(repository.get_logbook_entries("demo-user")) == 3
        assert repository.get_logbook_entries("someone-else") == []

    def test_json_fields_are_returned_as_stored(self, repository):
        entries = {e["id"]: e for e in repository.get_logbook_entries()}

        assert entries["log-2"]["training_focus"] == "Third shot drops"


class TestHealthCheck:
    """Tests for the backend round-trip used by readiness."""

    def test_mock_backend_answers(self, repository):
        assert repository.health_check() is None

    def test_connection_protocol_is_read_only(self, mock_conn):
        """The repository only ever needs a cursor."""
        assert not hasattr(mock_conn, "commit")
        assert not hasattr(mock_conn.cursor(), "fetchone")


class TestPlainValues:
    """Tests for connector type conversion."""

    def test_decimal_becomes_float(self):
        assert _plain(Decimal("4.50")) == 4.5

    def test_other_values_pass_through(self):
        assert _plain("x") == "x"
        assert _plain(None) is None


# ---------------------------------------------------------------------------
# Async data source
# ---------------------------------------------------------------------------

class TestSnowflakeDataSource:
    """Tests for the async DataSource over the repository."""

    def test_full_preload_from_mock(self, mock_conn):
        service = PreloadingService(make_data_source(mock_conn, user_id="demo-user"))

        asyncio.run(service.preload_all())

        programs = service.get_cached_data("programs")
        coaches = service.get_cached_data("coaches")
        logbook = {entry.id: entry for entry in service.get_cached_data("logbook")}

        assert len(programs) == 2
        assert programs[0].routines[0].exercises[1].target == "15 in a row"
        assert coaches[0].hourly_rate == 85.0
        assert coaches[-1].hourly_rate == 0.0
        assert logbook["log-2"].training_focus == ["Third shot drops"]
        assert logbook["log-2"].difficulty == "Medium"
        assert logbook["log-3"].difficulty == ["Hard"]
        assert not service.get_cache_status().has_errors

    def test_missing_exercise_link_is_dropped_after_transform(self, mock_conn):
        mock_conn._add_row("routine_exercises", {
            "routine_id": "rt-drop-basics",
            "exercise_id": "ex-deleted",
            "order_index": 2,
        })
        service = PreloadingService(make_data_source(mock_conn))

        programs = asyncio.run(service.preload_programs())

        third_shot = next(p for p in programs if p.id == "prog-third-shot")
        assert [e.id for e in third_shot.routines[0].exercises] == ["5.1"]

    def test_query_failure_becomes_error_result(self, mock_conn):
        mock_conn._fail_queries_on("coaches")
        source = make_data_source(mock_conn)

        result = asyncio.run(source.fetch_coaches())

        assert not result.ok
        assert result.data is None
        assert str(result.error) == "Query against coaches failed"

    def test_query_failure_is_recorded_by_service(self, mock_conn):
        mock_conn._fail_queries_on("logbook_entries")
        service = PreloadingService(make_data_source(mock_conn))

        asyncio.run(service.preload_all())

        assert service.get_cached_data("logbook") == []
        assert service.get_error("logbook") == "Query against logbook_entries failed"
        assert len(service.get_cached_data("coaches")) == 3

    def test_logbook_uses_current_user(self, mock_conn):
        source = make_data_source(mock_conn, user_id="someone-else")

        result = asyncio.run(source.fetch_logbook_entries())

        assert result.ok
        assert result.data == []
