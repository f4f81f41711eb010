"""
Snowflake repository for training content.

This module implements the repository pattern for the three datasets the
app preloads. The repository:
1. Encapsulates all SQL queries
2. Rebuilds the nested raw records (program -> routines -> exercises)
   from flat join rows
3. Hands raw dicts to the preload layer, which owns the domain transforms

SnowflakeDataSource wraps the blocking repository in the async DataSource
interface the preloading service expects.
"""

import asyncio
import json
import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional, Protocol

from picklepro.core.preload.models import FetchResult

logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "PICKLEPRO"
    schema: str = "TRAINING"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


# Column order of each SELECT below. The mock connection builds its rows
# from these, so keep them in sync with the queries.
PROGRAM_COLUMNS = (
    "id", "name", "description", "category", "tier", "thumbnail_url",
    "rating", "added_count", "created_at",
    "routine_id", "routine_name", "routine_description", "routine_order_index",
    "time_estimate_minutes",
    "link_exercise_id", "link_order_index", "custom_target_value", "is_optional",
    "exercise_id", "exercise_code", "exercise_title", "exercise_description",
    "exercise_difficulty", "target_value", "target_unit",
)

COACH_COLUMNS = (
    "id", "name", "bio", "dupr_rating", "hourly_rate", "rating_avg",
    "rating_count", "specialties", "location", "is_verified", "avatar_url",
)

LOGBOOK_COLUMNS = (
    "id", "date", "hours", "session_type", "training_focus", "difficulty",
    "feeling", "notes", "location", "created_at",
)

PROGRAMS_QUERY = """
    SELECT
        p.program_id,
        p.name,
        p.description,
        p.category,
        p.tier,
        p.thumbnail_url,
        p.rating,
        p.added_count,
        p.created_at,
        r.routine_id,
        r.name,
        r.description,
        r.order_index,
        r.time_estimate_minutes,
        re.exercise_id,
        re.order_index,
        re.custom_target_value,
        re.is_optional,
        e.exercise_id,
        e.code,
        e.title,
        e.description,
        e.difficulty,
        e.target_value,
        e.target_unit
    FROM programs p
    LEFT JOIN routines r ON r.program_id = p.program_id
    LEFT JOIN routine_exercises re ON re.routine_id = r.routine_id
    LEFT JOIN exercises e ON e.exercise_id = re.exercise_id
    WHERE p.is_published = TRUE
    ORDER BY p.is_featured DESC, p.program_id, r.order_index, re.order_index
"""

COACHES_QUERY = """
    SELECT
        coach_id,
        name,
        bio,
        dupr_rating,
        hourly_rate,
        rating_avg,
        rating_count,
        specialties,
        location,
        is_verified,
        avatar_url
    FROM coaches
    WHERE is_active = TRUE
    ORDER BY rating_avg DESC NULLS LAST
"""

LOGBOOK_QUERY = """
    SELECT
        entry_id,
        entry_date,
        hours,
        session_type,
        training_focus,
        difficulty,
        feeling,
        notes,
        location,
        created_at
    FROM logbook_entries
    WHERE (%s IS NULL OR user_id = %s)
    ORDER BY entry_date DESC
"""


def _plain(value: Any) -> Any:
    """Convert connector types into JSON-friendly values."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _load_variant(value: Any) -> Any:
    """ARRAY/VARIANT columns come back from the connector as JSON text."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


class TrainingDataRepository:
    """
    Read-only repository for programs, coaches and logbook entries.

    Each method returns the raw record shape the preload transforms
    expect. Errors propagate; the async data source turns them into
    FetchResult errors.
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def _select(self, query: str, params: Optional[tuple] = None) -> list[tuple]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        finally:
            cursor.close()

    def health_check(self) -> None:
        """Round-trip a trivial query. Raises if the backend can't answer."""
        self._select("SELECT 1")

    def get_programs(self) -> list[dict]:
        """Published programs, featured first, with nested routines and exercises."""
        programs: dict[Any, dict] = {}
        routines: dict[tuple, dict] = {}

        for raw_row in self._select(PROGRAMS_QUERY):
            row = dict(zip(PROGRAM_COLUMNS, (_plain(value) for value in raw_row)))

            program = programs.get(row["id"])
            if program is None:
                program = {
                    "id": row["id"],
                    "name": row["name"],
                    "description": row["description"],
                    "category": row["category"],
                    "tier": row["tier"],
                    "thumbnail_url": row["thumbnail_url"],
                    "rating": row["rating"],
                    "added_count": row["added_count"],
                    "created_at": row["created_at"],
                    "routines": [],
                }
                programs[row["id"]] = program

            if row["routine_id"] is None:
                continue

            routine_key = (row["id"], row["routine_id"])
            routine = routines.get(routine_key)
            if routine is None:
                routine = {
                    "id": row["routine_id"],
                    "name": row["routine_name"],
                    "description": row["routine_description"],
                    "order_index": row["routine_order_index"],
                    "time_estimate_minutes": row["time_estimate_minutes"],
                    "routine_exercises": [],
                }
                routines[routine_key] = routine
                program["routines"].append(routine)

            if row["link_exercise_id"] is None:
                continue

            exercise = None
            if row["exercise_id"] is not None:
                exercise = {
                    "id": row["exercise_id"],
                    "code": row["exercise_code"],
                    "title": row["exercise_title"],
                    "description": row["exercise_description"],
                    "difficulty": row["exercise_difficulty"],
                    "target_value": row["target_value"],
                    "target_unit": row["target_unit"],
                }

            routine["routine_exercises"].append({
                "order_index": row["link_order_index"],
                "custom_target_value": row["custom_target_value"],
                "is_optional": row["is_optional"],
                "exercises": exercise,
            })

        logger.debug("Loaded programs", extra={"count": len(programs)})
        return list(programs.values())

    def get_coaches(self) -> list[dict]:
        """Active coaches, best rated first."""
        coaches = []
        for raw_row in self._select(COACHES_QUERY):
            row = dict(zip(COACH_COLUMNS, (_plain(value) for value in raw_row)))
            row["specialties"] = _load_variant(row["specialties"])
            coaches.append(row)
        return coaches

    def get_logbook_entries(self, user_id: Optional[str] = None) -> list[dict]:
        """
        Logbook entries, newest first.

        training_focus and difficulty are returned exactly as stored; the
        preload transform decodes them.
        """
        return [
            dict(zip(LOGBOOK_COLUMNS, (_plain(value) for value in raw_row)))
            for raw_row in self._select(LOGBOOK_QUERY, (user_id, user_id))
        ]


class SnowflakeDataSource:
    """
    Async DataSource backed by TrainingDataRepository.

    The connector is blocking, so each fetch opens a connection and runs
    its query in a worker thread. Exceptions become FetchResult errors,
    matching the { data, error } contract of the data-access layer.
    """

    def __init__(
        self,
        connection_factory: Callable[[], AbstractContextManager],
        user_id_provider: Optional[Callable[[], Optional[str]]] = None,
    ) -> None:
        self._connection_factory = connection_factory
        self._user_id_provider = user_id_provider

    def _run(self, query: Callable[[TrainingDataRepository], list[dict]]) -> list[dict]:
        with self._connection_factory() as conn:
            return query(TrainingDataRepository(conn))

    async def _fetch(self, resource: str, query: Callable[[TrainingDataRepository], list[dict]]) -> FetchResult:
        try:
            data = await asyncio.to_thread(self._run, query)
        except Exception as e:
            logger.error(
                "Backend fetch failed",
                extra={"resource": resource, "error": str(e)}
            )
            return FetchResult(data=None, error=e)
        return FetchResult(data=data, error=None)

    async def fetch_programs(self) -> FetchResult:
        return await self._fetch("programs", lambda repo: repo.get_programs())

    async def fetch_coaches(self) -> FetchResult:
        return await self._fetch("coaches", lambda repo: repo.get_coaches())

    async def fetch_logbook_entries(self) -> FetchResult:
        user_id = self._user_id_provider() if self._user_id_provider else None
        return await self._fetch("logbook", lambda repo: repo.get_logbook_entries(user_id))
