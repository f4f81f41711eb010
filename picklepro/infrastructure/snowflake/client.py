"""
Snowflake database connection management.

Provides connection factory and context manager for Snowflake operations.
Includes mock mode with in-memory storage for local development.

Using the repository pattern means most code never touches this module
directly - it goes through TrainingDataRepository which handles the
translation between database rows and raw records.
"""

import base64
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.training import (
    COACH_COLUMNS,
    LOGBOOK_COLUMNS,
    PROGRAM_COLUMNS,
    SnowflakeConfig,
    SnowflakeConnection,
)
from .sample_data import sample_tables

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _der_private_key(pem_bytes: bytes) -> bytes:
    """
    Convert a PEM private key to the DER/PKCS8 bytes snowflake-connector expects.
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    private_key = serialization.load_pem_private_key(
        pem_bytes,
        password=None,  # No password on the key
        backend=default_backend()
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def _load_private_key(config: SnowflakeConfig) -> Optional[bytes]:
    """Load the key-pair credential from a file path or a base64 env value."""
    if config.private_key_path:
        with open(config.private_key_path, 'rb') as key_file:
            return _der_private_key(key_file.read())
    if config.private_key_base64:
        return _der_private_key(base64.b64decode(config.private_key_base64))
    return None


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If a private key (path or base64) is set, uses key-pair auth
    - Otherwise, uses password auth

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    connect_params = {
        'account': config.account,
        'user': config.user,
        'database': config.database,
        'schema': config.schema,
        'warehouse': config.warehouse,
        'role': config.role,
        'client_session_keep_alive': True,
    }

    try:
        private_key = _load_private_key(config)
    except (OSError, ValueError) as e:
        raise SnowflakeConnectionError(f"Could not load private key: {e}")

    if private_key:
        logger.info("Using key-pair authentication for Snowflake")
        connect_params['private_key'] = private_key
    elif config.password:
        logger.info("Using password authentication for Snowflake")
        connect_params['password'] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or a private key must be provided"
        )

    try:
        conn = snowflake.connector.connect(**connect_params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}")

    logger.debug(
        "Established Snowflake connection",
        extra={
            "account": config.account,
            "database": config.database,
            "schema": config.schema,
        }
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

class MockQueryError(Exception):
    """Raised by the mock when a table has been told to fail."""
    pass


class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support
    TrainingDataRepository without a real database. SELECTs are routed
    by the table they read from and rows are produced in the column
    order the repository's queries declare.
    """

    def __init__(self, storage: dict, failing: set) -> None:
        self._storage = storage
        self._failing = failing
        self._results: list = []

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        logger.debug(
            "Mock cursor execute",
            extra={"query": query.strip()[:100], "params": params}
        )

        query_upper = query.upper()

        if 'FROM PROGRAMS' in query_upper:
            self._check('programs')
            self._results = self._select_programs()
        elif 'FROM COACHES' in query_upper:
            self._check('coaches')
            self._results = self._select_coaches()
        elif 'FROM LOGBOOK_ENTRIES' in query_upper:
            self._check('logbook_entries')
            user_id = params[0] if params else None
            self._results = self._select_logbook(user_id)
        else:
            self._results = []

        return self

    def _check(self, table: str) -> None:
        if table in self._failing:
            raise MockQueryError(f"Query against {table} failed")

    def _select_programs(self) -> list[tuple]:
        """Emulate the programs LEFT JOIN routines/routine_exercises/exercises."""
        exercises = {row['exercise_id']: row for row in self._storage['exercises']}
        published = sorted(
            (row for row in self._storage['programs'] if row.get('is_published')),
            key=lambda row: (not row.get('is_featured'), row['program_id']),
        )

        rows = []
        for program in published:
            base = {
                'id': program['program_id'],
                'name': program.get('name'),
                'description': program.get('description'),
                'category': program.get('category'),
                'tier': program.get('tier'),
                'thumbnail_url': program.get('thumbnail_url'),
                'rating': program.get('rating'),
                'added_count': program.get('added_count'),
                'created_at': program.get('created_at'),
            }
            routines = sorted(
                (r for r in self._storage['routines'] if r['program_id'] == program['program_id']),
                key=lambda r: r.get('order_index') or 0,
            )
            if not routines:
                rows.append(self._row(PROGRAM_COLUMNS, base))
                continue

            for routine in routines:
                routine_values = dict(
                    base,
                    routine_id=routine['routine_id'],
                    routine_name=routine.get('name'),
                    routine_description=routine.get('description'),
                    routine_order_index=routine.get('order_index'),
                    time_estimate_minutes=routine.get('time_estimate_minutes'),
                )
                links = sorted(
                    (link for link in self._storage['routine_exercises'] if link['routine_id'] == routine['routine_id']),
                    key=lambda link: link.get('order_index') or 0,
                )
                if not links:
                    rows.append(self._row(PROGRAM_COLUMNS, routine_values))
                    continue

                for link in links:
                    exercise = exercises.get(link['exercise_id']) or {}
                    rows.append(self._row(PROGRAM_COLUMNS, dict(
                        routine_values,
                        link_exercise_id=link['exercise_id'],
                        link_order_index=link.get('order_index'),
                        custom_target_value=link.get('custom_target_value'),
                        is_optional=link.get('is_optional'),
                        exercise_id=exercise.get('exercise_id'),
                        exercise_code=exercise.get('code'),
                        exercise_title=exercise.get('title'),
                        exercise_description=exercise.get('description'),
                        exercise_difficulty=exercise.get('difficulty'),
                        target_value=exercise.get('target_value'),
                        target_unit=exercise.get('target_unit'),
                    )))
        return rows

    def _select_coaches(self) -> list[tuple]:
        active = [row for row in self._storage['coaches'] if row.get('is_active')]
        # NULLS LAST
        active.sort(key=lambda row: (row.get('rating_avg') is None, -(row.get('rating_avg') or 0)))
        return [self._row(COACH_COLUMNS, dict(row, id=row['coach_id'])) for row in active]

    def _select_logbook(self, user_id: Optional[str]) -> list[tuple]:
        entries = [
            row for row in self._storage['logbook_entries']
            if user_id is None or row.get('user_id') == user_id
        ]
        entries.sort(key=lambda row: row.get('entry_date') or '', reverse=True)
        return [
            self._row(LOGBOOK_COLUMNS, dict(row, id=row['entry_id'], date=row.get('entry_date')))
            for row in entries
        ]

    @staticmethod
    def _row(columns: tuple, values: dict) -> tuple:
        return tuple(values.get(column) for column in columns)

    def fetchall(self) -> list:
        """Fetch all rows from results."""
        return self._results

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores data in memory as {table_name: [row_dict, ...]}, seeded with
    sample programs, coaches and logbook entries unless told otherwise.

    Not suitable for production, but perfect for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    def __init__(self, tables: Optional[dict[str, list[dict]]] = None) -> None:
        self._storage: dict[str, list[dict]] = {
            'programs': [],
            'routines': [],
            'routine_exercises': [],
            'exercises': [],
            'coaches': [],
            'logbook_entries': [],
        }
        self._storage.update(sample_tables() if tables is None else tables)
        self._failing: set[str] = set()

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        """Create a mock cursor."""
        return MockSnowflakeCursor(self._storage, self._failing)

    def close(self) -> None:
        """Close connection (no-op for mock)."""
        logger.debug("Mock connection close")

    # Helper methods for testing
    def _add_row(self, table: str, row: dict) -> None:
        """Add a row to mock storage (for test setup)."""
        self._storage[table].append(row)

    def _fail_queries_on(self, table: str) -> None:
        """Make every SELECT against `table` raise (for failure tests)."""
        self._failing.add(table)

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        for table in self._storage.values():
            table.clear()
        self._failing.clear()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_connection: Optional[MockSnowflakeConnection] = None,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Factory function that yields the shared mock connection when one is
    given (mock mode), otherwise a real connection built from config.

    Args:
        config: Snowflake configuration (required without a mock)
        mock_connection: In-memory connection to reuse across requests

    Yields:
        SnowflakeConnection implementation (real or mock)
    """
    if mock_connection is not None:
        yield mock_connection
        return

    if config is None:
        raise ValueError("config is required when not in mock mode")

    with get_snowflake_connection(config) as conn:
        yield conn
