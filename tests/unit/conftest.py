"""
Shared fixtures for the preload tests.

FakeDataSource stands in for the backend: it returns canned FetchResults,
counts calls, can raise, and can hold a fetch open until the test releases
it (to observe in-flight state).
"""

import asyncio
from collections import Counter
from typing import Union

import pytest

from picklepro.core.preload.models import FetchResult


def program_rows() -> list[dict]:
    return [
        {
            "id": f"prog-{i}",
            "name": f"Program {i}",
            "description": "Drills",
            "category": "Dinks",
            "tier": "Beginner",
            "thumbnail_url": None,
            "rating": "4.5",
            "added_count": i,
            "created_at": "2024-01-01",
            "routines": [
                {
                    "id": f"rt-{i}-2",
                    "name": "Second",
                    "order_index": 2,
                    "time_estimate_minutes": 20,
                    "routine_exercises": [],
                },
                {
                    "id": f"rt-{i}-1",
                    "name": "First",
                    "order_index": 1,
                    "time_estimate_minutes": None,
                    "routine_exercises": [
                        {
                            "order_index": 1,
                            "custom_target_value": None,
                            "exercises": {
                                "id": "ex-row-1",
                                "code": "1.1",
                                "title": "Cross-court Dinks",
                                "difficulty": 1,
                                "target_value": 20,
                                "target_unit": "in a row",
                            },
                        },
                    ],
                },
            ],
        }
        for i in range(1, 4)
    ]


def coach_rows() -> list[dict]:
    return [
        {
            "id": f"coach-{i}",
            "name": f"Coach {i}",
            "hourly_rate": 5000 + i * 1000,
            "rating_avg": 4.0 + i / 10,
            "rating_count": i * 10,
            "is_verified": i % 2 == 0,
        }
        for i in range(1, 4)
    ]


def logbook_rows() -> list[dict]:
    return [
        {
            "id": f"log-{i}",
            "date": f"2024-05-{10 + i}",
            "hours": 1.5,
            "session_type": "Drill Session",
            "training_focus": '["Dinks", "Resets"]',
            "difficulty": ["Medium"],
        }
        for i in range(1, 4)
    ]


Response = Union[FetchResult, BaseException]


class FakeDataSource:
    """In-process DataSource with per-resource canned responses."""

    def __init__(self) -> None:
        self.responses: dict[str, Response] = {
            "programs": FetchResult(data=program_rows()),
            "coaches": FetchResult(data=coach_rows()),
            "logbook": FetchResult(data=logbook_rows()),
        }
        self.calls: Counter = Counter()
        self._gates: dict[str, asyncio.Event] = {}

    def hold(self, resource: str) -> asyncio.Event:
        """Block fetches of `resource` until the returned event is set."""
        gate = asyncio.Event()
        self._gates[resource] = gate
        return gate

    async def _respond(self, resource: str) -> FetchResult:
        self.calls[resource] += 1
        # answer with what was configured when the call was made
        response = self.responses[resource]
        gate = self._gates.get(resource)
        if gate is not None:
            await gate.wait()
        if isinstance(response, BaseException):
            raise response
        return response

    async def fetch_programs(self) -> FetchResult:
        return await self._respond("programs")

    async def fetch_coaches(self) -> FetchResult:
        return await self._respond("coaches")

    async def fetch_logbook_entries(self) -> FetchResult:
        return await self._respond("logbook")


async def _run_until(predicate, max_steps: int = 100) -> None:
    """Run the event loop until `predicate()` holds."""
    for _ in range(max_steps):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("event loop never reached the expected state")


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def run_until():
    """Coroutine that spins the running loop until a condition holds."""
    return _run_until
