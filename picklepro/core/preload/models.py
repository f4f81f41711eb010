"""
Domain models for the preloaded training data.

These are the shapes screens consume after the backend's raw rows have been
normalized. They have no dependencies on the backend or on FastAPI.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class ResourceName(Enum):
    """The three datasets the preload cache tracks independently."""
    PROGRAMS = "programs"
    COACHES = "coaches"
    LOGBOOK = "logbook"

    @property
    def label(self) -> str:
        return self.value.capitalize()


ResourceKey = Union[ResourceName, str]


def resolve_resource(name: ResourceKey) -> ResourceName:
    """Accept either the enum or its string value. Raises ValueError if unknown."""
    if isinstance(name, ResourceName):
        return name
    return ResourceName(name)


@dataclass
class Exercise:
    """A drill inside a routine. `id` is the exercise code, not the row id."""
    id: str
    name: str
    target: str
    difficulty: Optional[Any] = None
    description: Optional[str] = None
    routine_exercise_id: Optional[str] = None


@dataclass
class Routine:
    id: str
    name: str
    description: Optional[str] = None
    time_estimate: str = "0 min"
    exercises: list[Exercise] = field(default_factory=list)


@dataclass
class Program:
    """
    A published training program.

    Programs own their routines, which own their exercises, in display order.
    """
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    tier: Optional[str] = None
    thumbnail: Optional[str] = None
    rating: float = 0.0
    added_count: int = 0
    routines: list[Routine] = field(default_factory=list)
    created_at: Optional[str] = None


@dataclass
class Coach:
    """A coach directory entry. `hourly_rate` is in currency units, not cents."""
    id: str
    name: str
    bio: Optional[str] = None
    dupr_rating: Optional[float] = None
    hourly_rate: float = 0.0
    rating: Optional[float] = None
    review_count: Optional[int] = None
    specialties: Optional[list[str]] = None
    location: Optional[str] = None
    verified: bool = False
    image: Optional[str] = None


@dataclass
class LogbookEntry:
    """
    One logged practice or play session.

    training_focus and difficulty are usually lists, but older rows may hold
    a single scalar. Consumers should accept both.
    """
    id: str
    date: Optional[str] = None
    hours: Optional[float] = None
    session_type: Optional[str] = None
    training_focus: Any = None
    difficulty: Any = None
    feeling: Optional[Any] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class FetchResult:
    """
    What a data-access call hands back.

    Either `data` is populated and `error` is None, or `data` is None and
    `error` describes the failure. `data` may also be None on success,
    which means the backend had nothing to return.
    """
    data: Optional[list[dict[str, Any]]] = None
    error: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CacheStatus:
    """Read-only diagnostic view of the preload cache."""
    counts: dict[ResourceName, int]
    loading: dict[ResourceName, bool]
    errors: dict[ResourceName, Optional[str]]

    @property
    def has_errors(self) -> bool:
        return any(self.errors.values())

    def as_dict(self) -> dict[str, dict[str, Any]]:
        """Plain-dict form: {cache: {...counts}, loading: {...}, errors: {...}}."""
        return {
            "cache": {name.value: count for name, count in self.counts.items()},
            "loading": {name.value: flag for name, flag in self.loading.items()},
            "errors": {name.value: error for name, error in self.errors.items()},
        }
