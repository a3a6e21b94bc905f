"""Core data schema for tasks, recurrence rules and staged tasks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class EnergyLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Category(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    LEARNING = "learning"
    ADMIN = "admin"
    CREATIVE = "creative"
    URGENT = "urgent"


class Source(str, Enum):
    VOICE = "voice"
    AI_CHAT = "ai_chat"
    MANUAL = "manual"
    IMPORT = "import"
    CALENDAR_SYNC = "calendar_sync"


class ImprovementKind(str, Enum):
    MISSING_CONTEXT = "missing_context"
    UNCLEAR_PRIORITY = "unclear_priority"
    DURATION_ESTIMATE = "duration_estimate"
    ENERGY_MISMATCH = "energy_mismatch"
    SIMILAR_TASK = "similar_task"
    RECURRENCE_DETECTED = "recurrence_detected"


@dataclass(frozen=True)
class RecurrenceRule:
    """Compact description of how a task repeats.

    ``days_of_week`` uses Sunday=0 .. Saturday=6. ``count`` caps the number of
    occurrences the rule may ever produce and ``end_date`` is inclusive.
    """

    pattern: str
    interval: int = 1
    days_of_week: Optional[tuple[int, ...]] = None
    count: Optional[int] = None
    end_date: Optional[datetime] = None


@dataclass(frozen=True)
class Occurrence:
    source_task_id: str
    occurrence_date: datetime
    sequence_index: int


@dataclass
class Improvement:
    kind: ImprovementKind
    message: str
    suggestion: Optional[str] = None
    auto_fix: bool = False


@dataclass
class Task:
    """Board task, reduced to the fields the engine reads."""

    id: str
    title: str
    summary: Optional[str] = None
    priority: Optional[Priority] = None
    energy: Optional[EnergyLevel] = None
    estimate_min: Optional[int] = None
    due_at: Optional[datetime] = None
    labels: list[str] = field(default_factory=list)
    is_repeatable: bool = False
    recurrence_rule: Optional[RecurrenceRule] = None


@dataclass
class StagedTask(Task):
    """A candidate task waiting in staging, with review metadata."""

    source: Source = Source.MANUAL
    confidence: float = 0.5
    staged_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    processed: bool = False
    enhanced: bool = False
    suggested_improvements: list[Improvement] = field(default_factory=list)
    detected_category: Category = Category.PERSONAL
    duplicate_of: Optional[str] = None
    related_tasks: list[str] = field(default_factory=list)

    # Advisory fields, written by the enhancement engine only.
    suggested_energy: Optional[EnergyLevel] = None
    suggested_priority: Optional[Priority] = None
    suggested_due_date: Optional[datetime] = None
    predicted_duration: Optional[int] = None
    suggested_labels: list[str] = field(default_factory=list)
    suggested_recurrence: Optional[RecurrenceRule] = None


_PATCHABLE_FIELDS = (
    "title",
    "summary",
    "priority",
    "energy",
    "estimate_min",
    "due_at",
    "labels",
    "is_repeatable",
    "recurrence_rule",
    "confidence",
    "source",
    "related_tasks",
)


@dataclass(frozen=True)
class StagedTaskPatch:
    """Explicit update command for the authoritative fields of a staged task.

    ``None`` means "leave unchanged"; names listed in ``clear`` are reset to
    their empty value. Advisory ``suggested_*`` fields cannot be patched.
    """

    title: Optional[str] = None
    summary: Optional[str] = None
    priority: Optional[Priority] = None
    energy: Optional[EnergyLevel] = None
    estimate_min: Optional[int] = None
    due_at: Optional[datetime] = None
    labels: Optional[list[str]] = None
    is_repeatable: Optional[bool] = None
    recurrence_rule: Optional[RecurrenceRule] = None
    confidence: Optional[float] = None
    source: Optional[Source] = None
    related_tasks: Optional[list[str]] = None
    clear: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        unknown = set(self.clear) - set(_PATCHABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot clear non-patchable fields {sorted(unknown)}")

    def apply(self, task: StagedTask) -> StagedTask:
        for name in _PATCHABLE_FIELDS:
            value = getattr(self, name)
            if value is not None:
                if name == "confidence":
                    value = clamp_confidence(value)
                elif name in ("labels", "related_tasks"):
                    value = dedupe(value)
                setattr(task, name, value)
        for name in self.clear:
            setattr(task, name, [] if name in ("labels", "related_tasks") else _CLEARED.get(name))
        return task


_CLEARED = {"is_repeatable": False, "confidence": 0.0, "source": Source.MANUAL}


@dataclass
class StagingStats:
    total: int
    high_confidence: int
    needs_review: int
    duplicates: int
    by_source: dict[str, int]
    average_confidence: float


def dedupe(values) -> list[str]:
    """Drop duplicates while keeping first-seen order."""

    return list(dict.fromkeys(str(v) for v in values if v is not None and str(v) != ""))


def clamp_confidence(value: Any, default: float = 0.5) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(0.0, min(1.0, number))


def _parse_enum(enum_cls, value: Any, label: str):
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for candidate in (text, text.upper(), text.lower()):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    logger.debug("Ignoring unknown %s value %r", label, value)
    return None


def parse_priority(value: Any) -> Optional[Priority]:
    return _parse_enum(Priority, value, "priority")


def parse_energy(value: Any) -> Optional[EnergyLevel]:
    return _parse_enum(EnergyLevel, value, "energy")


def parse_category(value: Any) -> Optional[Category]:
    return _parse_enum(Category, value, "category")


def parse_source(value: Any) -> Optional[Source]:
    return _parse_enum(Source, value, "source")


def parse_improvement_kind(value: Any) -> Optional[ImprovementKind]:
    return _parse_enum(ImprovementKind, value, "improvement kind")


def parse_improvement(payload: Any) -> Improvement:
    if isinstance(payload, Improvement):
        return payload
    if not isinstance(payload, dict):
        raise ValueError("improvement must be an object")
    kind = parse_improvement_kind(payload.get("kind", payload.get("type")))
    if kind is None:
        raise ValueError(f"invalid improvement kind {payload.get('kind', payload.get('type'))!r}")
    return Improvement(
        kind=kind,
        message=str(payload.get("message", "")),
        suggestion=payload.get("suggestion"),
        auto_fix=bool(payload.get("auto_fix", payload.get("autoFix", False))),
    )


def parse_string_list(value: Any) -> list[str]:
    """Comma-separated string or list/tuple/set of values; anything else raises TypeError."""

    if value is None or value == "":
        return []
    if isinstance(value, str):
        return dedupe(part.strip() for part in value.split(","))
    if isinstance(value, (list, tuple, set, frozenset)):
        return dedupe(value)
    raise TypeError(f"expected a string or list, got {type(value).__name__}")


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix allowed); invalid input raises ValueError."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def parse_positive_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def parse_recurrence_rule(payload: Any) -> Optional[RecurrenceRule]:
    """Build a rule from a mapping with snake_case or camelCase keys."""

    if payload is None:
        return None
    if isinstance(payload, RecurrenceRule):
        return payload
    if not isinstance(payload, dict):
        raise ValueError("recurrence rule must be an object")

    pattern = payload.get("pattern") or payload.get("type") or "custom"
    interval_raw = payload.get("interval", 1)
    try:
        interval = int(interval_raw) if interval_raw is not None else 1
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid recurrence interval {interval_raw!r}") from exc

    days_raw = payload.get("days_of_week", payload.get("daysOfWeek"))
    days = None
    if days_raw:
        days = tuple(int(day) for day in days_raw)

    end_raw = payload.get("end_date", payload.get("endDate"))
    return RecurrenceRule(
        pattern=str(pattern).strip().lower(),
        interval=interval,
        days_of_week=days,
        count=parse_positive_int(payload.get("count")),
        end_date=parse_datetime(end_raw),
    )
