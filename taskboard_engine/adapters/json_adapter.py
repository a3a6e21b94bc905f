"""JSON adapter for staged task records and AI task proposals."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any

from taskboard_engine.schema import (
    Category,
    Improvement,
    Source,
    StagedTask,
    clamp_confidence,
    parse_category,
    parse_datetime,
    parse_energy,
    parse_improvement,
    parse_positive_int,
    parse_priority,
    parse_recurrence_rule,
    parse_source,
)

_REQUIRED_FIELDS = {"id", "title"}
_DATE_FIELDS = ("due_at", "staged_at", "created_at", "updated_at", "suggested_due_date")


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, tuple):
        return [_jsonable(v) for v in value]
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {key: _jsonable(v) for key, v in value.items()}
    return value


def to_record(task: StagedTask) -> dict[str, Any]:
    """Serialize a staged task to a JSON-ready dict with ISO-8601 dates."""

    return _jsonable(asdict(task))


def _parse_improvement(item: Any, index: int) -> Improvement:
    try:
        return parse_improvement(item)
    except ValueError as exc:
        raise ValueError(f"Item {index}: {exc}") from exc


def from_record(item: dict, index: int) -> StagedTask:
    """Rebuild a staged task from a record produced by ``to_record``."""

    missing = [field for field in sorted(_REQUIRED_FIELDS) if not item.get(field)]
    if missing:
        raise ValueError(f"Item {index}: missing required fields {missing}")

    try:
        dates = {name: parse_datetime(item.get(name)) for name in _DATE_FIELDS}
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Item {index}: malformed timestamp") from exc

    try:
        recurrence_rule = parse_recurrence_rule(item.get("recurrence_rule"))
        suggested_recurrence = parse_recurrence_rule(item.get("suggested_recurrence"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Item {index}: invalid recurrence rule") from exc

    source = parse_source(item.get("source"))
    if item.get("source") and source is None:
        raise ValueError(f"Item {index}: invalid source '{item.get('source')}'")

    return StagedTask(
        id=str(item["id"]).strip(),
        title=str(item["title"]),
        summary=item.get("summary"),
        priority=parse_priority(item.get("priority")),
        energy=parse_energy(item.get("energy")),
        estimate_min=parse_positive_int(item.get("estimate_min")),
        due_at=dates["due_at"],
        labels=list(item.get("labels") or []),
        is_repeatable=bool(item.get("is_repeatable")) and recurrence_rule is not None,
        recurrence_rule=recurrence_rule,
        source=source or Source.MANUAL,
        confidence=clamp_confidence(item.get("confidence")),
        staged_at=dates["staged_at"],
        created_at=dates["created_at"],
        updated_at=dates["updated_at"],
        processed=bool(item.get("processed", False)),
        enhanced=bool(item.get("enhanced", False)),
        suggested_improvements=[
            _parse_improvement(entry, index) for entry in item.get("suggested_improvements") or []
        ],
        detected_category=parse_category(item.get("detected_category")) or Category.PERSONAL,
        duplicate_of=item.get("duplicate_of"),
        related_tasks=list(item.get("related_tasks") or []),
        suggested_energy=parse_energy(item.get("suggested_energy")),
        suggested_priority=parse_priority(item.get("suggested_priority")),
        suggested_due_date=dates["suggested_due_date"],
        predicted_duration=parse_positive_int(item.get("predicted_duration")),
        suggested_labels=list(item.get("suggested_labels") or []),
        suggested_recurrence=suggested_recurrence,
    )


def dump(tasks: list[StagedTask], file_path: str) -> None:
    """Write staged tasks to a JSON file as a list of records."""

    with open(file_path, "w", encoding="utf-8") as handle:
        json.dump([to_record(task) for task in tasks], handle, indent=2)


def parse(file_path: str) -> list[StagedTask]:
    """Parse a JSON file of staged task records."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of objects")

    return [from_record(item, i) for i, item in enumerate(payload, start=1)]


def load_candidates(file_path: str) -> list[dict]:
    """Load raw task candidates: a list, or an object with a ``tasks`` list."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if isinstance(payload, dict):
        payload = payload.get("tasks")
    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of tasks or an object with a 'tasks' list")

    for index, item in enumerate(payload, start=1):
        if not isinstance(item, dict):
            raise ValueError(f"Item {index}: task candidate must be an object")
    return payload
