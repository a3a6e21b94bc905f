"""Staging area for tentative tasks coming from voice, AI chat or imports.

Candidates are annotated (duplicates, category) on insert, enriched by an
explicit ``enhance`` step, and committed to a board collaborator one at a
time. Nothing here is module-global: every repository owns its state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional
from uuid import uuid4

import numpy as np

from taskboard_engine.board import BoardClient
from taskboard_engine.config import StagingConfig
from taskboard_engine.enhancement import categorize, enhance_task, task_text
from taskboard_engine.recurrence import expand_tasks
from taskboard_engine.schema import (
    Improvement,
    ImprovementKind,
    Occurrence,
    Source,
    StagedTask,
    StagedTaskPatch,
    StagingStats,
    clamp_confidence,
    dedupe,
    parse_datetime,
    parse_energy,
    parse_improvement,
    parse_positive_int,
    parse_priority,
    parse_recurrence_rule,
    parse_source,
    parse_string_list,
)
from taskboard_engine.similarity import find_duplicates, similarity

logger = logging.getLogger(__name__)

_AI_SOURCES = {Source.VOICE, Source.AI_CHAT}

# camelCase keys sent by the voice/AI collaborators.
_ALIASES = {
    "estimateMin": "estimate_min",
    "estimatedMinutes": "estimate_min",
    "dueAt": "due_at",
    "dueDate": "due_at",
    "description": "summary",
    "isRepeatable": "is_repeatable",
    "isRepeating": "is_repeatable",
    "recurrenceRule": "recurrence_rule",
    "recurrence": "recurrence_rule",
    "relatedTasks": "related_tasks",
    "repeatPattern": "repeat_pattern",
    "suggestedLabels": "suggested_labels",
    "predictedDuration": "predicted_duration",
    "suggestedPriority": "suggested_priority",
    "suggestedEnergy": "suggested_energy",
    "suggestedDueDate": "suggested_due_date",
    "suggestedImprovements": "suggested_improvements",
    "suggestedRecurrence": "suggested_recurrence",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _default_id(now: datetime) -> str:
    return f"staged_{int(now.timestamp() * 1000)}_{uuid4().hex[:9]}"


def _normalize_keys(candidate: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in candidate.items():
        target = _ALIASES.get(key, key)
        if target not in normalized or normalized[target] is None:
            normalized[target] = value
    return normalized


def _safe(parser, value: Any, label: str):
    try:
        return parser(value)
    except (TypeError, ValueError):
        logger.warning("Dropping malformed %s %r from staged candidate", label, value)
        return None


def _copy_task(task: StagedTask) -> StagedTask:
    return replace(
        task,
        labels=list(task.labels),
        suggested_improvements=list(task.suggested_improvements),
        related_tasks=list(task.related_tasks),
        suggested_labels=list(task.suggested_labels),
    )


def _improvements(value: Any) -> list[Improvement]:
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"expected a list of improvements, got {type(value).__name__}")
    parsed = (_safe(parse_improvement, item, "improvement") for item in value)
    return [item for item in parsed if item is not None]


def coerce_candidate(candidate: Mapping[str, Any] | StagedTask, default_confidence: float = 0.5) -> StagedTask:
    """Turn an untrusted candidate into a ``StagedTask`` without id or timestamps.

    Unknown enum values, malformed dates and malformed lists become unset
    rather than errors. Advisory fields supplied by the caller are kept.
    """

    if isinstance(candidate, StagedTask):
        return _copy_task(candidate)

    data = _normalize_keys(candidate)

    rule_payload = data.get("recurrence_rule")
    if rule_payload is None and data.get("repeat_pattern"):
        rule_payload = {"pattern": data["repeat_pattern"], "interval": data.get("repeat_interval", 1)}
    recurrence = _safe(parse_recurrence_rule, rule_payload, "recurrence rule")
    is_repeatable = bool(data.get("is_repeatable")) or recurrence is not None

    return StagedTask(
        id=str(data.get("id") or ""),
        title=str(data.get("title") or ""),
        summary=str(data.get("summary") or ""),
        priority=parse_priority(data.get("priority")),
        energy=parse_energy(data.get("energy")),
        estimate_min=parse_positive_int(data.get("estimate_min")),
        due_at=_safe(parse_datetime, data.get("due_at"), "due date"),
        labels=_safe(parse_string_list, data.get("labels"), "labels") or [],
        is_repeatable=is_repeatable and recurrence is not None,
        recurrence_rule=recurrence,
        source=parse_source(data.get("source")) or Source.MANUAL,
        confidence=clamp_confidence(data.get("confidence"), default_confidence),
        suggested_improvements=_safe(_improvements, data.get("suggested_improvements") or [], "improvements") or [],
        related_tasks=_safe(parse_string_list, data.get("related_tasks"), "related tasks") or [],
        suggested_energy=parse_energy(data.get("suggested_energy")),
        suggested_priority=parse_priority(data.get("suggested_priority")),
        suggested_due_date=_safe(parse_datetime, data.get("suggested_due_date"), "suggested due date"),
        predicted_duration=parse_positive_int(data.get("predicted_duration")),
        suggested_labels=_safe(parse_string_list, data.get("suggested_labels"), "suggested labels") or [],
        suggested_recurrence=_safe(parse_recurrence_rule, data.get("suggested_recurrence"), "suggested recurrence"),
    )


def resolve_task_fields(task: StagedTask, board_id: str) -> dict[str, Any]:
    """Board payload for a staged task: explicit values first, advisory values fill gaps."""

    priority = task.priority or task.suggested_priority
    energy = task.energy or task.suggested_energy
    rule = task.recurrence_rule
    return {
        "boardId": board_id,
        "title": task.title.strip(),
        "summary": task.summary or "",
        "priority": priority.value if priority else None,
        "energy": energy.value if energy else None,
        "estimateMin": task.estimate_min or task.predicted_duration,
        "dueAt": task.due_at.isoformat() if task.due_at else None,
        "labels": dedupe([*task.labels, *task.suggested_labels]),
        "isRepeatable": bool(task.is_repeatable and rule),
        "recurrenceRule": (
            {
                "pattern": rule.pattern,
                "interval": rule.interval,
                "daysOfWeek": list(rule.days_of_week) if rule.days_of_week else None,
                "count": rule.count,
                "endDate": rule.end_date.isoformat() if rule.end_date else None,
            }
            if task.is_repeatable and rule
            else None
        ),
        "confidence": task.confidence,
        "source": task.source.value,
        "aiGenerated": task.source in _AI_SOURCES,
    }


class StagingRepository:
    """Ordered collection of staged tasks plus the operations on it."""

    def __init__(
        self,
        board: BoardClient,
        config: StagingConfig | None = None,
        similarity_fn: Callable[[str, str], float] = similarity,
        enhancer: Callable[[StagedTask, datetime], StagedTask] = enhance_task,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[datetime], str] = _default_id,
    ) -> None:
        self.board = board
        self.config = config or StagingConfig()
        self._similarity = similarity_fn
        self._enhancer = enhancer
        self._clock = clock
        self._id_factory = id_factory
        self._tasks: dict[str, StagedTask] = {}
        self._pending: list[str] = []
        self._lock = asyncio.Lock()

    # -- reads -----------------------------------------------------------------

    @property
    def staged_tasks(self) -> list[StagedTask]:
        return list(self._tasks.values())

    @property
    def pending_enhancements(self) -> list[str]:
        return list(self._pending)

    def get(self, task_id: str) -> Optional[StagedTask]:
        return self._tasks.get(task_id)

    def __len__(self) -> int:
        return len(self._tasks)

    def find_duplicates(self, task: StagedTask) -> list[str]:
        """Ids of staged tasks whose titles are near-duplicates of ``task``'s, oldest first."""

        return find_duplicates(task, self._tasks.values(), self.config.duplicate_threshold, self._similarity)

    def preview_occurrences(self, window_start: datetime, window_end: datetime) -> list[Occurrence]:
        """Calendar preview of the staged tasks, capped by ``recurrence_max_iterations``."""

        return expand_tasks(self._tasks.values(), window_start, window_end, self.config.recurrence_max_iterations)

    def get_staging_stats(self) -> StagingStats:
        tasks = list(self._tasks.values())
        by_source: dict[str, int] = {}
        for task in tasks:
            by_source[task.source.value] = by_source.get(task.source.value, 0) + 1

        confidences = np.array([task.confidence for task in tasks], dtype=float)
        return StagingStats(
            total=len(tasks),
            high_confidence=int(np.sum(confidences >= self.config.high_confidence_threshold)),
            needs_review=sum(
                1
                for task in tasks
                if task.confidence < self.config.confidence_threshold or task.suggested_improvements
            ),
            duplicates=sum(1 for task in tasks if task.duplicate_of),
            by_source=by_source,
            average_confidence=float(confidences.mean()) if len(tasks) else 0.0,
        )

    # -- synchronous mutations ----------------------------------------------------

    def add_to_staging(self, candidate: Mapping[str, Any] | StagedTask) -> Optional[StagedTask]:
        """Stage a candidate and return the (not yet enhanced) record.

        Candidates without a usable title are logged and dropped; the caller
        gets ``None`` rather than an exception.
        """

        title = candidate.title if isinstance(candidate, StagedTask) else candidate.get("title")
        if not isinstance(title, str) or not title.strip():
            logger.warning("Rejected staged candidate with invalid title %r", title)
            return None

        task = coerce_candidate(candidate, self.config.default_confidence)
        now = self._clock()
        task.id = task.id or self._id_factory(now)
        task.staged_at = now
        task.created_at = now
        task.updated_at = now
        task.processed = False
        task.enhanced = False
        task.duplicate_of = None

        if self.config.duplicate_detection:
            duplicates = self.find_duplicates(task)
            if duplicates:
                original = self._tasks[duplicates[0]]
                task.duplicate_of = original.id
                task.suggested_improvements.append(
                    Improvement(
                        kind=ImprovementKind.SIMILAR_TASK,
                        message=f'Similar to existing task: "{original.title}"',
                        suggestion="Consider merging or adjusting to avoid duplication",
                        auto_fix=False,
                    )
                )

        task.detected_category = categorize(task_text(task.title, task.summary))

        self._tasks.pop(task.id, None)
        self._tasks[task.id] = task
        self._enforce_cap()

        if self.config.auto_enhancement and task.id in self._tasks and task.id not in self._pending:
            self._pending.append(task.id)

        logger.info("Staged task %s from %s: %r", task.id, task.source.value, task.title)
        return task

    def update_staged_task(self, task_id: str, patch: StagedTaskPatch) -> Optional[StagedTask]:
        task = self._tasks.get(task_id)
        if task is None:
            return None
        patch.apply(task)
        task.updated_at = self._clock()
        return task

    def remove_from_staging(self, task_id: str) -> None:
        task = self._tasks.pop(task_id, None)
        if task is None:
            return
        task.processed = True
        if task_id in self._pending:
            self._pending.remove(task_id)

    def clear_staging(self) -> None:
        for task in self._tasks.values():
            task.processed = True
        self._tasks.clear()
        self._pending.clear()

    def export_state(self) -> list[StagedTask]:
        """Capped, ordered snapshot for an external storage collaborator."""

        return [_copy_task(task) for task in list(self._tasks.values())[-self.config.max_staged :]]

    def load_state(self, tasks: Iterable[StagedTask]) -> None:
        self._tasks = {task.id: _copy_task(task) for task in tasks if not task.processed}
        self._pending = [task.id for task in self._tasks.values() if self.config.auto_enhancement and not task.enhanced]
        self._enforce_cap()

    def _enforce_cap(self) -> None:
        overflow = len(self._tasks) - self.config.max_staged
        if overflow <= 0:
            return
        for task_id in list(self._tasks)[:overflow]:
            logger.info("Staging full; dropping oldest staged task %s", task_id)
            self.remove_from_staging(task_id)

    # -- asynchronous operations -----------------------------------------------

    async def enhance(self, task_id: str) -> Optional[StagedTask]:
        """Run the enhancer on a staged task once; repeated calls are no-ops."""

        async with self._lock:
            return self._enhance_locked(task_id)

    def _enhance_locked(self, task_id: str) -> Optional[StagedTask]:
        if task_id in self._pending:
            self._pending.remove(task_id)
        task = self._tasks.get(task_id)
        if task is None or task.processed or task.enhanced:
            return task
        self._enhancer(task, self._clock())
        task.enhanced = True
        task.updated_at = self._clock()
        return task

    async def run_auto_enhancement(self) -> int:
        """Enhance every queued task in staging order; returns how many were enhanced."""

        enhanced = 0
        async with self._lock:
            while self._pending:
                task_id = self._pending[0]
                task = self._tasks.get(task_id)
                was_enhanced = task is not None and task.enhanced
                self._enhance_locked(task_id)
                if task is not None and not was_enhanced and task.enhanced:
                    enhanced += 1
        return enhanced

    async def process_to_board(self, task_id: str, board_id: str) -> bool:
        """Commit one staged task; on failure it stays staged and ``False`` is returned."""

        async with self._lock:
            return await self._process_locked(task_id, board_id)

    async def _process_locked(self, task_id: str, board_id: str) -> bool:
        task = self._tasks.get(task_id)
        if task is None:
            logger.warning("Cannot process unknown staged task %s", task_id)
            return False

        fields = resolve_task_fields(task, board_id)
        try:
            created = await self.board.create_task(fields)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to process staged task %s to board %s", task_id, board_id)
            return False

        created_id = created.get("id") if isinstance(created, dict) else None
        logger.info("Processed staged task %s to board %s as %s", task_id, board_id, created_id)
        self.remove_from_staging(task_id)
        return True

    async def bulk_process_tasks(self, task_ids: Iterable[str], board_id: str) -> int:
        """Commit tasks one after another; each failure is isolated. Returns the success count."""

        success_count = 0
        async with self._lock:
            for task_id in task_ids:
                if await self._process_locked(task_id, board_id):
                    success_count += 1
        logger.info("Bulk processed %d staged tasks to board %s", success_count, board_id)
        return success_count
