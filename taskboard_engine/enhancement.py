"""Heuristic enrichment of staged tasks.

Every prediction is an ordered rule table evaluated against the lower-cased
title and summary; the first matching rule wins. Predictions only ever land
in the advisory ``suggested_*`` fields of a staged task.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Sequence

from taskboard_engine.schema import (
    Category,
    EnergyLevel,
    Improvement,
    ImprovementKind,
    Priority,
    RecurrenceRule,
    StagedTask,
    dedupe,
)

MIN_SUMMARY_LENGTH = 20


@dataclass(frozen=True)
class Rule:
    predicate: Callable[[str], bool]
    result: Any


def contains_any(*keywords: str) -> Callable[[str], bool]:
    def predicate(text: str) -> bool:
        return any(keyword in text for keyword in keywords)

    return predicate


def first_match(rules: Sequence[Rule], text: str, default: Any) -> Any:
    for rule in rules:
        if rule.predicate(text):
            return rule.result
    return default


def task_text(title: str | None, summary: str | None = None) -> str:
    return f"{title or ''} {summary or ''}".lower()


DURATION_RULES = (
    Rule(contains_any("call", "email", "quick"), 10),
    Rule(contains_any("meeting", "review"), 30),
    Rule(contains_any("write", "plan"), 45),
    Rule(contains_any("develop", "create"), 60),
)
DEFAULT_DURATION = 25

PRIORITY_RULES = (
    Rule(contains_any("urgent", "asap"), Priority.URGENT),
    Rule(contains_any("important", "deadline"), Priority.HIGH),
    Rule(contains_any("someday", "maybe"), Priority.LOW),
)

ENERGY_RULES = (
    Rule(contains_any("create", "design", "brainstorm"), EnergyLevel.HIGH),
    Rule(contains_any("email", "organize", "call"), EnergyLevel.LOW),
)

# Order is significant: urgency markers beat everything else.
CATEGORY_RULES = (
    Rule(contains_any("urgent", "asap", "emergency"), Category.URGENT),
    Rule(contains_any("meeting", "project", "deadline", "client", "work", "office"), Category.WORK),
    Rule(contains_any("doctor", "health", "exercise", "medication", "appointment"), Category.HEALTH),
    Rule(contains_any("learn", "study", "course", "read", "research"), Category.LEARNING),
    Rule(contains_any("design", "create", "write", "brainstorm", "art"), Category.CREATIVE),
    Rule(contains_any("email", "call", "schedule", "organize", "file", "update"), Category.ADMIN),
)

LABEL_RULES = (
    Rule(contains_any("meeting"), "meeting"),
    Rule(contains_any("email"), "communication"),
    Rule(contains_any("deadline", "due"), "deadline"),
    Rule(contains_any("call", "phone"), "call"),
    Rule(contains_any("research"), "research"),
    Rule(contains_any("design"), "design"),
    Rule(contains_any("write", "writing"), "writing"),
)

DUE_DATE_OFFSETS = {
    Priority.URGENT: timedelta(days=0),
    Priority.HIGH: timedelta(days=1),
    Priority.MEDIUM: timedelta(days=3),
    Priority.LOW: timedelta(days=7),
}

_DAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


def _every_day_name(text: str) -> Optional[RecurrenceRule]:
    days = [index for index, name in enumerate(_DAY_NAMES) if re.search(rf"\bevery {name}s?\b", text)]
    return RecurrenceRule(pattern="weekly", days_of_week=tuple(days)) if days else None


RECURRENCE_RULES = (
    Rule(contains_any("every weekend"), RecurrenceRule(pattern="weekly", days_of_week=(0, 6))),
    Rule(contains_any("every weekday"), RecurrenceRule(pattern="weekly", days_of_week=(1, 2, 3, 4, 5))),
    Rule(contains_any("every day", "daily"), RecurrenceRule(pattern="daily")),
    Rule(contains_any("every week", "weekly"), RecurrenceRule(pattern="weekly")),
    Rule(contains_any("every month", "monthly"), RecurrenceRule(pattern="monthly")),
)


def predict_duration(text: str) -> int:
    return first_match(DURATION_RULES, text, DEFAULT_DURATION)


def predict_priority(text: str) -> Priority:
    return first_match(PRIORITY_RULES, text, Priority.MEDIUM)


def predict_energy(text: str) -> EnergyLevel:
    return first_match(ENERGY_RULES, text, EnergyLevel.MEDIUM)


def categorize(text: str) -> Category:
    return first_match(CATEGORY_RULES, text, Category.PERSONAL)


def generate_labels(title: str, summary: str | None, category: Category | str | None) -> list[str]:
    """Category label (unless personal) followed by every matching keyword label."""

    text = task_text(title, summary)
    labels = []
    category_value = category.value if isinstance(category, Category) else category
    if category_value and category_value != Category.PERSONAL.value:
        labels.append(category_value)
    labels.extend(rule.result for rule in LABEL_RULES if rule.predicate(text))
    return dedupe(labels)


def suggest_recurrence(text: str) -> Optional[RecurrenceRule]:
    """Detect a repeat phrase such as "every weekend" or "every monday"."""

    by_name = _every_day_name(text)
    if by_name is not None:
        return by_name
    return first_match(RECURRENCE_RULES, text, None)


def suggest_due_date(priority: Priority, now: datetime) -> datetime:
    return now + DUE_DATE_OFFSETS.get(priority, DUE_DATE_OFFSETS[Priority.MEDIUM])


def enhance_task(task: StagedTask, now: datetime | None = None) -> StagedTask:
    """Fill advisory fields of ``task`` in place and record what was missing.

    Explicit fields (estimate, priority, energy, due date, labels) are never
    touched, and advisory values the caller already supplied win over the
    keyword guesses. Returns the same task for chaining.
    """

    now = now or datetime.now(timezone.utc)
    text = task_text(task.title, task.summary)
    improvements: list[Improvement] = []

    if not task.estimate_min:
        predicted = task.predicted_duration or predict_duration(text)
        task.predicted_duration = predicted
        improvements.append(
            Improvement(
                kind=ImprovementKind.DURATION_ESTIMATE,
                message="No time estimate provided",
                suggestion=f"Suggested: {predicted} minutes",
                auto_fix=True,
            )
        )

    if task.priority is None:
        predicted_priority = task.suggested_priority or predict_priority(text)
        task.suggested_priority = predicted_priority
        improvements.append(
            Improvement(
                kind=ImprovementKind.UNCLEAR_PRIORITY,
                message="Priority not specified",
                suggestion=f"Suggested: {predicted_priority.value}",
                auto_fix=True,
            )
        )

    if task.energy is None:
        predicted_energy = task.suggested_energy or predict_energy(text)
        task.suggested_energy = predicted_energy
        improvements.append(
            Improvement(
                kind=ImprovementKind.ENERGY_MISMATCH,
                message="Energy level not specified",
                suggestion=f"Suggested: {predicted_energy.value}",
                auto_fix=True,
            )
        )

    if not task.summary or len(task.summary) < MIN_SUMMARY_LENGTH:
        improvements.append(
            Improvement(
                kind=ImprovementKind.MISSING_CONTEXT,
                message="Task could use more detail",
                suggestion="Add information about what needs to be done and why",
                auto_fix=False,
            )
        )

    if task.due_at is None and task.suggested_due_date is None:
        task.suggested_due_date = suggest_due_date(task.priority or task.suggested_priority or Priority.MEDIUM, now)

    if not task.is_repeatable:
        recurrence = task.suggested_recurrence or suggest_recurrence(text)
        if recurrence is not None:
            task.suggested_recurrence = recurrence
            improvements.append(
                Improvement(
                    kind=ImprovementKind.RECURRENCE_DETECTED,
                    message="Task sounds like it repeats",
                    suggestion=f"Suggested: {recurrence.pattern}",
                    auto_fix=True,
                )
            )

    task.suggested_improvements.extend(improvements)
    task.suggested_labels = dedupe([*task.suggested_labels, *generate_labels(task.title, task.summary, task.detected_category)])
    task.enhanced = True
    return task
