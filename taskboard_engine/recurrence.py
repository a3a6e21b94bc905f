"""Recurring task schedule expansion."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from taskboard_engine.schema import Occurrence, RecurrenceRule, Task

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 10_000
MONTH_DAYS = 30


def _sunday_weekday(value: datetime) -> int:
    # Python's weekday() is Monday=0; rules use Sunday=0.
    return (value.weekday() + 1) % 7


def _normalize_days(days: Optional[Iterable[int]]) -> list[int]:
    if not days:
        return []
    return sorted({int(day) for day in days if 0 <= int(day) <= 6})


def _step_weekdays(current: datetime, days: list[int], interval: int) -> datetime:
    weekday = _sunday_weekday(current)
    later = [day for day in days if day > weekday]
    if later:
        return current + timedelta(days=later[0] - weekday)

    # Wrap into the next week, skipping interval - 1 extra weeks.
    offset = (7 - weekday) + days[0] + 7 * (interval - 1)
    return current + timedelta(days=offset)


def next_occurrence(current: datetime, rule: RecurrenceRule) -> datetime:
    """Return the date one step after ``current`` under ``rule``."""

    pattern = (rule.pattern or "").strip().lower()
    interval = rule.interval

    if pattern == "daily":
        return current + timedelta(days=interval)
    if pattern == "weekly":
        days = _normalize_days(rule.days_of_week)
        if days:
            return _step_weekdays(current, days, interval)
        return current + timedelta(days=7 * interval)
    if pattern == "monthly":
        return current + timedelta(days=MONTH_DAYS * interval)

    return current + timedelta(days=7)


def _first_candidate(base: datetime, rule: RecurrenceRule) -> datetime:
    days = _normalize_days(rule.days_of_week) if (rule.pattern or "").strip().lower() == "weekly" else []
    if days and _sunday_weekday(base) not in days:
        # The base date only anchors the series; move onto a listed weekday.
        weekday = _sunday_weekday(base)
        later = [day for day in days if day > weekday]
        offset = later[0] - weekday if later else (7 - weekday) + days[0]
        return base + timedelta(days=offset)
    return base


def generate_occurrences(
    base_due_date: datetime,
    rule: RecurrenceRule,
    window_start: datetime,
    window_end: datetime,
    max_iterations: int = MAX_ITERATIONS,
) -> list[datetime]:
    """Expand ``rule`` from ``base_due_date`` into dates inside [window_start, window_end].

    Occurrences before the window still count towards ``rule.count``. The
    expansion stops at the window end, the rule's end date or count, a step
    that does not move forward, or after ``max_iterations`` steps.
    """

    occurrences: list[datetime] = []
    if window_end < window_start:
        return occurrences

    current = _first_candidate(base_due_date, rule)
    consumed = 0

    for _ in range(max_iterations):
        if current > window_end:
            break
        if rule.end_date is not None and current > rule.end_date:
            break
        if rule.count is not None and consumed >= rule.count:
            break

        if current >= window_start:
            occurrences.append(current)
        consumed += 1

        following = next_occurrence(current, rule)
        if following <= current:
            logger.debug("Recurrence rule %r does not advance; stopping expansion", rule)
            break
        current = following
    else:
        logger.debug("Recurrence expansion hit the %d step cap for rule %r", max_iterations, rule)

    return occurrences


def expand_task(
    task: Task,
    window_start: datetime,
    window_end: datetime,
    max_iterations: int = MAX_ITERATIONS,
) -> list[Occurrence]:
    """Return the occurrences of a single task inside the window."""

    if task.due_at is None:
        return []

    if not task.is_repeatable or task.recurrence_rule is None:
        if window_start <= task.due_at <= window_end:
            return [Occurrence(task.id, task.due_at, 0)]
        return []

    dates = generate_occurrences(task.due_at, task.recurrence_rule, window_start, window_end, max_iterations)
    return [Occurrence(task.id, date, index) for index, date in enumerate(dates)]


def expand_tasks(
    tasks: Iterable[Task],
    window_start: datetime,
    window_end: datetime,
    max_iterations: int = MAX_ITERATIONS,
) -> list[Occurrence]:
    """Expand every task for a calendar range, ordered by date then task id."""

    occurrences: list[Occurrence] = []
    for task in tasks:
        occurrences.extend(expand_task(task, window_start, window_end, max_iterations))
    return sorted(occurrences, key=lambda occ: (occ.occurrence_date, occ.source_task_id, occ.sequence_index))
