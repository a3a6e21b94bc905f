from datetime import datetime, timedelta

import pytest

from taskboard_engine.enhancement import (
    Rule,
    categorize,
    contains_any,
    enhance_task,
    first_match,
    generate_labels,
    predict_duration,
    predict_energy,
    predict_priority,
    suggest_recurrence,
    task_text,
)
from taskboard_engine.schema import Category, EnergyLevel, ImprovementKind, Priority, StagedTask

NOW = datetime(2025, 1, 6, 8, 0)


@pytest.mark.parametrize(
    "title,minutes",
    [
        ("Call mom", 10),
        ("Quick review of slides", 10),
        ("Team meeting", 30),
        ("Write report", 45),
        ("Develop prototype", 60),
        ("Buy milk", 25),
    ],
)
def test_predict_duration(title, minutes):
    assert predict_duration(task_text(title)) == minutes


def test_predict_priority_and_energy():
    assert predict_priority(task_text("Fix login ASAP")) == Priority.URGENT
    assert predict_priority(task_text("Tax deadline")) == Priority.HIGH
    assert predict_priority(task_text("Maybe learn guitar")) == Priority.LOW
    assert predict_priority(task_text("Buy milk")) == Priority.MEDIUM

    assert predict_energy(task_text("Design poster")) == EnergyLevel.HIGH
    assert predict_energy(task_text("Organize inbox")) == EnergyLevel.LOW
    assert predict_energy(task_text("Buy milk")) == EnergyLevel.MEDIUM


@pytest.mark.parametrize(
    "title,summary,category",
    [
        ("Urgent meeting", "", Category.URGENT),
        ("Meeting with doctor", "", Category.WORK),
        ("Doctor", "book a check-up", Category.HEALTH),
        ("Read a book", "", Category.LEARNING),
        ("Write report", "", Category.CREATIVE),
        ("Email landlord", "", Category.ADMIN),
        ("Buy milk", None, Category.PERSONAL),
    ],
)
def test_categorize_first_matching_rule_wins(title, summary, category):
    assert categorize(task_text(title, summary)) == category


def test_generate_labels_adds_category_and_keywords_once():
    assert generate_labels("Write report", "writing due friday", Category.CREATIVE) == [
        "creative",
        "deadline",
        "writing",
    ]
    assert generate_labels("Buy milk", None, Category.PERSONAL) == []
    assert generate_labels("Phone call", "", "admin") == ["admin", "call"]


def test_rule_table_is_replaceable():
    rules = (Rule(contains_any("gym"), "fitness"),)
    assert first_match(rules, "gym at six", "other") == "fitness"
    assert first_match(rules, "groceries", "other") == "other"


@pytest.mark.parametrize(
    "text,pattern,days",
    [
        ("brunch every weekend", "weekly", (0, 6)),
        ("standup every weekday", "weekly", (1, 2, 3, 4, 5)),
        ("piano every monday and every thursday", "weekly", (1, 4)),
        ("daily journal", "daily", None),
        ("pay rent every month", "monthly", None),
    ],
)
def test_suggest_recurrence(text, pattern, days):
    rule = suggest_recurrence(text)
    assert rule.pattern == pattern
    assert rule.days_of_week == days


def test_suggest_recurrence_none_for_one_off():
    assert suggest_recurrence("buy milk") is None


def test_enhance_task_fills_only_advisory_fields():
    task = StagedTask(id="s1", title="Write report", detected_category=Category.CREATIVE)
    enhance_task(task, now=NOW)

    kinds = [item.kind for item in task.suggested_improvements]
    assert kinds == [
        ImprovementKind.DURATION_ESTIMATE,
        ImprovementKind.UNCLEAR_PRIORITY,
        ImprovementKind.ENERGY_MISMATCH,
        ImprovementKind.MISSING_CONTEXT,
    ]
    assert [item.auto_fix for item in task.suggested_improvements] == [True, True, True, False]
    assert task.predicted_duration == 45
    assert task.suggested_priority == Priority.MEDIUM
    assert task.suggested_energy == EnergyLevel.MEDIUM
    assert task.suggested_due_date == NOW + timedelta(days=3)
    assert task.suggested_labels == ["creative", "writing"]
    assert task.priority is None and task.estimate_min is None and task.energy is None
    assert task.enhanced


def test_enhance_task_never_overwrites_explicit_fields():
    task = StagedTask(
        id="s2",
        title="Call the bank",
        summary="Ask about the mortgage renewal letter",
        priority=Priority.HIGH,
        energy=EnergyLevel.LOW,
        estimate_min=15,
        due_at=NOW,
        labels=["finance"],
        suggested_labels=["call"],
    )
    enhance_task(task, now=NOW)

    assert task.suggested_improvements == []
    assert task.priority == Priority.HIGH
    assert task.estimate_min == 15
    assert task.suggested_priority is None
    assert task.predicted_duration is None
    assert task.suggested_due_date is None
    assert task.labels == ["finance"]
    assert task.suggested_labels == ["call"]


def test_enhance_task_suggests_recurrence_for_one_off_tasks():
    task = StagedTask(id="s3", title="Chick-fil-A every weekend", summary="Pick up dinner for the family")
    enhance_task(task, now=NOW)
    assert task.suggested_recurrence.days_of_week == (0, 6)
    assert ImprovementKind.RECURRENCE_DETECTED in [item.kind for item in task.suggested_improvements]


def test_enhance_task_keeps_supplied_advisory_values():
    task = StagedTask(
        id="s4",
        title="Draft proposal",
        suggested_priority=Priority.HIGH,
        suggested_energy=EnergyLevel.LOW,
        predicted_duration=90,
        suggested_due_date=NOW + timedelta(days=10),
        suggested_labels=["client"],
    )
    enhance_task(task, now=NOW)

    assert task.predicted_duration == 90
    assert task.suggested_priority == Priority.HIGH
    assert task.suggested_energy == EnergyLevel.LOW
    assert task.suggested_due_date == NOW + timedelta(days=10)
    assert task.suggested_labels[0] == "client"
    assert "Suggested: 90 minutes" in [item.suggestion for item in task.suggested_improvements]
