import json
from datetime import datetime, timezone

import pytest

from taskboard_engine.adapters.csv_adapter import parse as parse_csv
from taskboard_engine.adapters.json_adapter import dump, load_candidates
from taskboard_engine.adapters.json_adapter import parse as parse_json
from taskboard_engine.schema import (
    Improvement,
    ImprovementKind,
    Priority,
    RecurrenceRule,
    Source,
    StagedTask,
)


def test_csv_parse_success(tmp_path):
    path = tmp_path / "tasks.csv"
    path.write_text(
        "title,summary,priority,energy,estimate_min,due_at,labels,confidence\n"
        "Write report,Q3 numbers,high,,45,2025-01-10T17:00:00,work; writing,0.8\n"
        "Buy milk,,,,,,,\n",
        encoding="utf-8",
    )
    candidates = parse_csv(str(path))
    assert len(candidates) == 2
    assert candidates[0]["priority"] == "HIGH"
    assert candidates[0]["labels"] == ["work", "writing"]
    assert candidates[0]["due_at"] == datetime(2025, 1, 10, 17, 0)
    assert candidates[1] == {"title": "Buy milk", "source": "import"}


def test_csv_parse_missing_title(tmp_path):
    path = tmp_path / "tasks.csv"
    path.write_text("title,priority\n ,HIGH\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Row 2"):
        parse_csv(str(path))


def test_csv_parse_invalid_priority(tmp_path):
    path = tmp_path / "tasks.csv"
    path.write_text("title,priority\nBuy milk,whenever\n", encoding="utf-8")
    with pytest.raises(ValueError):
        parse_csv(str(path))


def test_json_round_trip_keeps_dates_and_advisory_fields(tmp_path):
    task = StagedTask(
        id="staged_1",
        title="Gym",
        priority=Priority.HIGH,
        due_at=datetime(2025, 1, 5, 9, 0, tzinfo=timezone.utc),
        is_repeatable=True,
        recurrence_rule=RecurrenceRule(pattern="weekly", days_of_week=(0, 6), end_date=datetime(2025, 3, 1)),
        source=Source.VOICE,
        confidence=0.8,
        staged_at=datetime(2025, 1, 4, 12, 0, tzinfo=timezone.utc),
        suggested_improvements=[Improvement(ImprovementKind.MISSING_CONTEXT, "Task could use more detail")],
        predicted_duration=25,
        suggested_labels=["health"],
    )
    path = tmp_path / "staging.json"
    dump([task], str(path))

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw[0]["due_at"] == "2025-01-05T09:00:00+00:00"
    assert raw[0]["recurrence_rule"]["days_of_week"] == [0, 6]

    (restored,) = parse_json(str(path))
    assert restored == task


def test_json_parse_malformed(tmp_path):
    path = tmp_path / "staging.json"
    path.write_text(json.dumps([{"id": "a", "title": "Gym", "staged_at": "bad"}]), encoding="utf-8")
    with pytest.raises(ValueError, match="malformed timestamp"):
        parse_json(str(path))


def test_json_parse_requires_list(tmp_path):
    path = tmp_path / "staging.json"
    path.write_text(json.dumps({"id": "a"}), encoding="utf-8")
    with pytest.raises(ValueError):
        parse_json(str(path))


def test_load_candidates_accepts_proposal_object(tmp_path):
    path = tmp_path / "proposal.json"
    payload = {"tasks": [{"title": "Call mom", "confidence": 0.9}], "metadata": {"totalTasks": 1}}
    path.write_text(json.dumps(payload), encoding="utf-8")
    assert load_candidates(str(path)) == [{"title": "Call mom", "confidence": 0.9}]


def test_load_candidates_rejects_scalars(tmp_path):
    path = tmp_path / "proposal.json"
    path.write_text(json.dumps(["Call mom"]), encoding="utf-8")
    with pytest.raises(ValueError, match="Item 1"):
        load_candidates(str(path))
