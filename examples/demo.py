"""Demo script for taskboard-engine."""

import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from taskboard_engine.adapters.csv_adapter import parse
from taskboard_engine.board import InMemoryBoardClient
from taskboard_engine.recurrence import expand_tasks
from taskboard_engine.schema import RecurrenceRule, Task
from taskboard_engine.staging import StagingRepository


async def main() -> None:
    repo = StagingRepository(board=InMemoryBoardClient())
    for candidate in parse("examples/sample_candidates.csv"):
        repo.add_to_staging(candidate)
    await repo.run_auto_enhancement()
    print("Staging:", repo.get_staging_stats())

    committed = await repo.bulk_process_tasks([t.id for t in repo.staged_tasks if not t.duplicate_of], "inbox")
    print("Committed:", committed)

    start = datetime(2025, 1, 5)
    gym = Task(
        id="gym",
        title="Gym",
        due_at=start,
        is_repeatable=True,
        recurrence_rule=RecurrenceRule(pattern="weekly", days_of_week=(0, 6)),
    )
    for occurrence in expand_tasks([gym], start, start + timedelta(days=13), repo.config.recurrence_max_iterations):
        print("Occurrence:", occurrence.occurrence_date.date(), occurrence.sequence_index)


if __name__ == "__main__":
    asyncio.run(main())
