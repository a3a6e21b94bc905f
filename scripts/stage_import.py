"""Stage task candidates from a CSV/JSON file and report staging stats."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from taskboard_engine.adapters import csv_adapter, json_adapter
from taskboard_engine.board import InMemoryBoardClient
from taskboard_engine.config import load_config
from taskboard_engine.staging import StagingRepository


def _load_candidates(path: Path):
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(str(path))
    if suffix == ".json":
        return json_adapter.load_candidates(str(path))
    raise ValueError("Unsupported input format, expected .csv or .json")


async def _run(args: argparse.Namespace) -> dict:
    config = load_config(args.env_file)
    board = InMemoryBoardClient()
    repo = StagingRepository(board=board, config=config)

    for candidate in _load_candidates(Path(args.data)):
        repo.add_to_staging(candidate)
    enhanced = await repo.run_auto_enhancement()

    report = {"enhanced": enhanced, "stats": asdict(repo.get_staging_stats())}
    if args.commit:
        ids = [task.id for task in repo.staged_tasks if not task.duplicate_of]
        report["committed"] = await repo.bulk_process_tasks(ids, args.board)
        report["board"] = await board.fetch_board(args.board)

    if args.state:
        json_adapter.dump(repo.export_state(), args.state)
    return report


def main() -> None:
    parser = argparse.ArgumentParser(description="Stage task candidates and print staging stats")
    parser.add_argument("--data", required=True, help="Path to CSV/JSON candidates file")
    parser.add_argument("--board", default="inbox", help="Board id used with --commit")
    parser.add_argument("--commit", action="store_true", help="Commit non-duplicate tasks to an in-memory board")
    parser.add_argument("--state", help="Write the remaining staged tasks to this JSON file")
    parser.add_argument("--env-file", help="Optional .env file with TASKBOARD_* settings")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    report = asyncio.run(_run(args))
    print(json.dumps(report, indent=2, default=str))


if __name__ == "__main__":
    main()
