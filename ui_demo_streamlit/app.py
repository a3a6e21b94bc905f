"""Streamlit demo UI for taskboard-engine."""

from __future__ import annotations

import asyncio
import tempfile
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any

from taskboard_engine.adapters import csv_adapter, json_adapter
from taskboard_engine.board import InMemoryBoardClient
from taskboard_engine.config import load_config
from taskboard_engine.recurrence import generate_occurrences
from taskboard_engine.schema import RecurrenceRule
from taskboard_engine.staging import StagingRepository

PATTERNS = ["daily", "weekly", "monthly", "custom"]
DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _parse_candidates_from_path(file_path: str) -> list:
    suffix = Path(file_path).suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(file_path)
    if suffix == ".json":
        return json_adapter.load_candidates(file_path)
    raise ValueError("Unsupported file type. Please use .csv or .json")


def _parse_uploaded(uploaded_file) -> list:
    suffix = Path(uploaded_file.name).suffix.lower()
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as handle:
        handle.write(uploaded_file.getbuffer())
        temp_path = handle.name
    return _parse_candidates_from_path(temp_path)


def _task_row(task) -> dict[str, Any]:
    return {
        "title": task.title,
        "source": task.source.value,
        "confidence": round(task.confidence, 2),
        "category": task.detected_category.value,
        "duplicate_of": task.duplicate_of or "",
        "priority": (task.priority or task.suggested_priority).value if (task.priority or task.suggested_priority) else "",
        "minutes": task.estimate_min or task.predicted_duration,
        "labels": ", ".join(task.suggested_labels),
        "improvements": ", ".join(item.kind.value for item in task.suggested_improvements),
    }


async def _stage(candidates: list) -> StagingRepository:
    repo = StagingRepository(board=InMemoryBoardClient(), config=load_config())
    for candidate in candidates:
        repo.add_to_staging(candidate)
    await repo.run_auto_enhancement()
    return repo


def run_staging(candidates: list) -> dict[str, Any]:
    """Stage and enhance candidates and return a UI-friendly result payload."""

    repo = asyncio.run(_stage(candidates))
    return {
        "stats": repo.get_staging_stats(),
        "rows": [_task_row(task) for task in repo.staged_tasks],
    }


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Taskboard Engine Demo", layout="wide")
    st.title("Taskboard Engine - Streamlit Demo")

    with st.sidebar:
        st.header("Staging")
        uploaded = st.file_uploader("Upload task candidates", type=["csv", "json"])
        use_demo = st.checkbox("Load demo candidates", value=True)

        st.header("Recurrence")
        pattern = st.selectbox("Pattern", options=PATTERNS, index=1)
        interval = st.number_input("Interval", min_value=1, max_value=12, value=1, step=1)
        days = st.multiselect("Days of week", options=DAY_NAMES, default=["Sun", "Sat"])
        count = st.number_input("Count (0 = unlimited)", min_value=0, max_value=500, value=0, step=1)
        base_day = st.date_input("First due date", value=date(2025, 1, 5))
        window_days = st.slider("Window length (days)", min_value=1, max_value=120, value=14)
        run = st.button("Run engine", type="primary")

    if not run:
        st.info("Configure inputs in the sidebar and click **Run engine**.")
        return

    try:
        if use_demo:
            candidates = csv_adapter.parse("examples/sample_candidates.csv")
            data_source = "demo candidates (examples/sample_candidates.csv)"
        elif uploaded is not None:
            candidates = _parse_uploaded(uploaded)
            data_source = f"uploaded file ({uploaded.name})"
        else:
            st.error("Please upload a CSV/JSON file or enable 'Load demo candidates'.")
            return

        result = run_staging(candidates)
        st.success(f"Staged {result['stats'].total} of {len(candidates)} candidates from {data_source}.")

        st.subheader("A) Staging Summary")
        stats = result["stats"]
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Staged", stats.total)
        c2.metric("High confidence", stats.high_confidence)
        c3.metric("Needs review", stats.needs_review)
        c4.metric("Duplicates", stats.duplicates)
        st.write(f"Average confidence: {stats.average_confidence:.2f}")
        st.table([stats.by_source])

        st.subheader("B) Staged Tasks")
        st.table(result["rows"])

        st.subheader("C) Occurrences")
        rule = RecurrenceRule(
            pattern=pattern,
            interval=int(interval),
            days_of_week=tuple(DAY_NAMES.index(day) for day in days) or None,
            count=int(count) or None,
        )
        base = datetime.combine(base_day, time(9, 0))
        dates = generate_occurrences(
            base, rule, base, base + timedelta(days=int(window_days)), load_config().recurrence_max_iterations
        )
        st.write([d.strftime("%a %Y-%m-%d") for d in dates] or "No occurrences in window.")

    except ValueError as exc:
        st.error(f"Input error: {exc}")
    except Exception:
        st.error("Something went wrong while running the demo. Please verify the input format.")


if __name__ == "__main__":
    main()
