"""CSV adapter for importing task candidates into staging."""

from __future__ import annotations

import csv

from taskboard_engine.schema import Source, parse_datetime, parse_energy, parse_positive_int, parse_priority

_REQUIRED_FIELDS = {"title"}


def _parse_row(row: dict, row_number: int) -> dict:
    missing = [field for field in _REQUIRED_FIELDS if not (row.get(field) or "").strip()]
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    candidate: dict = {"title": row["title"].strip(), "source": Source.IMPORT.value}

    summary = (row.get("summary") or "").strip()
    if summary:
        candidate["summary"] = summary

    for name, parser in (("priority", parse_priority), ("energy", parse_energy)):
        raw = (row.get(name) or "").strip()
        if raw:
            value = parser(raw)
            if value is None:
                raise ValueError(f"Row {row_number}: invalid {name} '{raw}'")
            candidate[name] = value.value

    estimate_raw = (row.get("estimate_min") or "").strip()
    if estimate_raw:
        estimate = parse_positive_int(estimate_raw)
        if estimate is None:
            raise ValueError(f"Row {row_number}: invalid estimate_min")
        candidate["estimate_min"] = estimate

    due_raw = (row.get("due_at") or "").strip()
    if due_raw:
        try:
            candidate["due_at"] = parse_datetime(due_raw)
        except Exception as exc:  # noqa: BLE001
            raise ValueError(f"Row {row_number}: malformed due_at") from exc

    labels_raw = (row.get("labels") or "").strip()
    if labels_raw:
        candidate["labels"] = [label.strip() for label in labels_raw.split(";") if label.strip()]

    confidence_raw = (row.get("confidence") or "").strip()
    if confidence_raw:
        try:
            candidate["confidence"] = float(confidence_raw)
        except Exception as exc:  # noqa: BLE001
            raise ValueError(f"Row {row_number}: invalid confidence") from exc

    return candidate


def parse(file_path: str) -> list[dict]:
    """Parse a CSV file into staging candidates tagged with the ``import`` source.

    Labels are ``;``-separated. Dates are ISO-8601.
    """

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        candidates: list[dict] = []
        for row_number, row in enumerate(reader, start=2):
            candidates.append(_parse_row(row, row_number))
        return candidates
