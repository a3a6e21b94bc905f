"""Runtime configuration for the staging pipeline.

Values default to the behaviour of the task board client and can be
overridden with ``TASKBOARD_*`` environment variables or a ``.env`` file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _trueish(v: str | None, default: bool) -> bool:
    if v is None or v == "":
        return default
    return v.lower() in ("1", "true", "yes", "on")


def _number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a {cast.__name__}, got {raw!r}") from exc


@dataclass(frozen=True)
class StagingConfig:
    auto_enhancement: bool = True
    duplicate_detection: bool = True
    duplicate_threshold: float = 0.7
    confidence_threshold: float = 0.6
    high_confidence_threshold: float = 0.8
    # Oldest staged tasks beyond this bound are dropped.
    max_staged: int = 50
    default_confidence: float = 0.5
    recurrence_max_iterations: int = 10_000


def load_config(env_file: str | None = None) -> StagingConfig:
    """Read configuration from the environment (after loading ``env_file`` if given)."""

    load_dotenv(env_file)
    defaults = StagingConfig()
    return StagingConfig(
        auto_enhancement=_trueish(os.getenv("TASKBOARD_AUTO_ENHANCEMENT"), defaults.auto_enhancement),
        duplicate_detection=_trueish(os.getenv("TASKBOARD_DUPLICATE_DETECTION"), defaults.duplicate_detection),
        duplicate_threshold=_number("TASKBOARD_DUPLICATE_THRESHOLD", defaults.duplicate_threshold, float),
        confidence_threshold=_number("TASKBOARD_CONFIDENCE_THRESHOLD", defaults.confidence_threshold, float),
        high_confidence_threshold=_number(
            "TASKBOARD_HIGH_CONFIDENCE_THRESHOLD", defaults.high_confidence_threshold, float
        ),
        max_staged=_number("TASKBOARD_MAX_STAGED", defaults.max_staged, int),
        default_confidence=_number("TASKBOARD_DEFAULT_CONFIDENCE", defaults.default_confidence, float),
        recurrence_max_iterations=_number(
            "TASKBOARD_RECURRENCE_MAX_ITERATIONS", defaults.recurrence_max_iterations, int
        ),
    )
