"""Regression detection — compares run results to find new failures."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from previewshot.models.test_result import RunResult, TestResult

logger = logging.getLogger(__name__)


@dataclass
class Regression:
    test_id: str
    test_name: str
    previous_result: str
    current_result: str
    failure_reason: str | None = None
    diff_percent: float | None = None


def detect_regressions(previous: RunResult, current: RunResult) -> list[Regression]:
    """Compare two runs and find screenshots that regressed (pass -> fail/error).

    Matches by unique id, which is stable across runs for the same preview
    configuration and image index.
    """
    prev_by_id: dict[str, TestResult] = {r.test_id: r for r in previous.test_results}

    regressions = []
    for result in current.test_results:
        prev = prev_by_id.get(result.test_id)
        if prev and prev.result == "pass" and result.result in ("fail", "error"):
            regressions.append(Regression(
                test_id=result.test_id,
                test_name=result.test_name,
                previous_result=prev.result,
                current_result=result.result,
                failure_reason=result.failure_reason,
                diff_percent=result.diff_percent,
            ))

    if regressions:
        logger.warning("Detected %d regressions", len(regressions))
    return regressions
