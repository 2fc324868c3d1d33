"""Report aggregation — turns execution events into a RunResult."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from previewshot.engine.descriptors import (
    DIFF_IMAGE_PATH,
    DIFF_PERCENT,
    METHOD_NAME,
    NEW_IMAGE_PATH,
    PREVIEW_NAME,
    REF_IMAGE_PATH,
)
from previewshot.engine.execution import ERROR, FAILURE, SUCCESS, ExecutionResult
from previewshot.engine.listener import ExecutionListener
from previewshot.engine.node import TestDescriptor
from previewshot.models.test_result import ReportEntry, RunResult, TestResult

logger = logging.getLogger(__name__)

_STATUS_TO_RESULT = {SUCCESS: "pass", FAILURE: "fail", ERROR: "error"}


def _iso(ts: float) -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(ts))


class ReportAggregator(ExecutionListener):
    """Collects lifecycle events and reporting entries for a single run.

    Events may arrive for nodes that never finish (or finish without any
    entries); such gaps show up as missing optional fields, never as errors.
    """

    def __init__(self, run_id: str, recording_mode: bool = False, clock: Callable[[], float] = time.time):
        self.run_id = run_id
        self.recording_mode = recording_mode
        self.clock = clock
        self.root: Optional[TestDescriptor] = None
        self.nodes: dict[str, TestDescriptor] = {}
        self.started: dict[str, float] = {}
        self.ended: dict[str, float] = {}
        self.finished: dict[str, ExecutionResult] = {}
        self.skipped: dict[str, str] = {}
        self.entries: dict[str, list[ReportEntry]] = {}

    def _register(self, node: TestDescriptor) -> str:
        key = str(node.unique_id)
        self.nodes.setdefault(key, node)
        if node.is_root and self.root is None:
            self.root = node
        return key

    def dynamic_test_registered(self, node):
        self._register(node)

    def execution_started(self, node):
        self.started[self._register(node)] = self.clock()

    def execution_skipped(self, node, reason):
        key = self._register(node)
        self.skipped[key] = reason or ""

    def execution_finished(self, node, result):
        key = self._register(node)
        self.ended[key] = self.clock()
        self.finished[key] = result

    def reporting_entry_published(self, node, entry):
        key = self._register(node)
        self.entries.setdefault(key, []).append(
            ReportEntry(timestamp=_iso(self.clock()), values=dict(entry))
        )

    def _skip_reason(self, node: TestDescriptor) -> Optional[str]:
        current: Optional[TestDescriptor] = node
        while current is not None:
            key = str(current.unique_id)
            if key in self.skipped:
                reason = self.skipped[key]
                return reason if current is node else f"parent was skipped: {reason}"
            current = current.parent
        return None

    def _values(self, key: str) -> dict[str, str]:
        merged: dict[str, str] = {}
        for entry in self.entries.get(key, []):
            merged.update(entry.values)
        return merged

    def _test_result(self, key: str, node: TestDescriptor) -> TestResult:
        values = self._values(key)
        start = self.started.get(key)
        end = self.ended.get(key, start)
        duration = round(end - start, 3) if start is not None and end is not None else 0.0

        skip_reason = self._skip_reason(node)
        result = self.finished.get(key)
        failure_reason = None
        if skip_reason is not None:
            status = "skip"
            failure_reason = skip_reason
        elif result is None:
            status = "error"
            failure_reason = "Test did not finish"
        else:
            status = _STATUS_TO_RESULT.get(result.status, "error")
            if result.error is not None:
                failure_reason = str(result.error) or type(result.error).__name__

        diff_percent = None
        if DIFF_PERCENT in values:
            try:
                diff_percent = float(values[DIFF_PERCENT])
            except ValueError:
                logger.debug("Ignoring non-numeric diff percent %r", values[DIFF_PERCENT])

        return TestResult(
            test_id=key,
            test_name=node.display_name,
            class_name=node.class_name,
            method_name=values.get(METHOD_NAME, node.method_name),
            preview_name=values.get(PREVIEW_NAME, ""),
            result=status,
            duration_seconds=duration,
            failure_reason=failure_reason,
            diff_percent=diff_percent,
            ref_image_path=values.get(REF_IMAGE_PATH),
            new_image_path=values.get(NEW_IMAGE_PATH),
            diff_image_path=values.get(DIFF_IMAGE_PATH),
            report_entries=self.entries.get(key, []),
        )

    def _failed_without_tests(self, key: str, node: TestDescriptor) -> bool:
        """A container that failed before any of its tests existed, e.g. a render failure."""
        result = self.finished.get(key)
        if node.is_root or result is None or result.status == SUCCESS:
            return False
        return not any(n.is_test for n in node.walk())

    def build_run_result(self) -> RunResult:
        test_results = []
        for key, node in self.nodes.items():
            if node.is_test:
                test_results.append(self._test_result(key, node))
            elif self._failed_without_tests(key, node):
                result = self._test_result(key, node)
                result.test_name = f"{node.display_name} ({node.unique_id.last_value})"
                test_results.append(result)

        engine_error = None
        engine_id = ""
        started_at = completed_at = ""
        duration = 0.0
        if self.root is not None:
            root_key = str(self.root.unique_id)
            engine_id = self.root.unique_id.engine_id
            root_result = self.finished.get(root_key)
            if root_result is not None and root_result.status != SUCCESS:
                engine_error = str(root_result.error)
            if root_key in self.started:
                started_at = _iso(self.started[root_key])
                end = self.ended.get(root_key, self.started[root_key])
                completed_at = _iso(end)
                duration = round(end - self.started[root_key], 2)

        return RunResult(
            run_id=self.run_id,
            engine_id=engine_id,
            started_at=started_at,
            completed_at=completed_at,
            recording_mode=self.recording_mode,
            total_tests=len(test_results),
            passed=sum(1 for r in test_results if r.result == "pass"),
            failed=sum(1 for r in test_results if r.result == "fail"),
            skipped=sum(1 for r in test_results if r.result == "skip"),
            errors=sum(1 for r in test_results if r.result == "error"),
            duration_seconds=duration,
            engine_error=engine_error,
            test_results=test_results,
        )
