"""Test result data structures produced by the report aggregator."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ReportEntry(BaseModel):
    timestamp: str  # ISO timestamp
    values: dict[str, str] = Field(default_factory=dict)


class TestResult(BaseModel):
    test_id: str  # unique id of the leaf node
    test_name: str  # display name
    class_name: str = ""
    method_name: str = ""
    preview_name: str = ""
    result: str  # pass, fail, skip, error
    duration_seconds: float = 0.0
    failure_reason: Optional[str] = None
    diff_percent: Optional[float] = None
    ref_image_path: Optional[str] = None
    new_image_path: Optional[str] = None
    diff_image_path: Optional[str] = None
    report_entries: list[ReportEntry] = Field(default_factory=list)


class RunResult(BaseModel):
    run_id: str
    engine_id: str = ""
    started_at: str
    completed_at: str = ""
    recording_mode: bool = False
    total_tests: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    duration_seconds: float = 0.0
    engine_error: Optional[str] = None
    test_results: list[TestResult] = Field(default_factory=list)
    summary: str = ""
