"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from previewshot.models.config import ScreenshotTestConfig
from previewshot.models.test_result import RunResult

from .html_report import generate_html_report
from .json_report import generate_json_report
from .regression_detector import detect_regressions

logger = logging.getLogger(__name__)


def generate_basic_summary(run_result: RunResult) -> str:
    """One-paragraph plain-text summary of a run."""
    mode = "Recorded" if run_result.recording_mode else "Verified"
    parts = [
        f"{mode} {run_result.total_tests} screenshots in {run_result.duration_seconds:.1f}s.",
        f"Results: {run_result.passed} passed, {run_result.failed} failed, "
        f"{run_result.skipped} skipped, {run_result.errors} errors.",
    ]
    if run_result.engine_error:
        parts.append(f"Engine error: {run_result.engine_error}")
    failures = [r for r in run_result.test_results if r.result == "fail"]
    if failures:
        parts.append(f"Key failures: {', '.join(f.test_name for f in failures[:5])}")
    return " ".join(parts)


class Reporter:
    """Generates reports from a finished run."""

    def __init__(self, config: ScreenshotTestConfig):
        self.config = config

    def generate_reports(
        self,
        run_result: RunResult,
        previous_run: RunResult | None = None,
        output_dir: Path | None = None,
    ) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        out_dir = output_dir or Path(self.config.report_output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        generated = {}
        logger.debug("Report output directory: %s", out_dir)

        if not run_result.summary:
            run_result.summary = generate_basic_summary(run_result)

        regressions = []
        if previous_run:
            logger.debug("Detecting regressions against previous run %s", previous_run.run_id)
            regressions = detect_regressions(previous_run, run_result)

        if "html" in self.config.report_formats:
            path = out_dir / f"report_{run_result.run_id}.html"
            generate_html_report(run_result, regressions, path)
            generated["html"] = str(path)
            logger.info("HTML report: %s", path)

        if "json" in self.config.report_formats:
            path = out_dir / f"report_{run_result.run_id}.json"
            generate_json_report(run_result, regressions, path)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        return generated
