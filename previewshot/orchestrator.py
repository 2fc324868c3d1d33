"""Pipeline orchestrator — coordinates discovery, execution and reporting."""

from __future__ import annotations

import json
import logging
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

from previewshot.discovery.selectors import DirectorySelector, ModuleSelector, Selector
from previewshot.engine.descriptors import EngineDescriptor
from previewshot.engine.engine import PreviewScreenshotTestEngine
from previewshot.engine.listener import CompositeListener, ExecutionListener, LoggingListener
from previewshot.models.config import ScreenshotTestConfig
from previewshot.models.test_result import RunResult
from previewshot.renderer.renderer import RendererProtocol
from previewshot.reporter.aggregator import ReportAggregator
from previewshot.reporter.reporter import Reporter, generate_basic_summary
from previewshot.reporter.xml_report import XmlReportListener

logger = logging.getLogger(__name__)


class Orchestrator:
    """Coordinates a full screenshot run: discover, execute, report."""

    def __init__(
        self,
        config: ScreenshotTestConfig,
        renderer_factory: Optional[Callable[[], RendererProtocol]] = None,
        extra_listeners: Optional[list[ExecutionListener]] = None,
    ):
        if config.max_parallel_forks > 1:
            logger.warning(
                "Preview screenshot tests run sequentially; overriding max_parallel_forks=%d to 1",
                config.max_parallel_forks,
            )
            config = config.model_copy(update={"max_parallel_forks": 1})
        self.config = config
        self.engine = PreviewScreenshotTestEngine()
        self.renderer_factory = renderer_factory
        self.extra_listeners = extra_listeners or []
        self.runs_dir = Path(config.report_output_dir) / "runs"

    def selectors(self) -> list[Selector]:
        selectors: list[Selector] = [DirectorySelector(d) for d in self.config.test_dirs]
        selectors += [ModuleSelector(m) for m in self.config.test_modules]
        return selectors

    def discover(self) -> EngineDescriptor:
        selectors = self.selectors()
        if not selectors:
            logger.warning("No test_dirs or test_modules configured; nothing to discover")
        return self.engine.discover(selectors)

    def run(self) -> tuple[RunResult, dict[str, str]]:
        """Execute the complete discover → execute → report pipeline."""
        start = time.time()
        mode = "recording" if self.config.recording_mode else "validation"
        logger.info("=== Starting preview screenshot run (%s mode) ===", mode)

        logger.info("--- Stage 1: Discover ---")
        root = self.discover()

        logger.info("--- Stage 2: Execute ---")
        run_id = f"run_{uuid.uuid4().hex[:8]}"
        aggregator = ReportAggregator(run_id, recording_mode=self.config.recording_mode)
        listeners: list[ExecutionListener] = [LoggingListener(), aggregator]
        if self.config.xml_report.enabled:
            listeners.append(XmlReportListener(aggregator, Path(self.config.xml_report.output_dir)))
        listeners += self.extra_listeners

        context = self.engine.create_execution_context(
            self.config, CompositeListener(listeners), self.renderer_factory,
        )
        self.engine.execute(root, context)

        run_result = aggregator.build_run_result()
        run_result.summary = generate_basic_summary(run_result)
        if run_result.engine_error:
            logger.error("Engine failed: %s", run_result.engine_error)
        logger.info("--- Stage 2 complete: %d passed, %d failed, %d errors ---",
                    run_result.passed, run_result.failed, run_result.errors)

        logger.info("--- Stage 3: Report ---")
        previous_run = self._load_previous_run_result(run_id)
        reports = Reporter(self.config).generate_reports(run_result, previous_run=previous_run)
        self._save_run_result(run_result)

        logger.info("=== Run complete in %.1fs ===", time.time() - start)
        return run_result, reports

    def _save_run_result(self, run_result: RunResult) -> None:
        """Persist RunResult for future regression comparison."""
        path = self.runs_dir / run_result.run_id / "run_result.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Saving run result to %s", path)
        with open(path, "w") as f:
            json.dump(run_result.model_dump(), f, indent=2, default=str)

    def _load_previous_run_result(self, current_run_id: str) -> RunResult | None:
        """Load the most recent previous RunResult from existing JSON reports."""
        report_dir = Path(self.config.report_output_dir)
        if not report_dir.exists():
            return None

        report_files = sorted(
            report_dir.glob("report_run_*.json"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )

        for report_path in report_files:
            try:
                with open(report_path) as f:
                    data = json.load(f)
                if data.get("run_id") == current_run_id:
                    continue
                return RunResult.model_validate(data)
            except (OSError, ValueError) as e:
                logger.debug("Could not load previous run from %s: %s", report_path, e)
                continue

        return None
