"""JUnit-style XML report, written once the engine node finishes."""

from __future__ import annotations

import logging
import re
import socket
import xml.etree.ElementTree as ET
from pathlib import Path

from previewshot.engine.listener import ExecutionListener
from previewshot.models.test_result import RunResult, TestResult

from .aggregator import ReportAggregator

logger = logging.getLogger(__name__)

# Characters outside the XML 1.0 Char production.
_ILLEGAL_XML_CHARS = re.compile("[^\u0009\u000A\u000D\u0020-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")


def _xml_safe(text: str) -> str:
    """Replace characters that cannot appear in an XML document."""
    return _ILLEGAL_XML_CHARS.sub("\uFFFD", text)


def _entries_text(result: TestResult) -> str:
    lines = []
    for n, entry in enumerate(result.report_entries, start=1):
        lines.append(f"Report Entry #{n} (timestamp: {entry.timestamp})")
        for key, value in entry.values.items():
            lines.append(f"\t- {key}: {value}")
    return "\n".join(lines)


def build_xml_report(run_result: RunResult) -> ET.ElementTree:
    suite = ET.Element("testsuite", {
        "name": run_result.engine_id or "preview-screenshot-test-engine",
        "tests": str(run_result.total_tests),
        "skipped": str(run_result.skipped),
        "failures": str(run_result.failed),
        "errors": str(run_result.errors),
        "time": f"{run_result.duration_seconds:.3f}",
        "timestamp": run_result.started_at,
        "hostname": socket.gethostname(),
    })

    properties = ET.SubElement(suite, "properties")
    ET.SubElement(properties, "property", {"name": "recordingMode", "value": str(run_result.recording_mode).lower()})
    if run_result.engine_error:
        ET.SubElement(properties, "property", {"name": "engineError", "value": _xml_safe(run_result.engine_error)})

    for result in run_result.test_results:
        case = ET.SubElement(suite, "testcase", {
            "name": _xml_safe(result.test_name),
            "classname": _xml_safe(result.class_name),
            "time": f"{result.duration_seconds:.3f}",
        })
        if result.result == "skip":
            ET.SubElement(case, "skipped", {"message": _xml_safe(result.failure_reason or "")})
        elif result.result in ("fail", "error"):
            tag = "failure" if result.result == "fail" else "error"
            message = _xml_safe(result.failure_reason or "")
            failure = ET.SubElement(case, tag, {"message": message.splitlines()[0] if message else ""})
            failure.text = message
        entries = _entries_text(result)
        if entries:
            ET.SubElement(case, "system-out").text = _xml_safe(entries)

    ET.indent(suite)
    return ET.ElementTree(suite)


def write_xml_report(run_result: RunResult, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"TEST-{run_result.engine_id or 'preview-screenshot-test-engine'}.xml"
    build_xml_report(run_result).write(path, encoding="utf-8", xml_declaration=True)
    logger.info("XML report: %s", path)
    return path


class XmlReportListener(ExecutionListener):
    """Writes the XML report when the root node finishes or is skipped.

    Must be registered after the aggregator it reads from.
    """

    def __init__(self, aggregator: ReportAggregator, output_dir: Path):
        self.aggregator = aggregator
        self.output_dir = output_dir
        self.report_path: Path | None = None

    def _root_done(self, node) -> None:
        if not node.is_root:
            return
        try:
            self.report_path = write_xml_report(self.aggregator.build_run_result(), self.output_dir)
        except OSError as e:
            logger.error("Failed to write XML report to %s: %s", self.output_dir, e)

    def execution_skipped(self, node, reason):
        self._root_done(node)

    def execution_finished(self, node, result):
        self._root_done(node)
