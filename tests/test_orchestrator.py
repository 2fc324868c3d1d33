"""Tests for the orchestrator and the CLI."""

import json
import logging
from pathlib import Path

from click.testing import CliRunner

from conftest import BLUE
from previewshot.cli import cli
from previewshot.models.config import ScreenshotTestConfig
from previewshot.orchestrator import Orchestrator


def _orchestrator(config, renderer, **updates) -> Orchestrator:
    return Orchestrator(config.model_copy(update=updates), renderer_factory=lambda: renderer)


class TestOrchestrator:
    """Tests for Orchestrator.run."""

    def test_forces_sequential_execution(self, screenshot_config, caplog):
        with caplog.at_level(logging.WARNING):
            orchestrator = Orchestrator(screenshot_config.model_copy(update={"max_parallel_forks": 4}))
        assert orchestrator.config.max_parallel_forks == 1
        assert "overriding max_parallel_forks=4 to 1" in caplog.text

    def test_selectors_from_config(self, screenshot_config):
        orchestrator = Orchestrator(screenshot_config.model_copy(update={"test_dirs": ["a"], "test_modules": ["m"]}))
        selectors = orchestrator.selectors()
        assert [type(s).__name__ for s in selectors] == ["DirectorySelector", "ModuleSelector"]

    def test_record_then_validate(self, screenshot_config, fake_renderer):
        result, reports = _orchestrator(screenshot_config, fake_renderer, recording_mode=True).run()
        assert result.total_tests == 6
        assert result.passed == 6
        assert result.summary.startswith("Recorded 6 screenshots")
        assert set(reports) == {"html", "json"}
        assert all(Path(p).exists() for p in reports.values())

        result, _ = _orchestrator(screenshot_config, fake_renderer).run()
        assert result.passed == 6
        assert result.recording_mode is False

    def test_run_result_persisted(self, screenshot_config, fake_renderer):
        result, _ = _orchestrator(screenshot_config, fake_renderer, recording_mode=True).run()
        saved = Path(screenshot_config.report_output_dir) / "runs" / result.run_id / "run_result.json"
        assert json.loads(saved.read_text())["run_id"] == result.run_id

    def test_regressions_detected_against_previous_report(self, screenshot_config, fake_renderer):
        _orchestrator(screenshot_config, fake_renderer, recording_mode=True).run()
        _orchestrator(screenshot_config, fake_renderer).run()

        fake_renderer.color = BLUE
        result, reports = _orchestrator(screenshot_config, fake_renderer).run()
        assert result.failed == 6
        data = json.loads(Path(reports["json"]).read_text())
        assert len(data["regressions"]) == 6

    def test_xml_report_written(self, screenshot_config, fake_renderer):
        xml = screenshot_config.xml_report.model_copy(update={"enabled": True})
        _orchestrator(screenshot_config, fake_renderer, recording_mode=True, xml_report=xml).run()
        assert (Path(xml.output_dir) / "TEST-preview-screenshot-test-engine.xml").exists()

    def test_unwritable_xml_dir_keeps_other_reports(self, screenshot_config, fake_renderer, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        xml = screenshot_config.xml_report.model_copy(update={"enabled": True, "output_dir": str(blocker / "xml")})
        result, reports = _orchestrator(screenshot_config, fake_renderer, recording_mode=True, xml_report=xml).run()
        assert result.passed == 6
        assert all(Path(p).exists() for p in reports.values())
        saved = Path(screenshot_config.report_output_dir) / "runs" / result.run_id / "run_result.json"
        assert saved.exists()

    def test_engine_error_reported(self, screenshot_config):
        def factory():
            raise RuntimeError("no worker")

        result, _ = Orchestrator(screenshot_config, renderer_factory=factory).run()
        assert result.engine_error == "no worker"
        assert "Engine error: no worker" in result.summary


class TestCli:
    """Tests for the click commands that do not need a renderer."""

    def test_init_writes_config(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["init", "--test-dir", "previews"])
            assert result.exit_code == 0
            config = ScreenshotTestConfig.load("screenshot-config.json")
            assert config.test_dirs == ["previews"]

    def test_missing_config(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["validate"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_invalid_threshold(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["validate", "--module", "sample_previews", "--threshold", "2"])
        assert result.exit_code == 1
        assert "Invalid threshold" in result.output

    def test_discover_prints_tree(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["discover", "--module", "sample_previews"])
        assert result.exit_code == 0
        assert "sample_previews.ButtonPreviews" in result.output
        assert "weather_tile" in result.output

    def test_update_without_renderer_fails(self, tmp_path: Path):
        config = ScreenshotTestConfig(
            test_modules=["sample_previews"],
            preview_image_output_dir=str(tmp_path / "rendered"),
            reference_image_dir=str(tmp_path / "reference"),
            diff_image_output_dir=str(tmp_path / "diffs"),
            report_output_dir=str(tmp_path / "reports"),
        )
        config_path = tmp_path / "config.json"
        config.save(config_path)
        result = CliRunner().invoke(cli, ["update", "--config", str(config_path)])
        assert result.exit_code == 1
        assert "No renderer command configured" in result.output

    def test_missing_test_dir(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["discover", "--test-dir", "no-such-dir"])
        assert result.exit_code == 1
        assert "Test directory not found" in result.output
        assert isinstance(result.exception, SystemExit)

    def test_unimportable_module(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["validate", "--module", "no_such_previews_module"])
        assert result.exit_code == 1
        assert "Cannot import no_such_previews_module" in result.output
        assert isinstance(result.exception, SystemExit)
