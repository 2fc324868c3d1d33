"""Tests for configuration models."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from previewshot.models.config import RendererConfig, ScreenshotTestConfig, XmlReportConfig


class TestScreenshotTestConfig:
    """Tests for ScreenshotTestConfig."""

    def test_defaults(self):
        config = ScreenshotTestConfig()
        assert config.recording_mode is False
        assert config.image_difference_threshold == 0.0
        assert config.max_parallel_forks == 1
        assert config.report_formats == ["html", "json"]
        assert config.xml_report == XmlReportConfig()
        assert config.renderer == RendererConfig()
        assert config.redirect_report_entries_to_stdout is False

    @pytest.mark.parametrize("threshold", [0.0, 0.25, 1.0])
    def test_valid_threshold(self, threshold):
        assert ScreenshotTestConfig(image_difference_threshold=threshold).image_difference_threshold == threshold

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(ValidationError) as exc:
            ScreenshotTestConfig(image_difference_threshold=threshold)
        assert "Invalid threshold provided. Please provide a float value between 0.0 and 1.0" in str(exc.value)

    def test_save_and_load(self, tmp_path: Path):
        config = ScreenshotTestConfig(
            test_dirs=["previews"],
            image_difference_threshold=0.1,
            renderer=RendererConfig(command=["render-worker"], options={"fonts": "/fonts"}),
            xml_report=XmlReportConfig(enabled=True),
        )
        path = tmp_path / "nested" / "config.json"
        config.save(path)
        assert ScreenshotTestConfig.load(path) == config

    def test_load_partial_file(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"recording_mode": True, "renderer": {"command": ["w"]}}))
        config = ScreenshotTestConfig.load(path)
        assert config.recording_mode is True
        assert config.renderer.command == ["w"]
        assert config.reference_image_dir == "./screenshots/reference"

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            ScreenshotTestConfig.load(tmp_path / "missing.json")
