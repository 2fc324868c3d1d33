"""Configuration models for the preview screenshot validator."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


class RendererConfig(BaseModel):
    # Worker process speaking the JSON-lines render protocol
    command: list[str] = Field(default_factory=list)
    # Passed through verbatim in the init message (fonts path, class paths, ...)
    options: dict[str, Any] = Field(default_factory=dict)
    env: dict[str, str] = Field(default_factory=dict)


class XmlReportConfig(BaseModel):
    enabled: bool = False
    output_dir: str = "./screenshot-reports/xml"


class ScreenshotTestConfig(BaseModel):
    # Where preview tests live
    test_dirs: list[str] = Field(default_factory=list)
    test_modules: list[str] = Field(default_factory=list)

    # Image locations
    preview_image_output_dir: str = "./build/screenshots/rendered"
    diff_image_output_dir: str = "./build/screenshots/diffs"
    reference_image_dir: str = "./screenshots/reference"

    # Comparison
    recording_mode: bool = False
    image_difference_threshold: float = 0.0

    # Execution
    max_parallel_forks: int = 1

    # Rendering
    renderer: RendererConfig = Field(default_factory=RendererConfig)

    # Reporting
    report_formats: list[str] = Field(default_factory=lambda: ["html", "json"])
    report_output_dir: str = "./screenshot-reports"
    xml_report: XmlReportConfig = Field(default_factory=XmlReportConfig)
    redirect_report_entries_to_stdout: bool = False

    @field_validator("image_difference_threshold")
    @classmethod
    def check_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("Invalid threshold provided. Please provide a float value between 0.0 and 1.0")
        return v

    @classmethod
    def load(cls, path: str | Path) -> "ScreenshotTestConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
