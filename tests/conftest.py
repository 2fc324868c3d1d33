"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable, Optional

import pytest
from PIL import Image

from previewshot.models.config import ScreenshotTestConfig, XmlReportConfig
from previewshot.models.render import ComposeScreenshot, RenderResult, WearTileScreenshot
from previewshot.renderer.renderer import RendererError

WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def make_image(
    path: Path,
    size: tuple[int, int] = (10, 10),
    color: tuple[int, int, int, int] = WHITE,
    box: Optional[tuple[int, int, int, int]] = None,
    box_color: tuple[int, int, int, int] = RED,
) -> Path:
    """Write an RGBA PNG, optionally with a filled rectangle (box is left, top, right, bottom exclusive)."""
    img = Image.new("RGBA", size, color)
    if box is not None:
        left, top, right, bottom = box
        for x in range(left, right):
            for y in range(top, bottom):
                img.putpixel((x, y), box_color)
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path, format="PNG")
    return path


# ============================================================================
# Renderer Fakes
# ============================================================================


class FakeRenderer:
    """In-process stand-in for the renderer worker.

    Writes a solid image per render result. ``images_per_preview`` maps a
    method name suffix to the number of images to fan out.
    """

    def __init__(
        self,
        color: tuple[int, int, int, int] = WHITE,
        images_per_preview: Optional[dict[str, int]] = None,
        fail_for: Optional[Callable[[str], bool]] = None,
        broken_for: Optional[Callable[[str], bool]] = None,
    ):
        self.color = color
        self.colors: dict[str, tuple[int, int, int, int]] = {}
        self.images_per_preview = images_per_preview or {}
        self.fail_for = fail_for or (lambda preview_id: False)
        self.broken_for = broken_for or (lambda preview_id: False)
        self.requests: list[ComposeScreenshot | WearTileScreenshot] = []
        self.closed = 0

    def render(self, screenshot, output_folder: str) -> list[RenderResult]:
        self.requests.append(screenshot)
        if self.fail_for(screenshot.preview_id):
            raise RendererError(f"cannot render {screenshot.preview_id}")

        method = screenshot.method_fqn.rsplit(".", 1)[-1]
        count = self.images_per_preview.get(method, 1)
        results = []
        for index in range(count):
            image_path = f"{screenshot.preview_id}_{index}.png"
            if self.broken_for(screenshot.preview_id):
                results.append(RenderResult(image_path=image_path, preview_id=screenshot.preview_id, error="composition crashed"))
                continue
            color = self.colors.get(screenshot.preview_id, self.color)
            make_image(Path(output_folder) / image_path, color=color)
            results.append(RenderResult(image_path=image_path, preview_id=screenshot.preview_id))
        return results

    def close(self) -> None:
        self.closed += 1

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer(images_per_preview={"counter": 2})


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def screenshot_config(tmp_path: Path) -> ScreenshotTestConfig:
    """Config with every output directory under tmp_path."""
    return ScreenshotTestConfig(
        test_modules=["sample_previews"],
        preview_image_output_dir=str(tmp_path / "rendered"),
        diff_image_output_dir=str(tmp_path / "diffs"),
        reference_image_dir=str(tmp_path / "reference"),
        report_output_dir=str(tmp_path / "reports"),
        xml_report=XmlReportConfig(enabled=False, output_dir=str(tmp_path / "xml")),
    )
