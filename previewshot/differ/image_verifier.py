"""Image verification and reference updating around an ImageDiffer."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image

from .image_differ import DiffResult, Different, ImageDiffer
from .pixel_perfect import format_percent

logger = logging.getLogger(__name__)


class MissingImageError(FileNotFoundError):
    """A candidate or reference image is absent."""


class ImageComparisonAssertionError(AssertionError):
    """Rendered image does not match its reference."""

    def __init__(
        self,
        expected_image_path: str,
        actual_image_path: str,
        diff_percentage: Optional[float] = None,
        diff_image_path: Optional[str] = None,
        message: str = "Image does not match.",
    ):
        super().__init__(message)
        self.expected_image_path = expected_image_path
        self.actual_image_path = actual_image_path
        self.diff_percentage = diff_percentage
        self.diff_image_path = diff_image_path
        self.message = message

    def __str__(self) -> str:
        text = f"{self.message}\nExpected: {self.expected_image_path}\nActual: {self.actual_image_path}\n"
        if self.diff_percentage is not None:
            text += f"Difference: {format_percent(self.diff_percentage)}\n"
        if self.diff_image_path is not None:
            text += f"Diff Image: {self.diff_image_path}\n"
        return text


@dataclass(frozen=True)
class VerificationResult:
    diff_result: DiffResult
    diff_percent: Optional[float]


def _load_image(path: Path, missing_message: str) -> Image.Image:
    if not path.exists():
        raise MissingImageError(missing_message)
    with Image.open(path) as img:
        img.load()
        return img.copy()


class ImageVerifier:
    """Compares a rendered preview image against its reference image."""

    def __init__(self, image_differ: ImageDiffer):
        self.image_differ = image_differ

    def verify(self, new_image_path: str, reference_image_path: str, diff_image_output_path: str) -> VerificationResult:
        """Diff the new image against the reference, writing highlights to the diff path.

        Raises MissingImageError when either image is absent and
        ImageComparisonAssertionError when the sizes do not match. A
        Different verdict is returned, not raised; callers decide whether it
        fails the test.
        """
        diff_file = Path(diff_image_output_path)
        if diff_file.exists():
            diff_file.unlink()
        diff_file.parent.mkdir(parents=True, exist_ok=True)

        actual = _load_image(
            Path(new_image_path), f"Preview image file does not exist ({new_image_path})."
        )
        reference = _load_image(
            Path(reference_image_path), f"Reference image file does not exist ({reference_image_path})."
        )

        if actual.size != reference.size:
            raise ImageComparisonAssertionError(
                reference_image_path,
                new_image_path,
                message=(
                    f"Size Mismatch. Reference image size: {reference.width}x{reference.height}."
                    f" Rendered image size: {actual.width}x{actual.height}"
                ),
            )

        diff = self.image_differ.diff(actual, reference)
        if diff.highlights is not None:
            diff.highlights.save(diff_file, format="PNG")
            logger.debug("Wrote diff image %s", diff_file)

        return VerificationResult(diff, diff.percent_diff)


class ImageUpdater:
    """Recording mode: refreshes reference images that no longer match."""

    def __init__(self, image_differ: ImageDiffer):
        self.image_differ = image_differ

    def update_if_different(self, new_image_path: str, reference_image_path: str) -> bool:
        """Overwrite the reference with the new image if absent or different. Returns True on write."""
        new_path = Path(new_image_path)
        ref_path = Path(reference_image_path)

        actual = _load_image(new_path, f"Preview image file does not exist ({new_image_path}).")

        if ref_path.exists():
            with Image.open(ref_path) as reference:
                reference.load()
                if reference.size == actual.size:
                    diff = self.image_differ.diff(actual, reference)
                    if not isinstance(diff, Different):
                        logger.debug("Reference %s is up to date (%s)", ref_path, diff.description)
                        return False
                    logger.info("Updating reference %s: %s", ref_path, diff.description)
                else:
                    logger.info(
                        "Updating reference %s: size changed from %dx%d to %dx%d",
                        ref_path, reference.width, reference.height, actual.width, actual.height,
                    )
        else:
            logger.info("Recording new reference %s", ref_path)

        ref_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(new_path, ref_path)
        return True
