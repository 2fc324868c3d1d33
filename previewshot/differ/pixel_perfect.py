"""Pixel perfect differ — flags every pixel whose ARGB value changed."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_EVEN, Decimal

import numpy as np
from PIL import Image

from .image_differ import ConfigurationError, DiffResult, Different, Similar

logger = logging.getLogger(__name__)

MAGENTA = (255, 0, 255, 255)
TRANSPARENT = (255, 255, 255, 0)


def generate_pixel_diff_image(a: Image.Image, b: Image.Image) -> tuple[Image.Image, int]:
    """Return an image highlighting the pixels that differ between a and b, and how many did."""
    if a.size != b.size:
        raise ValueError("Images are different sizes")

    arr_a = np.asarray(a.convert("RGBA"), dtype=np.uint8)
    arr_b = np.asarray(b.convert("RGBA"), dtype=np.uint8)

    # Full ARGB compare, but RGB may differ where both pixels are fully transparent
    same = np.all(arr_a == arr_b, axis=2)
    both_transparent = (arr_a[..., 3] == 0) & (arr_b[..., 3] == 0)
    mismatched = ~(same | both_transparent)

    highlights = np.empty(arr_a.shape, dtype=np.uint8)
    highlights[:] = TRANSPARENT
    highlights[mismatched] = MAGENTA

    return Image.fromarray(highlights), int(np.count_nonzero(mismatched))


def format_percent(percent_diff: float) -> str:
    """Format a 0-1 fraction as a percentage rounded half-even to two decimals."""
    value = Decimal(percent_diff * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
    return f"{value}%"


class PixelPerfect:
    """Pixel perfect image differ requiring images to be identical.

    The alpha channel is treated as pre-multiplied, meaning RGB channels may
    differ if the alpha channel is 0 (fully transparent). Mismatches up to
    ``threshold`` (a fraction of all pixels) still count as similar.
    """

    def __init__(self, threshold: float = 0.0):
        if not 0.0 <= threshold <= 1.0:
            raise ConfigurationError(
                f"Invalid image difference threshold {threshold}. "
                "Please provide a float value between 0.0 and 1.0"
            )
        self.threshold = threshold

    @property
    def name(self) -> str:
        return type(self).__name__

    def diff(self, a: Image.Image, b: Image.Image) -> DiffResult:
        highlights, num_different = generate_pixel_diff_image(a, b)
        total = a.width * a.height
        percent_diff = num_different / total if total else 0.0

        description = (
            f"Pixel percentage difference: {format_percent(percent_diff)}. "
            f"{num_different} of {total} pixels are different"
        )
        logger.debug("%s: %s", self.name, description)

        if num_different == 0:
            return Similar(description, None, percent_diff)
        if percent_diff <= self.threshold:
            return Similar(description, highlights, percent_diff)
        return Different(description, highlights, percent_diff)
