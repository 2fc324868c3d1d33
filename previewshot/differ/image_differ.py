"""Image differ contract and its result type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Union

from PIL import Image


class ConfigurationError(ValueError):
    """Raised when a differ is configured with invalid settings."""


@dataclass(frozen=True)
class Similar:
    """Images match, possibly within the configured threshold.

    ``highlights`` is omitted when it would be fully transparent.
    """
    description: str
    highlights: Optional[Image.Image] = None
    percent_diff: Optional[float] = None


@dataclass(frozen=True)
class Different:
    description: str
    highlights: Image.Image
    percent_diff: Optional[float] = None


DiffResult = Union[Similar, Different]


class ImageDiffer(Protocol):
    """Compares image ``a`` to image ``b``.

    Implementations may assume both images have the same dimensions.
    """

    @property
    def name(self) -> str: ...

    def diff(self, a: Image.Image, b: Image.Image) -> DiffResult: ...
