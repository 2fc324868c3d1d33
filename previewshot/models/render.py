"""Render request/response types exchanged with the renderer worker."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field


class ComposeScreenshot(BaseModel):
    kind: Literal["compose"] = "compose"
    method_fqn: str
    method_params: list[dict[str, str]] = Field(default_factory=list)  # sorted maps, sorted list
    preview_params: dict[str, str] = Field(default_factory=dict)  # sorted by key
    preview_id: str


class WearTileScreenshot(BaseModel):
    kind: Literal["wear_tile"] = "wear_tile"
    method_fqn: str
    preview_params: dict[str, str] = Field(default_factory=dict)
    preview_id: str


PreviewScreenshot = Union[ComposeScreenshot, WearTileScreenshot]


class RenderResult(BaseModel):
    """Outcome of rendering one image; the list position is the fan-out index."""
    image_path: str  # relative to the preview image output dir
    preview_id: str = ""
    error: Optional[str] = None
