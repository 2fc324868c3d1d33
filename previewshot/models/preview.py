"""Preview method data structures produced by discovery."""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ParameterRepresentation(BaseModel):
    """A method parameter carrying a PreviewParameter annotation."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    annotation_parameters: dict[str, Any] = Field(default_factory=dict)  # provider -> class, limit -> int, ...


class MethodRepresentation(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    method_fqn: str  # module.Class.method
    parameters: list[ParameterRepresentation] = Field(default_factory=list)


class AnnotationRepresentation(BaseModel):
    """One concrete preview configuration attached to a method."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    parameters: dict[str, Any] = Field(default_factory=dict)

    @property
    def name(self) -> Optional[Any]:
        return self.parameters.get("name")


class ComposePreviewMethod(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["compose"] = "compose"
    method: MethodRepresentation
    annotations: list[AnnotationRepresentation] = Field(default_factory=list)


class WearTilePreviewMethod(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["wear_tile"] = "wear_tile"
    method: MethodRepresentation
    annotations: list[AnnotationRepresentation] = Field(default_factory=list)


PreviewMethod = Union[ComposePreviewMethod, WearTilePreviewMethod]
