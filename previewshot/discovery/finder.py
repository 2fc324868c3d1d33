"""Preview method finder — turns decorated methods into PreviewMethod models."""

from __future__ import annotations

import inspect
import logging
import typing
from typing import Any, Optional

from previewshot.models.preview import (
    AnnotationRepresentation,
    ComposePreviewMethod,
    MethodRepresentation,
    ParameterRepresentation,
    PreviewMethod,
    WearTilePreviewMethod,
)

from .annotations import COMPOSE, WEAR_TILE, PreviewParameter, is_preview_test, previews_of

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """A preview test is declared in a way that cannot be rendered."""


def qualified_name(obj: Any) -> str:
    return f"{obj.__module__}.{obj.__qualname__}"


def _unwrap(member: Any) -> Any:
    if isinstance(member, (staticmethod, classmethod)):
        return member.__func__
    return member


def _preview_parameters(func: Any, method_fqn: str) -> list[ParameterRepresentation]:
    try:
        signature = inspect.signature(func, eval_str=True)
    except (NameError, TypeError, ValueError) as e:
        raise DiscoveryError(f"Cannot read the signature of {method_fqn}: {e}") from e

    parameters = []
    for param in signature.parameters.values():
        annotation = param.annotation
        if typing.get_origin(annotation) is not typing.Annotated:
            continue
        for meta in typing.get_args(annotation)[1:]:
            if isinstance(meta, PreviewParameter):
                parameters.append(ParameterRepresentation(
                    name=param.name,
                    annotation_parameters=meta.annotation_parameters(),
                ))
    return parameters


def find_preview_method(func: Any, method_fqn: str) -> Optional[PreviewMethod]:
    """Build the PreviewMethod for a function, or None if it has no previews."""
    func = _unwrap(func)
    annotations = previews_of(func)
    if not annotations:
        return None

    parameters = _preview_parameters(func, method_fqn)
    if len(parameters) > 1:
        raise DiscoveryError(
            f"{method_fqn} declares {len(parameters)} PreviewParameter arguments; only one is supported"
        )

    method = MethodRepresentation(method_fqn=method_fqn, parameters=parameters)
    reps = [AnnotationRepresentation(parameters=a.parameters) for a in annotations]

    kind = annotations[0].kind
    if kind == COMPOSE:
        return ComposePreviewMethod(method=method, annotations=reps)
    if kind == WEAR_TILE:
        if parameters:
            raise DiscoveryError(f"Wear tile preview {method_fqn} cannot take preview parameters")
        return WearTilePreviewMethod(method=method, annotations=reps)
    raise DiscoveryError(f"Unknown preview kind '{kind}' on {method_fqn}")


def find_preview_test_methods(cls: type) -> list[tuple[str, Any]]:
    """Return (name, function) for @preview_test methods declared directly on cls."""
    found = []
    for name, member in vars(cls).items():
        func = _unwrap(member)
        if callable(func) and is_preview_test(func):
            found.append((name, func))
    logger.debug("Found %d preview test methods on %s", len(found), qualified_name(cls))
    return found
