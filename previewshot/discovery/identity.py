"""Stable preview identities and render descriptors.

A preview id starts with the method's fully-qualified name, adds the
preview's ``name`` when it is safe for file names, then appends an 8-char
SHA-1 prefix for each non-empty parameter section. Identical parameters
(in any declaration order) always give the same id.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import re
from typing import Any, Mapping

from previewshot.models.preview import (
    AnnotationRepresentation,
    ComposePreviewMethod,
    ParameterRepresentation,
    PreviewMethod,
    WearTilePreviewMethod,
)
from previewshot.models.render import ComposeScreenshot, PreviewScreenshot, WearTileScreenshot

logger = logging.getLogger(__name__)

INVALID_CHARS = re.compile(r'[\x00-\x1f\\/:*?"<>|]+')
HASH_LENGTH = 8


def stringify(value: Any) -> str:
    """String form of an annotation value; classes become their qualified name."""
    if isinstance(value, type):
        return f"{value.__module__}.{value.__qualname__}"
    return str(value)


def _section_hash(section_name: str, data: Mapping[str, Any]) -> str:
    digest = hashlib.sha1()
    digest.update(section_name.encode())
    for key in sorted(data):
        digest.update(key.encode())
        digest.update(stringify(data[key]).encode())
    return digest.hexdigest()[:HASH_LENGTH]


def calc_preview_id(
    preview: PreviewMethod,
    annotation: AnnotationRepresentation,
) -> str:
    parts = [preview.method.method_fqn]

    name = annotation.parameters.get("name")
    if isinstance(name, str):
        if INVALID_CHARS.search(name):
            logger.warning(
                "Preview name '%s' contains invalid characters. "
                "It will be included in the HTML report but ignored in image file names.",
                name,
            )
        else:
            parts.append(name)

    if annotation.parameters:
        parts.append(_section_hash("annotation-parameters", annotation.parameters))

    # At most one method parameter is supported
    for param in preview.method.parameters:
        if param.annotation_parameters:
            parts.append(_section_hash("method-parameter-annotations", param.annotation_parameters))

    return "_".join(parts)


def convert_map(data: Mapping[str, Any]) -> dict[str, str]:
    return {key: stringify(data[key]) for key in sorted(data)}


def _compare_maps(a: dict[str, str], b: dict[str, str]) -> int:
    entries_a = sorted(a.items())
    entries_b = sorted(b.items())
    for i in range(max(len(entries_a), len(entries_b)) + 1):
        # Shorter map comes first
        if i >= len(entries_a) and i >= len(entries_b):
            return 0
        if i >= len(entries_a):
            return -1
        if i >= len(entries_b):
            return 1
        (key_a, value_a), (key_b, value_b) = entries_a[i], entries_b[i]
        if key_a != key_b:
            return -1 if key_a < key_b else 1
        if value_a != value_b:
            return -1 if value_a < value_b else 1
    return 0


def sort_list_of_sorted_maps(maps: list[dict[str, str]]) -> list[dict[str, str]]:
    """Empty maps first, then by key, then by value; on a shared prefix the shorter map wins."""
    return sorted(maps, key=functools.cmp_to_key(_compare_maps))


def convert_list_map(parameters: list[ParameterRepresentation]) -> list[dict[str, str]]:
    return sort_list_of_sorted_maps([convert_map(p.annotation_parameters) for p in parameters])


def to_screenshot(
    preview: PreviewMethod,
    annotation: AnnotationRepresentation,
    preview_id: str,
) -> PreviewScreenshot:
    """Build the render request for one (method, annotation) pair."""
    match preview:
        case ComposePreviewMethod():
            return ComposeScreenshot(
                method_fqn=preview.method.method_fqn,
                method_params=convert_list_map(preview.method.parameters),
                preview_params=convert_map(annotation.parameters),
                preview_id=preview_id,
            )
        case WearTilePreviewMethod():
            return WearTileScreenshot(
                method_fqn=preview.method.method_fqn,
                preview_params=convert_map(annotation.parameters),
                preview_id=preview_id,
            )
    raise TypeError(f"Unsupported preview method {type(preview).__name__}")


def format_map(data: Mapping[str, str]) -> str:
    return "{" + ", ".join(f"{k}={v}" for k, v in data.items()) + "}"


def preview_names(
    screenshot: PreviewScreenshot,
    method_name: str,
    index: int,
    include_params: bool,
) -> tuple[str, str]:
    """Return (name suffix, display name) for the index-th rendered image of a preview."""
    name_param = screenshot.preview_params.get("name")
    suffix = f"_{name_param}" if name_param is not None else ""

    other = ""
    if include_params:
        others = {k: v for k, v in screenshot.preview_params.items() if k != "name"}
        if others:
            other += f"_{format_map(others)}"
    if isinstance(screenshot, ComposeScreenshot) and screenshot.method_params:
        rendered = ", ".join(format_map(m) for m in screenshot.method_params)
        other += f"_[{rendered}]_{index}"

    suffix += other
    display_name = name_param or other.removeprefix("_") or method_name
    return suffix, display_name
