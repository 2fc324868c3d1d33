"""Tests for preview ids, render requests and display names."""

import hashlib
import logging

import pytest

from previewshot.discovery.identity import (
    calc_preview_id,
    convert_map,
    format_map,
    preview_names,
    sort_list_of_sorted_maps,
    stringify,
    to_screenshot,
)
from previewshot.models.preview import (
    AnnotationRepresentation,
    ComposePreviewMethod,
    MethodRepresentation,
    ParameterRepresentation,
    WearTilePreviewMethod,
)
from previewshot.models.render import ComposeScreenshot, WearTileScreenshot
from sample_previews import NumberProvider

FQN = "com.example.Previews.button"


def _hash(section: str, data: dict) -> str:
    digest = hashlib.sha1()
    digest.update(section.encode())
    for key in sorted(data):
        digest.update(key.encode())
        digest.update(str(data[key]).encode())
    return digest.hexdigest()[:8]


def _compose(parameters=None) -> ComposePreviewMethod:
    return ComposePreviewMethod(method=MethodRepresentation(method_fqn=FQN, parameters=parameters or []))


class TestCalcPreviewId:
    """Tests for calc_preview_id."""

    def test_no_parameters_is_fqn(self):
        assert calc_preview_id(_compose(), AnnotationRepresentation()) == FQN

    def test_name_and_hash(self):
        params = {"name": "dark", "ui_mode": "night"}
        preview_id = calc_preview_id(_compose(), AnnotationRepresentation(parameters=params))
        assert preview_id == f"{FQN}_dark_{_hash('annotation-parameters', params)}"

    def test_unnamed_annotation_only_hashes(self):
        params = {"font_scale": 1.5}
        preview_id = calc_preview_id(_compose(), AnnotationRepresentation(parameters=params))
        assert preview_id == f"{FQN}_{_hash('annotation-parameters', params)}"

    def test_parameter_order_does_not_matter(self):
        a = calc_preview_id(_compose(), AnnotationRepresentation(parameters={"a": 1, "b": 2}))
        b = calc_preview_id(_compose(), AnnotationRepresentation(parameters={"b": 2, "a": 1}))
        assert a == b

    def test_different_parameters_give_different_ids(self):
        a = calc_preview_id(_compose(), AnnotationRepresentation(parameters={"name": "x", "ui_mode": "night"}))
        b = calc_preview_id(_compose(), AnnotationRepresentation(parameters={"name": "x", "ui_mode": "day"}))
        assert a != b

    def test_invalid_name_excluded_with_warning(self, caplog):
        params = {"name": "light/dark"}
        with caplog.at_level(logging.WARNING):
            preview_id = calc_preview_id(_compose(), AnnotationRepresentation(parameters=params))
        assert preview_id == f"{FQN}_{_hash('annotation-parameters', params)}"
        assert "light/dark" in caplog.text
        assert "invalid characters" in caplog.text

    def test_method_parameter_section(self):
        param = ParameterRepresentation(name="count", annotation_parameters={"provider": NumberProvider, "limit": 2})
        preview_id = calc_preview_id(_compose([param]), AnnotationRepresentation())
        expected = _hash("method-parameter-annotations", {
            "provider": "sample_previews.NumberProvider", "limit": 2,
        })
        assert preview_id == f"{FQN}_{expected}"

    def test_ids_are_stable(self):
        annotation = AnnotationRepresentation(parameters={"name": "a", "device": "pixel"})
        assert calc_preview_id(_compose(), annotation) == calc_preview_id(_compose(), annotation)


class TestMaps:
    """Tests for map conversion and ordering helpers."""

    def test_stringify_class(self):
        assert stringify(NumberProvider) == "sample_previews.NumberProvider"
        assert stringify(2) == "2"

    def test_convert_map_sorts_and_stringifies(self):
        converted = convert_map({"provider": NumberProvider, "limit": 2})
        assert list(converted) == ["limit", "provider"]
        assert converted == {"limit": "2", "provider": "sample_previews.NumberProvider"}

    def test_sort_list_of_sorted_maps(self):
        maps = [{"b": "1"}, {}, {"a": "2"}, {"a": "1", "c": "1"}, {"a": "1"}]
        assert sort_list_of_sorted_maps(maps) == [
            {}, {"a": "1"}, {"a": "1", "c": "1"}, {"a": "2"}, {"b": "1"},
        ]

    def test_equal_maps_keep_order(self):
        first, second = {"a": "1"}, {"a": "1"}
        result = sort_list_of_sorted_maps([first, second])
        assert result[0] is first and result[1] is second

    def test_format_map(self):
        assert format_map({"a": "1", "b": "x"}) == "{a=1, b=x}"
        assert format_map({}) == "{}"


class TestToScreenshot:
    """Tests for to_screenshot."""

    def test_compose(self):
        param = ParameterRepresentation(name="count", annotation_parameters={"provider": NumberProvider})
        annotation = AnnotationRepresentation(parameters={"ui_mode": 32, "name": "n"})
        shot = to_screenshot(_compose([param]), annotation, "pid")
        assert isinstance(shot, ComposeScreenshot)
        assert shot.method_fqn == FQN
        assert shot.method_params == [{"provider": "sample_previews.NumberProvider"}]
        assert shot.preview_params == {"name": "n", "ui_mode": "32"}
        assert shot.preview_id == "pid"

    def test_wear_tile(self):
        preview = WearTilePreviewMethod(method=MethodRepresentation(method_fqn=FQN))
        shot = to_screenshot(preview, AnnotationRepresentation(parameters={"device": "round"}), "pid")
        assert isinstance(shot, WearTileScreenshot)
        assert shot.preview_params == {"device": "round"}


class TestPreviewNames:
    """Tests for preview_names."""

    def test_name_only(self):
        shot = ComposeScreenshot(method_fqn=FQN, preview_params={"name": "dark", "ui_mode": "night"}, preview_id="x")
        assert preview_names(shot, "button", 0, False) == ("_dark", "dark")

    def test_name_with_other_params(self):
        shot = ComposeScreenshot(method_fqn=FQN, preview_params={"name": "dark", "ui_mode": "night"}, preview_id="x")
        assert preview_names(shot, "button", 0, True) == ("_dark_{ui_mode=night}", "dark")

    def test_params_without_name(self):
        shot = ComposeScreenshot(method_fqn=FQN, preview_params={"ui_mode": "night"}, preview_id="x")
        assert preview_names(shot, "button", 0, True) == ("_{ui_mode=night}", "{ui_mode=night}")

    def test_method_params_add_index(self):
        shot = ComposeScreenshot(
            method_fqn=FQN, method_params=[{"limit": "2", "provider": "p.P"}], preview_id="x",
        )
        suffix, display = preview_names(shot, "button", 1, False)
        assert suffix == "_[{limit=2, provider=p.P}]_1"
        assert display == "[{limit=2, provider=p.P}]_1"

    def test_falls_back_to_method_name(self):
        shot = ComposeScreenshot(method_fqn=FQN, preview_id="x")
        assert preview_names(shot, "button", 0, True) == ("", "button")

    @pytest.mark.parametrize("include_params", [True, False])
    def test_wear_tile_has_no_method_params(self, include_params):
        shot = WearTileScreenshot(method_fqn=FQN, preview_params={"name": "tile"}, preview_id="x")
        assert preview_names(shot, "weather", 0, include_params) == ("_tile", "tile")
