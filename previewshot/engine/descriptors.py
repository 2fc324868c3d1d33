"""Preview screenshot test tree: engine, class, method, preview annotation, rendered image."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from previewshot.differ.image_differ import Different
from previewshot.differ.image_verifier import (
    ImageComparisonAssertionError,
    ImageUpdater,
    ImageVerifier,
    MissingImageError,
    VerificationResult,
)
from previewshot.differ.pixel_perfect import PixelPerfect
from previewshot.discovery.identity import calc_preview_id, preview_names, to_screenshot
from previewshot.models.preview import AnnotationRepresentation, PreviewMethod
from previewshot.models.render import RenderResult

from .execution import DynamicTestExecutor, ExecutionContext
from .node import NodeType, TestDescriptor, UniqueId

logger = logging.getLogger(__name__)

DIFF_PERCENT = "diffPercent"
PREVIEW_NAME = "previewName"
METHOD_NAME = "methodName"
REF_IMAGE_PATH = "refImagePath"
NEW_IMAGE_PATH = "newImagePath"
DIFF_IMAGE_PATH = "diffImagePath"


class EngineDescriptor(TestDescriptor):
    """Root node; owns the renderer for the whole run."""

    segment_type = "engine"

    def around(self, context: ExecutionContext, invocation: Callable[[ExecutionContext], None]) -> None:
        context.listener.reporting_entry_published(self, {"deviceId": "Preview"})
        context.listener.reporting_entry_published(self, {"deviceDisplayName": "Preview"})

        if context.renderer_factory is None:
            raise RuntimeError("No renderer available for this run")
        with context.renderer_factory() as renderer:
            invocation(context.with_renderer(renderer))


class ClassDescriptor(TestDescriptor):
    segment_type = "class"

    def __init__(self, parent_id: UniqueId, class_name: str):
        super().__init__(parent_id.append(self.segment_type, class_name), class_name, class_name=class_name)


class PreviewMethodDescriptor(TestDescriptor):
    """A @preview_test method; one child per preview annotation it carries."""

    segment_type = "method"

    def __init__(
        self,
        parent_id: UniqueId,
        class_name: str,
        method_name: str,
        preview: PreviewMethod,
    ):
        super().__init__(
            parent_id.append(self.segment_type, method_name), method_name,
            class_name=class_name, method_name=method_name,
        )
        self.preview = preview
        include_params = len(preview.annotations) > 1
        for annotation in preview.annotations:
            child = PreviewAnnotationDescriptor(
                self.unique_id, class_name, method_name, preview, annotation, include_params,
            )
            if self.find_child(child.unique_id) is None:
                self.add_child(child)
            else:
                logger.warning("Duplicate preview %s on %s ignored", child.preview_id, method_name)


class PreviewAnnotationDescriptor(TestDescriptor):
    """One preview configuration of a method.

    The number of images is only known once the renderer has run, so the
    leaf nodes are created and executed here, one per render result.
    """

    segment_type = "previewAnnotation"

    def __init__(
        self,
        parent_id: UniqueId,
        class_name: str,
        method_name: str,
        preview: PreviewMethod,
        annotation: AnnotationRepresentation,
        display_name_includes_params: bool,
    ):
        self.preview_id = calc_preview_id(preview, annotation)
        super().__init__(
            parent_id.append(self.segment_type, self.preview_id), method_name,
            class_name=class_name, method_name=method_name,
        )
        self.preview = preview
        self.annotation = annotation
        self.display_name_includes_params = display_name_includes_params

    def may_register_tests(self) -> bool:
        return True

    def execute(self, context: ExecutionContext, dynamic_executor: DynamicTestExecutor) -> ExecutionContext:
        if context.renderer is None:
            raise RuntimeError("Renderer was not acquired")

        screenshot = to_screenshot(self.preview, self.annotation, self.preview_id)
        results = context.renderer.render(screenshot, str(context.preview_image_output_dir.absolute()))
        logger.debug("%s rendered %d image(s)", self.preview_id, len(results))

        for idx, result in enumerate(results):
            name_suffix, display_name = preview_names(
                screenshot, self.method_name, idx, self.display_name_includes_params,
            )
            child = PreviewScreenshotDescriptor(
                self.unique_id, self.class_name, self.method_name,
                name_suffix, display_name, idx, result,
            )
            dynamic_executor.execute(child)
        return context


class PreviewScreenshotDescriptor(TestDescriptor):
    """One rendered image, verified against (or recorded as) its reference."""

    segment_type = "previewId"
    node_type = NodeType.TEST

    def __init__(
        self,
        parent_id: UniqueId,
        class_name: str,
        method_name: str,
        preview_name: str,
        preview_display_name: str,
        index: int,
        render_result: RenderResult,
    ):
        super().__init__(
            parent_id.append(self.segment_type, f"{render_result.preview_id}_{index}"),
            method_name + preview_name,
            class_name=class_name, method_name=method_name,
        )
        self.preview_display_name = preview_display_name
        self.index = index
        self.render_result = render_result

    def execute(self, context: ExecutionContext, dynamic_executor: DynamicTestExecutor) -> ExecutionContext:
        image_path = self.render_result.image_path
        new_image_path = str(context.preview_image_output_dir.absolute() / image_path)
        ref_image_path = str(context.reference_image_dir.absolute() / image_path)
        diff_image_path = str(context.diff_image_output_dir.absolute() / image_path)

        if self.render_result.error:
            logger.error("Renderer reported an error for %s: %s", self.display_name, self.render_result.error)

        differ = PixelPerfect(context.image_difference_threshold)
        verification: VerificationResult | None = None
        try:
            if context.recording_mode:
                ImageUpdater(differ).update_if_different(new_image_path, ref_image_path)
            else:
                verification = ImageVerifier(differ).verify(new_image_path, ref_image_path, diff_image_path)
                if isinstance(verification.diff_result, Different):
                    raise ImageComparisonAssertionError(
                        ref_image_path, new_image_path, verification.diff_percent, diff_image_path,
                    )
        except MissingImageError as e:
            if self.render_result.error and not Path(new_image_path).exists():
                raise MissingImageError(f"{e} Renderer error: {self.render_result.error}") from e
            raise
        finally:
            publish = context.listener.reporting_entry_published
            if verification is not None and verification.diff_percent is not None:
                publish(self, {DIFF_PERCENT: str(verification.diff_percent)})
            publish(self, {PREVIEW_NAME: self.preview_display_name})
            publish(self, {METHOD_NAME: self.method_name})
            publish(self, {REF_IMAGE_PATH: ref_image_path})
            if Path(new_image_path).exists():
                publish(self, {NEW_IMAGE_PATH: new_image_path})
            if Path(diff_image_path).exists():
                publish(self, {DIFF_IMAGE_PATH: diff_image_path})

        return context
