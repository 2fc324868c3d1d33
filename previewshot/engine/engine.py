"""Preview screenshot test engine — discovery plus execution of the test tree."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from previewshot.discovery.selectors import Selector, SelectorResolver
from previewshot.models.config import ScreenshotTestConfig
from previewshot.renderer.renderer import Renderer, RendererProtocol

from .descriptors import EngineDescriptor
from .execution import ExecutionContext, ExecutionResult, HierarchicalExecutor
from .listener import ExecutionListener, StdoutRedirectingListener
from .node import UniqueId

logger = logging.getLogger(__name__)

ENGINE_ID = "preview-screenshot-test-engine"


class PreviewScreenshotTestEngine:
    id = ENGINE_ID

    def discover(self, selectors: list[Selector]) -> EngineDescriptor:
        """Build the static test tree for the given selectors."""
        root = EngineDescriptor(UniqueId.for_engine(self.id), "Preview Screenshot Test Engine")
        SelectorResolver(root).resolve(selectors)
        tests = sum(len(cls.children) for cls in root.children)
        logger.info("Discovered %d preview test method(s) in %d class(es)", tests, len(root.children))
        return root

    def create_execution_context(
        self,
        config: ScreenshotTestConfig,
        listener: ExecutionListener,
        renderer_factory: Optional[Callable[[], RendererProtocol]] = None,
    ) -> ExecutionContext:
        if config.redirect_report_entries_to_stdout:
            listener = StdoutRedirectingListener([listener])
        if renderer_factory is None:
            renderer_factory = lambda: Renderer(config.renderer)  # noqa: E731
        return ExecutionContext(
            listener=listener,
            preview_image_output_dir=Path(config.preview_image_output_dir),
            diff_image_output_dir=Path(config.diff_image_output_dir),
            reference_image_dir=Path(config.reference_image_dir),
            image_difference_threshold=config.image_difference_threshold,
            recording_mode=config.recording_mode,
            renderer_factory=renderer_factory,
        )

    def execute(self, root: EngineDescriptor, context: ExecutionContext) -> ExecutionResult:
        """Run the whole tree, sequentially, on the calling thread."""
        return HierarchicalExecutor(context.listener).execute(root, context)
