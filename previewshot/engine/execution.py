"""Hierarchical executor — depth-first, strictly sequential tree execution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from .listener import ExecutionListener
from .node import NodeState, TestDescriptor

if TYPE_CHECKING:
    from previewshot.renderer.renderer import RendererProtocol

logger = logging.getLogger(__name__)

SUCCESS = "success"
FAILURE = "failure"
ERROR = "error"


@dataclass(frozen=True)
class ExecutionResult:
    status: str  # success, failure, error
    error: Optional[BaseException] = None

    @classmethod
    def successful(cls) -> "ExecutionResult":
        return cls(SUCCESS)

    @classmethod
    def failed(cls, error: BaseException) -> "ExecutionResult":
        return cls(FAILURE, error)

    @classmethod
    def errored(cls, error: BaseException) -> "ExecutionResult":
        return cls(ERROR, error)


@dataclass(frozen=True)
class ExecutionContext:
    listener: ExecutionListener
    preview_image_output_dir: Path
    diff_image_output_dir: Path
    reference_image_dir: Path
    image_difference_threshold: float = 0.0
    recording_mode: bool = False
    renderer_factory: Optional[Callable[[], "RendererProtocol"]] = field(default=None, compare=False)
    renderer: Optional["RendererProtocol"] = field(default=None, compare=False)

    def with_renderer(self, renderer: "RendererProtocol") -> "ExecutionContext":
        return replace(self, renderer=renderer)


class DynamicTestExecutor:
    """Handed to a node so it can register and run children it creates while executing."""

    def __init__(self, executor: "HierarchicalExecutor", parent: TestDescriptor, context: ExecutionContext):
        self._executor = executor
        self._parent = parent
        self._context = context

    def execute(self, child: TestDescriptor) -> ExecutionResult:
        if child.parent is not self._parent:
            self._parent.add_child(child)
        self._parent.state = NodeState.CHILDREN_REGISTERED
        self._executor.listener.dynamic_test_registered(child)
        return self._executor.execute(child, self._context)


class HierarchicalExecutor:
    """Runs a node, then its children, one at a time in discovery order.

    Each node's failure is caught at its own boundary: assertion errors
    mark it failed, anything else marks it errored, and siblings still run.
    """

    def __init__(self, listener: ExecutionListener):
        self.listener = listener

    def execute(self, node: TestDescriptor, context: ExecutionContext) -> ExecutionResult:
        self.listener.execution_started(node)
        node.state = NodeState.EXECUTING
        static_children = list(node.children)

        def invocation(ctx: ExecutionContext) -> None:
            ctx = node.execute(ctx, DynamicTestExecutor(self, node, ctx))
            for child in static_children:
                self.execute(child, ctx)

        try:
            node.around(context, invocation)
            result = ExecutionResult.successful()
        except AssertionError as e:
            result = ExecutionResult.failed(e)
        except Exception as e:
            logger.debug("%s raised %s", node.unique_id, e, exc_info=True)
            result = ExecutionResult.errored(e)

        node.state = NodeState.COMPLETED
        node.result = result
        self.listener.execution_finished(node, result)
        return result
