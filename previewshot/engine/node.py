"""Test tree nodes and their unique ids."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterator, Optional

if TYPE_CHECKING:
    from .execution import DynamicTestExecutor, ExecutionContext, ExecutionResult


@dataclass(frozen=True)
class UniqueId:
    segments: tuple[tuple[str, str], ...]

    @classmethod
    def for_engine(cls, engine_id: str) -> "UniqueId":
        return cls((("engine", engine_id),))

    def append(self, segment_type: str, value: str) -> "UniqueId":
        return UniqueId(self.segments + ((segment_type, value),))

    @property
    def engine_id(self) -> str:
        return self.segments[0][1]

    @property
    def last_value(self) -> str:
        return self.segments[-1][1]

    def __str__(self) -> str:
        return "/".join(f"[{t}:{v}]" for t, v in self.segments)


class NodeState(str, enum.Enum):
    DISCOVERED = "discovered"
    EXECUTING = "executing"
    CHILDREN_REGISTERED = "children_registered"
    COMPLETED = "completed"


class NodeType(str, enum.Enum):
    CONTAINER = "container"
    TEST = "test"


class TestDescriptor:
    """A node in the test tree.

    Subclasses override ``execute`` (and optionally ``around``) to do work.
    Containers returning True from ``may_register_tests`` add children while
    executing; all other children exist from discovery on.
    """

    __test__ = False  # not a pytest class
    segment_type = ""
    node_type = NodeType.CONTAINER

    def __init__(self, unique_id: UniqueId, display_name: str, class_name: str = "", method_name: str = ""):
        self.unique_id = unique_id
        self.display_name = display_name
        self.class_name = class_name
        self.method_name = method_name
        self.parent: Optional[TestDescriptor] = None
        self.children: list[TestDescriptor] = []
        self.state = NodeState.DISCOVERED
        self.result: Optional[ExecutionResult] = None

    @property
    def is_test(self) -> bool:
        return self.node_type == NodeType.TEST

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def add_child(self, child: "TestDescriptor") -> None:
        child.parent = self
        self.children.append(child)

    def remove_child(self, child: "TestDescriptor") -> None:
        self.children.remove(child)
        child.parent = None

    def find_child(self, unique_id: UniqueId) -> Optional["TestDescriptor"]:
        for child in self.children:
            if child.unique_id == unique_id:
                return child
        return None

    def walk(self) -> Iterator["TestDescriptor"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def may_register_tests(self) -> bool:
        return False

    def prune(self) -> None:
        """Drop descendant containers that hold no tests and cannot add any."""
        for child in list(self.children):
            child.prune()
            if not child.is_test and not child.children and not child.may_register_tests():
                self.remove_child(child)

    def around(self, context: "ExecutionContext", invocation: Callable[["ExecutionContext"], None]) -> None:
        invocation(context)

    def execute(self, context: "ExecutionContext", dynamic_executor: "DynamicTestExecutor") -> "ExecutionContext":
        return context

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.unique_id})"
