"""Discovery selectors and their resolution into the test tree."""

from __future__ import annotations

import importlib
import inspect
import logging
import sys
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from previewshot.engine.descriptors import ClassDescriptor, EngineDescriptor, PreviewMethodDescriptor

from .annotations import is_preview_test
from .finder import DiscoveryError, _unwrap, find_preview_method, find_preview_test_methods, qualified_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectorySelector:
    """A test source root; every module below it is scanned."""
    path: str


@dataclass(frozen=True)
class ModuleSelector:
    module_name: str


@dataclass(frozen=True)
class ClassSelector:
    class_name: str  # module.Class


@dataclass(frozen=True)
class MethodSelector:
    class_name: str
    method_name: str


Selector = Union[DirectorySelector, ModuleSelector, ClassSelector, MethodSelector]


def load_class(class_name: str) -> type:
    """Import ``module.Class`` (nested classes allowed)."""
    parts = class_name.split(".")
    for split in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:split])
        try:
            obj = importlib.import_module(module_name)
        except ModuleNotFoundError:
            continue
        try:
            for attr in parts[split:]:
                obj = getattr(obj, attr)
        except AttributeError:
            break
        if inspect.isclass(obj):
            return obj
        break
    raise DiscoveryError(f"Cannot load class {class_name}")


def modules_in_directory(root: Path) -> list[str]:
    """Module names for every Python file below root, importable once root is on sys.path."""
    names = []
    for path in sorted(root.rglob("*.py")):
        rel = path.relative_to(root).with_suffix("")
        parts = list(rel.parts)
        if parts[-1] == "__init__":
            parts = parts[:-1]
        if not parts or any(not p.isidentifier() for p in parts):
            continue
        names.append(".".join(parts))
    return names


class SelectorResolver:
    """Resolves selectors into class and method nodes under an engine node.

    Class and module selectors expand to what they contain; a method selector
    only resolves when the method is a @preview_test. Resolving the same
    selectors twice yields the same tree.
    """

    def __init__(self, engine: EngineDescriptor):
        self.engine = engine

    def resolve(self, selectors: list[Selector]) -> EngineDescriptor:
        queue: deque[Selector] = deque(selectors)
        seen: set[Selector] = set()
        while queue:
            selector = queue.popleft()
            if selector in seen:
                continue
            seen.add(selector)
            match selector:
                case DirectorySelector():
                    queue.extend(self._resolve_directory(selector))
                case ModuleSelector():
                    queue.extend(self._resolve_module(selector))
                case ClassSelector():
                    queue.extend(self._resolve_class(selector))
                case MethodSelector():
                    self._resolve_method(selector)
        self.engine.prune()
        return self.engine

    def _resolve_directory(self, selector: DirectorySelector) -> list[Selector]:
        root = Path(selector.path).resolve()
        if not root.is_dir():
            raise DiscoveryError(f"Test directory not found: {root}")
        if str(root) not in sys.path:
            sys.path.insert(0, str(root))
        return [ModuleSelector(name) for name in modules_in_directory(root)]

    def _resolve_module(self, selector: ModuleSelector) -> list[Selector]:
        try:
            module = importlib.import_module(selector.module_name)
        except ImportError as e:
            raise DiscoveryError(f"Cannot import {selector.module_name}: {e}") from e
        return [
            ClassSelector(qualified_name(obj))
            for obj in vars(module).values()
            if inspect.isclass(obj) and obj.__module__ == module.__name__
        ]

    def _class_node(self, cls: type) -> ClassDescriptor:
        class_name = qualified_name(cls)
        node = ClassDescriptor(self.engine.unique_id, class_name)
        existing = self.engine.find_child(node.unique_id)
        if existing is not None:
            return existing  # type: ignore[return-value]
        self.engine.add_child(node)
        return node

    def _resolve_class(self, selector: ClassSelector) -> list[Selector]:
        cls = load_class(selector.class_name)
        self._class_node(cls)
        return [MethodSelector(selector.class_name, name) for name, _ in find_preview_test_methods(cls)]

    def _resolve_method(self, selector: MethodSelector) -> Optional[PreviewMethodDescriptor]:
        cls = load_class(selector.class_name)
        func = _unwrap(vars(cls).get(selector.method_name))
        if func is None or not is_preview_test(func):
            logger.debug("Unresolved %s.%s: not a @preview_test method", selector.class_name, selector.method_name)
            return None

        class_node = self._class_node(cls)
        class_name = class_node.class_name
        preview = find_preview_method(func, f"{class_name}.{selector.method_name}")
        if preview is None:
            logger.warning("%s.%s is a @preview_test without previews", class_name, selector.method_name)
            return None

        node = PreviewMethodDescriptor(class_node.unique_id, class_name, selector.method_name, preview)
        existing = class_node.find_child(node.unique_id)
        if existing is not None:
            return existing  # type: ignore[return-value]
        class_node.add_child(node)
        return node
