"""Execution listeners — observers of node lifecycle events and reporting entries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .execution import ExecutionResult
    from .node import TestDescriptor

logger = logging.getLogger(__name__)


class ExecutionListener:
    """Base listener; every hook is a no-op."""

    def dynamic_test_registered(self, node: "TestDescriptor") -> None:
        pass

    def execution_started(self, node: "TestDescriptor") -> None:
        pass

    def execution_skipped(self, node: "TestDescriptor", reason: str) -> None:
        pass

    def execution_finished(self, node: "TestDescriptor", result: "ExecutionResult") -> None:
        pass

    def reporting_entry_published(self, node: "TestDescriptor", entry: dict[str, str]) -> None:
        pass


class CompositeListener(ExecutionListener):
    """Forwards each event to every listener, in order."""

    def __init__(self, listeners: Iterable[ExecutionListener]):
        self.listeners = list(listeners)

    def dynamic_test_registered(self, node):
        for listener in self.listeners:
            listener.dynamic_test_registered(node)

    def execution_started(self, node):
        for listener in self.listeners:
            listener.execution_started(node)

    def execution_skipped(self, node, reason):
        for listener in self.listeners:
            listener.execution_skipped(node, reason)

    def execution_finished(self, node, result):
        for listener in self.listeners:
            listener.execution_finished(node, result)

    def reporting_entry_published(self, node, entry):
        for listener in self.listeners:
            listener.reporting_entry_published(node, entry)


class StdoutRedirectingListener(CompositeListener):
    """Also prints reporting entries, for runners that drop them."""

    def reporting_entry_published(self, node, entry):
        super().reporting_entry_published(node, entry)
        for key, value in entry.items():
            print(f"[additionalTestArtifacts]{key}={value}", flush=True)


class LoggingListener(ExecutionListener):
    def dynamic_test_registered(self, node):
        logger.debug("Registered %s", node.unique_id)

    def execution_started(self, node):
        logger.debug("Started %s", node.display_name)

    def execution_skipped(self, node, reason):
        logger.info("[SKIP] %s: %s", node.display_name, reason)

    def execution_finished(self, node, result):
        if node.is_test:
            logger.info("[%s] %s", result.status.upper(), node.display_name)
        elif result.status != "success":
            logger.error("%s failed: %s", node.display_name, result.error)
