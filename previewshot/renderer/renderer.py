"""Out-of-process preview renderer.

The rendering engine runs in its own worker process so that its runtime
state never mixes with the test engine's. Both sides exchange one JSON
object per line over the worker's stdin/stdout:

    -> {"type": "init", "options": {...}}
    <- {"status": "ready"}
    -> {"type": "render", "screenshot": {...}, "output_folder": "/abs/dir"}
    <- {"status": "ok", "results": [{"image_path": "...", "preview_id": "...", "error": null}, ...]}
    <- {"status": "error", "message": "..."}
    -> {"type": "shutdown"}

The worker's stderr is inherited so its diagnostics reach the console.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from typing import Optional, Protocol

from pydantic import BaseModel, Field, ValidationError

from previewshot.models.config import RendererConfig
from previewshot.models.render import PreviewScreenshot, RenderResult

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 10


class RendererError(Exception):
    """A render request failed."""


class RendererInitializationError(RendererError):
    """The renderer worker could not be started."""


class RendererProtocol(Protocol):
    def render(
        self, screenshot: PreviewScreenshot, output_folder: str
    ) -> list[RenderResult]: ...

    def close(self) -> None: ...

    def __enter__(self) -> "RendererProtocol": ...

    def __exit__(self, *exc_info) -> None: ...


class WorkerResponse(BaseModel):
    status: str  # ready, ok, error
    results: list[RenderResult] = Field(default_factory=list)
    message: Optional[str] = None


class Renderer:
    """Client for a renderer worker process. Use as a context manager."""

    def __init__(self, config: RendererConfig):
        if not config.command:
            raise RendererInitializationError("No renderer command configured (renderer.command)")

        env = {**os.environ, **config.env}
        logger.debug("Starting renderer worker: %s", " ".join(config.command))
        try:
            self._process = subprocess.Popen(
                config.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                text=True,
                env=env,
            )
        except OSError as e:
            raise RendererInitializationError(f"Could not start renderer worker {config.command[0]}: {e}") from e

        self._closed = False
        try:
            response = self._request({"type": "init", "options": config.options})
        except RendererError as e:
            self._terminate()
            raise RendererInitializationError(f"Renderer worker failed to start: {e}") from e
        if response.status != "ready":
            self._terminate()
            raise RendererInitializationError(
                f"Renderer worker failed to start: {response.message or response.status}"
            )
        logger.info("Renderer worker ready (pid %d)", self._process.pid)

    def _request(self, message: dict) -> WorkerResponse:
        assert self._process.stdin is not None and self._process.stdout is not None
        try:
            self._process.stdin.write(json.dumps(message) + "\n")
            self._process.stdin.flush()
            line = self._process.stdout.readline()
        except (BrokenPipeError, OSError) as e:
            raise RendererError(f"Lost connection to renderer worker: {e}") from e

        if not line:
            code = self._process.poll()
            raise RendererError(f"Renderer worker exited unexpectedly (exit code {code})")
        try:
            return WorkerResponse.model_validate_json(line)
        except ValidationError as e:
            raise RendererError(f"Malformed renderer response: {line.strip()[:200]}") from e

    def render(
        self, screenshot: PreviewScreenshot, output_folder: str
    ) -> list[RenderResult]:
        """Render one preview; returns one result per image, in fan-out order."""
        if self._closed:
            raise RendererError("Renderer is closed")
        logger.debug("Rendering %s", screenshot.preview_id)
        response = self._request({
            "type": "render",
            "screenshot": screenshot.model_dump(),
            "output_folder": output_folder,
        })
        if response.status != "ok":
            raise RendererError(response.message or f"Rendering {screenshot.preview_id} failed")

        results = []
        for result in response.results:
            if not result.preview_id:
                result = result.model_copy(update={"preview_id": screenshot.preview_id})
            results.append(result)
        return results

    def _terminate(self) -> None:
        self._closed = True
        if self._process.stdin:
            try:
                self._process.stdin.close()
            except OSError:
                pass
        try:
            self._process.wait(timeout=SHUTDOWN_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired:
            logger.warning("Renderer worker did not exit, killing it")
            self._process.kill()
            self._process.wait()
        if self._process.stdout:
            self._process.stdout.close()

    def close(self) -> None:
        if self._closed:
            return
        try:
            assert self._process.stdin is not None
            self._process.stdin.write(json.dumps({"type": "shutdown"}) + "\n")
            self._process.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            logger.debug("Renderer worker already gone: %s", e)
        self._terminate()
        logger.debug("Renderer worker exited with %s", self._process.returncode)

    def __enter__(self) -> "Renderer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
