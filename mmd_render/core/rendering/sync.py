"""
Blocking Renderer
=================

Synchronous facade over ``MermaidRenderer``. One event loop runs on a
background thread and owns the browser session; every call is submitted to it,
so callers on any thread block only on their own render.
"""

from typing import Any, Callable, Coroutine, Optional, TypeVar, Union
import asyncio
import threading

from mmd_render.config.logging import get_logger
from mmd_render.config.settings import Settings, get_settings
from mmd_render.core.exceptions import MermaidRenderError
from mmd_render.core.rendering.renderer import MermaidRenderer
from mmd_render.models.schemas import OutputFormat, RenderOptions, RenderResult

logger = get_logger(__name__)

T = TypeVar("T")


class SyncRenderer:
    """Thread-safe blocking renderer."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        renderer_factory: Callable[[Settings], MermaidRenderer] = lambda s: MermaidRenderer(settings=s),
    ):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="sync_renderer")  # structlog.BoundLoggerBase
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="mmd-render-loop", daemon=True)
        self._close_lock = threading.Lock()
        self._closed = False
        self._thread.start()
        self._renderer = self._call(self._create_renderer(renderer_factory))

    async def _create_renderer(
        self, renderer_factory: Callable[[Settings], MermaidRenderer]
    ) -> MermaidRenderer:
        return renderer_factory(self.settings)

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _call(self, coro: Coroutine[Any, Any, T]) -> T:
        if self._closed:
            coro.close()
            raise MermaidRenderError("renderer is closed")
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    def render(
        self,
        definition: str,
        output_format: Union[str, OutputFormat] = OutputFormat.SVG,
        options: Optional[RenderOptions] = None,
    ) -> RenderResult:
        """Render a definition, blocking until the artifact is ready."""
        return self._call(self._renderer.render(definition, output_format, options))

    def close(self) -> None:
        """Close the browser and stop the loop thread. Safe to repeat."""
        with self._close_lock:
            if self._closed:
                return
            try:
                asyncio.run_coroutine_threadsafe(self._renderer.close(), self._loop).result()
            finally:
                self._closed = True
                self._loop.call_soon_threadsafe(self._loop.stop)
                self._thread.join()
                self._loop.close()
                self.logger.debug("Render loop stopped")

    def __enter__(self) -> "SyncRenderer":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
