"""
Render Driver
=============

Runs one render call inside its own browser context: sets the viewport, injects
the generated page, waits for the page to publish its completion record and
hands the rendered page to the artifact extractor.
"""

from typing import Any, AsyncIterator, Dict, FrozenSet, Optional, Tuple
from contextlib import asynccontextmanager
from dataclasses import dataclass
import asyncio

from playwright.async_api import Browser, BrowserContext, CDPSession, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic import ValidationError

from mmd_render.config.logging import get_logger
from mmd_render.config.settings import Settings, get_settings
from mmd_render.core.exceptions import (
    CaptureError,
    DiagramRenderError,
    MermaidRenderError,
    RenderTimeoutError,
)
from mmd_render.core.rendering.page_builder import PageBuilder, RESULT_SLOT, SVG_SELECTOR
from mmd_render.core.rendering.session import BrowserSession
from mmd_render.models.schemas import CompletionRecord, RenderOptions, RenderState

logger = get_logger(__name__)

READ_RECORD_JS = f"() => JSON.stringify(window[{RESULT_SLOT!r}] || {{}})"

# Resolves once the page published a failure, or a success with the SVG in place
COMPLETION_JS = f"""() => {{
  const record = window[{RESULT_SLOT!r}];
  if (!record) return false;
  return !record.success || document.querySelector({SVG_SELECTOR!r}) !== null;
}}"""

# Diagnostic read after a timeout; the page may be hung
RECORD_READ_GRACE = 1.0

TRANSITIONS: Dict[RenderState, FrozenSet[RenderState]] = {
    RenderState.IDLE: frozenset({RenderState.VIEWPORT_SET, RenderState.FAILED}),
    RenderState.VIEWPORT_SET: frozenset({RenderState.LOADED, RenderState.FAILED}),
    RenderState.LOADED: frozenset({RenderState.AWAITING_COMPLETION, RenderState.FAILED}),
    RenderState.AWAITING_COMPLETION: frozenset({RenderState.COMPLETED, RenderState.FAILED}),
    RenderState.COMPLETED: frozenset(),
    RenderState.FAILED: frozenset(),
}


def _close_orphaned_context(creation: "asyncio.Future[BrowserContext]") -> None:
    if creation.cancelled() or creation.exception() is not None:
        return
    asyncio.ensure_future(creation.result().close())


@dataclass
class RenderedPage:
    """A page whose diagram finished rendering, ready for extraction."""

    page: Page
    cdp: CDPSession
    options: RenderOptions
    record: CompletionRecord

    @property
    def title(self) -> Optional[str]:
        return self.record.title

    @property
    def desc(self) -> Optional[str]:
        return self.record.desc


class RenderCall:
    """State of a single render call. Steps run strictly in sequence."""

    def __init__(self, browser: Browser, options: RenderOptions, timeout: float):
        self.browser = browser
        self.options = options
        self.timeout = timeout
        self.state = RenderState.IDLE
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.cdp: Optional[CDPSession] = None
        self.logger: Any = logger.bind(component="render_call")  # structlog.BoundLoggerBase

    def _transition(self, state: RenderState) -> None:
        if state not in TRANSITIONS[self.state]:
            raise MermaidRenderError(f"invalid render transition {self.state.value} -> {state.value}")
        self.logger.debug("Render state", previous=self.state.value, state=state.value)
        self.state = state

    def fail(self) -> None:
        if self.state not in (RenderState.COMPLETED, RenderState.FAILED):
            self._transition(RenderState.FAILED)

    async def open(self) -> None:
        """IDLE -> VIEWPORT_SET: isolated context sized to the requested page."""
        creation = asyncio.ensure_future(
            self.browser.new_context(
                viewport={"width": self.options.width, "height": self.options.height},
                device_scale_factor=self.options.scale,
            )
        )
        try:
            try:
                self.context = await asyncio.shield(creation)
            except asyncio.CancelledError:
                # The context still gets created; close it once it exists
                creation.add_done_callback(_close_orphaned_context)
                raise
            self.page = await self.context.new_page()
            self.page.set_default_timeout(self.timeout * 1000)
            self.cdp = await self.context.new_cdp_session(self.page)
        except PlaywrightError as e:
            raise CaptureError(f"failed to set viewport: {e}") from e
        self._transition(RenderState.VIEWPORT_SET)

    async def load(self, html: str) -> None:
        """VIEWPORT_SET -> LOADED: write the page straight into the blank frame."""
        assert self.page is not None and self.cdp is not None
        try:
            await self.page.goto("about:blank")
            tree = await self.cdp.send("Page.getFrameTree")
            frame_id = tree["frameTree"]["frame"]["id"]
        except PlaywrightError as e:
            raise CaptureError(f"failed to navigate: {e}") from e

        try:
            await self.cdp.send("Page.setDocumentContent", {"frameId": frame_id, "html": html})
        except PlaywrightError as e:
            raise CaptureError(f"failed to set page content: {e}") from e
        self._transition(RenderState.LOADED)

    async def wait_for_completion(self, remaining: float) -> CompletionRecord:
        """LOADED -> AWAITING_COMPLETION -> COMPLETED, or a typed failure."""
        assert self.page is not None
        try:
            await self.page.wait_for_function(COMPLETION_JS, timeout=max(remaining, 0.001) * 1000)
        except PlaywrightTimeoutError as e:
            record, raw = await self.read_record_best_effort()
            raise RenderTimeoutError(self.timeout, record=record, raw=raw) from e
        except PlaywrightError as e:
            raise CaptureError(f"failed waiting for SVG: {e}") from e
        self._transition(RenderState.AWAITING_COMPLETION)

        record, _ = await self.read_record()
        if not record.success:
            raise DiagramRenderError(record.error or "unknown error")

        self._transition(RenderState.COMPLETED)
        return record

    async def read_record(self) -> Tuple[CompletionRecord, str]:
        assert self.page is not None
        try:
            raw = await self.page.evaluate(READ_RECORD_JS)
        except PlaywrightError as e:
            raise CaptureError(f"failed to get render result: {e}") from e
        try:
            return CompletionRecord.model_validate_json(raw), raw
        except ValidationError as e:
            raise CaptureError(f"failed to parse render result: {e}") from e

    async def read_record_best_effort(self) -> Tuple[Optional[CompletionRecord], str]:
        """Completion record for diagnostics; never raises."""
        if self.page is None:
            return None, "{}"
        try:
            return await asyncio.wait_for(self.read_record(), timeout=RECORD_READ_GRACE)
        except asyncio.TimeoutError:
            self.logger.debug("Render result unavailable", error="page did not answer")
            return None, "{}"
        except MermaidRenderError as e:
            self.logger.debug("Render result unavailable", error=str(e))
            return None, "{}"

    async def close(self) -> None:
        if self.context is None:
            return
        try:
            await self.context.close()
        except PlaywrightError as e:
            self.logger.warning("Error closing browser context", error=str(e))
        finally:
            self.context = None


class RenderDriver:
    """Drives render calls through the shared browser session."""

    def __init__(
        self,
        session: BrowserSession,
        page_builder: Optional[PageBuilder] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.session = session
        self.page_builder = page_builder or PageBuilder(settings=self.settings)
        self.logger: Any = logger.bind(component="render_driver")  # structlog.BoundLoggerBase

    @asynccontextmanager
    async def render(self, definition: str, options: RenderOptions) -> AsyncIterator[RenderedPage]:
        """
        Render a definition and yield the finished page.

        The call's browser context is closed when the block exits, whatever the
        outcome. The shared session stays up.

        Raises:
            ConfigSerializationError: If the page cannot be built
            LaunchError: If the browser cannot be started
            RenderTimeoutError: If the page did not finish within the deadline
            DiagramRenderError: If Mermaid reported a failure
            CaptureError: If a protocol call failed
        """
        html = self.page_builder.build(definition, options)
        browser = await self.session.acquire()

        timeout = self.settings.render_timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        call = RenderCall(browser, options, timeout)

        try:
            try:
                await asyncio.wait_for(self._prepare(call, html), timeout=timeout)
            except asyncio.TimeoutError as e:
                record, raw = await call.read_record_best_effort()
                raise RenderTimeoutError(timeout, record=record, raw=raw) from e

            record = await call.wait_for_completion(deadline - loop.time())
            assert call.page is not None and call.cdp is not None

            self.logger.info(
                "Diagram rendered",
                width=options.width,
                height=options.height,
                title=record.title,
            )
            yield RenderedPage(page=call.page, cdp=call.cdp, options=options, record=record)
        except BaseException:
            call.fail()
            raise
        finally:
            await call.close()

    async def _prepare(self, call: RenderCall, html: str) -> None:
        await call.open()
        await call.load(html)
