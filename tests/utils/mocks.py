"""
Test Mocks
===========

Playwright doubles for exercising the rendering pipeline without a browser.
"""

import base64
import json
from typing import Any, Dict, List, Optional, Set, Tuple
from unittest.mock import AsyncMock, MagicMock

from playwright.async_api import Error as PlaywrightError

from mmd_render.core.rendering.driver import READ_RECORD_JS
from mmd_render.core.rendering.extractor import BOUNDS_JS, SERIALIZE_SVG_JS

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png"
PDF_BYTES = b"%PDF-1.4\nfake-pdf"

SAMPLE_SVG = (
    '<svg id="my-svg" xmlns="http://www.w3.org/2000/svg" width="100%" '
    'style="max-width: 120px; background-color: white;" viewBox="0 0 120 240"></svg>'
)
SAMPLE_SVG_FIT = (
    '<svg id="my-svg" xmlns="http://www.w3.org/2000/svg" width="120" '
    'style="background-color: white;" viewBox="0 0 120 240" height="240"></svg>'
)


class MockCDPSession:
    """CDP session recording every command it receives."""

    def __init__(self, failures: Optional[Set[str]] = None):
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self.failures = failures or set()
        self.send = AsyncMock(side_effect=self._send)
        self.detach = AsyncMock()

    def _send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.calls.append((method, params))
        if method in self.failures:
            raise PlaywrightError(f"{method} failed")
        if method == "Browser.getVersion":
            return {"product": "HeadlessChrome/120.0.0.0"}
        if method == "Page.getFrameTree":
            return {"frameTree": {"frame": {"id": "FRAME-1"}}}
        if method == "Page.captureScreenshot":
            return {"data": base64.b64encode(PNG_BYTES).decode("ascii")}
        if method == "Page.printToPDF":
            return {"data": base64.b64encode(PDF_BYTES).decode("ascii")}
        return {}

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    def params_for(self, method: str) -> Optional[Dict[str, Any]]:
        for name, params in self.calls:
            if name == method:
                return params
        return None


class MockPage:
    """Page whose script evaluations answer with canned diagram state."""

    def __init__(
        self,
        record: Optional[Dict[str, Any]] = None,
        svg: str = SAMPLE_SVG,
        svg_fit: str = SAMPLE_SVG_FIT,
        bounds: Optional[Dict[str, float]] = None,
    ):
        self.record = {"title": None, "desc": None, "success": True} if record is None else record
        self.svg = svg
        self.svg_fit = svg_fit
        self.bounds = {"x": 8, "y": 8, "width": 120, "height": 240} if bounds is None else bounds
        self.goto = AsyncMock()
        self.wait_for_function = AsyncMock()
        self.set_viewport_size = AsyncMock()
        self.set_default_timeout = MagicMock()
        self.evaluate = AsyncMock(side_effect=self._evaluate)

    def _evaluate(self, script: str, arg: Any = None) -> Any:
        if script == READ_RECORD_JS:
            return json.dumps(self.record)
        if script == SERIALIZE_SVG_JS:
            return self.svg_fit if arg["fit"] else self.svg
        if script == BOUNDS_JS:
            return self.bounds
        raise AssertionError(f"unexpected script: {script[:40]}")


class MockBrowserContext:
    """Browser context handing out one page and one CDP session."""

    def __init__(self, page: MockPage, cdp: MockCDPSession):
        self.page = page
        self.cdp = cdp
        self.new_page = AsyncMock(return_value=page)
        self.new_cdp_session = AsyncMock(return_value=cdp)
        self.close = AsyncMock()


class MockBrowser:
    """Browser creating a fresh context per render call."""

    def __init__(self, page_kwargs: Optional[Dict[str, Any]] = None, cdp_failures: Optional[Set[str]] = None):
        self.page_kwargs = page_kwargs or {}
        self.cdp_failures = cdp_failures
        self.contexts: List[MockBrowserContext] = []
        self.context_kwargs: List[Dict[str, Any]] = []
        self.browser_cdp = MockCDPSession()
        self.new_context = AsyncMock(side_effect=self._new_context)
        self.new_browser_cdp_session = AsyncMock(return_value=self.browser_cdp)
        self.close = AsyncMock()

    def _new_context(self, **kwargs: Any) -> MockBrowserContext:
        self.context_kwargs.append(kwargs)
        context = MockBrowserContext(
            MockPage(**self.page_kwargs), MockCDPSession(self.cdp_failures)
        )
        self.contexts.append(context)
        return context

    @property
    def last_context(self) -> MockBrowserContext:
        return self.contexts[-1]


class MockPlaywrightFactory:
    """Stands in for ``async_playwright`` and counts browser launches."""

    def __init__(self, browser: Optional[MockBrowser] = None, launch_error: Optional[Exception] = None):
        self.browser = browser or MockBrowser()
        self.launch_error = launch_error
        self.launches = 0
        self.launch_kwargs: Dict[str, Any] = {}
        self.playwright = MagicMock()
        self.playwright.stop = AsyncMock()
        self.playwright.chromium.launch = AsyncMock(side_effect=self._launch)

    def _launch(self, **kwargs: Any) -> MockBrowser:
        self.launches += 1
        self.launch_kwargs = kwargs
        if self.launch_error is not None:
            raise self.launch_error
        return self.browser

    def __call__(self) -> MagicMock:
        manager = MagicMock()
        manager.start = AsyncMock(return_value=self.playwright)
        return manager
