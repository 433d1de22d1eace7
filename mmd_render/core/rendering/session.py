"""
Browser Session
===============

Owns the single Chromium process shared by every render call. The process is
started lazily on first use, reused by later calls and shut down explicitly.
"""

from typing import Any, Callable, Dict, List, Optional
import asyncio

from playwright.async_api import async_playwright, Browser, Playwright

from mmd_render.config.logging import get_logger
from mmd_render.config.settings import Settings, get_settings
from mmd_render.core.exceptions import LaunchError
from mmd_render.models.schemas import SessionState

logger = get_logger(__name__)

BASE_BROWSER_ARGS = [
    "--disable-gpu",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-setuid-sandbox",
]


def normalize_flag(flag: str) -> str:
    """Accept ``no-sandbox`` as well as ``--no-sandbox``."""
    flag = flag.strip()
    return flag if flag.startswith("-") else f"--{flag}"


class BrowserSession:
    """Lazily started, reusable Chromium process.

    ``acquire`` and ``release`` are serialised by one lock. Renders issued
    through the returned browser handle are not: each one opens its own
    browser context and runs concurrently with the others.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        playwright_factory: Optional[Callable[[], Any]] = None,
    ):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="browser_session")  # structlog.BoundLoggerBase
        self._playwright_factory = playwright_factory or async_playwright
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._state = SessionState.NOT_STARTED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    def launch_args(self) -> List[str]:
        """Fixed sandbox/GPU flags followed by the configured extra flags."""
        args = list(BASE_BROWSER_ARGS)
        for flag in self.settings.browser_args:
            flag = normalize_flag(flag)
            if flag not in args:
                args.append(flag)
        return args

    def launch_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "headless": self.settings.browser_headless,
            "args": self.launch_args(),
            "timeout": self.settings.browser_launch_timeout * 1000,
        }
        if self.settings.browser_executable_path:
            options["executable_path"] = self.settings.browser_executable_path
        return options

    async def acquire(self) -> Browser:
        """
        Return the live browser, launching it on first use.

        Raises:
            LaunchError: If Chromium fails to start or to answer the startup round trip
        """
        async with self._lock:
            if self._state is SessionState.READY and self._browser is not None:
                return self._browser

            self._state = SessionState.STARTING
            try:
                browser = await self._launch()
            except Exception as e:
                await self._abort_launch()
                raise LaunchError(f"failed to start browser: {e}") from e
            except BaseException:
                # Cancelled mid-launch: drop whatever was started
                await self._abort_launch()
                raise

            self._state = SessionState.READY
            return browser

    async def _launch(self) -> Browser:
        options = self.launch_options()
        self.logger.info(
            "Launching browser",
            headless=options["headless"],
            executable_path=options.get("executable_path"),
        )

        self._playwright = await self._playwright_factory().start()
        self._browser = await self._playwright.chromium.launch(**options)

        # Round trip to make sure the process answers before it is handed out
        cdp = await self._browser.new_browser_cdp_session()
        try:
            version = await cdp.send("Browser.getVersion")
        finally:
            await cdp.detach()

        self.logger.info("Browser ready", product=version.get("product"))
        return self._browser

    async def _abort_launch(self) -> None:
        await self._teardown()
        self._state = SessionState.NOT_STARTED

    async def release(self) -> None:
        """Shut the browser down. Safe when never started and safe to repeat."""
        async with self._lock:
            if self._browser is None and self._playwright is None:
                if self._state is SessionState.READY:
                    self._state = SessionState.CLOSED
                return

            await self._teardown()
            self._state = SessionState.CLOSED
            self.logger.info("Browser closed")

    async def _teardown(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                self.logger.warning("Error closing browser", error=str(e))
            finally:
                self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                self.logger.warning("Error stopping Playwright", error=str(e))
            finally:
                self._playwright = None

    async def __aenter__(self) -> "BrowserSession":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.release()
