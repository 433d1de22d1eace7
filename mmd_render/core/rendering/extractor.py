"""
Artifact Extractor
==================

Turns a rendered page into the requested artifact: serialised SVG markup, a
PNG screenshot clipped to the diagram, or a PDF print of the page.
"""

from typing import Any, AsyncIterator, Dict, Optional
from contextlib import asynccontextmanager
import asyncio
import base64
import math

from playwright.async_api import Error as PlaywrightError

from mmd_render.config.logging import get_logger
from mmd_render.config.settings import Settings, get_settings
from mmd_render.core.exceptions import (
    BoundsUnavailableError,
    CaptureError,
    NoVectorElementError,
    UnsupportedFormatError,
)
from mmd_render.core.rendering.driver import RenderedPage
from mmd_render.core.rendering.page_builder import SVG_SELECTOR
from mmd_render.models.schemas import BoundingRect, OutputFormat

logger = get_logger(__name__)

PDF_DPI = 96.0

SERIALIZE_SVG_JS = """({ selector, fit }) => {
  const svg = document.querySelector(selector);
  if (!svg) return '';
  if (fit) {
    const viewBox = svg.getAttribute('viewBox');
    if (viewBox) {
      const parts = viewBox.trim().split(/[\\s,]+/);
      if (parts.length === 4) {
        svg.setAttribute('width', parts[2]);
        svg.setAttribute('height', parts[3]);
        svg.style.removeProperty('max-width');
      }
    }
  }
  return new XMLSerializer().serializeToString(svg);
}"""

BOUNDS_JS = """(selector) => {
  const svg = document.querySelector(selector);
  if (!svg) return null;
  const rect = svg.getBoundingClientRect();
  return {
    x: Math.floor(rect.left),
    y: Math.floor(rect.top),
    width: Math.ceil(rect.width),
    height: Math.ceil(rect.height)
  };
}"""

TRANSPARENT_BLACK = {"r": 0, "g": 0, "b": 0, "a": 0}


class ArtifactExtractor:
    """Extraction strategies for the three output encodings."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="artifact_extractor")  # structlog.BoundLoggerBase

    async def extract(self, rendered: RenderedPage, output_format: OutputFormat) -> bytes:
        """Dispatch to the strategy for the requested format."""
        if output_format is OutputFormat.SVG:
            return await self.extract_svg(rendered, fit=rendered.options.svg_fit)
        if output_format is OutputFormat.PNG:
            return await self.capture_png(rendered)
        if output_format is OutputFormat.PDF:
            return await self.print_pdf(rendered)
        raise UnsupportedFormatError(f"unsupported output format: {output_format}")

    async def extract_svg(self, rendered: RenderedPage, fit: bool = False) -> bytes:
        """
        Serialise the rendered SVG root.

        With ``fit`` the root's width/height are taken from its viewBox so the
        file displays at diagram size on its own.

        Raises:
            NoVectorElementError: If the page holds no SVG
            CaptureError: If the evaluation failed
        """
        try:
            svg_xml = await rendered.page.evaluate(
                SERIALIZE_SVG_JS, {"selector": SVG_SELECTOR, "fit": fit}
            )
        except PlaywrightError as e:
            raise CaptureError(f"failed to extract SVG: {e}") from e

        if not svg_xml:
            raise NoVectorElementError("no SVG element found in rendered output")
        return svg_xml.encode("utf-8")

    async def measure_bounds(self, rendered: RenderedPage) -> BoundingRect:
        """Bounding rectangle of the SVG, top-left floored and size ceiled."""
        try:
            raw = await rendered.page.evaluate(BOUNDS_JS, SVG_SELECTOR)
        except PlaywrightError as e:
            raise CaptureError(f"failed to get SVG bounds: {e}") from e

        if raw is None:
            raise BoundsUnavailableError("no SVG element to measure in rendered output")
        return BoundingRect(**raw)

    @asynccontextmanager
    async def transparent_background(self, rendered: RenderedPage) -> AsyncIterator[None]:
        """Clear the default page background for the duration of one capture."""
        if not rendered.options.is_transparent:
            yield
            return

        try:
            await rendered.cdp.send(
                "Emulation.setDefaultBackgroundColorOverride", {"color": TRANSPARENT_BLACK}
            )
        except PlaywrightError as e:
            raise CaptureError(f"failed to set transparent background: {e}") from e

        try:
            yield
        finally:
            try:
                await rendered.cdp.send("Emulation.setDefaultBackgroundColorOverride")
            except PlaywrightError as e:
                self.logger.warning("Failed to reset background override", error=str(e))

    async def capture_png(self, rendered: RenderedPage) -> bytes:
        """
        Screenshot clipped to the diagram.

        Raises:
            BoundsUnavailableError: If the SVG cannot be measured
            CaptureError: If resizing or capturing failed
        """
        bounds = await self.measure_bounds(rendered)

        viewport = {
            "width": max(1, math.ceil(bounds.right)),
            "height": max(1, math.ceil(bounds.bottom)),
        }
        try:
            # Device scale factor is kept by the browser context
            await rendered.page.set_viewport_size(viewport)
        except PlaywrightError as e:
            raise CaptureError(f"failed to resize viewport for PNG: {e}") from e

        await asyncio.sleep(self.settings.resize_settle_delay)

        params: Dict[str, Any] = {
            "format": "png",
            "clip": {
                "x": bounds.x,
                "y": bounds.y,
                "width": bounds.width,
                "height": bounds.height,
                "scale": 1,
            },
            "captureBeyondViewport": True,
        }

        async with self.transparent_background(rendered):
            try:
                result = await rendered.cdp.send("Page.captureScreenshot", params)
            except PlaywrightError as e:
                raise CaptureError(f"failed to capture PNG: {e}") from e

        data = base64.b64decode(result["data"])
        self.logger.debug(
            "PNG captured",
            width=bounds.width,
            height=bounds.height,
            scale=rendered.options.scale,
            file_size=len(data),
        )
        return data

    async def print_pdf(self, rendered: RenderedPage) -> bytes:
        """
        Print the page to PDF, optionally sized to the diagram.

        Raises:
            BoundsUnavailableError: If ``pdf_fit`` is set and the SVG cannot be measured
            CaptureError: If printing failed
        """
        params: Dict[str, Any] = {}

        async with self.transparent_background(rendered):
            if rendered.options.pdf_fit:
                bounds = await self.measure_bounds(rendered)
                paper_width, paper_height = bounds.paper_size_inches(PDF_DPI)
                params.update(
                    paperWidth=paper_width,
                    paperHeight=paper_height,
                    marginTop=0,
                    marginBottom=0,
                    marginLeft=0,
                    marginRight=0,
                    pageRanges="1-1",
                )
            params["printBackground"] = True

            try:
                result = await rendered.cdp.send("Page.printToPDF", params)
            except PlaywrightError as e:
                raise CaptureError(f"failed to generate PDF: {e}") from e

        data = base64.b64decode(result["data"])
        self.logger.debug("PDF printed", fit=rendered.options.pdf_fit, file_size=len(data))
        return data
