"""
Mermaid Renderer
================

Public entry point of the rendering pipeline. Combines the shared browser
session, the render driver and the artifact extractor behind one ``render``
call.
"""

from typing import Any, Optional, Union

from mmd_render.config.logging import get_logger
from mmd_render.config.settings import Settings, get_settings
from mmd_render.core.exceptions import UnsupportedFormatError
from mmd_render.core.rendering.driver import RenderDriver
from mmd_render.core.rendering.extractor import ArtifactExtractor
from mmd_render.core.rendering.page_builder import PageBuilder
from mmd_render.core.rendering.session import BrowserSession
from mmd_render.models.schemas import OutputFormat, RenderOptions, RenderResult

logger = get_logger(__name__)


def parse_output_format(output_format: Union[str, OutputFormat]) -> OutputFormat:
    """Coerce ``"svg"``/``"png"``/``"pdf"`` into an OutputFormat."""
    if isinstance(output_format, OutputFormat):
        return output_format
    try:
        return OutputFormat(str(output_format).lower())
    except ValueError:
        raise UnsupportedFormatError(f"unsupported output format: {output_format}") from None


class MermaidRenderer:
    """Renders Mermaid definitions to SVG, PNG or PDF."""

    def __init__(
        self,
        session: Optional[BrowserSession] = None,
        settings: Optional[Settings] = None,
        page_builder: Optional[PageBuilder] = None,
        extractor: Optional[ArtifactExtractor] = None,
    ):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="renderer")  # structlog.BoundLoggerBase
        self.session = session or BrowserSession(self.settings)
        self._own_session = session is None
        self.driver = RenderDriver(self.session, page_builder, self.settings)
        self.extractor = extractor or ArtifactExtractor(self.settings)

    async def render(
        self,
        definition: str,
        output_format: Union[str, OutputFormat] = OutputFormat.SVG,
        options: Optional[RenderOptions] = None,
    ) -> RenderResult:
        """
        Render a Mermaid definition.

        Args:
            definition: Mermaid diagram text
            output_format: svg, png or pdf
            options: Rendering options, defaults when omitted

        Returns:
            RenderResult with the artifact bytes and the diagram title/description

        Raises:
            MermaidRenderError: Any typed pipeline failure
        """
        fmt = parse_output_format(output_format)
        options = options or RenderOptions()

        async with self.driver.render(definition, options) as rendered:
            data = await self.extractor.extract(rendered, fmt)

        self.logger.info("Render completed", output_format=fmt.value, file_size=len(data))
        return RenderResult(data=data, output_format=fmt, title=rendered.title, desc=rendered.desc)

    async def close(self) -> None:
        """Shut down the browser session if this renderer owns it."""
        if self._own_session:
            await self.session.release()

    async def __aenter__(self) -> "MermaidRenderer":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


# Global renderer instance
_global_renderer: Optional[MermaidRenderer] = None


def get_renderer() -> MermaidRenderer:
    """Get the global renderer, creating it on first use. The browser starts on first render."""
    global _global_renderer
    if _global_renderer is None:
        _global_renderer = MermaidRenderer()
    return _global_renderer


async def close_renderer() -> None:
    """Close the global renderer."""
    global _global_renderer
    if _global_renderer:
        await _global_renderer.close()
        _global_renderer = None


async def render_diagram(
    definition: str,
    output_format: Union[str, OutputFormat] = OutputFormat.SVG,
    options: Optional[RenderOptions] = None,
) -> RenderResult:
    """Render through the global renderer."""
    return await get_renderer().render(definition, output_format, options)
