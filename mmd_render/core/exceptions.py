"""
Rendering Exceptions
====================

Typed failures raised by the rendering pipeline. Every error is raised to the
immediate caller; nothing is retried inside the core.
"""

from typing import Optional

from mmd_render.models.schemas import CompletionRecord


class MermaidRenderError(Exception):
    """Base class for all rendering failures."""

    pass


class LaunchError(MermaidRenderError):
    """Browser process failed to start or did not answer the startup round trip."""

    pass


class AssetNotFoundError(MermaidRenderError):
    """The bundled Mermaid script could not be found."""

    pass


class ConfigSerializationError(MermaidRenderError):
    """A Mermaid configuration value could not be encoded as JSON."""

    pass


class UnsupportedFormatError(MermaidRenderError, ValueError):
    """Requested output format is not svg, png or pdf."""

    pass


class DiagramRenderError(MermaidRenderError):
    """The in-page Mermaid call reported a failure."""

    def __init__(self, message: str):
        super().__init__(f"Mermaid rendering error: {message}")
        self.message = message


class RenderTimeoutError(MermaidRenderError):
    """The completion wait exceeded the deadline.

    ``record`` holds whatever completion record the page had published by the
    time the deadline expired, so callers can tell an invalid definition apart
    from a hung browser.
    """

    def __init__(self, timeout: float, record: Optional[CompletionRecord] = None, raw: str = "{}"):
        super().__init__(
            f"Mermaid rendering failed (waited {timeout:g}s for SVG)\nrender result: {raw}"
        )
        self.timeout = timeout
        self.record = record

    @property
    def render_error(self) -> Optional[str]:
        """Library error message if the page had already reported a failure."""
        if self.record is not None and not self.record.success:
            return self.record.error
        return None


class NoVectorElementError(MermaidRenderError):
    """No SVG element was found in the rendered page."""

    pass


class BoundsUnavailableError(MermaidRenderError):
    """The bounding rectangle query could not locate the SVG element."""

    pass


class CaptureError(MermaidRenderError):
    """A protocol call failed while extracting the artifact."""

    pass
