"""
mmd-render
==========

Render Mermaid diagram definitions to SVG, PNG and PDF by driving a headless
Chromium through Playwright and an inlined copy of Mermaid.

This package provides:
- A lazily started browser session shared across renders
- Self-contained page generation with JSON-safe script embedding
- A per-call render driver with a bounded completion wait
- Three extraction strategies: SVG markup, clipped PNG, PDF print
"""

__version__ = "1.0.0"
__author__ = "mmd-render Team"

from mmd_render.core.exceptions import (
    MermaidRenderError,
    LaunchError,
    AssetNotFoundError,
    ConfigSerializationError,
    UnsupportedFormatError,
    DiagramRenderError,
    RenderTimeoutError,
    NoVectorElementError,
    BoundsUnavailableError,
    CaptureError,
)
from mmd_render.core.rendering import MermaidRenderer, SyncRenderer, BrowserSession
from mmd_render.models.schemas import IconPack, OutputFormat, RenderOptions, RenderResult

__all__ = [
    "MermaidRenderer",
    "SyncRenderer",
    "BrowserSession",
    "IconPack",
    "OutputFormat",
    "RenderOptions",
    "RenderResult",
    "MermaidRenderError",
    "LaunchError",
    "AssetNotFoundError",
    "ConfigSerializationError",
    "UnsupportedFormatError",
    "DiagramRenderError",
    "RenderTimeoutError",
    "NoVectorElementError",
    "BoundsUnavailableError",
    "CaptureError",
]
