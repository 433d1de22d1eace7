"""
Rendering Module
===============

Mermaid rendering through a headless Chromium session.

Components:
- session: Lazily started, shared browser process
- page_builder: Self-contained HTML page generation
- driver: Per-call render state machine
- extractor: SVG serialisation, PNG capture and PDF printing
- renderer: Async facade combining the above
- sync: Blocking facade running the renderer on a background loop
"""

from .session import BrowserSession
from .page_builder import PageBuilder, build_icon_pack_script
from .driver import RenderDriver, RenderedPage
from .extractor import ArtifactExtractor
from .renderer import MermaidRenderer, get_renderer, close_renderer, render_diagram
from .sync import SyncRenderer

__all__ = [
    "BrowserSession",
    "PageBuilder",
    "build_icon_pack_script",
    "RenderDriver",
    "RenderedPage",
    "ArtifactExtractor",
    "MermaidRenderer",
    "get_renderer",
    "close_renderer",
    "render_diagram",
    "SyncRenderer",
]
