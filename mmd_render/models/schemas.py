"""
Pydantic Models and Schemas
===========================

Core data models for render requests, render results and the internal values
passed between the session, page builder, render driver and artifact extractor.
"""

from typing import Optional, Dict, Any, Tuple
from enum import Enum
import math

from pydantic import BaseModel, ConfigDict, Field, field_validator


TRANSPARENT = "transparent"


# Enums
class OutputFormat(str, Enum):
    """Supported artifact encodings."""
    SVG = "svg"
    PNG = "png"
    PDF = "pdf"


class SessionState(str, Enum):
    """Lifecycle of the shared browser process."""
    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    CLOSED = "closed"


class RenderState(str, Enum):
    """Per-call render driver states."""
    IDLE = "idle"
    VIEWPORT_SET = "viewport_set"
    LOADED = "loaded"
    AWAITING_COMPLETION = "awaiting_completion"
    COMPLETED = "completed"
    FAILED = "failed"


# Render Inputs
class IconPack(BaseModel):
    """Named icon pack fetched lazily by the page from its loader URL."""
    name: str = Field(..., min_length=1, description="Icon pack name used in diagrams")
    url: str = Field(..., min_length=1, description="URL of the icon pack JSON")

    model_config = ConfigDict(frozen=True)


class RenderOptions(BaseModel):
    """Options for rendering one Mermaid definition."""
    mermaid_config: Dict[str, Any] = Field(
        default_factory=lambda: {"theme": "default"},
        description="Mermaid configuration mapping, merged into mermaid.initialize()",
    )
    background_color: str = Field(
        "white", min_length=1, description="CSS colour or 'transparent'"
    )
    css: Optional[str] = Field(None, description="Custom CSS appended inside the SVG root")
    svg_id: Optional[str] = Field(None, description="id attribute of the rendered SVG")

    # Page options
    width: int = Field(800, gt=0, description="Page width in CSS pixels")
    height: int = Field(600, gt=0, description="Page height in CSS pixels")
    scale: float = Field(1.0, gt=0, description="Device scale factor")

    # Output shaping
    pdf_fit: bool = Field(False, description="Size the PDF page to the diagram")
    svg_fit: bool = Field(False, description="Set SVG width/height from its viewBox")

    icon_packs: Tuple[IconPack, ...] = Field(default=(), description="Icon packs to register")

    model_config = ConfigDict(frozen=True)

    @field_validator("mermaid_config")
    @classmethod
    def ensure_theme(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Always carry a theme key."""
        if "theme" not in v:
            v = {"theme": "default", **v}
        return v

    @property
    def is_transparent(self) -> bool:
        return self.background_color == TRANSPARENT


# Pipeline Values
class BoundingRect(BaseModel):
    """Bounding box of the rendered SVG, in CSS pixels."""
    x: float = Field(0, description="Left edge, floored")
    y: float = Field(0, description="Top edge, floored")
    width: float = Field(..., ge=0, description="Width, ceiled")
    height: float = Field(..., ge=0, description="Height, ceiled")

    model_config = ConfigDict(frozen=True)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def paper_size_inches(self, dpi: float = 96.0) -> Tuple[float, float]:
        """Page size that holds the diagram plus its offset mirrored as a margin."""
        width = (math.ceil(self.width) + self.x * 2) / dpi
        height = (math.ceil(self.height) + self.y * 2) / dpi
        return width, height


class CompletionRecord(BaseModel):
    """Structured result the page publishes once rendering finished."""
    success: bool = Field(False, description="Whether Mermaid rendered the diagram")
    title: Optional[str] = Field(None, description="Content of the SVG <title>")
    desc: Optional[str] = Field(None, description="Content of the SVG <desc>")
    error: Optional[str] = Field(None, description="Error message reported by the page")


# Render Output
class RenderResult(BaseModel):
    """Result of rendering one diagram."""
    data: bytes = Field(..., description="Artifact bytes", repr=False)
    output_format: OutputFormat = Field(..., description="Encoding of data")
    title: Optional[str] = Field(None, description="Diagram accessible title")
    desc: Optional[str] = Field(None, description="Diagram accessible description")

    @property
    def file_size(self) -> int:
        return len(self.data)
