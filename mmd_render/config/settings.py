"""
Application Settings
===================

Renderer settings and environment configuration using Pydantic Settings.
Covers browser launch configuration, render deadlines and bundled asset locations.
"""

from typing import Annotated, Optional, List, Union
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
import json
from pathlib import Path


DEFAULT_ASSETS_PATH = Path(__file__).resolve().parent.parent / "core" / "rendering" / "assets"


class Settings(BaseSettings):
    """Main renderer settings with environment variable support."""

    # Application Configuration
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Browser Configuration
    browser_executable_path: Optional[str] = Field(
        default=None, description="Chromium executable path (Playwright default when unset)"
    )
    browser_args: Annotated[List[str], NoDecode] = Field(
        default_factory=list, description="Extra Chromium command line flags"
    )
    browser_headless: bool = Field(default=True, description="Run browser in headless mode")
    browser_launch_timeout: float = Field(
        default=30.0, gt=0, description="Browser launch timeout in seconds"
    )

    # Rendering Configuration
    render_timeout: float = Field(
        default=60.0, gt=0, description="Overall per-render deadline in seconds"
    )
    resize_settle_delay: float = Field(
        default=0.1, ge=0, description="Pause after viewport resize before capture, in seconds"
    )
    default_svg_id: str = Field(default="my-svg", description="Default id of the rendered SVG")

    # Asset Configuration
    assets_path: Path = Field(
        default=DEFAULT_ASSETS_PATH, description="Directory holding the bundled Mermaid scripts"
    )
    mermaid_js_path: Optional[Path] = Field(
        default=None, description="Explicit path to mermaid.min.js"
    )
    zenuml_js_path: Optional[Path] = Field(
        default=None, description="Explicit path to the ZenUML extension bundle"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("browser_args", mode="before")
    @classmethod
    def parse_browser_args(cls, v: Union[str, List[str], None]) -> List[str]:
        """Parse browser flags from a JSON list, a comma-separated string or a list."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [arg.strip() for arg in v.split(",") if arg.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="MMD_RENDER_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
