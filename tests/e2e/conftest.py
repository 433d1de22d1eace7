"""
E2E Test Configuration
======================

End-to-end fixtures rendering through a real Chromium and the bundled Mermaid
script. Tests are skipped when either is unavailable.
"""

import pytest
import pytest_asyncio

from mmd_render.config.settings import Settings
from mmd_render.core.exceptions import AssetNotFoundError, LaunchError
from mmd_render.core.rendering.bundle import load_script_bundle
from mmd_render.core.rendering.renderer import MermaidRenderer


@pytest.fixture(scope="session")
def e2e_settings() -> Settings:
    """Settings from the environment, with the bundled assets."""
    settings = Settings(environment="testing", render_timeout=30.0)
    try:
        load_script_bundle(settings)
    except AssetNotFoundError as e:
        pytest.skip(f"Mermaid bundle unavailable: {e}")
    return settings


@pytest_asyncio.fixture
async def renderer(e2e_settings: Settings):
    """Renderer with its own browser session, closed after each test."""
    renderer = MermaidRenderer(settings=e2e_settings)
    try:
        await renderer.session.acquire()
    except LaunchError as e:
        pytest.skip(f"Chromium unavailable: {e}")

    yield renderer
    await renderer.close()
