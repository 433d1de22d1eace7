"""
Test Configuration
==================

Pytest configuration with fixtures shared by the unit and e2e suites.
"""

from pathlib import Path

import pytest

from mmd_render.config.settings import Settings
from mmd_render.core.rendering.bundle import ScriptBundle
from mmd_render.core.rendering.page_builder import PageBuilder
from mmd_render.models.schemas import RenderOptions

from tests.utils.mocks import MockBrowser, MockPlaywrightFactory

FAKE_MERMAID_JS = "/* mermaid bundle */ window.mermaid = {};"


@pytest.fixture
def fake_mermaid_path(tmp_path: Path) -> Path:
    """Stand-in mermaid.min.js on disk."""
    path = tmp_path / "mermaid.min.js"
    path.write_text(FAKE_MERMAID_JS, encoding="utf-8")
    return path


@pytest.fixture
def test_settings(tmp_path: Path, fake_mermaid_path: Path) -> Settings:
    """Test-specific settings."""
    return Settings(
        environment="testing",
        log_level="DEBUG",
        assets_path=tmp_path,
        mermaid_js_path=fake_mermaid_path,
        render_timeout=5.0,
        resize_settle_delay=0,
        browser_args=[],
    )


@pytest.fixture
def script_bundle() -> ScriptBundle:
    return ScriptBundle(mermaid_js=FAKE_MERMAID_JS)


@pytest.fixture
def page_builder(test_settings: Settings, script_bundle: ScriptBundle) -> PageBuilder:
    return PageBuilder(bundle=script_bundle, settings=test_settings)


@pytest.fixture
def default_options() -> RenderOptions:
    return RenderOptions(mermaid_config={"theme": "default"}, background_color="white")


@pytest.fixture
def mock_browser() -> MockBrowser:
    return MockBrowser()


@pytest.fixture
def playwright_factory(mock_browser: MockBrowser) -> MockPlaywrightFactory:
    """Launch-counting replacement for async_playwright."""
    return MockPlaywrightFactory(mock_browser)
