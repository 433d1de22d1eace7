"""
Page Builder
============

Builds the self-contained HTML page that renders one Mermaid definition and
publishes a completion record for the render driver to read back.

Every value interpolated into script text is JSON encoded with Jinja2's
``htmlsafe_json_dumps`` first, which also escapes ``<``, ``>``, ``&`` and
``'``. Diagram text therefore cannot close the surrounding ``<script>`` block.
"""

from typing import Any, Iterable, Optional
from pathlib import Path

import jinja2
from jinja2.utils import htmlsafe_json_dumps
from markupsafe import Markup

from mmd_render.config.logging import get_logger
from mmd_render.config.settings import Settings, get_settings
from mmd_render.core.exceptions import ConfigSerializationError
from mmd_render.core.rendering.bundle import ScriptBundle, load_script_bundle
from mmd_render.models.schemas import IconPack, RenderOptions

logger = get_logger(__name__)

CONTAINER_ID = "container"
SVG_SELECTOR = f"#{CONTAINER_ID} svg"
RESULT_SLOT = "__mmd_result"


def js_literal(value: Any) -> Markup:
    """Encode a value as a JavaScript literal that is safe inside <script>."""
    return htmlsafe_json_dumps(value, sort_keys=True, separators=(",", ":"))


def build_icon_pack_script(packs: Iterable[IconPack]) -> str:
    """Script registering each icon pack as a lazy loader; empty when there are none."""
    packs = list(packs)
    if not packs:
        return ""

    entries = []
    for pack in packs:
        name = js_literal(pack.name)
        url = js_literal(pack.url)
        entries.append(
            "          {\n"
            f"            name: {name},\n"
            f"            loader: () => fetch({url}).then((res) => res.json())"
            f'.catch(() => console.error("Failed to fetch icon: " + {name}))\n'
            "          },\n"
        )
    return "        mermaid.registerIconPacks([\n" + "".join(entries) + "        ]);"


class PageBuilder:
    """Jinja2-based page builder."""

    def __init__(
        self,
        bundle: Optional[ScriptBundle] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="page_builder")  # structlog.BoundLoggerBase
        self._bundle = bundle
        self._setup_jinja2_environment()

    def _setup_jinja2_environment(self) -> None:
        """Setup Jinja2 template environment."""
        template_dir = Path(__file__).parent / "templates"
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html", "xml"]),
        )

    @property
    def bundle(self) -> ScriptBundle:
        """Script bundle, loaded from settings on first use."""
        if self._bundle is None:
            self._bundle = load_script_bundle(self.settings)
        return self._bundle

    def build(self, definition: str, options: RenderOptions) -> str:
        """
        Build the full page markup.

        Args:
            definition: Mermaid diagram text
            options: Rendering options

        Returns:
            HTML document string

        Raises:
            ConfigSerializationError: If the Mermaid configuration is not JSON serialisable
        """
        try:
            mermaid_config = js_literal(options.mermaid_config)
        except (TypeError, ValueError) as e:
            raise ConfigSerializationError(f"failed to serialize mermaid config: {e}") from e

        bundle = self.bundle
        template = self.env.get_template("page.html")
        html = template.render(
            container_id=CONTAINER_ID,
            container_id_js=js_literal(CONTAINER_ID),
            result_slot=js_literal(RESULT_SLOT),
            mermaid_js=Markup(bundle.mermaid_js),
            extension_scripts=[Markup(script) for script in bundle.extension_scripts],
            icon_pack_js=Markup(build_icon_pack_script(options.icon_packs)),
            mermaid_config=mermaid_config,
            definition=js_literal(definition),
            svg_id=js_literal(options.svg_id),
            default_svg_id=js_literal(self.settings.default_svg_id),
            background_color=js_literal(options.background_color),
            css=js_literal(options.css),
        )

        self.logger.debug(
            "Built page", definition_length=len(definition), html_length=len(html)
        )
        return html
