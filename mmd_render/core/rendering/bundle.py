"""
Script Bundle
=============

Loads the Mermaid bundle and optional diagram-type extensions that the page
builder inlines into every generated page, and fetches pinned releases of them.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

import httpx

from mmd_render.config.logging import get_logger
from mmd_render.config.settings import Settings, get_settings
from mmd_render.core.exceptions import AssetNotFoundError

logger = get_logger(__name__)

MERMAID_JS = "mermaid.min.js"
ZENUML_JS = "mermaid-zenuml.js"

MERMAID_VERSION = "11.4.1"
ZENUML_VERSION = "0.2.0"
MERMAID_URL = "https://cdn.jsdelivr.net/npm/mermaid@{version}/dist/mermaid.min.js"
ZENUML_URL = "https://cdn.jsdelivr.net/npm/@mermaid-js/mermaid-zenuml@{version}/dist/mermaid-zenuml.js"


@dataclass(frozen=True)
class ScriptBundle:
    """Script sources inlined into the rendered page."""

    mermaid_js: str
    extension_scripts: Tuple[str, ...] = field(default_factory=tuple)


@lru_cache(maxsize=8)
def _read_bundle(mermaid_path: Path, zenuml_path: Optional[Path]) -> ScriptBundle:
    if not mermaid_path.is_file():
        raise AssetNotFoundError(
            f"Mermaid bundle not found at {mermaid_path}; "
            f"place {MERMAID_JS} there or set MMD_RENDER_MERMAID_JS_PATH"
        )

    extensions: Tuple[str, ...] = ()
    if zenuml_path is not None and zenuml_path.is_file():
        extensions = (zenuml_path.read_text(encoding="utf-8"),)

    logger.debug(
        "Loaded script bundle",
        mermaid=str(mermaid_path),
        extensions=len(extensions),
    )
    return ScriptBundle(
        mermaid_js=mermaid_path.read_text(encoding="utf-8"),
        extension_scripts=extensions,
    )


def load_script_bundle(settings: Optional[Settings] = None) -> ScriptBundle:
    """
    Load the Mermaid bundle described by settings.

    Raises:
        AssetNotFoundError: If mermaid.min.js is missing
    """
    settings = settings or get_settings()
    mermaid_path = settings.mermaid_js_path or settings.assets_path / MERMAID_JS
    zenuml_path = settings.zenuml_js_path or settings.assets_path / ZENUML_JS
    return _read_bundle(Path(mermaid_path), Path(zenuml_path))


def fetch_script_bundle(
    dest: Path,
    mermaid_version: str = MERMAID_VERSION,
    zenuml_version: Optional[str] = None,
    client: Optional[httpx.Client] = None,
) -> List[Path]:
    """
    Download pinned script releases into ``dest``.

    Args:
        dest: Directory to write the scripts to, created if missing
        mermaid_version: Mermaid release to fetch
        zenuml_version: ZenUML extension release, skipped when None
        client: HTTP client, a short-lived one is created when omitted

    Returns:
        Paths of the written files

    Raises:
        AssetNotFoundError: If a download fails
    """
    downloads = [(MERMAID_URL.format(version=mermaid_version), dest / MERMAID_JS)]
    if zenuml_version is not None:
        downloads.append((ZENUML_URL.format(version=zenuml_version), dest / ZENUML_JS))

    own_client = client is None
    http = client or httpx.Client(timeout=60.0, follow_redirects=True)
    written = []
    try:
        dest.mkdir(parents=True, exist_ok=True)
        for url, path in downloads:
            try:
                response = http.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise AssetNotFoundError(f"failed to download {url}: {e}") from e
            path.write_bytes(response.content)
            logger.info("Fetched script", url=url, path=str(path), size=len(response.content))
            written.append(path)
    finally:
        if own_client:
            http.close()

    _read_bundle.cache_clear()
    return written
