#!/usr/bin/env python3
"""
Mermaid Script Fetcher
======================

Downloads pinned Mermaid (and optionally ZenUML) releases into the package's
assets directory, where the page builder picks them up.
"""

import argparse
import sys
from pathlib import Path

from mmd_render.config.settings import DEFAULT_ASSETS_PATH
from mmd_render.core.exceptions import AssetNotFoundError
from mmd_render.core.rendering.bundle import MERMAID_VERSION, ZENUML_VERSION, fetch_script_bundle


def main() -> int:
    parser = argparse.ArgumentParser(description="Fetch the Mermaid scripts inlined into rendered pages")
    parser.add_argument("--dest", type=Path, default=DEFAULT_ASSETS_PATH,
                        help="Target directory (default: bundled assets directory)")
    parser.add_argument("--mermaid-version", default=MERMAID_VERSION,
                        help=f"Mermaid release (default: {MERMAID_VERSION})")
    parser.add_argument("--zenuml", action="store_true",
                        help="Also fetch the ZenUML diagram extension")
    parser.add_argument("--zenuml-version", default=ZENUML_VERSION,
                        help=f"ZenUML extension release (default: {ZENUML_VERSION})")

    args = parser.parse_args()

    try:
        written = fetch_script_bundle(
            args.dest,
            mermaid_version=args.mermaid_version,
            zenuml_version=args.zenuml_version if args.zenuml else None,
        )
    except AssetNotFoundError as e:
        print(f"❌ {e}")
        return 1

    for path in written:
        print(f"✅ {path} ({path.stat().st_size} bytes)")
    return 0


if __name__ == '__main__':
    sys.exit(main())
