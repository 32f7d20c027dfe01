from __future__ import annotations
from typing import Tuple


class scfg:
    """Snapshot extraction defaults."""

    DEFAULT_OUTPUT_DIR = "snapshots"
    FORMATS: Tuple[str, ...] = ("html", "json")
    DEFAULT_FORMAT = "html"
    JSON_INDENT = 2


class hcfg:
    """Element highlighting defaults."""

    DEFAULT_OUTPUT_DIR = "element-highlights"
    DEFAULT_SELECTOR = "body > div, body > main, body > section, body > article"
    FORMATS: Tuple[str, ...] = ("png", "jpeg")
    DEFAULT_FORMAT = "png"
    DEFAULT_WIDTH = 1280
    DEFAULT_HEIGHT = 720
    HIGHLIGHT_STYLE = "border: 4px solid red !important;"
    # Page-side registry of the elements being highlighted
    REGISTRY_KEY = "__rrvideoHighlightTargets"

    # Let the border paint before the screenshot
    SETTLE_DELAY_S = 0.2

    # Page load polling
    LOAD_TIMEOUT_S = 15.0
    LOAD_POLL_INTERVAL_S = 0.05

    DEFAULT_PATTERN = "*.html"
