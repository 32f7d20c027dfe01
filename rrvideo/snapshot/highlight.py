from __future__ import annotations
import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

from ..errors import EngineLaunchError, InvalidInputError
from ..utils import PathLike, resolve_path
from ..video.batch import BatchResult
from ..video.host import launch_browser
from ..video.page import apply_viewport
from ..video.viewport import Viewport
from .config import hcfg

HighlightBrowserFactory = Callable[[Viewport], Awaitable[Any]]
HighlightProgress = Callable[[int, int], None]

logger = logging.getLogger(__name__)

# Collects every descendant of the container in depth-first preorder into a
# page-side registry; the DOM itself is left untouched.
_INDEX_JS = """
(function (selector, key) {
  var container = document.querySelector(selector);
  if (!container) return -1;
  var elements = [];
  (function walk(element) {
    for (var i = 0; i < element.children.length; i++) {
      var child = element.children[i];
      elements.push(child);
      walk(child);
    }
  })(container);
  window[key] = { elements: elements, styles: {} };
  return elements.length;
})(%s, %s)
"""

_HIGHLIGHT_JS = """
(function (key, index, style) {
  var registry = window[key];
  var el = registry && registry.elements[index];
  if (!el) return false;
  var original = el.getAttribute('style');
  registry.styles[index] = original;
  el.setAttribute('style', (original || '') + '; ' + style);
  return true;
})(%s, %d, %s)
"""

_RESTORE_JS = """
(function (key, index) {
  var registry = window[key];
  var el = registry && registry.elements[index];
  if (!el || !(index in registry.styles)) return false;
  var original = registry.styles[index];
  if (original === null) {
    el.removeAttribute('style');
  } else {
    el.setAttribute('style', original);
  }
  delete registry.styles[index];
  return true;
})(%s, %d)
"""

_CLEAR_INDEX_JS = """
(function (key) {
  delete window[key];
  return true;
})(%s)
"""


def default_output_dir(source: Path, base_dir: PathLike = hcfg.DEFAULT_OUTPUT_DIR) -> Path:
    """``<base_dir>/<html stem>``, the layout used when no output dir is given."""
    return Path(base_dir or hcfg.DEFAULT_OUTPUT_DIR) / (source.stem or "snapshot")


async def wait_for_load(page, *, timeout_seconds: float = hcfg.LOAD_TIMEOUT_S) -> None:
    """Poll document.readyState until the page finished loading."""
    start = time.perf_counter()
    while (time.perf_counter() - start) < timeout_seconds:
        if await page.evaluate("document.readyState") == "complete":
            return
        await asyncio.sleep(hcfg.LOAD_POLL_INTERVAL_S)
    logger.warning("Page not fully loaded after %.1fs; continuing", timeout_seconds)


async def _index_descendants(page, selector: str) -> int:
    count = await page.evaluate(
        _INDEX_JS % (json.dumps(selector), json.dumps(hcfg.REGISTRY_KEY))
    )
    if isinstance(count, bool) or not isinstance(count, int):
        raise RuntimeError(f"descendant indexing failed for {selector!r}: {count!r}")
    return count


async def _screenshot(page, path: Path, format: str) -> None:
    await page.save_screenshot(str(path), format=format, full_page=True)


async def highlight_elements(
    input: PathLike,
    output_dir: Optional[PathLike] = None,
    *,
    selector: str = hcfg.DEFAULT_SELECTOR,
    format: str = hcfg.DEFAULT_FORMAT,
    width: int = hcfg.DEFAULT_WIDTH,
    height: int = hcfg.DEFAULT_HEIGHT,
    headless: bool = True,
    browser_factory: Optional[HighlightBrowserFactory] = None,
    on_progress: Optional[HighlightProgress] = None,
) -> Path:
    """Screenshot the page once per container descendant, with that element outlined.

    Elements are visited depth-first in document order. Only one element is
    ever highlighted: its style is restored before the next one is touched.
    Writes ``original.<format>`` then ``element_<n>.<format>`` (n from 1).
    """
    source = resolve_path(input)
    if not source.is_file():
        raise InvalidInputError(f"Input file not found: {source}")
    if format not in hcfg.FORMATS:
        raise InvalidInputError(f"format must be one of {hcfg.FORMATS}, got {format!r}")
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"viewport must be positive, got {width}x{height}")
    if output_dir is None:
        output_dir = default_output_dir(source)
        logger.info('No output directory specified. Using default: "%s"', output_dir)
    target = resolve_path(output_dir)
    target.mkdir(parents=True, exist_ok=True)

    viewport = Viewport(width, height)
    factory = browser_factory or (lambda vp: launch_browser(vp, headless=headless))
    try:
        browser = await factory(viewport)
    except Exception as exc:
        raise EngineLaunchError(f"can't start the browser: {exc}") from exc

    try:
        page = await browser.get(source.as_uri())
        await apply_viewport(page, viewport)
        await wait_for_load(page)

        count = await _index_descendants(page, selector or hcfg.DEFAULT_SELECTOR)
        if count < 0:
            logger.warning("No element found matching selector: %s", selector)
            return target
        logger.info("Found %d descendant elements", count)

        await _screenshot(page, target / f"original.{format}", format)
        key = json.dumps(hcfg.REGISTRY_KEY)
        for index in range(count):
            shot = target / f"element_{index + 1}.{format}"
            await page.evaluate(
                _HIGHLIGHT_JS % (key, index, json.dumps(hcfg.HIGHLIGHT_STYLE))
            )
            try:
                await asyncio.sleep(hcfg.SETTLE_DELAY_S)
                await _screenshot(page, shot, format)
            finally:
                await page.evaluate(_RESTORE_JS % (key, index))
            logger.debug("Saved %s", shot)
            if on_progress is not None:
                on_progress(index + 1, count)
        await page.evaluate(_CLEAR_INDEX_JS % key)
        logger.info('Saved %d element screenshots to "%s"', count, target)
        return target
    finally:
        await browser.stop()


async def highlight_directory(
    input_dir: PathLike,
    output_dir: PathLike = hcfg.DEFAULT_OUTPUT_DIR,
    *,
    pattern: str = hcfg.DEFAULT_PATTERN,
    max_files: int = 0,
    **options: Any,
) -> List[BatchResult]:
    """Run highlight_elements on every matching file, one after another.

    Each file goes to ``<output_dir>/<stem>``; ``max_files`` > 0 caps the
    number processed. Failures are collected, not raised.
    """
    source_dir = resolve_path(input_dir)
    if not source_dir.is_dir():
        raise InvalidInputError(f"Input directory not found: {source_dir}")
    files = sorted(p for p in source_dir.glob(pattern) if p.is_file())
    if max_files > 0 and max_files < len(files):
        logger.info("Limiting to %d files out of %d total files", max_files, len(files))
        files = files[:max_files]
    else:
        logger.info("Found %d HTML files to process", len(files))

    base = resolve_path(output_dir)
    results: List[BatchResult] = []
    for position, path in enumerate(files, start=1):
        logger.info("[%d/%d] Processing %s...", position, len(files), path.name)
        result = BatchResult(input=path)
        try:
            result.output = await highlight_elements(path, base / path.stem, **options)
        except Exception as exc:
            logger.error("Failed to process %s: %s", path.name, exc)
            result.error = exc
        results.append(result)
    failed = sum(1 for r in results if not r.ok)
    logger.info(
        "Processing complete: %d succeeded, %d failed", len(results) - failed, failed
    )
    return results
