from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import zendriver as zd

from ..errors import EngineLaunchError
from ..events import Event
from .bridge import CompletionBridge
from .capture import ScreencastRecorder
from .config import TransformConfig
from .page import apply_viewport, build_player_html, set_document_content
from .viewport import Viewport

BrowserFactory = Callable[[TransformConfig, Viewport], Awaitable[Any]]

logger = logging.getLogger(__name__)


async def launch_browser(
    viewport: Viewport,
    *,
    headless: bool = True,
    browser_executable_path: Optional[str] = None,
    browser_args: Sequence[str] = (),
):
    """Launch Chromium through zendriver with a window that fits ``viewport``."""
    args = [f"--window-size={viewport.width},{viewport.height}", *browser_args]
    return await zd.start(
        headless=headless,
        browser_executable_path=browser_executable_path,
        browser_args=args,
    )


async def start_browser(config: TransformConfig, viewport: Viewport):
    return await launch_browser(
        viewport,
        headless=config.headless,
        browser_executable_path=config.browser_executable_path,
        browser_args=config.browser_args,
    )


class RenderHost:
    """Owns the browser for one run: launch, stage the replay, tear down."""

    def __init__(
        self,
        config: TransformConfig,
        viewport: Viewport,
        events: List[Event],
        *,
        frames_dir: Path,
        browser_factory: Optional[BrowserFactory] = None,
    ):
        self.config = config
        self.viewport = viewport
        self.events = events
        self.browser_factory = browser_factory or start_browser
        self.recorder = ScreencastRecorder(frames_dir, viewport)
        self.browser = None
        self.page = None
        self._closed = False

    async def launch(self) -> None:
        try:
            self.browser = await self.browser_factory(self.config, self.viewport)
        except Exception as exc:
            raise EngineLaunchError(f"can't start the browser: {exc}") from exc
        if self.browser is None:
            raise EngineLaunchError("browser factory returned no browser")
        logger.info(
            "Browser started (headless=%s, %dx%d)",
            self.config.headless,
            self.viewport.width,
            self.viewport.height,
        )

    async def stage(self, bridge: CompletionBridge) -> None:
        """Load the replay page; the bridge is always live before the content."""
        if self.browser is None:
            raise RuntimeError("RenderHost.stage() called before launch()")
        self.page = await self.browser.get("about:blank")
        await apply_viewport(self.page, self.viewport)
        await bridge.attach(self.page)
        await self.recorder.start(self.page)
        html = build_player_html(self.events, self.viewport, self.config)
        await set_document_content(self.page, html)
        logger.info("Replay page loaded with %d events", len(self.events))

    async def close(self) -> None:
        """Stop capture and the browser. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.recorder.stop()
        finally:
            if self.browser is not None:
                try:
                    await self.browser.stop()
                except Exception:
                    logger.warning("Browser did not stop cleanly", exc_info=True)
        logger.debug("Render host closed")
