from __future__ import annotations
import asyncio
import logging
import tempfile
import time
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from ..errors import PlaybackTimeoutError, TransformCancelled
from ..events import load_events
from .bridge import CompletionBridge
from .config import TransformConfig, resolve_config, vcfg
from .finalize import cleanup_temp_dir, finalize_capture
from .host import BrowserFactory, RenderHost
from .viewport import Viewport, compute_capture_viewport, compute_content_viewport

logger = logging.getLogger(__name__)


class PipelineRun:
    """One session-to-video transform.

    Owns its browser, completion bridge and private temp directory; all of
    them are released before ``execute()`` returns or raises.
    """

    def __init__(
        self,
        config: TransformConfig,
        *,
        browser_factory: Optional[BrowserFactory] = None,
    ):
        self.config = config
        self.browser_factory = browser_factory
        self.content_viewport: Optional[Viewport] = None
        self.viewport: Optional[Viewport] = None
        self.temp_dir: Optional[Path] = None
        self.host: Optional[RenderHost] = None
        self.bridge: Optional[CompletionBridge] = None
        self._cancel_requested = asyncio.Event()

    def cancel(self) -> None:
        """Ask the run to stop; ``execute()`` then raises TransformCancelled."""
        logger.info("Cancellation requested for %s", self.config.input)
        self._cancel_requested.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested.is_set()

    def _check_cancelled(self) -> None:
        if self.cancelled:
            raise TransformCancelled(f"transform of {self.config.input} was cancelled")

    async def _wait_for_finish(self, bridge: CompletionBridge) -> None:
        """Block until the replay finishes, the run is cancelled or the timeout hits."""
        cancel_wait = asyncio.ensure_future(self._cancel_requested.wait())
        try:
            done, _ = await asyncio.wait(
                {bridge.finished, cancel_wait},
                timeout=self.config.timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_wait.cancel()
        if bridge.finished in done:
            return
        if cancel_wait in done:
            self._check_cancelled()
        logger.error(
            "Replay of %s did not finish within %.1fs", self.config.input, self.config.timeout
        )
        raise PlaybackTimeoutError(self.config.timeout)

    async def execute(self) -> Path:
        started = time.perf_counter()
        # parse first: never start a browser for input we can't replay
        events = load_events(self.config.input)
        self.content_viewport = compute_content_viewport(events)
        self.viewport = compute_capture_viewport(
            self.content_viewport, self.config.effective_ratio
        )
        logger.info(
            "Content viewport %dx%d -> capture %dx%d",
            *self.content_viewport,
            *self.viewport,
        )
        self._check_cancelled()

        self.temp_dir = Path(
            tempfile.mkdtemp(prefix=vcfg.TEMP_DIR_PREFIX, dir=self.config.temp_root)
        )
        capture = self.temp_dir / ("capture" + (self.config.output.suffix or ".webm"))
        self.bridge = CompletionBridge(self.config.on_progress_update)
        self.host = RenderHost(
            self.config,
            self.viewport,
            events,
            frames_dir=self.temp_dir / "frames",
            browser_factory=self.browser_factory,
        )
        try:
            await self.host.launch()
            await self.host.stage(self.bridge)
            await self._wait_for_finish(self.bridge)
            # tearing down flushes the last frames before encoding
            await self.host.close()
            await self.host.recorder.encode(capture)
            output = finalize_capture(capture, self.config.output)
        finally:
            self.bridge.cancel()
            await self.host.close()
            owned: List[Path] = self.host.recorder.owned_paths() + [capture]
            cleanup_temp_dir(self.temp_dir, owned)
        logger.info(
            "Transformed %s in %.1fs", self.config.input, time.perf_counter() - started
        )
        return output


async def transform_to_video(
    options: Union[TransformConfig, Mapping[str, Any], None] = None,
    *,
    browser_factory: Optional[BrowserFactory] = None,
    **overrides: Any,
) -> Path:
    """Turn a recorded session into a video file and return its path.

    ``options`` is either a resolved TransformConfig or a mapping of
    TransformConfig fields (keyword overrides are merged on top).
    """
    if isinstance(options, TransformConfig):
        if overrides:
            raise TypeError("keyword overrides need a mapping, not a TransformConfig")
        config = options
    else:
        config = resolve_config(options, **overrides)
    return await PipelineRun(config, browser_factory=browser_factory).execute()
