from __future__ import annotations
import asyncio
import json
import logging
from numbers import Real
from typing import Any, Optional

from zendriver import cdp

from .config import ProgressCallback, vcfg
from .page import send_cdp

logger = logging.getLogger(__name__)


class CompletionBridge:
    """Per-run channel between the replay page and the host.

    The page reaches the host only through two runtime bindings: progress
    values are fanned out to ``on_progress`` as they come, and the first
    finish call resolves ``finished``. Later finish calls are ignored.
    """

    def __init__(
        self,
        on_progress: Optional[ProgressCallback] = None,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.on_progress = on_progress
        self._loop = loop or asyncio.get_running_loop()
        self.finished: asyncio.Future = self._loop.create_future()
        self.finish_calls = 0
        self.last_progress: Optional[float] = None
        self.attached = False

    def report_progress(self, value: float) -> None:
        """Forward a playback position (0..1) unmodified; order is not assumed."""
        self.last_progress = value
        if self.on_progress is None:
            return
        try:
            self.on_progress(value)
        except Exception:
            logger.warning("Progress callback failed for %r", value, exc_info=True)

    def report_finish(self) -> None:
        """Resolve the completion future on the first call only."""
        self.finish_calls += 1
        if self.finished.done():
            logger.debug("Duplicate finish signal #%d ignored", self.finish_calls)
            return
        logger.info("Replay reported finish")
        self.finished.set_result(None)

    def _handle_progress_payload(self, payload: str) -> None:
        try:
            value: Any = json.loads(payload)
        except (TypeError, ValueError):
            logger.warning("Dropping unparsable progress payload %r", payload)
            return
        if isinstance(value, dict):
            value = value.get("payload")
        if isinstance(value, bool) or not isinstance(value, Real):
            logger.warning("Dropping non-numeric progress payload %r", payload)
            return
        self.report_progress(float(value))

    def on_binding_called(self, event: cdp.runtime.BindingCalled, tab=None) -> None:
        """Runtime.bindingCalled handler; other bindings on the page are ignored."""
        if event.name == vcfg.PROGRESS_BINDING:
            self._handle_progress_payload(event.payload)
        elif event.name == vcfg.FINISH_BINDING:
            self.report_finish()

    async def attach(self, page) -> None:
        """Expose both bindings on ``page``.

        Must complete before any content is loaded into the page, otherwise a
        fast replay could finish before the host listens for it.
        """
        page.add_handler(cdp.runtime.BindingCalled, self.on_binding_called)
        await send_cdp(page, cdp.runtime.enable(), label="Runtime.enable")
        for name in (vcfg.PROGRESS_BINDING, vcfg.FINISH_BINDING):
            await send_cdp(page, cdp.runtime.add_binding(name=name), label="addBinding")
        self.attached = True
        logger.debug("Completion bridge attached")

    def cancel(self) -> None:
        """Drop a still-pending completion so nobody awaits it after teardown."""
        if not self.finished.done():
            self.finished.cancel()
