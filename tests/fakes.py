"""In-process stand-ins for the zendriver Browser/Tab surface rrvideo uses."""
from __future__ import annotations
import asyncio
import base64
import inspect
import io
import json
from collections import defaultdict
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence

from PIL import Image
from zendriver import cdp

from rrvideo.video.config import vcfg


def jpeg_b64(size=(64, 48), color=(200, 30, 30)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def binding_event(name: str, payload: str = "") -> SimpleNamespace:
    return SimpleNamespace(name=name, payload=payload, execution_context_id=1)


def frame_event(session_id: int, timestamp: Optional[float], size=(64, 48)) -> SimpleNamespace:
    return SimpleNamespace(
        data=jpeg_b64(size),
        metadata=SimpleNamespace(timestamp=timestamp),
        session_id=session_id,
    )


class FakePage:
    """Records CDP traffic and plays a scripted replay once content is set."""

    def __init__(
        self,
        *,
        progress: Sequence[Any] = (0.25, 0.5, 1.0),
        finish_calls: int = 1,
        frames: int = 2,
        frame_size=(64, 48),
        evaluate_results: Optional[Dict[str, Any]] = None,
    ):
        self.progress = list(progress)
        self.finish_calls = finish_calls
        self.frames = frames
        self.frame_size = frame_size
        self.evaluate_results = evaluate_results or {}
        self.handlers: Dict[Any, List[Any]] = defaultdict(list)
        self.calls: List[str] = []
        self.bindings: List[str] = []
        self.evaluated: List[str] = []
        self.screenshots: List[Path] = []
        self.screencasting = False
        self.acked: List[int] = []
        self.url: Optional[str] = None
        self._tasks: List[asyncio.Task] = []

    def add_handler(self, event_type, handler) -> None:
        self.calls.append(f"handler:{event_type.__name__}")
        self.handlers[event_type].append(handler)

    async def send(self, command):
        request = next(command)
        method = request["method"]
        params = request.get("params", {})
        self.calls.append(method)
        if method == "Runtime.addBinding":
            self.bindings.append(params["name"])
        elif method == "Page.startScreencast":
            self.screencasting = True
        elif method == "Page.stopScreencast":
            self.screencasting = False
        elif method == "Page.screencastFrameAck":
            self.acked.append(params["sessionId"])
        try:
            command.send({})
        except StopIteration as stop:
            return stop.value
        return None

    async def emit(self, event_type, event) -> None:
        for handler in list(self.handlers[event_type]):
            result = handler(event, self)
            if inspect.isawaitable(result):
                await result

    async def evaluate(self, expression: str, await_promise: bool = False, return_by_value: bool = True):
        self.evaluated.append(expression)
        if expression.startswith("document.open()"):
            self.calls.append("setContent")
            self._tasks.append(asyncio.ensure_future(self._play()))
            return True
        for marker, value in self.evaluate_results.items():
            if marker in expression:
                return value(expression) if callable(value) else value
        return None

    async def _play(self) -> None:
        await asyncio.sleep(0)
        for index in range(self.frames):
            if self.screencasting:
                await self.emit(
                    cdp.page.ScreencastFrame,
                    frame_event(index + 1, 1000.0 + index * 0.04, self.frame_size),
                )
        for value in self.progress:
            payload = value if isinstance(value, str) else json.dumps(value)
            await self.emit(cdp.runtime.BindingCalled, binding_event(vcfg.PROGRESS_BINDING, payload))
            await asyncio.sleep(0)
        for _ in range(self.finish_calls):
            await self.emit(cdp.runtime.BindingCalled, binding_event(vcfg.FINISH_BINDING))

    async def save_screenshot(self, filename: str, format: str = "jpeg", full_page: bool = False):
        self.calls.append(f"screenshot:{Path(filename).name}")
        path = Path(filename)
        path.write_bytes(b"fake-" + format.encode())
        self.screenshots.append(path)
        return filename


class FakeBrowser:
    def __init__(self, page: Optional[FakePage] = None):
        self.page = page or FakePage()
        self.stopped = False
        self.opened: List[str] = []

    async def get(self, url: str = "about:blank"):
        self.opened.append(url)
        self.page.url = url
        return self.page

    async def stop(self) -> None:
        self.stopped = True


class BrowserFactory:
    """Async factory matching RenderHost's browser_factory signature."""

    def __init__(self, page_factory=None, fail: Optional[BaseException] = None):
        self.page_factory = page_factory or FakePage
        self.fail = fail
        self.browsers: List[FakeBrowser] = []
        self.viewports: List[Any] = []

    async def __call__(self, config, viewport):
        self.viewports.append(viewport)
        if self.fail is not None:
            raise self.fail
        browser = FakeBrowser(self.page_factory())
        self.browsers.append(browser)
        return browser


async def fake_ffmpeg(args) -> None:
    Path(args[-1]).write_bytes(b"\x1aE\xdf\xa3fake-webm")


def write_events(path: Path, events) -> Path:
    path.write_text(json.dumps(events), encoding="utf-8")
    return path


def sample_events() -> List[Dict[str, Any]]:
    return [
        {"type": 4, "timestamp": 1000, "data": {"href": "https://example.com", "width": 800, "height": 600}},
        {"type": 2, "timestamp": 1001, "data": {"node": {"type": 0, "childNodes": []}}},
        {"type": 4, "timestamp": 2000, "data": {"href": "https://example.com", "width": 1024, "height": 768}},
        {"type": 3, "timestamp": 2500, "data": {"source": 2, "type": 1}},
    ]
