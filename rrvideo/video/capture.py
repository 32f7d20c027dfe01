from __future__ import annotations
import asyncio
import base64
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from PIL import Image
from zendriver import cdp

from ..errors import CaptureError
from .config import vcfg
from .page import send_cdp, send_cdp_best_effort
from .viewport import Viewport

logger = logging.getLogger(__name__)


@dataclass
class CapturedFrame:
    """One screencast frame written to disk."""

    path: Path
    received: float  # monotonic seconds
    timestamp: Optional[float] = None  # compositor time, seconds since epoch


class ScreencastRecorder:
    """Records everything the page paints into numbered frames, then encodes them.

    Frames land in ``frames_dir`` (inside the run's private temp directory).
    Chrome only sends a frame when the picture changes, so each frame is
    shown until the next one arrives.
    """

    def __init__(self, frames_dir: Path, viewport: Viewport):
        self.frames_dir = Path(frames_dir)
        self.viewport = viewport
        self.frames: List[CapturedFrame] = []
        self._page = None
        self._recording = False
        self._stopped_at: Optional[float] = None
        self._pending: set = set()

    @property
    def recording(self) -> bool:
        return self._recording

    async def start(self, page) -> None:
        self.frames_dir.mkdir(parents=True, exist_ok=True)
        self._page = page
        page.add_handler(cdp.page.ScreencastFrame, self.on_frame)
        await send_cdp(page, cdp.page.enable(), label="Page.enable")
        await send_cdp(
            page,
            cdp.page.start_screencast(
                format_=vcfg.SCREENCAST_FORMAT,
                quality=vcfg.SCREENCAST_QUALITY,
                max_width=self.viewport.width,
                max_height=self.viewport.height,
                every_nth_frame=vcfg.SCREENCAST_EVERY_NTH_FRAME,
            ),
            label="startScreencast",
        )
        self._recording = True
        logger.debug(
            "Screencast started at %dx%d into %s",
            self.viewport.width,
            self.viewport.height,
            self.frames_dir,
        )

    async def on_frame(self, event: cdp.page.ScreencastFrame, tab=None) -> None:
        """Persist one frame and ack it (Chrome pauses the stream until acked)."""
        if not self._recording:
            return
        index = len(self.frames) + 1
        frame = CapturedFrame(
            path=self.frames_dir / f"frame_{index:06d}.jpg",
            received=time.monotonic(),
            timestamp=getattr(event.metadata, "timestamp", None),
        )
        self.frames.append(frame)
        task = asyncio.ensure_future(
            asyncio.to_thread(frame.path.write_bytes, base64.b64decode(event.data))
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        await send_cdp_best_effort(
            self._page,
            cdp.page.screencast_frame_ack(session_id=event.session_id),
            label="screencastFrameAck",
        )
        await task

    async def stop(self) -> None:
        """Stop the screencast and wait for in-flight frame writes."""
        if not self._recording:
            return
        self._recording = False
        self._stopped_at = time.monotonic()
        await send_cdp_best_effort(self._page, cdp.page.stop_screencast(), label="stopScreencast")
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        logger.debug("Screencast stopped after %d frames", len(self.frames))

    def frame_durations(self) -> List[float]:
        """Seconds each frame stays on screen."""
        frames = [f for f in self.frames if f.path.exists()]
        if not frames:
            return []
        use_timestamps = all(f.timestamp is not None for f in frames)
        durations: List[float] = []
        for current, following in zip(frames, frames[1:]):
            if use_timestamps:
                delta = following.timestamp - current.timestamp
            else:
                delta = following.received - current.received
            durations.append(max(vcfg.MIN_FRAME_DURATION_S, delta))
        if self._stopped_at is not None:
            tail = self._stopped_at - frames[-1].received
        else:
            tail = vcfg.FALLBACK_FRAME_DURATION_S
        durations.append(max(vcfg.FALLBACK_FRAME_DURATION_S, tail))
        return durations

    def _prepare_frames(self) -> List[Path]:
        """Resize frames to the capture viewport; synthesize one if none arrived."""
        size = (self.viewport.width, self.viewport.height)
        paths = [f.path for f in self.frames if f.path.exists()]
        if not paths:
            blank = self.frames_dir / "frame_000000.jpg"
            Image.new("RGB", size, (255, 255, 255)).save(blank, format="JPEG")
            self.frames.append(CapturedFrame(path=blank, received=time.monotonic()))
            return [blank]
        for path in paths:
            with Image.open(path) as image:
                if image.size == size and image.mode == "RGB":
                    continue
                normalized = image.convert("RGB").resize(size, Image.LANCZOS)
            normalized.save(path, format="JPEG", quality=vcfg.SCREENCAST_QUALITY)
        return paths

    def _write_concat_list(self, paths: Sequence[Path], durations: Sequence[float]) -> Path:
        listing = self.frames_dir / "frames.ffconcat"
        lines = ["ffconcat version 1.0"]
        for path, duration in zip(paths, durations):
            lines.append(f"file '{path.name}'")
            lines.append(f"duration {duration:.6f}")
        # the demuxer ignores the last duration unless the file is repeated
        lines.append(f"file '{paths[-1].name}'")
        listing.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return listing

    async def encode(self, output: Path) -> Path:
        """Encode the recorded frames into ``output``; codec follows its suffix."""
        paths = await asyncio.to_thread(self._prepare_frames)
        durations = self.frame_durations() or [vcfg.FALLBACK_FRAME_DURATION_S]
        listing = self._write_concat_list(paths, durations)
        codec_args = vcfg.CODEC_ARGS.get(output.suffix.lower(), vcfg.DEFAULT_CODEC_ARGS)
        args = [
            "-y",
            "-loglevel",
            "error",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            str(listing),
            *vcfg.VFR_ARGS,
            "-pix_fmt",
            "yuv420p",
            *codec_args,
            str(output),
        ]
        await run_ffmpeg(args)
        if not output.exists():
            raise CaptureError(f"ffmpeg reported success but {output} is missing")
        logger.info("Encoded %d frames into %s", len(paths), output)
        return output

    def owned_paths(self) -> List[Path]:
        """Every file this recorder may have created."""
        return [f.path for f in self.frames] + [self.frames_dir / "frames.ffconcat"]


async def run_ffmpeg(args: Sequence[str]) -> None:
    """Run ffmpeg to completion; any failure becomes a CaptureError."""
    try:
        process = await asyncio.create_subprocess_exec(
            vcfg.FFMPEG_BINARY,
            *args,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise CaptureError(f"can't run {vcfg.FFMPEG_BINARY}: {exc}") from exc
    _, stderr = await process.communicate()
    if process.returncode != 0:
        tail = stderr.decode("utf-8", "replace").strip()[-2000:]
        raise CaptureError(f"{vcfg.FFMPEG_BINARY} exited with {process.returncode}: {tail}")
