from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from . import __version__
from .errors import InvalidInputError, RRVideoError
from .snapshot.config import hcfg, scfg
from .snapshot.extract import create_snapshots
from .snapshot.highlight import highlight_directory, highlight_elements
from .utils import resolve_path
from .video.batch import DEFAULT_CONCURRENCY, transform_many
from .video.config import vcfg
from .video.pipeline import transform_to_video

logger = logging.getLogger("rrvideo")


class ProgressBar:
    """tqdm bar driven by 0..1 progress values (which may arrive out of order)."""

    def __init__(self, desc: str, done_message: Optional[str] = None):
        self.desc = desc
        self.done_message = done_message
        self._bar: Optional[tqdm] = None

    def __call__(self, fraction: float) -> None:
        if self._bar is None:
            self._bar = tqdm(total=100, desc=self.desc, unit="%")
        target = int(max(0.0, min(1.0, fraction)) * 100)
        if target > self._bar.n:
            self._bar.update(target - self._bar.n)
        if fraction >= 1:
            self.close()
            if self.done_message:
                print(self.done_message)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


def load_player_config(path: Optional[str]) -> Dict[str, Any]:
    """rrweb-player options from a JSON file (empty when no path)."""
    if not path:
        return {}
    config_path = resolve_path(path)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise InvalidInputError(f"can't read player config {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidInputError(f"player config {config_path} must hold a JSON object")
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rrvideo", description="Transform rrweb sessions into videos and screenshots"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    commands = parser.add_subparsers(dest="command", required=True)

    video = commands.add_parser("video", help="Transform one rrweb session into a video")
    video.add_argument("--input", required=True, help="Path to your rrweb events file")
    video.add_argument("--output", help=f"Path to output video file (default {vcfg.DEFAULT_OUTPUT})")
    video.add_argument("--config", help="Path to rrweb player configuration file")
    video.add_argument("--resolution-ratio", type=float, default=None)
    video.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the replay")
    video.add_argument("--headful", action="store_true", help="Show the browser window")
    video.add_argument("--upscale", action="store_true", help="Render above recorded resolution")

    batch = commands.add_parser("batch", help="Transform every session in a directory")
    batch.add_argument("--input-dir", required=True)
    batch.add_argument("--output-dir", help="Where videos go (default: next to each input)")
    batch.add_argument("--pattern", default="*.json")
    batch.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY)
    batch.add_argument("--config", help="Path to rrweb player configuration file")
    batch.add_argument("--timeout", type=float, default=None)

    snapshot = commands.add_parser("snapshot", help="Extract DOM snapshots from a session")
    snapshot.add_argument("--input", required=True, help="Path to your rrweb events file")
    snapshot.add_argument("--output", default=scfg.DEFAULT_OUTPUT_DIR)
    snapshot.add_argument("--format", choices=scfg.FORMATS, default=scfg.DEFAULT_FORMAT)

    highlight = commands.add_parser(
        "highlight", help="Create screenshots with highlighted HTML elements"
    )
    source = highlight.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", help="Path to the HTML file")
    source.add_argument("--input-dir", help="Directory of HTML files")
    highlight.add_argument("--output", help="Directory to save screenshots")
    highlight.add_argument("--selector", default=hcfg.DEFAULT_SELECTOR)
    highlight.add_argument("--format", choices=hcfg.FORMATS, default=hcfg.DEFAULT_FORMAT)
    highlight.add_argument("--width", type=int, default=hcfg.DEFAULT_WIDTH)
    highlight.add_argument("--height", type=int, default=hcfg.DEFAULT_HEIGHT)
    highlight.add_argument("--pattern", default=hcfg.DEFAULT_PATTERN)
    highlight.add_argument("--max-files", type=int, default=0)
    return parser


async def _run_video(args: argparse.Namespace) -> int:
    progress = ProgressBar("Transforming", "Transformation Completed!")
    try:
        output = await transform_to_video(
            input=args.input,
            output=args.output,
            player=load_player_config(args.config),
            resolution_ratio=args.resolution_ratio,
            timeout=args.timeout,
            headless=not args.headful,
            upscale=args.upscale,
            on_progress_update=progress,
        )
    finally:
        progress.close()
    print(f'Successfully transformed into "{output}".')
    return 0


async def _run_batch(args: argparse.Namespace) -> int:
    input_dir = resolve_path(args.input_dir)
    if not input_dir.is_dir():
        raise InvalidInputError(f"data directory not found: {input_dir}")
    inputs: List[Path] = sorted(input_dir.glob(args.pattern))
    if not inputs:
        raise InvalidInputError(f"No {args.pattern} files found in {input_dir}")
    print(f"Converting {len(inputs)} sessions...")
    results = await transform_many(
        inputs,
        output_dir=args.output_dir,
        concurrency=args.concurrency,
        player=load_player_config(args.config),
        timeout=args.timeout,
    )
    for result in results:
        if result.ok:
            print(f"{result.input} -> {result.output}")
        else:
            print(f"FAILED {result.input}: {result.error}", file=sys.stderr)
    return 0 if all(r.ok for r in results) else 1


async def _run_snapshot(args: argparse.Namespace) -> int:
    progress = ProgressBar("Extracting snapshots")
    try:
        output = await create_snapshots(
            args.input, args.output, format=args.format, on_progress=progress
        )
    finally:
        progress.close()
    print(f'Successfully extracted DOM snapshots to "{output}".')
    return 0


async def _run_highlight(args: argparse.Namespace) -> int:
    options = dict(
        selector=args.selector, format=args.format, width=args.width, height=args.height
    )
    if args.input_dir:
        results = await highlight_directory(
            args.input_dir,
            args.output or hcfg.DEFAULT_OUTPUT_DIR,
            pattern=args.pattern,
            max_files=args.max_files,
            **options,
        )
        for result in results:
            if not result.ok:
                print(f"ERROR: Failed to process {result.input}: {result.error}", file=sys.stderr)
        print(f"Element highlights are available in {args.output or hcfg.DEFAULT_OUTPUT_DIR}")
        return 0 if all(r.ok for r in results) else 1

    bar: Dict[str, tqdm] = {}

    def _progress(done: int, total: int) -> None:
        if "bar" not in bar:
            bar["bar"] = tqdm(total=total, desc="Capturing screenshots", unit="element")
        bar["bar"].update(done - bar["bar"].n)

    try:
        output = await highlight_elements(
            args.input, args.output, on_progress=_progress, **options
        )
    finally:
        if "bar" in bar:
            bar["bar"].close()
    print(f'Successfully created screenshots in "{output}".')
    return 0


_COMMANDS = {
    "video": _run_video,
    "batch": _run_batch,
    "snapshot": _run_snapshot,
    "highlight": _run_highlight,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING - 10 * min(args.verbose, 2),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_COMMANDS[args.command](args))
    except RRVideoError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Failed: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
