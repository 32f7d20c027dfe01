from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional

from ..utils import PathLike, resolve_path
from .config import resolve_config
from .host import BrowserFactory
from .pipeline import PipelineRun

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4


@dataclass
class BatchResult:
    """Outcome of one recording in a batch."""

    input: Path
    output: Optional[Path] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def batch_output_path(source: Path, output_dir: Optional[Path], suffix: str = ".webm") -> Path:
    """``<output_dir>/<stem><suffix>``; next to the input when no dir is given."""
    directory = output_dir if output_dir is not None else source.parent
    return directory / (source.stem + suffix)


async def transform_many(
    inputs: Iterable[PathLike],
    *,
    output_dir: Optional[PathLike] = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    suffix: str = ".webm",
    browser_factory: Optional[BrowserFactory] = None,
    **options: Any,
) -> List[BatchResult]:
    """Convert several recordings, at most ``concurrency`` browsers at a time.

    Each recording gets its own run (browser and temp directory); one failure
    doesn't stop the others. Results come back in input order.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")
    target_dir = resolve_path(output_dir) if output_dir is not None else None
    if target_dir is not None:
        target_dir.mkdir(parents=True, exist_ok=True)
    sources = [resolve_path(p) for p in inputs]
    semaphore = asyncio.Semaphore(concurrency)

    async def _one(source: Path) -> BatchResult:
        result = BatchResult(input=source)
        async with semaphore:
            try:
                config = resolve_config(
                    options,
                    input=source,
                    output=batch_output_path(source, target_dir, suffix),
                )
                logger.info("Starting conversion of %s to %s", source, config.output)
                run = PipelineRun(config, browser_factory=browser_factory)
                result.output = await run.execute()
            except Exception as exc:
                logger.error("Failed to convert %s: %s", source, exc)
                result.error = exc
        return result

    results = await asyncio.gather(*(_one(source) for source in sources))
    failed = sum(1 for r in results if not r.ok)
    logger.info("Batch finished: %d converted, %d failed", len(results) - failed, failed)
    return list(results)
