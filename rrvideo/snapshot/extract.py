from __future__ import annotations
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..errors import InvalidInputError
from ..events import Event, EventType, is_event_type, load_events
from ..utils import PathLike, resolve_path
from .config import scfg
from .serialize import snapshot_document

EventFilter = Callable[[Event], bool]

logger = logging.getLogger(__name__)


def _is_dom_event(event: Event) -> bool:
    return is_event_type(event, EventType.FULL_SNAPSHOT) or is_event_type(
        event, EventType.INCREMENTAL_SNAPSHOT
    )


def _write_snapshot(dom: Dict[str, Any], path: Path, format: str) -> None:
    if format == "html":
        path.write_text(snapshot_document(dom), encoding="utf-8")
    else:
        path.write_text(json.dumps(dom, indent=scfg.JSON_INDENT), encoding="utf-8")


async def save_snapshot(dom: Dict[str, Any], path: Path, format: str) -> bool:
    """Write one snapshot; a failure is logged and reported as False."""
    try:
        await asyncio.to_thread(_write_snapshot, dom, path, format)
    except (OSError, TypeError, ValueError):
        logger.error("Failed to save snapshot to %s", path, exc_info=True)
        return False
    return True


async def create_snapshots(
    input: PathLike,
    output_dir: PathLike = scfg.DEFAULT_OUTPUT_DIR,
    *,
    format: str = scfg.DEFAULT_FORMAT,
    filter: Optional[EventFilter] = None,
    on_progress: Optional[Callable[[float], None]] = None,
) -> Path:
    """Dump the DOM of a recording at each DOM event.

    Full snapshots replace the tracked DOM; incremental events that carry a
    ``source`` re-save the latest full snapshot (mutations are not applied).
    """
    if format not in scfg.FORMATS:
        raise InvalidInputError(f"format must be one of {scfg.FORMATS}, got {format!r}")
    events = load_events(resolve_path(input))
    target = resolve_path(output_dir)
    target.mkdir(parents=True, exist_ok=True)

    keep = filter or (lambda _event: True)
    relevant = [event for event in events if _is_dom_event(event) and keep(event)]
    total = len(relevant)
    extension = "html" if format == "html" else "json"

    current_dom: Optional[Dict[str, Any]] = None
    count = 0
    for index, event in enumerate(relevant):
        if on_progress is not None:
            on_progress(index / total)
        data = event.get("data") or {}
        if is_event_type(event, EventType.FULL_SNAPSHOT):
            current_dom = data.get("node")
            if current_dom is None:
                logger.warning("Full snapshot at %s has no node", event.get("timestamp"))
                continue
        elif current_dom is None or data.get("source") is None:
            continue
        path = target / f"snapshot_{count}_{event.get('timestamp')}.{extension}"
        count += 1
        await save_snapshot(current_dom, path, format)

    if on_progress is not None:
        on_progress(1.0)
    logger.info("Extracted %d snapshots from %d DOM events into %s", count, total, target)
    return target
