from __future__ import annotations
import json
import logging
import math
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List

from .errors import InputFormatError
from .utils import PathLike

Event = Dict[str, Any]


class EventType(IntEnum):
    """rrweb event kinds."""

    DOM_CONTENT_LOADED = 0
    LOAD = 1
    FULL_SNAPSHOT = 2
    INCREMENTAL_SNAPSHOT = 3
    META = 4
    CUSTOM = 5
    PLUGIN = 6


def is_event_type(event: Event, kind: EventType) -> bool:
    return event.get("type") == kind


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number {text} is out of range")
    return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a JSON number")


def load_events(path: PathLike) -> List[Event]:
    """Read and validate a recorded session.

    The file must hold a non-empty JSON array of event objects. Order is kept
    exactly as stored. Non-finite numbers (NaN, Infinity, 1e400) are rejected
    since the page parses the events with JSON.parse.
    """
    source = Path(path)
    try:
        raw = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise InputFormatError(f"can't read events file {source}: {exc}") from exc
    try:
        events = json.loads(
            raw, parse_float=_finite_float, parse_constant=_reject_constant
        )
    except ValueError as exc:
        raise InputFormatError(f"events file {source} is not valid JSON: {exc}") from exc

    if not isinstance(events, list) or not events:
        raise InputFormatError(f"events file {source} is empty or not an array")
    for index, event in enumerate(events):
        if not isinstance(event, dict):
            raise InputFormatError(
                f"event #{index} in {source} is not an object ({type(event).__name__})"
            )
    logging.getLogger(__name__).debug("Loaded %d events from %s", len(events), source)
    return events
