from __future__ import annotations
import math
from numbers import Real
from typing import Any, Iterable, NamedTuple

from ..events import Event, EventType, is_event_type
from ..utils import round_half_up
from .config import vcfg


class Viewport(NamedTuple):
    width: int
    height: int


def _dimension(data: Any, name: str) -> float:
    """Numeric width/height from a Meta payload, 0 when absent or malformed."""
    if not isinstance(data, dict):
        return 0
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        return 0
    return value


def compute_content_viewport(events: Iterable[Event]) -> Viewport:
    """Largest width and height the recording ever declared.

    Each dimension is a running maximum over the Meta events, independently,
    starting from the minimum viewport so degenerate recordings still get a
    visible surface.
    """
    max_width: float = vcfg.MIN_VIEWPORT_WIDTH
    max_height: float = vcfg.MIN_VIEWPORT_HEIGHT
    for event in events:
        if not is_event_type(event, EventType.META):
            continue
        data = event.get("data")
        max_width = max(max_width, _dimension(data, "width"))
        max_height = max(max_height, _dimension(data, "height"))
    return Viewport(int(round_half_up(max_width)), int(round_half_up(max_height)))


def compute_capture_viewport(content: Viewport, ratio: float) -> Viewport:
    """Scale the content viewport; both sides are at least one pixel."""
    return Viewport(
        max(1, round_half_up(content.width * ratio)),
        max(1, round_half_up(content.height * ratio)),
    )
