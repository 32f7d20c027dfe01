from __future__ import annotations
import copy
import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..errors import InvalidInputError
from ..utils import clamp, resolve_path

ProgressCallback = Callable[[float], None]


class vcfg:
    """Video pipeline tuning."""

    DEFAULT_OUTPUT = "rrvideo-output.webm"
    DEFAULT_RESOLUTION_RATIO = 0.8  # good trade-off between quality and file size
    MAX_RESOLUTION_RATIO = 1.0

    # Floor for recordings without Meta events
    MIN_VIEWPORT_WIDTH = 1024
    MIN_VIEWPORT_HEIGHT = 576

    # Fixed amplification applied with upscale=True. Drives render surface
    # memory directly, so it is not exposed as an option.
    MAX_SCALE_VALUE = 2.5

    TEMP_DIR_PREFIX = "__rrvideo__temp__"

    # --- Replay runtime ---
    PLAYER_SCRIPT_URL = "https://cdn.jsdelivr.net/npm/rrweb-player@latest/dist/index.js"
    PLAYER_STYLE_URL = "https://cdn.jsdelivr.net/npm/rrweb-player@latest/dist/style.css"
    PROGRESS_BINDING = "__rrvideoReportProgress"
    FINISH_BINDING = "__rrvideoReportFinish"

    # --- Screencast ---
    SCREENCAST_FORMAT = "jpeg"
    SCREENCAST_QUALITY = 90
    SCREENCAST_EVERY_NTH_FRAME = 1
    FALLBACK_FRAME_DURATION_S = 1.0 / 25  # frames without a usable timestamp
    MIN_FRAME_DURATION_S = 0.001

    # --- Encoding (by output suffix) ---
    FFMPEG_BINARY = "ffmpeg"
    # Variable frame rate from the concat durations; needs ffmpeg 5.1+,
    # older builds take ("-vsync", "vfr")
    VFR_ARGS: Tuple[str, ...] = ("-fps_mode", "vfr")
    DEFAULT_CODEC_ARGS: Tuple[str, ...] = ("-c:v", "libvpx", "-b:v", "2M", "-f", "webm")
    CODEC_ARGS: Dict[str, Tuple[str, ...]] = {
        ".webm": ("-c:v", "libvpx", "-b:v", "2M", "-f", "webm"),
        ".mp4": ("-c:v", "libx264", "-preset", "veryfast", "-crf", "23", "-f", "mp4"),
    }

    # Timeout for CDP sends during teardown (a dying browser must not block cleanup)
    CDP_SEND_TIMEOUT_S = 5.0


def _default_player_props() -> Dict[str, Any]:
    return {
        "showController": False,
        "skipInactive": True,
        "showDebug": False,
        "showWarning": False,
        "autoPlay": True,
        "mouseTail": {"strokeStyle": "yellow"},
    }


def _noop_progress(_value: float) -> None:
    return None


@dataclass(frozen=True)
class TransformConfig:
    """Resolved configuration for one transform run."""

    input: Path
    output: Path
    headless: bool = True
    resolution_ratio: float = vcfg.DEFAULT_RESOLUTION_RATIO
    on_progress_update: ProgressCallback = _noop_progress
    player: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType(_default_player_props())
    )
    timeout: Optional[float] = None
    upscale: bool = False
    temp_root: Optional[Path] = None
    browser_executable_path: Optional[str] = None
    browser_args: Tuple[str, ...] = ()
    player_script_url: str = vcfg.PLAYER_SCRIPT_URL
    player_style_url: str = vcfg.PLAYER_STYLE_URL

    @property
    def effective_ratio(self) -> float:
        """Ratio applied to the content viewport, including the upscale factor."""
        if self.upscale:
            return self.resolution_ratio * vcfg.MAX_SCALE_VALUE
        return self.resolution_ratio


def clamp_resolution_ratio(value: Any) -> float:
    """Coerce a ratio into (0, MAX_RESOLUTION_RATIO]; larger values are clamped down."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInputError(f"resolution ratio must be a number, got {value!r}")
    ratio = float(value)
    if math.isnan(ratio) or ratio <= 0:
        raise InvalidInputError(f"resolution ratio must be > 0, got {value!r}")
    clamped = clamp(ratio, 0.0, vcfg.MAX_RESOLUTION_RATIO)
    if clamped != ratio:
        logging.getLogger(__name__).debug(
            "Resolution ratio %.3f clamped to %.1f", ratio, clamped
        )
    return clamped


def resolve_config(
    options: Optional[Mapping[str, Any]] = None,
    *,
    cwd: Optional[Path] = None,
    **overrides: Any,
) -> TransformConfig:
    """Merge user options over the defaults.

    Every field given with a non-None value replaces its default. The
    ``player`` bag is merged key by key over the default player props so
    callers don't have to repeat them.
    """
    merged: Dict[str, Any] = dict(options or {})
    merged.update(overrides)
    unknown = set(merged) - set(TransformConfig.__dataclass_fields__)
    if unknown:
        raise InvalidInputError(f"unknown option(s): {', '.join(sorted(unknown))}")

    if not merged.get("input"):
        raise InvalidInputError("input is required")

    fields: Dict[str, Any] = {k: v for k, v in merged.items() if v is not None}
    fields["input"] = resolve_path(fields["input"], cwd)
    fields["output"] = resolve_path(fields.get("output") or vcfg.DEFAULT_OUTPUT, cwd)
    if "resolution_ratio" in fields:
        fields["resolution_ratio"] = clamp_resolution_ratio(fields["resolution_ratio"])
    if "temp_root" in fields:
        fields["temp_root"] = resolve_path(fields["temp_root"], cwd)
    if "browser_args" in fields:
        fields["browser_args"] = tuple(fields["browser_args"])
    if "timeout" in fields:
        timeout = fields["timeout"]
        if (
            isinstance(timeout, bool)
            or not isinstance(timeout, Real)
            or not math.isfinite(timeout)
            or timeout <= 0
        ):
            raise InvalidInputError(f"timeout must be a positive number, got {timeout!r}")
        fields["timeout"] = float(timeout)
    if "on_progress_update" in fields and not callable(fields["on_progress_update"]):
        raise InvalidInputError("on_progress_update must be callable")

    player = _default_player_props()
    user_player = fields.get("player") or {}
    if not isinstance(user_player, Mapping):
        raise InvalidInputError("player options must be a mapping")
    player.update(copy.deepcopy(dict(user_player)))
    fields["player"] = MappingProxyType(player)

    return TransformConfig(**fields)
