from __future__ import annotations

__version__ = "2.0.0"

from .errors import (
    ArtifactMoveError,
    CaptureError,
    EngineLaunchError,
    InputFormatError,
    InvalidInputError,
    PlaybackTimeoutError,
    RRVideoError,
    TransformCancelled,
)
from .events import EventType, load_events
from .snapshot import create_snapshots, highlight_directory, highlight_elements
from .video import (
    PipelineRun,
    TransformConfig,
    compute_content_viewport,
    resolve_config,
    transform_many,
    transform_to_video,
)

__all__ = [
    "ArtifactMoveError",
    "CaptureError",
    "EngineLaunchError",
    "EventType",
    "InputFormatError",
    "InvalidInputError",
    "PipelineRun",
    "PlaybackTimeoutError",
    "RRVideoError",
    "TransformCancelled",
    "TransformConfig",
    "compute_content_viewport",
    "create_snapshots",
    "highlight_directory",
    "highlight_elements",
    "load_events",
    "resolve_config",
    "transform_many",
    "transform_to_video",
]
