from __future__ import annotations


class RRVideoError(Exception):
    """Base class for every error raised by rrvideo."""


class InvalidInputError(RRVideoError, ValueError):
    """Missing or invalid configuration (no input path, bad ratio...)."""


class InputFormatError(RRVideoError):
    """The events file cannot be parsed or holds no events."""


class EngineLaunchError(RRVideoError):
    """The browser could not be started."""


class PlaybackTimeoutError(RRVideoError):
    """The replay never reported that it finished within the timeout."""

    def __init__(self, timeout: float):
        super().__init__(f"replay did not finish within {timeout:g}s")
        self.timeout = timeout


class CaptureError(RRVideoError):
    """Screencast frames could not be turned into a video file."""


class ArtifactMoveError(RRVideoError):
    """The capture exists but could not be moved to the output path."""

    def __init__(self, source, destination):
        super().__init__(f"can't move capture {source} to {destination}")
        self.source = source
        self.destination = destination


class TransformCancelled(RRVideoError):
    """The run was cancelled by its caller before the replay finished."""
