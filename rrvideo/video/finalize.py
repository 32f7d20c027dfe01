from __future__ import annotations
import errno
import logging
import os
import shutil
from pathlib import Path
from typing import Iterable

from ..errors import ArtifactMoveError
from ..utils import remove_dir_if_empty, remove_path

logger = logging.getLogger(__name__)


def _replace_across_devices(source: Path, destination: Path) -> None:
    """Copy next to the destination, then rename over it."""
    staging = destination.with_name(destination.name + ".tmp")
    try:
        shutil.copyfile(source, staging)
        os.replace(staging, destination)
    finally:
        remove_path(staging)
    remove_path(source)


def finalize_capture(capture: Path, output: Path) -> Path:
    """Move the capture to ``output``, overwriting whatever is there.

    Either the whole file lands at ``output`` or ``output`` is untouched.
    """
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.replace(capture, output)
        except OSError as exc:
            if exc.errno != errno.EXDEV:
                raise
            _replace_across_devices(capture, output)
    except OSError as exc:
        logger.error("Can't create video file. Please check the output path %s", output)
        raise ArtifactMoveError(capture, output) from exc
    logger.info("Video written to %s", output)
    return output


def cleanup_temp_dir(temp_dir: Path, owned_paths: Iterable[Path] = ()) -> bool:
    """Delete the files a run created, then the directory if nothing else is left.

    Every delete is existence-checked, so files already removed by someone
    else are fine. Returns True when the directory is gone afterwards.
    """
    for path in owned_paths:
        try:
            remove_path(path)
        except OSError:
            logger.warning("Could not remove temporary file %s", path, exc_info=True)
    for child in sorted(temp_dir.glob("*"), reverse=True):
        if child.is_dir():
            remove_dir_if_empty(child)
    remove_dir_if_empty(temp_dir)
    if temp_dir.exists():
        logger.warning("Temporary directory %s is not empty; left in place", temp_dir)
        return False
    return True
