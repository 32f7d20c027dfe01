from __future__ import annotations
import logging
import os
import shutil
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Restrict value to [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def resolve_path(path: PathLike, cwd: PathLike | None = None) -> Path:
    """Absolute path; relative ones are resolved against cwd (default: os.getcwd())."""
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    return Path(cwd if cwd is not None else os.getcwd()) / candidate


def remove_path(path: PathLike) -> bool:
    """Existence-checked delete of a file or directory tree.

    Returns True when something was removed. A path that disappears between
    the check and the delete is treated as already removed.
    """
    target = Path(path)
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        else:
            return False
    except FileNotFoundError:
        return False
    logging.getLogger(__name__).debug("Removed %s", target)
    return True


def remove_dir_if_empty(path: PathLike) -> bool:
    """Remove a directory only when it holds no entries."""
    target = Path(path)
    try:
        if any(target.iterdir()):
            return False
        target.rmdir()
    except FileNotFoundError:
        return False
    except OSError:
        # raced with another writer
        return False
    return True
