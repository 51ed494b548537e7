"""Filesystem utilities for zeromq-src builds.

This module provides the filesystem capabilities the driver and resolver
call: clean removal of stale build trees, recursive source copies, locating a
file by name prefix, and rewriting Windows paths for POSIX-style shells.
"""

import logging
import os
import re
import shutil
import stat
import time
from pathlib import Path
from typing import Any, Callable

from ..errors import AmbiguousArtifactError, ArtifactResolutionError

_DRIVE_PATH = re.compile(r"^([A-Za-z]):/(.*)$", re.DOTALL)


def remove_readonly(func: Callable[[str], None], path: str, excinfo: Any) -> None:
    """
    Error handler for shutil.rmtree on Windows.

    Clears the read-only attribute (git checkouts of the vendored tree are
    read-only on Windows) and retries the failed operation.

    Args:
        func: The function that raised the exception
        path: The path to the file/directory
        excinfo: Exception information (unused)
    """
    os.chmod(path, stat.S_IWRITE)
    func(path)


def safe_rmtree(path: Path, max_retries: int = 3) -> None:
    """
    Remove a directory tree, retrying briefly when files are locked.

    Args:
        path: Path to directory to remove
        max_retries: Maximum number of attempts

    Raises:
        OSError: If directory cannot be removed after all retries
    """
    if not path.exists():
        return

    for attempt in range(max_retries):
        try:
            shutil.rmtree(path, onerror=remove_readonly)
            return
        except OSError as e:
            if attempt < max_retries - 1:
                time.sleep(0.5)
            else:
                raise OSError(
                    f"Failed to remove directory {path} after {max_retries} attempts: {e}"
                ) from e


def copy_tree(src: Path, dst: Path) -> None:
    """Recursively copy src into dst, overwriting existing files.

    Args:
        src: Source directory
        dst: Destination directory (created if missing)

    Raises:
        FileNotFoundError: If src is not a directory
    """
    if not src.is_dir():
        raise FileNotFoundError(f"Source directory not found: {src}")

    dst.mkdir(parents=True, exist_ok=True)
    for entry in src.iterdir():
        target = dst / entry.name
        if entry.is_dir():
            copy_tree(entry, target)
        else:
            if target.exists():
                os.chmod(target, stat.S_IWRITE | stat.S_IREAD)
            shutil.copy2(entry, target)


def sanitize_sh_path(path: str) -> str:
    """Rewrite a Windows drive path for a POSIX-style shell.

    "C:/Users/me/out" (or "C:\\Users\\me\\out") becomes "/C/Users/me/out".
    Any path that does not start with a drive letter, a colon and a slash is
    returned unchanged.

    Args:
        path: Path as a string

    Returns:
        The shell-friendly path
    """
    match = _DRIVE_PATH.match(path.replace("\\", "/"))
    if match is None:
        return path
    drive, rest = match.groups()
    return f"/{drive}/{rest}"


def locate_by_prefix(directory: Path, prefix: str, suffix: str = "") -> Path:
    """Find the single file in a directory whose name starts with prefix.

    Args:
        directory: Directory to scan (not recursive)
        prefix: Required file name prefix
        suffix: Optional required file name suffix (e.g. ".lib")

    Returns:
        Path of the one matching file

    Raises:
        ArtifactResolutionError: If the directory is unreadable or nothing matches
        AmbiguousArtifactError: If more than one file matches
    """
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        raise ArtifactResolutionError(f"Cannot read directory {directory}: {e}") from e

    matches = [
        entry for entry in entries
        if entry.is_file() and entry.name.startswith(prefix) and entry.name.endswith(suffix)
    ]
    if not matches:
        raise ArtifactResolutionError(
            f"No file starting with '{prefix}' found in {directory}"
        )
    if len(matches) > 1:
        names = ", ".join(match.name for match in matches)
        raise AmbiguousArtifactError(
            f"More than one file starting with '{prefix}' in {directory}: {names}"
        )

    logging.debug(f"Located {matches[0]} by prefix '{prefix}'")
    return matches[0]
