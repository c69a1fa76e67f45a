"""Resolution of the scan root into a ScanTarget."""

from __future__ import annotations

import logging
import os
import stat

from sz.types.models import ScanTarget

logger = logging.getLogger(__name__)


class RootPathError(Exception):
    """Raised when the scan root cannot be used.

    The root is checked once before any traversal starts, so a missing or
    unreadable root fails the run instead of producing an empty report.
    """


def normalize_root(root: str | os.PathLike[str]) -> str:
    """Return ``root`` as an absolute path without a trailing separator.

    Examples:
        >>> normalize_root("/var/log/")
        '/var/log'
        >>> normalize_root("/")
        '/'
        >>> normalize_root("//proc")
        '/proc'
    """
    path = os.path.abspath(os.fspath(root))
    # POSIX keeps a leading "//" as implementation-defined
    if path.startswith("//"):
        path = "/" + path.lstrip("/")
    return path


def resolve_scan_target(root: str | os.PathLike[str]) -> ScanTarget:
    """Stat the scan root and capture its device identifier.

    A symlinked root is followed, the same way ``du`` treats a path given on
    the command line. Symlinks below the root are never followed.

    Args:
        root: Directory to scan

    Returns:
        ScanTarget holding the absolute root path and its device

    Raises:
        RootPathError: If the root does not exist, cannot be stat'ed, or is
            not a directory
    """
    path = normalize_root(root)

    try:
        info = os.stat(path)
    except FileNotFoundError as exc:
        msg = f"Cannot find path at {path}"
        raise RootPathError(msg) from exc
    except OSError as exc:
        msg = f"Cannot access {path}: {exc.strerror or exc}"
        raise RootPathError(msg) from exc

    if not stat.S_ISDIR(info.st_mode):
        msg = f"Not a directory: {path}"
        raise RootPathError(msg)

    logger.debug(
        "Resolved scan root %s on device %d",
        path,
        info.st_dev,
        extra={"path": path, "device": info.st_dev},
    )
    return ScanTarget(path=path, device=info.st_dev)
