"""Single-directory prober.

Lists one directory and classifies its immediate children. The prober never
recurses and never touches shared state: the scan coordinator decides what to
probe next from the ``sub_paths`` it returns.

All functions here are blocking and are meant to be offloaded to a thread with
``asyncio.to_thread``.
"""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Collection
from typing import Final

from sz.types.models import ProbeResult

logger = logging.getLogger(__name__)

# Pseudo-filesystems whose sizes are meaningless or unbounded
DEFAULT_BLACKLIST: Final[frozenset[str]] = frozenset({"/proc", "/sys"})


def _lstat(entry: os.DirEntry[str]) -> os.stat_result:
    """Stat a directory entry without following symlinks."""
    return entry.stat(follow_symlinks=False)


def probe(
    path: str,
    root_device: int,
    blacklist: Collection[str] = DEFAULT_BLACKLIST,
) -> ProbeResult:
    """Sum the sizes of files in a directory and collect its subdirectories.

    Classification of each entry, in order:

    1. symlink: skipped
    2. blacklisted path: skipped
    3. directory on ``root_device``: returned in ``sub_paths``
    4. directory on another device: skipped (stay on one filesystem)
    5. anything else: size added to ``direct_size``

    A directory that cannot be listed yields an empty result with ``error``
    set; entries that vanish between listing and stat are ignored.

    Args:
        path: Absolute directory path
        root_device: Device identifier of the scan root
        blacklist: Absolute paths never counted or traversed

    Returns:
        ProbeResult for ``path``
    """
    direct_size = 0
    sub_paths: list[str] = []

    try:
        with os.scandir(path) as entries:
            for entry in entries:
                try:
                    info = _lstat(entry)
                except OSError:
                    # removed while listing
                    continue

                mode = info.st_mode
                if stat.S_ISLNK(mode):
                    continue

                if entry.path in blacklist:
                    logger.info("Skipping blacklisted path: %s", entry.path, extra={"path": entry.path})
                    continue

                if stat.S_ISDIR(mode):
                    if info.st_dev == root_device:
                        sub_paths.append(entry.path)
                    continue

                direct_size += info.st_size
    except OSError as exc:
        return ProbeResult(path=path, error=exc.strerror or type(exc).__name__)

    return ProbeResult(path=path, direct_size=direct_size, sub_paths=tuple(sub_paths))
