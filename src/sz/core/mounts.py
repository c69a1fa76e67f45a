"""Lookup of the mount that holds a path."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import psutil

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class MountInfo:
    """A mounted filesystem."""

    device: str
    mountpoint: str
    fstype: str


def list_mounts() -> list[MountInfo]:
    """Return every mounted filesystem, pseudo-filesystems included."""
    # psutil.disk_partitions returns list[sdiskpart]; fields are plain strings
    return [
        MountInfo(device=part.device, mountpoint=part.mountpoint, fstype=part.fstype)
        for part in psutil.disk_partitions(all=True)
    ]


def _contains(mountpoint: str, path: str) -> bool:
    if mountpoint == os.sep:
        return path.startswith(os.sep)
    return path == mountpoint or path.startswith(mountpoint.rstrip(os.sep) + os.sep)


def find_mount(path: str, mounts: list[MountInfo] | None = None) -> MountInfo | None:
    """Find the mount ``path`` lives on (the longest containing mount point).

    Args:
        path: Absolute path
        mounts: Mounts to search; the live mount table when omitted

    Returns:
        The matching mount, or None if the mount table is unavailable or no
        mount contains ``path``

    Examples:
        >>> mounts = [MountInfo("/dev/sda1", "/", "ext4"), MountInfo("/dev/sdb1", "/home", "xfs")]
        >>> find_mount("/home/user", mounts).device
        '/dev/sdb1'
        >>> find_mount("/homework", mounts).device
        '/dev/sda1'
    """
    if mounts is None:
        try:
            mounts = list_mounts()
        except (OSError, RuntimeError) as exc:
            logger.debug("Mount table unavailable: %s", exc, extra={"error": str(exc)})
            return None

    candidates = [mount for mount in mounts if _contains(mount.mountpoint, path)]
    if not candidates:
        return None
    return max(candidates, key=lambda mount: len(mount.mountpoint))
