"""sz - per-directory disk usage for a single filesystem.

Scans a directory tree with a pool of concurrent probes, staying on the
root's device and skipping symlinks, and reports the direct file size of
every directory it reached.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sz")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]
