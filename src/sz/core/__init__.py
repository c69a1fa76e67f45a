"""Traversal engine: scan target bootstrap, prober and scan coordinator."""

from sz.core.coordinator import ScanCoordinator, scan
from sz.core.prober import DEFAULT_BLACKLIST, probe
from sz.core.target import RootPathError, resolve_scan_target

__all__ = [
    "DEFAULT_BLACKLIST",
    "RootPathError",
    "ScanCoordinator",
    "probe",
    "resolve_scan_target",
    "scan",
]
