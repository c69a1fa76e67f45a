"""Data models for sz.

This module defines the immutable values passed between the prober, the
scan coordinator and the reporter.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing_extensions import override


@dataclass(slots=True, frozen=True)
class ScanTarget:
    """Root of a scan.

    The device identifier is read once from the root and handed unchanged to
    every probe, so the whole scan stays on one filesystem.
    """

    path: str
    device: int


@dataclass(slots=True, frozen=True)
class ProbeResult:
    """Outcome of listing a single directory.

    ``direct_size`` only counts entries that are neither directories nor
    symlinks. ``sub_paths`` holds the same-device, non-blacklisted child
    directories still to be probed. ``error`` is set when the directory could
    not be listed; such a result always has a zero size and no children.
    """

    path: str
    direct_size: int = 0
    sub_paths: tuple[str, ...] = ()
    error: str | None = None

    @property
    def degraded(self) -> bool:
        """Whether the directory could not be listed."""
        return self.error is not None


@dataclass(slots=True, eq=False)
class ScanReport(Mapping[str, int]):
    """Mapping of every probed directory to its direct size.

    Behaves as a read-only ``Mapping[str, int]`` for consumers. The scan
    coordinator fills it through ``record`` while the scan is running.
    Equality is mapping equality, so a report compares equal to a plain dict
    with the same sizes.
    """

    root: str
    _sizes: dict[str, int] = field(default_factory=dict)
    _degraded: set[str] = field(default_factory=set)

    def record(self, result: ProbeResult) -> None:
        """Store a probe result."""
        self._sizes[result.path] = result.direct_size
        if result.degraded:
            self._degraded.add(result.path)

    @property
    def degraded(self) -> frozenset[str]:
        """Directories whose listing failed and were counted as empty."""
        return frozenset(self._degraded)

    @property
    def total_size(self) -> int:
        """Sum of the direct sizes of every directory in the report."""
        return sum(self._sizes.values())

    @property
    def root_size(self) -> int:
        """Direct size of the scan root (0 if it was never recorded)."""
        return self._sizes.get(self.root, 0)

    def largest(self) -> list[tuple[str, int]]:
        """Entries sorted by size, largest first, ties broken by path."""
        return sorted(self._sizes.items(), key=lambda item: (-item[1], item[0]))

    @classmethod
    def from_results(cls, root: str, results: Iterable[ProbeResult]) -> "ScanReport":
        """Build a report from already collected probe results."""
        report = cls(root=root)
        for result in results:
            report.record(result)
        return report

    @override
    def __getitem__(self, key: str) -> int:
        return self._sizes[key]

    @override
    def __iter__(self) -> Iterator[str]:
        return iter(self._sizes)

    @override
    def __len__(self) -> int:
        return len(self._sizes)
