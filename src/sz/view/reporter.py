"""Text report for a finished scan."""

from __future__ import annotations

from dataclasses import dataclass

import click

from sz.core.mounts import MountInfo
from sz.types.models import ScanReport
from sz.utils.formatting import format_size

SEPARATOR = "-" * 57


@dataclass(slots=True, frozen=True)
class ReportOptions:
    """Presentation options; none of them affect the scan itself.

    Attributes:
        human: Show sizes with K/M/G suffixes
        nosummary: Turn off summary mode
        zeroes: Include zero-size entries (also turns off summary mode)
        colors: Colorize human-readable sizes
        summary_threshold_percent: Share of the total an entry must exceed
            to be listed in summary mode
    """

    human: bool = False
    nosummary: bool = False
    zeroes: bool = False
    colors: bool = True
    summary_threshold_percent: float = 1.0

    @property
    def summary(self) -> bool:
        return not self.nosummary and not self.zeroes


class Reporter:
    """Renders a ScanReport as sorted text lines.

    Args:
        report: The finished scan
        options: Presentation options
        mount: Mount holding the scan root, shown in the header when known
    """

    def __init__(
        self,
        report: ScanReport,
        options: ReportOptions | None = None,
        mount: MountInfo | None = None,
    ) -> None:
        self.report: ScanReport = report
        self.options: ReportOptions = options or ReportOptions()
        self.mount: MountInfo | None = mount

    def render(self) -> list[str]:
        """Build the report lines."""
        root = self.report.root
        total = self.report.total_size
        options = self.options

        lines = [
            f"{root} files size: {self._format(self.report.root_size)}",
            f"{root} total size: {self._format(total)}",
        ]
        if self.mount is not None:
            lines.append(f"{root} device: {self.mount.device} mounted on {self.mount.mountpoint}")

        threshold = total * options.summary_threshold_percent / 100.0
        if options.summary:
            lines.append(f"Entries that consume at least {options.summary_threshold_percent:g}% of space in this path")
        lines.append(SEPARATOR)

        degraded = self.report.degraded
        for path, size in self.report.largest():
            if options.summary and size <= threshold:
                continue
            if not options.zeroes and size <= 0:
                continue
            suffix = " (unreadable)" if path in degraded else ""
            lines.append(f"{self._format(size)}\t\t{path}{suffix}")

        if degraded:
            lines.append(f"{len(degraded)} director{'y' if len(degraded) == 1 else 'ies'} could not be read")

        return lines

    def report_to_stdout(self) -> None:
        """Echo the report lines to stdout."""
        for line in self.render():
            click.echo(line)

    def _format(self, size: int) -> str:
        return format_size(size, human=self.options.human, colors=self.options.colors)
