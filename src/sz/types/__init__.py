"""Shared data types for sz."""

from sz.types.models import ProbeResult, ScanReport, ScanTarget

__all__ = ["ProbeResult", "ScanReport", "ScanTarget"]
