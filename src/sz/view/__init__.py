"""Presentation of scan reports."""

from sz.view.reporter import Reporter, ReportOptions

__all__ = ["ReportOptions", "Reporter"]
