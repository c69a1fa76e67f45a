"""Shared utilities for sz."""

from sz.utils.formatting import format_size

__all__ = ["format_size"]
