"""Pure formatting utilities for report output.

Sizes use decimal units (1000-based), the way the report has always shown
them, with two decimal places of precision.
"""

from typing import Final

import click

_K: Final[int] = 1_000
_M: Final[int] = _K * 1_000
_G: Final[int] = _M * 1_000

# 256-color palette indexes
COLOR_GIGA: Final[int] = 202
COLOR_MEGA: Final[int] = 202
COLOR_KILO: Final[int] = 87
COLOR_BYTES: Final[int] = 197


def round2(size: int, divisor: int) -> float:
    """Divide ``size`` by ``divisor`` and round to 2 decimal places.

    Examples:
        >>> round2(1_234_567, 1_000_000)
        1.23
    """
    return round(size / divisor * 100) / 100


def format_size(size: int, *, human: bool = False, colors: bool = False) -> str:
    """Format a byte count for the report.

    Args:
        size: Number of bytes (must be non-negative)
        human: Use K/M/G suffixes instead of the raw integer
        colors: Wrap human-readable values in ANSI colors

    Returns:
        The formatted size. Raw sizes are never colored.

    Examples:
        >>> format_size(1_500_000_000)
        '1500000000'
        >>> format_size(1_500_000_000, human=True)
        '1.5G'
        >>> format_size(2_346_000, human=True)
        '2.35M'
        >>> format_size(1_000, human=True)
        '1000'
    """
    if size < 0:
        msg = "size must be non-negative"
        raise ValueError(msg)

    if not human:
        return str(size)

    if size > _G:
        return _paint(f"{round2(size, _G)}G", COLOR_GIGA, colors, bold=True)
    if size > _M:
        return _paint(f"{round2(size, _M)}M", COLOR_MEGA, colors)
    if size > _K:
        return _paint(f"{round2(size, _K)}K", COLOR_KILO, colors)
    return _paint(str(size), COLOR_BYTES, colors)


def _paint(text: str, color: int, colors: bool, *, bold: bool = False) -> str:
    if not colors:
        return text
    return click.style(text, fg=color, bold=bold or None)
