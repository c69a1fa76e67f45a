"""Builders for on-disk directory trees used across the test suite."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import TypeAlias

# A tree spec maps names to either a file size in bytes or a nested tree spec
TreeSpec: TypeAlias = Mapping[str, "int | TreeSpec"]


def build_tree(root: Path, spec: TreeSpec) -> None:
    """Create directories and files of exact sizes under ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    for name, value in spec.items():
        if isinstance(value, int):
            _ = (root / name).write_bytes(b"x" * value)
        else:
            build_tree(root / name, value)


def expected_sizes(root: Path, spec: TreeSpec) -> dict[str, int]:
    """Direct size of every directory in ``spec``, keyed by absolute path."""
    sizes = {str(root): sum(v for v in spec.values() if isinstance(v, int))}
    for name, value in spec.items():
        if not isinstance(value, int):
            sizes.update(expected_sizes(root / name, value))
    return sizes


def with_device(info: os.stat_result, device: int) -> os.stat_result:
    """Copy of ``info`` reporting a different ``st_dev``."""
    values = list(info)
    values[2] = device
    return os.stat_result(values)
