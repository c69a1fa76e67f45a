"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from tests.fixtures.tree_builders import TreeSpec, build_tree


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[TreeSpec], Path]:
    """Build a directory tree under a fresh ``tmp_path/root`` and return it."""

    def _make(spec: TreeSpec) -> Path:
        root = tmp_path / "root"
        build_tree(root, spec)
        return root

    return _make
