"""Unit tests for the scan coordinator.

Tests cover:
- Concrete scan scenarios (nested tree, symlinks, unreadable directories)
- Blacklist and cross-device exclusion across the whole scan
- Idempotence of repeated scans
- Bounded worker pool concurrency
- Scan ID propagation into probe threads
- Propagation of unexpected probe failures
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable, Collection
from pathlib import Path
from unittest.mock import patch

import pytest

from sz.core import prober
from sz.core.coordinator import DEFAULT_WORKERS, ScanCoordinator, scan
from sz.core.prober import probe
from sz.core.target import resolve_scan_target
from sz.types.models import ProbeResult
from sz.utils.logging import get_scan_id, reset_scan_id, set_scan_id
from tests.fixtures.tree_builders import TreeSpec, expected_sizes, with_device


def _scan(root: Path, **kwargs: object) -> dict[str, int]:
    target = resolve_scan_target(root)
    return dict(scan(target.path, target.device, **kwargs))  # pyright: ignore[reportArgumentType]


class TestScanCoordinatorCreation:
    """Test coordinator construction."""

    def test_defaults(self) -> None:
        """Default coordinator uses the default pool size and blacklist."""
        coordinator = ScanCoordinator()

        assert coordinator.workers == DEFAULT_WORKERS
        assert coordinator.blacklist == frozenset({"/proc", "/sys"})

    def test_injected_blacklist(self) -> None:
        """The blacklist is whatever the caller passes in."""
        coordinator = ScanCoordinator(blacklist=["/mnt/backup"], workers=2)

        assert coordinator.blacklist == frozenset({"/mnt/backup"})
        assert coordinator.workers == 2

    @pytest.mark.parametrize("workers", [0, -1])
    def test_rejects_empty_pool(self, workers: int) -> None:
        """A pool without workers could never finish."""
        with pytest.raises(ValueError, match="workers must be at least 1"):
            _ = ScanCoordinator(workers=workers)


class TestScanScenarios:
    """Test complete scans over real directory trees."""

    def test_file_dir_and_symlink(self, make_tree: Callable[[TreeSpec], Path], tmp_path: Path) -> None:
        """Root with a file, a subdirectory and a symlink reports only real sizes."""
        root = make_tree({"f1": 100, "b": {"f2": 50}})
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        _ = (elsewhere / "big").write_bytes(b"x" * 10_000)
        (root / "link").symlink_to(elsewhere, target_is_directory=True)

        target = resolve_scan_target(root)
        report = ScanCoordinator(workers=4).scan(target.path, target.device)

        assert report == {str(root): 100, str(root / "b"): 50}
        assert report.total_size == 150
        assert report.root_size == 100
        assert report.degraded == frozenset()

    def test_deep_tree(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """Every directory of a nested tree is reported with its direct size."""
        spec: TreeSpec = {
            "top": 1,
            "a": {"a1": 10, "aa": {"aa1": 20, "aaa": {"aaa1": 30}}},
            "b": {"b1": 40, "b2": 2},
            "empty": {},
        }
        root = make_tree(spec)

        assert _scan(root, workers=3) == expected_sizes(root, spec)

    def test_single_worker_completes(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """A pool of one still drains a branching tree."""
        spec: TreeSpec = {f"d{i}": {f"e{j}": {"f": j} for j in range(3)} for i in range(4)}
        root = make_tree(spec)

        assert _scan(root, workers=1) == expected_sizes(root, spec)

    def test_unreadable_subdirectory(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """An unreadable subdirectory is reported with size 0 and the scan carries on."""
        root = make_tree({"f1": 100, "b": {"f2": 50}, "c": {"secret": 70, "inner": {}}})
        locked = str(root / "c")
        real_scandir = os.scandir

        def guarded_scandir(path: str) -> object:
            if path == locked:
                raise PermissionError(13, "Permission denied", path)
            return real_scandir(path)

        target = resolve_scan_target(root)
        with patch("sz.core.prober.os.scandir", side_effect=guarded_scandir):
            report = ScanCoordinator(workers=4).scan(target.path, target.device)

        assert report == {str(root): 100, str(root / "b"): 50, locked: 0}
        assert report.degraded == frozenset({locked})

    @pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() == 0, reason="root ignores permissions")
    def test_unreadable_subdirectory_on_disk(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """A chmod 000 directory is reported with size 0."""
        root = make_tree({"f1": 100, "c": {"secret": 70}})
        locked = root / "c"
        locked.chmod(0)
        try:
            report = _scan(root, workers=2)
        finally:
            locked.chmod(0o755)

        assert report == {str(root): 100, str(locked): 0}

    def test_blacklisted_subtree(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """A blacklisted directory produces no entry and adds nothing to its parent."""
        root = make_tree({"f1": 5, "proc": {"kcore": 1000, "deep": {"x": 1}}, "keep": {"k": 3}})

        report = _scan(root, blacklist={str(root / "proc")})

        assert report == {str(root): 5, str(root / "keep"): 3}

    def test_cross_device_subtree(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """A subdirectory on another device is absent and not counted anywhere."""
        root = make_tree({"f1": 5, "mnt": {"usb": {"photo": 4000}}, "home": {"h": 6}})
        mountpoint = str(root / "mnt" / "usb")
        real_lstat = prober._lstat  # pyright: ignore[reportPrivateUsage]

        def fake_lstat(entry: os.DirEntry[str]) -> os.stat_result:
            info = real_lstat(entry)
            if entry.path == mountpoint:
                return with_device(info, info.st_dev + 1)
            return info

        with patch("sz.core.prober._lstat", side_effect=fake_lstat):
            report = _scan(root, workers=2)

        assert report == {str(root): 5, str(root / "mnt"): 0, str(root / "home"): 6}

    def test_scan_is_idempotent(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """Scanning an unchanged tree twice yields identical reports."""
        root = make_tree({"a": {"b": {"c": 3}, "d": 4}, "e": 5})

        assert _scan(root, workers=2) == _scan(root, workers=7)

    def test_root_with_trailing_separator(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """Keys use the normalized root path."""
        root = make_tree({"f": 9, "sub": {}})
        target = resolve_scan_target(f"{root}{os.sep}")

        report = scan(target.path, target.device)

        assert set(report) == {str(root), str(root / "sub")}
        assert report.root == str(root)


class TestScanConcurrency:
    """Test the bounded worker pool."""

    def test_pool_bounds_concurrent_probes(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """No more than ``workers`` probes ever run at the same time."""
        spec: TreeSpec = {f"d{i}": {"f": i} for i in range(20)}
        root = make_tree(spec)
        lock = threading.Lock()
        active = 0
        peak = 0

        def tracking_probe(path: str, device: int, blacklist: Collection[str]) -> ProbeResult:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            try:
                time.sleep(0.01)
                return probe(path, device, blacklist)
            finally:
                with lock:
                    active -= 1

        with patch("sz.core.coordinator.probe", side_effect=tracking_probe):
            report = _scan(root, workers=3)

        assert report == expected_sizes(root, spec)
        assert 1 <= peak <= 3

    def test_each_directory_probed_once(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """Every discovered directory is probed exactly once."""
        spec: TreeSpec = {"a": {"b": {}, "c": {"d": {}}}, "e": {}}
        root = make_tree(spec)
        probed: list[str] = []
        lock = threading.Lock()

        def recording_probe(path: str, device: int, blacklist: Collection[str]) -> ProbeResult:
            with lock:
                probed.append(path)
            return probe(path, device, blacklist)

        with patch("sz.core.coordinator.probe", side_effect=recording_probe):
            report = _scan(root, workers=4)

        assert sorted(probed) == sorted(report)
        assert len(probed) == len(set(probed)) == 6

    def test_probes_run_on_dedicated_threads(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """Blocking scans run probes on an executor sized to the pool."""
        root = make_tree({"a": {}, "b": {}})
        names: set[str] = set()
        lock = threading.Lock()

        def naming_probe(path: str, device: int, blacklist: Collection[str]) -> ProbeResult:
            with lock:
                names.add(threading.current_thread().name)
            return probe(path, device, blacklist)

        with patch("sz.core.coordinator.probe", side_effect=naming_probe):
            _ = _scan(root, workers=2)

        assert names
        assert all(name.startswith("sz-probe") for name in names)

    def test_probe_threads_share_scan_id(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """The scan ID set by the coordinator is visible inside every probe thread."""
        root = make_tree({"a": {}, "b": {}, "c": {}})
        seen: list[str | None] = []
        lock = threading.Lock()

        def id_probe(path: str, device: int, blacklist: Collection[str]) -> ProbeResult:
            with lock:
                seen.append(get_scan_id())
            return probe(path, device, blacklist)

        with patch("sz.core.coordinator.probe", side_effect=id_probe):
            _ = _scan(root, workers=2)

        assert len(seen) == 4
        assert None not in seen
        assert len(set(seen)) == 1
        assert get_scan_id() is None

    def test_existing_scan_id_is_kept(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """A scan ID set by the caller is reused rather than replaced."""
        root = make_tree({"a": {}})
        seen: list[str | None] = []

        def id_probe(path: str, device: int, blacklist: Collection[str]) -> ProbeResult:
            seen.append(get_scan_id())
            return probe(path, device, blacklist)

        token = set_scan_id("nightly")
        try:
            with patch("sz.core.coordinator.probe", side_effect=id_probe):
                _ = _scan(root, workers=1)
        finally:
            reset_scan_id(token)

        assert seen == ["nightly", "nightly"]

    def test_unexpected_probe_error_propagates(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """A non-filesystem failure inside a probe stops the scan with that error."""
        root = make_tree({"a": {}, "b": {}})

        with patch("sz.core.coordinator.probe", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError, match="boom"):
                _ = _scan(root, workers=2)


class TestScanLogging:
    """Test the scan summary log line."""

    def test_completion_line_carries_summary(
        self,
        make_tree: Callable[[TreeSpec], Path],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """The completion message itself states counts and sizes."""
        root = make_tree({"f1": 100, "b": {"f2": 50}})

        with caplog.at_level(logging.INFO, logger="sz.core.coordinator"):
            _ = _scan(root, workers=2)

        messages = [record.getMessage() for record in caplog.records if record.name == "sz.core.coordinator"]
        assert any(
            message.startswith(f"Scan complete: {root}, 2 directories, 150 bytes, 0 unreadable in ")
            for message in messages
        )


class TestScanAsync:
    """Test the awaitable entry point."""

    @pytest.mark.asyncio
    async def test_scan_async(self, make_tree: Callable[[TreeSpec], Path]) -> None:
        """scan_async works inside an already running event loop."""
        spec: TreeSpec = {"f": 11, "sub": {"g": 22}}
        root = make_tree(spec)

        report = await ScanCoordinator(workers=2).scan_async(resolve_scan_target(root))

        assert report == expected_sizes(root, spec)
