"""Scan coordinator: concurrent traversal and aggregation.

The coordinator seeds a work queue with the scan root and runs a fixed pool of
worker tasks over it. Each worker probes one directory in a thread, records
the result in the report and queues the subdirectories it found. The scan is
finished when the queue reports that every queued directory has been handled.

Only the event loop thread touches the queue and the report, so no locks are
needed. Probes run concurrently in threads but share nothing.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Collection
from concurrent.futures import ThreadPoolExecutor
from typing import Final

from sz.core.prober import DEFAULT_BLACKLIST, probe
from sz.types.models import ScanReport, ScanTarget
from sz.utils.logging import get_scan_id, reset_scan_id, set_scan_id

logger = logging.getLogger(__name__)

DEFAULT_WORKERS: Final[int] = 50


class ScanCoordinator:
    """Runs a scan through a bounded pool of probe workers.

    Args:
        blacklist: Absolute paths that are never counted or traversed
        workers: Maximum number of directories probed at the same time

    Example:
        >>> coordinator = ScanCoordinator(blacklist={"/proc", "/sys"}, workers=8)
        >>> report = coordinator.scan("/var", os.stat("/var").st_dev)
        >>> report.total_size >= report.root_size
        True
    """

    def __init__(
        self,
        *,
        blacklist: Collection[str] = DEFAULT_BLACKLIST,
        workers: int = DEFAULT_WORKERS,
    ) -> None:
        if workers < 1:
            msg = f"workers must be at least 1, got: {workers}"
            raise ValueError(msg)

        self.blacklist: frozenset[str] = frozenset(blacklist)
        self.workers: int = workers

    def scan(self, root_path: str, root_device: int) -> ScanReport:
        """Scan ``root_path`` and block until the report is complete.

        Args:
            root_path: Absolute path of the scan root
            root_device: Device identifier of the scan root

        Returns:
            ScanReport mapping every probed directory to its direct size
        """
        with asyncio.Runner() as runner:
            # to_thread runs on the default executor; size it to the pool
            runner.get_loop().set_default_executor(
                ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="sz-probe")
            )
            return runner.run(self.scan_async(ScanTarget(path=root_path, device=root_device)))

    async def scan_async(self, target: ScanTarget) -> ScanReport:
        """Scan ``target`` from within a running event loop.

        Args:
            target: Root path and device of the scan

        Returns:
            ScanReport mapping every probed directory to its direct size

        Raises:
            Exception: Any non-OSError raised by a probe, after the pool has
                been stopped
        """
        token = set_scan_id(get_scan_id() or uuid.uuid4().hex[:8])
        try:
            return await self._run(target)
        finally:
            reset_scan_id(token)

    async def _run(self, target: ScanTarget) -> ScanReport:
        report = ScanReport(root=target.path)
        queue: asyncio.Queue[str] = asyncio.Queue()
        queue.put_nowait(target.path)

        logger.debug(
            "Scan started: %s with %d workers",
            target.path,
            self.workers,
            extra={"root": target.path, "device": target.device, "workers": self.workers},
        )
        started = time.perf_counter()

        pool = [
            asyncio.create_task(self._worker(queue, report, target.device), name=f"probe-worker-{i}")
            for i in range(self.workers)
        ]
        drained = asyncio.create_task(queue.join())

        try:
            # A worker only finishes early by raising
            done, _ = await asyncio.wait([drained, *pool], return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task is not drained:
                    task.result()
        finally:
            for task in (drained, *pool):
                _ = task.cancel()
            _ = await asyncio.gather(drained, *pool, return_exceptions=True)

        elapsed = round(time.perf_counter() - started, 3)
        logger.info(
            "Scan complete: %s, %d directories, %d bytes, %d unreadable in %.3fs",
            target.path,
            len(report),
            report.total_size,
            len(report.degraded),
            elapsed,
            extra={
                "root": target.path,
                "directories": len(report),
                "total_bytes": report.total_size,
                "degraded": len(report.degraded),
                "elapsed_seconds": elapsed,
            },
        )
        return report

    async def _worker(self, queue: asyncio.Queue[str], report: ScanReport, device: int) -> None:
        """Probe directories from ``queue`` until cancelled."""
        while True:
            path = await queue.get()
            try:
                result = await asyncio.to_thread(probe, path, device, self.blacklist)
                report.record(result)
                for sub_path in result.sub_paths:
                    queue.put_nowait(sub_path)
            finally:
                queue.task_done()


def scan(
    root_path: str,
    root_device: int,
    *,
    blacklist: Collection[str] = DEFAULT_BLACKLIST,
    workers: int = DEFAULT_WORKERS,
) -> ScanReport:
    """Scan ``root_path`` with a one-off coordinator.

    Args:
        root_path: Absolute path of the scan root
        root_device: Device identifier of the scan root
        blacklist: Absolute paths that are never counted or traversed
        workers: Maximum number of directories probed at the same time

    Returns:
        ScanReport mapping every probed directory to its direct size
    """
    return ScanCoordinator(blacklist=blacklist, workers=workers).scan(root_path, root_device)
