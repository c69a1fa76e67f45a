"""Logging setup with scan ID tracking.

Every log record is stamped with the ID of the scan that produced it. The ID
lives in a ContextVar, so it is inherited by the asyncio tasks of the worker
pool and copied into probe threads by ``asyncio.to_thread``.

Console output goes to stderr; stdout is reserved for the report.
"""

import contextvars
import logging
import logging.handlers
import sys
from typing import Final

from typing_extensions import override

scan_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scan_id",
    default=None,
)

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(scan_id)s] - %(message)s"

SYSLOG_LOG_FORMAT: Final[str] = "sz[%(process)d]: %(levelname)s - [%(scan_id)s] - %(name)s - %(message)s"

DEFAULT_SYSLOG_ADDRESS: Final[str] = "/dev/log"


class ScanIDFilter(logging.Filter):
    """Logging filter that adds the current scan ID to log records."""

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        """Add ``scan_id`` to the record, "N/A" outside of a scan.

        Args:
            record: Log record to enhance

        Returns:
            True to allow the record to be logged
        """
        scan_id = scan_id_var.get()
        record.scan_id = scan_id if scan_id is not None else "N/A"
        return True


def configure_logging(
    *,
    log_level: str = "WARNING",
    enable_syslog: bool = False,
    syslog_address: str = DEFAULT_SYSLOG_ADDRESS,
    enable_console: bool = True,
) -> None:
    """Configure the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_syslog: Also send records to the local syslog daemon
        syslog_address: Syslog socket address
        enable_console: Write records to stderr

    Example:
        >>> configure_logging(log_level="INFO")
        >>> logging.getLogger("sz").info("Scan started")
    """
    root_logger = logging.getLogger()

    level = getattr(logging, log_level.upper(), logging.WARNING)
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    scan_filter = ScanIDFilter()

    if enable_syslog:
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=syslog_address,
                facility=logging.handlers.SysLogHandler.LOG_USER,
            )
            syslog_handler.setFormatter(logging.Formatter(SYSLOG_LOG_FORMAT))
            syslog_handler.addFilter(scan_filter)
            root_logger.addHandler(syslog_handler)
        except OSError as exc:
            # No syslog daemon; console only
            print(
                f"Warning: Could not connect to syslog at {syslog_address}: {exc}",
                file=sys.stderr,
            )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        console_handler.addFilter(scan_filter)
        root_logger.addHandler(console_handler)


def set_scan_id(scan_id: str | None) -> contextvars.Token[str | None]:
    """Set the scan ID for the current context.

    Args:
        scan_id: Identifier of the running scan, or None to clear it

    Returns:
        Token that restores the previous value with ``reset_scan_id``
    """
    return scan_id_var.set(scan_id)


def reset_scan_id(token: contextvars.Token[str | None]) -> None:
    """Restore the scan ID that was current before ``set_scan_id``."""
    scan_id_var.reset(token)


def get_scan_id() -> str | None:
    """Get the current scan ID, or None outside of a scan."""
    return scan_id_var.get()
