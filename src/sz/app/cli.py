"""Command-line interface for sz."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from sz import __version__
from sz.core.config import ConfigurationError, MainConfig, discover_config_file, load_config
from sz.core.coordinator import ScanCoordinator
from sz.core.mounts import find_mount
from sz.core.target import RootPathError, normalize_root, resolve_scan_target
from sz.utils.logging import configure_logging
from sz.view.reporter import Reporter, ReportOptions

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Validate and normalize log level.

    Raises:
        click.BadParameter: If the level is unknown
    """
    if value is None:
        return value

    normalized_value = value.upper().strip()
    if normalized_value not in VALID_LOG_LEVELS:
        raise click.BadParameter(
            f'Invalid log level "{value}". Valid options: {", ".join(sorted(VALID_LOG_LEVELS))}'
        )
    return normalized_value


def validate_blacklist(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: tuple[str, ...],
) -> tuple[str, ...]:
    """Turn blacklist entries into absolute paths."""
    return tuple(normalize_root(entry) for entry in value)


def build_report_options(
    config: MainConfig,
    *,
    human: bool,
    nosummary: bool,
    zeroes: bool,
    nocolors: bool,
) -> ReportOptions:
    """Merge command-line flags over the report section of the configuration.

    A flag can only switch a behavior on; leaving it off keeps the configured
    value.
    """
    report = config.report
    return ReportOptions(
        human=human or report.human,
        nosummary=nosummary or not report.summary,
        zeroes=zeroes or report.zeroes,
        colors=report.colors and not nocolors,
        summary_threshold_percent=report.summary_threshold_percent,
    )


@click.command(context_settings={"help_option_names": ["--help"]})
@click.argument("directory", type=click.Path(path_type=str))
@click.option("--human", "-h", is_flag=True, help="Human-readable sizes (e.g. 2.1G)")
@click.option(
    "--threads",
    "-t",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of directories scanned at once",
)
@click.option("--nosummary", "-v", is_flag=True, help="List every non-empty directory, not just the largest")
@click.option("--zeroes", "-V", is_flag=True, help="Also list empty directories (implies --nosummary)")
@click.option("--nocolors", "-c", is_flag=True, help="Disable colored output")
@click.option(
    "--blacklist",
    "-b",
    multiple=True,
    callback=validate_blacklist,
    metavar="PATH",
    help="Skip this path entirely (repeatable, added to the configured blacklist)",
)
@click.option(
    "--config",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="YAML configuration file. If not specified, searches standard locations.",
)
@click.option(
    "--log-level",
    "-l",
    type=str,
    default=None,
    callback=validate_log_level,
    help="Logging verbosity level (DEBUG, INFO, WARNING, ERROR)",
)
@click.option("--syslog", is_flag=True, help="Also send log records to syslog")
@click.version_option(version=__version__, prog_name="sz")
def cli(
    directory: str,
    human: bool,
    threads: int | None,
    nosummary: bool,
    zeroes: bool,
    nocolors: bool,
    blacklist: tuple[str, ...],
    config: Path | None,
    log_level: str | None,
    syslog: bool,
) -> None:
    """Show how much space each directory under DIRECTORY uses.

    Sizes are per directory and do not include subdirectories. The scan stays
    on the filesystem DIRECTORY lives on and never follows symlinks.

    Examples:

        # Largest directories under /var
        sz -h /var

        # Every directory, including empty ones, without colors
        sz -V -c /home
    """
    try:
        settings = load_config(config if config is not None else discover_config_file())
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    configure_logging(
        log_level=log_level or settings.application.log_level,
        enable_syslog=syslog or settings.application.syslog_enabled,
    )

    try:
        target = resolve_scan_target(directory)
    except RootPathError as exc:
        raise click.ClickException(str(exc)) from exc

    coordinator = ScanCoordinator(
        blacklist={*settings.scan.blacklist, *blacklist},
        workers=threads or settings.scan.workers,
    )

    try:
        report = coordinator.scan(target.path, target.device)
    except KeyboardInterrupt:
        click.echo("\nScan interrupted", err=True)
        raise click.exceptions.Exit(EXIT_INTERRUPTED) from None

    options = build_report_options(settings, human=human, nosummary=nosummary, zeroes=zeroes, nocolors=nocolors)
    Reporter(report, options, mount=find_mount(target.path)).report_to_stdout()
