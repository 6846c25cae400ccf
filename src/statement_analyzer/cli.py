"""Click CLI entry point for the statement-analyzer command.

Handles argument parsing, config loading, logging setup and error display.
All business logic is delegated to ``pipeline``, ``validation``, ``config``
and ``export`` modules.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import replace
from pathlib import Path

import click

from statement_analyzer import __version__
from statement_analyzer.errors import AnalyzerError, ConfigError
from statement_analyzer.models import AppConfig, FilterCriteria

_REPORT_FORMATS = ("txt", "json", "toml", "csv", "html")
_FORMAT_CHOICES = [*_REPORT_FORMATS, "all"]


def _validate_month(month: str | None) -> str | None:
    """Validate that *month* matches ``MM/YYYY`` and represents a real month.

    Returns the validated month string, or raises ``click.BadParameter``.
    """
    if month is None:
        return None
    if not re.fullmatch(r"\d{2}/\d{4}", month):
        raise click.BadParameter(
            f"Invalid month format: {month!r}. Expected MM/YYYY (e.g. 10/2025)."
        )
    mon_int = int(month.split("/")[0])
    if mon_int < 1 or mon_int > 12:
        raise click.BadParameter(
            f"Invalid month: {month!r}. Month must be between 01 and 12."
        )
    return month


def _validate_iso_date(value: str | None) -> str | None:
    """Validate an ISO ``YYYY-MM-DD`` date bound."""
    if value is None:
        return None
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
        raise click.BadParameter(
            f"Invalid date: {value!r}. Expected YYYY-MM-DD (e.g. 2025-10-01)."
        )
    return value


def _resolve_format(fmt: str | None, output: str | None, default_format: str) -> str:
    """Pick the report format: ``-f``, then the output extension, then the config."""
    if fmt:
        return fmt.lower()
    if output:
        suffix = Path(output).suffix.lstrip(".").lower()
        if suffix in _REPORT_FORMATS:
            return suffix
    return default_format


def _default_report_base(input_path: Path) -> Path:
    """``statement.csv`` -> ``statement-report``, beside the input."""
    return input_path.with_name(f"{input_path.stem}-report")


def _configure_logging(verbose: bool, debug: bool, config: AppConfig | None = None) -> None:
    """Set up logging based on verbosity flags and the config's logging section."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif config is not None:
        level = getattr(logging, config.log_level.upper(), logging.WARNING)
    else:
        level = logging.WARNING

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config is not None and config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def _load_app_config(config_path: str | None) -> AppConfig:
    """Load the config file, or the defaults when no path is given.

    Exits with status 1 on a missing or invalid file.
    """
    from statement_analyzer.config import default_config, load_config

    if config_path is None:
        return default_config()
    try:
        return load_config(Path(config_path))
    except FileNotFoundError:
        click.echo(
            f"Error: config file not found: {config_path}. "
            "Run 'statement-analyzer init-config' to create one.",
            err=True,
        )
        sys.exit(1)
    except ConfigError as exc:
        click.echo(f"Error loading configuration: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="statement-analyzer")
def cli() -> None:
    """Analyze bank statement CSV exports: categories, trends, duplicates and more."""


@cli.command()
@click.argument(
    "input_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False)
)
@click.option("-o", "--output", default=None, help="Output path for the report.")
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice(_FORMAT_CHOICES, case_sensitive=False),
    default=None,
    help="Report format (default: from the -o extension, else from config).",
)
@click.option("-c", "--config", "config_path", default=None, help="TOML config file.")
@click.option("--category", default=None, help="Only analyze this category.")
@click.option("--min-amount", type=float, default=None, help="Minimum absolute amount.")
@click.option("--max-amount", type=float, default=None, help="Maximum absolute amount.")
@click.option("--start-date", default=None, help="First date to include (YYYY-MM-DD).")
@click.option("--end-date", default=None, help="Last date to include (YYYY-MM-DD).")
@click.option("--search", default=None, help="Only descriptions containing this text.")
@click.option("--month", default=None, help="Only this month (MM/YYYY).")
@click.option("--no-duplicates", is_flag=True, default=False, help="Skip duplicate detection.")
@click.option("--verbose", is_flag=True, default=False, help="Detailed progress output.")
@click.option("--debug", is_flag=True, default=False, help="Developer-level diagnostics.")
def analyze(
    input_files: tuple[str, ...],
    output: str | None,
    fmt: str | None,
    config_path: str | None,
    category: str | None,
    min_amount: float | None,
    max_amount: float | None,
    start_date: str | None,
    end_date: str | None,
    search: str | None,
    month: str | None,
    no_duplicates: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Analyze INPUT_FILES and print or write a report.

    Several statements are combined into one report, in the order given.
    """
    config = _load_app_config(config_path)
    _configure_logging(verbose, debug, config)

    try:
        month = _validate_month(month)
        start_date = _validate_iso_date(start_date)
        end_date = _validate_iso_date(end_date)
    except click.BadParameter as exc:
        click.echo(f"Error: {exc.format_message()}", err=True)
        sys.exit(1)

    if no_duplicates:
        config.analysis = replace(config.analysis, detect_duplicates=False)

    criteria = FilterCriteria(
        category=category,
        min_amount=min_amount,
        max_amount=max_amount,
        start_date=start_date,
        end_date=end_date,
        description_pattern=search,
        month=month,
    )

    from statement_analyzer.pipeline import analyze_file

    try:
        result = analyze_file([Path(p) for p in input_files], config, criteria)
    except AnalyzerError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"Error reading input: {exc}", err=True)
        sys.exit(1)

    from statement_analyzer.export import RENDERERS, export_all, export_report

    fmt = _resolve_format(fmt, output, config.default_format)

    if fmt == "all":
        base = Path(output) if output else _default_report_base(Path(input_files[0]))
        try:
            paths = export_all(result, base)
        except OSError as exc:
            click.echo(f"Error writing output: {exc}", err=True)
            sys.exit(1)
        click.echo("Reports generated:")
        for path in paths:
            click.echo(f"  - {path}")
        return

    if output is None:
        click.echo(RENDERERS[fmt](result))
        return

    try:
        path = export_report(result, fmt, Path(output))
    except OSError as exc:
        click.echo(f"Error writing output: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Report written to {path}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("-c", "--config", "config_path", default=None, help="TOML config file.")
@click.option("--verbose", is_flag=True, default=False, help="List each invalid row.")
def validate(input_file: str, config_path: str | None, verbose: bool) -> None:
    """Validate INPUT_FILE without generating a report."""
    config = _load_app_config(config_path)
    _configure_logging(verbose=False, debug=False, config=config)

    from statement_analyzer.parser import parse_file
    from statement_analyzer.validation import validation_report

    try:
        parsed = parse_file(Path(input_file), config.date_formats, config.encoding)
    except AnalyzerError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"Error reading {input_file}: {exc}", err=True)
        sys.exit(1)

    report = validation_report(
        parsed.transactions, config.date_formats, config.analysis.outlier_threshold
    )
    summary = report["summary"]
    distribution = report["distribution"]

    click.echo()
    click.echo("== Validation Summary ==")
    click.echo(f"  Rows read:             {parsed.total_rows}")
    click.echo(f"  Rows parsed:           {parsed.valid_count}")
    click.echo(f"  Rows skipped:          {parsed.failed_count}")
    click.echo(f"  Valid transactions:    {summary['valid_transactions']}")
    click.echo(f"  Invalid transactions:  {summary['invalid_transactions']}")
    click.echo(f"  Outliers:              {distribution['outlier_count']}")

    if verbose:
        for warning in parsed.warnings:
            click.echo(f"  - {warning}")
        for invalid in report["validation"]["invalid_transactions"]:
            click.echo(f"  Line {invalid['row_number']}: {', '.join(invalid['errors'])}")

    click.echo()
    if parsed.failed_count or summary["invalid_transactions"]:
        sys.exit(1)


@cli.command("init-config")
@click.argument("path", type=click.Path(dir_okay=False), default="config.toml")
def init_config(path: str) -> None:
    """Write the default configuration to PATH (default: config.toml)."""
    from statement_analyzer.config import write_default_config

    target = Path(path).resolve()
    try:
        written = write_default_config(target)
    except OSError as exc:
        click.echo(f"Error writing configuration: {exc}", err=True)
        sys.exit(1)

    if written:
        click.echo(f"Default configuration written to {target}")
    else:
        click.echo(f"Configuration already exists at {target}; not overwritten")
