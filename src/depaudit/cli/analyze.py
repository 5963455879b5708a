"""Main analysis command."""

from pathlib import Path
from typing import Optional

import click
import typer

from ..analysis import analyze as run_analysis
from ..exceptions import DepauditError
from ..formatters import FORMATTERS, get_formatter
from ..logging_config import setup_logging
from ..manifest import load_manifest
from . import app
from ._common import console, print_error, resolve_config


@app.command()
def analyze(
    manifest: Path = typer.Argument(
        ...,
        help="Analysis manifest (TOML) describing artifacts and configurations",
        dir_okay=False,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    output_format: str = typer.Option(
        "rich",
        "-f",
        "--format",
        help="Output format",
        click_type=click.Choice(sorted(FORMATTERS), case_sensitive=False),
    ),
    output: Optional[Path] = typer.Option(
        None,
        "-o",
        "--output",
        help="Also write the plain text report to this file",
        dir_okay=False,
    ),
    workers: Optional[int] = typer.Option(
        None,
        "-w",
        "--workers",
        help="Parallel workers (default: auto-detect)",
        min=1,
        max=32,
    ),
    strict_duplicates: bool = typer.Option(
        False,
        "--strict-duplicates",
        help="Fail when two artifacts provide the same class",
    ),
    warn_used_undeclared: bool = typer.Option(
        False,
        "--warn-used-undeclared",
        help="Report used-undeclared artifacts as warnings instead of failing",
    ),
    warn_unused_declared: bool = typer.Option(
        False,
        "--warn-unused-declared",
        help="Report unused-declared artifacts as warnings instead of failing",
    ),
    ignore_used_undeclared: bool = typer.Option(
        False,
        "--ignore-used-undeclared",
        help="Do not report used-undeclared artifacts at all",
    ),
    warn_compile_only: bool = typer.Option(
        False,
        "--warn-compile-only",
        help="Warn about compile-only artifacts the compiled output never references",
    ),
    cache: Optional[bool] = typer.Option(
        None,
        "--cache/--no-cache",
        help="Persist archive class listings between runs",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Append DEBUG logs, including every configuration's dependency sets, to this file",
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log the intermediate dependency sets of every configuration",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors",
    ),
):
    """
    Analyze the configurations described by MANIFEST.

    Exits with status 1 when any failing violation is found.

    [bold cyan]Examples:[/bold cyan]

      depaudit analyze build/depaudit.toml

      depaudit analyze build/depaudit.toml --format github --warn-unused-declared
    """
    logger = setup_logging(
        verbose=verbose, quiet=quiet, log_file=str(log_file) if log_file else None
    )

    try:
        settings = resolve_config(
            config=config,
            workers=workers,
            strict_duplicates=strict_duplicates,
            warn_used_undeclared=warn_used_undeclared,
            warn_unused_declared=warn_unused_declared,
            ignore_used_undeclared=ignore_used_undeclared,
            warn_compile_only=warn_compile_only,
            cache=cache,
            verbose=verbose,
            quiet=quiet,
        )
        loaded = load_manifest(manifest)
        report = run_analysis(loaded.configurations, loaded.declaration_model(), config=settings)

        get_formatter(output_format.lower()).render(report)

        if output is not None:
            output.write_text(report.render_text(), encoding="utf-8")
            logger.info(f"Report written to {output}")

    except DepauditError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        print_error(e)
        raise typer.Exit(1)

    except KeyboardInterrupt:
        logger.info("Analysis interrupted by user")
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)

    except OSError as e:
        logger.exception("I/O error during analysis")
        print_error(e)
        raise typer.Exit(1)

    if not report.passed:
        raise typer.Exit(1)
