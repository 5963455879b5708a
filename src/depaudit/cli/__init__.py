"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="depaudit",
    help="depaudit - find used-undeclared and unused-declared JVM dependencies",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
    ),
):
    """
    Dependency usage analysis for JVM builds.

    [bold cyan]Examples:[/bold cyan]

      depaudit analyze build/depaudit.toml

      depaudit analyze build/depaudit.toml --format json --output report.txt

      depaudit inspect libs/guava.jar
    """
    if version:
        console.print(f"[bold cyan]depaudit[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def main() -> None:
    app()


# Import subcommands to register them
from .analyze import analyze as _analyze  # noqa: F401, E402
from .cache import cache_clear as _cache_clear, cache_info as _cache_info  # noqa: F401, E402
from .inspect import inspect as _inspect  # noqa: F401, E402
