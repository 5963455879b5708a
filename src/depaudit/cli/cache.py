"""Cache management commands."""

from pathlib import Path
from typing import Optional, Tuple

import typer

from ..cache import ArtifactClassCache
from ..config import AnalysisConfig
from ..exceptions import DepauditError
from . import app
from ._common import console, print_error, resolve_config

_CONFIG_OPTION = typer.Option(
    None,
    "-c",
    "--config",
    help="Configuration file (TOML)",
    exists=True,
    dir_okay=False,
)


def _open_cache(config: Optional[Path]) -> Tuple[AnalysisConfig, Optional[ArtifactClassCache]]:
    """Open the configured cache directory.

    A directory left by earlier runs is opened even when caching is now
    disabled, so it can still be inspected and cleared.
    """
    try:
        settings = resolve_config(config=config)
    except DepauditError as e:
        print_error(e)
        raise typer.Exit(1)
    if not settings.cache_enabled and not Path(settings.cache_dir).is_dir():
        return settings, None
    return settings, ArtifactClassCache(cache_dir=settings.cache_dir, enabled=True)


@app.command()
def cache_info(config: Optional[Path] = _CONFIG_OPTION):
    """Show cache information and statistics."""
    settings, cache = _open_cache(config)

    console.print("[bold cyan]depaudit Cache Info[/bold cyan]")
    console.print()

    if cache is None:
        console.print("Status: [red]Disabled[/red]")
        return

    stats = cache.stats()
    cache.close()
    if settings.cache_enabled:
        console.print("Status: [green]Enabled[/green]")
    else:
        console.print("Status: [yellow]Disabled (existing cache directory)[/yellow]")
    console.print(f"Directory: [blue]{stats.get('directory', 'N/A')}[/blue]")
    console.print(f"Entries: [yellow]{stats.get('size', 0)}[/yellow]")


@app.command()
def cache_clear(config: Optional[Path] = _CONFIG_OPTION):
    """Clear the archive class listing cache."""
    _, cache = _open_cache(config)

    if cache is None:
        console.print("[yellow]Cache is disabled[/yellow]")
        raise typer.Exit(0)

    cache.clear()
    cache.close()
    console.print("[green]Cache cleared successfully[/green]")
