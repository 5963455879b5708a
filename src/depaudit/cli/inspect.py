"""Inspect command: show the class references extracted from compiled code."""

import json
from pathlib import Path
from typing import Dict, List

import click
import typer
from rich.markup import escape

from ..exceptions import ClassFileFormatError, DepauditError
from ..scanning import CLASS_SUFFIX, iter_class_files, parse_class_file
from . import app
from ._common import console, print_error


@app.command()
def inspect(
    target: Path = typer.Argument(
        ...,
        help="A .class file, a jar/nar archive or a directory of class files",
    ),
    output_format: str = typer.Option(
        "rich",
        "-f",
        "--format",
        help="Output format",
        click_type=click.Choice(["rich", "json"], case_sensitive=False),
    ),
):
    """
    Print the classes referenced by compiled code.

    Unparsable class files inside an archive are reported and skipped;
    a single unparsable .class file is an error.
    """
    try:
        if target.is_file() and target.suffix == CLASS_SUFFIX:
            summary = parse_class_file(target.read_bytes(), str(target))
            classes = {summary.name: sorted(summary.references)}
            failures: Dict[str, str] = {}
        elif target.exists():
            classes, failures = _inspect_container(target)
        else:
            raise FileNotFoundError(f"No such file or directory: {target}")
    except (DepauditError, OSError) as e:
        print_error(e)
        raise typer.Exit(1)

    if output_format.lower() == "json":
        print(json.dumps({"classes": classes, "failures": failures}, indent=2, sort_keys=True))
        return

    for name in sorted(classes):
        console.print(f"[bold yellow]{escape(name)}[/bold yellow]", highlight=False)
        for reference in classes[name]:
            console.print(f"  [dim]->[/dim] {escape(reference)}", highlight=False)
    for name in sorted(failures):
        console.print(
            f"[red]Unparsable:[/red] {escape(name)}: {escape(failures[name])}", highlight=False
        )


def _inspect_container(target: Path):
    classes: Dict[str, List[str]] = {}
    failures: Dict[str, str] = {}
    for class_name, data in iter_class_files(target, on_entry_error=failures.__setitem__):
        try:
            summary = parse_class_file(data, f"{target}!{class_name}")
        except ClassFileFormatError as e:
            failures[class_name] = e.reason
            continue
        classes[summary.name] = sorted(summary.references)
    return classes, failures
