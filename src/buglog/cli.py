"""Command-line entry point for emitting buglog events from shell scripts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer

import buglog
from buglog.config import load_config
from buglog.context import background
from buglog.logger import Logger
from buglog.tags import Tagger, tag

app = typer.Typer(
    name="buglog",
    help="Write structured JSONL log events.",
    no_args_is_help=True,
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"buglog {buglog.__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Write structured JSONL log events.

    Commands:
        emit    - Write a single event with KEY=VALUE tags
    """


def _parse_value(raw: str) -> Any:
    """Decode a tag value as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@app.command()
def emit(
    at: str = typer.Argument(..., help="Event name"),
    tags: list[str] | None = typer.Argument(None, help="Tags as KEY=VALUE; values are parsed as JSON when valid"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to buglog.yaml"),
) -> None:
    """Write one event to the configured output.

    Example:
        buglog emit deploy service=api replicas=3 dry-run=true
    """
    taggers: list[Tagger] = []
    for pair in tags or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            typer.echo(f"Invalid tag {pair!r}: expected KEY=VALUE", err=True)
            raise typer.Exit(2)
        taggers.append(tag(key, _parse_value(raw)))

    try:
        settings = load_config(config)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    with Logger.from_config(settings) as logger:
        logger.log(background(), at, *taggers)


def cli() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    cli()
