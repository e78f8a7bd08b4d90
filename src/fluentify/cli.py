"""fluentify command line interface."""

from __future__ import annotations

import importlib
import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from fluentify.chain import fluentify
from fluentify.config import load_settings
from fluentify.errors import FluentifyError
from fluentify.logging_utils import configure_logging
from fluentify.references import Literal, parse_argument

app = typer.Typer(name="fluentify", help="Run chained async operations with back-references", add_completion=False)
console = Console()


@app.command("parse")
def parse_command(arg: str = typer.Argument(..., help="Argument text, e.g. '$1.child.path'")) -> None:
    """Show how an argument is read by the placeholder parser."""

    parsed = parse_argument(arg)
    table = Table(show_header=False)
    if isinstance(parsed, Literal):
        table.add_row("kind", "literal")
        table.add_row("value", repr(parsed.value))
    else:
        table.add_row("kind", "reference")
        table.add_row("index", str(parsed.index))
        table.add_row("path", ".".join(parsed.path) or "-")
    console.print(table)


@app.command("run")
def run_command(
    chain_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON list of chain steps"),
    target: str = typer.Option(..., "--target", "-t", help="Object to wrap, as module:attribute"),
    log_level: str | None = typer.Option(None, "--log-level", help="Override FLUENTIFY_LOG_LEVEL"),
) -> None:
    """Run the steps in CHAIN_FILE against TARGET and print the results as JSON."""

    settings = load_settings(**({"log_level": log_level} if log_level else {}))
    configure_logging(level=settings.log_level)
    steps = _load_steps(chain_file)
    chain = fluentify(_import_target(target), settings=settings)
    for step in steps:
        if step["call"] not in chain.registry:
            raise typer.BadParameter(f"unknown operation: {step['call']}", param_hint="CHAIN_FILE")
        getattr(chain, step["call"])(*step.get("args", []), **step.get("kwargs", {}))
    try:
        results = chain.run()
    except Exception as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(results, ensure_ascii=False, default=repr))


def _load_steps(path: Path) -> list[dict[str, Any]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"invalid JSON: {exc}", param_hint="CHAIN_FILE") from exc
    if not isinstance(payload, list) or not all(isinstance(step, dict) and isinstance(step.get("call"), str) for step in payload):
        raise typer.BadParameter('expected a list of {"call": ..., "args": [...]} objects', param_hint="CHAIN_FILE")
    return payload


def _import_target(dotted: str) -> Any:
    module_name, _, attribute = dotted.partition(":")
    if not module_name or not attribute:
        raise typer.BadParameter("expected module:attribute", param_hint="--target")
    try:
        value: Any = importlib.import_module(module_name)
        for part in attribute.split("."):
            value = getattr(value, part)
    except (ImportError, AttributeError) as exc:
        raise typer.BadParameter(f"cannot import {dotted}: {exc}", param_hint="--target") from exc
    return value


def main() -> None:
    try:
        app()
    except FluentifyError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()
