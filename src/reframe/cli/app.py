"""CLI entrypoint for :mod:`reframe`.

Commands:

- `version`  - print the package version.
- `variants` - list registered variant families.
- `check`    - check a table against a variant.
- `bind`     - cast tables to a variant and concatenate them.
"""

from __future__ import annotations

import inspect
from typing import List, Optional

import typer

from reframe import __version__
from reframe.application.engine import build_registry
from reframe.cli.common import EXTENSION_OPTION
from reframe.cli.tables import bind_command, check_command
from reframe.models.errors import ConfigError

app = typer.Typer(
    help=(
        "reframe: keep refined table variants through structural transformations.\n\n"
        "## Examples\n\n"
        "```bash\n"
        "reframe check orders.csv --variant keyed --arg order_id\n"
        "reframe check page.parquet --variant partition --arg 10\n"
        "reframe bind jan.csv feb.csv --variant keyed --arg order_id --output q1.parquet\n"
        "```\n"
    ),
    no_args_is_help=True,
    rich_markup_mode="markdown",
)

app.command("check")(check_command)
app.command("bind")(bind_command)


@app.command("version")
def version_command() -> None:
    """Print the package version."""
    typer.echo(__version__)


@app.command("variants")
def variants_command(extension: Optional[List[str]] = EXTENSION_OPTION) -> None:
    """List registered variant families."""

    try:
        registry = build_registry(extensions=extension or ())
    except ConfigError as exc:
        typer.echo(f"Extension loading failed: {exc}", err=True)
        raise typer.Exit(code=2)

    for name in sorted(registry.families):
        factory = registry.family(name)
        doc = inspect.getdoc(factory) or inspect.getdoc(inspect.getmodule(factory)) or ""
        summary = doc.splitlines()[0] if doc else ""
        typer.echo(f"{name}\t{summary}" if summary else name)


def main() -> None:
    """Entrypoint used by console scripts and `python -m reframe`."""
    app()


__all__ = ["app", "main"]
