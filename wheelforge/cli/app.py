"""Main Typer application — imports and registers all CLI commands.

Entry point: ``wheelforge`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from wheelforge.cli.commands.build import build_cmd, build_index_cmd
from wheelforge.cli.commands.fetch import fetch_cmd
from wheelforge.cli.commands.install import install_run_cmd
from wheelforge.cli.commands.versions import lex_cmd, pypy_cmd, resolve_cmd
from wheelforge.config import settings

app = typer.Typer(
    name="wheelforge",
    help="Wheelforge: reproducible wheel builds across build hosts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log external commands (DEBUG level)."
    ),
) -> None:
    """Configure logging for every subcommand."""
    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False, rich_tracebacks=False)],
        force=True,
    )


# Register subcommands
app.command(name="build", help="Normalize a checkout and build its wheel.")(build_cmd)
app.command(
    name="build-index",
    help="Build a wheel for a requirement from a package index.",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(build_index_cmd)
app.command(name="fetch", help="Fetch an archive once and unpack it.")(fetch_cmd)
app.command(name="install-run", help="Install built wheels and run tests.")(install_run_cmd)
app.command(name="resolve", help="Expand a partial PyPy version.")(resolve_cmd)
app.command(name="lex", help="Show the padded comparison key of a version.")(lex_cmd)
app.command(name="pypy", help="Show PyPy filename prefix and download URL.")(pypy_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
