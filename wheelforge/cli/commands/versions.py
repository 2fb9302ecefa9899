"""Version helpers: ``resolve``, ``lex`` and ``pypy``."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from wheelforge.core.errors import WheelforgeError
from wheelforge.core.version_alias import (
    PYPY_PREFIX,
    VersionAliasResolver,
    pypy_archive_url,
)
from wheelforge.core.version_compare import (
    get_pypy_build_prefix,
    lex_ver,
    strip_ver_suffix,
)

console = Console()


def resolve_cmd(
    version: str = typer.Argument(..., help="PyPy version, e.g. '5' or '5.3'."),
) -> None:
    """Expand a partial PyPy version to major.minor.micro.

    LATEST_PP_* environment variables override the built-in table.
    """
    try:
        resolver = VersionAliasResolver.from_environ()
        full = strip_ver_suffix(resolver.resolve(PYPY_PREFIX, version))
    except WheelforgeError as exc:
        console.print(f"[bold red]Cannot resolve:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(full)


def lex_cmd(
    versions: list[str] = typer.Argument(..., help="Versions to pad."),
) -> None:
    """Show padded comparison keys, sorted in version order."""
    try:
        keyed = sorted((lex_ver(v), v) for v in versions)
    except WheelforgeError as exc:
        console.print(f"[bold red]Bad version:[/bold red] {exc}")
        raise typer.Exit(code=1)

    table = Table(title="Padded versions")
    table.add_column("Version", style="cyan")
    table.add_column("Key", style="green")
    table.add_column("Normalized")
    for key, version in keyed:
        table.add_row(version, key, strip_ver_suffix(version))
    console.print(table)


def pypy_cmd(
    version: str = typer.Argument(..., help="PyPy version, e.g. '5'."),
    platform_tag: str = typer.Option(
        "linux64", "--platform", "-p", help="Platform suffix of the archive."
    ),
) -> None:
    """Show the PyPy filename prefix and download URL for a version."""
    try:
        resolver = VersionAliasResolver.from_environ()
        full = strip_ver_suffix(resolver.resolve(PYPY_PREFIX, version))
        prefix = get_pypy_build_prefix(full)
        url = pypy_archive_url(full, platform_tag, resolver.table)
    except WheelforgeError as exc:
        console.print(f"[bold red]Cannot resolve:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"[bold]Version:[/bold] {full}")
    console.print(f"[bold]Prefix:[/bold]  {prefix}")
    console.print(f"[bold]URL:[/bold]     {url}")
