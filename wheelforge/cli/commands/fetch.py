"""``wheelforge fetch URL`` — fetch an archive once and unpack it."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from wheelforge.config import BuildSettings
from wheelforge.core.archive_cache import ArchiveCache
from wheelforge.core.errors import WheelforgeError

console = Console()


def _owned_paths(build_settings: BuildSettings) -> list[Path]:
    """Directories the pipeline owns, kept out of any mirror."""
    owned = [build_settings.wheel_sdir, build_settings.test_dir]
    if build_settings.repo_dir is not None:
        owned.append(build_settings.repo_dir)
    return owned


def fetch_cmd(
    url: str = typer.Argument(..., help="URL of the archive to fetch."),
    name: str = typer.Option(
        None,
        "--name",
        "-n",
        help="Archive filename in the cache (default: basename of URL).",
    ),
    dest: Path = typer.Option(
        ...,
        "--dest",
        "-d",
        help="Directory to mirror into; entries not in the archive are deleted.",
    ),
    sha256: str = typer.Option(
        None, "--sha256", help="Expected SHA-256 of the archive."
    ),
) -> None:
    """Fetch an archive (skipped if already cached) and unpack it into DEST.

    DEST ends up holding exactly the archive's contents. The cache,
    scratch, wheelhouse, test and repository directories are preserved if
    they live inside it.
    """
    build_settings = BuildSettings()
    cache = ArchiveCache(
        build_settings.archive_sdir,
        build_settings.scratch_dir,
        timeout=build_settings.download_timeout_seconds,
    )
    try:
        archive = cache.fetch_unpack(
            url, name, dest, sha256=sha256, protect=_owned_paths(build_settings)
        )
    except WheelforgeError as exc:
        console.print(f"[bold red]Fetch failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(
        f"[bold green]Unpacked[/bold green] {archive} [dim]->[/dim] {dest}"
    )
