"""``wheelforge install-run`` — install built wheels and run the tests hook."""

from __future__ import annotations

import typer
from rich.console import Console

from wheelforge.config import BuildSettings
from wheelforge.core.errors import WheelforgeError
from wheelforge.core.hooks import require_hook
from wheelforge.core.installer import Installer

console = Console()


def install_run_cmd(
    tests: str = typer.Option(
        None,
        "--tests",
        "-t",
        help="Test hook as 'module:function' (default: WHEELFORGE_RUN_TESTS_HOOK).",
    ),
) -> None:
    """Install test dependencies and compatible wheels, then run the tests.

    The hook is called with the path of a fresh, empty test directory.
    """
    build_settings = BuildSettings()
    try:
        run_tests = require_hook(tests or build_settings.run_tests_hook, "run_tests")
        artifact = Installer(build_settings).install_run(run_tests)
    except WheelforgeError as exc:
        console.print(f"[bold red]Install/test failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print("[bold green]Installed:[/bold green]")
    for name in artifact.installed:
        console.print(f"  [cyan]{name}[/cyan]")
    console.print(f"[dim]Tests ran in {artifact.test_dir}[/dim]")
