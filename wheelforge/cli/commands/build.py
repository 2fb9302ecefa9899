"""``wheelforge build`` and ``wheelforge build-index``.

Both run the full pipeline (pre-build hook, build dependencies, build,
repair) and print the wheels that landed in the wheelhouse.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from wheelforge.config import BuildSettings
from wheelforge.core.errors import WheelforgeError
from wheelforge.core.orchestrator import BuildOrchestrator
from wheelforge.models.builds import BuildRun

console = Console()


def _print_run(run: BuildRun) -> None:
    source = run.project_spec or str(run.repo_dir)
    console.print(
        Panel(
            "\n".join([
                "[bold green]Build complete![/bold green]",
                "",
                f"[bold]Source:[/bold]      {source}",
                f"[bold]Strategy:[/bold]    {run.build_strategy}",
                f"[bold]Wheelhouse:[/bold]  {run.wheelhouse_dir}",
                "",
                *[f"  [cyan]{name}[/cyan]" for name in run.wheels],
            ]),
            title="[bold]Wheelforge[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )


def build_cmd(
    repo_dir: Path = typer.Argument(
        None,
        help="Repository to build (default: WHEELFORGE_REPO_DIR).",
    ),
    commit: str = typer.Option(
        None,
        "--commit",
        "-c",
        help="Commit to check out before building (default: WHEELFORGE_BUILD_COMMIT).",
    ),
    strategy: str = typer.Option(
        "pip",
        "--strategy",
        "-s",
        help="Build strategy: 'pip' (pip wheel) or 'bdist' (setup.py bdist_wheel).",
    ),
    clean: bool = typer.Option(
        True,
        "--clean/--no-clean",
        help="Normalize the checkout (submodule repair, clean checkout) first.",
    ),
    wheelhouse: Path = typer.Option(
        None, "--wheelhouse", "-w", help="Wheelhouse directory."
    ),
) -> None:
    """Build a wheel from a repository checkout."""
    overrides = {"wheel_sdir": wheelhouse} if wheelhouse else {}
    build_settings = BuildSettings(**overrides)
    try:
        orchestrator = BuildOrchestrator(build_settings)
        if clean:
            checkout = orchestrator.normalizer.clean_code(
                repo_dir, commit, settings=build_settings
            )
            run = orchestrator.build_wheel_cmd(strategy, checkout.directory)
        else:
            run = orchestrator.build_wheel_cmd(strategy, repo_dir)
    except WheelforgeError as exc:
        console.print(f"[bold red]Build failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    _print_run(run)


def build_index_cmd(
    ctx: typer.Context,
    project_spec: str = typer.Argument(
        ..., help="Requirement to build, e.g. 'tornado==4.4.1'."
    ),
    wheelhouse: Path = typer.Option(
        None, "--wheelhouse", "-w", help="Wheelhouse directory."
    ),
) -> None:
    """Build a wheel for a requirement from the package index.

    Extra arguments are passed through to pip.
    """
    overrides = {"wheel_sdir": wheelhouse} if wheelhouse else {}
    try:
        orchestrator = BuildOrchestrator(BuildSettings(**overrides))
        run = orchestrator.build_index_wheel(project_spec, *ctx.args)
    except WheelforgeError as exc:
        console.print(f"[bold red]Build failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    _print_run(run)

