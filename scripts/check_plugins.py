#!/usr/bin/env -S uv run --script
# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "pydantic>=2.0",
#     "rich>=13.0",
#     "typer>=0.15",
# ]
# ///
"""Check a Cordova project for outdated plugins and update them.

Lists the installed plugins, compares each with the latest version on the
npm registry, prints a report and offers every outdated plugin for update.

Examples
--------
Check the project in the current directory:

    uv run scripts/check_plugins.py

Check another project, failing CI when anything is outdated:

    uv run scripts/check_plugins.py ~/apps/field-notes --check
"""

from __future__ import annotations

import typing as t
from pathlib import Path

import typer
from cordova_plugins import (  # pyright: ignore[reportImplicitRelativeImport]
    CheckError,
    UpdateResult,
    check_plugin_updates,
    console,
    err_console,
    run_interactive_updates,
)
from cordova_private_path import PrivatePath  # pyright: ignore[reportImplicitRelativeImport]
from rich.markup import escape

app = typer.Typer(help="Check a Cordova project for outdated plugins and update them.")


def _interrupted() -> t.NoReturn:
    err_console.print("\nInterrupted")
    raise SystemExit(130)


def render_report(results: t.Sequence[UpdateResult]) -> list[UpdateResult]:
    """Print one report entry per result and return the ones with updates.

    Parameters
    ----------
    results : Sequence[UpdateResult]
        Output of the update check.

    Returns
    -------
    list[UpdateResult]
        Results whose plugin has an update available, in report order.
    """
    console.print("\n[bold]Plugin Update Check Results:[/bold]")
    outdated: list[UpdateResult] = []
    for result in results:
        if result.error:
            console.print(f"[red]{escape(result.plugin)}: {escape(result.error)}[/red]")
            continue

        status = "[green]Yes - update available![/green]" if result.has_update else "No"
        console.print(f"\n  Plugin: {escape(result.plugin)}")
        console.print(f"  Current Version: {escape(result.current_version)}")
        console.print(f"  Latest Version: {escape(result.latest_version or '')}")
        console.print(f"  Update Available: {status}")
        if result.has_update:
            outdated.append(result)
    return outdated


@app.command()
def main(
    project_path: t.Annotated[
        Path, typer.Argument(help="Cordova project root (defaults to the current directory)")
    ] = Path("."),
    check: t.Annotated[
        bool, typer.Option("--check", help="Report only; exit 1 if any plugin is outdated")
    ] = False,
    yes: t.Annotated[
        bool, typer.Option("--yes", "-y", help="Apply every available update without asking")
    ] = False,
    timeout: t.Annotated[
        float | None, typer.Option(help="Seconds to wait for each cordova/npm command")
    ] = None,
) -> None:
    """Check installed Cordova plugins against the npm registry."""
    absolute_path = project_path.resolve()
    console.print(f"Checking plugins in project: {escape(str(PrivatePath(absolute_path)))}")

    try:
        results = check_plugin_updates(absolute_path, timeout=timeout)
    except CheckError as exc:
        err_console.print(f"[red]Failed to check plugin updates:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        _interrupted()

    outdated = render_report(results)

    if not outdated:
        console.print("\n[green]All plugins are up to date![/green]")
        return

    if check:
        console.print(f"\n[yellow]{len(outdated)} plugin(s) have updates available.[/yellow]")
        raise SystemExit(1)

    try:
        updated, failed = run_interactive_updates(
            outdated, absolute_path, assume_yes=yes, timeout=timeout
        )
    except KeyboardInterrupt:
        _interrupted()

    if failed:
        console.print(
            f"\n[yellow]Updated {len(updated)} plugin(s), {len(failed)} failed.[/yellow]"
        )
    elif updated:
        console.print(f"\n[green bold]Updated {len(updated)} plugin(s).[/green bold]")


if __name__ == "__main__":
    app()
