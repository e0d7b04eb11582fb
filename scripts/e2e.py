#!/usr/bin/env -S uv run --script
# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "pydantic>=2.0",
#     "rich>=13.0",
#     "typer>=0.15",
# ]
# ///
"""E2E tests for the Cordova plugin checker.

Runs ``check_plugins.py`` as a subprocess against a sandboxed project:
up-to-date -> declined update -> accepted update -> failed lookup -> invalid project.

Sandboxing: fake ``cordova`` and ``npm`` shell scripts are put first on
``PATH``. They read and write plugin state under the sandbox, so no real
Cordova project or registry is touched.

Examples
--------
Run the suite:

    uv run scripts/e2e.py
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import tempfile
import typing as t
from pathlib import Path

import rich.console
import typer

SCRIPTS_DIR = Path(__file__).resolve().parent
CHECKER = SCRIPTS_DIR / "check_plugins.py"

app = typer.Typer(help="E2E tests for the Cordova plugin checker.")
console = rich.console.Console()

TestCase = tuple[str, t.Callable[[], None]]

FAKE_CORDOVA = """#!/bin/sh
STATE="$E2E_STATE_DIR/plugins.txt"
case "$1 $2" in
  "plugin list") cat "$STATE" ;;
  "plugin remove")
    grep -v "^$3 " "$STATE" > "$STATE.tmp"
    mv "$STATE.tmp" "$STATE"
    echo "$3" >> "$E2E_STATE_DIR/removed.txt"
    ;;
  "plugin add")
    version=$(cat "$E2E_STATE_DIR/registry/$3" 2>/dev/null) || exit 1
    echo "$3 $version \\"$3\\"" >> "$STATE"
    ;;
  *) exit 2 ;;
esac
"""

FAKE_NPM = """#!/bin/sh
entry="$E2E_STATE_DIR/registry/$2"
if [ ! -f "$entry" ]; then
  echo "npm ERR! 404 '$2' is not in this registry." >&2
  exit 1
fi
cat "$entry"
"""


class TestFailureError(Exception):
    """Raised when a test assertion fails."""


class Sandbox:
    """A throwaway Cordova project plus fake ``cordova``/``npm`` executables."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.project = root / "project"
        self.state = root / "state"
        self.bin = root / "bin"
        for d in (self.project, self.state / "registry", self.bin):
            d.mkdir(parents=True, exist_ok=True)
        _ = (self.project / "config.xml").write_text("<widget />\n", encoding="utf-8")
        self._install("cordova", FAKE_CORDOVA)
        self._install("npm", FAKE_NPM)

    def _install(self, name: str, body: str) -> None:
        path = self.bin / name
        _ = path.write_text(body, encoding="utf-8")
        path.chmod(0o755)

    def reset(self, installed: dict[str, str], registry: dict[str, str]) -> None:
        """Replace the installed plugins and registry contents."""
        lines = [f'{name} {version} "{name}"' for name, version in installed.items()]
        _ = (self.state / "plugins.txt").write_text("\n".join(lines) + "\n", encoding="utf-8")
        (self.state / "removed.txt").unlink(missing_ok=True)
        for entry in (self.state / "registry").iterdir():
            entry.unlink()
        for name, version in registry.items():
            _ = (self.state / "registry" / name).write_text(f"{version}\n", encoding="utf-8")

    def installed(self) -> str:
        return (self.state / "plugins.txt").read_text(encoding="utf-8")

    def removed(self) -> list[str]:
        path = self.state / "removed.txt"
        if not path.exists():
            return []
        return path.read_text(encoding="utf-8").split()

    def run(self, *args: str, stdin: str = "") -> subprocess.CompletedProcess[str]:
        """Run the checker with the fake tools first on ``PATH``."""
        env = {
            **os.environ,
            "PATH": f"{self.bin}{os.pathsep}{os.environ.get('PATH', '')}",
            "E2E_STATE_DIR": str(self.state),
            "COLUMNS": "200",
        }
        return subprocess.run(  # noqa: S603
            [sys.executable, str(CHECKER), *args],
            input=stdin,
            capture_output=True,
            text=True,
            env=env,
            timeout=120,
            check=False,
        )


def _assert(condition: bool, msg: str) -> None:
    """Assert *condition* is truthy, raising `TestFailureError` on failure."""
    if not condition:
        raise TestFailureError(msg)


def _pass(label: str) -> None:
    console.print(f"  [green]✔[/green] {label}")


def _fail(label: str, detail: str) -> None:
    console.print(f"  [red]✘[/red] {label}")
    console.print(f"    [dim]{detail}[/dim]")


def _run_test(label: str, fn: t.Callable[[], None]) -> bool:
    """Run a single test, print pass/fail, return success bool."""
    try:
        fn()
        _pass(label)
    except TestFailureError as exc:
        _fail(label, str(exc))
        return False
    except subprocess.TimeoutExpired:
        _fail(label, "Command timed out (120s)")
        return False
    return True


# ---------------------------------------------------------------------------
# Test case builders
# ---------------------------------------------------------------------------


def _test_up_to_date(sb: Sandbox) -> list[TestCase]:
    """Build the no-updates test case."""

    def _up_to_date() -> None:
        sb.reset({"cordova-plugin-device": "2.1.0"}, {"cordova-plugin-device": "2.1.0"})
        r = sb.run(str(sb.project))
        _assert(r.returncode == 0, f"exit {r.returncode}: {r.stdout}{r.stderr}")
        _assert("All plugins are up to date!" in r.stdout, f"Missing summary: {r.stdout}")
        _assert("Do you want to update" not in r.stdout, f"Unexpected prompt: {r.stdout}")

    return [("all plugins up to date", _up_to_date)]


def _test_updates(sb: Sandbox) -> list[TestCase]:
    """Build declined/accepted update test cases."""
    tests: list[TestCase] = []
    installed = {"cordova-plugin-camera": "5.0.0", "cordova-plugin-file": "8.0.0"}
    registry = {"cordova-plugin-camera": "6.0.0", "cordova-plugin-file": "8.1.0"}

    def _decline() -> None:
        sb.reset(installed, registry)
        r = sb.run(str(sb.project), stdin="n\nN\n")
        _assert(r.returncode == 0, f"exit {r.returncode}: {r.stdout}{r.stderr}")
        _assert(r.stdout.count("Do you want to update") == 2, f"Expected 2 prompts: {r.stdout}")
        _assert(sb.removed() == [], f"Plugins removed after declining: {sb.removed()}")

    tests.append(("declined updates leave plugins alone", _decline))

    def _accept() -> None:
        sb.reset(installed, registry)
        r = sb.run(str(sb.project), stdin="Y\nn\n")
        _assert(r.returncode == 0, f"exit {r.returncode}: {r.stdout}{r.stderr}")
        _assert(
            "Successfully updated cordova-plugin-camera" in r.stdout,
            f"Missing success message: {r.stdout}",
        )
        _assert(sb.removed() == ["cordova-plugin-camera"], f"Removed: {sb.removed()}")
        _assert("cordova-plugin-camera 6.0.0" in sb.installed(), f"State: {sb.installed()}")
        _assert("cordova-plugin-file 8.0.0" in sb.installed(), f"State: {sb.installed()}")

    tests.append(("accepted update re-installs latest", _accept))

    def _check_mode() -> None:
        sb.reset(installed, registry)
        r = sb.run(str(sb.project), "--check")
        _assert(r.returncode == 1, f"expected exit 1, got {r.returncode}: {r.stdout}")
        _assert("Do you want to update" not in r.stdout, f"Unexpected prompt: {r.stdout}")

    tests.append(("--check exits 1 when outdated", _check_mode))

    return tests


def _test_failures(sb: Sandbox) -> list[TestCase]:
    """Build failed lookup and invalid project test cases."""
    tests: list[TestCase] = []

    def _lookup_failure() -> None:
        sb.reset(
            {"cordova-plugin-missing": "1.0.0", "cordova-plugin-camera": "5.0.0"},
            {"cordova-plugin-camera": "6.0.0"},
        )
        r = sb.run(str(sb.project), stdin="n\n")
        _assert(r.returncode == 0, f"exit {r.returncode}: {r.stdout}{r.stderr}")
        _assert(
            "cordova-plugin-missing: Failed to check for updates" in r.stdout,
            f"Missing error entry: {r.stdout}",
        )
        _assert(r.stdout.count("Do you want to update") == 1, f"Expected 1 prompt: {r.stdout}")

    tests.append(("failed lookup does not stop the batch", _lookup_failure))

    def _not_cordova() -> None:
        r = sb.run(str(sb.root))
        _assert(r.returncode == 1, f"expected exit 1, got {r.returncode}")
        _assert("config.xml not found" in r.stderr, f"Missing error: {r.stderr}")

    tests.append(("directory without config.xml is rejected", _not_cordova))

    def _missing_path() -> None:
        r = sb.run(str(sb.root / "does-not-exist"))
        _assert(r.returncode == 1, f"expected exit 1, got {r.returncode}")
        _assert("does not exist" in r.stderr, f"Missing error: {r.stderr}")

    tests.append(("missing project path is rejected", _missing_path))

    return tests


@app.command()
def main() -> None:
    """Run E2E tests for the plugin checker against fake cordova/npm tools."""
    if os.name == "nt" or shutil.which("sh") is None:
        console.print("[red]Error:[/red] E2E tests need a POSIX shell")
        raise SystemExit(1)

    console.print("[bold]E2E Plugin Checker Tests[/bold]")
    console.print("=" * 40)

    root = Path(tempfile.mkdtemp(prefix="cordova-e2e-"))
    try:
        sb = Sandbox(root)
        tests: list[TestCase] = []
        tests.extend(_test_up_to_date(sb))
        tests.extend(_test_updates(sb))
        tests.extend(_test_failures(sb))

        passed = sum(_run_test(name, fn) for name, fn in tests)
        total = len(tests)
    finally:
        shutil.rmtree(root, ignore_errors=True)

    console.print()
    if passed == total:
        console.print(f"[green bold]{passed}/{total} tests passed[/green bold]")
    else:
        console.print(f"[red bold]{total - passed}/{total} tests failed[/red bold]")
        raise SystemExit(1)


if __name__ == "__main__":
    app()
