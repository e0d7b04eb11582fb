"""Cordova plugin update checks.

Lists the plugins installed in a Cordova project, looks up the latest
published version of each on the npm registry, and re-installs the ones the
operator chooses to update.

Every external command runs with the project root as its working directory.
The process working directory is never changed.

Examples
--------
>>> parse_plugin_list('cordova-plugin-device 2.1.0 "Device"\\n')
[InstalledPlugin(id='cordova-plugin-device', version='2.1.0')]
>>> compare_versions("2.1.0", "3.0.0")
True
"""

from __future__ import annotations

import re
import shutil
import subprocess
import typing as t
from pathlib import Path

import pydantic
import rich.console
from rich.markup import escape

CORDOVA = "cordova"
NPM = "npm"
CONFIG_XML = "config.xml"
"""Project descriptor whose presence marks a directory as a Cordova project."""

UNKNOWN_VERSION = "unknown"
"""Version recorded when the plugin listing omits one."""

LOOKUP_ERROR = "Failed to check for updates"

_MARKER_RE = re.compile(r"^[>\s]+")

console = rich.console.Console()
err_console = rich.console.Console(stderr=True)


class CommandError(Exception):
    """Raised when an external command cannot be run or exits non-zero."""

    def __init__(self, args: t.Sequence[str], message: str, returncode: int | None = None) -> None:
        self.command = list(args)
        self.returncode = returncode
        super().__init__(message)


class CheckError(Exception):
    """Raised when the update check cannot run at all."""


class ProjectNotFoundError(CheckError):
    """Raised when the project path does not exist."""


class NotACordovaProjectError(CheckError):
    """Raised when the project path has no ``config.xml``."""


class PluginListError(CheckError):
    """Raised when ``cordova plugin list`` fails."""


class InstalledPlugin(pydantic.BaseModel):
    """A plugin as reported by ``cordova plugin list``.

    Examples
    --------
    >>> InstalledPlugin(id="cordova-plugin-camera")
    InstalledPlugin(id='cordova-plugin-camera', version='unknown')
    """

    model_config = pydantic.ConfigDict(frozen=True)

    id: str
    version: str = UNKNOWN_VERSION


class UpdateResult(pydantic.BaseModel):
    """Outcome of checking one installed plugin against the registry.

    ``latest_version`` is ``None`` and ``error`` is set when the registry
    lookup failed.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    plugin: str
    current_version: str
    latest_version: str | None = None
    has_update: bool = False
    error: str | None = None


PluginListParser = t.Callable[[str], list[InstalledPlugin]]
"""Turns ``cordova plugin list`` output into installed plugins."""


def parse_plugin_list(output: str) -> list[InstalledPlugin]:
    r"""Parse the text printed by ``cordova plugin list``.

    Blank lines are skipped and leading ``>`` markers or whitespace are
    stripped. The first space-separated field is the id and the second the
    version; anything after that (the quoted display name) is ignored.
    Entries with an empty id or the id ``undefined`` are dropped.

    Parameters
    ----------
    output : str
        Raw standard output of the listing command.

    Returns
    -------
    list[InstalledPlugin]
        Plugins in listing order.

    Examples
    --------
    >>> text = '\n> cordova-plugin-camera 6.0.0 "Camera"\n  \ncordova-plugin-file\n'
    >>> for plugin in parse_plugin_list(text):
    ...     print(plugin.id, plugin.version)
    cordova-plugin-camera 6.0.0
    cordova-plugin-file unknown

    >>> parse_plugin_list("undefined 1.0.0\n>>>\n")
    []
    >>> parse_plugin_list("")
    []
    """
    plugins: list[InstalledPlugin] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        fields = _MARKER_RE.sub("", line).split(" ")
        plugin_id = fields[0]
        version = fields[1] if len(fields) > 1 and fields[1] else UNKNOWN_VERSION
        if not plugin_id or plugin_id == "undefined":
            continue
        plugins.append(InstalledPlugin(id=plugin_id, version=version))
    return plugins


def _version_component(parts: list[str], index: int) -> int | None:
    """Return one numeric version component, or ``None`` when it is not a number.

    Empty segments count as zero.
    """
    if index >= len(parts):
        return None
    segment = parts[index].strip()
    if not segment:
        return 0
    try:
        return int(segment)
    except ValueError:
        return None


def compare_versions(current: str, latest: str) -> bool:
    """Return whether *latest* is newer than *current*.

    An ``unknown`` current version always counts as outdated. Otherwise
    major, minor and patch are compared in order and the first component
    that differs decides. A component that is not a number is neither
    greater nor smaller, so the comparison moves on to the next one.

    Parameters
    ----------
    current : str
        Installed version.
    latest : str
        Latest published version.

    Returns
    -------
    bool
        True if an update is available.

    Examples
    --------
    >>> compare_versions("unknown", "1.0.0")
    True
    >>> compare_versions("1.2.3", "1.2.3")
    False
    >>> compare_versions("1.2.3", "1.3.0")
    True
    >>> compare_versions("1.3.0", "1.2.9")
    False
    >>> compare_versions("2.0.0", "1.9.9")
    False

    Malformed components are skipped rather than rejected:

    >>> compare_versions("1.x.0", "1.2.0")
    False
    >>> compare_versions("1.x.0", "1.2.1")
    True
    """
    if current == UNKNOWN_VERSION:
        return True

    current_parts = current.split(".")
    latest_parts = latest.split(".")

    for index in range(3):
        cur = _version_component(current_parts, index)
        new = _version_component(latest_parts, index)
        if cur is None or new is None:
            continue
        if new > cur:
            return True
        if new < cur:
            return False
    return False


def run_command(args: list[str], cwd: Path, timeout: float | None = None) -> str:
    """Run an external command in *cwd* and return its standard output.

    Parameters
    ----------
    args : list[str]
        Command name followed by its arguments.
    cwd : Path
        Working directory for the command.
    timeout : float, optional
        Seconds to wait before giving up. Waits indefinitely by default.

    Returns
    -------
    str
        Captured standard output.

    Raises
    ------
    CommandError
        If the executable is missing, times out, or exits non-zero.
    """
    display = " ".join(args)
    executable = shutil.which(args[0]) or args[0]
    try:
        result = subprocess.run(  # noqa: S603
            [executable, *args[1:]],
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        msg = f"{args[0]} command not found. Please install {args[0]}."
        raise CommandError(args, msg) from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandError(args, f"'{display}' timed out after {timeout}s") from exc

    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        msg = f"'{display}' exited with status {result.returncode}"
        if detail:
            msg = f"{msg}: {detail}"
        raise CommandError(args, msg, result.returncode)
    return result.stdout


def list_installed_plugins(
    project_path: Path,
    *,
    parse: PluginListParser = parse_plugin_list,
    timeout: float | None = None,
) -> list[InstalledPlugin]:
    """Run ``cordova plugin list`` in the project and parse the result."""
    output = run_command([CORDOVA, "plugin", "list"], project_path, timeout)
    return parse(output)


def view_latest_version(plugin_id: str, cwd: Path, timeout: float | None = None) -> str:
    """Ask the npm registry for the latest published version of *plugin_id*."""
    return run_command([NPM, "view", plugin_id, "version"], cwd, timeout).strip()


def validate_project(project_path: Path) -> None:
    """Check that *project_path* exists and holds a Cordova project.

    Raises
    ------
    ProjectNotFoundError
        If the path does not exist.
    NotACordovaProjectError
        If the path has no ``config.xml``.
    """
    if not project_path.exists():
        raise ProjectNotFoundError(f"Project path does not exist: {project_path}")
    if not (project_path / CONFIG_XML).exists():
        msg = f"Not a Cordova project: {project_path} ({CONFIG_XML} not found)"
        raise NotACordovaProjectError(msg)


def check_plugin_updates(
    project_path: Path,
    *,
    parse: PluginListParser = parse_plugin_list,
    timeout: float | None = None,
) -> list[UpdateResult]:
    """Compare every installed plugin with its latest registry version.

    Plugins are looked up one at a time. A failed lookup is recorded on that
    plugin's result and the remaining plugins are still checked.

    Parameters
    ----------
    project_path : Path
        Absolute path to the Cordova project root.
    parse : PluginListParser
        Parser for the plugin listing.
    timeout : float, optional
        Per-command timeout in seconds.

    Returns
    -------
    list[UpdateResult]
        One result per installed plugin, in listing order.

    Raises
    ------
    CheckError
        If the project is invalid or the plugins cannot be listed.
    """
    validate_project(project_path)

    try:
        installed = list_installed_plugins(project_path, parse=parse, timeout=timeout)
    except CommandError as exc:
        raise PluginListError(f"Could not list installed plugins: {exc}") from exc

    results: list[UpdateResult] = []
    for plugin in installed:
        try:
            latest = view_latest_version(plugin.id, project_path, timeout)
        except CommandError as exc:
            err_console.print(
                f"[red]Error checking plugin {escape(plugin.id)}:[/red] {escape(str(exc))}"
            )
            results.append(
                UpdateResult(
                    plugin=plugin.id,
                    current_version=plugin.version,
                    error=LOOKUP_ERROR,
                )
            )
            continue

        results.append(
            UpdateResult(
                plugin=plugin.id,
                current_version=plugin.version,
                latest_version=latest,
                has_update=compare_versions(plugin.version, latest),
            )
        )
    return results


def update_plugin(plugin_id: str, project_path: Path, timeout: float | None = None) -> bool:
    """Re-install *plugin_id* so it resolves to the latest registry version.

    The plugin is force-removed and then added again by id.

    Returns
    -------
    bool
        True if both commands succeeded.
    """
    console.print(f"\nUpdating {escape(plugin_id)}...")
    try:
        run_command([CORDOVA, "plugin", "remove", plugin_id, "--force"], project_path, timeout)
        run_command([CORDOVA, "plugin", "add", plugin_id], project_path, timeout)
    except CommandError as exc:
        err_console.print(f"[red]Failed to update {escape(plugin_id)}:[/red] {escape(str(exc))}")
        return False
    console.print(f"[green]Successfully updated {escape(plugin_id)}[/green]")
    return True


def ask(question: str) -> str:
    """Read one answer from the operator. End of input reads as an empty answer."""
    try:
        return console.input(question)
    except EOFError:
        return ""


def run_interactive_updates(
    outdated: t.Sequence[UpdateResult],
    project_path: Path,
    *,
    assume_yes: bool = False,
    timeout: float | None = None,
) -> tuple[list[str], list[str]]:
    """Offer each outdated plugin for update, one at a time.

    Only a case-insensitive ``y`` accepts. A failed update is logged and
    the next plugin is still offered.

    Parameters
    ----------
    outdated : Sequence[UpdateResult]
        Results with ``has_update`` set.
    project_path : Path
        Project root the update commands run in.
    assume_yes : bool
        Accept every update without prompting.
    timeout : float, optional
        Per-command timeout in seconds.

    Returns
    -------
    tuple[list[str], list[str]]
        Ids of the plugins that were updated, and of those whose update failed.
    """
    updated: list[str] = []
    failed: list[str] = []
    for result in outdated:
        if not assume_yes:
            answer = ask(
                f"\nDo you want to update {escape(result.plugin)} from "
                f"{escape(result.current_version)} to {escape(result.latest_version or '')}? (y/n): "
            )
            if answer.lower() != "y":
                continue
        if update_plugin(result.plugin, project_path, timeout):
            updated.append(result.plugin)
        else:
            failed.append(result.plugin)
    return updated, failed
