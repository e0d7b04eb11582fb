"""Shared fixtures for the plugin checker tests."""

from __future__ import annotations

import typing as t
from pathlib import Path

import cordova_plugins
import pytest
from cordova_plugins import CommandError


class FakeTools:
    """Stands in for ``run_command`` and records every command it receives.

    ``installed`` maps plugin ids to the versions ``cordova plugin list``
    reports. ``registry`` maps ids to the version ``npm view`` prints; ids
    missing from it fail the lookup. Ids in ``broken`` fail ``cordova plugin
    add``.
    """

    def __init__(self) -> None:
        self.installed: dict[str, str] = {}
        self.registry: dict[str, str] = {}
        self.broken: set[str] = set()
        self.list_fails = False
        self.calls: list[list[str]] = []
        self.cwds: list[Path] = []

    def __call__(self, args: list[str], cwd: Path, timeout: float | None = None) -> str:
        self.calls.append(list(args))
        self.cwds.append(cwd)
        match args:
            case ["cordova", "plugin", "list"]:
                if self.list_fails:
                    raise CommandError(args, "'cordova plugin list' exited with status 1", 1)
                return "".join(f'{pid} {ver} "{pid}"\n' for pid, ver in self.installed.items())
            case ["npm", "view", plugin_id, "version"]:
                if plugin_id not in self.registry:
                    raise CommandError(args, f"'npm view {plugin_id} version' exited with status 1", 1)
                return f"{self.registry[plugin_id]}\n"
            case ["cordova", "plugin", "remove", _plugin_id, "--force"]:
                return ""
            case ["cordova", "plugin", "add", plugin_id]:
                if plugin_id in self.broken:
                    raise CommandError(args, f"'cordova plugin add {plugin_id}' exited with status 1", 1)
                return ""
        msg = f"unexpected command: {args}"
        raise AssertionError(msg)

    def commands(self, *prefix: str) -> list[list[str]]:
        """Return recorded commands starting with *prefix*."""
        return [c for c in self.calls if c[: len(prefix)] == list(prefix)]


@pytest.fixture
def tools(monkeypatch: pytest.MonkeyPatch) -> t.Iterator[FakeTools]:
    fake = FakeTools()
    monkeypatch.setattr(cordova_plugins, "run_command", fake)
    yield fake


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty Cordova project root."""
    root = tmp_path / "app"
    root.mkdir()
    _ = (root / "config.xml").write_text("<widget />\n", encoding="utf-8")
    return root


@pytest.fixture(autouse=True)
def wide_consoles(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep rich from wrapping long paths across lines in captured output."""
    monkeypatch.setattr(cordova_plugins.console, "width", 240)
    monkeypatch.setattr(cordova_plugins.err_console, "width", 240)
