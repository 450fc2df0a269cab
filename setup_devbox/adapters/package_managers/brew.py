"""Homebrew installer."""

from __future__ import annotations

import time

from setup_devbox.adapters.package_managers.common import PackageManagerInstaller
from setup_devbox.adapters.shell.command import run_command
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.state import ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry


def formula(name: str, version: str) -> str:
    """``name`` for latest, ``name@version`` for a pinned version."""
    return name if version == "latest" else f"{name}@{version}"


class BrewInstaller(PackageManagerInstaller):
    """``brew install`` / ``brew upgrade`` / ``brew uninstall``."""

    executable = "brew"

    @property
    def source(self) -> SourceKind:
        return SourceKind.BREW

    @property
    def description(self) -> str:
        return "Homebrew formulae and casks (name or name@version)"

    def install(self, tool: ToolEntry) -> Receipt:
        if not self.is_available():
            return self.unavailable(tool.name)
        started = time.monotonic()
        cmd = ["brew", "install", *(tool.options or []), formula(tool.name, tool.version)]
        failure, results = self.run_steps(tool.name, "install", [cmd])
        if failure:
            return failure
        return self.installed(tool, self._prefix(tool), results, started=started)

    def update(self, tool: ToolEntry, prior: ToolState) -> Receipt:
        if not tool.is_latest:
            receipt = self.install(tool)
            receipt.operation = "update"
            return receipt
        if not self.is_available():
            return self.unavailable(tool.name, "update")
        started = time.monotonic()
        failure, results = self.run_steps(tool.name, "update", [["brew", "upgrade", tool.name]])
        if failure:
            return failure
        return self.installed(tool, self._prefix(tool), results, "update", started)

    def uninstall(self, state: ToolState) -> Receipt:
        return self.uninstall_with(
            state, ["brew", "uninstall", formula(state.name, state.version)]
        )

    def _prefix(self, tool: ToolEntry) -> str:
        result = run_command(["brew", "--prefix", formula(tool.name, tool.version)], timeout=30)
        return result.stdout.strip() if result.ok else ""
