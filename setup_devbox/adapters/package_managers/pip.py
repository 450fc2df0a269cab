"""pip installer (user site packages)."""

from __future__ import annotations

import shutil
import time

from setup_devbox.adapters.package_managers.common import PackageManagerInstaller
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.state import ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry


def requirement(name: str, version: str) -> str:
    return name if version == "latest" else f"{name}=={version}"


class PipInstaller(PackageManagerInstaller):
    """``pip3 install --user``; falls back to ``pip`` when pip3 is missing."""

    executable = "pip3"

    @property
    def source(self) -> SourceKind:
        return SourceKind.PIP

    @property
    def description(self) -> str:
        return "Python packages via 'pip3 install --user'"

    def is_available(self) -> bool:
        return self._pip() is not None

    def _pip(self) -> str | None:
        for candidate in ("pip3", "pip"):
            if shutil.which(candidate):
                return candidate
        return None

    def install(self, tool: ToolEntry) -> Receipt:
        return self._install(tool, "install")

    def update(self, tool: ToolEntry, prior: ToolState) -> Receipt:
        return self._install(tool, "update", upgrade=True)

    def _install(self, tool: ToolEntry, operation: str, upgrade: bool = False) -> Receipt:
        pip = self._pip()
        if pip is None:
            return self.unavailable(tool.name, operation)
        started = time.monotonic()
        cmd = [pip, "install", "--user"]
        if upgrade:
            cmd.append("--upgrade")
        cmd += [requirement(tool.name, tool.version), *(tool.options or [])]
        failure, results = self.run_steps(tool.name, operation, [cmd])
        if failure:
            return failure
        install_path = shutil.which(tool.binary_name) or ""
        return self.installed(tool, install_path, results, operation, started)

    def uninstall(self, state: ToolState) -> Receipt:
        pip = self._pip() or "pip3"
        return self.uninstall_with(state, [pip, "uninstall", "-y", state.name])
