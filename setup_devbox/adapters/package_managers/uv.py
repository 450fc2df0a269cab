"""uv installer: tools, pip packages, or Python interpreters.

The mode is picked with a ``--mode=tool|pip|python`` option (default
``tool``); the option itself is not passed to uv. In ``python`` mode
the tool's version is the interpreter version to install.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from setup_devbox.adapters.package_managers.common import PackageManagerInstaller
from setup_devbox.adapters.package_managers.pip import requirement
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.state import ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry

logger = logging.getLogger(__name__)

MODES = ("tool", "pip", "python")


def split_mode(options: list[str] | None) -> tuple[str, list[str]]:
    """Extract ``--mode=`` from options; unknown modes fall back to ``tool``."""
    mode = "tool"
    rest: list[str] = []
    for opt in options or []:
        if opt.startswith("--mode="):
            value = opt.removeprefix("--mode=")
            if value in MODES:
                mode = value
            else:
                logger.warning("[uv] Unknown installation mode '%s', using 'tool'", value)
        else:
            rest.append(opt)
    return mode, rest


class UvInstaller(PackageManagerInstaller):
    executable = "uv"

    @property
    def source(self) -> SourceKind:
        return SourceKind.UV

    @property
    def description(self) -> str:
        return "uv tools (default), packages (--mode=pip) or Pythons (--mode=python)"

    def install(self, tool: ToolEntry) -> Receipt:
        return self._install(tool, "install")

    def update(self, tool: ToolEntry, prior: ToolState) -> Receipt:
        mode, _ = split_mode(tool.options)
        if mode == "tool" and tool.is_latest:
            if not self.is_available():
                return self.unavailable(tool.name, "update")
            started = time.monotonic()
            failure, results = self.run_steps(
                tool.name, "update", [["uv", "tool", "upgrade", tool.name]]
            )
            if failure:
                return failure
            return self.installed(tool, self._install_path(tool, mode), results, "update", started)
        return self._install(tool, "update", force=True)

    def _install(self, tool: ToolEntry, operation: str, force: bool = False) -> Receipt:
        if not self.is_available():
            return self.unavailable(tool.name, operation)
        started = time.monotonic()
        mode, options = split_mode(tool.options)
        if mode == "python":
            cmd = ["uv", "python", "install", tool.version]
        else:
            cmd = ["uv", mode, "install", requirement(tool.name, tool.version)]
            if force and mode == "tool":
                cmd.append("--force")
        cmd += options
        failure, results = self.run_steps(tool.name, operation, [cmd])
        if failure:
            return failure
        return self.installed(tool, self._install_path(tool, mode), results, operation, started)

    def uninstall(self, state: ToolState) -> Receipt:
        mode, _ = split_mode(state.options)
        if mode == "python":
            cmd = ["uv", "python", "uninstall", state.version]
        elif mode == "pip":
            cmd = ["uv", "pip", "uninstall", state.name]
        else:
            cmd = ["uv", "tool", "uninstall", state.name]
        return self.uninstall_with(state, cmd)

    def _install_path(self, tool: ToolEntry, mode: str) -> str:
        if mode == "tool":
            return str(Path.home() / ".local" / "bin" / tool.binary_name)
        return shutil.which(tool.binary_name) or ""
