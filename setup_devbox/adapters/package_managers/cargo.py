"""Cargo installer (crates.io binaries)."""

from __future__ import annotations

import os
import time
from pathlib import Path

from setup_devbox.adapters.package_managers.common import PackageManagerInstaller
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.state import ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry


def cargo_bin_dir() -> Path:
    cargo_home = os.environ.get("CARGO_HOME")
    return Path(cargo_home) / "bin" if cargo_home else Path.home() / ".cargo" / "bin"


class CargoInstaller(PackageManagerInstaller):
    executable = "cargo"

    @property
    def source(self) -> SourceKind:
        return SourceKind.CARGO

    @property
    def description(self) -> str:
        return "Rust crates via 'cargo install' (binaries land in ~/.cargo/bin)"

    def install(self, tool: ToolEntry) -> Receipt:
        return self._install(tool, "install")

    def update(self, tool: ToolEntry, prior: ToolState) -> Receipt:
        return self._install(tool, "update", force=True)

    def _install(self, tool: ToolEntry, operation: str, force: bool = False) -> Receipt:
        if not self.is_available():
            return self.unavailable(tool.name, operation)
        started = time.monotonic()
        cmd = ["cargo", "install", tool.name]
        if not tool.is_latest:
            cmd += ["--version", tool.version]
        if force:
            cmd.append("--force")
        cmd += tool.options or []
        failure, results = self.run_steps(tool.name, operation, [cmd])
        if failure:
            return failure
        return self.installed(tool, cargo_bin_dir() / tool.name, results, operation, started)

    def uninstall(self, state: ToolState) -> Receipt:
        return self.uninstall_with(state, ["cargo", "uninstall", state.name])
