"""rustup installer: toolchains plus components.

The tool's ``version`` is the toolchain (``stable``, ``nightly``,
``1.78.0``...) and each option names a component to add to it.
"""

from __future__ import annotations

import os
import time
from datetime import datetime
from pathlib import Path

from setup_devbox.adapters.base import UpdateDecision, latest_update_decision
from setup_devbox.adapters.package_managers.common import PackageManagerInstaller
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.policy import UpdatePolicy
from setup_devbox.core.models.state import ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry

# Toolchains that move over time and follow the latest policy window
CHANNELS = frozenset({"stable", "beta", "nightly"})


def rustup_home() -> Path:
    home = os.environ.get("RUSTUP_HOME")
    return Path(home) if home else Path.home() / ".rustup"


class RustupInstaller(PackageManagerInstaller):
    executable = "rustup"

    @property
    def source(self) -> SourceKind:
        return SourceKind.RUSTUP

    @property
    def description(self) -> str:
        return "Rust toolchains; options are components to add"

    def needs_update(
        self,
        tool: ToolEntry,
        prior: ToolState,
        now: datetime,
        policy: UpdatePolicy,
        force_update_latest: bool = False,
    ) -> UpdateDecision:
        if tool.version in CHANNELS and tool.version == prior.version:
            return latest_update_decision(prior, now, policy, force_update_latest)
        return super().needs_update(tool, prior, now, policy, force_update_latest)

    def install(self, tool: ToolEntry) -> Receipt:
        return self._install(tool, "install")

    def update(self, tool: ToolEntry, prior: ToolState) -> Receipt:
        if tool.version in CHANNELS and tool.version == prior.version:
            return self._install(tool, "update", refresh=True)
        return self._install(tool, "update")

    def _install(self, tool: ToolEntry, operation: str, refresh: bool = False) -> Receipt:
        if not self.is_available():
            return self.unavailable(tool.name, operation)
        started = time.monotonic()
        first = ["rustup", "update", tool.version] if refresh else [
            "rustup", "toolchain", "install", tool.version
        ]
        commands = [first]
        for component in tool.options or []:
            commands.append(["rustup", "component", "add", component, "--toolchain", tool.version])
        failure, results = self.run_steps(tool.name, operation, commands)
        if failure:
            return failure
        return self.installed(tool, rustup_home() / "toolchains", results, operation, started)

    def uninstall(self, state: ToolState) -> Receipt:
        return self.uninstall_with(state, ["rustup", "toolchain", "uninstall", state.version])
