"""Go installer (``go install module@version``)."""

from __future__ import annotations

import logging
import os
import re
import time
from pathlib import Path

from setup_devbox.adapters.package_managers.common import PackageManagerInstaller
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.state import ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry

logger = logging.getLogger(__name__)

_MAJOR_VERSION_SUFFIX = re.compile(r"^v\d+$")


def go_bin_dir() -> Path:
    if gobin := os.environ.get("GOBIN"):
        return Path(gobin)
    if gopath := os.environ.get("GOPATH"):
        return Path(gopath.split(os.pathsep)[0]) / "bin"
    return Path.home() / "go" / "bin"


def binary_name(module: str) -> str:
    """Executable name ``go install`` produces for a module path."""
    parts = [p for p in module.split("/") if p]
    if len(parts) > 1 and _MAJOR_VERSION_SUFFIX.match(parts[-1]):
        return parts[-2]
    return parts[-1] if parts else module


class GoInstaller(PackageManagerInstaller):
    executable = "go"

    @property
    def source(self) -> SourceKind:
        return SourceKind.GO

    @property
    def description(self) -> str:
        return "Go modules via 'go install module@version'"

    def install(self, tool: ToolEntry) -> Receipt:
        if not self.is_available():
            return self.unavailable(tool.name)
        started = time.monotonic()
        cmd = ["go", "install", f"{tool.name}@{tool.version}", *(tool.options or [])]
        failure, results = self.run_steps(tool.name, "install", [cmd])
        if failure:
            return failure
        return self.installed(tool, go_bin_dir() / binary_name(tool.name), results, started=started)

    def uninstall(self, state: ToolState) -> Receipt:
        # Go has no uninstall: delete the binary
        target = Path(state.install_path) if state.install_path else go_bin_dir() / binary_name(state.name)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            return Receipt.failure(
                installer=self.name, item=state.name, operation="uninstall",
                error=f"Cannot remove {target}: {e}",
            )
        logger.info("[go] Removed %s", target)
        return Receipt.success(
            installer=self.name, item=state.name, operation="uninstall", output=f"removed {target}"
        )
