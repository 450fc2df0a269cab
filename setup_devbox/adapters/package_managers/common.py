"""Shared plumbing for package-manager installers."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from setup_devbox.adapters.base import Installer
from setup_devbox.adapters.shell.command import CommandResult, run_command
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.state import ToolState
from setup_devbox.core.models.tools import ToolEntry

logger = logging.getLogger(__name__)


class PackageManagerInstaller(Installer):
    """Installer whose work is a sequence of package-manager commands."""

    timeout: int = 1800

    def run_steps(
        self,
        item: str,
        operation: str,
        commands: list[list[str]],
    ) -> tuple[Receipt | None, list[CommandResult]]:
        """Run ``commands`` in order, stopping at the first failure.

        Returns:
            (failure receipt or None, results of the commands that ran)
        """
        results: list[CommandResult] = []
        for cmd in commands:
            logger.info("[%s] %s: %s", self.name, item, " ".join(cmd))
            result = run_command(cmd, timeout=self.timeout)
            results.append(result)
            if not result.ok:
                logger.error("[%s] %s failed for %s: %s", self.name, operation, item, result.message)
                return (
                    Receipt.failure(
                        installer=self.name,
                        item=item,
                        operation=operation,
                        error=result.message,
                        metadata={"command": result.command},
                    ),
                    results,
                )
        return None, results

    def installed(
        self,
        tool: ToolEntry,
        install_path: str | Path,
        results: list[CommandResult],
        operation: str = "install",
        started: float | None = None,
    ) -> Receipt:
        """Success receipt carrying the new ToolState."""
        output = "\n".join(r.stdout.strip() for r in results if r.stdout.strip())
        duration_ms = int((time.monotonic() - started) * 1000) if started else 0
        return Receipt.success(
            installer=self.name,
            item=tool.name,
            operation=operation,
            output=output,
            duration_ms=duration_ms,
            tool_state=ToolState.from_entry(tool, str(install_path)),
        )

    def uninstall_with(self, state: ToolState, cmd: list[str]) -> Receipt:
        """Run a single uninstall command."""
        if not self.is_available():
            return self.unavailable(state.name, "uninstall")
        failure, results = self.run_steps(state.name, "uninstall", [cmd])
        if failure:
            return failure
        return Receipt.success(
            installer=self.name,
            item=state.name,
            operation="uninstall",
            output=results[-1].stdout.strip(),
        )
