"""Post-installation hooks: shell commands run after a successful install."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from setup_devbox.adapters.shell.command import run_command

logger = logging.getLogger(__name__)

HOOK_TIMEOUT = 600


@dataclass
class HookOutcome:
    ran: int = 0
    failed_command: str | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.failed_command is None


def run_hooks(tool_name: str, hooks: list[str] | None) -> HookOutcome:
    """Run hooks left to right through ``sh -c``, stopping at the first failure."""
    outcome = HookOutcome()
    for command in hooks or []:
        logger.info("[%s] hook: %s", tool_name, command)
        result = run_command(command, shell=True, timeout=HOOK_TIMEOUT)
        outcome.ran += 1
        if not result.ok:
            logger.error("[%s] hook failed: %s (%s)", tool_name, command, result.message)
            outcome.failed_command = command
            outcome.error = result.message
            break
    return outcome
