"""
Command runner — the single place where installers call subprocess.

Every package-manager invocation and every post-install hook goes
through ``run_command`` so output capture, timeouts, and logging are
handled once.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600

# Keep receipts readable: only the tail of long outputs is stored
_OUTPUT_TAIL = 2000


@dataclass
class CommandResult:
    """Outcome of one subprocess invocation."""

    command: str
    ok: bool
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str = ""
    elapsed_ms: int = 0

    @property
    def message(self) -> str:
        """Best single-line explanation of a failure."""
        if self.ok:
            return ""
        detail = self.stderr.strip() or self.stdout.strip()
        if detail:
            last = detail.splitlines()[-1]
            return f"{self.error}: {last}" if self.error else last
        return self.error or f"'{self.command}' failed"


def run_command(
    cmd: list[str] | str,
    *,
    shell: bool = False,
    timeout: int = DEFAULT_TIMEOUT,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
) -> CommandResult:
    """Run a command and capture its output. Never raises.

    Args:
        cmd: Argument list, or a command line when ``shell`` is True.
        shell: Run through ``sh -c``.
        timeout: Seconds before the command is killed.
        env_overrides: Extra environment variables.
        cwd: Working directory.
    """
    display = cmd if isinstance(cmd, str) else shlex.join(cmd)
    env = os.environ.copy()
    if env_overrides:
        env.update(env_overrides)

    logger.debug("Running: %s", display)
    start = time.monotonic()
    try:
        result = subprocess.run(
            ["sh", "-c", cmd] if shell and isinstance(cmd, str) else cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return CommandResult(
            command=display, ok=False, error=f"Command timed out ({timeout}s)"
        )
    except OSError as e:
        return CommandResult(command=display, ok=False, error=str(e))

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout[-_OUTPUT_TAIL:] if result.stdout else ""
    stderr = result.stderr[-_OUTPUT_TAIL:] if result.stderr else ""

    if result.returncode == 0:
        logger.debug("Finished in %dms: %s", elapsed_ms, display)
        return CommandResult(
            command=display,
            ok=True,
            returncode=0,
            stdout=stdout,
            stderr=stderr,
            elapsed_ms=elapsed_ms,
        )

    logger.debug("Exit %d after %dms: %s", result.returncode, elapsed_ms, display)
    return CommandResult(
        command=display,
        ok=False,
        returncode=result.returncode,
        stdout=stdout,
        stderr=stderr,
        error=f"Command failed (exit {result.returncode})",
        elapsed_ms=elapsed_ms,
    )
