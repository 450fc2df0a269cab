"""
Apply use case — the ``now`` command.

Resolves paths, loads the desired state (master or single-document
mode) and the installation state, then runs the reconciler. Fatal
problems (unresolvable paths, unusable master config, corrupt state)
are returned as ``error``; per-item problems live in the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from setup_devbox.core.config.loader import load_desired
from setup_devbox.core.config.paths import PathResolver
from setup_devbox.core.engine.reconciler import Reconciler, RunOptions, RunReport
from setup_devbox.core.errors import DevboxError
from setup_devbox.core.persistence.state_file import StateStore
from setup_devbox.core.use_cases.runtime import Runtime

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Result of one ``now`` invocation."""

    report: RunReport | None = None
    config_file: Path | None = None
    state_file: Path | None = None
    load_errors: dict[str, str] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result
        result["config_file"] = str(self.config_file)
        result["state_file"] = str(self.state_file)
        if self.load_errors:
            result["load_errors"] = self.load_errors
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def apply_config(
    config_path: str | Path | None = None,
    state_path: str | Path | None = None,
    options: RunOptions | None = None,
    runtime: Runtime | None = None,
) -> ApplyResult:
    """Reconcile the machine against the configuration.

    Args:
        config_path: Optional master config or single sub-document.
        state_path: Optional state file location.
        options: Per-run flags (debug, forced latest updates, clock).
        runtime: Optional pre-built collaborators.

    Returns:
        ApplyResult with the run report, or ``error`` when fatal.
    """
    result = ApplyResult()

    # ── Resolve and load ─────────────────────────────────────────
    try:
        paths = PathResolver.resolve(config_path, state_path)
        result.config_file = paths.config_file
        result.state_file = paths.state_file

        desired = load_desired(paths.config_file)
        result.load_errors = dict(desired.load_errors)

        store = StateStore(paths.state_file)
        state = store.load()
    except DevboxError as e:
        logger.error("%s", e)
        result.error = str(e)
        return result

    if desired.is_empty and not desired.invalid_entries:
        logger.warning("Nothing to apply from %s", paths.config_file)

    # ── Reconcile ────────────────────────────────────────────────
    runtime = runtime or Runtime.default(paths)
    reconciler = Reconciler(
        registry=runtime.registry,
        store=store,
        tracker=runtime.tracker,
        shell_manager=runtime.shell_manager,
        settings_backend=runtime.settings_backend,
        options=options,
    )
    try:
        result.report = reconciler.run(desired, state)
    except DevboxError as e:
        # State store failures end the run; earlier categories stay committed
        logger.error("%s", e)
        result.error = str(e)
    return result
