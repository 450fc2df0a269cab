"""
Reconciliation engine — drives installation state toward desired state.

Categories run in fixed order (tools, fonts, shell, settings), items in
document order, one at a time. Each category runs inside a state-store
transaction, so state is committed after every category and an
interrupted category is discarded.

Flow per tool:
    decide → dispatch through the registry → update state → hooks → tracker
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from setup_devbox.adapters.registry import InstallerRegistry
from setup_devbox.core.engine.decisions import decide_font_action, decide_tool_action
from setup_devbox.core.engine.hooks import HookOutcome, run_hooks
from setup_devbox.core.models.action import ItemAction, Receipt
from setup_devbox.core.models.desired import DesiredState
from setup_devbox.core.models.fonts import FontConfig, FontEntry
from setup_devbox.core.models.policy import UpdatePolicy
from setup_devbox.core.models.settings import SettingsConfig
from setup_devbox.core.models.shell import ShellConfig
from setup_devbox.core.models.state import (
    ConfigurationManagerState,
    DevBoxState,
    SettingState,
    ShellState,
    ToolState,
    parse_timestamp,
)
from setup_devbox.core.models.tools import ToolConfig, ToolEntry
from setup_devbox.core.persistence.state_file import StateStore
from setup_devbox.core.services.config_tracker import (
    ConfigEvaluation,
    ConfigTracker,
    ConfigTrackerError,
)
from setup_devbox.core.services.os_settings import SettingsBackend
from setup_devbox.core.services.shell_rc import ShellRcError, ShellRcManager

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class RunOptions:
    """Per-invocation flags threaded through the engine."""

    debug: bool = False
    force_update_latest: bool = False
    clock: Callable[[], datetime] = _utcnow


# ── Run report ──────────────────────────────────────────────────


@dataclass
class ItemFailure:
    """One item that could not be reconciled."""

    category: str
    name: str
    kind: str  # install | update | reinstall | uninstall | hook | config | setting | shell | invalid
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "category": self.category,
            "name": self.name,
            "kind": self.kind,
            "message": self.message,
        }


@dataclass
class CategorySummary:
    installed: int = 0
    updated: int = 0
    reinstalled: int = 0
    refreshed: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def changed(self) -> int:
        return self.installed + self.updated + self.reinstalled + self.refreshed

    def to_dict(self) -> dict[str, int]:
        return {
            "installed": self.installed,
            "updated": self.updated,
            "reinstalled": self.reinstalled,
            "refreshed": self.refreshed,
            "skipped": self.skipped,
            "failed": self.failed,
        }


@dataclass
class RunReport:
    """Result of one reconciliation run."""

    categories: dict[str, CategorySummary] = field(default_factory=dict)
    failures: list[ItemFailure] = field(default_factory=list)
    hook_failures: int = 0
    receipts: list[Receipt] = field(default_factory=list)

    def summary(self, category: str) -> CategorySummary:
        return self.categories.setdefault(category, CategorySummary())

    def fail(self, category: str, name: str, kind: str, message: str) -> None:
        logger.error("[%s] %s: %s failed: %s", category, name, kind, message)
        self.failures.append(ItemFailure(category, name, kind, message))
        if kind not in ("hook", "invalid"):
            self.summary(category).failed += 1

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def changed(self) -> int:
        return sum(s.changed for s in self.categories.values())

    @property
    def status(self) -> str:
        if not self.failures:
            return "ok"
        if self.changed or any(s.skipped for s in self.categories.values()):
            return "partial"
        return "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "categories": {k: v.to_dict() for k, v in self.categories.items()},
            "failures": [f.to_dict() for f in self.failures],
            "hook_failures": self.hook_failures,
        }


# ── Engine ──────────────────────────────────────────────────────


class Reconciler:
    """Applies a DesiredState to a DevBoxState."""

    def __init__(
        self,
        registry: InstallerRegistry,
        store: StateStore,
        tracker: ConfigTracker,
        shell_manager: ShellRcManager | None = None,
        settings_backend: SettingsBackend | None = None,
        options: RunOptions | None = None,
        hook_runner: Callable[[str, list[str] | None], HookOutcome] = run_hooks,
    ):
        self.registry = registry
        self.store = store
        self.tracker = tracker
        self.shell_manager = shell_manager or ShellRcManager()
        self.settings_backend = settings_backend
        self.options = options or RunOptions()
        self.hook_runner = hook_runner

    def run(self, desired: DesiredState, state: DevBoxState) -> RunReport:
        """Reconcile every present category, committing after each one."""
        report = RunReport()
        for invalid in desired.invalid_entries:
            report.fail(invalid.category, invalid.name, "invalid", invalid.error)

        steps: list[tuple[str, Any, Callable[[Any, DevBoxState, RunReport], None]]] = [
            ("tools", desired.tools, self.reconcile_tools),
            ("fonts", desired.fonts, self.reconcile_fonts),
            ("shell", desired.shell, self.reconcile_shell),
            ("settings", desired.settings, self.reconcile_settings),
        ]
        for category, config, step in steps:
            if config is None:
                logger.debug("No %s configuration, skipping category", category)
                continue
            logger.info("Reconciling %s", category)
            report.summary(category)
            with self.store.transaction(state):
                step(config, state, report)

        logger.info("Run finished: %s", report.status)
        return report

    # ── Tools ───────────────────────────────────────────────────

    def reconcile_tools(self, config: ToolConfig, state: DevBoxState, report: RunReport) -> None:
        policy = UpdatePolicy.from_config(config.update_latest_only_after)
        for tool in config.tools:
            self._reconcile_tool(tool, state, policy, report)

    def _reconcile_tool(
        self,
        tool: ToolEntry,
        state: DevBoxState,
        policy: UpdatePolicy,
        report: RunReport,
    ) -> None:
        summary = report.summary("tools")
        now = self.options.clock()
        prior = state.tools.get(tool.name)
        prior_cm = prior.configuration_manager_state if prior else None

        evaluation = None
        evaluation_failed = False
        if prior is not None and tool.configuration_manager.enabled:
            try:
                evaluation = self.tracker.evaluate(tool, prior_cm)
            except ConfigTrackerError as e:
                report.fail("tools", tool.name, "config", str(e))
                evaluation_failed = True

        decision = decide_tool_action(
            tool,
            prior,
            now=now,
            policy=policy,
            force_update_latest=self.options.force_update_latest,
            installer=self.registry.get(tool.source),
            config_evaluation=evaluation,
        )
        logger.info("[tools] %s: %s (%s)", tool.name, decision.action, decision.reason)

        if decision.action == ItemAction.SKIP:
            # Already counted as failed
            if not evaluation_failed:
                summary.skipped += 1
            tracking_dropped = prior_cm is not None and not tool.configuration_manager.enabled
            if prior is not None and tracking_dropped:
                logger.info("[tools] %s: configuration tracking disabled, clearing state", tool.name)
                prior.configuration_manager_state = None
            return

        if decision.action == ItemAction.REFRESH:
            assert prior is not None  # refresh is only decided for installed tools
            if self._sync_config(tool, prior, prior_cm, evaluation, report):
                summary.refreshed += 1
            return

        if decision.action == ItemAction.REINSTALL:
            assert prior is not None
            removal = self.registry.uninstall(prior)
            report.receipts.append(removal)
            if removal.failed:
                report.fail(
                    "tools",
                    tool.name,
                    "reinstall",
                    f"uninstall via {prior.source} failed: {removal.error}",
                )
                return
            receipt = self.registry.install(tool)
        elif decision.action == ItemAction.UPDATE:
            assert prior is not None
            receipt = self.registry.update(tool, prior)
        else:
            receipt = self.registry.install(tool)
        report.receipts.append(receipt)

        if receipt.failed or receipt.tool_state is None:
            error = receipt.error or "installer returned no state"
            report.fail("tools", tool.name, decision.action.value, error)
            if decision.action == ItemAction.REINSTALL:
                # The previous artifact is gone, so is its record
                state.tools.pop(tool.name, None)
            return

        new_state = receipt.tool_state
        new_state.installed_at = _monotonic_timestamp(now, prior).isoformat()
        state.tools[tool.name] = new_state

        if decision.action == ItemAction.INSTALL:
            summary.installed += 1
        elif decision.action == ItemAction.UPDATE:
            summary.updated += 1
        else:
            summary.reinstalled += 1

        if tool.post_installation_hooks:
            outcome = self.hook_runner(tool.name, tool.post_installation_hooks)
            if not outcome.ok:
                report.hook_failures += 1
                report.fail("tools", tool.name, "hook", f"{outcome.failed_command}: {outcome.error}")

        self._sync_config(tool, new_state, prior_cm, None, report)

    def _sync_config(
        self,
        tool: ToolEntry,
        tool_state: ToolState,
        prior_cm: ConfigurationManagerState | None,
        evaluation: ConfigEvaluation | None,
        report: RunReport,
    ) -> bool:
        """Update the tool's tracker state; False if it failed."""
        if not tool.configuration_manager.enabled:
            tool_state.configuration_manager_state = None
            return True
        try:
            tool_state.configuration_manager_state = self.tracker.sync(tool, prior_cm, evaluation)
        except ConfigTrackerError as e:
            tool_state.configuration_manager_state = prior_cm
            report.fail("tools", tool.name, "config", str(e))
            return False
        return True

    # ── Fonts ───────────────────────────────────────────────────

    def reconcile_fonts(self, config: FontConfig, state: DevBoxState, report: RunReport) -> None:
        for font in config.fonts:
            self._reconcile_font(font, state, report)

    def _reconcile_font(self, font: FontEntry, state: DevBoxState, report: RunReport) -> None:
        summary = report.summary("fonts")
        now = self.options.clock()
        prior = state.fonts.get(font.name)
        decision = decide_font_action(font, prior)
        logger.info("[fonts] %s: %s (%s)", font.name, decision.action, decision.reason)

        if decision.action == ItemAction.SKIP:
            summary.skipped += 1
            return

        receipt = self.registry.install_font(font)
        report.receipts.append(receipt)
        if receipt.failed or receipt.font_state is None:
            error = receipt.error or "installer returned no state"
            report.fail("fonts", font.name, decision.action.value, error)
            return

        new_state = receipt.font_state
        previous = parse_timestamp(prior.installed_at) if prior else None
        new_state.installed_at = max(now, previous or now).isoformat()
        state.fonts[font.name] = new_state

        if prior is None:
            summary.installed += 1
            return

        summary.updated += 1
        stale = [f for f in prior.installed_files if f not in new_state.installed_files]
        if stale:
            cleanup = self.registry.uninstall_font(
                prior.model_copy(update={"installed_files": stale})
            )
            if cleanup.failed:
                logger.warning("[fonts] %s: cannot remove old files: %s", font.name, cleanup.error)

    # ── Shell ───────────────────────────────────────────────────

    def reconcile_shell(self, config: ShellConfig, state: DevBoxState, report: RunReport) -> None:
        summary = report.summary("shell")
        try:
            result = self.shell_manager.apply(config)
        except (ShellRcError, OSError) as e:
            report.fail("shell", str(config.shell), "shell", str(e))
            return

        recorded = ShellState(
            shell=config.shell,
            rc_file=str(result.rc_file),
            run_commands=list(config.run_commands.run_commands),
            aliases=list(config.aliases),
        )
        if result.changed:
            summary.installed += 1
        else:
            summary.skipped += 1
        if result.changed or state.shell is None or _shell_differs(state.shell, recorded):
            state.shell = recorded

    # ── Settings ────────────────────────────────────────────────

    def reconcile_settings(
        self, config: SettingsConfig, state: DevBoxState, report: RunReport
    ) -> None:
        summary = report.summary("settings")
        backend = self.settings_backend
        if backend is None:
            logger.warning("No OS settings backend for this platform, skipping settings")
            return

        for os_name in config.settings:
            if os_name != backend.os_name:
                logger.debug("Ignoring %s settings on %s", os_name, backend.os_name)

        for entry in config.for_os(backend.os_name):
            receipt = backend.apply(entry)
            report.receipts.append(receipt)
            if receipt.failed:
                report.fail("settings", entry.state_key, "setting", receipt.error or "apply failed")
                continue

            recorded = state.get_setting(entry.domain, entry.key)
            if receipt.status == "skipped":
                summary.skipped += 1
                if recorded is not None and recorded.value == entry.value:
                    continue
            else:
                summary.installed += 1
            state.set_setting(
                SettingState(
                    domain=entry.domain,
                    key=entry.key,
                    value=entry.value,
                    value_type=entry.value_type,
                    os=backend.os_name,
                    applied_at=self.options.clock().isoformat(),
                )
            )


def _monotonic_timestamp(now: datetime, prior: ToolState | None) -> datetime:
    """``installed_at`` never moves backwards for a key."""
    previous = prior.installed_at_dt if prior else None
    if previous is not None and previous > now:
        return previous
    return now


def _shell_differs(current: ShellState, desired: ShellState) -> bool:
    return (
        current.shell != desired.shell
        or current.rc_file != desired.rc_file
        or current.run_commands != desired.run_commands
        or current.aliases != desired.aliases
    )
