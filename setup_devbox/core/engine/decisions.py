"""
Per-item decision table.

Pure functions: for fixed (desired, prior state, clock, flags) the
decision is always the same, and nothing here touches the system.

Tools:
    absent                          → install
    source changed                  → reinstall
    installer says update needed    → update
    tracked config needs redeploy   → refresh
    otherwise                       → skip
"""

from __future__ import annotations

from datetime import datetime

from setup_devbox.adapters.base import Installer, version_update_decision
from setup_devbox.core.models.action import Decision, ItemAction
from setup_devbox.core.models.fonts import FontEntry
from setup_devbox.core.models.policy import UpdatePolicy
from setup_devbox.core.models.state import FontState, ToolState
from setup_devbox.core.models.tools import ToolEntry
from setup_devbox.core.services.config_tracker import ConfigEvaluation


def decide_tool_action(
    desired: ToolEntry,
    prior: ToolState | None,
    *,
    now: datetime,
    policy: UpdatePolicy,
    force_update_latest: bool = False,
    installer: Installer | None = None,
    config_evaluation: ConfigEvaluation | None = None,
) -> Decision:
    if prior is None:
        return Decision(ItemAction.INSTALL, "not installed")

    if desired.source != prior.source:
        return Decision(
            ItemAction.REINSTALL, f"source changed ({prior.source} → {desired.source})"
        )

    if installer is not None:
        update = installer.needs_update(desired, prior, now, policy, force_update_latest)
    else:
        update = version_update_decision(desired, prior, now, policy, force_update_latest)
    if update.update:
        return Decision(ItemAction.UPDATE, update.reason)

    if config_evaluation is not None and config_evaluation.needs_refresh:
        return Decision(ItemAction.REFRESH, config_evaluation.reason)

    return Decision(ItemAction.SKIP, update.reason)


def decide_font_action(desired: FontEntry, prior: FontState | None) -> Decision:
    if prior is None:
        return Decision(ItemAction.INSTALL, "not installed")
    if desired.version != prior.version:
        return Decision(
            ItemAction.UPDATE, f"version changed ({prior.version} → {desired.version})"
        )
    return Decision(ItemAction.SKIP, f"version {desired.version} already installed")
