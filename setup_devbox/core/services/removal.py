"""
Removal orchestrator — the inverse of reconciliation.

For each request: look up the state entry, undo it through the
responsible installer or backend, then drop the entry from state and
from the desired sub-document so the next apply does not bring it
back. A failure leaves both state and document untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from setup_devbox.adapters.registry import InstallerRegistry
from setup_devbox.core.config.editor import DocumentEditError, DocumentEditor
from setup_devbox.core.models.shell import ShellConfig, ShellRunCommands
from setup_devbox.core.models.state import DevBoxState
from setup_devbox.core.persistence.state_file import StateStore
from setup_devbox.core.services.config_tracker import ConfigTracker
from setup_devbox.core.services.os_settings import SettingsBackend
from setup_devbox.core.services.shell_rc import ShellRcError, ShellRcManager

logger = logging.getLogger(__name__)


# ── Requests ────────────────────────────────────────────────────


@dataclass(frozen=True)
class ToolRemoval:
    name: str
    category = "tools"


@dataclass(frozen=True)
class FontRemoval:
    name: str
    category = "fonts"


@dataclass(frozen=True)
class AliasRemoval:
    name: str
    category = "shellrc"


@dataclass(frozen=True)
class SettingRemoval:
    domain: str
    key: str
    category = "settings"

    @property
    def name(self) -> str:
        return f"{self.domain}.{self.key}"


RemovalRequest = ToolRemoval | FontRemoval | AliasRemoval | SettingRemoval


@dataclass
class RemovalFailure:
    category: str
    name: str
    message: str


@dataclass
class RemovalSummary:
    removed: list[str] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    failed: list[RemovalFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "removed": self.removed,
            "not_found": self.not_found,
            "failed": [
                {"category": f.category, "name": f.name, "message": f.message}
                for f in self.failed
            ],
        }


# ── Orchestrator ────────────────────────────────────────────────


class RemovalOrchestrator:
    """Dispatches removal requests and keeps state and documents in step."""

    def __init__(
        self,
        registry: InstallerRegistry,
        store: StateStore,
        tracker: ConfigTracker,
        documents: dict[str, Path],
        shell_manager: ShellRcManager | None = None,
        settings_backend: SettingsBackend | None = None,
    ):
        self.registry = registry
        self.store = store
        self.tracker = tracker
        self.documents = documents
        self.shell_manager = shell_manager or ShellRcManager()
        self.settings_backend = settings_backend

    def remove(self, requests: list[RemovalRequest], state: DevBoxState) -> RemovalSummary:
        summary = RemovalSummary()
        for request in requests:
            if isinstance(request, ToolRemoval):
                self._remove_tool(request, state, summary)
            elif isinstance(request, FontRemoval):
                self._remove_font(request, state, summary)
            elif isinstance(request, AliasRemoval):
                self._remove_alias(request, state, summary)
            else:
                self._remove_setting(request, state, summary)
        return summary

    def _not_found(self, request: RemovalRequest, summary: RemovalSummary) -> None:
        logger.warning("[%s] '%s' is not recorded in state, nothing to remove", request.category, request.name)
        summary.not_found.append(request.name)

    def _commit(
        self,
        request: RemovalRequest,
        state: DevBoxState,
        summary: RemovalSummary,
        keys: tuple[str, ...],
        match: dict[str, str],
    ) -> None:
        """Persist state and drop the entry from its sub-document."""
        self.store.save(state)
        summary.removed.append(request.name)
        path = self.documents.get(request.category)
        if path is None:
            return
        try:
            DocumentEditor(path).remove(keys, match)
        except DocumentEditError as e:
            logger.error("[%s] %s removed but %s was not updated: %s", request.category, request.name, path, e)
            summary.failed.append(RemovalFailure(request.category, request.name, str(e)))

    def _remove_tool(self, request: ToolRemoval, state: DevBoxState, summary: RemovalSummary) -> None:
        key = state.find_tool(request.name)
        if key is None:
            self._not_found(request, summary)
            return
        tool_state = state.tools[key]
        receipt = self.registry.uninstall(tool_state)
        if receipt.failed:
            summary.failed.append(RemovalFailure("tools", request.name, receipt.error or "uninstall failed"))
            return
        if tool_state.configuration_manager_state is not None:
            self.tracker.remove_destination(key, tool_state.configuration_manager_state)
        del state.tools[key]
        logger.info("[tools] Removed %s", key)
        self._commit(request, state, summary, ("tools",), {"name": key})

    def _remove_font(self, request: FontRemoval, state: DevBoxState, summary: RemovalSummary) -> None:
        font_state = state.fonts.get(request.name)
        if font_state is None:
            self._not_found(request, summary)
            return
        receipt = self.registry.uninstall_font(font_state)
        if receipt.failed:
            summary.failed.append(RemovalFailure("fonts", request.name, receipt.error or "uninstall failed"))
            return
        del state.fonts[request.name]
        logger.info("[fonts] Removed %s", request.name)
        self._commit(request, state, summary, ("fonts",), {"name": request.name})

    def _remove_alias(self, request: AliasRemoval, state: DevBoxState, summary: RemovalSummary) -> None:
        shell = state.shell
        if shell is None or not any(a.name == request.name for a in shell.aliases):
            self._not_found(request, summary)
            return
        remaining = [a for a in shell.aliases if a.name != request.name]
        config = ShellConfig(
            run_commands=ShellRunCommands(shell=shell.shell, run_commands=shell.run_commands),
            aliases=remaining,
        )
        try:
            self.shell_manager.apply(config)
        except (ShellRcError, OSError) as e:
            summary.failed.append(RemovalFailure("shellrc", request.name, str(e)))
            return
        shell.aliases = remaining
        logger.info("[shell] Removed alias %s", request.name)
        self._commit(request, state, summary, ("aliases",), {"name": request.name})

    def _remove_setting(self, request: SettingRemoval, state: DevBoxState, summary: RemovalSummary) -> None:
        setting = state.get_setting(request.domain, request.key)
        if setting is None:
            self._not_found(request, summary)
            return
        backend = self.settings_backend
        if backend is None or backend.os_name != setting.os:
            summary.failed.append(
                RemovalFailure("settings", request.name, f"no settings backend for '{setting.os}' here")
            )
            return
        receipt = backend.delete(request.domain, request.key)
        if receipt.failed:
            summary.failed.append(RemovalFailure("settings", request.name, receipt.error or "delete failed"))
            return
        del state.settings[request.name]
        logger.info("[settings] Removed %s", request.name)
        self._commit(
            request,
            state,
            summary,
            ("settings", setting.os),
            {"domain": request.domain, "key": request.key},
        )
