"""
Installer base — the contract between the engine and installer backends.

The engine only talks to installers through this protocol, never
directly to package managers or downloads. Installers perform external
side effects and return receipts. They NEVER raise: failures are
captured in the Receipt.

To create a new installer:
    1. Subclass Installer (or FontInstaller)
    2. Implement source, description, install, uninstall
    3. Register it in the InstallerRegistry
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta

from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.fonts import FontEntry
from setup_devbox.core.models.policy import UpdatePolicy
from setup_devbox.core.models.state import FontState, ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry


@dataclass(frozen=True)
class InstallerMeta:
    """What the help surface shows about an installer."""

    name: str
    description: str
    executable: str | None = None
    available: bool = True


@dataclass(frozen=True)
class UpdateDecision:
    """Answer of ``Installer.needs_update``."""

    update: bool
    reason: str


class Installer(ABC):
    """Abstract base class for tool installers."""

    # Command that must be on PATH for this installer to work
    executable: str | None = None

    @property
    @abstractmethod
    def source(self) -> SourceKind:
        """The source kind this installer realizes."""

    @property
    @abstractmethod
    def description(self) -> str:
        """One-line human description."""

    @property
    def name(self) -> str:
        return self.source.value

    def is_available(self) -> bool:
        """Whether the underlying command exists. Fast, never raises."""
        if self.executable is None:
            return True
        return shutil.which(self.executable) is not None

    def describe(self) -> InstallerMeta:
        return InstallerMeta(
            name=self.name,
            description=self.description,
            executable=self.executable,
            available=self.is_available(),
        )

    @abstractmethod
    def install(self, tool: ToolEntry) -> Receipt:
        """Install ``tool``; a successful receipt carries the new ToolState."""

    def update(self, tool: ToolEntry, prior: ToolState) -> Receipt:
        """Bring an installed tool to the desired version.

        The default simply re-runs install; package managers with a
        native upgrade command override this.
        """
        receipt = self.install(tool)
        receipt.operation = "update"
        return receipt

    @abstractmethod
    def uninstall(self, state: ToolState) -> Receipt:
        """Remove what ``install`` put on disk."""

    def needs_update(
        self,
        tool: ToolEntry,
        prior: ToolState,
        now: datetime,
        policy: UpdatePolicy,
        force_update_latest: bool = False,
    ) -> UpdateDecision:
        """Decide whether an installed tool should be updated."""
        return version_update_decision(tool, prior, now, policy, force_update_latest)

    def unavailable(self, item: str, operation: str = "install") -> Receipt:
        """Failure receipt for a missing executable."""
        return Receipt.failure(
            installer=self.name,
            item=item,
            operation=operation,
            error=f"'{self.executable}' not found on PATH; it is required for {self.name} installs",
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} source={self.name!r}>"


def version_update_decision(
    tool: ToolEntry,
    prior: ToolState,
    now: datetime,
    policy: UpdatePolicy,
    force_update_latest: bool = False,
) -> UpdateDecision:
    """Default update rule.

    A pinned version updates when it differs from the installed one.
    A ``latest`` tool updates when forced or when its install is older
    than the policy window.
    """
    if not tool.is_latest:
        if tool.version != prior.version:
            return UpdateDecision(True, f"version changed ({prior.version} → {tool.version})")
        return UpdateDecision(False, f"version {tool.version} already installed")
    return latest_update_decision(prior, now, policy, force_update_latest)


def latest_update_decision(
    prior: ToolState,
    now: datetime,
    policy: UpdatePolicy,
    force_update_latest: bool,
) -> UpdateDecision:
    """The policy-window rule for ``latest`` (and channel) versions."""
    if force_update_latest:
        return UpdateDecision(True, "forced update of latest version")
    installed_at = prior.installed_at_dt
    if installed_at is None:
        return UpdateDecision(True, "unknown install time")
    age = now - installed_at
    if age > policy.window:
        return UpdateDecision(True, f"installed {_humanize(age)} ago, older than policy window")
    return UpdateDecision(False, f"installed {_humanize(age)} ago, within policy window")


def _humanize(delta: timedelta) -> str:
    seconds = int(delta.total_seconds())
    if seconds >= 86400:
        return f"{seconds // 86400}d"
    if seconds >= 3600:
        return f"{seconds // 3600}h"
    return f"{max(seconds, 0) // 60}m"


class FontInstaller(ABC):
    """Abstract base class for font installers."""

    source: str = "github"
    description: str = ""

    @property
    def name(self) -> str:
        return f"fonts:{self.source}"

    def describe(self) -> InstallerMeta:
        return InstallerMeta(name=self.name, description=self.description)

    @abstractmethod
    def install(self, font: FontEntry) -> Receipt:
        """Install ``font``; a successful receipt carries the new FontState."""

    @abstractmethod
    def uninstall(self, state: FontState) -> Receipt:
        """Delete the files recorded in ``state``."""
