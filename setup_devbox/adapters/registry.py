"""
Installer registry — central dispatch for installer operations.

The registry maps a SourceKind to the installer that realizes it. The
engine runs every install, update and uninstall through the registry,
which guarantees a Receipt comes back even when an installer misbehaves
and raises. Update decisions ask the installer from ``get()`` directly.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from setup_devbox.adapters.base import (
    FontInstaller,
    Installer,
    InstallerMeta,
)
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.fonts import FontEntry
from setup_devbox.core.models.state import FontState, ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry

logger = logging.getLogger(__name__)


class InstallerRegistry:
    """``SourceKind → Installer`` map plus the font installer slot."""

    def __init__(self) -> None:
        self._installers: dict[SourceKind, Installer] = {}
        self._font_installers: dict[str, FontInstaller] = {}

    def register(self, installer: Installer) -> None:
        source = installer.source
        if source in self._installers:
            logger.warning("Overwriting existing installer: %s", source)
        self._installers[source] = installer
        logger.debug("Registered installer: %s", source)

    def register_font_installer(self, installer: FontInstaller) -> None:
        self._font_installers[installer.source] = installer
        logger.debug("Registered font installer: %s", installer.source)

    def get(self, source: SourceKind) -> Installer | None:
        return self._installers.get(source)

    def get_font_installer(self, source: str = "github") -> FontInstaller | None:
        return self._font_installers.get(source)

    def list_sources(self) -> list[SourceKind]:
        return list(self._installers.keys())

    def describe(self) -> list[InstallerMeta]:
        """Metadata for every registered installer (help surface)."""
        metas = []
        for installer in [*self._installers.values(), *self._font_installers.values()]:
            try:
                metas.append(installer.describe())
            except Exception as e:
                logger.debug("describe() failed for %r: %s", installer, e)
                metas.append(InstallerMeta(name=installer.name, description="", available=False))
        return metas

    # ── Dispatch ────────────────────────────────────────────────

    def install(self, tool: ToolEntry) -> Receipt:
        return self._dispatch(tool.source, tool.name, "install", lambda i: i.install(tool))

    def update(self, tool: ToolEntry, prior: ToolState) -> Receipt:
        return self._dispatch(tool.source, tool.name, "update", lambda i: i.update(tool, prior))

    def uninstall(self, state: ToolState) -> Receipt:
        return self._dispatch(state.source, state.name, "uninstall", lambda i: i.uninstall(state))

    def install_font(self, font: FontEntry) -> Receipt:
        return self._dispatch_font(font.source, font.name, "install", lambda i: i.install(font))

    def uninstall_font(self, state: FontState) -> Receipt:
        return self._dispatch_font(
            state.source, state.name, "uninstall", lambda i: i.uninstall(state)
        )

    def _dispatch(
        self,
        source: SourceKind,
        item: str,
        operation: str,
        call: Callable[[Installer], Receipt],
    ) -> Receipt:
        installer = self._installers.get(source)
        if installer is None:
            return Receipt.failure(
                installer=str(source),
                item=item,
                operation=operation,
                error=f"No installer registered for '{source}'",
            )
        return _timed(installer.name, item, operation, lambda: call(installer))

    def _dispatch_font(
        self,
        source: str,
        item: str,
        operation: str,
        call: Callable[[FontInstaller], Receipt],
    ) -> Receipt:
        installer = self._font_installers.get(source)
        if installer is None:
            return Receipt.failure(
                installer=f"fonts:{source}",
                item=item,
                operation=operation,
                error=f"No font installer registered for '{source}'",
            )
        return _timed(installer.name, item, operation, lambda: call(installer))


def _timed(name: str, item: str, operation: str, call: Callable[[], Receipt]) -> Receipt:
    start_time = time.monotonic()
    try:
        receipt = call()
    except Exception as e:
        # Installers should never raise
        logger.error("Installer %s raised during %s of %s: %s", name, operation, item, e)
        receipt = Receipt.failure(
            installer=name,
            item=item,
            operation=operation,
            error=f"Unexpected error: {e}",
        )
    if not receipt.duration_ms:
        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
    return receipt


def default_registry() -> InstallerRegistry:
    """Registry with every built-in installer."""
    from setup_devbox.adapters.package_managers.brew import BrewInstaller
    from setup_devbox.adapters.package_managers.cargo import CargoInstaller
    from setup_devbox.adapters.package_managers.go import GoInstaller
    from setup_devbox.adapters.package_managers.pip import PipInstaller
    from setup_devbox.adapters.package_managers.rustup import RustupInstaller
    from setup_devbox.adapters.package_managers.uv import UvInstaller
    from setup_devbox.adapters.releases.fonts import GithubFontInstaller
    from setup_devbox.adapters.releases.github import GithubInstaller
    from setup_devbox.adapters.releases.url import UrlInstaller

    registry = InstallerRegistry()
    for installer in (
        BrewInstaller(),
        CargoInstaller(),
        GithubInstaller(),
        GoInstaller(),
        PipInstaller(),
        RustupInstaller(),
        UrlInstaller(),
        UvInstaller(),
    ):
        registry.register(installer)
    registry.register_font_installer(GithubFontInstaller())
    return registry
