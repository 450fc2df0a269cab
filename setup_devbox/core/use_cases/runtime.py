"""
Runtime wiring — the collaborators every use case needs.

The CLI builds the default runtime for the resolved paths; tests hand
in a runtime made of mocks instead.
"""

from __future__ import annotations

from dataclasses import dataclass

from setup_devbox.adapters.registry import InstallerRegistry, default_registry
from setup_devbox.core.config.paths import PathResolver
from setup_devbox.core.services.config_tracker import ConfigTracker
from setup_devbox.core.services.os_settings import SettingsBackend, backend_for_platform
from setup_devbox.core.services.shell_rc import ShellRcManager


@dataclass
class Runtime:
    registry: InstallerRegistry
    tracker: ConfigTracker
    shell_manager: ShellRcManager
    settings_backend: SettingsBackend | None

    @classmethod
    def default(cls, paths: PathResolver) -> Runtime:
        """Real installers, the platform's settings backend, the user's RC file."""
        return cls(
            registry=default_registry(),
            tracker=ConfigTracker(paths.tools_config_dir),
            shell_manager=ShellRcManager(),
            settings_backend=backend_for_platform(),
        )
