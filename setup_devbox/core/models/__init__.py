"""
Domain models — Pydantic types for setup-devbox.

All models are re-exported here for convenient access:

    from setup_devbox.core.models import ToolEntry, DevBoxState, Receipt
"""

from setup_devbox.core.models.action import Decision, ItemAction, Receipt
from setup_devbox.core.models.desired import DesiredState, InvalidEntry, MasterConfig
from setup_devbox.core.models.fonts import FontConfig, FontEntry
from setup_devbox.core.models.settings import (
    SettingEntry,
    SettingsConfig,
    ValueType,
    setting_key,
)
from setup_devbox.core.models.shell import (
    AliasEntry,
    ConfigSection,
    RunCommandEntry,
    ShellConfig,
    ShellKind,
    ShellRunCommands,
)
from setup_devbox.core.models.state import (
    ConfigurationManagerState,
    DevBoxState,
    FontState,
    SettingState,
    ShellState,
    ToolState,
)
from setup_devbox.core.models.tools import (
    LATEST,
    ConfigurationManager,
    SourceKind,
    ToolConfig,
    ToolEntry,
)

__all__ = [
    "LATEST",
    # shell.py
    "AliasEntry",
    "ConfigSection",
    # tools.py
    "ConfigurationManager",
    # state.py
    "ConfigurationManagerState",
    # action.py
    "Decision",
    # desired.py
    "DesiredState",
    "DevBoxState",
    # fonts.py
    "FontConfig",
    "FontEntry",
    "FontState",
    "InvalidEntry",
    "ItemAction",
    "MasterConfig",
    "Receipt",
    "RunCommandEntry",
    # settings.py
    "SettingEntry",
    "SettingState",
    "SettingsConfig",
    "ShellConfig",
    "ShellKind",
    "ShellRunCommands",
    "ShellState",
    "SourceKind",
    "ToolConfig",
    "ToolEntry",
    "ToolState",
    "ValueType",
    "setting_key",
]
