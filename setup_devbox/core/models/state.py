"""
DevBoxState — the installation-state document.

This is the single document that records what the engine has made
true on this machine. It's serialized to ``state.json`` and loaded on
every operation. Keys and field names are snake_case.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from setup_devbox.core.models.settings import ValueType, setting_key
from setup_devbox.core.models.shell import AliasEntry, RunCommandEntry, ShellKind
from setup_devbox.core.models.tools import SourceKind, ToolEntry


def _now_iso() -> str:
    """Current UTC time as RFC 3339 string."""
    return datetime.now(UTC).isoformat()


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp, or None if missing/unparsable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class ConfigurationManagerState(BaseModel):
    """Content hashes of a tracked configuration file."""

    enabled: bool = True
    tools_configuration_path: str
    destination_path: str | None = None
    source_configuration_sha: str = ""
    destination_configuration_sha: str = ""


class ToolState(BaseModel):
    """Record of a successfully installed tool."""

    name: str
    version: str
    source: SourceKind
    install_path: str = ""
    installed_at: str = Field(default_factory=_now_iso)
    renamed_to: str | None = None
    repo: str | None = None
    tag: str | None = None
    url: str | None = None
    options: list[str] | None = None
    executable_path_after_extract: list[str] | None = None
    post_installation_hooks: list[str] | None = None
    configuration_manager_state: ConfigurationManagerState | None = None

    @field_validator("source", mode="before")
    @classmethod
    def _parse_source(cls, value: Any) -> SourceKind:
        if isinstance(value, SourceKind):
            return value
        return SourceKind.parse(str(value))

    @classmethod
    def from_entry(cls, tool: ToolEntry, install_path: str, **kwargs: Any) -> ToolState:
        """Build the state record for a freshly installed tool."""
        return cls(
            name=tool.name,
            version=tool.version,
            source=tool.source,
            install_path=install_path,
            renamed_to=tool.rename_to,
            repo=tool.repo,
            tag=tool.tag,
            url=tool.url,
            options=tool.options,
            executable_path_after_extract=tool.executable_path_after_extract,
            post_installation_hooks=tool.post_installation_hooks,
            **kwargs,
        )

    @property
    def installed_at_dt(self) -> datetime | None:
        return parse_timestamp(self.installed_at)


class FontState(BaseModel):
    """Record of an installed font and the files it placed on disk."""

    name: str
    version: str
    source: str = "github"
    repo: str | None = None
    tag: str | None = None
    install_only: list[str] | None = None
    installed_files: list[str] = Field(default_factory=list)
    installed_at: str = Field(default_factory=_now_iso)


class SettingState(BaseModel):
    """Record of an applied OS preference."""

    domain: str
    key: str
    value: str
    value_type: ValueType = ValueType.STRING
    os: str = "macos"
    applied_at: str = Field(default_factory=_now_iso)


class ShellState(BaseModel):
    """Bookkeeping for the owned blocks written to the shell RC file."""

    shell: ShellKind = ShellKind.ZSH
    rc_file: str = ""
    run_commands: list[RunCommandEntry] = Field(default_factory=list)
    aliases: list[AliasEntry] = Field(default_factory=list)
    updated_at: str = Field(default_factory=_now_iso)


class DevBoxState(BaseModel):
    """Root state model — serialized to ``state.json``.

    Entries are created by the engine on successful install, mutated only
    by the engine, and destroyed only by the removal orchestrator.
    """

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1
    updated_at: str = Field(default_factory=_now_iso)

    # ── Component state ──────────────────────────────────────────
    tools: dict[str, ToolState] = Field(default_factory=dict)
    fonts: dict[str, FontState] = Field(default_factory=dict)
    settings: dict[str, SettingState] = Field(default_factory=dict)
    shell: ShellState | None = None

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def find_tool(self, name: str) -> str | None:
        """Resolve a tool key by name or by its renamed binary."""
        if name in self.tools:
            return name
        for key, tool in self.tools.items():
            if tool.renamed_to == name:
                return key
        return None

    def get_setting(self, domain: str, key: str) -> SettingState | None:
        return self.settings.get(setting_key(domain, key))

    def set_setting(self, setting: SettingState) -> None:
        self.settings[setting_key(setting.domain, setting.key)] = setting
