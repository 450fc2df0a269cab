"""
Tool models — the desired-state shape of ``tools.yaml``.

Every entry is validated at parse time: the source is carried as a
``SourceKind`` variant and per-source field rules are enforced here, so
the engine never re-parses strings.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

LATEST = "latest"


class SourceKind(StrEnum):
    """Installer backend responsible for a tool."""

    BREW = "brew"
    CARGO = "cargo"
    GITHUB = "github"
    GO = "go"
    PIP = "pip"
    RUSTUP = "rustup"
    URL = "url"
    UV = "uv"

    @classmethod
    def parse(cls, value: str) -> SourceKind:
        """Parse a source name, accepting legacy install-method names."""
        normalized = value.strip().lower()
        normalized = _LEGACY_METHODS.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            supported = ", ".join(s.value for s in cls)
            raise ValueError(
                f"Invalid tool source: '{value}'. Supported sources are: {supported}"
            ) from None


_LEGACY_METHODS = {
    "cargo-install": "cargo",
    "go-install": "go",
    "uv-tool": "uv",
    "uv-python": "uv",
    "direct-url": "url",
}

PACKAGE_MANAGER_SOURCES = frozenset(
    {
        SourceKind.BREW,
        SourceKind.CARGO,
        SourceKind.GO,
        SourceKind.PIP,
        SourceKind.RUSTUP,
        SourceKind.UV,
    }
)


class ConfigurationManager(BaseModel):
    """Opt-in tracking of a tool-owned configuration file."""

    enabled: bool = False
    tools_configuration_path: str = ""
    destination_path: str | None = None

    @model_validator(mode="after")
    def _path_required_when_enabled(self) -> ConfigurationManager:
        if self.enabled and not self.tools_configuration_path:
            raise ValueError(
                "configuration_manager.tools_configuration_path is required when enabled"
            )
        return self


class ToolEntry(BaseModel):
    """A single declared tool (``DesiredTool``)."""

    name: str
    version: str = LATEST
    source: SourceKind
    url: str | None = None
    repo: str | None = None
    tag: str | None = None
    rename_to: str | None = None
    options: list[str] | None = None
    executable_path_after_extract: list[str] | None = None
    post_installation_hooks: list[str] | None = None
    configuration_manager: ConfigurationManager = Field(
        default_factory=ConfigurationManager
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_aliases(cls, data: Any) -> Any:
        if isinstance(data, dict) and "additional_cmd" in data:
            data = dict(data)
            hooks = data.pop("additional_cmd")
            data.setdefault("post_installation_hooks", hooks)
        return data

    @field_validator("source", mode="before")
    @classmethod
    def _parse_source(cls, value: Any) -> SourceKind:
        if isinstance(value, SourceKind):
            return value
        return SourceKind.parse(str(value))

    @field_validator("version", mode="before")
    @classmethod
    def _version_to_str(cls, value: Any) -> str:
        if value is None or str(value).strip() == "":
            return LATEST
        return str(value).strip()

    @field_validator("executable_path_after_extract", mode="before")
    @classmethod
    def _split_path(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        if isinstance(value, str):
            parts = [p for p in value.split("/") if p]
            return parts or None
        return [str(v) for v in value]

    @model_validator(mode="after")
    def _validate_source_fields(self) -> ToolEntry:
        if self.source == SourceKind.GITHUB:
            if not self.repo:
                raise ValueError("Missing required field: repo (for GitHub source)")
            if not self.tag:
                raise ValueError("Missing required field: tag (for GitHub source)")
            if self.url:
                raise ValueError("Conflicting fields: url should not be present for GitHub source")
        elif self.source == SourceKind.URL:
            if not self.url:
                raise ValueError("Missing required field: url (for URL source)")
            if self.repo or self.tag:
                raise ValueError(
                    "Conflicting fields: repo or tag should not be present for URL source"
                )
        elif self.source in PACKAGE_MANAGER_SOURCES:
            if self.repo or self.tag or self.url or self.executable_path_after_extract:
                raise ValueError(
                    "Conflicting fields: repo, tag, url, or executable_path_after_extract "
                    f"should not be present for '{self.source}' source"
                )
        if self.source == SourceKind.RUSTUP and self.is_latest:
            raise ValueError(
                "Missing required field: version (toolchain name such as 'stable' "
                "or '1.78.0') for rustup source"
            )
        return self

    @property
    def is_latest(self) -> bool:
        return self.version == LATEST

    @property
    def binary_name(self) -> str:
        """Name of the installed executable."""
        return self.rename_to or self.name


class ToolConfig(BaseModel):
    """Parsed ``tools.yaml``."""

    update_latest_only_after: str | None = None
    tools: list[ToolEntry] = Field(default_factory=list)
