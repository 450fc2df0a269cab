"""Shell models — the desired-state shape of ``shellrc.yaml``."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ShellKind(StrEnum):
    ZSH = "zsh"
    BASH = "bash"

    @property
    def rc_filename(self) -> str:
        return f".{self.value}rc"


class ConfigSection(StrEnum):
    """Owned block of the shell RC file."""

    EXPORTS = "Exports"
    ALIASES = "Aliases"
    EVALS = "Evals"
    FUNCTIONS = "Functions"
    PATHS = "Paths"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str) -> ConfigSection:
        for section in cls:
            if section.value.lower() == value.strip().lower():
                return section
        valid = ", ".join(s.value for s in cls)
        raise ValueError(f"Unknown section '{value}'. Valid: {valid}")


# Order in which new blocks are appended to an RC file.
SECTION_ORDER: tuple[ConfigSection, ...] = (
    ConfigSection.PATHS,
    ConfigSection.EVALS,
    ConfigSection.EXPORTS,
    ConfigSection.OTHER,
    ConfigSection.FUNCTIONS,
    ConfigSection.ALIASES,
)


class RunCommandEntry(BaseModel):
    command: str
    section: ConfigSection = ConfigSection.OTHER

    @field_validator("section", mode="before")
    @classmethod
    def _parse_section(cls, value: Any) -> ConfigSection:
        if isinstance(value, ConfigSection):
            return value
        return ConfigSection.parse(str(value))


class AliasEntry(BaseModel):
    name: str
    value: str


class ShellRunCommands(BaseModel):
    shell: ShellKind = ShellKind.ZSH
    run_commands: list[RunCommandEntry] = Field(default_factory=list)

    @field_validator("shell", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> str:
        return str(value).strip().lower()


class ShellConfig(BaseModel):
    """Parsed ``shellrc.yaml`` (``DesiredShell``)."""

    run_commands: ShellRunCommands = Field(default_factory=ShellRunCommands)
    aliases: list[AliasEntry] = Field(default_factory=list)

    @property
    def shell(self) -> ShellKind:
        return self.run_commands.shell
