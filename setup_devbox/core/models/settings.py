"""OS settings models — the desired-state shape of ``settings.yaml``."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ValueType(StrEnum):
    BOOL = "bool"
    STRING = "string"
    INT = "int"
    FLOAT = "float"


class SettingEntry(BaseModel):
    """One user-defaults style preference."""

    model_config = ConfigDict(populate_by_name=True)

    domain: str
    key: str
    value: str
    value_type: ValueType = Field(default=ValueType.STRING, alias="type")

    @field_validator("value", mode="before")
    @classmethod
    def _value_to_str(cls, value: Any) -> str:
        # YAML turns `true` / `1` into native scalars
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    @field_validator("value_type", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> str:
        return str(value).strip().lower()

    @property
    def state_key(self) -> str:
        return setting_key(self.domain, self.key)


def setting_key(domain: str, key: str) -> str:
    """Key of a setting in the state document."""
    return f"{domain}.{key}"


class SettingsConfig(BaseModel):
    """Parsed ``settings.yaml``: OS name → ordered entries."""

    settings: dict[str, list[SettingEntry]] = Field(default_factory=dict)

    def for_os(self, os_name: str) -> list[SettingEntry]:
        return self.settings.get(os_name, [])

    @field_validator("settings", mode="before")
    @classmethod
    def _drop_empty(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {os_name: entries or [] for os_name, entries in value.items()}
        return value
