"""Font models — the desired-state shape of ``fonts.yaml``."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from setup_devbox.core.models.tools import LATEST


class FontEntry(BaseModel):
    """A single declared font (``DesiredFont``).

    Only GitHub-hosted fonts are supported: the release asset is
    ``<repo>/releases/download/<tag>/<Name>.zip``.
    """

    name: str
    version: str = LATEST
    source: str = "github"
    repo: str
    tag: str
    install_only: list[str] | None = None

    @field_validator("version", mode="before")
    @classmethod
    def _version_to_str(cls, value: Any) -> str:
        if value is None or str(value).strip() == "":
            return LATEST
        return str(value).strip()

    @field_validator("source", mode="before")
    @classmethod
    def _normalize_source(cls, value: Any) -> str:
        return str(value).strip().lower()

    @model_validator(mode="after")
    def _only_github(self) -> FontEntry:
        if self.source != "github":
            raise ValueError(
                f"Unsupported font source '{self.source}'. Only 'github' is currently supported."
            )
        return self


class FontConfig(BaseModel):
    """Parsed ``fonts.yaml``."""

    fonts: list[FontEntry] = Field(default_factory=list)
