"""
Desired state — the union of the sub-documents.

``MasterConfig`` is the shape of ``config.yaml``; ``DesiredState`` is
what the loader hands to the engine after following its references.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel

from setup_devbox.core.models.fonts import FontConfig
from setup_devbox.core.models.settings import SettingsConfig
from setup_devbox.core.models.shell import ShellConfig
from setup_devbox.core.models.tools import ToolConfig

CATEGORIES = ("tools", "fonts", "shellrc", "settings")


class MasterConfig(BaseModel):
    """``config.yaml``: optional paths to the four sub-documents."""

    tools: str | None = None
    fonts: str | None = None
    shellrc: str | None = None
    settings: str | None = None


@dataclass
class InvalidEntry:
    """A sub-document entry rejected at parse time."""

    category: str
    name: str
    error: str


@dataclass
class DesiredState:
    """Fully normalized desired state. A ``None`` category is skipped."""

    tools: ToolConfig | None = None
    fonts: FontConfig | None = None
    shell: ShellConfig | None = None
    settings: SettingsConfig | None = None
    invalid_entries: list[InvalidEntry] = field(default_factory=list)
    # Category → reason the category was skipped while loading
    load_errors: dict[str, str] = field(default_factory=dict)
    # Category → file the category was loaded from
    sources: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return all(
            c is None for c in (self.tools, self.fonts, self.shell, self.settings)
        )
