"""
Decision and Receipt models — the execution contract.

Decisions represent what the engine wants to do with an item. Receipts
represent what an installer did. This is the fundamental I/O contract
between the engine and installers: the engine dispatches, installers
return Receipts. Never exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field

from setup_devbox.core.models.state import FontState, ToolState


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ItemAction(StrEnum):
    """Per-item outcome of the decision table."""

    INSTALL = "install"
    REINSTALL = "reinstall"
    UPDATE = "update"
    REFRESH = "refresh"
    SKIP = "skip"


@dataclass(frozen=True)
class Decision:
    """An action plus the human-readable reason it was chosen."""

    action: ItemAction
    reason: str = ""

    @property
    def dispatches_installer(self) -> bool:
        return self.action in (ItemAction.INSTALL, ItemAction.REINSTALL, ItemAction.UPDATE)


class Receipt(BaseModel):
    """Result of an installer operation.

    Receipts capture the full outcome of an install, update, or
    uninstall. The installer NEVER raises: failures are captured here.
    """

    installer: str
    item: str
    operation: str = "install"
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    tool_state: ToolState | None = None
    font_state: FontState | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the operation succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the operation failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        installer: str,
        item: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(installer=installer, item=item, status="ok", output=output, **kwargs)

    @classmethod
    def failure(
        cls,
        installer: str,
        item: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(installer=installer, item=item, status="failed", error=error, **kwargs)

    @classmethod
    def skip(
        cls,
        installer: str,
        item: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(installer=installer, item=item, status="skipped", output=reason, **kwargs)
