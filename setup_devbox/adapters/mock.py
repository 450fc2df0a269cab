"""
Mock installers — test doubles for every installer operation.

By default every call succeeds and produces a plausible state record.
Individual items can be configured to fail, and every call is logged
as ``(operation, item)`` so tests can assert on dispatch order.
"""

from __future__ import annotations

from setup_devbox.adapters.base import FontInstaller, Installer
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.fonts import FontEntry
from setup_devbox.core.models.state import FontState, ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry


class MockInstaller(Installer):
    """Installer that records calls instead of touching the system."""

    def __init__(
        self,
        source: SourceKind = SourceKind.BREW,
        call_log: list[tuple[str, str, str]] | None = None,
    ):
        self._source = source
        # Shared logs let tests see the order across several mocks
        self._call_log: list[tuple[str, str, str]] = call_log if call_log is not None else []
        self._failures: dict[tuple[str, str], str] = {}

    @property
    def source(self) -> SourceKind:
        return self._source

    @property
    def description(self) -> str:
        return f"mock {self._source} installer"

    @property
    def call_log(self) -> list[tuple[str, str]]:
        """``(operation, item)`` pairs this mock received."""
        return [(op, item) for src, op, item in self._call_log if src == self.name]

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    def calls(self, operation: str) -> list[str]:
        return [item for op, item in self.call_log if op == operation]

    def set_failure(self, item: str, operation: str = "install", error: str = "Mock failure") -> None:
        """Configure an operation on ``item`` to fail."""
        self._failures[(operation, item)] = error

    def clear_failures(self) -> None:
        self._failures.clear()

    def reset(self) -> None:
        """Clear the call log and configured failures."""
        self._call_log[:] = [c for c in self._call_log if c[0] != self.name]
        self._failures.clear()

    def _record(self, operation: str, item: str) -> Receipt | None:
        self._call_log.append((self.name, operation, item))
        error = self._failures.get((operation, item))
        if error is not None:
            return Receipt.failure(installer=self.name, item=item, operation=operation, error=error)
        return None

    def install(self, tool: ToolEntry) -> Receipt:
        failure = self._record("install", tool.name)
        if failure:
            return failure
        return Receipt.success(
            installer=self.name,
            item=tool.name,
            output="[mock] installed",
            tool_state=ToolState.from_entry(tool, f"/mock/bin/{tool.binary_name}"),
            metadata={"mock": True},
        )

    def update(self, tool: ToolEntry, prior: ToolState) -> Receipt:
        failure = self._record("update", tool.name)
        if failure:
            return failure
        return Receipt.success(
            installer=self.name,
            item=tool.name,
            operation="update",
            output="[mock] updated",
            tool_state=ToolState.from_entry(tool, f"/mock/bin/{tool.binary_name}"),
            metadata={"mock": True},
        )

    def uninstall(self, state: ToolState) -> Receipt:
        failure = self._record("uninstall", state.name)
        if failure:
            return failure
        return Receipt.success(
            installer=self.name, item=state.name, operation="uninstall", output="[mock] removed"
        )


class MockFontInstaller(FontInstaller):
    """Font installer that records calls and fakes placed files."""

    source = "github"
    description = "mock font installer"

    def __init__(self) -> None:
        self.call_log: list[tuple[str, str]] = []
        self._failures: dict[tuple[str, str], str] = {}

    def set_failure(self, item: str, operation: str = "install", error: str = "Mock failure") -> None:
        self._failures[(operation, item)] = error

    def install(self, font: FontEntry) -> Receipt:
        self.call_log.append(("install", font.name))
        if error := self._failures.get(("install", font.name)):
            return Receipt.failure(installer=self.name, item=font.name, error=error)
        files = [f"/mock/fonts/{font.name.replace(' ', '')}-Regular.ttf"]
        return Receipt.success(
            installer=self.name,
            item=font.name,
            font_state=FontState(
                name=font.name,
                version=font.version,
                source=font.source,
                repo=font.repo,
                tag=font.tag,
                install_only=font.install_only,
                installed_files=files,
            ),
        )

    def uninstall(self, state: FontState) -> Receipt:
        self.call_log.append(("uninstall", state.name))
        if error := self._failures.get(("uninstall", state.name)):
            return Receipt.failure(
                installer=self.name, item=state.name, operation="uninstall", error=error
            )
        return Receipt.success(installer=self.name, item=state.name, operation="uninstall")
