"""Direct-URL installer: download, unpack if needed, install into ~/bin."""

from __future__ import annotations

import logging
import tempfile
import time
from pathlib import Path

from setup_devbox.adapters.base import Installer
from setup_devbox.adapters.releases import archive
from setup_devbox.adapters.releases.github import remove_binary
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.state import ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry

logger = logging.getLogger(__name__)


class UrlInstaller(Installer):
    def __init__(self, target_dir: Path | None = None):
        self._target_dir = target_dir

    @property
    def source(self) -> SourceKind:
        return SourceKind.URL

    @property
    def description(self) -> str:
        return "Direct download of a binary or archive from a URL"

    def install(self, tool: ToolEntry) -> Receipt:
        started = time.monotonic()
        assert tool.url  # enforced by ToolEntry validation
        filename = archive.filename_from_url(tool.url, f"{tool.name}-download")
        try:
            with tempfile.TemporaryDirectory(prefix=f"setup-devbox-{tool.name}-") as tmp:
                workdir = Path(tmp)
                downloaded = archive.download_file(tool.url, workdir / filename)
                installed = archive.deploy_download(
                    downloaded,
                    workdir,
                    tool.name,
                    tool.binary_name,
                    tool.executable_path_after_extract,
                    self._target_dir,
                )
        except archive.ArchiveError as e:
            return Receipt.failure(installer=self.name, item=tool.name, error=str(e))

        logger.info("[url] Installed %s at %s", tool.name, installed)
        return Receipt.success(
            installer=self.name,
            item=tool.name,
            output=f"installed {installed}",
            duration_ms=int((time.monotonic() - started) * 1000),
            tool_state=ToolState.from_entry(tool, str(installed)),
        )

    def uninstall(self, state: ToolState) -> Receipt:
        return remove_binary(self.name, state)
