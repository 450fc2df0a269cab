"""
GitHub release installer.

Fetches the release for ``repo``/``tag`` from the GitHub API, picks the
asset for this platform, and installs its binary into ``~/bin``.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import time
import urllib.request
from pathlib import Path
from typing import Any

from setup_devbox.adapters.base import Installer
from setup_devbox.adapters.releases import archive
from setup_devbox.adapters.releases.platform import detect_arch, detect_os, select_asset
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.state import ToolState
from setup_devbox.core.models.tools import SourceKind, ToolEntry

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


def fetch_release(repo: str, tag: str, timeout: int = 15) -> dict[str, Any]:
    """Release metadata for ``repo`` at ``tag``.

    Raises:
        archive.ArchiveError: On network or decoding errors.
    """
    api_url = f"{GITHUB_API}/repos/{repo}/releases/tags/{tag}"
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": archive.USER_AGENT,
    }
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    req = urllib.request.Request(api_url, headers=headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return json.loads(resp.read())
    except (OSError, ValueError) as e:
        raise archive.ArchiveError(f"Failed to fetch release {repo}@{tag}: {e}") from e


def remove_binary(installer: str, state: ToolState) -> Receipt:
    """Uninstall for download-based installers: delete the placed binary or bundle."""
    if not state.install_path:
        return Receipt.skip(
            installer=installer, item=state.name, operation="uninstall",
            reason="no recorded install path",
        )
    target = Path(state.install_path)
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink(missing_ok=True)
    except OSError as e:
        return Receipt.failure(
            installer=installer, item=state.name, operation="uninstall",
            error=f"Cannot remove {target}: {e}",
        )
    logger.info("[%s] Removed %s", installer, target)
    return Receipt.success(
        installer=installer, item=state.name, operation="uninstall", output=f"removed {target}"
    )


class GithubInstaller(Installer):
    """Binaries from GitHub release assets."""

    def __init__(self, target_dir: Path | None = None):
        self._target_dir = target_dir

    @property
    def source(self) -> SourceKind:
        return SourceKind.GITHUB

    @property
    def description(self) -> str:
        return "GitHub release assets (repo + tag), matched to this OS/arch"

    def install(self, tool: ToolEntry) -> Receipt:
        started = time.monotonic()
        assert tool.repo and tool.tag  # enforced by ToolEntry validation
        try:
            release = fetch_release(tool.repo, tool.tag)
            asset = select_asset(release.get("assets", []))
            if asset is None:
                names = ", ".join(a.get("name", "") for a in release.get("assets", []))
                return Receipt.failure(
                    installer=self.name,
                    item=tool.name,
                    error=(
                        f"No release asset for {detect_os()}-{detect_arch()} in "
                        f"{tool.repo}@{tool.tag}. Available: {names or 'none'}"
                    ),
                )
            logger.info("[github] %s: using asset %s", tool.name, asset["name"])
            with tempfile.TemporaryDirectory(prefix=f"setup-devbox-{tool.name}-") as tmp:
                workdir = Path(tmp)
                downloaded = archive.download_file(
                    asset["browser_download_url"], workdir / asset["name"]
                )
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

        return Receipt.success(
            installer=self.name,
            item=tool.name,
            output=f"installed {installed}",
            duration_ms=int((time.monotonic() - started) * 1000),
            tool_state=ToolState.from_entry(tool, str(installed)),
            metadata={"asset": asset["name"]},
        )

    def uninstall(self, state: ToolState) -> Receipt:
        return remove_binary(self.name, state)
