"""
GitHub font installer.

Downloads ``https://github.com/<repo>/releases/download/<tag>/<Name>.zip``
(spaces removed from the name), copies the ``.ttf``/``.otf`` files into
the user font directory, and records every placed file.
"""

from __future__ import annotations

import logging
import platform
import shutil
import tempfile
import time
from pathlib import Path

from setup_devbox.adapters.base import FontInstaller
from setup_devbox.adapters.releases import archive
from setup_devbox.core.models.action import Receipt
from setup_devbox.core.models.fonts import FontEntry
from setup_devbox.core.models.state import FontState

logger = logging.getLogger(__name__)

FONT_SUFFIXES = (".ttf", ".otf")


def font_dir() -> Path:
    """User font directory for this OS."""
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Fonts"
    return Path.home() / ".local" / "share" / "fonts"


def font_asset_url(font: FontEntry) -> str:
    asset = font.name.replace(" ", "")
    return f"https://github.com/{font.repo}/releases/download/{font.tag}/{asset}.zip"


def select_font_files(root: Path, install_only: list[str] | None) -> list[Path]:
    """Font files under ``root``, optionally filtered by name substrings."""
    filters = [f.lower() for f in install_only or [] if f]
    selected = []
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in FONT_SUFFIXES:
            continue
        if filters and not any(f in path.name.lower() for f in filters):
            continue
        selected.append(path)
    return selected


class GithubFontInstaller(FontInstaller):
    source = "github"
    description = "Fonts from GitHub release zips (e.g. Nerd Fonts), filtered by install_only"

    def __init__(self, target_dir: Path | None = None):
        self._target_dir = target_dir

    @property
    def target_dir(self) -> Path:
        return self._target_dir or font_dir()

    def install(self, font: FontEntry) -> Receipt:
        started = time.monotonic()
        url = font_asset_url(font)
        try:
            with tempfile.TemporaryDirectory(prefix="setup-devbox-font-") as tmp:
                workdir = Path(tmp)
                downloaded = archive.download_file(url, workdir / url.rsplit("/", 1)[-1])
                extracted = archive.extract_archive(downloaded, workdir / "extracted")
                files = select_font_files(extracted, font.install_only)
                if not files:
                    return Receipt.failure(
                        installer=self.name,
                        item=font.name,
                        error=f"No font files matched in {url}",
                    )
                self.target_dir.mkdir(parents=True, exist_ok=True)
                placed = []
                for src in files:
                    dest = self.target_dir / src.name
                    shutil.copy2(src, dest)
                    placed.append(str(dest))
        except (archive.ArchiveError, OSError) as e:
            return Receipt.failure(installer=self.name, item=font.name, error=str(e))

        logger.info("[fonts] Installed %d file(s) for %s", len(placed), font.name)
        return Receipt.success(
            installer=self.name,
            item=font.name,
            output=f"installed {len(placed)} font file(s)",
            duration_ms=int((time.monotonic() - started) * 1000),
            font_state=FontState(
                name=font.name,
                version=font.version,
                source=font.source,
                repo=font.repo,
                tag=font.tag,
                install_only=font.install_only,
                installed_files=placed,
            ),
        )

    def uninstall(self, state: FontState) -> Receipt:
        errors = []
        removed = 0
        for file in state.installed_files:
            path = Path(file)
            try:
                if path.exists():
                    path.unlink()
                    removed += 1
            except OSError as e:
                errors.append(f"{path}: {e}")
        if errors:
            return Receipt.failure(
                installer=self.name,
                item=state.name,
                operation="uninstall",
                error="; ".join(errors),
            )
        return Receipt.success(
            installer=self.name,
            item=state.name,
            operation="uninstall",
            output=f"removed {removed} font file(s)",
        )
