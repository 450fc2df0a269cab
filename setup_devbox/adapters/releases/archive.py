"""
Download, unpack, and place release binaries.

Shared by the GitHub, URL, and font installers. Downloads use
``urllib.request``; archives are unpacked with ``tarfile``/``zipfile``
or the single-stream decompressors. macOS ``.pkg`` and ``.dmg`` assets
go through ``installer`` and ``hdiutil``.
"""

from __future__ import annotations

import bz2
import gzip
import logging
import lzma
import os
import shutil
import stat
import tarfile
import urllib.request
import zipfile
from pathlib import Path

from setup_devbox.adapters.shell.command import run_command
from setup_devbox.core.errors import DevboxError

logger = logging.getLogger(__name__)

USER_AGENT = "setup-devbox"
DOWNLOAD_TIMEOUT = 120
PKG_TIMEOUT = 600

# File names that are never the executable inside an archive
_SKIP_SUFFIXES = (
    ".md", ".txt", ".json", ".1", ".ps1", ".fish", ".zsh", ".bash",
    ".log", ".yaml", ".yml", ".html", ".sha256",
)
_SKIP_MARKERS = ("license", "readme", "changelog")

_EXEC_MAGIC = (
    b"\x7fELF",  # ELF
    b"\xcf\xfa\xed\xfe",  # Mach-O 64-bit
    b"\xce\xfa\xed\xfe",  # Mach-O 32-bit
    b"\xca\xfe\xba\xbe",  # Mach-O universal
    b"#!",  # script
)


class ArchiveError(DevboxError):
    """Raised inside the release pipeline; installers turn it into a failed receipt."""


def bin_dir() -> Path:
    """Where downloaded binaries are installed (``~/bin``)."""
    return Path.home() / "bin"


# ── Download ────────────────────────────────────────────────────


def download_file(url: str, dest: Path, timeout: int = DOWNLOAD_TIMEOUT) -> Path:
    """Stream ``url`` to ``dest``.

    Raises:
        ArchiveError: On network errors or an empty download.
    """
    logger.debug("Downloading %s → %s", url, dest)
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(dest, "wb") as fh:
            shutil.copyfileobj(resp, fh)
    except OSError as e:
        raise ArchiveError(f"Download failed for {url}: {e}") from e
    if dest.stat().st_size == 0:
        raise ArchiveError(f"Downloaded file is empty: {url}")
    return dest


def filename_from_url(url: str, fallback: str) -> str:
    name = url.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]
    return name or fallback


# ── Unpack ──────────────────────────────────────────────────────


def detect_file_type(path: Path) -> str:
    """Classify a download by its name."""
    name = path.name.lower()
    for suffixes, kind in (
        ((".tar.gz", ".tgz"), "tar.gz"),
        ((".tar.xz", ".txz"), "tar.xz"),
        ((".tar.bz2", ".tbz", ".tbz2"), "tar.bz2"),
        ((".zip",), "zip"),
        ((".tar",), "tar"),
        ((".gz",), "gz"),
        ((".bz2",), "bz2"),
        ((".xz",), "xz"),
        ((".pkg",), "pkg"),
        ((".dmg",), "dmg"),
        ((".7z",), "7z"),
    ):
        if name.endswith(suffixes):
            return kind
    return "binary"


def extract_archive(path: Path, dest: Path) -> Path:
    """Unpack ``path`` into ``dest`` and return the directory to search.

    Raises:
        ArchiveError: For unsupported or corrupt archives.
    """
    kind = detect_file_type(path)
    dest.mkdir(parents=True, exist_ok=True)
    try:
        if kind.startswith("tar"):
            with tarfile.open(path) as tar:
                tar.extractall(dest, filter="data")
        elif kind == "zip":
            with zipfile.ZipFile(path) as zf:
                zf.extractall(dest)
        elif kind in ("gz", "bz2", "xz"):
            opener = {"gz": gzip.open, "bz2": bz2.open, "xz": lzma.open}[kind]
            target = dest / path.name.rsplit(".", 1)[0]
            with opener(path, "rb") as src, open(target, "wb") as out:
                shutil.copyfileobj(src, out)
        elif kind == "binary":
            shutil.copy2(path, dest / path.name)
        else:
            raise ArchiveError(f"Unsupported package type '{kind}' for {path.name}")
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, lzma.LZMAError, OSError) as e:
        raise ArchiveError(f"Cannot extract {path.name}: {e}") from e
    return dest


# ── Locate ──────────────────────────────────────────────────────


def _looks_executable(path: Path) -> bool:
    if os.access(path, os.X_OK):
        return True
    try:
        with open(path, "rb") as fh:
            head = fh.read(4)
    except OSError:
        return False
    return head.startswith(_EXEC_MAGIC)


def find_executable(root: Path, tool_name: str, rename_to: str | None = None) -> Path | None:
    """Search an unpacked tree for the tool's executable.

    An exact file-name match (tool name or rename target) wins. Otherwise
    the largest executable-looking file is taken.
    """
    wanted = {tool_name.lower()}
    if rename_to:
        wanted.add(rename_to.lower())

    candidates: list[Path] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.is_symlink():
            continue
        lowered = path.name.lower()
        if lowered.endswith(_SKIP_SUFFIXES) or any(m in lowered for m in _SKIP_MARKERS):
            continue
        if lowered in wanted:
            return path
        if _looks_executable(path):
            candidates.append(path)

    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_size)


def locate_binary(
    root: Path,
    tool_name: str,
    rename_to: str | None = None,
    path_fragments: list[str] | None = None,
) -> Path:
    """Resolve the binary inside ``root``.

    ``path_fragments`` (``executable_path_after_extract``) is tried
    relative to the root and, for archives with a single top-level
    directory, relative to that directory.

    Raises:
        ArchiveError: If nothing suitable is found.
    """
    if path_fragments:
        direct = root.joinpath(*path_fragments)
        if direct.is_file():
            return direct
        children = [c for c in root.iterdir() if c.is_dir()]
        if len(children) == 1:
            nested = children[0].joinpath(*path_fragments)
            if nested.is_file():
                return nested
        raise ArchiveError(
            f"executable_path_after_extract '{'/'.join(path_fragments)}' not found in archive"
        )

    found = find_executable(root, tool_name, rename_to)
    if found is None:
        raise ArchiveError(f"No executable for '{tool_name}' found in archive")
    return found


def install_binary(src: Path, dest: Path) -> Path:
    """Copy ``src`` to ``dest`` and mark it executable."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    if dest.exists():
        dest.unlink()
    shutil.copy2(src, dest)
    mode = dest.stat().st_mode
    dest.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH | stat.S_IRUSR)
    logger.debug("Installed %s → %s", src.name, dest)
    return dest


# ── macOS packages ──────────────────────────────────────────────


def applications_dir() -> Path:
    """Where ``.app`` bundles from disk images are copied (``~/Applications``)."""
    return Path.home() / "Applications"


def _pkg_install_path(tool_name: str, rename_to: str | None) -> Path:
    """Best guess at where a ``.pkg`` put the tool.

    Application bundles are checked first, then the usual CLI locations
    for the tool name and its rename target.
    """
    names = [tool_name] + ([rename_to] if rename_to and rename_to != tool_name else [])
    for name in names:
        for candidate in (
            applications_dir() / f"{name}.app",
            Path("/Applications") / f"{name}.app",
            Path("/usr/local") / name,
            Path("/usr/local/bin") / name,
        ):
            if candidate.exists():
                return candidate
    fallback = Path("/usr/local/bin") / (rename_to or tool_name)
    logger.warning("Cannot tell where the package put '%s', assuming %s", tool_name, fallback)
    return fallback


def install_pkg(pkg: Path, tool_name: str, rename_to: str | None = None) -> Path:
    """Install a ``.pkg`` for the current user and return the inferred path.

    Raises:
        ArchiveError: If ``installer`` fails.
    """
    result = run_command(
        ["installer", "-pkg", str(pkg), "-target", "CurrentUserHomeDirectory"],
        timeout=PKG_TIMEOUT,
    )
    if not result.ok:
        raise ArchiveError(f"installer failed for {pkg.name}: {result.message}")
    return _pkg_install_path(tool_name, rename_to)


def install_dmg(
    dmg: Path,
    workdir: Path,
    tool_name: str,
    binary_name: str,
    path_fragments: list[str] | None = None,
    target_dir: Path | None = None,
) -> Path:
    """Mount a disk image and copy out its ``.app`` bundle or binary.

    The image is always detached, even when copying fails.

    Raises:
        ArchiveError: If the image cannot be mounted or holds nothing usable.
    """
    mount = workdir / "mount"
    mount.mkdir(parents=True, exist_ok=True)
    attach = run_command(
        ["hdiutil", "attach", str(dmg), "-nobrowse", "-readonly", "-mountpoint", str(mount)],
        timeout=PKG_TIMEOUT,
    )
    if not attach.ok:
        raise ArchiveError(f"Cannot mount {dmg.name}: {attach.message}")

    try:
        apps = sorted(p for p in mount.iterdir() if p.suffix == ".app" and p.is_dir())
        if apps:
            wanted = {f"{tool_name}.app".lower(), f"{binary_name}.app".lower()}
            app = next((a for a in apps if a.name.lower() in wanted), apps[0])
            dest = applications_dir() / app.name
            if dest.exists():
                shutil.rmtree(dest)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(app, dest, symlinks=True)
            logger.debug("Copied %s → %s", app.name, dest)
            return dest
        source = locate_binary(mount, tool_name, binary_name, path_fragments)
        return install_binary(source, (target_dir or bin_dir()) / binary_name)
    except OSError as e:
        raise ArchiveError(f"Cannot copy from {dmg.name}: {e}") from e
    finally:
        detach = run_command(["hdiutil", "detach", str(mount), "-quiet"])
        if not detach.ok:
            logger.warning("Failed to detach %s: %s", mount, detach.message)


def deploy_download(
    downloaded: Path,
    workdir: Path,
    tool_name: str,
    binary_name: str,
    path_fragments: list[str] | None = None,
    target_dir: Path | None = None,
) -> Path:
    """Unpack a downloaded asset and install its binary as ``binary_name``."""
    kind = detect_file_type(downloaded)
    if kind == "pkg":
        return install_pkg(downloaded, tool_name, binary_name)
    if kind == "dmg":
        return install_dmg(
            downloaded, workdir, tool_name, binary_name, path_fragments, target_dir
        )
    if kind == "binary":
        source = downloaded
    else:
        extracted = extract_archive(downloaded, workdir / "extracted")
        source = locate_binary(extracted, tool_name, binary_name, path_fragments)
    return install_binary(source, (target_dir or bin_dir()) / binary_name)
