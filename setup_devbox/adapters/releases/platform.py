"""
Platform detection and release-asset matching.

Asset names are matched by substring against OS and architecture
aliases. On Apple Silicon an x86_64-only asset is accepted as a
Rosetta fallback, but a native asset always wins.
"""

from __future__ import annotations

import platform
from typing import Any

_OS_ALIASES = {
    "macos": ("macos", "darwin", "apple-darwin", "macosx"),
    "linux": ("linux",),
    "windows": ("windows", "win32", "win64"),
}

_ARCH_ALIASES = {
    "arm64": ("arm64", "aarch64"),
    "x86_64": ("x86_64", "amd64"),
}

# Assets that are never the installable binary
_EXCLUDED_MARKERS = ("src", "source", "debug", "checksum", "sha256", ".sig")
_EXCLUDED_SUFFIXES = (".asc", ".sig", ".sha256", ".sbom", ".pem")


def normalize_os(name: str) -> str:
    lowered = name.lower()
    for canonical, aliases in _OS_ALIASES.items():
        if lowered in aliases:
            return canonical
    return lowered


def normalize_arch(name: str) -> str:
    lowered = name.lower()
    for canonical, aliases in _ARCH_ALIASES.items():
        if lowered in aliases:
            return canonical
    return lowered


def detect_os() -> str:
    return normalize_os(platform.system())


def detect_arch() -> str:
    return normalize_arch(platform.machine())


def _contains_any(name: str, needles: tuple[str, ...]) -> bool:
    return any(needle in name for needle in needles)


def is_excluded(filename: str) -> bool:
    lowered = filename.lower()
    return _contains_any(lowered, _EXCLUDED_MARKERS) or lowered.endswith(_EXCLUDED_SUFFIXES)


def is_rosetta_fallback(filename: str, os_name: str, arch: str) -> bool:
    lowered = filename.lower()
    return (
        os_name == "macos"
        and arch == "arm64"
        and "x86_64" in lowered
        and not _contains_any(lowered, _ARCH_ALIASES["arm64"])
    )


def asset_matches_platform(filename: str, os_name: str, arch: str) -> bool:
    """Whether a release asset name targets ``os_name``/``arch``."""
    lowered = filename.lower()
    os_name, arch = normalize_os(os_name), normalize_arch(arch)

    if not _contains_any(lowered, _OS_ALIASES.get(os_name, (os_name,))):
        return False
    arch_matches = _contains_any(lowered, _ARCH_ALIASES.get(arch, (arch,)))
    if not (arch_matches or is_rosetta_fallback(filename, os_name, arch)):
        return False
    return not is_excluded(filename)


def select_asset(
    assets: list[dict[str, Any]],
    os_name: str | None = None,
    arch: str | None = None,
) -> dict[str, Any] | None:
    """Pick the best asset for this platform from a GitHub release listing."""
    os_name = normalize_os(os_name or detect_os())
    arch = normalize_arch(arch or detect_arch())
    matches = [a for a in assets if asset_matches_platform(a.get("name", ""), os_name, arch)]
    native = [a for a in matches if not is_rosetta_fallback(a.get("name", ""), os_name, arch)]
    if native:
        return native[0]
    return matches[0] if matches else None
