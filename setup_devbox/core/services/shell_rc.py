"""
Shell RC owned blocks.

setup-devbox owns one block per ConfigSection inside the user's RC
file, delimited by marker lines:

    # >>> setup-devbox Exports >>>
    export EDITOR=nvim
    # <<< setup-devbox Exports <<<

Everything outside a marker pair belongs to the user and is preserved
byte for byte. A reconciliation only rewrites block contents, removes
blocks whose section has no desired content, and appends missing
blocks at the end of the file in canonical order.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from setup_devbox.core.errors import DevboxError
from setup_devbox.core.models.shell import (
    SECTION_ORDER,
    AliasEntry,
    ConfigSection,
    ShellConfig,
    ShellKind,
)
from setup_devbox.core.persistence.state_file import atomic_write_text

logger = logging.getLogger(__name__)

MARKER_PREFIX = "setup-devbox"

_START_RE = re.compile(rf"^# >>> {MARKER_PREFIX} (\S+) >>>\s*$")
_END_RE = re.compile(rf"^# <<< {MARKER_PREFIX} (\S+) <<<\s*$")


class ShellRcError(DevboxError):
    """The RC file has unbalanced or nested owned-block markers."""


def start_marker(section: ConfigSection) -> str:
    return f"# >>> {MARKER_PREFIX} {section.value} >>>"


def end_marker(section: ConfigSection) -> str:
    return f"# <<< {MARKER_PREFIX} {section.value} <<<"


def default_rc_path(shell: ShellKind) -> Path:
    return Path.home() / shell.rc_filename


# ── Parsing ─────────────────────────────────────────────────────


@dataclass
class Block:
    """An owned block: its section and the lines between the markers."""

    section: ConfigSection
    body: list[str] = field(default_factory=list)


def parse_rc(text: str) -> list[str | Block]:
    """Split RC text into foreign lines and owned blocks.

    Lines keep their original line endings.

    Raises:
        ShellRcError: On unbalanced, mismatched, nested, or duplicate markers.
    """
    segments: list[str | Block] = []
    current: Block | None = None
    seen: set[ConfigSection] = set()

    for lineno, line in enumerate(text.splitlines(keepends=True), start=1):
        stripped = line.rstrip("\r\n")
        start = _START_RE.match(stripped)
        end = _END_RE.match(stripped)
        if start:
            if current is not None:
                raise ShellRcError(
                    f"line {lineno}: block '{start.group(1)}' opened inside '{current.section}'"
                )
            section = _section_from_marker(start.group(1), lineno)
            if section in seen:
                raise ShellRcError(f"line {lineno}: duplicate block '{section}'")
            seen.add(section)
            current = Block(section)
        elif end:
            section = _section_from_marker(end.group(1), lineno)
            if current is None or current.section != section:
                raise ShellRcError(f"line {lineno}: closing marker for '{section}' without opener")
            segments.append(current)
            current = None
        elif current is not None:
            current.body.append(line)
        else:
            segments.append(line)

    if current is not None:
        raise ShellRcError(f"block '{current.section}' is never closed")
    return segments


def _section_from_marker(name: str, lineno: int) -> ConfigSection:
    try:
        return ConfigSection.parse(name)
    except ValueError as e:
        raise ShellRcError(f"line {lineno}: {e}") from e


# ── Rendering ───────────────────────────────────────────────────


def render_alias(alias: AliasEntry) -> str:
    return f"alias {alias.name}={shlex.quote(alias.value)}"


def dedupe_aliases(aliases: list[AliasEntry]) -> list[AliasEntry]:
    """Last definition of an alias name wins."""
    by_name: dict[str, AliasEntry] = {}
    for alias in aliases:
        if alias.name in by_name:
            logger.warning("Duplicate alias '%s', the last one wins", alias.name)
        by_name[alias.name] = alias
    return list(by_name.values())


def desired_blocks(config: ShellConfig) -> dict[ConfigSection, list[str]]:
    """Section → lines (without endings) the RC file should contain."""
    blocks: dict[ConfigSection, list[str]] = {}
    for entry in config.run_commands.run_commands:
        blocks.setdefault(entry.section, []).extend(entry.command.rstrip("\n").splitlines())
    for alias in dedupe_aliases(config.aliases):
        blocks.setdefault(ConfigSection.ALIASES, []).append(render_alias(alias))
    return {section: lines for section, lines in blocks.items() if lines}


def render_rc(text: str, blocks: dict[ConfigSection, list[str]]) -> str:
    """Return ``text`` with its owned blocks replaced by ``blocks``.

    Raises:
        ShellRcError: If ``text`` has broken markers.
    """
    segments = parse_rc(text)
    newline = "\r\n" if "\r\n" in text else "\n"
    out: list[str] = []
    written: set[ConfigSection] = set()

    def emit(section: ConfigSection) -> None:
        out.append(start_marker(section) + newline)
        out.extend(line + newline for line in blocks[section])
        out.append(end_marker(section) + newline)
        written.add(section)

    for segment in segments:
        if isinstance(segment, Block):
            if segment.section in blocks:
                emit(segment.section)
            else:
                logger.info("Removing empty %s block", segment.section)
        else:
            out.append(segment)

    missing = [s for s in SECTION_ORDER if s in blocks and s not in written]
    if missing and out and not out[-1].endswith("\n"):
        out[-1] = out[-1] + newline
    for section in missing:
        emit(section)

    return "".join(out)


# ── Manager ─────────────────────────────────────────────────────


@dataclass
class ShellRcResult:
    rc_file: Path
    changed: bool
    sections: list[ConfigSection] = field(default_factory=list)


class ShellRcManager:
    """Applies a ShellConfig to an RC file."""

    def __init__(self, rc_path: Path | None = None):
        self._rc_path = rc_path

    def rc_path(self, shell: ShellKind) -> Path:
        return self._rc_path or default_rc_path(shell)

    def read(self, path: Path) -> str:
        if not path.is_file():
            return ""
        with open(path, encoding="utf-8", newline="") as fh:
            return fh.read()

    def apply(self, config: ShellConfig) -> ShellRcResult:
        """Rewrite the owned blocks of the RC file for ``config.shell``.

        Raises:
            ShellRcError: If the file has broken markers (file untouched).
        """
        path = self.rc_path(config.shell)
        current = self.read(path)
        blocks = desired_blocks(config)
        rendered = render_rc(current, blocks)
        sections = [s for s in SECTION_ORDER if s in blocks]

        if rendered == current:
            logger.debug("%s is up to date", path)
            return ShellRcResult(rc_file=path, changed=False, sections=sections)

        atomic_write_text(path, rendered, prefix=f".{path.name}_")
        logger.info("Updated %s (%s)", path, ", ".join(s.value for s in sections) or "no blocks")
        return ShellRcResult(rc_file=path, changed=True, sections=sections)
