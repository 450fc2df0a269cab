"""
Desired-state loader — reads config.yaml and its sub-documents.

Two modes:

    master  config.yaml names up to four sub-documents; each is loaded
            independently and a broken one only skips its category.
    single  the caller points at one sub-document; the category is
            picked from the file's basename.

Entries are validated one at a time, so one bad tool does not hide the
rest of ``tools.yaml``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from setup_devbox.core.config.paths import expand_path
from setup_devbox.core.errors import DevboxError
from setup_devbox.core.models.desired import (
    CATEGORIES,
    DesiredState,
    InvalidEntry,
    MasterConfig,
)
from setup_devbox.core.models.fonts import FontConfig, FontEntry
from setup_devbox.core.models.settings import SettingEntry, SettingsConfig
from setup_devbox.core.models.shell import (
    AliasEntry,
    RunCommandEntry,
    ShellConfig,
    ShellRunCommands,
)
from setup_devbox.core.models.tools import ToolConfig, ToolEntry

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

MASTER_CONFIG_FILE = "config.yaml"

# Basename → category for single-document mode
SUBDOCUMENT_FILES = {
    "tools.yaml": "tools",
    "fonts.yaml": "fonts",
    "shellrc.yaml": "shellrc",
    "shellac.yaml": "shellrc",
    "settings.yaml": "settings",
}


class ConfigError(DevboxError):
    """Raised when the master config is unusable or a basename is unknown."""


class DocumentError(DevboxError):
    """A sub-document could not be read or parsed (category is skipped)."""


# ── Entry points ────────────────────────────────────────────────


def is_single_document(path: Path) -> bool:
    """Whether ``path`` names a sub-document rather than a master config."""
    return path.name in SUBDOCUMENT_FILES


def load_desired(path: Path) -> DesiredState:
    """Load desired state from a master config or a single sub-document."""
    if path.name == MASTER_CONFIG_FILE:
        return load_master(path)
    return load_single(path)


def load_master(path: Path) -> DesiredState:
    """Load ``config.yaml`` and every sub-document it references.

    Raises:
        ConfigError: If the master document is unreadable or invalid.
    """
    logger.debug("Loading master config from %s", path)
    master = read_master(path)

    desired = DesiredState()
    for category in CATEGORIES:
        ref = getattr(master, category)
        if not ref:
            logger.debug("No %s document referenced in %s", category, path)
            continue
        _load_category(desired, category, _relative_to(path, ref))

    logger.info("Loaded desired state from %s", path)
    return desired


def load_single(path: Path) -> DesiredState:
    """Load exactly one sub-document, picked by basename.

    Raises:
        ConfigError: If the basename is unknown or the file is unreadable.
    """
    category = SUBDOCUMENT_FILES.get(path.name)
    if category is None:
        expected = ", ".join(sorted(set(SUBDOCUMENT_FILES)))
        raise ConfigError(
            f"Unsupported config file '{path.name}'. Expected {MASTER_CONFIG_FILE} or one of: {expected}"
        )
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    desired = DesiredState()
    _load_category(desired, category, path)
    return desired


def document_paths(path: Path) -> dict[str, Path]:
    """Category → sub-document path for a master or single-document config.

    Categories a master config does not reference default to
    ``<category>.yaml`` next to it.

    Raises:
        ConfigError: If the master document is unusable.
    """
    if path.name != MASTER_CONFIG_FILE:
        category = SUBDOCUMENT_FILES.get(path.name)
        if category is None:
            raise ConfigError(f"Unsupported config file '{path.name}'")
        return {category: path}

    master = read_master(path)
    return {
        category: _relative_to(path, getattr(master, category) or f"{category}.yaml")
        for category in CATEGORIES
    }


def read_master(path: Path) -> MasterConfig:
    """Parse ``config.yaml``.

    Raises:
        ConfigError: If it is unreadable or invalid.
    """
    data = _read_mapping(path, error_cls=ConfigError)
    try:
        return MasterConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid master configuration {path}: {e}") from e


def _relative_to(master_path: Path, ref: str) -> Path:
    """Resolve a sub-document reference against the master's directory."""
    sub_path = expand_path(ref)
    return sub_path if sub_path.is_absolute() else master_path.parent / sub_path


# ── Per-category parsing ────────────────────────────────────────


def _load_category(desired: DesiredState, category: str, path: Path) -> None:
    """Parse one sub-document into ``desired``; failures only skip the category."""
    try:
        data = _read_mapping(path, error_cls=DocumentError)
        parser = _PARSERS[category]
        config, invalid = parser(data)
    except DocumentError as e:
        if path.exists():
            logger.error("[%s] %s, skipping category", category, e)
        else:
            logger.warning("[%s] %s, skipping category", category, e)
        desired.load_errors[category] = str(e)
        return

    for entry in invalid:
        logger.error("[%s] Invalid entry '%s': %s", category, entry.name, entry.error)
    desired.invalid_entries.extend(invalid)
    desired.sources[category] = str(path)

    if category == "tools":
        desired.tools = config
    elif category == "fonts":
        desired.fonts = config
    elif category == "shellrc":
        desired.shell = config
    else:
        desired.settings = config
    logger.info("[%s] Loaded %s", category, path)


def parse_tools(data: dict[str, Any]) -> tuple[ToolConfig, list[InvalidEntry]]:
    entries = _require_list(data, "tools")
    tools, invalid = _validate_entries(entries, ToolEntry, "tools")
    policy = data.get("update_latest_only_after")
    config = ToolConfig(
        update_latest_only_after=str(policy) if policy is not None else None,
        tools=_dedupe(tools, "tools", key=lambda t: t.name),
    )
    return config, invalid


def parse_fonts(data: dict[str, Any]) -> tuple[FontConfig, list[InvalidEntry]]:
    entries = _require_list(data, "fonts")
    fonts, invalid = _validate_entries(entries, FontEntry, "fonts")
    return FontConfig(fonts=_dedupe(fonts, "fonts", key=lambda f: f.name)), invalid


def parse_shell(data: dict[str, Any]) -> tuple[ShellConfig, list[InvalidEntry]]:
    block = data.get("run_commands") or {}
    if not isinstance(block, dict):
        raise DocumentError("'run_commands' must be a mapping with 'shell' and 'run_commands'")
    commands, invalid = _validate_entries(
        block.get("run_commands") or [],
        RunCommandEntry,
        "shellrc",
        label="command",
        where="run_commands.run_commands",
    )
    aliases, bad_aliases = _validate_entries(
        data.get("aliases") or [], AliasEntry, "shellrc", where="aliases"
    )
    try:
        run_commands = ShellRunCommands(
            shell=block.get("shell", "zsh"), run_commands=commands
        )
    except ValidationError as e:
        raise DocumentError(f"Invalid shell: {e}") from e
    return ShellConfig(run_commands=run_commands, aliases=aliases), invalid + bad_aliases


def parse_settings(data: dict[str, Any]) -> tuple[SettingsConfig, list[InvalidEntry]]:
    by_os = data.get("settings") or {}
    if not isinstance(by_os, dict):
        raise DocumentError("'settings' must be a mapping of OS name to entries")
    parsed: dict[str, list[SettingEntry]] = {}
    invalid: list[InvalidEntry] = []
    for os_name, entries in by_os.items():
        valid, bad = _validate_entries(
            entries or [], SettingEntry, "settings", label="key", where=f"settings.{os_name}"
        )
        parsed[str(os_name)] = _dedupe(valid, "settings", key=lambda s: s.state_key)
        invalid.extend(bad)
    return SettingsConfig(settings=parsed), invalid


_PARSERS: dict[str, Callable[[dict[str, Any]], tuple[Any, list[InvalidEntry]]]] = {
    "tools": parse_tools,
    "fonts": parse_fonts,
    "shellrc": parse_shell,
    "settings": parse_settings,
}


# ── Helpers ─────────────────────────────────────────────────────


def _read_mapping(path: Path, error_cls: type[DevboxError]) -> dict[str, Any]:
    """Read a YAML file that must contain a mapping (empty file → {})."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise error_cls(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise error_cls(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise error_cls(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def _require_list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DocumentError(f"'{key}' must be a list, got {type(value).__name__}")
    return value


def _validate_entries(
    entries: list[Any],
    model: type[M],
    category: str,
    label: str = "name",
    where: str | None = None,
) -> tuple[list[M], list[InvalidEntry]]:
    if not isinstance(entries, list):
        raise DocumentError(
            f"'{where or category}' must be a list, got {type(entries).__name__}"
        )
    valid: list[M] = []
    invalid: list[InvalidEntry] = []
    for index, raw in enumerate(entries):
        name = str(raw.get(label, f"#{index}")) if isinstance(raw, dict) else f"#{index}"
        try:
            valid.append(model.model_validate(raw))
        except ValidationError as e:
            invalid.append(InvalidEntry(category=category, name=name, error=_first_error(e)))
    return valid, invalid


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    msg = first.get("msg", "invalid")
    return f"{loc}: {msg}" if loc else msg


def _dedupe(items: list[T], category: str, key: Callable[[T], str]) -> list[T]:
    """Keep the last entry for each key, at the position of the first."""
    by_key: dict[str, T] = {}
    for item in items:
        k = key(item)
        if k in by_key:
            logger.warning("[%s] Duplicate entry '%s', the last one wins", category, k)
        by_key[k] = item
    return list(by_key.values())
