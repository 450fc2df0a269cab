"""
Add use case — declare a new item, then apply.

The entry is validated with the same model the loader uses before it is
written, so ``add`` can never leave a document the loader rejects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from setup_devbox.core.config.editor import DocumentEditor
from setup_devbox.core.config.loader import ConfigError, document_paths
from setup_devbox.core.config.paths import PathResolver
from setup_devbox.core.engine.reconciler import RunOptions
from setup_devbox.core.errors import DevboxError
from setup_devbox.core.models.fonts import FontEntry
from setup_devbox.core.models.settings import SettingEntry
from setup_devbox.core.models.shell import AliasEntry
from setup_devbox.core.models.tools import ToolEntry
from setup_devbox.core.use_cases.apply import ApplyResult, apply_config
from setup_devbox.core.use_cases.runtime import Runtime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Kind:
    category: str
    model: type[BaseModel]
    identity: tuple[str, ...]


KINDS = {
    "tool": _Kind("tools", ToolEntry, ("name",)),
    "font": _Kind("fonts", FontEntry, ("name",)),
    "alias": _Kind("shellrc", AliasEntry, ("name",)),
    "setting": _Kind("settings", SettingEntry, ("domain", "key")),
}


@dataclass
class AddResult:
    document: Path | None = None
    replaced: bool = False
    applied: ApplyResult | None = None
    error: str | None = None


def add_entry(
    kind: str,
    entry: dict[str, Any],
    config_path: str | Path | None = None,
    state_path: str | Path | None = None,
    os_name: str = "macos",
    options: RunOptions | None = None,
    runtime: Runtime | None = None,
    apply: bool = True,
) -> AddResult:
    """Validate ``entry``, upsert it into its document, then apply.

    Args:
        kind: One of ``tool``, ``font``, ``alias``, ``setting``.
        entry: Raw mapping as it will appear in the YAML document.
        os_name: Settings only, the OS group the entry belongs to.
        apply: Run the reconciler after writing.
    """
    result = AddResult()
    spec = KINDS[kind]
    clean = {k: v for k, v in entry.items() if v not in (None, [], "")}

    try:
        spec.model.model_validate(clean)
    except ValidationError as e:
        result.error = f"Invalid {kind}: {e.errors()[0].get('msg', e)}"
        return result

    try:
        paths = PathResolver.resolve(config_path, state_path)
        target = document_paths(paths.config_file).get(spec.category)
        if target is None:
            raise ConfigError(f"{paths.config_file} has no {spec.category} document")
        result.document = target

        keys = _list_keys(spec.category, os_name)
        match = {k: clean[k] for k in spec.identity}
        result.replaced = DocumentEditor(target).upsert(keys, clean, match)
    except DevboxError as e:
        result.error = str(e)
        return result

    verb = "Updated" if result.replaced else "Added"
    logger.info("%s %s '%s' in %s", verb, kind, "/".join(match.values()), target)

    if apply:
        result.applied = apply_config(
            config_path=paths.config_file,
            state_path=paths.state_file,
            options=options,
            runtime=runtime,
        )
    return result


def _list_keys(category: str, os_name: str) -> tuple[str, ...]:
    if category == "settings":
        return ("settings", os_name)
    if category == "shellrc":
        return ("aliases",)
    return (category,)
